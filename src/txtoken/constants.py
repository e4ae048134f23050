from __future__ import annotations

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
SERVER_ENV = "TXTOKEN_SERVER"

TOKEN_TTL_SECONDS = 60
SECRET_MIN = 100000
SECRET_MAX = 999999

MAX_REQUEST_BYTES = 1024
DEFAULT_READ_TIMEOUT_MS = 5000
DEFAULT_CONNECT_TIMEOUT_MS = 5000
ACCEPT_POLL_S = 0.5
LISTEN_BACKLOG = 16

FIELD_SEP = "|"
KV_SEP = ":"

# request tags
TAG_TOKEN_REQUEST = "SOLICITAR_TOKEN"
TAG_TRANSACTION = "TRANS"

# response tags
TAG_APPROVED = "APROBADA"
TAG_REJECTED = "RECHAZADA"
TAG_ERROR = "ERROR"

REASON_INVALID_TOKEN = "Token invalido o expirado"
REASON_UNRECOGNIZED = "Solicitud no reconocida"
REASON_TOO_LARGE = "Solicitud demasiado grande"
