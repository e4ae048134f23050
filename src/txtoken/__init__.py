"""Single-use transaction tokens (txtoken)

A client asks the server for a short-lived numeric token bound to a username,
then presents it with a transfer request. The server approves the transfer only
if the token is current, and burns it in the same step.

Layout:
- message: pipe-delimited wire codec (typed requests and responses)
- store: lock-guarded token table (issue / validate / consume / redeem)
- dispatcher: request -> response state machine
- server / net: one request per TCP connection, one thread per connection
- client: the counterpart used by the CLI and the benchmark
"""

__all__ = []
