"""Allow ``python -m jsonrpc_client_stream``."""

from .cli import main

main()
