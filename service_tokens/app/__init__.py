"""
Token Service package.

This package exposes the FastAPI application that issues access tokens,
publishes the keys needed to verify them, and checks tokens presented by
callers:

- app.tokens: Claims model, signing keys, encode/decode, verification and
  the scope/audience authorization check.
- app.grants: Grant-flow policy deciding what a new token carries.
- app.discovery: Token key documents and a client for fetching them.
- app.authz: Bearer token guard for protected endpoints.
- app.main: Application entrypoint that wires routes.
- app.cli: Command line token inspection.

Design notes:
- Module import must not read key files or perform network calls. Keys are
  loaded when the service is constructed.
- Use the shared/ utilities for config, logging, metrics and errors.
- Decoding a token does not verify it; see app.tokens.
"""
