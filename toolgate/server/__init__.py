"""
Toolgate Server Package.

This package exposes the capability execution core over HTTP.

Subpackages:
    api: FastAPI route definitions and endpoint logic.
    core: Server constants and database wiring.
    exception_handlers: Mapping of core errors to HTTP responses.
    services: Runtime dependency providers for the routes.
"""
