# Middleware package init
"""
Recordbook Backend: Middleware Package
=======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [GZip] → [CORS headers] → Router

    - Request ID: correlation ID for logging and the X-Request-ID header
    - Logging: method, path, status, duration with the request ID
    - CORS headers: preflight short-circuit and fixed headers on /api responses
"""
