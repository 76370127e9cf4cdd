# Middleware package init
"""
Sleeping Backend: Middleware Package
=====================================

What:  Cross-cutting concerns applied to every HTTP request.

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    Rate limiting rejects abusive clients before any other work; the request
    ID is set before the access log line is written so both share it.

WebSocket traffic (/ws) bypasses these: Starlette's BaseHTTPMiddleware only
wraps "http" scopes.
"""
