# Middleware package init
"""
PotTogether Backend: Middleware Package
========================================

Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first, so every later log line carries it
    2. Logging records status and duration once the response is built
    3. GZip / CORS are Starlette's own middleware
"""
