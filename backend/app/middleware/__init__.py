# Middleware package init
"""
Tripmark Backend — Middleware Package
=======================================

Middleware Chain (execution order):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit first: rejects abusive clients before any work
    2. Request ID: correlation id for logs and error bodies
    3. Logging: access line with status and duration

    Responses travel the chain in reverse.
"""
