"""
Marketplace Backend — Middleware Package
=========================================

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    - rate_limit.py:  per-IP sliding window, answers 429 before any work is done
    - request_id.py:  X-Request-ID in, ContextVar for the request, header out
    - logging.py:     one access log line per request on `marketplace.access`
"""
