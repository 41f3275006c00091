# Middleware package init
"""
Notesy Backend - Middleware Package
====================================

Middleware Chain (request direction):
    Request → [Request Context] → [Rate Limit] → [GZip] → [CORS] → Route

    - request_context.py: correlation id plus one access line per request,
      so 429s are logged and carry the id too.
    - rate_limit.py: per-IP sliding window, rejects before any handler work.
"""
