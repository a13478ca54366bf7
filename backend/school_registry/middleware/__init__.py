"""
School Registry Backend: Middleware Package
=============================================

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [CORS] → Route Handler

The request id is set before the access log line is written, so every log
entry for a request carries the same id.
"""
