"""Observability package.

Structured logging, in-process metrics, ASGI middleware and the
request/session scoped context used to correlate terminal commands.
"""

__all__ = [
    "middleware",
    "metrics",
    "logger",
    "context",
]
