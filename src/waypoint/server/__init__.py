"""ASGI response boundary — the only layer that touches raw ASGI."""
