"""Rate limiting adapters.

This package isolates the shared window store behind a small interface so the
limiter can be exercised against Redis in production and fakeredis or a stub
in tests without changing the service or API layers.
"""
