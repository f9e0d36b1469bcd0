"""Rate limiting adapters.

The HTTP layer depends on ``AbstractRateLimiter`` only, so the in-memory
fixed-window limiter can later be replaced by a shared store without touching
routes or dependencies.
"""
