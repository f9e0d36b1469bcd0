"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports the settings module,
so every test sees the same limiter configuration.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_REQUESTS", "3")
os.environ.setdefault("APP_RATE_LIMIT_WINDOW_MS", "60000")
os.environ.setdefault("APP_RATE_LIMIT_MAX_TRACKED_TOKENS", "100")
os.environ.setdefault("LOG_LEVEL", "WARNING")
