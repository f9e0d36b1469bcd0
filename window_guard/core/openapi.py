"""OpenAPI customization.

Documents the optional ``X-API-Key`` header used as the rate limit token and
adds tag descriptions. Keeps documentation concerns out of the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {
        "name": "Rate limit",
        "description": "Consume and inspect per-caller fixed-window budgets.",
    },
    {
        "name": "Health",
        "description": "Liveness checks (never rate limited).",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation with the caller key scheme and tags."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("securitySchemes", {}).setdefault(
            "CallerKey",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": (
                    "Optional. Identifies the caller for rate limiting; "
                    "without it the client address is used."
                ),
            },
        )

        tags = schema.setdefault("tags", [])
        known = {t.get("name") for t in tags}
        tags.extend(tag for tag in _TAGS if tag["name"] not in known)

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
