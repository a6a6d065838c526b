"""OpenAPI customization.

Adds the ``X-API-Key`` security scheme and attaches it to the admin-only
operations, plus tag descriptions. Everything else stays public in the docs.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

# (path suffix, method) pairs guarded by the admin gate
ADMIN_OPERATIONS = {("/chapters", "post")}

TAGS_METADATA = [
    {
        "name": "Chapters",
        "description": "Chapter records: filtered listing, lookup, yearly stats and bulk upload.",
    },
    {
        "name": "Health",
        "description": "Liveness and readiness checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and the admin key scheme."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("securitySchemes", {})["AdminApiKey"] = {
            "type": "apiKey",
            "in": "header",
            "name": "X-API-Key",
            "description": "Admin shared secret, required for uploads.",
        }

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        tags.extend(t for t in TAGS_METADATA if t["name"] not in existing_tag_names)

        for path, methods in schema.get("paths", {}).items():
            for method, operation in methods.items():
                if not isinstance(operation, dict):
                    continue
                if any(path.endswith(suffix) and method == m for suffix, m in ADMIN_OPERATIONS):
                    operation["security"] = [{"AdminApiKey": []}]

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
