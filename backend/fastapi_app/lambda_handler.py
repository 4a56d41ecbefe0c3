from __future__ import annotations

import json

from mangum import Mangum

from backend.fastapi_app.main import app


def _safe_get(d, *keys, default=None):
    cur = d
    for k in keys:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def _base_path(stage):
    # $default ステージはパスにプレフィックスが付かない
    if stage and stage != "$default":
        return f"/{stage}"
    return None


def handler(event, context):
    stage = _safe_get(event, "requestContext", "stage", default=None)
    method = _safe_get(event, "requestContext", "http", "method", default=None)
    body = event.get("body") or ""

    print(
        json.dumps(
            {
                "diag": "incoming_request",
                "stage": stage,
                "method": method,
                "rawPath": event.get("rawPath"),
                "body_chars": len(body),
                "base64_encoded": bool(event.get("isBase64Encoded")),
            },
            ensure_ascii=False,
        )
    )

    # /dev や /prod を Mangum 側で剥がして FastAPI に渡す
    asgi = Mangum(app, api_gateway_base_path=_base_path(stage))
    return asgi(event, context)
