"""API Gateway proxy helpers: request parsing and response envelopes.

Works with REST API (v1) events, HTTP API / function URL (v2) events, and
direct invocations where the event itself is the request body.
"""

from __future__ import annotations

import base64
import json
import logging

logger = logging.getLogger(__name__)

ALLOWED_METHODS = "GET,OPTIONS,POST"
ALLOWED_HEADERS = (
    "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
    "Content-MD5, Content-Type, Date, X-Api-Version"
)


def cors_headers(origin: str | None, allowed_origins=()) -> dict:
    """Echo an allow-listed origin, fall back to the wildcard otherwise."""
    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
    }
    if origin and origin in allowed_origins:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Vary"] = "Origin"
    return headers


def api_response(
    status_code: int,
    body: dict | None,
    origin: str | None = None,
    allowed_origins=(),
) -> dict:
    """Build a properly-formatted API Gateway proxy response.

    A ``None`` body produces an empty response body (used for preflight).
    """
    headers = {"Content-Type": "application/json"}
    headers.update(cors_headers(origin, allowed_origins))
    return {
        "statusCode": status_code,
        "headers": headers,
        "body": "" if body is None else json.dumps(body, default=str),
    }


def is_http_event(event) -> bool:
    return isinstance(event, dict) and (
        "httpMethod" in event or "requestContext" in event or "body" in event
    )


def request_method(event) -> str:
    """HTTP method of the event; direct invocations count as POST."""
    if not is_http_event(event):
        return "POST"
    method = event.get("httpMethod")
    if not method:
        method = (event.get("requestContext") or {}).get("http", {}).get("method")
    return (method or "POST").upper()


def request_header(event, name: str) -> str | None:
    if not isinstance(event, dict):
        return None
    headers = event.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def parse_body(event):
    """Return the decoded JSON body.

    Raises ``ValueError`` when the body is not valid JSON.
    """
    if not is_http_event(event):
        return event

    body = event.get("body")
    if not isinstance(body, str):
        return body

    if event.get("isBase64Encoded"):
        try:
            body = base64.b64decode(body).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as exc:
            raise ValueError(f"Undecodable base64 body: {exc}") from exc

    if not body.strip():
        return None
    return json.loads(body)
