"""Lambda: Report Generator.

Receives an API Gateway event carrying a property's metrics, normalizes
them, and returns an AI-written investment report.
"""

from __future__ import annotations

import logging
import os

from pydantic import ValidationError

from lambdas.shared import api_gateway, report_dispatcher
from lambdas.shared.config import Settings, parse_origins
from lambdas.shared.data_formatter import normalize
from lambdas.shared.models import PropertyRecord, ReportRequest

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

_handler = None


class ReportHandler:
    """Request handler bound to one ``Settings`` instance."""

    def __init__(self, settings: Settings, dispatch=None):
        self.settings = settings
        self.dispatch = dispatch or report_dispatcher.build_and_dispatch

    def __call__(self, event, context) -> dict:
        origin = api_gateway.request_header(event, "origin")

        def respond(status_code: int, body: dict | None) -> dict:
            return api_gateway.api_response(
                status_code, body, origin=origin,
                allowed_origins=self.settings.allowed_origins,
            )

        method = api_gateway.request_method(event)
        logger.info("Received %s request (origin=%s)", method, origin or "-")

        if method == "OPTIONS":
            return respond(200, None)
        if method != "POST":
            return respond(405, {"error": "Method not allowed"})

        try:
            return self._generate(event, respond)
        except Exception as exc:
            logger.exception("Unexpected error generating report")
            return respond(500, {"error": "Failed to generate report", "message": str(exc)})

    def _generate(self, event, respond) -> dict:
        # ------------------------------------------------------------------
        # 1. Parse body
        # ------------------------------------------------------------------
        try:
            raw_body = api_gateway.parse_body(event)
        except ValueError as exc:
            logger.warning("Bad request body: %s", exc)
            return respond(400, {"error": "Invalid JSON in request body."})

        # ------------------------------------------------------------------
        # 2. Validate request fields
        # ------------------------------------------------------------------
        property_data = raw_body
        if isinstance(raw_body, dict):
            property_data = raw_body.get("propertyData", raw_body.get("property_data"))
        if property_data is None:
            logger.warning("Request is missing propertyData")
            return respond(400, {"error": "Property data is required"})

        try:
            request = ReportRequest.model_validate(raw_body)
        except ValidationError as exc:
            details = exc.errors(include_url=False, include_context=False, include_input=False)
            logger.warning("Validation failed: %s", details)
            return respond(400, {"error": "Validation failed.", "details": details})

        # ------------------------------------------------------------------
        # 3. Normalize and generate
        # ------------------------------------------------------------------
        record = PropertyRecord.model_validate(request.property_data)
        view = normalize(record)
        result = self.dispatch(view, request.user_narrative, self.settings)

        if result.status == "success":
            body = {"report": result.report}
            if result.usage:
                body["usage"] = result.usage.model_dump()
            return respond(200, body)

        if result.kind == "configuration":
            return respond(500, {
                "error": "Report service is not configured",
                "message": result.message,
            })
        return respond(500, {"error": "Failed to generate report", "message": result.message})


def _misconfigured(exc: ValidationError, allowed_origins: tuple[str, ...]):
    def answer(event, context):
        origin = api_gateway.request_header(event, "origin")
        method = api_gateway.request_method(event)
        if method == "OPTIONS":
            return api_gateway.api_response(
                200, None, origin=origin, allowed_origins=allowed_origins,
            )
        if method != "POST":
            return api_gateway.api_response(
                405, {"error": "Method not allowed"},
                origin=origin, allowed_origins=allowed_origins,
            )
        return api_gateway.api_response(
            500,
            {"error": "Report service is not configured", "message": "Invalid settings"},
            origin=origin, allowed_origins=allowed_origins,
        )

    logger.error("Invalid settings: %s", exc.errors(include_url=False, include_input=False))
    return answer


def get_handler():
    global _handler
    if _handler is None:
        try:
            _handler = ReportHandler(Settings.from_env())
        except ValidationError as exc:
            origins = parse_origins(os.environ.get("ALLOWED_ORIGINS", ""))
            _handler = _misconfigured(exc, origins)
    return _handler


def handler(event, context):
    """AWS Lambda entry point."""
    return get_handler()(event, context)
