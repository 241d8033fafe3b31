"""Build the prompt for a normalized property and send it for generation."""

from __future__ import annotations

import logging

from lambdas.shared import prompts, report_client
from lambdas.shared.config import Settings
from lambdas.shared.models import NormalizedView, ReportFailure, ReportResult, ReportSuccess

logger = logging.getLogger(__name__)


def build_and_dispatch(
    view: NormalizedView,
    narrative: str | None,
    settings: Settings,
) -> ReportResult:
    """Generate a report for ``view``; never raises.

    Makes exactly one call to the text-generation service, or none at all
    when no credential is configured.
    """
    prompt = prompts.build_prompt(view, narrative)

    if not settings.has_credentials():
        logger.error("No %s configured; cannot generate report", settings.credential_name())
        return ReportFailure(
            kind="configuration",
            message=f"{settings.credential_name()} is not configured",
        )

    try:
        generated = report_client.generate_text(prompt, settings)
    except Exception as exc:
        logger.exception("Report generation failed for stock #%s", view.stock_number)
        return ReportFailure(kind="downstream", message=str(exc) or type(exc).__name__)

    return ReportSuccess(report=generated.text, usage=generated.usage)
