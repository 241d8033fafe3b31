"""Text-generation client for investment reports.

Each call builds a Strands Agent (no tools) over either the OpenAI API or
AWS Bedrock, sends the prompt once, and returns the text with token usage.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import NamedTuple

from strands import Agent
from strands.models.bedrock import BedrockModel
from strands.models.openai import OpenAIModel

from lambdas.shared.config import Settings
from lambdas.shared.models import ReportPrompt, UsageStats

logger = logging.getLogger(__name__)

MODELS = {
    "openai": "gpt-3.5-turbo",
    "bedrock": "us.anthropic.claude-haiku-4-5-20251001-v1:0",
}

TEMPERATURE = 0.7
MAX_TOKENS = 1200


class ReportGenerationError(RuntimeError):
    """The model answered, but not with anything usable."""


class GeneratedText(NamedTuple):
    text: str
    usage: UsageStats | None


def create_model(settings: Settings):
    """Build the Strands model for the configured provider."""
    model_id = MODELS[settings.provider]
    if settings.provider == "bedrock":
        return BedrockModel(
            model_id=model_id,
            region_name=settings.aws_region,
            max_tokens=MAX_TOKENS,
            temperature=TEMPERATURE,
        )

    api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None
    return OpenAIModel(
        client_args={"api_key": api_key},
        model_id=model_id,
        params={"max_tokens": MAX_TOKENS, "temperature": TEMPERATURE},
    )


def create_agent(system_prompt: str, settings: Settings) -> Agent:
    return Agent(
        name="investment_report",
        model=create_model(settings),
        system_prompt=system_prompt,
        tools=[],
        callback_handler=None,
    )


def _usage_from(result) -> UsageStats | None:
    metrics = getattr(result, "metrics", None)
    usage = getattr(metrics, "accumulated_usage", None)
    if not isinstance(usage, Mapping) or not usage.get("totalTokens"):
        return None
    return UsageStats(
        input_tokens=usage.get("inputTokens", 0),
        output_tokens=usage.get("outputTokens", 0),
        total_tokens=usage.get("totalTokens", 0),
    )


def generate_text(prompt: ReportPrompt, settings: Settings) -> GeneratedText:
    """Send one prompt to the model and return its text verbatim.

    Raises ``ReportGenerationError`` on an empty answer; transport and API
    errors from the provider propagate unchanged.
    """
    logger.info("Invoking %s model %s", settings.provider, MODELS[settings.provider])
    agent = create_agent(prompt.system, settings)
    result = agent(prompt.user)

    text = str(result)
    if not text.strip():
        raise ReportGenerationError("Model returned an empty response")

    usage = _usage_from(result)
    if usage:
        logger.info(
            "Report generated: %d input / %d output tokens",
            usage.input_tokens, usage.output_tokens,
        )
    return GeneratedText(text=text, usage=usage)
