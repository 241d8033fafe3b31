"""Unit tests for the report generator Lambda."""

import base64
import json
from unittest.mock import MagicMock, patch

import pytest

from lambdas.report_generator import handler as report_handler
from lambdas.report_generator.handler import ReportHandler
from lambdas.shared.config import Settings
from lambdas.shared.models import ReportFailure, ReportSuccess, UsageStats
from lambdas.shared.report_client import GeneratedText

APP_ORIGIN = "https://landscout.example.com"


# --- Fixtures ---

@pytest.fixture
def settings():
    return Settings(openai_api_key="sk-test", allowed_origins=(APP_ORIGIN,))


@pytest.fixture
def dispatch():
    return MagicMock(return_value=ReportSuccess(
        report="<div class=\"container\">Report</div>",
        usage=UsageStats(input_tokens=812, output_tokens=604, total_tokens=1416),
    ))


@pytest.fixture
def sample_body():
    return {
        "propertyData": {
            "StockNumber": 3307,
            "County": "Sumter",
            "State": "FL",
            "For_Sale_Price": 500000,
            "Land_Area_AC": 20,
        },
        "userNarrative": "Seller will consider terms.",
    }


def make_event(method="POST", body=None, headers=None, **extra):
    event = {
        "httpMethod": method,
        "headers": headers or {"Content-Type": "application/json"},
        "body": json.dumps(body) if isinstance(body, dict) else body,
    }
    event.update(extra)
    return event


def body_of(response):
    return json.loads(response["body"])


# --- Method handling ---

class TestMethods:
    def test_preflight(self, settings, dispatch):
        response = ReportHandler(settings, dispatch)(make_event("OPTIONS"), None)

        assert response["statusCode"] == 200
        assert response["body"] == ""
        assert response["headers"]["Access-Control-Allow-Methods"] == "GET,OPTIONS,POST"
        dispatch.assert_not_called()

    def test_preflight_http_api_event(self, settings, dispatch):
        event = {"requestContext": {"http": {"method": "OPTIONS"}}, "headers": {}}
        response = ReportHandler(settings, dispatch)(event, None)

        assert response["statusCode"] == 200
        dispatch.assert_not_called()

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    def test_other_methods_rejected(self, settings, dispatch, method):
        response = ReportHandler(settings, dispatch)(make_event(method), None)

        assert response["statusCode"] == 405
        assert body_of(response) == {"error": "Method not allowed"}
        dispatch.assert_not_called()


# --- Request validation ---

class TestValidation:
    @pytest.mark.parametrize("body", [
        {"userNarrative": "no data"},
        {"propertyData": None},
        None,
    ])
    def test_missing_property_data(self, settings, dispatch, body):
        response = ReportHandler(settings, dispatch)(make_event(body=body), None)

        assert response["statusCode"] == 400
        assert body_of(response) == {"error": "Property data is required"}
        dispatch.assert_not_called()

    def test_invalid_json(self, settings, dispatch):
        response = ReportHandler(settings, dispatch)(make_event(body="{not json"), None)

        assert response["statusCode"] == 400
        assert body_of(response) == {"error": "Invalid JSON in request body."}
        dispatch.assert_not_called()

    @pytest.mark.parametrize("body", [
        {"propertyData": ["a", "list"]},
        {"propertyData": {}, "userNarrative": 17},
        "[1, 2, 3]",
    ])
    def test_wrong_types(self, settings, dispatch, body):
        response = ReportHandler(settings, dispatch)(make_event(body=body), None)

        assert response["statusCode"] == 400
        assert body_of(response)["error"] == "Validation failed."
        dispatch.assert_not_called()


# --- Report generation ---

class TestGeneration:
    def test_success(self, settings, dispatch, sample_body):
        response = ReportHandler(settings, dispatch)(make_event(body=sample_body), None)

        assert response["statusCode"] == 200
        assert body_of(response) == {
            "report": "<div class=\"container\">Report</div>",
            "usage": {"input_tokens": 812, "output_tokens": 604, "total_tokens": 1416},
        }
        view, narrative, passed_settings = dispatch.call_args.args
        assert view.price_per_acre == "$25,000"
        assert view.location == "Sumter County, FL"
        assert narrative == "Seller will consider terms."
        assert passed_settings is settings

    def test_success_without_usage(self, settings, sample_body):
        dispatch = MagicMock(return_value=ReportSuccess(report="Report"))
        response = ReportHandler(settings, dispatch)(make_event(body=sample_body), None)

        assert body_of(response) == {"report": "Report"}

    def test_empty_property_data_still_generates(self, settings, dispatch):
        response = ReportHandler(settings, dispatch)(make_event(body={"propertyData": {}}), None)

        assert response["statusCode"] == 200
        view = dispatch.call_args.args[0]
        assert view.price == "N/A"

    def test_integer_too_large_for_float_degrades(self, settings, dispatch):
        body = {"propertyData": {"Population": 10 ** 400, "County": "Sumter"}}
        response = ReportHandler(settings, dispatch)(make_event(body=body), None)

        assert response["statusCode"] == 200
        view = dispatch.call_args.args[0]
        assert view.population == "N/A"
        assert view.location.startswith("Sumter County")

    def test_base64_body(self, settings, dispatch, sample_body):
        encoded = base64.b64encode(json.dumps(sample_body).encode("utf-8")).decode("ascii")
        event = make_event(body=encoded, isBase64Encoded=True)

        response = ReportHandler(settings, dispatch)(event, None)

        assert response["statusCode"] == 200
        dispatch.assert_called_once()

    def test_direct_invocation(self, settings, dispatch, sample_body):
        response = ReportHandler(settings, dispatch)(sample_body, None)

        assert response["statusCode"] == 200
        dispatch.assert_called_once()

    def test_configuration_failure(self, settings, sample_body):
        dispatch = MagicMock(return_value=ReportFailure(
            kind="configuration", message="OPENAI_API_KEY is not configured",
        ))
        response = ReportHandler(settings, dispatch)(make_event(body=sample_body), None)

        assert response["statusCode"] == 500
        assert body_of(response)["error"] == "Report service is not configured"

    def test_unexpected_exception_still_answers(self, settings, sample_body):
        dispatch = MagicMock(side_effect=RuntimeError("boom"))
        response = ReportHandler(settings, dispatch)(make_event(body=sample_body), None)

        assert response["statusCode"] == 500
        assert body_of(response) == {"error": "Failed to generate report", "message": "boom"}


class TestEndToEnd:
    """Real dispatcher, with only the model call patched."""

    @patch("lambdas.shared.report_client.generate_text")
    def test_downstream_network_failure(self, mock_generate, settings, sample_body):
        mock_generate.side_effect = ConnectionError("Network is unreachable")

        response = ReportHandler(settings)(make_event(body=sample_body), None)

        assert response["statusCode"] == 500
        assert body_of(response) == {
            "error": "Failed to generate report",
            "message": "Network is unreachable",
        }
        mock_generate.assert_called_once()

    @patch("lambdas.shared.report_client.generate_text")
    def test_missing_credential(self, mock_generate, sample_body):
        response = ReportHandler(Settings())(make_event(body=sample_body), None)

        assert response["statusCode"] == 500
        assert body_of(response)["error"] == "Report service is not configured"
        mock_generate.assert_not_called()

    @patch("lambdas.shared.report_client.generate_text")
    def test_report_relayed(self, mock_generate, settings, sample_body):
        mock_generate.return_value = GeneratedText(text="<h1>Sumter 20 ac</h1>", usage=None)

        response = ReportHandler(settings)(make_event(body=sample_body), None)

        assert response["statusCode"] == 200
        assert body_of(response) == {"report": "<h1>Sumter 20 ac</h1>"}


# --- CORS ---

class TestCors:
    def test_allow_listed_origin_echoed(self, settings, dispatch):
        event = make_event("OPTIONS", headers={"Origin": APP_ORIGIN})
        headers = ReportHandler(settings, dispatch)(event, None)["headers"]

        assert headers["Access-Control-Allow-Origin"] == APP_ORIGIN
        assert headers["Vary"] == "Origin"
        assert headers["Access-Control-Allow-Credentials"] == "true"

    def test_unknown_origin_gets_wildcard(self, settings, dispatch, sample_body):
        event = make_event(body=sample_body, headers={"origin": "https://elsewhere.example.org"})
        headers = ReportHandler(settings, dispatch)(event, None)["headers"]

        assert headers["Access-Control-Allow-Origin"] == "*"
        assert "Vary" not in headers

    def test_error_responses_carry_cors(self, settings, dispatch):
        event = make_event("GET", headers={"ORIGIN": APP_ORIGIN})
        headers = ReportHandler(settings, dispatch)(event, None)["headers"]

        assert headers["Access-Control-Allow-Origin"] == APP_ORIGIN
        assert "Content-Type" in headers["Access-Control-Allow-Headers"]


# --- Lambda entry point ---

class TestEntryPoint:
    @pytest.fixture(autouse=True)
    def fresh_handler(self, monkeypatch):
        monkeypatch.setattr(report_handler, "_handler", None)
        for name in ("REPORT_PROVIDER", "OPENAI_API_KEY", "ALLOWED_ORIGINS"):
            monkeypatch.delenv(name, raising=False)

    @patch("lambdas.shared.report_client.generate_text")
    def test_handler_reads_environment(self, mock_generate, monkeypatch, sample_body):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        monkeypatch.setenv("ALLOWED_ORIGINS", APP_ORIGIN)
        mock_generate.return_value = GeneratedText(text="Report", usage=None)

        event = make_event(body=sample_body, headers={"Origin": APP_ORIGIN})
        response = report_handler.handler(event, None)

        assert response["statusCode"] == 200
        assert response["headers"]["Access-Control-Allow-Origin"] == APP_ORIGIN
        settings = mock_generate.call_args.args[1]
        assert settings.openai_api_key.get_secret_value() == "sk-from-env"

    def test_handler_is_cached(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        assert report_handler.get_handler() is report_handler.get_handler()

    def test_invalid_settings_answer_500(self, monkeypatch, sample_body):
        monkeypatch.setenv("REPORT_PROVIDER", "carrier-pigeon")

        response = report_handler.handler(make_event(body=sample_body), None)

        assert response["statusCode"] == 500
        assert body_of(response)["error"] == "Report service is not configured"

    def test_invalid_settings_still_answer_preflight(self, monkeypatch):
        monkeypatch.setenv("REPORT_PROVIDER", "carrier-pigeon")

        response = report_handler.handler(make_event("OPTIONS"), None)

        assert response["statusCode"] == 200
        assert response["body"] == ""

    def test_invalid_settings_reject_other_methods(self, monkeypatch):
        monkeypatch.setenv("REPORT_PROVIDER", "carrier-pigeon")
        monkeypatch.setenv("ALLOWED_ORIGINS", APP_ORIGIN)

        response = report_handler.handler(make_event("GET", headers={"Origin": APP_ORIGIN}), None)

        assert response["statusCode"] == 405
        assert body_of(response) == {"error": "Method not allowed"}
        assert response["headers"]["Access-Control-Allow-Origin"] == APP_ORIGIN
        assert response["headers"]["Vary"] == "Origin"
