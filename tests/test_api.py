"""
Integration tests for the FastAPI gateway (bill_api/main.py).

The app is built with an injected stub model, so GEMINI_API_KEY is only
needed by the tests that exercise start-up and the health endpoint.
"""
import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from bill_api.main import create_app
from src.config import Config
from src.extractors.bill_extractor import BILL_PROMPT
from src.schemas import BillData


def client_for(model):
    return TestClient(create_app(model=model), raise_server_exceptions=False)


def model_returning(text):
    model = MagicMock()
    model.generate_content.return_value = MagicMock(text=text)
    return model


@pytest.fixture
def client(stub_model):
    return client_for(stub_model)


class TestAnalyzeEndpoint:

    def test_success_returns_upstream_json(self, client, stub_model, bill_payload):
        response = client.post("/api/analyze", json={"image": "data:image/png;base64,AAAA"})

        assert response.status_code == 200
        assert response.json() == bill_payload
        stub_model.generate_content.assert_called_once_with(
            [BILL_PROMPT, {"mime_type": "image/png", "data": b"\x00\x00\x00"}],
        )

    @pytest.mark.parametrize(
        "payload",
        ["AAAA\nAAAA", "AA-_", "AAA"],
        ids=["line-wrapped", "url-safe", "unpadded"],
    )
    def test_lenient_base64_is_forwarded(self, client, stub_model, payload):
        response = client.post("/api/analyze", json={"image": f"data:image/png;base64,{payload}"})

        assert response.status_code == 200
        assert stub_model.generate_content.call_count == 1

    def test_undecodable_base64_is_internal_error(self, client, stub_model):
        response = client.post("/api/analyze", json={"image": "data:image/png;base64,@@@"})

        assert response.status_code == 500
        stub_model.generate_content.assert_not_called()

    def test_missing_image_is_bad_request(self, client, stub_model):
        response = client.post("/api/analyze", json={})

        assert response.status_code == 400
        assert response.text == "Missing image in request body"
        stub_model.generate_content.assert_not_called()

    def test_non_json_body_is_bad_request(self, client, stub_model):
        response = client.post(
            "/api/analyze", content=b"image=abc", headers={"Content-Type": "text/plain"}
        )
        assert response.status_code == 400
        stub_model.generate_content.assert_not_called()

    def test_get_is_method_not_allowed(self, client, stub_model):
        response = client.get("/api/analyze")

        assert response.status_code == 405
        stub_model.generate_content.assert_not_called()

    def test_empty_upstream_is_bad_gateway(self):
        response = client_for(model_returning("")).post("/api/analyze", json={"image": "AAAA"})

        assert response.status_code == 502
        assert response.text == "AI response empty"

    def test_malformed_upstream_is_internal_error(self):
        client = client_for(model_returning("not json {"))

        response = client.post("/api/analyze", json={"image": "AAAA"})
        assert response.status_code == 500
        assert response.text

        # The process keeps serving afterwards.
        assert client.get("/api/health").status_code == 200

    def test_upstream_exception_message_in_body(self):
        model = MagicMock()
        model.generate_content.side_effect = RuntimeError("deadline exceeded")

        response = client_for(model).post("/api/analyze", json={"image": "AAAA"})
        assert response.status_code == 500
        assert response.text == "deadline exceeded"

    def test_round_trip_preserves_history_and_flag(self, client, bill_payload):
        response = client.post("/api/analyze", json={"image": "AAAA"})
        bill = BillData.model_validate(response.json())

        assert len(bill.storico_consumi) == len(bill_payload["storico_consumi"])
        assert bill.is_gas is False

    def test_gas_flag_round_trip(self, bill_payload):
        bill_payload["is_gas"] = True
        client = client_for(model_returning(json.dumps(bill_payload)))

        body = client.post("/api/analyze", json={"image": "AAAA"}).json()
        assert body["is_gas"] is True
        assert BillData.model_validate(body).is_gas is True


class TestHealthEndpoint:

    def test_reports_key_presence_without_value(self, client, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "super-secret-value")

        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["gemini_api_key"] == "set"
        assert "timestamp" in data
        assert "super-secret-value" not in response.text

    def test_reports_missing_key(self, client, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        assert client.get("/api/health").json()["gemini_api_key"] == "missing"


class TestStartup:

    def test_refuses_to_start_without_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(EnvironmentError, match="GEMINI_API_KEY"):
            create_app()

    def test_builds_model_once_from_config(self):
        config = Config(gemini_api_key="test-key")
        with patch("bill_api.main.build_model") as build_model:
            app = create_app(config=config)

        build_model.assert_called_once_with(config)
        assert app.state.model is build_model.return_value

    def test_model_is_reused_across_requests(self, client, stub_model):
        for _ in range(3):
            client.post("/api/analyze", json={"image": "AAAA"})
        assert stub_model.generate_content.call_count == 3
