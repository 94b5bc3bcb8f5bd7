import io
import json
from contextlib import redirect_stderr, redirect_stdout

import pytest


def _captured_lines(buf_out: io.StringIO, buf_err: io.StringIO) -> list[str]:
    raw = buf_err.getvalue().strip() or buf_out.getvalue().strip()
    return [ln for ln in raw.splitlines() if ln.strip()]


def _extract_request_complete_lines(lines: list[str]) -> list[str]:
    return [ln for ln in lines if '"event": "request_complete"' in ln]


def test_structlog_outputs_pure_json_without_stdlib_prefix():
    buf_out = io.StringIO()
    buf_err = io.StringIO()

    with redirect_stdout(buf_out), redirect_stderr(buf_err):
        from learncurve.logging import configure_logging, logger

        configure_logging()
        logger.info(
            "review_recorded",
            user_id="default",
            card_id=1,
            rating="good",
        )

    lines = _captured_lines(buf_out, buf_err)
    message_text = lines[-1] if lines else ""

    assert message_text, "no log output captured"
    assert not message_text.startswith("INFO:"), message_text

    data = json.loads(message_text)
    assert data.get("event") == "review_recorded"
    assert data.get("level") in {"info", "INFO"}
    assert data.get("card_id") == 1
    assert "timestamp" in data


def test_request_complete_log_contains_request_id_and_status() -> None:
    buf_out = io.StringIO()
    buf_err = io.StringIO()

    with redirect_stdout(buf_out), redirect_stderr(buf_err):
        from fastapi.testclient import TestClient

        from learncurve.main import create_app

        with TestClient(create_app()) as client:
            response = client.get("/healthz", headers={"X-Request-ID": "log-test-id", "X-User-Id": "alice"})

        assert response.status_code == 200

    request_lines = _extract_request_complete_lines(_captured_lines(buf_out, buf_err))
    assert request_lines, "request_complete log line not found"

    data = json.loads(request_lines[-1])
    assert data.get("request_id") == "log-test-id"
    assert data.get("status_code") == 200
    assert data.get("path") == "/healthz"
    assert data.get("user_id") == "alice"
    assert data.get("is_error") is False


def test_sensitive_values_are_masked_in_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    buf_out = io.StringIO()
    buf_err = io.StringIO()
    secret = "sk-proj-1234567890"

    with redirect_stdout(buf_out), redirect_stderr(buf_err):
        import learncurve.logging as app_logging

        monkeypatch.setattr(app_logging.settings, "openai_api_key", secret)
        app_logging.configure_logging()
        app_logging.logger.warning(
            "embedding_failed",
            openai_api_key=secret,
            nested={"api_key": secret, "note": f"using {secret} now"},
            error=f"Incorrect API key provided: {secret}",
        )

    lines = _captured_lines(buf_out, buf_err)
    message_text = lines[-1] if lines else ""

    assert message_text, "log output missing"
    assert secret not in message_text

    data = json.loads(message_text)
    assert data.get("openai_api_key") == "sk-p…7890"
    assert data["nested"]["api_key"] == "sk-p…7890"
    assert "sk-p…7890" in data["nested"]["note"]
    assert secret not in data["error"]


def test_short_secrets_are_fully_masked() -> None:
    from learncurve.logging import _mask_secret_value

    assert _mask_secret_value("abc") == "***"
    assert _mask_secret_value(None) == "***"
