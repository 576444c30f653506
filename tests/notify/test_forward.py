import httpx
import pytest
from unittest.mock import patch, MagicMock

from support_form.notify.client import build_forward_payload, forward_submission
from support_form.settings import settings
from support_form.store.models import SubmissionRecord


def _record(**kw):
    base = dict(
        submissionId="s1",
        mutation="uploadSupportRequest",
        status="QUEUED",
        fields={"name": "Al", "email": "al@example.com"},
        files=[{"path": "/srv/uploads/1-a.png", "filename": "a.png", "contentType": "image/png", "size": 3}],
        receivedAtMs=1700000000000,
    )
    base.update(kw)
    return SubmissionRecord(**base)


@pytest.fixture(autouse=True)
def webhook():
    with patch.object(settings, "SUPPORT_WEBHOOK_URL", "https://desk.example/hook"):
        yield


def test_forward_payload_has_no_paths():
    payload = build_forward_payload(_record())
    assert payload["attachments"] == [{"filename": "a.png", "contentType": "image/png", "size": 3}]
    assert payload["fields"]["name"] == "Al"
    assert "/srv" not in str(payload)


@patch("support_form.notify.client.metrics")
@patch("support_form.notify.client.save_submission")
@patch("support_form.notify.client.load_submission")
@patch("httpx.Client.post")
def test_forward_success(mock_post, mock_load, mock_save, mock_metrics):
    record = _record()
    mock_load.return_value = record
    mock_post.return_value = MagicMock(status_code=202)

    assert forward_submission("s1") is True
    assert record.status == "FORWARDED"
    assert record.forwardAttempts == 1
    _, kwargs = mock_post.call_args
    assert kwargs["headers"] == {"Idempotency-Key": "s1"}
    assert kwargs["json"]["submissionId"] == "s1"
    mock_save.assert_called_once_with(record)
    mock_metrics.increment_forward.assert_called_once_with(True)


@patch("support_form.notify.client.metrics")
@patch("support_form.notify.client.save_submission")
@patch("support_form.notify.client.load_submission")
@patch("httpx.Client.post")
def test_forward_http_error_status(mock_post, mock_load, mock_save, mock_metrics):
    record = _record()
    mock_load.return_value = record
    mock_post.return_value = MagicMock(status_code=500, text="boom")

    with pytest.raises(RuntimeError, match="500"):
        forward_submission("s1")
    assert record.status == "FORWARD_FAILED"
    assert record.lastForwardError == "HTTP 500"
    mock_metrics.increment_forward.assert_called_once_with(False)


@patch("support_form.notify.client.metrics")
@patch("support_form.notify.client.save_submission")
@patch("support_form.notify.client.load_submission")
@patch("httpx.Client.post")
def test_forward_network_error(mock_post, mock_load, mock_save, mock_metrics):
    record = _record()
    mock_load.return_value = record
    mock_post.side_effect = httpx.ConnectError("refused")

    with pytest.raises(httpx.ConnectError):
        forward_submission("s1")
    assert record.status == "FORWARD_FAILED"
    assert record.lastForwardError.startswith("ConnectError")
    mock_save.assert_called_once_with(record)


@patch("support_form.notify.client.load_submission")
@patch("httpx.Client.post")
def test_forward_skips_done_and_missing(mock_post, mock_load):
    mock_load.return_value = _record(status="FORWARDED")
    assert forward_submission("s1") is True

    mock_load.return_value = None
    assert forward_submission("gone") is False
    mock_post.assert_not_called()


def test_forward_requires_webhook():
    with patch.object(settings, "SUPPORT_WEBHOOK_URL", ""):
        with pytest.raises(RuntimeError):
            forward_submission("s1")
