from unittest.mock import patch, MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from support_form.core.submission import record_submission
from support_form.queue.jobs import forward_submission_job
from support_form.settings import settings
from support_form.store.models import StoredFile


@patch("support_form.core.submission.metrics")
@patch("support_form.core.submission.get_queue")
@patch("support_form.core.submission.save_submission")
def test_record_without_forwarding(mock_save, mock_queue, mock_metrics):
    with patch.object(settings, "SUPPORT_WEBHOOK_URL", ""):
        record = record_submission(
            "uploadSupportRequest",
            {"name": "Al", "files": [{"path": "/x"}]},
            [StoredFile(path="/u/1-a.png", filename="a.png", contentType="image/png", size=10)],
        )

    assert record.status == "RECEIVED"
    assert record.fields == {"name": "Al"}
    assert record.files == [{"path": "/u/1-a.png", "filename": "a.png", "contentType": "image/png", "size": 10}]
    assert record.receivedAtMs > 0
    mock_save.assert_called_once_with(record)
    mock_queue.assert_not_called()
    mock_metrics.record_submission.assert_called_once_with("uploadSupportRequest", 1, 10)


@patch("support_form.core.submission.metrics")
@patch("support_form.core.submission.get_queue")
@patch("support_form.core.submission.save_submission")
def test_record_queues_forward(mock_save, mock_queue, mock_metrics):
    q = MagicMock()
    mock_queue.return_value = q
    calls = []
    mock_save.side_effect = lambda r: calls.append("save")
    q.enqueue.side_effect = lambda *a, **kw: calls.append("enqueue")

    with patch.object(settings, "SUPPORT_WEBHOOK_URL", "https://desk.example/hook"), \
         patch.object(settings, "ENABLE_FORWARDING", True):
        record = record_submission("createSupportRequest", {"name": "Di"}, [])

    assert record.status == "QUEUED"
    assert calls == ["save", "enqueue"]
    args, kwargs = q.enqueue.call_args
    assert args == (forward_submission_job, record.submissionId)
    assert kwargs["retry"].max == 3


@patch("support_form.core.submission.log")
@patch("support_form.core.submission.metrics")
@patch("support_form.core.submission.save_submission")
def test_record_survives_redis_outage(mock_save, mock_metrics, mock_log):
    mock_save.side_effect = RedisConnectionError("down")
    with patch.object(settings, "SUPPORT_WEBHOOK_URL", ""):
        record = record_submission("uploadSupportRequest", {"name": "Al"})

    assert record.submissionId
    mock_metrics.record_submission.assert_not_called()
    events = [c.kwargs.get("event") for c in mock_log.call_args_list]
    assert events == ["support_request_submitted", "submission_record_failed"]
