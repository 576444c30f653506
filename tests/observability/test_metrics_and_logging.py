import json
from unittest.mock import patch, MagicMock

import support_form.observability.metrics as metrics
from support_form.observability.logging import log
from support_form.settings import settings


@patch("support_form.observability.metrics.get_redis")
def test_record_submission_counters(mock_get_redis):
    r = MagicMock()
    mock_get_redis.return_value = r

    metrics.record_submission("uploadSupportRequest", 2, 300)

    r.incr.assert_any_call(metrics.K_SUBMISSIONS, 1)
    r.incr.assert_any_call(metrics.K_FILES_SAVED, 2)
    r.incr.assert_any_call(metrics.K_BYTES_SAVED, 300)
    r.hincrby.assert_called_once_with(metrics.K_SUBMISSIONS_BY_MUTATION, "uploadSupportRequest", 1)


@patch("support_form.observability.metrics.get_redis")
def test_stats_snapshot(mock_get_redis):
    r = MagicMock()
    mock_get_redis.return_value = r
    values = {metrics.K_SUBMISSIONS: "5", metrics.K_FORWARD_FAIL: "oops"}
    r.get.side_effect = lambda k: values.get(k)
    r.hgetall.return_value = {"createSupportRequest": "3"}

    snap = metrics.get_stats_snapshot()
    assert snap["submissions"] == 5
    assert snap["submissionsByMutation"] == {"createSupportRequest": 3}
    assert snap["forwardFailed"] == 0
    assert snap["filesSaved"] == 0


def test_log_redacts_personal_fields(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", True):
        log("support_request_submitted", submissionId="s1", fields={"email": "al@example.com", "typeOfIssue": "other"})
    line = json.loads(capsys.readouterr().out)
    assert line["event"] == "support_request_submitted"
    assert line["submissionId"] == "s1"
    assert line["fields"]["email"] == "[REDACTED:14chars]"
    assert line["fields"]["typeOfIssue"] == "other"


def test_log_plain_when_redaction_off(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", False):
        log("x", email="al@example.com")
    assert json.loads(capsys.readouterr().out)["email"] == "al@example.com"
