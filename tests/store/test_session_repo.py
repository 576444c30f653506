import json
from unittest.mock import patch, MagicMock

from support_form.settings import settings
from support_form.store.models import FormSession, SubmissionRecord
from support_form.store.session_repo import (
    load_session,
    load_submission,
    new_session,
    save_session,
    save_submission,
)


def test_new_session_defaults():
    s = new_session("advanced")
    assert len(s.sessionId) == 32
    assert s.flowId == "advanced"
    assert s.status == "DRAFT"
    assert s.createdAtEpoch == s.lastUpdatedAtEpoch


@patch("support_form.store.session_repo.get_redis")
def test_save_session_sets_ttl(mock_get_redis):
    r = MagicMock()
    mock_get_redis.return_value = r
    s = FormSession(sessionId="abc", answers={"name": "Al"})

    save_session(s)

    key, raw = r.set.call_args[0]
    assert key == "form:abc"
    assert json.loads(raw)["answers"] == {"name": "Al"}
    assert r.set.call_args.kwargs["ex"] == int(settings.FORM_SESSION_TTL_SEC)
    assert s.lastUpdatedAtEpoch is not None


@patch("support_form.store.session_repo.get_redis")
def test_load_session_drops_unknown_fields(mock_get_redis):
    r = MagicMock()
    mock_get_redis.return_value = r
    r.get.return_value = json.dumps({
        "sessionId": "abc",
        "flowId": "support",
        "answers": {"email": "a@b.co"},
        "legacyStep": 3,
    })

    s = load_session("abc")
    assert s.sessionId == "abc"
    assert s.answers == {"email": "a@b.co"}
    assert s.files == {}
    r.get.assert_called_with("form:abc")


@patch("support_form.store.session_repo.get_redis")
def test_load_missing(mock_get_redis):
    r = MagicMock()
    mock_get_redis.return_value = r
    r.get.return_value = None
    assert load_session("nope") is None
    assert load_submission("nope") is None


@patch("support_form.store.session_repo.get_redis")
def test_submission_round_trip_keys(mock_get_redis):
    r = MagicMock()
    mock_get_redis.return_value = r
    record = SubmissionRecord(submissionId="s1", mutation="createSupportRequest", fields={"name": "Di"})

    save_submission(record)
    key, raw = r.set.call_args[0]
    assert key == "submission:s1"
    assert r.set.call_args.kwargs["ex"] == int(settings.SUBMISSION_TTL_DAYS) * 86400

    r.get.return_value = raw
    loaded = load_submission("s1")
    assert loaded == record


def test_redis_clients_share_a_pool():
    from support_form.store.redis_conn import get_redis

    with patch.object(settings, "REDIS_URL", "redis://localhost:6390/3"):
        a, b = get_redis(), get_redis()
        raw = get_redis(decode_responses=False)
    assert a.connection_pool is b.connection_pool
    assert raw.connection_pool is not a.connection_pool
    assert a.connection_pool.connection_kwargs["decode_responses"] is True
    assert a.connection_pool.connection_kwargs["db"] == 3
