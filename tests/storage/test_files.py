import base64
import io
import os

import pytest
from unittest.mock import patch

from support_form.errors import UploadRejected
from support_form.settings import settings
from support_form.storage import files as storage

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture(autouse=True)
def upload_dir(tmp_path):
    with patch.object(settings, "UPLOAD_DIR", str(tmp_path / "uploads")):
        yield tmp_path / "uploads"


def test_safe_filename():
    assert storage.safe_filename("../../etc/passwd") == "passwd"
    assert storage.safe_filename("C:\\Users\\me\\shot 1.png") == "shot_1.png"
    assert storage.safe_filename("") == "upload"
    assert storage.safe_filename(None) == "upload"
    assert storage.safe_filename("...") == "upload"


@patch("support_form.storage.files.now_ms", return_value=1700000000000)
def test_save_stream_names_file_with_timestamp(_now, upload_dir):
    stored = storage.save_stream(io.BytesIO(b"hello"), "note.txt", "text/plain")
    assert stored.path == os.path.join(str(upload_dir), "1700000000000-note.txt")
    assert stored.filename == "note.txt"
    assert stored.contentType == "text/plain"
    assert stored.size == 5
    with open(stored.path, "rb") as f:
        assert f.read() == b"hello"


@patch("support_form.storage.files.now_ms", return_value=1700000000000)
def test_same_name_in_same_millisecond_gets_distinct_paths(_now, upload_dir):
    first = storage.save_stream(io.BytesIO(b"first-shot"), "image.png", "image/png")
    second = storage.save_stream(io.BytesIO(b"second"), "image.png", "image/png")
    # Both sanitise to a_b.png
    third = storage.save_stream(io.BytesIO(b"third"), "a b.png", "image/png")
    fourth = storage.save_stream(io.BytesIO(b"fourth"), "a_b.png", "image/png")

    paths = [first.path, second.path, third.path, fourth.path]
    assert len(set(paths)) == 4
    assert os.path.basename(first.path) == "1700000000000-image.png"
    assert os.path.basename(second.path) == "1700000000000-1-image.png"
    contents = []
    for p in paths:
        with open(p, "rb") as f:
            contents.append(f.read())
    assert contents == [b"first-shot", b"second", b"third", b"fourth"]


def test_save_stream_rereads_a_shared_stream():
    part = io.BytesIO(b"shared bytes")
    a = storage.save_stream(part, "a.png", "image/png")
    b = storage.save_stream(part, "a.png", "image/png")
    assert a.size == b.size == 12
    with open(b.path, "rb") as f:
        assert f.read() == b"shared bytes"


def test_save_stream_rejects_oversize_and_cleans_up(upload_dir):
    with patch.object(settings, "UPLOAD_CHUNK_BYTES", 4):
        with pytest.raises(UploadRejected) as exc:
            storage.save_stream(io.BytesIO(b"x" * 20), "big.bin", max_bytes=10)
    assert "less than" in exc.value.message
    assert os.listdir(upload_dir) == []


def test_decode_data_url():
    url = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()
    content_type, raw = storage.decode_data_url(url)
    assert content_type == "image/png"
    assert raw == PNG_BYTES


@pytest.mark.parametrize("bad", ["not a url", "data:image/png,rawtext", "data:image/png;base64,@@@"])
def test_decode_data_url_rejects(bad):
    with pytest.raises(UploadRejected):
        storage.decode_data_url(bad)


def test_save_data_url(upload_dir):
    url = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()
    stored = storage.save_data_url(url, "uiIssueFile", 1024, ("image/png",))
    assert stored.filename == "uiIssueFile.png"
    assert stored.size == len(PNG_BYTES)
    assert os.path.dirname(stored.path) == str(upload_dir)


def test_save_data_url_checks_limits(upload_dir):
    url = "data:application/pdf;base64," + base64.b64encode(b"%PDF").decode()
    with pytest.raises(UploadRejected, match="Only JPG, PNG, and GIF"):
        storage.save_data_url(url, "proposalFile", 1024, ("image/jpeg", "image/png", "image/gif"))

    big = "data:image/png;base64," + base64.b64encode(b"x" * 2048).decode()
    with pytest.raises(UploadRejected, match="File size"):
        storage.save_data_url(big, "proposalFile", 1024, ("image/png",))
    assert not upload_dir.exists() or os.listdir(upload_dir) == []


def test_to_data_url_round_trip(tmp_path):
    p = tmp_path / "a.png"
    p.write_bytes(PNG_BYTES)
    url = storage.to_data_url(str(p), "image/png")
    assert storage.decode_data_url(url) == ("image/png", PNG_BYTES)


def test_discard_only_inside_upload_dir(tmp_path):
    stored = storage.save_stream(io.BytesIO(b"data"), "a.txt")
    assert storage.discard(stored.to_dict()) is True
    assert not os.path.exists(stored.path)
    assert storage.discard(stored.to_dict()) is False

    outside = tmp_path / "keep.txt"
    outside.write_bytes(b"keep")
    assert storage.discard({"path": str(outside), "filename": "keep.txt"}) is False
    assert outside.exists()
