import base64
import binascii
import os
import re
from typing import BinaryIO, Iterable, Optional

from support_form.errors import UploadRejected
from support_form.flow.validators import check_file, file_size_message
from support_form.observability.logging import log
from support_form.settings import settings
from support_form.store.models import StoredFile
from support_form.utils.time import now_ms

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^;,]+)*?);base64,(?P<data>.*)$", re.S)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/webm": "webm",
    "application/pdf": "pdf",
}


def upload_dir() -> str:
    return os.path.abspath(settings.UPLOAD_DIR)


def ensure_upload_dir() -> str:
    d = upload_dir()
    os.makedirs(d, exist_ok=True)
    return d


def safe_filename(filename: Optional[str]) -> str:
    """Basename only, with anything outside [A-Za-z0-9._-] collapsed to '_'."""
    name = os.path.basename((filename or "").replace("\\", "/"))
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "upload"


def _open_unique(filename: str):
    """
    Create <UPLOAD_DIR>/<epoch-ms>-<name> exclusively; on a clash (same name in
    the same millisecond) fall back to <epoch-ms>-<n>-<name>.
    Returns (path, binary handle).
    """
    d = ensure_upload_dir()
    prefix = now_ms()
    name = safe_filename(filename)
    n = 0
    while True:
        base = f"{prefix}-{name}" if n == 0 else f"{prefix}-{n}-{name}"
        path = os.path.join(d, base)
        try:
            return path, open(path, "xb")
        except FileExistsError:
            n += 1


def save_stream(
    stream: BinaryIO,
    filename: Optional[str],
    content_type: Optional[str] = None,
    max_bytes: Optional[int] = None,
) -> StoredFile:
    """
    Copy a readable binary stream to <UPLOAD_DIR>/<epoch-ms>-<filename>.

    The copy is chunked and aborted as soon as max_bytes is exceeded; the
    partial file is removed before UploadRejected is raised.
    """
    limit = int(max_bytes if max_bytes is not None else settings.UPLOAD_MAX_FILE_BYTES)
    chunk_size = int(settings.UPLOAD_CHUNK_BYTES)
    # The same part may be mapped to several variables; always copy from the start
    seekable = getattr(stream, "seekable", lambda: hasattr(stream, "seek"))
    if seekable():
        stream.seek(0)

    path, handle = _open_unique(filename or "upload")
    written = 0
    try:
        with handle as out:
            while True:
                chunk = stream.read(chunk_size)
                if not chunk:
                    break
                written += len(chunk)
                if limit and written > limit:
                    raise UploadRejected(file_size_message(limit), filename=filename or "")
                out.write(chunk)
    except BaseException:
        if os.path.exists(path):
            os.remove(path)
        raise

    stored = StoredFile(
        path=path,
        filename=filename or os.path.basename(path),
        contentType=content_type or "application/octet-stream",
        size=written,
    )
    log(event="file_saved", filename=stored.filename, contentType=stored.contentType, size=written)
    return stored


def decode_data_url(data_url: str):
    """Split a base64 data URL into (content_type, bytes)."""
    m = _DATA_URL_RE.match((data_url or "").strip())
    if not m:
        raise UploadRejected("File must be a base64 data URL.")
    try:
        raw = base64.b64decode(m.group("data"), validate=True)
    except (binascii.Error, ValueError):
        raise UploadRejected("File is not valid base64 data.")
    return (m.group("mime") or "application/octet-stream").lower(), raw


def save_data_url(
    data_url: str,
    field_name: str,
    max_bytes: int,
    accept: Iterable[str] = (),
) -> StoredFile:
    content_type, raw = decode_data_url(data_url)
    err = check_file(len(raw), content_type, max_bytes, accept)
    if err:
        raise UploadRejected(err, filename=field_name)

    ext = _EXTENSIONS.get(content_type, "bin")
    filename = f"{field_name}.{ext}"
    path, handle = _open_unique(filename)
    with handle as out:
        out.write(raw)
    log(event="file_saved", filename=filename, contentType=content_type, size=len(raw))
    return StoredFile(path=path, filename=filename, contentType=content_type, size=len(raw))


def to_data_url(path: str, content_type: str) -> str:
    with open(path, "rb") as f:
        encoded = base64.b64encode(f.read()).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


def discard(stored: dict) -> bool:
    """Delete a stored file, but only when it lives under the upload dir."""
    path = os.path.abspath(stored.get("path") or "")
    if not path.startswith(upload_dir() + os.sep):
        return False
    if os.path.exists(path):
        os.remove(path)
        log(event="file_discarded", filename=stored.get("filename"))
        return True
    return False
