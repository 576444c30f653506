import time


def now_ms() -> int:
    """Epoch milliseconds; upload filenames and submission records use this."""
    return int(time.time() * 1000)


def now_epoch() -> int:
    return int(time.time())
