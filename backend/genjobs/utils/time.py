import time


def utc_now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def elapsed_since(started_at: float) -> int:
    return int(time.time() - started_at)
