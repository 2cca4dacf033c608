# zkid/common/utils.py
import hashlib
import time


def now_ms():
    """Return current time in milliseconds as int."""
    return int(time.time() * 1000)


def sha256_hex(data: bytes) -> str:
    """Return SHA256(data) as hex string."""
    return hashlib.sha256(data).hexdigest()


def session_id(addr) -> str:
    """Build a per-connection id from the peer address and the current time."""
    host, port = addr[0], addr[1]
    return f"{host}_{port}_{now_ms()}"
