# zkid/common/transport.py
"""
Line-framed byte streams between prover and verifier.

The engines only see LineStream: one text record per line, read and written
in order. SocketStream implements it over a TCP (optionally TLS) socket.
"""
import logging
import socket
import ssl
from abc import ABC, abstractmethod
from typing import Optional

from zkid.common.errors import TransportError

logger = logging.getLogger(__name__)

# longest record we accept; a protocol line is well under 100 bytes
MAX_LINE = 4096


class LineStream(ABC):
    @abstractmethod
    def read_line(self) -> Optional[str]:
        """Return the next line without its terminator, or None at end of stream."""

    @abstractmethod
    def write_line(self, line: str) -> None:
        """Write `line` plus a newline and flush."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class SocketStream(LineStream):
    def __init__(self, sock: socket.socket):
        self.sock = sock
        self._rfile = sock.makefile("rb")
        self._wfile = sock.makefile("wb")

    def read_line(self) -> Optional[str]:
        try:
            raw = self._rfile.readline(MAX_LINE + 1)
        except (OSError, ValueError) as e:
            raise TransportError(f"read failed: {e}") from e
        if not raw:
            return None
        if len(raw) > MAX_LINE:
            raise TransportError("line too long")
        if not raw.endswith(b"\n"):
            # peer closed mid-record
            return None
        try:
            return raw.rstrip(b"\r\n").decode("utf-8")
        except UnicodeDecodeError as e:
            raise TransportError("line is not valid UTF-8") from e

    def write_line(self, line: str) -> None:
        try:
            self._wfile.write(line.encode("utf-8") + b"\n")
            self._wfile.flush()
        except (OSError, ValueError) as e:
            raise TransportError(f"write failed: {e}") from e

    def close(self) -> None:
        for f in (self._rfile, self._wfile):
            try:
                f.close()
            except OSError:
                logger.debug("error closing stream file", exc_info=True)
        try:
            self.sock.close()
        except OSError:
            logger.debug("error closing socket", exc_info=True)


def connect(host: str, port: int, tls_context: Optional[ssl.SSLContext] = None,
            timeout: Optional[float] = None) -> SocketStream:
    """Open a connection to a verifier, wrapping it in TLS when a context is given."""
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
    except OSError as e:
        raise TransportError(f"connect to {host}:{port} failed: {e}") from e
    if tls_context is not None:
        try:
            sock = tls_context.wrap_socket(sock, server_hostname=host)
        except (OSError, ssl.SSLError) as e:
            sock.close()
            raise TransportError(f"TLS handshake with {host}:{port} failed: {e}") from e
    return SocketStream(sock)


def listen(host: str, port: int, backlog: int = 16) -> socket.socket:
    """Return a bound, listening TCP socket."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        s.bind((host, port))
        s.listen(backlog)
    except OSError:
        s.close()
        raise
    return s
