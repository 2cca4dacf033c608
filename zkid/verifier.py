# zkid/verifier.py
"""
Verifier side of the Schnorr identification exchange, and the server that
runs one isolated session per incoming connection.

    AWAITING_COMMIT --receive_commit--> CHALLENGE_SENT --challenge_delivered--> AWAITING_RESPONSE
    AWAITING_RESPONSE --receive_response--> VERIFIED | REJECTED
    any failure --> ABORTED

receive_commit hands the challenge to the caller (CHALLENGE_SENT); run() moves on to
AWAITING_RESPONSE once the challenge line has been written. receive_response also
accepts CHALLENGE_SENT so the engine can be stepped without a stream.
"""
import argparse
import enum
import logging
import socket
import sys
import threading

from zkid import config
from zkid.common import protocol
from zkid.common.errors import ProtocolError, TransportError, ZKIDError
from zkid.common.protocol import Challenge, Commit, Response
from zkid.common.transport import LineStream, SocketStream, listen
from zkid.common.utils import session_id
from zkid.crypto import pki
from zkid.crypto.group import BASEPOINT, GroupElement, random_scalar
from zkid.crypto.keys import KeyPair, load_public_key
from zkid.storage.transcript import Transcript, transcript_hash

logger = logging.getLogger(__name__)

ACCEPT_POLL = 0.5


class VerifierState(enum.Enum):
    AWAITING_COMMIT = "awaiting_commit"
    CHALLENGE_SENT = "challenge_sent"
    AWAITING_RESPONSE = "awaiting_response"
    VERIFIED = "verified"
    REJECTED = "rejected"
    ABORTED = "aborted"


class Outcome(enum.Enum):
    VERIFIED = "verified"
    REJECTED = "rejected"


class VerifierEngine:
    """
    One verifier session against the public key `public`.

    A rejected proof is a normal result (Outcome.REJECTED), not an exception.
    Decode, protocol and transport failures abort the session and propagate.
    """

    def __init__(self, public: GroupElement, challenge_source=random_scalar, transcript=None):
        self.public = public
        self.state = VerifierState.AWAITING_COMMIT
        self.error = None
        self._challenge_source = challenge_source
        self.transcript = transcript
        self.commitment = None
        self.challenge = None
        self.response = None

    def receive_commit(self, msg) -> Challenge:
        if self.state is not VerifierState.AWAITING_COMMIT:
            self._abort(ProtocolError(f"commit not expected in state {self.state.value}"))
        try:
            commit = protocol.expect(msg, Commit)
        except ProtocolError as e:
            self._abort(e)
        self.commitment = commit.point
        self._record(commit)

        self.challenge = self._challenge_source()
        self.state = VerifierState.CHALLENGE_SENT
        challenge = Challenge(self.challenge)
        self._record(challenge)
        return challenge

    def challenge_delivered(self):
        if self.state is not VerifierState.CHALLENGE_SENT:
            self._abort(ProtocolError(f"no challenge pending in state {self.state.value}"))
        self.state = VerifierState.AWAITING_RESPONSE

    def receive_response(self, msg) -> Outcome:
        if self.state not in (VerifierState.CHALLENGE_SENT, VerifierState.AWAITING_RESPONSE):
            self._abort(ProtocolError(f"response not expected in state {self.state.value}"))
        try:
            response = protocol.expect(msg, Response)
        except ProtocolError as e:
            self._abort(e)
        self.response = response.scalar
        self._record(response)

        # s*G == R + c*X
        left = self.response * BASEPOINT
        right = self.commitment + self.challenge * self.public
        if left == right:
            self.state = VerifierState.VERIFIED
            outcome = Outcome.VERIFIED
        else:
            self.state = VerifierState.REJECTED
            outcome = Outcome.REJECTED
        if self.transcript is not None:
            self.transcript.append("result", outcome.value)
        return outcome

    def run(self, stream: LineStream) -> Outcome:
        """Drive the whole exchange over `stream`."""
        try:
            commit = self._read(stream, "commitment")
            logger.info("received %s %s", commit.kind, protocol.payload_hex(commit))

            challenge = self.receive_commit(commit)
            stream.write_line(protocol.encode(challenge))
            self.challenge_delivered()
            logger.info("sent challenge c=%s", challenge.scalar.hex())

            response = self._read(stream, "response")
            logger.info("received %s %s", response.kind, protocol.payload_hex(response))
            return self.receive_response(response)
        except ZKIDError as e:
            if self.state is not VerifierState.ABORTED:
                self._abort(e, raise_=False)
            raise

    def _read(self, stream, what):
        line = stream.read_line()
        if line is None:
            raise TransportError(f"connection closed before receiving {what}")
        return protocol.decode(line)

    def _record(self, msg):
        if self.transcript is not None:
            self.transcript.record(msg)

    def _abort(self, err, raise_=True):
        self.state = VerifierState.ABORTED
        self.error = err
        if self.transcript is not None:
            self.transcript.append("aborted", type(err).__name__)
        if raise_:
            raise err


class VerifierServer:
    """
    Accept loop: each connection gets its own thread and its own VerifierEngine.
    Sessions share nothing mutable except the counters below, which are
    guarded by a lock and only used for reporting.
    """

    def __init__(self, host, port, public: GroupElement, tls_context=None, timeout=None,
                 transcript_dir=None, max_sessions=None):
        self.public = public
        self.tls_context = tls_context
        self.timeout = timeout
        self.transcript_dir = transcript_dir or None
        self.max_sessions = max_sessions
        self._sock = listen(host, port)
        # wake up periodically so shutdown() from another thread is noticed
        self._sock.settimeout(ACCEPT_POLL)
        self.server_address = self._sock.getsockname()
        self._closed = threading.Event()
        self._threads = []
        self._lock = threading.Lock()
        self.results = {"verified": 0, "rejected": 0, "aborted": 0}

    def serve_forever(self):
        logger.info("verifier listening on %s:%s", *self.server_address[:2])
        accepted = 0
        try:
            while not self._closed.is_set():
                if self.max_sessions is not None and accepted >= self.max_sessions:
                    break
                try:
                    conn, addr = self._sock.accept()
                except socket.timeout:
                    continue
                except OSError:
                    if self._closed.is_set():
                        break
                    raise
                accepted += 1
                logger.info("connection from %s:%s", addr[0], addr[1])
                t = threading.Thread(target=self.handle_connection, args=(conn, addr), daemon=True)
                self._threads = [th for th in self._threads if th.is_alive()]
                self._threads.append(t)
                t.start()
        finally:
            self.join()
            self.shutdown()

    def join(self, timeout=None):
        for t in list(self._threads):
            t.join(timeout)

    def shutdown(self):
        if not self._closed.is_set():
            self._closed.set()
            try:
                self._sock.close()
            except OSError:
                logger.debug("error closing listener", exc_info=True)

    def handle_connection(self, conn, addr):
        sid = session_id(addr)
        try:
            conn.settimeout(self.timeout)
            if self.tls_context is not None:
                try:
                    conn = self.tls_context.wrap_socket(conn, server_side=True)
                except OSError as e:
                    raise TransportError(f"TLS handshake failed: {e}") from e
            transcript = Transcript(self.transcript_dir, sid) if self.transcript_dir else None
            with SocketStream(conn) as stream:
                outcome = VerifierEngine(self.public, transcript=transcript).run(stream)
            if outcome is Outcome.VERIFIED:
                logger.info("[%s] proof VERIFIED: s*G = R + c*X", sid)
            else:
                logger.warning("[%s] proof REJECTED: s*G != R + c*X", sid)
            if transcript is not None:
                logger.debug("[%s] transcript %s sha256=%s", sid, transcript.path,
                             transcript_hash(transcript.path))
            self._count(outcome.value)
            return outcome
        except ZKIDError as e:
            logger.warning("[%s] session aborted: %s: %s", sid, type(e).__name__, e)
            self._count("aborted")
        except Exception:
            logger.exception("[%s] unexpected error in session", sid)
            self._count("aborted")
        finally:
            try:
                conn.close()
            except OSError:
                pass
        return None

    def _count(self, key):
        with self._lock:
            self.results[key] += 1


def resolve_public_key(public_hex=None, seed=config.SEED) -> GroupElement:
    """
    The verifier's X: the given hex public key, or else the one derived from the
    demo seed (the demo shares the seed with the prover).
    """
    if public_hex:
        return load_public_key(public_hex)
    logger.warning("no public key configured; deriving X from the demo seed")
    return KeyPair.from_seed(seed.encode()).public


def main(argv=None):
    parser = argparse.ArgumentParser(description="Verify provers' knowledge of a discrete log")
    parser.add_argument("--host", default=config.HOST)
    parser.add_argument("--port", type=int, default=config.PORT)
    parser.add_argument("--public-key", default=config.PUBLIC_KEY, help="hex-encoded X")
    parser.add_argument("--seed", default=config.SEED, help="demo seed used when no --public-key")
    parser.add_argument("--tls", action="store_true", default=config.TLS)
    parser.add_argument("--cert", default=config.SERVER_CERT)
    parser.add_argument("--key", default=config.SERVER_KEY)
    parser.add_argument("--timeout", type=float, default=config.TIMEOUT)
    parser.add_argument("--transcript-dir", default=config.TRANSCRIPT_DIR)
    parser.add_argument("--max-sessions", type=int, default=None)
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format=config.LOG_FORMAT)

    try:
        public = resolve_public_key(args.public_key, args.seed)
        ctx = pki.server_context(args.cert, args.key) if args.tls else None
        server = VerifierServer(args.host, args.port, public, tls_context=ctx,
                                timeout=args.timeout, transcript_dir=args.transcript_dir,
                                max_sessions=args.max_sessions)
    except (ZKIDError, OSError) as e:
        logger.error("cannot start verifier: %s", e)
        return 1
    logger.info("expected public key X=%s", public.hex())
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("shutting down")
        server.shutdown()
    logger.info("sessions: %s", server.results)
    return 0


if __name__ == "__main__":
    sys.exit(main())
