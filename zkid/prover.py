# zkid/prover.py
"""
Prover side of the Schnorr identification exchange.

    INIT --commit()--> COMMIT_SENT --respond(challenge)--> DONE
    any failure ----------------------------------------> ABORTED

Only R = k*G and s = k + c*x leave this module; k and x are never sent or logged.
"""
import argparse
import enum
import logging
import sys

from zkid import config
from zkid.common import protocol
from zkid.common.errors import ProtocolError, TransportError, ZKIDError
from zkid.common.protocol import Challenge, Commit, Response
from zkid.common.transport import LineStream, connect
from zkid.crypto import pki
from zkid.crypto.group import BASEPOINT, random_scalar
from zkid.crypto.keys import KeyPair

logger = logging.getLogger(__name__)


class ProverState(enum.Enum):
    INIT = "init"
    COMMIT_SENT = "commit_sent"
    DONE = "done"
    ABORTED = "aborted"


class ProverEngine:
    """
    One prover session. Build a new engine per connection; a finished engine
    (DONE or ABORTED) cannot be reused.

    `nonce_source` returns the one-time nonce k; it defaults to the CSPRNG and
    is only overridden in tests.
    """

    def __init__(self, keypair: KeyPair, nonce_source=random_scalar):
        self.keypair = keypair
        self.state = ProverState.INIT
        self.error = None
        self._nonce_source = nonce_source
        self._k = None
        self.commitment = None
        self.challenge = None
        self.response = None

    def commit(self) -> Commit:
        if self.state is not ProverState.INIT:
            self._abort(ProtocolError(f"commit not allowed in state {self.state.value}"))
        self._k = self._nonce_source()
        self.commitment = self._k * BASEPOINT
        self.state = ProverState.COMMIT_SENT
        return Commit(self.commitment)

    def respond(self, msg) -> Response:
        if self.state is not ProverState.COMMIT_SENT:
            self._abort(ProtocolError(f"response not allowed in state {self.state.value}"))
        try:
            challenge = protocol.expect(msg, Challenge)
        except ProtocolError as e:
            self._abort(e)
        self.challenge = challenge.scalar
        self.response = self._k + self.challenge * self.keypair.secret
        # the nonce is single-use
        self._k = None
        self.state = ProverState.DONE
        return Response(self.response)

    def run(self, stream: LineStream) -> Response:
        """Drive the whole exchange over `stream`. Raises on any failure."""
        try:
            commit = self.commit()
            stream.write_line(protocol.encode(commit))
            logger.info("sent commit R=%s", commit.point.hex())

            line = stream.read_line()
            if line is None:
                raise TransportError("connection closed before challenge")
            msg = protocol.decode(line)
            logger.info("received %s %s", msg.kind, protocol.payload_hex(msg))

            response = self.respond(msg)
            stream.write_line(protocol.encode(response))
            logger.info("sent response s=%s", response.scalar.hex())
            return response
        except ZKIDError as e:
            if self.state is not ProverState.ABORTED:
                self._abort(e, raise_=False)
            raise

    def _abort(self, err, raise_=True):
        self.state = ProverState.ABORTED
        self.error = err
        self._k = None
        if raise_:
            raise err


def prove(host, port, keypair: KeyPair, tls_context=None, timeout=None,
          nonce_source=random_scalar) -> Response:
    """Connect to a verifier and run one identification session."""
    with connect(host, port, tls_context=tls_context, timeout=timeout) as stream:
        fp = pki.peer_fingerprint_hex(stream.sock)
        if fp:
            logger.info("verifier certificate sha256=%s", fp)
        return ProverEngine(keypair, nonce_source=nonce_source).run(stream)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Prove knowledge of a discrete log to a verifier")
    parser.add_argument("--host", default=config.HOST)
    parser.add_argument("--port", type=int, default=config.PORT)
    parser.add_argument("--seed", default=config.SEED, help="demo secret seed")
    parser.add_argument("--tls", action="store_true", default=config.TLS)
    parser.add_argument("--ca-cert", default=config.CA_CERT)
    parser.add_argument("--timeout", type=float, default=config.TIMEOUT)
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format=config.LOG_FORMAT)

    keypair = KeyPair.from_seed(args.seed.encode())
    logger.info("public key X=%s", keypair.public_hex())
    try:
        ctx = pki.client_context(args.ca_cert) if args.tls else None
        prove(args.host, args.port, keypair, tls_context=ctx, timeout=args.timeout)
    except (ZKIDError, OSError) as e:
        logger.error("identification failed: %s", e)
        return 1
    logger.info("exchange complete; the verdict is reported by the verifier")
    return 0


if __name__ == "__main__":
    sys.exit(main())
