import json

import pytest

from zkid.common import protocol
from zkid.common.errors import ProtocolError, UnexpectedKind
from zkid.common.protocol import Challenge, Commit, Response
from zkid.crypto.group import BASEPOINT, IDENTITY, Scalar, hash_to_scalar, random_scalar
from zkid.crypto.keys import KeyPair
from zkid.prover import ProverEngine, ProverState
from zkid.verifier import Outcome, VerifierEngine, VerifierState

FIXED_NONCE = Scalar.from_int(0x1F2E3D4C5B6A798811223344556677889900AABBCCDDEEFF)
FIXED_CHALLENGE = Scalar.from_int(0x0123456789ABCDEF0123456789ABCDEF0123456789ABCDEF)


def exchange(keypair, public=None, nonce=None, challenge=None):
    """Run both engines in memory through the wire codec and return them."""
    prover = ProverEngine(keypair, **({"nonce_source": lambda: nonce} if nonce is not None else {}))
    verifier = VerifierEngine(public or keypair.public,
                              **({"challenge_source": lambda: challenge} if challenge is not None else {}))
    commit = protocol.decode(protocol.encode(prover.commit()))
    ch = protocol.decode(protocol.encode(verifier.receive_commit(commit)))
    resp = protocol.decode(protocol.encode(prover.respond(ch)))
    outcome = verifier.receive_response(resp)
    return prover, verifier, outcome


class TestCompleteness:
    def test_random_keys_nonces_challenges(self):
        for _ in range(10):
            prover, verifier, outcome = exchange(KeyPair.generate())
            assert outcome is Outcome.VERIFIED
            assert prover.state is ProverState.DONE
            assert verifier.state is VerifierState.VERIFIED

    def test_zero_nonce_and_challenge(self, keypair):
        zero = Scalar.from_int(0)
        prover = ProverEngine(keypair, nonce_source=lambda: zero)
        verifier = VerifierEngine(keypair.public, challenge_source=lambda: zero)
        commit = protocol.decode(protocol.encode(prover.commit()))
        assert commit.point == IDENTITY
        ch = verifier.receive_commit(commit)
        assert verifier.receive_response(prover.respond(ch)) is Outcome.VERIFIED

    def test_independent_keys_coexist(self):
        a, b = KeyPair.from_seed(b"alice"), KeyPair.from_seed(b"bob")
        assert exchange(a)[2] is Outcome.VERIFIED
        assert exchange(b)[2] is Outcome.VERIFIED
        assert exchange(a, public=b.public)[2] is Outcome.REJECTED


class TestDemoExample:
    def test_fixed_values_verify(self, keypair):
        x = hash_to_scalar(b"demo-prover-secret")
        assert keypair.secret == x
        assert keypair.public == x * BASEPOINT

        prover, verifier, outcome = exchange(keypair, nonce=FIXED_NONCE, challenge=FIXED_CHALLENGE)
        assert prover.commitment == FIXED_NONCE * BASEPOINT
        assert prover.response == FIXED_NONCE + FIXED_CHALLENGE * x

        left = prover.response * BASEPOINT
        right = prover.commitment + FIXED_CHALLENGE * keypair.public
        assert left == right
        assert outcome is Outcome.VERIFIED

    def test_single_bit_flip_rejected(self, keypair):
        prover = ProverEngine(keypair, nonce_source=lambda: FIXED_NONCE)
        verifier = VerifierEngine(keypair.public, challenge_source=lambda: FIXED_CHALLENGE)
        ch = verifier.receive_commit(prover.commit())
        line = protocol.encode(prover.respond(ch))

        record = json.loads(line)
        raw = bytearray.fromhex(record["payload"])
        raw[0] ^= 0x01
        record["payload"] = raw.hex()
        tampered = protocol.decode(json.dumps(record))

        assert verifier.receive_response(tampered) is Outcome.REJECTED
        assert verifier.state is VerifierState.REJECTED


def test_random_response_is_rejected(keypair):
    # a prover without x: honest R and c, but s is a guess
    for _ in range(20):
        verifier = VerifierEngine(keypair.public)
        verifier.receive_commit(Commit(random_scalar() * BASEPOINT))
        assert verifier.receive_response(Response(random_scalar())) is Outcome.REJECTED


class TestProverStateMachine:
    def test_rejects_non_challenge(self, keypair):
        prover = ProverEngine(keypair)
        prover.commit()
        with pytest.raises(ProtocolError, match="expected challenge"):
            prover.respond(Commit(BASEPOINT))
        assert prover.state is ProverState.ABORTED

    def test_respond_before_commit(self, keypair):
        prover = ProverEngine(keypair)
        with pytest.raises(ProtocolError):
            prover.respond(Challenge(random_scalar()))
        assert prover.state is ProverState.ABORTED

    def test_cannot_commit_twice(self, keypair):
        prover = ProverEngine(keypair)
        prover.commit()
        with pytest.raises(ProtocolError):
            prover.commit()

    def test_nonce_is_fresh_and_discarded(self, keypair):
        first, second = ProverEngine(keypair), ProverEngine(keypair)
        assert first.commit() != second.commit()
        first.respond(Challenge(random_scalar()))
        assert first._k is None

    def test_secret_never_emitted(self, keypair):
        prover = ProverEngine(keypair, nonce_source=lambda: FIXED_NONCE)
        lines = [protocol.encode(prover.commit())]
        lines.append(protocol.encode(prover.respond(Challenge(FIXED_CHALLENGE))))
        for line in lines:
            assert keypair.secret.hex() not in line
            assert FIXED_NONCE.hex() not in line


class TestVerifierStateMachine:
    def test_response_instead_of_commit(self, keypair):
        verifier = VerifierEngine(keypair.public)
        with pytest.raises(UnexpectedKind):
            verifier.receive_commit(Response(random_scalar()))
        assert verifier.state is VerifierState.ABORTED

    def test_commit_instead_of_response(self, keypair):
        verifier = VerifierEngine(keypair.public)
        verifier.receive_commit(Commit(BASEPOINT))
        with pytest.raises(UnexpectedKind):
            verifier.receive_response(Commit(BASEPOINT))
        assert verifier.state is VerifierState.ABORTED

    def test_response_before_commit(self, keypair):
        verifier = VerifierEngine(keypair.public)
        with pytest.raises(ProtocolError):
            verifier.receive_response(Response(random_scalar()))

    def test_challenges_are_fresh(self, keypair):
        seen = set()
        for _ in range(8):
            ch = VerifierEngine(keypair.public).receive_commit(Commit(BASEPOINT))
            seen.add(ch.scalar)
        assert len(seen) == 8

    def test_state_after_challenge(self, keypair):
        verifier = VerifierEngine(keypair.public, challenge_source=lambda: FIXED_CHALLENGE)
        ch = verifier.receive_commit(Commit(BASEPOINT))
        assert ch == Challenge(FIXED_CHALLENGE)
        assert verifier.state is VerifierState.CHALLENGE_SENT
        verifier.challenge_delivered()
        assert verifier.state is VerifierState.AWAITING_RESPONSE

    def test_challenge_delivered_without_challenge(self, keypair):
        verifier = VerifierEngine(keypair.public)
        with pytest.raises(ProtocolError):
            verifier.challenge_delivered()
        assert verifier.state is VerifierState.ABORTED
