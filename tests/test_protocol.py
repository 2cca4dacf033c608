import json

import pytest

from zkid.common import protocol
from zkid.common.errors import (
    DecodeError,
    InvalidHexLength,
    InvalidPoint,
    MalformedRecord,
    ProtocolError,
    UnexpectedKind,
)
from zkid.common.protocol import Challenge, Commit, Response
from zkid.crypto.group import BASEPOINT, Scalar, random_scalar


def _line(kind, payload):
    return json.dumps({"kind": kind, "payload": payload})


class TestEncode:
    def test_commit_wire_form(self):
        point = random_scalar() * BASEPOINT
        line = protocol.encode(Commit(point))
        assert "\n" not in line
        assert json.loads(line) == {"kind": "commit", "payload": point.hex()}

    def test_payload_is_fixed_width_lowercase(self):
        # small scalar: leading zero bytes must still be emitted
        line = protocol.encode(Challenge(Scalar.from_int(10)))
        payload = json.loads(line)["payload"]
        assert payload == "0a" + "00" * 31
        assert payload == payload.lower()

    def test_deterministic(self):
        s = random_scalar()
        assert protocol.encode(Response(s)) == protocol.encode(Response(s))

    @pytest.mark.parametrize("cls", [Challenge, Response])
    def test_scalar_roundtrip(self, cls):
        s = random_scalar()
        decoded = protocol.decode(protocol.encode(cls(s)))
        assert decoded == cls(s)

    def test_commit_roundtrip(self):
        point = random_scalar() * BASEPOINT
        assert protocol.decode(protocol.encode(Commit(point))) == Commit(point)


class TestDecodeErrors:
    @pytest.mark.parametrize("line", [
        "",
        "not json",
        "[]",
        "{}",
        '{"kind": "commit"}',
        '{"payload": "' + "00" * 32 + '"}',
        _line("hello", "00" * 32),
        _line("commit", 42),
        json.dumps({"kind": "challenge", "payload": "00" * 32, "extra": 1}),
        _line("challenge", "zz" * 32),
        _line("challenge", "00 " * 21 + "0"),
    ])
    def test_malformed(self, line):
        with pytest.raises(MalformedRecord):
            protocol.decode(line)

    @pytest.mark.parametrize("payload", ["", "00" * 31, "00" * 33, "0" * 63])
    def test_wrong_length(self, payload):
        with pytest.raises(InvalidHexLength):
            protocol.decode(_line("response", payload))

    def test_commit_not_a_point(self):
        with pytest.raises(InvalidPoint):
            protocol.decode(_line("commit", "ff" * 32))

    def test_scalar_payload_is_reduced_not_rejected(self):
        msg = protocol.decode(_line("challenge", "ff" * 32))
        assert isinstance(msg, Challenge)

    def test_all_decode_errors_share_a_base(self):
        for exc in (MalformedRecord, InvalidHexLength, InvalidPoint):
            assert issubclass(exc, DecodeError)

    def test_uppercase_hex_accepted(self):
        s = random_scalar()
        msg = protocol.decode(_line("response", s.hex().upper()))
        assert msg == Response(s)


def test_expect():
    msg = Challenge(random_scalar())
    assert protocol.expect(msg, Challenge) is msg
    with pytest.raises(UnexpectedKind) as info:
        protocol.expect(msg, Commit)
    assert isinstance(info.value, ProtocolError)
    assert info.value.expected == "commit"
    assert info.value.got == "challenge"
