# zkid/crypto/keys.py
"""
Key material for the identification protocol.

 - KeyPair.from_seed(seed): demo derivation x = hash_to_scalar(seed), X = x*G
 - KeyPair.generate(): random key
 - load_public_key(hex) -> GroupElement
"""
from dataclasses import dataclass, field

from zkid.common.errors import InvalidHexLength, MalformedRecord
from zkid.crypto.group import (
    BASEPOINT,
    POINT_BYTES,
    GroupElement,
    Scalar,
    hash_to_scalar,
    point_from_bytes,
    random_scalar,
)

DEMO_SEED = b"demo-prover-secret"


@dataclass(frozen=True)
class KeyPair:
    secret: Scalar = field(repr=False)
    public: GroupElement

    @classmethod
    def from_seed(cls, seed: bytes = DEMO_SEED) -> "KeyPair":
        """Derive a key from a seed. Demo only; real secrets come from key storage."""
        x = hash_to_scalar(seed)
        return cls(secret=x, public=x * BASEPOINT)

    @classmethod
    def generate(cls) -> "KeyPair":
        x = random_scalar()
        return cls(secret=x, public=x * BASEPOINT)

    def public_hex(self) -> str:
        return self.public.hex()


def load_public_key(hex_str: str) -> GroupElement:
    """Parse a hex-encoded public key (as printed by the prover)."""
    hex_str = hex_str.strip()
    try:
        raw = bytes.fromhex(hex_str)
    except ValueError as e:
        raise MalformedRecord(f"public key is not hex: {e}") from e
    if len(raw) != POINT_BYTES:
        raise InvalidHexLength(f"public key must be {POINT_BYTES} bytes, got {len(raw)}")
    return point_from_bytes(raw)
