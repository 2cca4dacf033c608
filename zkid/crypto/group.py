# zkid/crypto/group.py
"""
Scalar and group-element arithmetic for the prime-order subgroup of edwards25519.
Points use the compressed edwards25519 encoding, not ristretto255, so commitments
and public keys do not interoperate with ristretto255-based peers.

Thin wrappers around libsodium (via nacl.bindings). Exports:
 - GROUP_ORDER, BASEPOINT, IDENTITY
 - Scalar, GroupElement
 - scalar_from_bytes / scalar_to_bytes
 - point_from_bytes / point_to_bytes
 - hash_to_scalar(seed) -> Scalar
 - random_scalar() -> Scalar
"""
import hashlib

import nacl.bindings
import nacl.utils

from zkid.common.errors import InvalidPoint

# order L of the prime-order subgroup
GROUP_ORDER = 2**252 + 27742317777372353535851937790883648493

SCALAR_BYTES = 32
POINT_BYTES = 32

_ZERO = b"\x00" * SCALAR_BYTES
# compressed (x=0, y=1)
_IDENTITY_BYTES = b"\x01" + b"\x00" * (POINT_BYTES - 1)


class Scalar:
    """Integer modulo GROUP_ORDER, stored as its canonical 32-byte little-endian form."""

    __slots__ = ("_b",)

    def __init__(self, canonical: bytes):
        if len(canonical) != SCALAR_BYTES:
            raise ValueError("scalar must be 32 bytes")
        self._b = bytes(canonical)

    @classmethod
    def from_int(cls, n: int) -> "Scalar":
        return cls((n % GROUP_ORDER).to_bytes(SCALAR_BYTES, "little"))

    def __int__(self):
        return int.from_bytes(self._b, "little")

    def __bytes__(self):
        return self._b

    def hex(self) -> str:
        return self._b.hex()

    def is_zero(self) -> bool:
        return self._b == _ZERO

    def __add__(self, other):
        if not isinstance(other, Scalar):
            return NotImplemented
        return Scalar(nacl.bindings.crypto_core_ed25519_scalar_add(self._b, other._b))

    def __mul__(self, other):
        if not isinstance(other, Scalar):
            # Scalar * GroupElement is handled by GroupElement.__rmul__
            return NotImplemented
        return Scalar(nacl.bindings.crypto_core_ed25519_scalar_mul(self._b, other._b))

    def __eq__(self, other):
        if not isinstance(other, Scalar):
            return NotImplemented
        return self._b == other._b

    def __hash__(self):
        return hash(("scalar", self._b))

    def __repr__(self):
        return f"Scalar({self.hex()})"


class GroupElement:
    """Point of the prime-order subgroup, stored as its canonical compressed encoding."""

    __slots__ = ("_b",)

    def __init__(self, encoded: bytes):
        # callers outside this module go through point_from_bytes
        self._b = bytes(encoded)

    def __bytes__(self):
        return self._b

    def hex(self) -> str:
        return self._b.hex()

    def is_identity(self) -> bool:
        return self._b == _IDENTITY_BYTES

    def __add__(self, other):
        if not isinstance(other, GroupElement):
            return NotImplemented
        if self.is_identity():
            return other
        if other.is_identity():
            return self
        return GroupElement(nacl.bindings.crypto_core_ed25519_add(self._b, other._b))

    def __mul__(self, scalar):
        if not isinstance(scalar, Scalar):
            return NotImplemented
        # libsodium refuses to produce the identity, so short-circuit those cases
        if scalar.is_zero() or self.is_identity():
            return IDENTITY
        if self is BASEPOINT:
            out = nacl.bindings.crypto_scalarmult_ed25519_base_noclamp(bytes(scalar))
        else:
            out = nacl.bindings.crypto_scalarmult_ed25519_noclamp(bytes(scalar), self._b)
        return GroupElement(out)

    __rmul__ = __mul__

    def __eq__(self, other):
        if not isinstance(other, GroupElement):
            return NotImplemented
        return self._b == other._b

    def __hash__(self):
        return hash(("point", self._b))

    def __repr__(self):
        return f"GroupElement({self.hex()})"


IDENTITY = GroupElement(_IDENTITY_BYTES)
BASEPOINT = GroupElement(
    nacl.bindings.crypto_scalarmult_ed25519_base_noclamp(bytes(Scalar.from_int(1)))
)


def scalar_from_bytes(b: bytes) -> Scalar:
    """Reduce any 32-byte string modulo GROUP_ORDER. Never fails on correct length."""
    if len(b) != SCALAR_BYTES:
        raise ValueError(f"expected {SCALAR_BYTES} bytes, got {len(b)}")
    return Scalar(nacl.bindings.crypto_core_ed25519_scalar_reduce(bytes(b) + _ZERO))


def scalar_to_bytes(s: Scalar) -> bytes:
    return bytes(s)


def point_from_bytes(b: bytes) -> GroupElement:
    """
    Decode a compressed point. Raises InvalidPoint unless `b` is the canonical
    encoding of an element of the prime-order subgroup.
    """
    if len(b) != POINT_BYTES:
        raise InvalidPoint(f"expected {POINT_BYTES} bytes, got {len(b)}")
    b = bytes(b)
    if b == _IDENTITY_BYTES:
        return IDENTITY
    if not nacl.bindings.crypto_core_ed25519_is_valid_point(b):
        raise InvalidPoint("bytes do not decode to a group element")
    return GroupElement(b)


def point_to_bytes(p: GroupElement) -> bytes:
    return bytes(p)


def hash_to_scalar(seed: bytes) -> Scalar:
    """
    SHA-512 of `seed` reduced mod GROUP_ORDER.
    Only meant for deriving the demo secret; real keys belong in key storage.
    """
    digest = hashlib.sha512(seed).digest()
    return Scalar(nacl.bindings.crypto_core_ed25519_scalar_reduce(digest))


def random_scalar() -> Scalar:
    """Uniform scalar: 64 bytes from libsodium's CSPRNG, reduced mod GROUP_ORDER."""
    return Scalar(nacl.bindings.crypto_core_ed25519_scalar_reduce(nacl.utils.random(64)))
