import socket

import pytest

from zkid.common.transport import SocketStream
from zkid.crypto.keys import KeyPair


@pytest.fixture
def keypair():
    return KeyPair.from_seed(b"demo-prover-secret")


@pytest.fixture
def stream_pair():
    """Two connected SocketStreams (prover end, verifier end)."""
    a, b = socket.socketpair()
    a.settimeout(10)
    b.settimeout(10)
    left, right = SocketStream(a), SocketStream(b)
    yield left, right
    left.close()
    right.close()
