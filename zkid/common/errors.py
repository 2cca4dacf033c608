# zkid/common/errors.py
"""
Error taxonomy shared by the codec, the engines and the transport.

 - DecodeError: the peer sent something we cannot parse (fatal to the session)
 - ProtocolError: a well-formed message arrived at the wrong point of the exchange
 - TransportError: the stream closed early or failed
"""


class ZKIDError(Exception):
    pass


class DecodeError(ZKIDError):
    pass


class MalformedRecord(DecodeError):
    pass


class InvalidHexLength(DecodeError):
    pass


class InvalidPoint(DecodeError):
    pass


class ProtocolError(ZKIDError):
    pass


class UnexpectedKind(ProtocolError):
    def __init__(self, expected: str, got: str):
        super().__init__(f"expected {expected}, got {got}")
        self.expected = expected
        self.got = got


class TransportError(ZKIDError):
    pass
