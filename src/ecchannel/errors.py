"""
ecchannel.errors
异常层次：所有协议层错误都继承自 ChannelError。
"""
from __future__ import annotations


class ChannelError(Exception):
    """Base class for every error raised by ecchannel."""


class TransferTimeout(ChannelError, TimeoutError):
    def __init__(self, timeout: float):
        super().__init__(f"connection timed out when trying to send data ({timeout:g}s)")
        self.timeout = timeout


class SignatureInvalid(ChannelError):
    def __init__(self) -> None:
        super().__init__("the signature was invalid, possible man in the middle attack")


class MalformedPayload(ChannelError, ValueError):
    pass


class FrameTooLarge(MalformedPayload):
    def __init__(self, length: int, limit: int):
        super().__init__(f"frame too large: {length} > {limit}")
        self.length = length
        self.limit = limit


class InvalidPeerKey(MalformedPayload):
    pass


class VariantMismatch(MalformedPayload):
    def __init__(self, expected: int, got: bytes):
        super().__init__(f"handshake variant mismatch: expected {expected:#04x}, got {got.hex() or 'nothing'}")
        self.expected = expected
        self.got = got


class DecryptionFailed(ChannelError):
    pass


class ConnectionClosed(ChannelError, ConnectionError):
    def __init__(self, expected: int, received: int):
        super().__init__(f"connection closed: expected {expected} bytes, got {received}")
        self.expected = expected
        self.received = received


class ChannelClosed(ChannelError):
    def __init__(self) -> None:
        super().__init__("channel is closed")
