"""
ecchannel.protocol
线上格式：公钥点的 64 字节编码、4 字节长度前缀、握手变体标签。

流上的字节顺序（每次操作）：
    公钥点（Raw）    : [64 bytes WirePayload]
    Framed 消息      : [4 bytes length, int32 little-endian][payload]
协议本身没有版本号/消息类型，双方需事先约定使用匿名还是签名握手
（可选的 variant tag 见 ChannelConfig.variant_tag）。
"""
from __future__ import annotations

import struct

from .crypto import Point
from .errors import MalformedPayload

COORD_BYTES = 32
WIRE_PAYLOAD_LEN = COORD_BYTES * 2
LENGTH_PREFIX_LEN = 4

# Handshake variant tags
VT_ANONYMOUS = 0x01
VT_SIGNED = 0x02

SIGN_TRANSFORMS = ("raw", "utf8-text")

_LENGTH = struct.Struct("<i")


def pack_length(n: int) -> bytes:
    return _LENGTH.pack(n)


def unpack_length(b: bytes) -> int:
    if len(b) < LENGTH_PREFIX_LEN:
        raise MalformedPayload(f"length prefix needs {LENGTH_PREFIX_LEN} bytes, got {len(b)}")
    n = _LENGTH.unpack(b[:LENGTH_PREFIX_LEN])[0]
    if n < 0:
        raise MalformedPayload(f"negative frame length {n}")
    return n


def _encode_coord(v: int) -> bytes:
    # little-endian, so zero padding goes at the tail
    if v < 0 or v.bit_length() > COORD_BYTES * 8:
        raise ValueError(f"coordinate out of range for a {COORD_BYTES}-byte field")
    return v.to_bytes(COORD_BYTES, "little", signed=False)


def encode_point(point: Point) -> bytes:
    return _encode_coord(point.x) + _encode_coord(point.y)


def decode_point(payload: bytes) -> Point:
    if len(payload) < WIRE_PAYLOAD_LEN:
        raise MalformedPayload(f"public key payload needs {WIRE_PAYLOAD_LEN} bytes, got {len(payload)}")
    x = int.from_bytes(payload[:COORD_BYTES], "little", signed=False)
    y = int.from_bytes(payload[COORD_BYTES:WIRE_PAYLOAD_LEN], "little", signed=False)
    return Point(x, y)


def signed_message(payload: bytes, transform: str = "raw") -> bytes:
    """
    签名覆盖的消息。
    - raw: 原始 payload 字节
    - utf8-text: 旧实现的做法，先按 UTF-8 解码为文本（非法序列替换为 U+FFFD）再编码回字节；
      与旧签名互通时必须逐字节保持这一变换。
    """
    if transform == "raw":
        return bytes(payload)
    if transform == "utf8-text":
        return bytes(payload).decode("utf-8", errors="replace").encode("utf-8")
    raise ValueError(f"unknown sign transform {transform!r}")
