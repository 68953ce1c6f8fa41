"""
ecchannel.handshake
四种握手：匿名/签名 × 发起方/响应方。每种都是固定的线性步骤，
发起方与响应方的收发顺序互为镜像，因此双方不会互相等待而死锁。

注意：签名握手只认证发起方的临时公钥；响应方不签名自己的公钥（单向认证）。
这是协议本身的限制，需要双向认证时必须让双方都签名。
"""
from __future__ import annotations

import logging

from cryptography.hazmat.primitives.asymmetric import ec

from .config import ChannelConfig
from .crypto import ecdh, new_keypair, sign, verify
from .errors import SignatureInvalid, VariantMismatch
from .protocol import (
    VT_ANONYMOUS,
    VT_SIGNED,
    WIRE_PAYLOAD_LEN,
    decode_point,
    encode_point,
    signed_message,
)
from .transport import FramedSocket

logger = logging.getLogger("ecchannel.handshake")


def _send_variant(fs: FramedSocket, cfg: ChannelConfig, tag: int) -> None:
    if cfg.variant_tag:
        fs.send_arbitrary(bytes([tag]))


def _check_variant(fs: FramedSocket, cfg: ChannelConfig, tag: int) -> None:
    if cfg.variant_tag:
        got = fs.recv_arbitrary()
        if got != bytes([tag]):
            raise VariantMismatch(tag, got)


def send_handshake(fs: FramedSocket, cfg: ChannelConfig) -> bytes:
    _send_variant(fs, cfg, VT_ANONYMOUS)
    kp = new_keypair(cfg.curve)
    fs.send_raw(encode_point(kp.public_point))

    peer = decode_point(fs.recv_exact(WIRE_PAYLOAD_LEN))
    key = ecdh(kp.private_key, peer, cfg.curve, cfg.key_size)
    logger.debug("anonymous handshake complete (initiator)")
    return key


def recv_handshake(fs: FramedSocket, cfg: ChannelConfig) -> bytes:
    _check_variant(fs, cfg, VT_ANONYMOUS)
    peer = decode_point(fs.recv_exact(WIRE_PAYLOAD_LEN))

    kp = new_keypair(cfg.curve)
    key = ecdh(kp.private_key, peer, cfg.curve, cfg.key_size)
    fs.send_raw(encode_point(kp.public_point))
    logger.debug("anonymous handshake complete (responder)")
    return key


def send_handshake_signed(
    fs: FramedSocket,
    cfg: ChannelConfig,
    signing_key: ec.EllipticCurvePrivateKey,
) -> bytes:
    _send_variant(fs, cfg, VT_SIGNED)
    kp = new_keypair(cfg.curve)
    payload = encode_point(kp.public_point)
    fs.send_raw(payload)

    signature = sign(signed_message(payload, cfg.sign_transform), signing_key)
    fs.send_arbitrary(signature)

    peer = decode_point(fs.recv_exact(WIRE_PAYLOAD_LEN))
    key = ecdh(kp.private_key, peer, cfg.curve, cfg.key_size)
    logger.debug("signed handshake complete (initiator)")
    return key


def recv_handshake_signed(
    fs: FramedSocket,
    cfg: ChannelConfig,
    verify_key: ec.EllipticCurvePublicKey,
) -> bytes:
    _check_variant(fs, cfg, VT_SIGNED)
    # keep the raw payload: the signature covers these exact bytes
    payload = fs.recv_exact(WIRE_PAYLOAD_LEN)
    signature = fs.recv_arbitrary()
    if not verify(signed_message(payload, cfg.sign_transform), signature, verify_key):
        logger.warning("handshake signature rejected, aborting before key derivation")
        raise SignatureInvalid()

    peer = decode_point(payload)
    kp = new_keypair(cfg.curve)
    key = ecdh(kp.private_key, peer, cfg.curve, cfg.key_size)
    fs.send_raw(encode_point(kp.public_point))
    logger.debug("signed handshake complete (responder)")
    return key
