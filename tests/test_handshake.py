import pytest

from ecchannel.config import ChannelConfig
from ecchannel.crypto import Point, generate_signing_key, new_keypair, sign
from ecchannel.errors import ConnectionClosed, InvalidPeerKey, SignatureInvalid, VariantMismatch
from ecchannel.handshake import recv_handshake, recv_handshake_signed, send_handshake, send_handshake_signed
from ecchannel.protocol import encode_point
from ecchannel.transport import FramedSocket


def _pair(sock_pair, cfg):
    a, b = sock_pair
    return FramedSocket(a, cfg.send_timeout), FramedSocket(b, cfg.send_timeout)


@pytest.mark.parametrize("curve", ["SECP256R1", "SECP256K1", "SECP224R1"])
def test_anonymous_handshake_agrees(sock_pair, executor, curve):
    cfg = ChannelConfig(curve=curve)
    fa, fb = _pair(sock_pair, cfg)
    fut = executor.submit(recv_handshake, fb, cfg)
    key = send_handshake(fa, cfg)
    assert fut.result(timeout=10) == key
    assert len(key) == cfg.key_size


@pytest.mark.parametrize("transform", ["raw", "utf8-text"])
def test_signed_handshake_agrees(sock_pair, executor, signing_key, transform):
    cfg = ChannelConfig(sign_transform=transform, key_size=16)
    fa, fb = _pair(sock_pair, cfg)
    fut = executor.submit(recv_handshake_signed, fb, cfg, signing_key.public_key())
    key = send_handshake_signed(fa, cfg, signing_key)
    assert fut.result(timeout=10) == key
    assert len(key) == 16


def test_each_handshake_uses_fresh_keys(sock_pair, executor):
    cfg = ChannelConfig()
    fa, fb = _pair(sock_pair, cfg)
    keys = []
    for _ in range(2):
        fut = executor.submit(recv_handshake, fb, cfg)
        keys.append(send_handshake(fa, cfg))
        fut.result(timeout=10)
    assert keys[0] != keys[1]


def test_tampered_signature_rejected(sock_pair, signing_key):
    a, _ = sock_pair
    cfg = ChannelConfig()
    fa, fb = _pair(sock_pair, cfg)

    payload = encode_point(new_keypair(cfg.curve).public_point)
    signature = bytearray(sign(payload, signing_key))
    signature[-1] ^= 0x01
    fa.send_raw(payload)
    fa.send_arbitrary(bytes(signature))

    with pytest.raises(SignatureInvalid):
        recv_handshake_signed(fb, cfg, signing_key.public_key())

    # the responder must not answer with its own key
    a.setblocking(False)
    with pytest.raises(BlockingIOError):
        a.recv(1)


def test_wrong_verify_key_rejected(sock_pair, executor, signing_key):
    _, b = sock_pair
    cfg = ChannelConfig()
    fa, fb = _pair(sock_pair, cfg)
    fut = executor.submit(send_handshake_signed, fa, cfg, signing_key)

    with pytest.raises(SignatureInvalid):
        recv_handshake_signed(fb, cfg, generate_signing_key().public_key())
    b.close()
    with pytest.raises(ConnectionClosed):
        fut.result(timeout=10)


def test_variant_tag_mismatch(sock_pair, executor, signing_key):
    _, b = sock_pair
    cfg = ChannelConfig(variant_tag=True)
    fa, fb = _pair(sock_pair, cfg)
    fut = executor.submit(send_handshake, fa, cfg)

    with pytest.raises(VariantMismatch):
        recv_handshake_signed(fb, cfg, signing_key.public_key())
    b.close()
    with pytest.raises(ConnectionError):
        fut.result(timeout=10)


def test_variant_tag_match(sock_pair, executor, signing_key):
    cfg = ChannelConfig(variant_tag=True)
    fa, fb = _pair(sock_pair, cfg)
    fut = executor.submit(recv_handshake_signed, fb, cfg, signing_key.public_key())
    assert send_handshake_signed(fa, cfg, signing_key) == fut.result(timeout=10)


def test_off_curve_peer_key(sock_pair):
    cfg = ChannelConfig()
    fa, fb = _pair(sock_pair, cfg)
    fa.send_raw(encode_point(Point(1, 1)))
    with pytest.raises(InvalidPeerKey):
        recv_handshake(fb, cfg)


def test_peer_closes_mid_payload(sock_pair):
    a, _ = sock_pair
    cfg = ChannelConfig()
    fa, fb = _pair(sock_pair, cfg)
    fa.send_raw(bytes(10))
    a.close()
    with pytest.raises(ConnectionClosed):
        recv_handshake(fb, cfg)
