"""
ecchannel.crypto
密码学构件（基于 cryptography）：EC 临时密钥对 + ECDH/HKDF + ECDSA + AES(CBC/GCM)

握手只通过本模块的窄接口使用曲线运算、签名与对称加密；
私钥标量不会离开这里与 handshake 模块。
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .errors import DecryptionFailed, InvalidPeerKey


# Only curves whose coordinates fit the 32-byte wire fields.
CURVES = {
    "SECP256R1": ec.SECP256R1,
    "SECP256K1": ec.SECP256K1,
    "SECP224R1": ec.SECP224R1,
    "SECP192R1": ec.SECP192R1,
}
DEFAULT_CURVE = "SECP256R1"

SESSION_KEY_INFO = b"ecchannel|session-key"

CIPHER_MODES = ("CBC", "GCM")
IV_SIZES = {"CBC": 16, "GCM": 12}


@dataclass(frozen=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True)
class KeyPair:
    """一次握手专用的临时密钥对，用完即弃。"""
    private_key: ec.EllipticCurvePrivateKey
    public_point: Point


def get_curve(curve_name: str) -> ec.EllipticCurve:
    try:
        return CURVES[curve_name]()
    except KeyError:
        raise ValueError(f"unsupported curve {curve_name!r}") from None


def new_keypair(curve_name: str = DEFAULT_CURVE) -> KeyPair:
    priv = ec.generate_private_key(get_curve(curve_name))
    numbers = priv.public_key().public_numbers()
    return KeyPair(private_key=priv, public_point=Point(numbers.x, numbers.y))


def load_public_point(point: Point, curve_name: str) -> ec.EllipticCurvePublicKey:
    """Rebuild a peer public key from its coordinates; rejects off-curve points."""
    curve = get_curve(curve_name)
    try:
        return ec.EllipticCurvePublicNumbers(point.x, point.y, curve).public_key()
    except ValueError as e:
        raise InvalidPeerKey(f"peer public key is not a point on {curve_name}") from e


def hkdf_derive(ikm: bytes, info: bytes, length: int, salt: Optional[bytes] = None) -> bytes:
    """HKDF-Extract + HKDF-Expand (SHA-256)."""
    hkdf = HKDF(algorithm=hashes.SHA256(), length=length, salt=salt, info=info)
    return hkdf.derive(ikm)


def ecdh(
    private_key: ec.EllipticCurvePrivateKey,
    peer_point: Point,
    curve_name: str = DEFAULT_CURVE,
    key_size: int = 32,
) -> bytes:
    """ECDH 共享秘密经 HKDF 得到对称会话密钥；对相同输入是确定的。"""
    peer = load_public_point(peer_point, curve_name)
    shared = private_key.exchange(ec.ECDH(), peer)
    return hkdf_derive(shared, info=SESSION_KEY_INFO, length=key_size)


def sign(message: bytes, private_key: ec.EllipticCurvePrivateKey) -> bytes:
    return private_key.sign(message, ec.ECDSA(hashes.SHA256()))


def verify(message: bytes, signature: bytes, public_key: ec.EllipticCurvePublicKey) -> bool:
    try:
        public_key.verify(signature, message, ec.ECDSA(hashes.SHA256()))
    except (InvalidSignature, ValueError):
        return False
    return True


def random_iv(mode: str = "CBC") -> bytes:
    return os.urandom(IV_SIZES[mode])


def encrypt(plaintext: bytes, key: bytes, iv: bytes, mode: str = "CBC") -> bytes:
    if mode == "GCM":
        return AESGCM(key).encrypt(iv, plaintext, None)
    padder = sym_padding.PKCS7(128).padder()
    padded = padder.update(plaintext) + padder.finalize()
    enc = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return enc.update(padded) + enc.finalize()


def decrypt(ciphertext: bytes, key: bytes, iv: bytes, mode: str = "CBC") -> bytes:
    try:
        if mode == "GCM":
            return AESGCM(key).decrypt(iv, ciphertext, None)
        dec = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = dec.update(ciphertext) + dec.finalize()
        unpadder = sym_padding.PKCS7(128).unpadder()
        return unpadder.update(padded) + unpadder.finalize()
    except (InvalidTag, ValueError) as e:
        raise DecryptionFailed(f"AES-{mode} decryption failed") from e


def generate_signing_key(curve_name: str = DEFAULT_CURVE) -> ec.EllipticCurvePrivateKey:
    """Long-term ECDSA identity key of an initiator."""
    return ec.generate_private_key(get_curve(curve_name))


def load_signing_private_key_pem(path: str) -> ec.EllipticCurvePrivateKey:
    with open(path, "rb") as f:
        key = serialization.load_pem_private_key(f.read(), password=None)
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise ValueError(f"{path}: not an EC private key")
    return key


def load_signing_public_key_pem(path: str) -> ec.EllipticCurvePublicKey:
    with open(path, "rb") as f:
        key = serialization.load_pem_public_key(f.read())
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise ValueError(f"{path}: not an EC public key")
    return key


def save_signing_private_key_pem(key: ec.EllipticCurvePrivateKey, path: str) -> None:
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    with open(path, "wb") as f:
        f.write(pem)


def save_signing_public_key_pem(key: ec.EllipticCurvePublicKey, path: str) -> None:
    pem = key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    with open(path, "wb") as f:
        f.write(pem)
