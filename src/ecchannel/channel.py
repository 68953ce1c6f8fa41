"""
ecchannel.channel
安全通道：每次 secure_send/secure_recv 都先做一次完整握手得到新的会话密钥，
再以 Framed 方式依次传输明文 IV 与密文。会话密钥从不跨调用复用。

同一个 SecureSocket 只能单线程、非重入地使用；并发调用需由调用方串行化。
要取消阻塞中的接收，从其他线程调用 close()。
"""
from __future__ import annotations

import logging
import socket
from typing import Optional

from cryptography.hazmat.primitives.asymmetric import ec

from .config import ChannelConfig
from .crypto import decrypt, encrypt, random_iv
from .errors import ChannelClosed
from .handshake import recv_handshake, recv_handshake_signed, send_handshake, send_handshake_signed
from .transport import FramedSocket

logger = logging.getLogger("ecchannel.channel")


class SecureSocket:
    def __init__(self, sock: socket.socket, config: Optional[ChannelConfig] = None):
        self.config = config or ChannelConfig()
        self._fs: Optional[FramedSocket] = FramedSocket(
            sock,
            send_timeout=self.config.send_timeout,
            pool=self.config.buffer_pool,
            max_frame_size=self.config.max_frame_size,
        )
        self.last_iv: Optional[bytes] = None

    def __enter__(self) -> "SecureSocket":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._fs is None

    def _transport(self) -> FramedSocket:
        if self._fs is None:
            raise ChannelClosed()
        return self._fs

    def close(self) -> None:
        fs, self._fs = self._fs, None
        if fs is not None:
            fs.close()
            logger.debug("channel closed")

    def send_arbitrary(self, data: bytes) -> None:
        self._transport().send_arbitrary(data)

    def recv_arbitrary(self) -> bytes:
        return self._transport().recv_arbitrary()

    def _send_encrypted(self, fs: FramedSocket, key: bytes, iv: bytes, data: bytes) -> None:
        ct = encrypt(bytes(data), key, iv, self.config.cipher_mode)
        self.last_iv = iv
        fs.send_arbitrary(iv)
        fs.send_arbitrary(ct)
        logger.debug("sent %d plaintext bytes as %d ciphertext bytes", len(data), len(ct))

    def _recv_encrypted(self, fs: FramedSocket, key: bytes) -> bytes:
        self.last_iv = fs.recv_arbitrary()
        ct = fs.recv_arbitrary()
        return decrypt(ct, key, self.last_iv, self.config.cipher_mode)

    def secure_send(self, data: bytes) -> None:
        fs = self._transport()
        iv = random_iv(self.config.cipher_mode)
        key = send_handshake(fs, self.config)
        self._send_encrypted(fs, key, iv, data)

    def secure_recv(self) -> bytes:
        fs = self._transport()
        key = recv_handshake(fs, self.config)
        return self._recv_encrypted(fs, key)

    def secure_send_signed(self, signing_key: ec.EllipticCurvePrivateKey, data: bytes) -> None:
        fs = self._transport()
        iv = random_iv(self.config.cipher_mode)
        key = send_handshake_signed(fs, self.config, signing_key)
        self._send_encrypted(fs, key, iv, data)

    def secure_recv_signed(self, verify_key: ec.EllipticCurvePublicKey) -> bytes:
        fs = self._transport()
        key = recv_handshake_signed(fs, self.config, verify_key)
        return self._recv_encrypted(fs, key)
