"""
ecchannel.config
每个通道的显式配置：曲线、发送超时、对称加密参数、签名消息变换等。
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .crypto import CIPHER_MODES, CURVES, DEFAULT_CURVE, get_curve
from .protocol import COORD_BYTES, SIGN_TRANSFORMS
from .transport import BUFFER_POOL, BufferPool

DEFAULT_SEND_TIMEOUT = 30.0


@dataclass(frozen=True)
class ChannelConfig:
    curve: str = DEFAULT_CURVE
    send_timeout: float = DEFAULT_SEND_TIMEOUT  # seconds
    cipher_mode: str = "CBC"
    key_size: int = 32  # AES key bytes
    sign_transform: str = "raw"
    max_frame_size: Optional[int] = None
    variant_tag: bool = False
    buffer_pool: BufferPool = field(default=BUFFER_POOL, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.curve not in CURVES:
            raise ValueError(f"unsupported curve {self.curve!r}, choose from {sorted(CURVES)}")
        if get_curve(self.curve).key_size > COORD_BYTES * 8:
            raise ValueError(f"curve {self.curve} does not fit the {COORD_BYTES}-byte coordinate field")
        if self.send_timeout <= 0:
            raise ValueError("send_timeout must be positive")
        if self.cipher_mode not in CIPHER_MODES:
            raise ValueError(f"unsupported cipher mode {self.cipher_mode!r}")
        if self.key_size not in (16, 24, 32):
            raise ValueError("AES key_size must be 16, 24 or 32 bytes")
        if self.sign_transform not in SIGN_TRANSFORMS:
            raise ValueError(f"unknown sign transform {self.sign_transform!r}")
        if self.max_frame_size is not None and self.max_frame_size < 0:
            raise ValueError("max_frame_size must be >= 0")
