"""
ecchannel.cli
client/server 演示程序共用的命令行选项。
"""
from __future__ import annotations

import argparse
import logging

from .config import DEFAULT_SEND_TIMEOUT, ChannelConfig
from .crypto import CIPHER_MODES, CURVES, DEFAULT_CURVE


def add_channel_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=9000)
    ap.add_argument("--curve", default=DEFAULT_CURVE, choices=sorted(CURVES))
    ap.add_argument("--cipher-mode", default="CBC", choices=CIPHER_MODES)
    ap.add_argument("--send-timeout", type=float, default=DEFAULT_SEND_TIMEOUT, help="seconds")
    ap.add_argument("--variant-tag", action="store_true", help="send/check a handshake variant tag")
    ap.add_argument("--log-level", default="WARNING")


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def config_from_args(args: argparse.Namespace) -> ChannelConfig:
    return ChannelConfig(
        curve=args.curve,
        send_timeout=args.send_timeout,
        cipher_mode=args.cipher_mode,
        variant_tag=args.variant_tag,
    )
