"""
ecchannel.client
演示客户端：发送一条加密消息（给定签名密钥时使用签名握手），读取回显。
"""
from __future__ import annotations

import argparse
import socket
from typing import List, Optional

from .channel import SecureSocket
from .cli import add_channel_args, config_from_args, setup_logging
from .crypto import load_signing_private_key_pem


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser()
    add_channel_args(ap)
    ap.add_argument("--signing-key", help="initiator ECDSA private key PEM")
    ap.add_argument("--message", default="hello")
    args = ap.parse_args(argv)
    setup_logging(args.log_level)

    cfg = config_from_args(args)
    sk = load_signing_private_key_pem(args.signing_key) if args.signing_key else None
    msg = args.message.encode("utf-8")

    with SecureSocket(socket.create_connection((args.host, args.port)), cfg) as chan:
        if sk is not None:
            chan.secure_send_signed(sk, msg)
        else:
            chan.secure_send(msg)

        echoed = chan.secure_recv()
        print(f"[client] recv: {echoed.decode('utf-8', errors='replace')}")


if __name__ == "__main__":
    main()
