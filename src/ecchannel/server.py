"""
ecchannel.server
演示服务器：接受单连接，循环接收加密消息并以匿名握手回显。
"""
from __future__ import annotations

import argparse
import socket
from typing import List, Optional

from .channel import SecureSocket
from .cli import add_channel_args, config_from_args, setup_logging
from .crypto import load_signing_public_key_pem
from .errors import ConnectionClosed


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser()
    add_channel_args(ap)
    ap.add_argument("--verify-key", help="initiator ECDSA public key PEM; enables signed handshakes")
    args = ap.parse_args(argv)
    setup_logging(args.log_level)

    cfg = config_from_args(args)
    vk = load_signing_public_key_pem(args.verify_key) if args.verify_key else None

    with socket.create_server((args.host, args.port)) as srv:
        print(f"[server] listening on {args.host}:{args.port}")
        conn, addr = srv.accept()
        print(f"[server] accepted from {addr}")
        with SecureSocket(conn, cfg) as chan:
            while True:
                try:
                    pt = chan.secure_recv_signed(vk) if vk is not None else chan.secure_recv()
                except ConnectionClosed:
                    print("[server] peer closed")
                    break
                print(f"[server] recv: {pt!r}")
                chan.secure_send(b"echo: " + pt)


if __name__ == "__main__":
    main()
