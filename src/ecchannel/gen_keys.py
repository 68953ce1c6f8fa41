"""
生成发起方的 ECDSA 长期签名密钥（PEM）。
"""
from __future__ import annotations

import argparse
import os
from typing import List, Optional

from .crypto import CURVES, DEFAULT_CURVE, generate_signing_key
from .crypto import save_signing_private_key_pem, save_signing_public_key_pem


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--outdir", default="keys", help="output directory")
    ap.add_argument("--curve", default=DEFAULT_CURVE, choices=sorted(CURVES))
    args = ap.parse_args(argv)

    os.makedirs(args.outdir, exist_ok=True)
    priv = generate_signing_key(args.curve)

    save_signing_private_key_pem(priv, os.path.join(args.outdir, "signing_key.pem"))
    save_signing_public_key_pem(priv.public_key(), os.path.join(args.outdir, "signing_key_pub.pem"))

    print(f"written: {args.outdir}/signing_key.pem")
    print(f"written: {args.outdir}/signing_key_pub.pem")


if __name__ == "__main__":
    main()
