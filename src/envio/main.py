#!/usr/bin/env python3
"""
envio: encrypted environment variable profiles

Each profile is one file, <config_dir>/profiles/<name>.env, holding a
binary envelope:

    magic     : 4 bytes   -> b"ENV1"
    scheme    : 1 byte    -> 0x01 passphrase, 0x02 GPG recipient
    reserved  : 2 bytes   -> zero
    body      : scheme specific

Passphrase scheme: Argon2id(SHA3-512(passphrase)) -> AES-256-GCM, with the
Argon2 params, salt, nonce and a key check value stored in the body.
Recipient scheme: the GPG agent encrypts for a chosen key; the body records
the key fingerprint next to the agent's ciphertext.

Decrypted, a profile is plain text:

    NAME=VALUE
    # comment: optional comment
    # expires: 2030-01-01

Commands:
  create   add   update   remove   list   export   import
  load     unload   launch   rotate   version
"""
from __future__ import annotations

import logging
import sys

from envio.ui.cli import build_parser
from envio.ui.constants import ERR
from envio.utils.errors import EnvioError


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except EnvioError as e:
        print(f"{ERR} {e}")
        return 1
    except KeyboardInterrupt:
        print(f"\n{ERR} Aborted")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
