import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from typing import Tuple

from envio.utils.errors import CorruptError

NONCE_SIZE = 12


def aead_encrypt(key: bytes, plaintext: bytes, aad: bytes | None = None, nonce: bytes | None = None) -> Tuple[bytes, bytes]:
    nonce = nonce or os.urandom(NONCE_SIZE)
    aesgcm = AESGCM(key)
    ct = aesgcm.encrypt(nonce, plaintext, aad)
    return nonce, ct


def aead_decrypt(key: bytes, nonce: bytes, ct: bytes, aad: bytes | None = None) -> bytes:
    aesgcm = AESGCM(key)
    try:
        return aesgcm.decrypt(nonce, ct, aad)
    except InvalidTag as exc:
        raise CorruptError("Authentication tag mismatch: profile has been modified") from exc
