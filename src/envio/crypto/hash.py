from argon2.low_level import hash_secret_raw, Type as Argon2Type
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import constant_time, hashes, hmac

from envio.crypto.secret import Passphrase

KEY_CHECK_LABEL = b"envio key check v1"


def sha3_512_bytes(data: bytes | bytearray) -> bytes:
    digest = hashes.Hash(hashes.SHA3_512(), backend=default_backend())
    digest.update(data)
    return digest.finalize()


def derive_keys(passphrase: Passphrase, salt: bytes, t_cost: int, m_cost_kib: int, parallelism: int) -> tuple[bytes, bytes]:
    """Argon2id(SHA3-512(passphrase)) -> 64 bytes, split into (aead_key, check_key)."""
    prehash = sha3_512_bytes(passphrase.buffer)
    okm = hash_secret_raw(
        secret=prehash,
        salt=salt,
        time_cost=t_cost,
        memory_cost=m_cost_kib,
        parallelism=parallelism,
        hash_len=64,
        type=Argon2Type.ID,
    )
    return okm[:32], okm[32:]


def key_check(check_key: bytes) -> bytes:
    """Value stored in the file that tells a wrong passphrase from tampering."""
    h = hmac.HMAC(check_key, hashes.SHA256(), backend=default_backend())
    h.update(KEY_CHECK_LABEL)
    return h.finalize()


def key_check_matches(check_key: bytes, stored: bytes) -> bool:
    return constant_time.bytes_eq(key_check(check_key), stored)
