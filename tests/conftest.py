"""Shared fixtures: an isolated config dir, cheap Argon2 params, a fake GPG agent."""

import base64
import hashlib
import os

import pytest

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from envio.crypto.ciphers import PassphraseCipher
from envio.storage.envelope import AGE_ARMOR_BEGIN, AGE_ARMOR_END, PGP_ARMOR_PREAMBLE
from envio.utils.errors import BadKeyError, CorruptError

FAST_KDF = {"t_cost": 1, "m_cost_kib": 8, "parallelism": 1}
FINGERPRINT = "DEADBEEFCAFEBABE"


class FakeAgent:
    """In-process stand-in for gpg.

    Ciphertext: len(fpr) | fpr | nonce(12) | AES-GCM under sha256(fpr).
    Armored input is accepted the way gpg accepts it.
    """

    def __init__(self, fingerprints=(FINGERPRINT,)):
        self.keys = {fpr: hashlib.sha256(fpr.encode()).digest() for fpr in fingerprints}
        self.calls = []

    def encrypt(self, plaintext: bytes, fingerprint: str) -> bytes:
        self.calls.append(("encrypt", fingerprint))
        if fingerprint not in self.keys:
            raise BadKeyError(f"unknown key {fingerprint}")
        fpr = fingerprint.encode()
        nonce = os.urandom(12)
        return bytes([len(fpr)]) + fpr + nonce + AESGCM(self.keys[fingerprint]).encrypt(nonce, plaintext, None)

    def decrypt(self, ciphertext: bytes):
        self.calls.append(("decrypt", None))
        if ciphertext.startswith(PGP_ARMOR_PREAMBLE):
            ciphertext = base64.b64decode(b"".join(ciphertext.splitlines()[1:-1]))
        if not ciphertext:
            raise CorruptError("empty")
        n = ciphertext[0]
        fpr = ciphertext[1:1 + n].decode("utf-8", "replace")
        if fpr not in self.keys:
            raise BadKeyError("no secret key")
        nonce, ct = ciphertext[1 + n:13 + n], ciphertext[13 + n:]
        try:
            return AESGCM(self.keys[fpr]).decrypt(nonce, ct, None), fpr
        except (InvalidTag, ValueError) as exc:
            raise CorruptError("bad mdc") from exc

    def list_keys(self):
        return [(f"Test Key <test@example.com> ({fpr})", fpr) for fpr in self.keys]


def armor(data: bytes) -> bytes:
    return PGP_ARMOR_PREAMBLE + b"\n" + base64.b64encode(data) + b"\n-----END PGP MESSAGE-----\n"


def armor_age(data: bytes) -> bytes:
    encoded = base64.b64encode(data)
    lines = [encoded[i:i + 64] for i in range(0, len(encoded), 64)]
    return b"\n".join([AGE_ARMOR_BEGIN, *lines, AGE_ARMOR_END]) + b"\n"


@pytest.fixture(autouse=True)
def config_dir(tmp_path, monkeypatch):
    cfg = tmp_path / "config"
    monkeypatch.setenv("ENVIO_CONFIG_DIR", str(cfg))
    return cfg


@pytest.fixture
def profiles(config_dir):
    return config_dir / "profiles"


@pytest.fixture
def agent():
    return FakeAgent()


@pytest.fixture
def make_passphrase_cipher():
    def _make(passphrase="hunter2xy"):
        return PassphraseCipher(passphrase, **FAST_KDF)

    return _make
