"""The two profile encryption schemes and scheme detection.

Both ciphers hold their own key material and expose the same surface:
``scheme``, ``seal(plaintext) -> body`` and ``open(body) -> plaintext``.
The body is what sits after the envelope header.
"""
import logging
import os
import struct

import pyrage

from argon2.exceptions import HashingError
from typing import Callable, Optional, Union

from envio.crypto.aead import NONCE_SIZE, aead_decrypt, aead_encrypt
from envio.crypto.gpg import GpgAgent
from envio.crypto.hash import derive_keys, key_check, key_check_matches
from envio.crypto.secret import Passphrase
from envio.storage.envelope import AGE_PREAMBLES, dearmor_age, identify, pack_blocks, unpack_blocks
from envio.utils.dataModels import (
    DEFAULT_M_COST_KiB,
    DEFAULT_PARALLELISM,
    DEFAULT_T_COST,
    MAX_M_COST_KiB,
    MAX_PARALLELISM,
    MAX_T_COST,
    PASSPHRASE_HDR_FMT,
    PASSPHRASE_HDR_SIZE,
    PASSPHRASE_VERSION,
    Scheme,
)
from envio.utils.errors import BadKeyError, CorruptError, MissingError, StorageIOError
from envio.utils.helper import profile_path

logger = logging.getLogger(__name__)

SALT_SIZE = 16
GCM_TAG_SIZE = 16
RECIPIENT_BINDING_PREFIX = b"envio-recipient: "


def _kdf_params_valid(t: int, m: int, p: int) -> bool:
    return 1 <= t <= MAX_T_COST and 1 <= p <= MAX_PARALLELISM and 8 * p <= m <= MAX_M_COST_KiB


class PassphraseCipher:
    """Argon2id-derived key, AES-256-GCM, parameters stored in the body.

    Body: one length-prefixed block holding
        ver(1) | t(4) | m(4) | p(4) | salt(16) | nonce(12) | key check(32) | ct+tag

    The fixed fields are the GCM associated data. The key check is an
    HMAC under a second derived key, so a wrong passphrase is reported as
    BadKeyError while any other change fails the GCM tag as CorruptError.
    """

    scheme = Scheme.PASSPHRASE

    def __init__(
        self,
        passphrase: Union[Passphrase, str],
        t_cost: int = DEFAULT_T_COST,
        m_cost_kib: int = DEFAULT_M_COST_KiB,
        parallelism: int = DEFAULT_PARALLELISM,
    ):
        self.passphrase = passphrase if isinstance(passphrase, Passphrase) else Passphrase(passphrase)
        self.t_cost = t_cost
        self.m_cost_kib = m_cost_kib
        self.parallelism = parallelism

    def _derive(self, salt: bytes, t: int, m: int, p: int) -> tuple[bytes, bytes]:
        try:
            return derive_keys(self.passphrase, salt, t, m, p)
        except HashingError as exc:
            raise CorruptError(f"Key derivation failed: {exc}") from exc
        except MemoryError as exc:
            raise CorruptError(f"Key derivation needs more memory than available ({m} KiB)") from exc

    def seal(self, plaintext: bytes) -> bytes:
        salt = os.urandom(SALT_SIZE)
        nonce = os.urandom(NONCE_SIZE)
        aead_key, check_key = self._derive(salt, self.t_cost, self.m_cost_kib, self.parallelism)
        header = struct.pack(
            PASSPHRASE_HDR_FMT,
            PASSPHRASE_VERSION,
            self.t_cost,
            self.m_cost_kib,
            self.parallelism,
            salt,
            nonce,
            key_check(check_key),
        )
        _, ct = aead_encrypt(aead_key, plaintext, aad=header, nonce=nonce)
        return pack_blocks(header + ct)

    def open(self, body: bytes) -> bytes:
        (block,) = unpack_blocks(body, 1)
        if block.lstrip().startswith(AGE_PREAMBLES):
            return self._open_age(block)
        if len(block) < PASSPHRASE_HDR_SIZE + GCM_TAG_SIZE:
            raise CorruptError("Passphrase block is truncated")
        header = block[:PASSPHRASE_HDR_SIZE]
        ver, t, m, p, salt, nonce, check = struct.unpack(PASSPHRASE_HDR_FMT, header)
        if ver != PASSPHRASE_VERSION:
            raise CorruptError(f"Unknown passphrase block version {ver}")
        if not _kdf_params_valid(t, m, p):
            raise CorruptError("Key derivation parameters are out of range")

        aead_key, check_key = self._derive(salt, t, m, p)
        if not key_check_matches(check_key, check):
            raise BadKeyError("Incorrect passphrase")
        # Keep the cost the file was written with.
        self.t_cost, self.m_cost_kib, self.parallelism = t, m, p
        return aead_decrypt(aead_key, nonce, block[PASSPHRASE_HDR_SIZE:], aad=header)

    def _open_age(self, data: bytes) -> bytes:
        """Profiles from the age-based releases: scrypt recipient, binary or armored.

        age reports a wrong passphrase and a damaged file the same way, so both
        surface as BadKeyError here.
        """
        ciphertext = dearmor_age(data)
        logger.debug("opening legacy age profile")
        try:
            return pyrage.passphrase.decrypt(ciphertext, self.passphrase.buffer.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise BadKeyError("Incorrect passphrase") from exc
        except pyrage.DecryptError as exc:
            raise BadKeyError(f"Incorrect passphrase or damaged age file: {exc}") from exc

    def wipe(self) -> None:
        self.passphrase.wipe()


class RecipientCipher:
    """Encryption delegated to the GPG agent for one recipient key.

    Body: length-prefixed fingerprint, then length-prefixed agent ciphertext.
    The encrypted text starts with a binding line naming the fingerprint, so
    the clear copy in the body cannot be swapped unnoticed.
    """

    scheme = Scheme.RECIPIENT

    def __init__(self, fingerprint: Optional[str] = None, agent: Optional[GpgAgent] = None):
        self.fingerprint = fingerprint
        self.agent = agent or GpgAgent()

    def seal(self, plaintext: bytes) -> bytes:
        if not self.fingerprint:
            raise BadKeyError("No GPG key selected for this profile")
        fpr = self.fingerprint.encode("utf-8")
        ct = self.agent.encrypt(RECIPIENT_BINDING_PREFIX + fpr + b"\n" + plaintext, self.fingerprint)
        return pack_blocks(fpr, ct)

    def open(self, body: bytes) -> bytes:
        fpr, ct = unpack_blocks(body, 2)
        plaintext, reported = self.agent.decrypt(ct)
        if fpr:
            binding = RECIPIENT_BINDING_PREFIX + fpr + b"\n"
            if not plaintext.startswith(binding):
                raise CorruptError("Recorded GPG key does not match the encrypted profile")
            plaintext = plaintext[len(binding):]
            recorded = fpr.decode("utf-8")
        else:
            recorded = reported
        if self.fingerprint is None:
            self.fingerprint = recorded
        return plaintext

    def wipe(self) -> None:
        pass


Cipher = Union[PassphraseCipher, RecipientCipher]


def get_cipher(
    name: str,
    prompt_passphrase: Optional[Callable[[], str]] = None,
    agent: Optional[GpgAgent] = None,
) -> Cipher:
    """Pick the cipher for an existing profile from its envelope.

    Recipient-scheme profiles never prompt; the agent is asked directly.
    """
    path = profile_path(name)
    try:
        with path.open("rb") as f:
            head = f.read(64)
    except FileNotFoundError:
        raise MissingError(f"Profile '{name}' does not exist") from None
    except OSError as exc:
        raise StorageIOError.from_os_error(f"Failed to read {path}", exc) from exc

    scheme = identify(head)
    logger.debug("profile %s uses the %s scheme", name, scheme.name.lower())
    if scheme is Scheme.RECIPIENT:
        return RecipientCipher(agent=agent)
    if prompt_passphrase is None:
        raise BadKeyError(f"Profile '{name}' needs a passphrase")
    return PassphraseCipher(Passphrase(prompt_passphrase()))
