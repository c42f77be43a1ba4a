"""Outer frame of a profile file.

Layout (big-endian):
    magic     : 4 bytes   -> b"ENV1"
    scheme    : 1 byte    -> 0x01 passphrase, 0x02 recipient
    reserved  : 2 bytes   -> zero
    body      : remaining bytes, owned by the scheme

Files written before the frame existed carry no magic. They are still
accepted by their preamble and rewritten with the frame on the next save:
an OpenPGP message becomes a recipient-scheme body with an unknown
fingerprint, an age file (binary or armored) a passphrase-scheme block.
"""
import base64
import binascii
import logging
import struct

from typing import List, Tuple

from envio.utils.dataModels import ENVELOPE_HDR_FMT, ENVELOPE_HDR_SIZE, ENVELOPE_MAGIC, LENGTH_FMT, LENGTH_SIZE, Scheme
from envio.utils.errors import BadEnvelopeError, CorruptError, UnsupportedSchemeError

logger = logging.getLogger(__name__)

PGP_ARMOR_PREAMBLE = b"-----BEGIN PGP MESSAGE-----"
AGE_BINARY_PREAMBLE = b"age-encryption.org/v1"
AGE_ARMOR_BEGIN = b"-----BEGIN AGE ENCRYPTED FILE-----"
AGE_ARMOR_END = b"-----END AGE ENCRYPTED FILE-----"
AGE_PREAMBLES = (AGE_BINARY_PREAMBLE, AGE_ARMOR_BEGIN)

# OpenPGP packet tags that can open an encrypted message (PKESK, SKESK).
_PGP_SESSION_KEY_TAGS = (1, 3)


def pack_blocks(*blocks: bytes) -> bytes:
    return b"".join(struct.pack(LENGTH_FMT, len(b)) + b for b in blocks)


def unpack_blocks(data: bytes, count: int) -> List[bytes]:
    """Split ``count`` length-prefixed blocks; they must cover ``data`` exactly."""
    blocks: List[bytes] = []
    offset = 0
    for _ in range(count):
        if len(data) - offset < LENGTH_SIZE:
            raise CorruptError("Scheme body is truncated")
        (n,) = struct.unpack_from(LENGTH_FMT, data, offset)
        offset += LENGTH_SIZE
        if len(data) - offset < n:
            raise CorruptError("Scheme body is truncated")
        blocks.append(data[offset:offset + n])
        offset += n
    if offset != len(data):
        raise CorruptError("Unexpected trailing bytes in scheme body")
    return blocks


def _scheme(tag: int) -> Scheme:
    try:
        return Scheme(tag)
    except ValueError:
        raise UnsupportedSchemeError(f"Unknown encryption scheme tag 0x{tag:02x}") from None


def _is_pgp_binary(data: bytes) -> bool:
    first = data[0]
    if not first & 0x80:
        return False
    tag = first & 0x3F if first & 0x40 else (first >> 2) & 0x0F
    return tag in _PGP_SESSION_KEY_TAGS


def is_legacy(data: bytes) -> bool:
    return not data.startswith(ENVELOPE_MAGIC)


def _legacy_scheme(data: bytes) -> Scheme:
    head = data.lstrip()
    if head.startswith(PGP_ARMOR_PREAMBLE) or (data and _is_pgp_binary(data)):
        return Scheme.RECIPIENT
    if head.startswith(AGE_PREAMBLES):
        return Scheme.PASSPHRASE
    raise BadEnvelopeError("Not an envio profile: magic header missing")


def encode(scheme: Scheme, body: bytes) -> bytes:
    return struct.pack(ENVELOPE_HDR_FMT, ENVELOPE_MAGIC, int(scheme), 0) + body


def identify(data: bytes) -> Scheme:
    """Scheme of an envelope, read from its first five bytes only."""
    if not data:
        raise BadEnvelopeError("Profile file is empty")
    if is_legacy(data[:len(ENVELOPE_MAGIC)]):
        return _legacy_scheme(data)
    if len(data) <= len(ENVELOPE_MAGIC):
        raise BadEnvelopeError("Envelope is truncated")
    return _scheme(data[len(ENVELOPE_MAGIC)])


def decode(data: bytes) -> Tuple[Scheme, bytes]:
    scheme = identify(data)
    if is_legacy(data):
        logger.debug("legacy profile without envelope, treating as %s", scheme.name)
        if scheme is Scheme.PASSPHRASE:
            return scheme, pack_blocks(data)
        return scheme, pack_blocks(b"", data)
    if len(data) < ENVELOPE_HDR_SIZE:
        raise BadEnvelopeError("Envelope is truncated")
    _, _, reserved = struct.unpack(ENVELOPE_HDR_FMT, data[:ENVELOPE_HDR_SIZE])
    if reserved != 0:
        raise BadEnvelopeError("Reserved envelope bytes are not zero")
    return scheme, data[ENVELOPE_HDR_SIZE:]


def dearmor_age(data: bytes) -> bytes:
    """Binary age file from its ASCII armor; binary input is returned as is."""
    armored = data.strip()
    if not armored.startswith(AGE_ARMOR_BEGIN):
        return data
    lines = armored.splitlines()
    if lines[-1].strip() != AGE_ARMOR_END:
        raise CorruptError("age armor is not terminated")
    try:
        return base64.b64decode(b"".join(line.strip() for line in lines[1:-1]), validate=True)
    except binascii.Error as exc:
        raise CorruptError("age armor is not valid base64") from exc
