"""Unit tests for envio.storage.envelope: the ENV1 frame."""

import pytest

from envio.storage.envelope import dearmor_age, decode, encode, identify, is_legacy, pack_blocks, unpack_blocks
from envio.utils.dataModels import Scheme
from envio.utils.errors import BadEnvelopeError, CorruptError, UnsupportedSchemeError

from conftest import armor, armor_age


class TestFrame:
    def test_encode_layout(self):
        """
        Given a passphrase-scheme body
        When encode is called
        Then the frame is magic, tag, two zero bytes, body
        """
        assert encode(Scheme.PASSPHRASE, b"body") == b"ENV1\x01\x00\x00body"
        assert encode(Scheme.RECIPIENT, b"")[:7] == b"ENV1\x02\x00\x00"

    def test_decode_returns_scheme_and_body(self):
        assert decode(b"ENV1\x02\x00\x00xyz") == (Scheme.RECIPIENT, b"xyz")

    def test_identify_reads_only_the_first_five_bytes(self):
        """
        Given a frame cut right after the scheme tag
        When identify is called
        Then the scheme is still reported
        """
        assert identify(b"ENV1\x01") is Scheme.PASSPHRASE

    def test_unknown_scheme_tag(self):
        with pytest.raises(UnsupportedSchemeError):
            identify(b"ENV1\x07\x00\x00")
        with pytest.raises(UnsupportedSchemeError):
            decode(b"ENV1\x00\x00\x00")

    @pytest.mark.parametrize("data", [b"", b"ENV1", b"ENV1\x01\x00", b"NOPE\x01\x00\x00body", b"plain text"])
    def test_bad_envelopes(self, data):
        with pytest.raises(BadEnvelopeError):
            decode(data)

    def test_reserved_bytes_must_be_zero(self):
        with pytest.raises(BadEnvelopeError):
            decode(b"ENV1\x01\x00\x01body")


class TestLegacy:
    def test_armored_pgp_is_recipient_scheme(self):
        """
        Given an ASCII-armored PGP message without the ENV1 magic
        When decode is called
        Then it is treated as a recipient body with an empty fingerprint
        """
        data = armor(b"\x10ciphertext")
        assert is_legacy(data)
        scheme, body = decode(data)
        assert scheme is Scheme.RECIPIENT
        assert unpack_blocks(body, 2) == [b"", data]

    def test_binary_pgp_packet_is_recipient_scheme(self):
        # New-format packet header, tag 1 (public-key encrypted session key).
        assert identify(b"\xc1\x0c\x03rest") is Scheme.RECIPIENT
        # Old-format packet header, tag 1.
        assert identify(b"\x85\x01\x0c\x03") is Scheme.RECIPIENT

    @pytest.mark.parametrize(
        "data",
        [b"age-encryption.org/v1\n-> scrypt abc 18\n", b"-----BEGIN AGE ENCRYPTED FILE-----\nYWdl\n"],
    )
    def test_age_file_is_passphrase_scheme(self, data):
        """
        Given an age file without the ENV1 magic
        When decode is called
        Then it is treated as a single passphrase block holding the whole file
        """
        scheme, body = decode(data)
        assert scheme is Scheme.PASSPHRASE
        assert unpack_blocks(body, 1) == [data]

    def test_dearmor_age(self):
        assert dearmor_age(armor_age(b"\x00binary")) == b"\x00binary"
        assert dearmor_age(b"age-encryption.org/v1\n") == b"age-encryption.org/v1\n"
        with pytest.raises(CorruptError):
            dearmor_age(b"-----BEGIN AGE ENCRYPTED FILE-----\n!!!\n-----END AGE ENCRYPTED FILE-----\n")
        with pytest.raises(CorruptError):
            dearmor_age(b"-----BEGIN AGE ENCRYPTED FILE-----\nYWdl\n")


class TestBlocks:
    def test_pack_unpack(self):
        assert unpack_blocks(pack_blocks(b"fpr", b"", b"ct"), 3) == [b"fpr", b"", b"ct"]

    @pytest.mark.parametrize("data", [b"\x00\x00", b"\x00\x00\x00\x05abc", pack_blocks(b"a") + b"extra"])
    def test_truncated_or_trailing_is_corrupt(self, data):
        with pytest.raises(CorruptError):
            unpack_blocks(data, 1)
