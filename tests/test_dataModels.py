"""Unit tests for envio.utils.dataModels: the variable set and its payload grammar."""

import datetime as dt

import pytest

from envio.utils.dataModels import Env, EnvVec
from envio.utils.errors import CorruptError, DuplicateError, InvalidValueError, MissingError


def _sample() -> EnvVec:
    envs = EnvVec()
    envs.insert("DATABASE_URL", "postgres://x")
    envs.insert("API_KEY", "sk-123", comment="rotate monthly")
    envs.insert("TOKEN", "", expiration_date=dt.date(2030, 1, 31))
    return envs


class TestEnvVecOperations:
    def test_keys_preserve_insertion_order(self):
        """
        Given three inserted variables
        When keys() is called
        Then names come back in insertion order
        """
        assert _sample().keys() == ["DATABASE_URL", "API_KEY", "TOKEN"]

    def test_get_and_contains(self):
        envs = _sample()
        assert envs.get("API_KEY") == "sk-123"
        assert envs.get("NOPE") is None
        assert envs.contains("TOKEN")
        assert "NOPE" not in envs

    def test_insert_duplicate_raises(self):
        """
        Given a set that already holds API_KEY
        When API_KEY is inserted again
        Then DuplicateError is raised and the old value survives
        """
        envs = _sample()
        with pytest.raises(DuplicateError):
            envs.insert("API_KEY", "other")
        assert envs.get("API_KEY") == "sk-123"

    def test_edit_replaces_in_place(self):
        envs = _sample()
        envs.edit("DATABASE_URL", "postgres://y")
        assert envs.keys()[0] == "DATABASE_URL"
        assert envs.get("DATABASE_URL") == "postgres://y"

    def test_edit_missing_raises(self):
        with pytest.raises(MissingError):
            _sample().edit("NOPE", "x")

    def test_remove_compacts(self):
        envs = _sample()
        envs.remove("API_KEY")
        assert envs.keys() == ["DATABASE_URL", "TOKEN"]
        assert len(envs) == 2

    def test_remove_missing_raises(self):
        with pytest.raises(MissingError):
            _sample().remove("NOPE")

    def test_iteration_yields_all_fields(self):
        envs = list(_sample())
        assert envs[1] == Env("API_KEY", "sk-123", "rotate monthly", None)
        assert envs[2].expiration_date == dt.date(2030, 1, 31)

    def test_expired(self):
        """
        Given a variable expiring 2030-01-31
        When expired() is asked on and before that date
        Then it is expired on the date itself but not the day before
        """
        envs = _sample()
        assert [e.name for e in envs.expired(dt.date(2030, 1, 31))] == ["TOKEN"]
        assert envs.expired(dt.date(2030, 1, 30)) == []

    def test_as_environ(self):
        assert EnvVec([Env("A", "1"), Env("B", "2")]).as_environ() == {"A": "1", "B": "2"}


class TestPayload:
    def test_serializes_metadata_lines(self):
        """
        Given variables with a comment and an expiration date
        When to_payload is called
        Then metadata lines follow their variable and the text ends with a newline
        """
        assert _sample().to_payload() == (
            b"DATABASE_URL=postgres://x\n"
            b"API_KEY=sk-123\n"
            b"# comment: rotate monthly\n"
            b"TOKEN=\n"
            b"# expires: 2030-01-31\n"
        )

    def test_round_trip(self):
        envs = _sample()
        assert EnvVec.from_payload(envs.to_payload()) == envs

    def test_empty_set_is_empty_payload(self):
        assert EnvVec().to_payload() == b""
        assert EnvVec.from_payload(b"") == EnvVec()

    def test_insert_then_remove_is_byte_identical(self):
        """
        Given a serialized variable set
        When a key is inserted and then removed
        Then the serialization is unchanged
        """
        envs = _sample()
        before = envs.to_payload()
        envs.insert("EXTRA", "1", comment="temp")
        envs.remove("EXTRA")
        assert envs.to_payload() == before

    @pytest.mark.parametrize("value", ["a\nb", "a=b", " leading", "\tx"])
    def test_invalid_values_rejected(self, value):
        envs = EnvVec()
        envs.insert("KEY", value)
        with pytest.raises(InvalidValueError):
            envs.to_payload()

    def test_comment_with_newline_rejected(self):
        envs = EnvVec()
        envs.insert("KEY", "v", comment="two\nlines")
        with pytest.raises(InvalidValueError):
            envs.to_payload()

    @pytest.mark.parametrize("name", ["#KEY", " KEY", "A B=", "A\nB"])
    def test_invalid_names_rejected(self, name):
        envs = EnvVec()
        envs.insert(name, "v")
        with pytest.raises(InvalidValueError):
            envs.to_payload()

    def test_empty_name_rejected_on_insert(self):
        with pytest.raises(InvalidValueError):
            EnvVec().insert("", "v")

    @pytest.mark.parametrize(
        "payload",
        [
            b"A=1",  # no trailing newline
            b"garbage\n",
            b"A=1\n# expires: not-a-date\n",
            b"A=1\nA=2\n",
            b"\xff\xfe=1\n",
        ],
    )
    def test_malformed_payload_is_corrupt(self, payload):
        with pytest.raises(CorruptError):
            EnvVec.from_payload(payload)

    def test_plaintext_selection_keeps_profile_order(self):
        text = _sample().to_plaintext(selected=["TOKEN", "DATABASE_URL"])
        assert text == "DATABASE_URL=postgres://x\nTOKEN=\n"

    def test_plaintext_with_metadata(self):
        text = _sample().to_plaintext(selected=["API_KEY"], with_metadata=True)
        assert text == "API_KEY=sk-123\n# comment: rotate monthly\n"
