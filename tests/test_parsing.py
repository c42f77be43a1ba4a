"""Unit tests for envio.utils.parsing: dotenv text and KEY=VALUE arguments."""

from envio.utils.parsing import parse_assignments, parse_envs, split_assignment


class TestParseEnvs:
    def test_simple_lines(self):
        assert parse_envs("A=1\nB=two\n") == {"A": "1", "B": "two"}

    def test_skips_blanks_and_comments(self):
        """
        Given text with blank lines and # comments
        When parse_envs is called
        Then only the assignments are returned, in order
        """
        text = "# header\n\nA=1\n   \n  # indented comment\nB=2\n"
        assert list(parse_envs(text).items()) == [("A", "1"), ("B", "2")]

    def test_splits_on_first_equals(self):
        assert parse_envs("TOKEN=abc==\n") == {"TOKEN": "abc=="}

    def test_export_prefix_and_quotes(self):
        text = "export A=\"quoted value\"\nB='single # kept'\n"
        assert parse_envs(text) == {"A": "quoted value", "B": "single # kept"}

    def test_inline_comment_is_dropped(self):
        """
        Given an unquoted value followed by an inline comment
        When parse_envs is called
        Then the comment is not part of the value
        """
        assert parse_envs("KEY=value # note\n") == {"KEY": "value"}

    def test_no_interpolation(self):
        assert parse_envs("A=1\nB=${A}\n") == {"A": "1", "B": "${A}"}

    def test_key_without_value(self):
        assert parse_envs("LONELY\nA=\n") == {"LONELY": "", "A": ""}

    def test_later_duplicates_win(self):
        assert parse_envs("A=1\nA=2\n") == {"A": "2"}

    def test_ignores_empty_keys(self):
        assert parse_envs("=value\n") == {}

    def test_crlf(self):
        assert parse_envs("A=1\r\nB=2\r\n") == {"A": "1", "B": "2"}


class TestAssignments:
    def test_split(self):
        assert split_assignment("A=1") == ("A", "1")
        assert split_assignment("A=") == ("A", "")
        assert split_assignment("A") == ("A", None)
        assert split_assignment("URL=postgres://u:p@h/db?x=1") == ("URL", "postgres://u:p@h/db?x=1")

    def test_parse_assignments_keeps_order(self):
        assert list(parse_assignments(["B=2", "A"]).items()) == [("B", "2"), ("A", None)]
