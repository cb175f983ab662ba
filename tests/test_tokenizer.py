"""Tokenizer unit tests.

Test coverage:
- POSIX and Windows command-line splitting
- Missing/empty command lines
- Display rendering (quoting and escaping)
"""

from __future__ import annotations

import pytest

from process_launcher.errors import InvalidArgumentError
from process_launcher.tokenizer import (
    check_command_line,
    parse_arguments,
    render_command_line,
)


class TestParsePosix:
    """Test POSIX splitting."""

    def test_quoted_argument_is_one_token(self):
        assert parse_arguments('echo "hello world"', windows=False) == ["echo", "hello world"]

    def test_whitespace_separated(self):
        assert parse_arguments("ls  -la\t/tmp", windows=False) == ["ls", "-la", "/tmp"]

    def test_single_quotes(self):
        assert parse_arguments("grep 'a b' file", windows=False) == ["grep", "a b", "file"]

    def test_backslash_escape(self):
        assert parse_arguments(r"echo a\ b", windows=False) == ["echo", "a b"]

    def test_escaped_quote_inside_double_quotes(self):
        assert parse_arguments(r'echo "say \"hi\""', windows=False) == ["echo", 'say "hi"']

    def test_hash_is_not_a_comment(self):
        assert parse_arguments("echo #notacomment", windows=False) == ["echo", "#notacomment"]

    def test_no_shell_metacharacters(self):
        """Redirection and pipes are plain tokens."""
        assert parse_arguments("cat a | wc > out", windows=False) == ["cat", "a", "|", "wc", ">", "out"]

    def test_whitespace_only_gives_no_tokens(self):
        assert parse_arguments("   ", windows=False) == []

    def test_unterminated_quote_raises(self):
        with pytest.raises(InvalidArgumentError, match="Cannot parse command line"):
            parse_arguments('echo "oops', windows=False)


class TestParseWindows:
    """Test Windows (MSVC runtime) splitting."""

    def test_quoted_argument_is_one_token(self):
        assert parse_arguments('echo "hello world"', windows=True) == ["echo", "hello world"]

    def test_backslashes_are_literal(self):
        assert parse_arguments(r"dir C:\Program\ Files", windows=True) == ["dir", "C:\\Program\\", "Files"]

    def test_escaped_quote(self):
        assert parse_arguments(r'echo \"hi\"', windows=True) == ["echo", '"hi"']

    def test_backslashes_before_quote_are_halved(self):
        assert parse_arguments(r'a "b\\" c', windows=True) == ["a", "b\\", "c"]

    def test_doubled_quote_inside_quotes(self):
        assert parse_arguments('say "a ""quoted"" word"', windows=True) == ["say", 'a "quoted" word']

    def test_empty_quoted_argument(self):
        assert parse_arguments('cmd "" x', windows=True) == ["cmd", "", "x"]

    def test_single_quotes_are_literal(self):
        assert parse_arguments("echo 'a b'", windows=True) == ["echo", "'a", "b'"]

    def test_unterminated_quote_raises(self):
        with pytest.raises(InvalidArgumentError):
            parse_arguments('echo "oops', windows=True)


class TestMissingCommandLine:
    """Test empty input handling."""

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_command_line(self, value):
        with pytest.raises(InvalidArgumentError, match="Missing command line"):
            parse_arguments(value)

    def test_check_command_line_accepts_text(self):
        check_command_line("echo")

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            check_command_line("")


class TestRender:
    """Test display rendering."""

    def test_example(self):
        assert render_command_line(["echo", "hello world"]) == ' echo "hello world"'

    def test_starts_with_space(self):
        assert render_command_line(["ls"]) == " ls"

    def test_plain_tokens_unchanged(self):
        assert render_command_line(["git", "status", "--short"]) == " git status --short"

    def test_quote_is_escaped(self):
        assert render_command_line(['say"hi"']) == ' say\\"hi\\"'

    def test_quote_escaped_before_space_quoting(self):
        assert render_command_line(['a "b"']) == ' "a \\"b\\""'

    def test_tab_does_not_trigger_quoting(self):
        assert render_command_line(["a\tb"]) == " a\tb"

    def test_empty_sequence(self):
        assert render_command_line([]) == ""

    def test_parse_then_render(self):
        tokens = parse_arguments('echo "hello world"', windows=False)
        assert tokens == ["echo", "hello world"]
        assert render_command_line(tokens) == ' echo "hello world"'
