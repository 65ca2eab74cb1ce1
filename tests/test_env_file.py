"""
Tests for .env parsing and writing.
"""

from devbox.core.services.env_file import format_env, parse_env_file, write_env_file


class TestParse:
    def test_forms(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text(
            "# comment\n"
            "\n"
            "A=1\n"
            'B="two words"\n'
            "C='single'\n"
            "export D=exported\n"
            "not a pair\n"
            "E=x=y\n"
        )
        assert parse_env_file(path) == {
            "A": "1",
            "B": "two words",
            "C": "single",
            "D": "exported",
            "E": "x=y",
        }

    def test_missing(self, tmp_path):
        assert parse_env_file(tmp_path / ".env") == {}


class TestFormat:
    def test_sorted_and_quoted(self):
        text = format_env({"B": "plain", "A": "has space", "C": 'say "hi"'})
        assert text == 'A="has space"\nB=plain\nC=\'say "hi"\'\n'

    def test_empty(self):
        assert format_env({}) == ""

    def test_write_then_parse(self, tmp_path):
        env = {"PATHS": "/a b/c", "NAME": "demo", "QUOTED": 'x "y"'}
        path = write_env_file(tmp_path / ".env", env, header="Generated")
        assert path.read_text().startswith("# Generated\n")
        assert parse_env_file(path) == env
