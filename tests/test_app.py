"""
Tests for the csgolog command-line driver
"""

import io
import json
import pytest
import sys
import os

# Add the parent directory to the path so we can import app and csgolog
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import app
from csgolog.error_handler import ErrorHandler
from csgolog.parse import LogParser

LOG = (
    'L 11/05/2018 - 15:44:36: World triggered "Match_Start" on "de_cache"\n'
    'this is not a log line\n'
    'L 11/05/2018 - 15:44:37: "Player-Name<12><[U:1:29384012]><CT>" purchased "m4a1"\n'
    'L 11/50/2018 - 15:44:38: World triggered "Round_Start"\n'
    'L 11/05/2018 - 15:44:39: something new\n'
)


def error_lines(text):
    return [l for l in text.splitlines() if l.startswith("ERROR: ")]


class TestRun:
    """Test the line loop."""

    def setup_method(self):
        """Set up test fixtures."""
        self.out = io.StringIO()
        self.err = io.StringIO()
        self.handler = ErrorHandler()

    def test_output_and_errors(self):
        count = app.run(LogParser(), io.StringIO(LOG), self.out, self.err, self.handler)

        messages = [json.loads(l) for l in self.out.getvalue().splitlines()]
        errors = [json.loads(l[len("ERROR: "):]) for l in error_lines(self.err.getvalue())]

        assert count == 5
        assert [m["type"] for m in messages] == ["WorldMatchStart", "PlayerPurchase", "Unknown"]
        assert messages[1]["time"] == "2018-11-05T15:44:37Z"
        assert messages[2]["raw"] == "something new"
        assert [e["line"] for e in errors] == [2, 4]
        assert [e["category"] for e in errors] == ["no_match", "timestamp"]
        assert errors[0]["raw"] == "this is not a log line"
        assert self.handler.get_error_stats()["total_errors"] == 2

    def test_indent(self):
        app.run(LogParser(), io.StringIO(LOG.splitlines(True)[0]), self.out, self.err,
                self.handler, indent=2)

        assert self.out.getvalue().startswith('{\n  "time"')


class TestMain:
    """Test the command-line entry point."""

    def test_file(self, tmp_path, capsys):
        log_file = tmp_path / "server.log"
        log_file.write_text(LOG, encoding="utf-8")

        app.main([str(log_file)])

        captured = capsys.readouterr()
        assert len(captured.out.splitlines()) == 3
        assert len(error_lines(captured.err)) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            app.main([str(tmp_path / "missing.log")])

        assert exc_info.value.code == 1

    def test_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "stdin", io.StringIO(LOG))

        app.main([])

        captured = capsys.readouterr()
        assert len(captured.out.splitlines()) == 3

    def test_dialect_flag(self, tmp_path, capsys):
        log_file = tmp_path / "server.log"
        log_file.write_text(LOG, encoding="utf-8")

        app.main(["--dialect", "csgo", str(log_file)])

        types = [json.loads(l)["type"] for l in capsys.readouterr().out.splitlines()]
        assert types == ["WorldMatchStart", "Unknown", "Unknown"]

    def test_config_file(self, tmp_path, capsys):
        config_file = tmp_path / "app.yml"
        config_file.write_text("output:\n  indent: 4\n", encoding="utf-8")
        log_file = tmp_path / "server.log"
        log_file.write_text(LOG.splitlines(True)[0], encoding="utf-8")

        app.main(["--config", str(config_file), str(log_file)])

        assert capsys.readouterr().out.startswith('{\n    "time"')

    def test_default_config_file(self, tmp_path, monkeypatch, capsys):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "app.yml").write_text("output:\n  indent: 3\n", encoding="utf-8")
        log_file = tmp_path / "server.log"
        log_file.write_text(LOG.splitlines(True)[0], encoding="utf-8")
        monkeypatch.chdir(tmp_path)

        app.main([str(log_file)])

        assert capsys.readouterr().out.startswith('{\n   "time"')

    def test_load_config_default_path(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        config = app.load_config()

        assert str(config.config_path) == os.path.join("config", "app.yml")
        assert config.get("parser.dialect") == "cs2"

    def test_bad_config(self, tmp_path):
        config_file = tmp_path / "app.yml"
        config_file.write_text("parser:\n  dialect: quake\n", encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            app.main(["--config", str(config_file)])

        assert exc_info.value.code == 1


class TestPackaging:
    """Runtime dependencies are declared once, in requirements.txt."""

    def setup_method(self):
        """Set up test fixtures."""
        self.root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

    def test_requirements_declare_yaml(self):
        with open(os.path.join(self.root, "requirements.txt"), encoding="utf-8") as f:
            requirements = [l.strip() for l in f if l.strip() and not l.startswith("#")]

        assert any(r.startswith("PyYAML") for r in requirements)

    def test_setup_reads_requirements_only(self):
        with open(os.path.join(self.root, "setup.py"), encoding="utf-8") as f:
            source = f.read()

        assert "install_requires=install_requires," in source
        assert "PyYAML" not in source


if __name__ == "__main__":
    pytest.main([__file__])
