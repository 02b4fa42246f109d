"""Tests for the command-line entry point."""

from click.testing import CliRunner

from autopilot.main import cli


class TestClassifyCommand:
    def test_classify(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AUTOPILOT_CONFIG_DIR", str(tmp_path))
        monkeypatch.delenv("AUTOPILOT_CONFIG", raising=False)
        result = CliRunner().invoke(cli, ["classify", "❌ Component 'Rigidbody' not found"])
        assert result.exit_code == 0
        assert "Category: ComponentNotFound" in result.output
        assert "Context: component=Rigidbody" in result.output
        assert "Fix priority: 9" in result.output

    def test_help_lists_commands(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("classify", "plan", "react", "run"):
            assert command in result.output
