"""Tests for CLI commands using Click's testing utilities."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import click
import pytest
from click.testing import CliRunner

from curator import __version__
from curator.cli.main import curator as cli
from curator.cli.main import load_items

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a temporary config dir with AI disabled and no keyring."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CURATOR_PATHS__CONFIG_DIR", str(tmp_path / "curator"))
    monkeypatch.setenv("CURATOR_AI__MODE", "disabled")
    with patch("curator.config.keyring.get_password", return_value=None):
        yield tmp_path


@pytest.fixture
def posts_file(cli_env, sample_items) -> Path:
    path = cli_env / "posts.json"
    path.write_text(
        json.dumps([item.model_dump(mode="json") for item in sample_items], ensure_ascii=False),
        encoding="utf-8",
    )
    return path


def parse_json_output(output: str) -> dict:
    """Decode the JSON document in CLI output, ignoring any log lines around it."""
    document, _ = json.JSONDecoder().raw_decode(output, output.index("{"))
    return document


# =============================================================================
# Version Tests
# =============================================================================


class TestVersion:
    """Tests for version and help."""

    def test_version_option(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_option(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "Personal Curator" in result.output
        for command in ("analyze", "show", "invalidate", "config"):
            assert command in result.output


# =============================================================================
# Analyze Command Tests
# =============================================================================


class TestAnalyzeCommand:
    """Tests for analyze, show and invalidate."""

    def test_analyze_json(self, runner: CliRunner, posts_file: Path) -> None:
        result = runner.invoke(cli, ["analyze", str(posts_file), "--user", "u1", "--json"])

        assert result.exit_code == 0, result.output
        bundle = parse_json_output(result.output)
        assert bundle["user_id"] == "u1"
        assert bundle["state"] == "complete"
        assert bundle["emotion"]["metadata"]["version"].endswith("-mock")
        assert len(bundle["comments"]) == 3

    def test_comment_count_option(self, runner: CliRunner, posts_file: Path) -> None:
        result = runner.invoke(
            cli, ["analyze", str(posts_file), "-u", "u1", "--comments", "1", "--json"]
        )

        assert result.exit_code == 0, result.output
        assert len(parse_json_output(result.output)["comments"]) == 1

    def test_analyze_table(self, runner: CliRunner, posts_file: Path) -> None:
        result = runner.invoke(cli, ["analyze", str(posts_file), "--user", "u1"])

        assert result.exit_code == 0, result.output
        assert "Analysis complete" in result.output
        assert "Unlock the Full Experience" in result.output

    def test_second_run_uses_cache(self, runner: CliRunner, posts_file: Path) -> None:
        runner.invoke(cli, ["analyze", str(posts_file), "--user", "u1", "--json"])

        result = runner.invoke(cli, ["analyze", str(posts_file), "--user", "u1"])

        assert result.exit_code == 0, result.output
        assert "Cached Analysis" in result.output
        assert "--refresh" in result.output

    def test_refresh_reruns(self, runner: CliRunner, posts_file: Path) -> None:
        runner.invoke(cli, ["analyze", str(posts_file), "--user", "u1", "--json"])

        result = runner.invoke(cli, ["analyze", str(posts_file), "--user", "u1", "--refresh"])

        assert result.exit_code == 0, result.output
        assert "Analysis complete" in result.output

    def test_show_and_invalidate(self, runner: CliRunner, posts_file: Path) -> None:
        runner.invoke(cli, ["analyze", str(posts_file), "--user", "u1", "--json"])

        shown = runner.invoke(cli, ["show", "--user", "u1", "--json"])
        assert shown.exit_code == 0, shown.output
        assert parse_json_output(shown.output)["user_id"] == "u1"

        removed = runner.invoke(cli, ["invalidate", "--user", "u1", "--force"])
        assert removed.exit_code == 0
        assert "removed" in removed.output

        missing = runner.invoke(cli, ["show", "--user", "u1"])
        assert missing.exit_code == 1
        assert "No cached analysis" in missing.output

    def test_invalidate_unknown_user(self, runner: CliRunner, cli_env: Path) -> None:
        result = runner.invoke(cli, ["invalidate", "--user", "nobody", "--force"])

        assert result.exit_code == 0
        assert "No cached analysis" in result.output

    def test_invalid_input_file(self, runner: CliRunner, cli_env: Path) -> None:
        bad = cli_env / "bad.json"
        bad.write_text("[{\"title\": 42, \"created_at\": \"yesterday\"}]", encoding="utf-8")

        result = runner.invoke(cli, ["analyze", str(bad), "--user", "u1"])

        assert result.exit_code != 0
        assert "valid content items" in result.output

    def test_missing_input_file(self, runner: CliRunner, cli_env: Path) -> None:
        result = runner.invoke(cli, ["analyze", "nope.json", "--user", "u1"])
        assert result.exit_code == 2


# =============================================================================
# Config Command Tests
# =============================================================================


class TestConfigCommands:
    """Tests for the config group."""

    def test_config_show(self, runner: CliRunner, cli_env: Path) -> None:
        result = runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0, result.output
        assert "disabled" in result.output
        assert "[NOT SET]" in result.output

    def test_config_show_reports_availability(
        self, runner: CliRunner, cli_env: Path, monkeypatch
    ) -> None:
        monkeypatch.setenv("CURATOR_AI__MODE", "enabled")
        monkeypatch.setenv("GEMINI_API_KEY", "AIzaSy" + "r" * 30)

        result = runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0, result.output
        assert "ai.available" in result.output
        assert "yes" in result.output

    def test_set_key_in_file(self, runner: CliRunner, cli_env: Path) -> None:
        key = "AIzaSy" + "q" * 30

        result = runner.invoke(cli, ["config", "set-key", "--backend", "file"], input=f"{key}\n")

        assert result.exit_code == 0, result.output
        assert "API key stored in file" in result.output
        assert (cli_env / "curator" / ".api_key.enc").exists()

    def test_set_invalid_key(self, runner: CliRunner, cli_env: Path) -> None:
        result = runner.invoke(cli, ["config", "set-key", "--backend", "file"], input="short\n")
        assert result.exit_code == 1

    def test_malformed_config_file(self, runner: CliRunner, cli_env: Path) -> None:
        config_file = cli_env / "broken.yaml"
        config_file.write_text("ai: [unclosed", encoding="utf-8")

        result = runner.invoke(cli, ["--config", str(config_file), "config", "show"])

        assert result.exit_code == 1


class TestLoadItems:
    def test_accepts_items_object(self, tmp_path, sample_items):
        path = tmp_path / "wrapped.json"
        path.write_text(
            json.dumps({"items": [item.model_dump(mode="json") for item in sample_items[:2]]}),
            encoding="utf-8",
        )
        assert len(load_items(path)) == 2

    def test_unreadable_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(click.ClickException):
            load_items(path)
