"""Tests for the generate CLI command."""

import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent.parent


def _run(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, ".", *args],
        capture_output=True,
        text=True,
        cwd=PROJECT_ROOT,
        timeout=60,
    )


@pytest.mark.integration
def test_help_lists_generate():
    """Top-level help should describe the generate command."""
    result = _run("--help")
    assert result.returncode == 0
    assert "generate" in result.stdout


@pytest.mark.integration
def test_generate_models_lists_default_model():
    """generate models should list every registered model."""
    result = _run("generate", "models")
    assert result.returncode == 0
    assert "gemini-2.0-flash" in result.stdout
    assert "deepseek-chat" in result.stdout


@pytest.mark.integration
def test_generate_without_subcommand_fails():
    result = _run("generate")
    assert result.returncode == 1


@pytest.mark.integration
def test_unknown_model_fails():
    """An unknown model name should exit 1 without calling any provider."""
    result = _run("generate", "skill-tree", "Necromancer", "-m", "gpt-0")
    assert result.returncode == 1
    assert "Unknown model: gpt-0" in result.stderr


@pytest.mark.integration
def test_unknown_command_fails():
    result = _run("summon")
    assert result.returncode == 1
    assert "Unknown command: summon" in result.stderr


@pytest.mark.integration
def test_narrate_requires_game_state():
    result = _run("generate", "narrate", "open the chest", "-c", "a wary ranger")
    assert result.returncode == 2
    assert "--state" in result.stderr


@pytest.mark.integration
def test_summary_of_missing_file_fails(tmp_path):
    result = _run("generate", "summary", str(tmp_path / "missing.txt"))
    assert result.returncode == 1
    assert "Cannot read story" in result.stderr
