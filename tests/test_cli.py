"""Tests for the safesignal CLI."""

import tempfile

from click.testing import CliRunner

from safesignal.cli import main

GROOMING = "Let's meet in person, don't tell your parents"


def _invoke(home, *args):
    runner = CliRunner()
    return runner.invoke(main, list(args), env={"SAFESIGNAL_HOME": home, "HIVE_API_TOKEN": ""})


def test_analyze_reports_verdict():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = _invoke(tmpdir, "analyze", "wtf omfg")
    assert result.exit_code == 0, result.output
    assert "UNSAFE" in result.output


def test_analyze_safe_text():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = _invoke(tmpdir, "analyze", "Nice weather today", "-s", "strict")
    assert result.exit_code == 0, result.output
    assert "SAFE" in result.output


def test_clean():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = _invoke(tmpdir, "clean", "what the hell")
        custom = _invoke(tmpdir, "clean", "you idiot", "-r", "#", "-s", "permissive")
    assert result.exit_code == 0
    assert result.stdout.strip() == "what the ***"
    assert custom.stdout.strip() == "you idiot"


def test_evaluate_stats_and_sweep():
    with tempfile.TemporaryDirectory() as tmpdir:
        evaluated = _invoke(tmpdir, "evaluate", GROOMING, "--user", "u1")
        assert evaluated.exit_code == 0, evaluated.output
        assert "child_grooming" in evaluated.output
        assert "Escalated" in evaluated.output

        stats = _invoke(tmpdir, "stats", "u1")
        assert stats.exit_code == 0, stats.output
        assert "total_flags_30d: 1" in stats.output

        swept = _invoke(tmpdir, "sweep")
        assert swept.exit_code == 0, swept.output
        assert "Swept 1 user(s), removed 0 entries." in swept.output


def test_evaluate_harmless_text():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = _invoke(tmpdir, "evaluate", "Nice weather today", "-u", "u1")
        stats = _invoke(tmpdir, "stats", "u1")
    assert "No safety categories detected." in result.output
    assert "No safety signals recorded" in stats.output


def test_evaluate_requires_user():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = _invoke(tmpdir, "evaluate", "hello")
    assert result.exit_code != 0


def test_categories():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = _invoke(tmpdir, "categories")
    assert result.exit_code == 0
    assert "Safety categories" in result.output
