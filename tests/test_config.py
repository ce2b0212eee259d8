"""Tests for settings loading and wiring."""

import tempfile
from pathlib import Path

import pytest
import yaml

from safesignal.config import build_analyzer, build_orchestrator, build_sweeper, load_settings
from safesignal.moderation.models import StrictnessLevel
from safesignal.moderation.tagger import LexicalClassTagger


def test_defaults_under_home():
    with tempfile.TemporaryDirectory() as tmpdir:
        settings = load_settings(env={"SAFESIGNAL_HOME": tmpdir})
    assert settings.home == Path(tmpdir)
    assert settings.store_dir == Path(tmpdir) / "safety"
    assert settings.strictness is StrictnessLevel.MODERATE
    assert settings.window_days == 30
    assert settings.tagger == "lexical"
    assert settings.filter_config.profanity_threshold == 0.1


def test_yaml_then_env_overrides():
    with tempfile.TemporaryDirectory() as tmpdir:
        with open(Path(tmpdir) / "config.yaml", "w") as f:
            yaml.dump({"strictness": "strict", "window_days": 14, "log_level": "debug"}, f)

        settings = load_settings(env={"SAFESIGNAL_HOME": tmpdir, "SAFESIGNAL_WINDOW_DAYS": "7"})

    assert settings.strictness is StrictnessLevel.STRICT
    assert settings.window_days == 7
    assert settings.log_level == "debug"


def test_explicit_settings_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "custom.yaml"
        with open(path, "w") as f:
            yaml.dump({"strictness": "permissive", "max_workers": 2}, f)
        settings = load_settings(path, env={"SAFESIGNAL_HOME": tmpdir})
    assert settings.strictness is StrictnessLevel.PERMISSIVE
    assert settings.max_workers == 2


def test_settings_must_be_mapping():
    with tempfile.TemporaryDirectory() as tmpdir:
        (Path(tmpdir) / "config.yaml").write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            load_settings(env={"SAFESIGNAL_HOME": tmpdir})


def test_build_components():
    with tempfile.TemporaryDirectory() as tmpdir:
        settings = load_settings(env={"SAFESIGNAL_HOME": tmpdir})

        analyzer = build_analyzer(settings)
        assert isinstance(analyzer.tagger, LexicalClassTagger)

        with build_orchestrator(settings) as orch:
            assert orch.classifier is None
            orch.evaluate("wire transfer", "u1").result(timeout=10)

        assert (settings.store_dir / "counters.json").exists()
        assert build_sweeper(settings).sweep().users_swept == 1


def test_classifier_enabled_by_token():
    with tempfile.TemporaryDirectory() as tmpdir:
        settings = load_settings(env={"SAFESIGNAL_HOME": tmpdir, "HIVE_API_TOKEN": "t"})
        with build_orchestrator(settings) as orch:
            assert orch.classifier is not None
            assert orch.classifier.configured
            orch.classifier.close()
