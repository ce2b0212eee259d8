"""Runtime settings.

Settings come from ``~/.safesignal/config.yaml`` (when present) and are then
overridden by environment variables:

==========================  ===============================
``SAFESIGNAL_HOME``         data directory (store files)
``SAFESIGNAL_STRICTNESS``   permissive | moderate | strict
``SAFESIGNAL_LEXICON``      path to a custom lexicon YAML
``SAFESIGNAL_TAGGER``       lexical | spacy[:model]
``SAFESIGNAL_WINDOW_DAYS``  rolling window length
``SAFESIGNAL_MAX_WORKERS``  background analysis threads
``SAFESIGNAL_LOG_LEVEL``    loguru level name
``HIVE_API_URL``            image classifier endpoint
``HIVE_API_TOKEN``          image classifier token
==========================  ===============================
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from safesignal.moderation.analyzer import ContentAnalyzer
from safesignal.moderation.detectors import SpecializedDetectors
from safesignal.moderation.lexicon import default_lexicon, load_lexicon
from safesignal.moderation.models import FilterConfig, StrictnessLevel
from safesignal.moderation.tagger import make_tagger
from safesignal.signals.image import HiveImageClassifier
from safesignal.signals.orchestrator import SafetySignalOrchestrator
from safesignal.signals.store import JsonCounterStore
from safesignal.signals.sweeper import ROLLING_WINDOW_DAYS, MaintenanceSweeper

DEFAULT_HOME = Path.home() / ".safesignal"

_ENV_KEYS = {
    "SAFESIGNAL_HOME": "home",
    "SAFESIGNAL_STRICTNESS": "strictness",
    "SAFESIGNAL_LEXICON": "lexicon_path",
    "SAFESIGNAL_TAGGER": "tagger",
    "SAFESIGNAL_WINDOW_DAYS": "window_days",
    "SAFESIGNAL_MAX_WORKERS": "max_workers",
    "SAFESIGNAL_LOG_LEVEL": "log_level",
    "HIVE_API_URL": "hive_api_url",
    "HIVE_API_TOKEN": "hive_api_token",
}


@dataclass
class Settings:
    home: Path = field(default_factory=lambda: DEFAULT_HOME)
    strictness: StrictnessLevel = StrictnessLevel.MODERATE
    lexicon_path: Path | None = None
    tagger: str = "lexical"
    window_days: int = ROLLING_WINDOW_DAYS
    max_workers: int = 4
    log_level: str = "INFO"
    hive_api_url: str = ""
    hive_api_token: str = ""

    @property
    def store_dir(self) -> Path:
        return self.home / "safety"

    @property
    def filter_config(self) -> FilterConfig:
        return FilterConfig.for_level(self.strictness)


def load_settings(path: str | Path | None = None, env: dict[str, str] | None = None) -> Settings:
    """Read settings from YAML (if the file exists) and apply env overrides."""
    env = os.environ if env is None else env
    home = Path(env.get("SAFESIGNAL_HOME") or DEFAULT_HOME)
    path = Path(path) if path else home / "config.yaml"

    raw: dict = {}
    if path.exists():
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Settings file {path} must be a mapping")

    for env_key, name in _ENV_KEYS.items():
        if env.get(env_key):
            raw[name] = env[env_key]

    return Settings(
        home=Path(raw.get("home") or home).expanduser(),
        strictness=StrictnessLevel.parse(raw.get("strictness", "moderate")),
        lexicon_path=Path(raw["lexicon_path"]).expanduser() if raw.get("lexicon_path") else None,
        tagger=str(raw.get("tagger", "lexical")),
        window_days=int(raw.get("window_days", ROLLING_WINDOW_DAYS)),
        max_workers=int(raw.get("max_workers", 4)),
        log_level=str(raw.get("log_level", "INFO")),
        hive_api_url=str(raw.get("hive_api_url", "")),
        hive_api_token=str(raw.get("hive_api_token", "")),
    )


def build_analyzer(settings: Settings) -> ContentAnalyzer:
    lexicon = load_lexicon(settings.lexicon_path) if settings.lexicon_path else default_lexicon()
    return ContentAnalyzer(lexicon, make_tagger(settings.tagger, lexicon))


def build_orchestrator(settings: Settings) -> SafetySignalOrchestrator:
    """Wire store, analyzer, detectors and classifier from *settings*."""
    analyzer = build_analyzer(settings)
    classifier = None
    if settings.hive_api_token:
        classifier = HiveImageClassifier(
            api_token=settings.hive_api_token, api_url=settings.hive_api_url or None
        )
    return SafetySignalOrchestrator(
        store=JsonCounterStore(settings.store_dir),
        analyzer=analyzer,
        detectors=SpecializedDetectors(analyzer.lexicon),
        classifier=classifier,
        config=settings.filter_config,
        max_workers=settings.max_workers,
    )


def build_sweeper(settings: Settings) -> MaintenanceSweeper:
    return MaintenanceSweeper(JsonCounterStore(settings.store_dir), window_days=settings.window_days)
