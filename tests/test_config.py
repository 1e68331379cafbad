# tests/test_config.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from pert_estimator.config import load_settings, parse_confidence_levels
from pert_estimator.logging_setup import setup_logging
from pert_estimator.tools.aggregator import DEFAULT_CONFIDENCE_LEVELS, ConfidenceLevel


def test_parse_confidence_levels() -> None:
    levels = parse_confidence_levels("68%:1, 95%:2,99.7%:3")
    assert levels == (
        ConfidenceLevel("68%", 1.0),
        ConfidenceLevel("95%", 2.0),
        ConfidenceLevel("99.7%", 3.0),
    )


def test_parse_confidence_levels_skips_garbage() -> None:
    levels = parse_confidence_levels("oops, 90%:abc, :2, neg:-1, 80%:1.28")
    assert levels == (ConfidenceLevel("80%", 1.28),)


def test_parse_confidence_levels_falls_back_to_defaults() -> None:
    assert parse_confidence_levels("") == DEFAULT_CONFIDENCE_LEVELS
    assert parse_confidence_levels("nothing useful") == DEFAULT_CONFIDENCE_LEVELS


def test_load_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PERT_CONFIDENCE_LEVELS", "50%:0.674")
    monkeypatch.setenv("PERT_DISPLAY_DECIMALS", "3")
    monkeypatch.setenv("PERT_EXPORT_PREFIX", "sprint_42")
    monkeypatch.setenv("PERT_LOG_LEVEL", "debug")
    monkeypatch.setenv("PERT_LOG_DIR", str(tmp_path))
    monkeypatch.setenv("PERT_LOG_TO_FILE", "yes")

    s = load_settings()

    assert s.confidence_levels == (ConfidenceLevel("50%", 0.674),)
    assert s.display_decimals == 3
    assert s.export_prefix == "sprint_42"
    assert s.log_level == "DEBUG"
    assert s.log_dir == tmp_path
    assert s.log_to_file is True


def test_load_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "PERT_CONFIDENCE_LEVELS",
        "PERT_DISPLAY_DECIMALS",
        "PERT_EXPORT_PREFIX",
        "PERT_LOG_LEVEL",
        "PERT_LOG_DIR",
        "PERT_LOG_TO_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PERT_DISPLAY_DECIMALS", "not-a-number")

    s = load_settings()

    assert s.confidence_levels == DEFAULT_CONFIDENCE_LEVELS
    assert s.display_decimals == 2
    assert s.export_prefix == "pert_estimation"
    assert s.log_level == "INFO"
    assert s.log_to_file is False


def test_setup_logging_is_idempotent(tmp_path: Path) -> None:
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        setup_logging(level="INFO", log_dir=tmp_path)
        setup_logging(level="INFO", log_dir=tmp_path)

        ours = [h for h in root.handlers if h not in before]
        assert len(ours) == 2

        logging.getLogger("pert_estimator.test").info("hello")
        for h in ours:
            h.flush()
        assert "hello" in (tmp_path / "pert.log").read_text(encoding="utf-8")
    finally:
        for h in list(root.handlers):
            if h not in before:
                root.removeHandler(h)
                h.close()
        root.setLevel(level)
        logging.captureWarnings(False)
