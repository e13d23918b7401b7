"""
tests/test_config.py — YAML configuration loader
=================================================
"""

from __future__ import annotations

import pytest

from merit.config import MeritConfig, default_config, load_config


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="config.yaml.example"):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == default_config()

    def test_partial_override(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "max_action_points: 250\n"
            "nearby_window: 3\n"
            "log_level: debug\n"
            "system_reporter_id: hr-feed\n"
        )
        cfg = load_config(path)
        assert cfg.max_action_points == 250
        assert cfg.nearby_window == 3
        assert cfg.log_level == "DEBUG"
        assert cfg.system_reporter_id == "hr-feed"
        assert cfg.leaderboard_page_size == MeritConfig().leaderboard_page_size

    @pytest.mark.parametrize("body", ["max_action_points: 0\n", "nearby_window: -1\n"])
    def test_bad_limits(self, tmp_path, body):
        path = tmp_path / "config.yaml"
        path.write_text(body)
        with pytest.raises(ValueError):
            load_config(path)

    def test_frozen(self):
        cfg = default_config()
        with pytest.raises(AttributeError):
            cfg.max_action_points = 5
