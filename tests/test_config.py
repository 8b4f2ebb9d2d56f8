"""
Tests for configuration loading.
"""

from pathlib import Path

import pytest

from core.config import (
    get_config,
    get_enrollment_config,
    get_matching_config,
    get_project_root,
    get_scan_config,
    get_section,
    get_storage_config,
    load_config,
    resolve_path,
)


class TestLoadConfig:
    def test_project_root_has_config(self):
        assert (get_project_root() / "config.yaml").exists()

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("matching:\n  distance_threshold: 0.4\n", encoding="utf-8")

        assert load_config(str(path)) == {"matching": {"distance_threshold": 0.4}}

    def test_empty_file_is_empty_dict(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(str(path)) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))


class TestSections:
    def test_singleton(self):
        assert get_config() is get_config()

    def test_default_values(self):
        assert get_matching_config()["distance_threshold"] == 0.6
        assert get_matching_config()["unknown_label"] == "unknown"
        assert get_storage_config()["key"] == "faceData"
        assert get_enrollment_config()["smile_timeout_sec"] == 10.0
        assert get_enrollment_config()["descriptor_source"] == "neutral"
        assert get_scan_config()["window_sec"] == 3.0
        assert get_scan_config()["poll_interval_sec"] == 0.1

    def test_missing_section(self):
        with pytest.raises(KeyError):
            get_section("does_not_exist")


class TestResolvePath:
    def test_absolute_path_unchanged(self, tmp_path):
        assert resolve_path(str(tmp_path)) == tmp_path

    def test_relative_path_anchored_at_root(self):
        assert resolve_path("storage/local_storage.json") == get_project_root() / Path("storage/local_storage.json")
