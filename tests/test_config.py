"""Unit tests for nvdgrab.config — Pydantic fetch configuration."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from nvdgrab.config import NVD_CVE_API_URL, FetchConfig, find_config, load_config

# ── FetchConfig ──────────────────────────────────────────────────────────────


class TestFetchConfig:
    """Tests for FetchConfig Pydantic model."""

    def test_defaults(self):
        c = FetchConfig()
        assert c.api_url == NVD_CVE_API_URL
        assert c.api_key is None
        assert c.results_per_page == 2000
        assert c.rate_limit_cooldown == 31.0
        assert c.extra_query == ""
        assert c.authenticated is False

    def test_timeout_tuple(self):
        assert FetchConfig(connect_timeout=5, read_timeout=60).timeout == (5, 60)

    def test_blank_api_key_is_none(self):
        assert FetchConfig(api_key="   ").api_key is None

    def test_api_key_stripped(self):
        c = FetchConfig(api_key=" abc ")
        assert c.api_key == "abc"
        assert c.authenticated is True

    def test_extra_query_terminated(self):
        assert FetchConfig(extra_query="noRejected").extra_query == "noRejected&"

    def test_extra_query_kept(self):
        assert FetchConfig(extra_query="noRejected&hasKev&").extra_query == "noRejected&hasKev&"

    def test_extra_query_leading_question_mark(self):
        assert FetchConfig(extra_query="?noRejected&").extra_query == "noRejected&"

    def test_page_size_capped(self):
        with pytest.raises(ValidationError):
            FetchConfig(results_per_page=2001)

    def test_page_size_positive(self):
        with pytest.raises(ValidationError):
            FetchConfig(results_per_page=0)

    def test_cooldown_at_least_thirty_seconds(self):
        with pytest.raises(ValidationError):
            FetchConfig(rate_limit_cooldown=5)
        assert FetchConfig(rate_limit_cooldown=30).rate_limit_cooldown == 30

    def test_max_attempts_bounds(self):
        with pytest.raises(ValidationError):
            FetchConfig(max_attempts=0)


# ── find_config ──────────────────────────────────────────────────────────────


class TestFindConfig:
    def test_env_override(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("NVDGRAB_CONFIG", str(tmp_path / "custom.yaml"))
        assert find_config() == tmp_path / "custom.yaml"

    def test_cwd_file(self, monkeypatch, tmp_path: Path):
        monkeypatch.delenv("NVDGRAB_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        (tmp_path / "nvdgrab.yml").write_text("api_key: x\n")
        assert find_config() == Path("nvdgrab.yml")

    def test_none(self, monkeypatch, tmp_path: Path):
        monkeypatch.delenv("NVDGRAB_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        assert find_config() is None


# ── load_config ──────────────────────────────────────────────────────────────


class TestLoadConfig:
    @patch.dict(os.environ, {}, clear=True)
    def test_yaml_file(self, tmp_path: Path):
        path = tmp_path / "nvdgrab.yaml"
        path.write_text("api_key: file-key\nextra_query: noRejected\nmax_attempts: 5\n")
        c = load_config(path)
        assert c.api_key == "file-key"
        assert c.extra_query == "noRejected&"
        assert c.max_attempts == 5

    @patch.dict(os.environ, {"NVD_API_KEY": "env-key"}, clear=True)
    def test_env_key_wins(self, tmp_path: Path):
        path = tmp_path / "nvdgrab.yaml"
        path.write_text("api_key: file-key\n")
        assert load_config(path).api_key == "env-key"

    @patch.dict(os.environ, {}, clear=True)
    def test_overrides_win(self, tmp_path: Path):
        path = tmp_path / "nvdgrab.yaml"
        path.write_text("extra_query: a&\n")
        assert load_config(path, extra_query="b&").extra_query == "b&"

    @patch.dict(os.environ, {}, clear=True)
    def test_none_override_ignored(self, tmp_path: Path):
        path = tmp_path / "nvdgrab.yaml"
        path.write_text("extra_query: a&\n")
        assert load_config(path, extra_query=None).extra_query == "a&"

    @patch.dict(os.environ, {}, clear=True)
    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "nvdgrab.yaml"
        path.write_text("")
        assert load_config(path) == FetchConfig()

    @patch.dict(os.environ, {}, clear=True)
    def test_no_file(self, monkeypatch, tmp_path: Path):
        monkeypatch.chdir(tmp_path)
        assert load_config().api_key is None

    @patch.dict(os.environ, {}, clear=True)
    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "nvdgrab.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    @patch.dict(os.environ, {}, clear=True)
    def test_malformed_yaml(self, tmp_path: Path):
        path = tmp_path / "nvdgrab.yaml"
        path.write_text("api_key: [unclosed\n")
        with pytest.raises(ValueError, match="invalid YAML"):
            load_config(path)

    @patch.dict(os.environ, {}, clear=True)
    def test_invalid_value(self, tmp_path: Path):
        path = tmp_path / "nvdgrab.yaml"
        path.write_text("results_per_page: 5000\n")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_missing_explicit_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")
