"""Tests for DirStore configuration loading."""

import tempfile
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from dirstore.config import DirStoreConfig, load_config


def _write_yaml(data) -> Path:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(data, f)
        f.flush()
    return Path(f.name)


class TestDefaults:
    """Tests for the built-in defaults."""

    def test_defaults(self):
        config = DirStoreConfig()
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 8080
        assert config.server.log_level == "INFO"
        assert config.server.log_format == "text"
        assert config.server.shutdown_timeout == 30
        assert config.storage.root == ".s3data"
        assert config.storage.lock_mode == "bucket"
        assert config.observability.metrics is True
        assert config.observability.health_check is True


class TestLoadConfig:
    """Tests for load_config()."""

    def test_load_example_config(self):
        """Loading the example config file populates all fields."""
        config = load_config(Path(__file__).resolve().parent.parent / "dirstore.example.yaml")
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 8080
        assert config.server.shutdown_timeout == 30
        assert config.storage.root == "./.s3data"
        assert config.storage.lock_mode == "bucket"
        assert config.observability.metrics is True

    def test_load_minimal_config(self):
        """Loading an empty YAML uses defaults for all fields."""
        config = load_config(_write_yaml({}))
        assert config == DirStoreConfig()

    def test_load_custom_server(self):
        config = load_config(_write_yaml({"server": {"port": 9010, "host": "127.0.0.1"}}))
        assert config.server.port == 9010
        assert config.server.host == "127.0.0.1"
        assert config.server.log_level == "INFO"

    def test_storage_section(self):
        config = load_config(_write_yaml({"storage": {"root": "/srv/s3", "lock_mode": "global"}}))
        assert config.storage.root == "/srv/s3"
        assert config.storage.lock_mode == "global"

    def test_nested_local_root_dir(self):
        """storage.local.root_dir is accepted as the storage root."""
        config = load_config(_write_yaml({"storage": {"local": {"root_dir": "/nested/root"}}}))
        assert config.storage.root == "/nested/root"

    def test_observability_section(self):
        data = {"observability": {"metrics": False, "health_check": False}}
        config = load_config(_write_yaml(data))
        assert config.observability.metrics is False
        assert config.observability.health_check is False

    def test_invalid_lock_mode(self):
        with pytest.raises(ValidationError):
            load_config(_write_yaml({"storage": {"lock_mode": "per-object"}}))

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            load_config(_write_yaml({"server": {"log_format": "xml"}}))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")
