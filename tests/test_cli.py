"""Tests for the DirStore command-line interface."""

from pathlib import Path

import pytest

from dirstore.cli import parse_args, resolve_config, split_addr


class TestParseArgs:
    """Tests for parse_args()."""

    def test_no_arguments(self):
        args = parse_args([])
        assert args.config is None
        assert args.addr is None
        assert args.root is None
        assert args.log_level is None

    def test_all_flags(self):
        args = parse_args(
            [
                "--addr", ":9000",
                "--root", "/data",
                "--lock-mode", "global",
                "--log-level", "DEBUG",
                "--log-format", "json",
                "--shutdown-timeout", "5",
            ]
        )
        assert args.addr == ":9000"
        assert args.root == "/data"
        assert args.lock_mode == "global"
        assert args.log_level == "DEBUG"
        assert args.log_format == "json"
        assert args.shutdown_timeout == 5

    def test_invalid_lock_mode(self):
        with pytest.raises(SystemExit):
            parse_args(["--lock-mode", "object"])


class TestSplitAddr:
    """Tests for split_addr()."""

    def test_port_only(self):
        assert split_addr(":8080") == ("0.0.0.0", 8080)

    def test_host_and_port(self):
        assert split_addr("127.0.0.1:9000") == ("127.0.0.1", 9000)

    def test_missing_port(self):
        with pytest.raises(ValueError):
            split_addr("localhost")

    def test_non_numeric_port(self):
        with pytest.raises(ValueError):
            split_addr(":http")


class TestResolveConfig:
    """Tests for resolve_config()."""

    def test_defaults_without_config_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = resolve_config(parse_args([]))
        assert config.server.port == 8080
        assert config.storage.root == str(tmp_path / ".s3data")

    def test_reads_default_config_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "dirstore.yaml").write_text("server:\n  port: 7000\n")
        config = resolve_config(parse_args([]))
        assert config.server.port == 7000

    def test_explicit_missing_config_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            resolve_config(parse_args(["--config", str(tmp_path / "absent.yaml")]))

    def test_cli_overrides_config(self, tmp_path):
        config_path = tmp_path / "custom.yaml"
        config_path.write_text("server:\n  port: 7000\nstorage:\n  root: /from/file\n")
        args = parse_args(
            ["--config", str(config_path), "--addr", "127.0.0.1:9100", "--root", str(tmp_path)]
        )
        config = resolve_config(args)
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 9100
        assert config.storage.root == str(tmp_path)

    def test_port_flag_wins_over_addr(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = resolve_config(parse_args(["--addr", ":9000", "--port", "9001"]))
        assert config.server.port == 9001

    def test_root_is_made_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = resolve_config(parse_args(["--root", "data"]))
        assert Path(config.storage.root).is_absolute()
        assert config.storage.root == str(tmp_path / "data")

    def test_bad_addr(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ValueError):
            resolve_config(parse_args(["--addr", "nonsense"]))
