"""Tests for config file loading and process settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from mybckchk.config import (
    DEFAULT_CHECK_INTERVAL_MS,
    DEFAULT_LISTEN_PORT,
    DEFAULT_MYSQL_PORT,
    DEFAULT_MYSQL_SOCKET,
    Command,
    ProbeConfig,
    Settings,
    load_config,
)
from mybckchk.errors import ConfigError

INI = """\
[config]
mysql_host = db1.internal
mysql_user = checker
mysql_password = s3cret
mysql_port = 3307
mysql_db = app
listen = 9201
check_interval = 500

[alive]
query = SELECT 1
expect = 1

[replica_running]
query = SELECT COUNT(*) FROM information_schema.processlist WHERE command = 'Binlog Dump'
expect = 0

[read_only]
query = SELECT @@global.read_only
expect = 0
"""


# ── INI ──────────────────────────────────────────────────────────────────────


class TestIniConfig:
    def test_config_section(self, write_config) -> None:
        config, _ = load_config(write_config(INI))
        assert config.mysql_host == "db1.internal"
        assert config.mysql_user == "checker"
        assert config.mysql_password == "s3cret"
        assert config.mysql_port == 3307
        assert config.mysql_db == "app"
        assert config.listen == 9201
        assert config.check_interval == 500
        assert config.check_interval_seconds == 0.5
        assert not config.uses_local_socket

    def test_commands_in_file_order(self, write_config) -> None:
        _, commands = load_config(write_config(INI))
        assert [c.name for c in commands] == ["alive", "replica_running", "read_only"]
        assert commands[0] == Command(name="alive", query="SELECT 1", expect="1")

    def test_defaults(self, write_config) -> None:
        config, commands = load_config(write_config("[config]\nmysql_user = root\n"))
        assert config.mysql_host is None
        assert config.uses_local_socket
        assert config.mysql_port == DEFAULT_MYSQL_PORT
        assert config.listen == DEFAULT_LISTEN_PORT
        assert config.check_interval == DEFAULT_CHECK_INTERVAL_MS
        assert config.mysql_socket == DEFAULT_MYSQL_SOCKET
        assert commands == []

    def test_zero_and_garbage_ints_fall_back(self, write_config) -> None:
        text = "[config]\nmysql_port = 0\nlisten = abc\ncheck_interval =\n"
        config, _ = load_config(write_config(text))
        assert config.mysql_port == DEFAULT_MYSQL_PORT
        assert config.listen == DEFAULT_LISTEN_PORT
        assert config.check_interval == DEFAULT_CHECK_INTERVAL_MS

    def test_blank_host_means_socket(self, write_config) -> None:
        config, _ = load_config(write_config("[config]\nmysql_host =\n"))
        assert config.mysql_host is None

    def test_default_section_is_not_a_command(self, write_config) -> None:
        text = "[DEFAULT]\nexpect = 1\n\n[config]\nlisten = 9300\n\n[alive]\nquery = SELECT 1\n"
        config, commands = load_config(write_config(text))
        assert config.listen == 9300
        assert [c.name for c in commands] == ["alive"]
        assert commands[0].expect == "1"  # inherited from DEFAULT

    def test_missing_config_section_uses_defaults(self, write_config) -> None:
        config, commands = load_config(write_config("[alive]\nquery = SELECT 1\nexpect = 1\n"))
        assert config == ProbeConfig()
        assert len(commands) == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError) as exc:
            load_config(tmp_path / "nope.cfg")
        assert "nope.cfg" in exc.value.path

    def test_unparseable_file(self, write_config) -> None:
        with pytest.raises(ConfigError):
            load_config(write_config("query = SELECT 1\n"))  # no section header

    def test_go_ini_quotes_are_stripped(self, write_config) -> None:
        text = (
            "[config]\nmysql_user = \"checker\"\n\n"
            "[read_only]\nquery = `SELECT @@global.read_only`\nexpect = \"ON\"\n\n"
            "[inner]\nquery = SELECT '\"x\"'\nexpect = \"\"\"a\"\"\"\n"
        )
        config, commands = load_config(write_config(text))
        assert config.mysql_user == "checker"
        assert commands[0].query == "SELECT @@global.read_only"
        assert commands[0].expect == "ON"
        assert commands[1].query == "SELECT '\"x\"'"  # not wrapped, kept as is
        assert commands[1].expect == "a"

    def test_percent_signs_kept_literally(self, write_config) -> None:
        text = "[like]\nquery = SELECT COUNT(*) FROM t WHERE name LIKE '%x%'\nexpect = 0\n"
        _, commands = load_config(write_config(text))
        assert "'%x%'" in commands[0].query


# ── YAML ─────────────────────────────────────────────────────────────────────


YAML = """\
config:
  mysql_host: 10.0.0.5
  mysql_user: checker
  mysql_db: app
  check_interval: 2000
commands:
  - name: alive
    query: SELECT 1
    expect: 1
  - query: SELECT @@global.read_only
    expect: 0
"""


class TestYamlConfig:
    def test_load(self, write_config) -> None:
        config, commands = load_config(write_config(YAML, "probe.yaml"))
        assert config.mysql_host == "10.0.0.5"
        assert config.check_interval == 2000
        assert config.listen == DEFAULT_LISTEN_PORT
        assert [c.name for c in commands] == ["alive", "command-2"]
        assert commands[0].expect == "1"  # ints become strings

    def test_invalid_yaml(self, write_config) -> None:
        with pytest.raises(ConfigError):
            load_config(write_config("config: [unclosed", "bad.yml"))

    def test_top_level_must_be_mapping(self, write_config) -> None:
        with pytest.raises(ConfigError):
            load_config(write_config("- a\n- b\n", "list.yaml"))

    def test_command_must_be_mapping(self, write_config) -> None:
        with pytest.raises(ConfigError):
            load_config(write_config("commands:\n  - SELECT 1\n", "cmds.yaml"))


# ── Models ───────────────────────────────────────────────────────────────────


class TestModels:
    def test_config_is_frozen(self) -> None:
        config = ProbeConfig()
        with pytest.raises(Exception):
            config.listen = 1  # type: ignore[misc]

    def test_command_is_frozen(self) -> None:
        cmd = Command(name="a", query="SELECT 1", expect="1")
        with pytest.raises(Exception):
            cmd.expect = "2"  # type: ignore[misc]


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MYBCKCHK_QUERY_TIMEOUT", raising=False)
        s = Settings(_env_file=None)
        assert s.log_level == "INFO"
        assert s.query_timeout == 10

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MYBCKCHK_QUERY_TIMEOUT", "3")
        monkeypatch.setenv("MYBCKCHK_LISTEN_HOST", "127.0.0.1")
        s = Settings(_env_file=None)
        assert s.query_timeout == 3
        assert s.listen_host == "127.0.0.1"
