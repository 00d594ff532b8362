"""Tests for configuration loading and the command line."""

import json
import sqlite3

import pytest

from pharos_migration.cli import build_config, build_parser, main
from pharos_migration.models.migration import DestinationType, MigrationConfig


class TestMigrationConfig:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PHAROS_API_KEY", raising=False)
        monkeypatch.delenv("PHAROS_BASE_URL", raising=False)
        config = MigrationConfig.from_dict({})
        assert config.destination == DestinationType.SQL
        assert config.base_url == "http://localhost:3000"
        assert config.api_user == "system@aptrust.org"
        assert config.batch_size == 100
        assert config.strict_references is False
        assert config.strict_event_types is True

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setenv("PHAROS_API_KEY", "env-key")
        monkeypatch.setenv("PHAROS_BASE_URL", "https://demo.aptrust.org")
        config = MigrationConfig.from_dict({"destination": "api"})
        assert config.api_key == "env-key"
        assert config.base_url == "https://demo.aptrust.org"

    def test_api_key_never_serialized(self):
        config = MigrationConfig(destination=DestinationType.API, api_key="secret-key")
        assert "api_key" not in config.to_dict()
        assert "secret-key" not in json.dumps(config.to_dict())

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"destination": "sql", "dest_path": "pharos.db", "limit": 5}))
        config = MigrationConfig.from_json_file(str(path))
        assert config.dest_path == "pharos.db"
        assert config.limit == 5

    def test_validate(self, monkeypatch):
        monkeypatch.delenv("PHAROS_API_KEY", raising=False)
        assert MigrationConfig(dest_path="pharos.db").validate() == []
        errors = MigrationConfig.from_dict({"destination": "api", "batch_size": 0}).validate()
        assert len(errors) == 2
        assert MigrationConfig().validate() != []


class TestCommandLine:

    def test_api_arguments(self):
        args = build_parser().parse_args(["api", "secret-key", "10", "5", "--base-url", "https://demo.aptrust.org"])
        config = build_config(args)
        assert config.destination == DestinationType.API
        assert config.api_key == "secret-key"
        assert (config.limit, config.offset) == (10, 5)
        assert config.base_url == "https://demo.aptrust.org"

    def test_command_line_overrides_config_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"dest_path": "from-file.db", "source_path": "export.db", "limit": 3}))
        args = build_parser().parse_args(["sql", "from-cli.db", "--config", str(path)])
        config = build_config(args)
        assert config.dest_path == "from-cli.db"
        assert config.source_path == "export.db"
        assert config.limit == 3
        assert config.strict_event_types is True

    def test_log_file_from_config_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"log_file": "migration.log"}))
        args = build_parser().parse_args(["sql", "pharos.db", "--config", str(path)])
        assert build_config(args).log_file == "migration.log"

        args = build_parser().parse_args(["--log-file", "cli.log", "sql", "pharos.db", "--config", str(path)])
        assert build_config(args).log_file == "cli.log"

    def test_log_file_default(self):
        args = build_parser().parse_args(["sql", "pharos.db"])
        assert build_config(args).log_file == "import.log"

    def test_lenient_flags(self):
        args = build_parser().parse_args(["sql", "pharos.db", "--skip-unknown-events", "--strict-references"])
        config = build_config(args)
        assert config.strict_event_types is False
        assert config.strict_references is True

    def test_sql_run(self, source, tmp_path):
        dest = tmp_path / "out.db"
        main([
            "--log-file", str(tmp_path / "import.log"),
            "sql", str(dest),
            "--source", source.path,
            "--output-dir", str(tmp_path),
        ])
        conn = sqlite3.connect(dest)
        try:
            assert conn.execute("SELECT COUNT(*) FROM intellectual_objects").fetchone()[0] == 1
        finally:
            conn.close()

    def test_invalid_configuration_exits_1(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PHAROS_API_KEY", raising=False)
        with pytest.raises(SystemExit) as exc_info:
            main(["--log-file", str(tmp_path / "import.log"), "api", ""])
        assert exc_info.value.code == 1

    def test_missing_command_exits_1(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1
