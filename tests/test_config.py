"""Tests for the openapi-report.json configuration file and ``init``."""

import json
import sys

import pytest

from openapi_report import cli
from openapi_report._internal.config import (
    CONFIG_FILENAME,
    ConfigError,
    default_config,
    dump_config,
    load_config_if_exists,
)


def _run_cli(args, monkeypatch):
    monkeypatch.setattr(sys, "argv", ["openapi-report"] + args)
    return cli.main()


def test_missing_config_returns_none(tmp_path):
    assert load_config_if_exists(base_dir=tmp_path) is None
    assert load_config_if_exists() is None


def test_load_config_from_base_dir(tmp_path):
    (tmp_path / CONFIG_FILENAME).write_text(json.dumps({
        "specPath": "api/openapi.json",
        "captureCommand": ["make", "openapi"],
        "snapshotDiff": {"baseRef": "origin/main", "formats": ["md"], "failOnBreaking": True},
        "unknownKey": 1,
    }), encoding="utf-8")

    config = load_config_if_exists(base_dir=tmp_path)

    assert config.spec_path == "api/openapi.json"
    assert config.capture_command == ["make", "openapi"]
    assert config.snapshot_diff.base_ref == "origin/main"
    assert config.snapshot_diff.head_ref is None
    assert config.snapshot_diff.formats == ["md"]
    assert config.snapshot_diff.fail_on_breaking is True


def test_explicit_config_path_wins(tmp_path):
    (tmp_path / CONFIG_FILENAME).write_text(json.dumps({"specPath": "default.json"}), encoding="utf-8")
    custom = tmp_path / "custom.json"
    custom.write_text(json.dumps({"specPath": "custom.json"}), encoding="utf-8")

    assert load_config_if_exists(custom, base_dir=tmp_path).spec_path == "custom.json"


@pytest.mark.parametrize("content,message", [
    ("{broken", "Invalid JSON"),
    ("[1, 2]", "must contain a JSON object"),
    ('{"snapshotDiff": {"formats": "md"}}', "Invalid config file"),
])
def test_invalid_config_raises(tmp_path, content, message):
    path = tmp_path / CONFIG_FILENAME
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError, match=message):
        load_config_if_exists(path)


def test_default_config_round_trips_through_file(tmp_path):
    path = tmp_path / CONFIG_FILENAME
    path.write_text(dump_config(default_config()), encoding="utf-8")

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["specPath"] == "openapi.json"
    assert data["snapshotDiff"]["baseRef"] == "main"
    assert "captureCommand" not in data
    assert load_config_if_exists(path) == default_config()


def test_cli_init_writes_config(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        _run_cli(["init"], monkeypatch)

    assert excinfo.value.code == 0
    assert (tmp_path / CONFIG_FILENAME).exists()
    assert "Wrote" in capsys.readouterr().out


def test_cli_init_refuses_to_overwrite(tmp_path, monkeypatch, capsys):
    target = tmp_path / "conf" / "report.json"
    target.parent.mkdir()
    target.write_text("{}", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        _run_cli(["init", "--path", str(target)], monkeypatch)

    assert excinfo.value.code == 1
    assert "already exists" in capsys.readouterr().err
    assert target.read_text(encoding="utf-8") == "{}"

    with pytest.raises(SystemExit) as excinfo:
        _run_cli(["init", "--path", str(target), "--force", "--quiet"], monkeypatch)

    assert excinfo.value.code == 0
    assert json.loads(target.read_text(encoding="utf-8"))["snapshotDiff"]["headRef"] == "HEAD"
    assert capsys.readouterr().out == ""
