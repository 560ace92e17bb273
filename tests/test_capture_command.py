"""Tests for contract capture providers and the ``capture`` command."""

import json
import sys

import httpx
import pytest

from openapi_report import cli
from openapi_report._internal.capture import (
    CaptureError,
    CaptureOptions,
    FileSpecCapture,
    UrlSpecCapture,
    capture_for_mode,
)
from openapi_report._internal.config import CONFIG_FILENAME

CONTRACT_URL = "https://api.example.test/openapi.json"
CONTRACT_TEXT = '{"openapi": "3.0.0", "paths": {}}'


def _run_cli(args, monkeypatch):
    monkeypatch.setattr(sys, "argv", ["openapi-report"] + args)
    return cli.main()


def _recording_transport(seen, status_code=200, text=CONTRACT_TEXT):
    def handler(request):
        seen.append(request)
        return httpx.Response(status_code, text=text)
    return httpx.MockTransport(handler)


def test_url_capture_writes_response_and_sends_headers(tmp_path):
    seen = []
    capture = UrlSpecCapture(transport=_recording_transport(seen))
    output_path = tmp_path / "captured" / "openapi.json"

    capture.capture(
        CaptureOptions(url=CONTRACT_URL, headers={"Authorization": "Bearer token", "X-Tenant": "acme"}),
        tmp_path,
        output_path,
    )

    assert output_path.read_text(encoding="utf-8") == CONTRACT_TEXT
    assert len(seen) == 1
    assert seen[0].method == "GET"
    assert str(seen[0].url) == CONTRACT_URL
    assert seen[0].headers["Authorization"] == "Bearer token"
    assert seen[0].headers["X-Tenant"] == "acme"


def test_url_capture_http_error_status(tmp_path):
    capture = UrlSpecCapture(transport=_recording_transport([], status_code=503, text="down"))
    output_path = tmp_path / "openapi.json"

    with pytest.raises(CaptureError, match="returned 503"):
        capture.capture(CaptureOptions(url=CONTRACT_URL), tmp_path, output_path)
    assert not output_path.exists()


def test_url_capture_transport_error(tmp_path):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    capture = UrlSpecCapture(transport=httpx.MockTransport(handler))

    with pytest.raises(CaptureError, match="connection refused"):
        capture.capture(CaptureOptions(url=CONTRACT_URL), tmp_path, tmp_path / "openapi.json")


def test_url_capture_requires_url(tmp_path):
    with pytest.raises(CaptureError, match="requires --url"):
        UrlSpecCapture().capture(CaptureOptions(), tmp_path, tmp_path / "openapi.json")


def test_file_capture_requires_spec_path(tmp_path):
    with pytest.raises(CaptureError, match="requires --spec-path"):
        FileSpecCapture().capture(CaptureOptions(), tmp_path, tmp_path / "openapi.json")


def test_capture_for_mode():
    assert isinstance(capture_for_mode("FILE"), FileSpecCapture)
    assert isinstance(capture_for_mode("url"), UrlSpecCapture)
    with pytest.raises(CaptureError, match="Unknown capture mode"):
        capture_for_mode("swashbuckle")


@pytest.fixture
def mocked_url_capture(monkeypatch):
    """Route url-mode captures made by the CLI through a mock transport."""
    seen = []
    monkeypatch.setattr(
        "openapi_report._internal.capture.UrlSpecCapture",
        lambda: UrlSpecCapture(transport=_recording_transport(seen)),
    )
    return seen


def test_cli_capture_file_mode(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "openapi.json").write_text(CONTRACT_TEXT, encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        _run_cli(["capture", "--spec-path", "openapi.json", "--out", "snapshots/openapi.json"], monkeypatch)

    assert excinfo.value.code == 0
    assert (tmp_path / "snapshots" / "openapi.json").read_text(encoding="utf-8") == CONTRACT_TEXT
    assert "Captured OpenAPI spec to snapshots" in capsys.readouterr().out


def test_cli_capture_url_mode(tmp_path, monkeypatch, mocked_url_capture, capsys):
    out_path = tmp_path / "openapi.json"

    with pytest.raises(SystemExit) as excinfo:
        _run_cli([
            "capture", "--url", CONTRACT_URL, "--header", "Authorization: Bearer abc", "--out", str(out_path),
        ], monkeypatch)

    assert excinfo.value.code == 0
    assert out_path.read_text(encoding="utf-8") == CONTRACT_TEXT
    assert mocked_url_capture[0].headers["Authorization"] == "Bearer abc"


def test_cli_capture_uses_config_output_and_headers(tmp_path, monkeypatch, mocked_url_capture):
    monkeypatch.chdir(tmp_path)
    (tmp_path / CONFIG_FILENAME).write_text(json.dumps({
        "mode": "url",
        "url": CONTRACT_URL,
        "headers": {"X-Api-Key": "from-config", "X-Tenant": "acme"},
        "output": "contracts/current.json",
    }), encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        _run_cli(["capture", "--header", "X-Api-Key:from-cli", "--quiet"], monkeypatch)

    assert excinfo.value.code == 0
    assert (tmp_path / "contracts" / "current.json").read_text(encoding="utf-8") == CONTRACT_TEXT
    request = mocked_url_capture[0]
    assert request.headers["X-Api-Key"] == "from-cli"
    assert request.headers["X-Tenant"] == "acme"


def test_cli_capture_requires_out(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        _run_cli(["capture", "--url", CONTRACT_URL], monkeypatch)

    assert excinfo.value.code == 1
    assert "--out is required." in capsys.readouterr().err


@pytest.mark.parametrize("header", ["no-colon", ": value"])
def test_cli_capture_rejects_malformed_header(tmp_path, monkeypatch, capsys, header):
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        _run_cli(["capture", "--url", CONTRACT_URL, "--out", "x.json", "--header", header], monkeypatch)

    assert excinfo.value.code == 1
    assert "--header expects format 'Key:Value'." in capsys.readouterr().err


def test_cli_capture_unknown_mode(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        _run_cli(["capture", "--mode", "nswag", "--out", "x.json"], monkeypatch)

    assert excinfo.value.code == 1
    assert "Unknown capture mode 'nswag'" in capsys.readouterr().err


def test_cli_capture_missing_file_exits_one(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        _run_cli(["capture", "--spec-path", "missing.json", "--out", "x.json"], monkeypatch)

    assert excinfo.value.code == 1
    assert "contract file not found" in capsys.readouterr().err
