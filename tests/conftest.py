"""Pytest configuration and shared contract-document builders.

No sys.path hacks - tests should import from the installed openapi_report package.
"""

import json
from pathlib import Path

import pytest


def make_document(paths=None, schemas=None) -> dict:
    """Build a minimal contract document."""
    document = {"openapi": "3.0.0", "paths": paths if paths is not None else {}}
    if schemas is not None:
        document["components"] = {"schemas": schemas}
    return document


def make_operation(tags=("orders",), parameters=None, request_body=None, responses=None) -> dict:
    operation = {
        "tags": list(tags),
        "responses": responses if responses is not None else {"200": {"description": "ok"}},
    }
    if parameters is not None:
        operation["parameters"] = parameters
    if request_body is not None:
        operation["requestBody"] = request_body
    return operation


@pytest.fixture
def write_spec(tmp_path):
    """Write a document to ``tmp_path/<name>`` and return the path."""
    def _write(name: str, document: dict) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        return path
    return _write
