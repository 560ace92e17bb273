"""Optional ``openapi-report.json`` configuration file."""

import json
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

CONFIG_FILENAME = "openapi-report.json"


class ConfigError(ValueError):
    """Raised when a configuration file exists but cannot be loaded."""


class SnapshotDiffConfig(BaseModel):
    """Defaults for the snapshot-diff command."""
    base_ref: Optional[str] = Field(None, alias="baseRef")
    head_ref: Optional[str] = Field(None, alias="headRef")
    spec_path: Optional[str] = Field(None, alias="specPath")
    capture_command: Optional[List[str]] = Field(None, alias="captureCommand")
    work_dir: Optional[str] = Field(None, alias="workDir")
    out_dir: Optional[str] = Field(None, alias="outDir")
    project_name: Optional[str] = Field(None, alias="projectName")
    formats: Optional[List[str]] = None
    fail_on_breaking: Optional[bool] = Field(None, alias="failOnBreaking")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class OpenApiReportConfig(BaseModel):
    """Top-level configuration file model.

    The top-level fields are the `capture` command defaults; `output` is its
    default `--out` file.
    """
    mode: Optional[str] = None  # file or url
    spec_path: Optional[str] = Field(None, alias="specPath")
    capture_command: Optional[List[str]] = Field(None, alias="captureCommand")
    url: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    output: Optional[str] = None
    snapshot_diff: Optional[SnapshotDiffConfig] = Field(None, alias="snapshotDiff")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def resolve_config_path(config_path: Optional[Union[str, Path]], base_dir: Optional[Path]) -> Optional[Path]:
    """Explicit path wins; otherwise look for the default file in ``base_dir``."""
    if config_path:
        return Path(config_path).resolve()
    if base_dir is None:
        return None
    return Path(base_dir) / CONFIG_FILENAME


def load_config_if_exists(
    config_path: Optional[Union[str, Path]] = None,
    base_dir: Optional[Path] = None,
) -> Optional[OpenApiReportConfig]:
    """Load the configuration file, or return None if there is none."""
    path = resolve_config_path(config_path, base_dir)
    if path is None or not path.exists():
        return None

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    try:
        return OpenApiReportConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e


def default_config() -> OpenApiReportConfig:
    """Starter configuration written by ``openapi-report init``."""
    return OpenApiReportConfig(
        mode="file",
        spec_path="openapi.json",
        snapshot_diff=SnapshotDiffConfig(
            base_ref="main",
            head_ref="HEAD",
            out_dir="reports/openapi",
            formats=["md", "json"],
            fail_on_breaking=True,
        ),
    )


def dump_config(config: OpenApiReportConfig) -> str:
    return json.dumps(config.model_dump(by_alias=True, exclude_none=True), indent=2) + "\n"
