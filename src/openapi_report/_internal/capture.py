"""Capture a contract document from the working tree or a running service."""

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol

import httpx

logger = logging.getLogger(__name__)

CAPTURE_MODES = ("file", "url")

DEFAULT_TIMEOUT = 30.0


class CaptureError(RuntimeError):
    """Raised when a capture step fails. The message names the step."""


@dataclass
class CaptureOptions:
    """Where the contract lives and how to produce it."""
    spec_path: Optional[str] = None  # Relative to the repository root
    capture_command: List[str] = field(default_factory=list)  # Run before copying, no shell
    url: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)  # Sent with URL capture


class SpecCapture(Protocol):
    def capture(self, options: CaptureOptions, repo_root: Path, output_path: Path) -> None: ...


class FileSpecCapture:
    """Optionally run a generator command, then copy the contract file out of the tree."""

    def capture(self, options: CaptureOptions, repo_root: Path, output_path: Path) -> None:
        if not options.spec_path:
            raise CaptureError("File capture requires --spec-path <file>.")

        if options.capture_command:
            self._run_command(options.capture_command, repo_root)

        source = Path(options.spec_path)
        if not source.is_absolute():
            source = repo_root / source
        if not source.is_file():
            raise CaptureError(f"Capture failed: contract file not found at {source}")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, output_path)
        logger.info("Captured %s -> %s", source, output_path)

    def _run_command(self, command: List[str], repo_root: Path) -> None:
        logger.info("Running capture command: %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                cwd=repo_root,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise CaptureError(f"Capture command could not be started: {e}") from e

        if result.returncode != 0:
            output = result.stderr.strip() or result.stdout.strip()
            raise CaptureError(
                f"Capture command failed with exit code {result.returncode}: {output}".strip()
            )


class UrlSpecCapture:
    """Download the contract from a running service with an HTTP GET."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, transport: Optional[httpx.BaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    def capture(self, options: CaptureOptions, repo_root: Path, output_path: Path) -> None:
        if not options.url:
            raise CaptureError("URL capture requires --url <https://.../openapi.json>.")

        logger.info("Fetching contract from %s", options.url)
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(options.url, headers=options.headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CaptureError(
                f"URL capture failed: {options.url} returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise CaptureError(f"URL capture failed: {e}") from e

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(response.text, encoding="utf-8")
        logger.info("Captured %s -> %s", options.url, output_path)


def capture_for_mode(mode: str) -> SpecCapture:
    """Capture provider for a ``--mode`` selector."""
    mode = mode.lower()
    if mode == "file":
        return FileSpecCapture()
    if mode == "url":
        return UrlSpecCapture()
    raise CaptureError(f"Unknown capture mode '{mode}'. Expected one of: {', '.join(CAPTURE_MODES)}")
