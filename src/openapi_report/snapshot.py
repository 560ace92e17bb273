"""Snapshot diff: capture the contract at two git refs and diff them."""

import logging
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from openapi_report._internal.capture import CaptureOptions, FileSpecCapture, SpecCapture
from openapi_report._internal.git import GitClient, ProcessGitClient
from openapi_report.codes import ExitCode
from openapi_report.diff import build_summary, generate_summary_text, write_reports
from openapi_report.kernel.changes import ChangeSeverity
from openapi_report.kernel.diff import diff_specs
from openapi_report._internal.io.spec_loader import load_spec_from_path

logger = logging.getLogger(__name__)

DEFAULT_FORMATS = ("md", "json")


@dataclass
class SnapshotDiffOptions:
    base_ref: str
    head_ref: str
    capture: CaptureOptions
    work_dir: Optional[Path] = None
    out_dir: Optional[Path] = None  # Defaults to <repo>/reports/openapi
    project_name: Optional[str] = None  # Defaults to the repository directory name
    formats: List[str] = field(default_factory=lambda: list(DEFAULT_FORMATS))
    fail_on_breaking: bool = False


@dataclass
class SnapshotDiffOutcome:
    exit_code: int
    summary_text: str
    report_paths: List[Path]
    old_spec_path: Path
    new_spec_path: Path


def capture_snapshots(
    options: SnapshotDiffOptions,
    git_client: GitClient,
    capture: SpecCapture,
) -> Tuple[Path, Path]:
    """
    Capture the contract at base and head.

    The working tree is checked out base -> head -> original, strictly in that
    order; the original ref is restored even when a capture step fails.
    """
    repo_root = git_client.repository_root()
    original_ref = git_client.current_ref()
    work_dir = options.work_dir or Path(tempfile.gettempdir()) / "openapi-report" / uuid.uuid4().hex
    work_dir.mkdir(parents=True, exist_ok=True)

    old_spec_path = work_dir / "openapi.old.json"
    new_spec_path = work_dir / "openapi.new.json"

    try:
        git_client.checkout(options.base_ref)
        capture.capture(options.capture, repo_root, old_spec_path)

        git_client.checkout(options.head_ref)
        capture.capture(options.capture, repo_root, new_spec_path)
    finally:
        git_client.checkout(original_ref)

    return old_spec_path, new_spec_path


def run_snapshot_diff(
    options: SnapshotDiffOptions,
    git_client: Optional[GitClient] = None,
    capture: Optional[SpecCapture] = None,
) -> SnapshotDiffOutcome:
    """
    Capture, diff and write reports.

    Returns:
        SnapshotDiffOutcome. Exit code is 2 only when ``fail_on_breaking`` is
        set and a Breaking change exists, else 0.
    """
    git_client = git_client or ProcessGitClient()
    capture = capture or FileSpecCapture()

    old_spec_path, new_spec_path = capture_snapshots(options, git_client, capture)

    repo_root = git_client.repository_root()
    out_dir = options.out_dir or (repo_root / "reports" / "openapi")
    project_name = options.project_name or repo_root.name
    report_dir = out_dir / project_name if project_name else out_dir

    changes = diff_specs(load_spec_from_path(old_spec_path), load_spec_from_path(new_spec_path))
    summary = build_summary(changes)
    report_paths = write_reports(
        report_dir,
        options.formats or ["md"],
        summary,
        changes,
        str(old_spec_path),
        str(new_spec_path),
    )
    logger.info("Wrote %d report(s) to %s", len(report_paths), report_dir)

    exit_code = ExitCode.OK
    if options.fail_on_breaking and any(c.severity == ChangeSeverity.BREAKING for c in changes):
        exit_code = ExitCode.BREAKING_CHANGES

    return SnapshotDiffOutcome(
        exit_code=int(exit_code),
        summary_text=generate_summary_text(summary),
        report_paths=report_paths,
        old_spec_path=old_spec_path,
        new_spec_path=new_spec_path,
    )
