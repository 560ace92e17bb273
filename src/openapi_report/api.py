"""Public API for openapi_report.

High-level functions that return complete, structured results.
Callers should use these functions instead of importing from _internal.
"""

import os
from pathlib import Path
from typing import Dict, List, Union

from pydantic import BaseModel, Field

from openapi_report.diff import DEFAULT_TOP_N, build_summary, exit_code_for
from openapi_report.kernel.changes import ChangeRecord, DiffSummary
from openapi_report.kernel.diff import diff_specs
from openapi_report._internal.io.spec_loader import load_spec_from_path
from openapi_report.kernel.parser import parse
from openapi_report.kernel.spec import OpenApiSpec

SpecInput = Union[str, os.PathLike, Path, Dict]


class DiffResult(BaseModel):
    """Stable result model for a contract diff."""
    summary: DiffSummary
    changes: list[dict] = Field(default_factory=list)  # Canonical order, camelCase keys
    has_breaking: bool = False
    exit_code: int = 0


def _load_spec(spec: SpecInput) -> OpenApiSpec:
    """Load a spec from a path or an already-decoded document."""
    if isinstance(spec, dict):
        return parse(spec)
    return load_spec_from_path(Path(spec))


def diff_changes(from_spec: SpecInput, to_spec: SpecInput) -> List[ChangeRecord]:
    """Return the ordered change records between two contract documents."""
    return diff_specs(_load_spec(from_spec), _load_spec(to_spec))


def diff(from_spec: SpecInput, to_spec: SpecInput, top_n: int = DEFAULT_TOP_N) -> DiffResult:
    """
    Compare two contract documents.

    Args:
        from_spec: Path to, or decoded dict of, the "before" document
        to_spec: Path to, or decoded dict of, the "after" document
        top_n: Cap for the summary's top_by_risk count

    Returns:
        DiffResult with the summary, the change list and the exit code
        (0 = no breaking changes, 2 = breaking changes present)

    Raises:
        SpecParseError: If either document cannot be decoded
    """
    changes = diff_changes(from_spec, to_spec)
    summary = build_summary(changes, top_n)
    return DiffResult(
        summary=summary,
        changes=[change.to_dict() for change in changes],
        has_breaking=summary.has_breaking,
        exit_code=int(exit_code_for(changes)),
    )
