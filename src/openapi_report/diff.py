"""Diff command: wrapper around the kernel diff with report generation."""

import json
from datetime import datetime, timezone
from itertools import groupby
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from openapi_report.codes import ExitCode
from openapi_report.kernel.changes import ChangeRecord, ChangeSeverity, DiffSummary
from openapi_report.kernel.diff import diff_specs, sort_changes
from openapi_report._internal.io.spec_loader import load_spec_from_path

DEFAULT_TOP_N = 5

REPORT_FORMATS = ("text", "md", "markdown", "json")

# Report file extension per format selector
REPORT_EXTENSIONS = {
    "text": "txt",
    "md": "md",
    "markdown": "md",
    "json": "json",
}


def build_summary(changes: Sequence[ChangeRecord], top_n: int = DEFAULT_TOP_N) -> DiffSummary:
    """Count changes per severity; ``top_by_risk`` is min(top_n, total)."""
    counts = {severity: 0 for severity in ChangeSeverity}
    for change in changes:
        counts[change.severity] += 1
    total = len(changes)
    return DiffSummary(
        breaking=counts[ChangeSeverity.BREAKING],
        risky=counts[ChangeSeverity.RISKY],
        additive=counts[ChangeSeverity.ADDITIVE],
        cosmetic=counts[ChangeSeverity.COSMETIC],
        total=total,
        top_by_risk=min(top_n, total),
    )


def order_changes_for_report(changes: Iterable[ChangeRecord]) -> List[ChangeRecord]:
    """JSON ``changes`` order: severity rank, risk descending, tag, endpoint, title."""
    return sorted(
        changes,
        key=lambda change: (
            change.severity.rank, -change.risk_score, change.tag, change.endpoint, change.title
        ),
    )


def top_changes(changes: Iterable[ChangeRecord], count: int = DEFAULT_TOP_N) -> List[ChangeRecord]:
    """Highest-risk changes first, ties broken by title."""
    ranked = sorted(changes, key=lambda change: (-change.risk_score, change.title))
    return ranked[:max(count, 0)]


def generate_summary_text(summary: DiffSummary) -> str:
    """The six ``key=value`` summary lines."""
    lines = [
        f"breaking={summary.breaking}",
        f"risky={summary.risky}",
        f"additive={summary.additive}",
        f"cosmetic={summary.cosmetic}",
        f"total={summary.total}",
        f"top_by_risk={summary.top_by_risk}",
    ]
    return "\n".join(lines) + "\n"


def _grouped_detail_lines(changes: Sequence[ChangeRecord], markdown: bool) -> List[str]:
    lines: List[str] = []
    ordered = sort_changes(changes)

    for severity, severity_group in groupby(ordered, key=lambda change: change.severity):
        lines.append(f"## {severity}" if markdown else f"[{severity}]")
        for tag, tag_group in groupby(severity_group, key=lambda change: change.tag):
            lines.append(f"### Tag: {tag}" if markdown else f"  Tag: {tag}")
            for endpoint, endpoint_group in groupby(tag_group, key=lambda change: change.endpoint):
                lines.append(f"#### {endpoint}" if markdown else f"    {endpoint}")
                for change in endpoint_group:
                    if markdown:
                        lines.append(f"- **{change.title}**")
                        lines.append(f"  - Pointer: `{change.pointer}`")
                        lines.append(f"  - Before: `{change.before}` → After: `{change.after}`")
                        lines.append(f"  - Meaning: {change.meaning}")
                        lines.append(f"  - SuggestedAction: {change.suggested_action}")
                        lines.append(f"  - RiskScore: {change.risk_score}")
                    else:
                        lines.append(f"      - {change.title}")
                        lines.append(f"        Pointer: {change.pointer}")
                        lines.append(f"        Before: {change.before} -> After: {change.after}")
                        lines.append(f"        Meaning: {change.meaning}")
                        lines.append(f"        SuggestedAction: {change.suggested_action}")
                        lines.append(f"        RiskScore: {change.risk_score}")
        lines.append("")

    return lines


def generate_text_report(summary: DiffSummary, changes: Sequence[ChangeRecord]) -> str:
    """Generate plain-text report: summary lines, blank line, grouped detail."""
    lines = generate_summary_text(summary).splitlines()
    lines.append("")
    lines.extend(_grouped_detail_lines(changes, markdown=False))
    return "\n".join(lines) + "\n"


def generate_markdown_report(summary: DiffSummary, changes: Sequence[ChangeRecord]) -> str:
    """Generate markdown change report."""
    lines = []

    lines.append("# OpenAPI Change Report")
    lines.append("")
    lines.append("## Summary")
    lines.append(f"- Breaking: {summary.breaking}")
    lines.append(f"- Risky: {summary.risky}")
    lines.append(f"- Additive: {summary.additive}")
    lines.append(f"- Cosmetic: {summary.cosmetic}")
    lines.append(f"- Total: {summary.total}")
    lines.append("")

    lines.append("## Top changes")
    top = top_changes(changes, DEFAULT_TOP_N)
    if not top:
        lines.append("- None")
    for change in top:
        lines.append(
            f"- **{change.title}** ({change.severity}) — `{change.endpoint}` (Risk {change.risk_score})"
        )
    lines.append("")

    lines.extend(_grouped_detail_lines(changes, markdown=True))
    return "\n".join(lines) + "\n"


def generate_json_report(
    summary: DiffSummary,
    changes: Sequence[ChangeRecord],
    old_spec_path: Optional[str] = None,
    new_spec_path: Optional[str] = None,
    generated_at_utc: Optional[datetime] = None,
) -> Dict:
    """Generate the JSON report envelope (camelCase field names)."""
    generated_at = generated_at_utc or datetime.now(timezone.utc)
    return {
        "generatedAtUtc": generated_at.isoformat(),
        "oldSpecPath": old_spec_path,
        "newSpecPath": new_spec_path,
        "summary": {
            "breaking": summary.breaking,
            "risky": summary.risky,
            "additive": summary.additive,
            "cosmetic": summary.cosmetic,
            "total": summary.total,
        },
        "topChanges": [
            {
                "category": change.severity.value,
                "title": change.title,
                "method": change.method,
                "path": change.path,
                "pointer": change.pointer,
                "riskScore": change.risk_score,
            }
            for change in top_changes(changes, summary.top_by_risk)
        ],
        "changes": [change.to_dict() for change in order_changes_for_report(changes)],
    }


def render_report(
    report_format: str,
    summary: DiffSummary,
    changes: Sequence[ChangeRecord],
    old_spec_path: Optional[str] = None,
    new_spec_path: Optional[str] = None,
) -> str:
    """Render one report format to a string."""
    report_format = report_format.lower()
    if report_format == "text":
        return generate_text_report(summary, changes)
    if report_format in ("md", "markdown"):
        return generate_markdown_report(summary, changes)
    if report_format == "json":
        report = generate_json_report(summary, changes, old_spec_path, new_spec_path)
        return json.dumps(report, indent=2, ensure_ascii=False)
    raise ValueError(f"Unknown format '{report_format}'. Expected one of: {', '.join(REPORT_FORMATS)}")


def exit_code_for(changes: Iterable[ChangeRecord]) -> int:
    """0 when no Breaking record exists, 2 otherwise."""
    if any(change.severity == ChangeSeverity.BREAKING for change in changes):
        return ExitCode.BREAKING_CHANGES
    return ExitCode.OK


def write_reports(
    output_dir: Path,
    formats: Sequence[str],
    summary: DiffSummary,
    changes: Sequence[ChangeRecord],
    old_spec_path: Optional[str] = None,
    new_spec_path: Optional[str] = None,
    basename: str = "openapi.diff",
) -> List[Path]:
    """Write one ``<basename>.<ext>`` file per selected format."""
    for report_format in formats:
        if report_format.lower() not in REPORT_EXTENSIONS:
            raise ValueError(f"Unknown format '{report_format}'. Expected one of: {', '.join(REPORT_FORMATS)}")

    output_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for report_format in formats:
        content = render_report(report_format, summary, changes, old_spec_path, new_spec_path)
        report_path = output_dir / f"{basename}.{REPORT_EXTENSIONS[report_format.lower()]}"
        with open(report_path, 'w', encoding='utf-8') as f:
            f.write(content)
        written.append(report_path)
    return written


def run_diff(
    old_spec_path: Union[str, Path],
    new_spec_path: Union[str, Path],
    report_format: str = "text",
    output_path: Optional[Path] = None,
    return_content: bool = False,
    top_n: int = DEFAULT_TOP_N,
) -> Tuple[int, str, DiffSummary]:
    """
    Diff two contract files and render a report.

    Returns:
        Tuple of (exit_code, content_or_path, summary). With ``return_content``
        the rendered report is returned; otherwise it is written to
        ``output_path`` and that path is returned.
        Exit codes: 0 = no breaking changes, 2 = breaking changes present
    """
    if report_format.lower() not in REPORT_FORMATS:
        raise ValueError(f"Unknown format '{report_format}'. Expected one of: {', '.join(REPORT_FORMATS)}")

    spec_v1 = load_spec_from_path(old_spec_path)
    spec_v2 = load_spec_from_path(new_spec_path)
    changes = diff_specs(spec_v1, spec_v2)
    summary = build_summary(changes, top_n)
    exit_code = exit_code_for(changes)

    content = render_report(report_format, summary, changes, str(old_spec_path), str(new_spec_path))
    if return_content:
        return exit_code, content, summary

    if output_path is None:
        raise ValueError("output_path must be specified when return_content is False")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(content)
    return exit_code, str(output_path), summary
