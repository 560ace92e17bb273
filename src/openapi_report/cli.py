"""openapi-report CLI: diff, capture, snapshot-diff and init commands."""

import argparse
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path
from typing import List, Optional, Tuple

from openapi_report.codes import ExitCode


class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with 1, matching the rest of the exit contract."""

    def error(self, message):
        self.print_usage(sys.stderr)
        print(f"Error: {message}", file=sys.stderr)
        sys.exit(ExitCode.USAGE_ERROR)


def _split_formats(value: str) -> List[str]:
    formats: List[str] = []
    for item in value.split(","):
        item = item.strip().lower()
        if item and item not in formats:
            formats.append(item)
    return formats


def _parse_header(value: str) -> Optional[Tuple[str, str]]:
    """Split a `Key:Value` header argument; None if it has no key."""
    key, sep, header_value = value.partition(":")
    key = key.strip()
    if not sep or not key:
        return None
    return key, header_value.strip()


def _build_parser(package_version: str) -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="openapi-report",
        description="openapi-report: Semantic compatibility diff for OpenAPI contracts"
    )
    parser.add_argument("--version", action="version", version=f"openapi-report {package_version}")
    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output."
    )
    parent_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr."
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands", parser_class=_ArgumentParser)

    # diff command
    diff_parser = subparsers.add_parser(
        "diff",
        help="Diff two contract documents and report compatibility changes",
        parents=[parent_parser]
    )
    diff_parser.add_argument("old_spec", type=Path, help="Path to the old (before) contract document")
    diff_parser.add_argument("new_spec", type=Path, help="Path to the new (after) contract document")
    diff_parser.add_argument(
        "--format",
        dest="report_format",
        default="text",
        help="Report format: text, md, markdown or json (default: text)"
    )
    diff_parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Write the report to this file and print only the summary"
    )

    # capture command
    capture_parser = subparsers.add_parser(
        "capture",
        help="Capture the contract from a file in the tree or from a running service",
        parents=[parent_parser]
    )
    capture_parser.add_argument(
        "--mode",
        default=None,
        help="Capture mode: file or url (default: url when a URL is configured, else file)"
    )
    capture_parser.add_argument(
        "--out",
        "--output",
        dest="out",
        type=Path,
        default=None,
        help="File to write the captured contract to (defaults to \"output\" in the config)"
    )
    capture_parser.add_argument(
        "--spec-path",
        default=None,
        help="Contract file for file mode, relative to the current directory"
    )
    capture_parser.add_argument("--url", default=None, help="Contract URL for url mode")
    capture_parser.add_argument(
        "--header",
        action="append",
        default=[],
        metavar="KEY:VALUE",
        help="Request header for url mode; repeatable, overrides config headers"
    )
    capture_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to openapi-report.json (defaults to the current directory)"
    )
    capture_parser.add_argument(
        "--capture-command",
        nargs=argparse.REMAINDER,
        default=None,
        help="Command (and its arguments) that regenerates the contract file; must come last"
    )

    # snapshot-diff command
    snapshot_parser = subparsers.add_parser(
        "snapshot-diff",
        help="Capture the contract at two git refs and diff them",
        parents=[parent_parser]
    )
    snapshot_parser.add_argument("--base-ref", default=None, help="Git ref for the old contract")
    snapshot_parser.add_argument("--head-ref", default=None, help="Git ref for the new contract")
    snapshot_parser.add_argument(
        "--spec-path",
        default=None,
        help="Contract file path, relative to the repository root"
    )
    snapshot_parser.add_argument(
        "--capture-command",
        nargs=argparse.REMAINDER,
        default=None,
        help="Command (and its arguments) that regenerates the contract file; must come last"
    )
    snapshot_parser.add_argument("--workdir", type=Path, default=None, help="Directory for captured documents")
    snapshot_parser.add_argument(
        "--out-dir",
        type=Path,
        default=None,
        help="Report directory (defaults to <repo>/reports/openapi)"
    )
    snapshot_parser.add_argument("--project-name", default=None, help="Report sub-directory name")
    snapshot_parser.add_argument(
        "--formats",
        default=None,
        help="Comma-separated report formats (default: md,json)"
    )
    snapshot_parser.add_argument(
        "--fail-on-breaking",
        action="store_true",
        default=None,
        help="Exit with 2 when breaking changes are found"
    )
    snapshot_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to openapi-report.json (defaults to the repository root)"
    )

    # init command
    init_parser = subparsers.add_parser(
        "init",
        help="Write a starter openapi-report.json",
        parents=[parent_parser]
    )
    init_parser.add_argument(
        "--path",
        type=Path,
        default=None,
        help="Config file to create (defaults to ./openapi-report.json)"
    )
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing file")

    return parser


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(ExitCode.USAGE_ERROR)


def _command_diff(args) -> None:
    # Lazy import: only import the kernel when a diff is requested
    from .diff import REPORT_FORMATS, generate_summary_text, run_diff
    from .kernel.parser import SpecParseError

    report_format = args.report_format.lower()
    if report_format not in REPORT_FORMATS:
        _fail(f"Unknown format '{args.report_format}'. Expected one of: {', '.join(REPORT_FORMATS)}")

    if not args.old_spec.exists() or not args.new_spec.exists():
        _fail("one or both spec files do not exist.")

    try:
        if args.out is not None:
            exit_code, _, summary = run_diff(
                args.old_spec,
                args.new_spec,
                report_format=report_format,
                output_path=args.out.resolve(),
            )
            if not args.quiet:
                print(generate_summary_text(summary))
        else:
            exit_code, content, _ = run_diff(
                args.old_spec,
                args.new_spec,
                report_format=report_format,
                return_content=True,
            )
            if not args.quiet:
                print(content)
    except (SpecParseError, OSError, ValueError) as e:
        _fail(str(e))

    sys.exit(exit_code)


def _command_capture(args) -> None:
    from ._internal.capture import CAPTURE_MODES, CaptureError, CaptureOptions, capture_for_mode
    from ._internal.config import ConfigError, load_config_if_exists

    base_dir = Path.cwd()
    try:
        config = load_config_if_exists(args.config, base_dir)
    except ConfigError as e:
        _fail(str(e))

    url = args.url or (config.url if config else None)
    mode = (args.mode or (config.mode if config else None) or ("url" if url else "file")).lower()
    if mode not in CAPTURE_MODES:
        _fail(f"Unknown capture mode '{mode}'. Expected one of: {', '.join(CAPTURE_MODES)}")

    output_path = args.out or (Path(config.output) if config and config.output else None)
    if output_path is None:
        _fail("--out is required.")

    # Command-line headers override config headers with the same name
    headers = dict(config.headers or {}) if config else {}
    for value in args.header:
        parsed = _parse_header(value)
        if parsed is None:
            _fail("--header expects format 'Key:Value'.")
        headers[parsed[0]] = parsed[1]

    capture_command = args.capture_command or (config.capture_command if config else None)
    options = CaptureOptions(
        spec_path=args.spec_path or (config.spec_path if config else None),
        capture_command=list(capture_command or []),
        url=url,
        headers=headers,
    )

    try:
        capture_for_mode(mode).capture(options, base_dir, output_path)
    except (CaptureError, OSError) as e:
        _fail(str(e))

    if not args.quiet:
        print(f"Captured OpenAPI spec to {output_path}.")
    sys.exit(ExitCode.OK)


def _command_snapshot_diff(args) -> None:
    from ._internal.capture import CaptureError, CaptureOptions
    from ._internal.config import ConfigError, SnapshotDiffConfig, load_config_if_exists
    from ._internal.git import GitError, ProcessGitClient
    from .kernel.parser import SpecParseError
    from .snapshot import DEFAULT_FORMATS, SnapshotDiffOptions, run_snapshot_diff

    git_client = ProcessGitClient()
    try:
        repo_root = git_client.repository_root()
        config = load_config_if_exists(args.config, repo_root)
    except (GitError, ConfigError) as e:
        _fail(str(e))

    section = (config.snapshot_diff if config else None) or SnapshotDiffConfig()

    # Command-line values override the config file
    base_ref = args.base_ref or section.base_ref
    head_ref = args.head_ref or section.head_ref
    if not base_ref or not head_ref:
        _fail("--base-ref and --head-ref are required.")

    spec_path = args.spec_path or section.spec_path or (config.spec_path if config else None)
    if not spec_path:
        _fail("--spec-path is required.")

    capture_command = args.capture_command or section.capture_command or (
        config.capture_command if config else None
    )
    formats = _split_formats(args.formats) if args.formats else (section.formats or list(DEFAULT_FORMATS))
    work_dir = args.workdir or (Path(section.work_dir) if section.work_dir else None)
    out_dir = args.out_dir or (Path(section.out_dir) if section.out_dir else None)
    if out_dir is not None and not out_dir.is_absolute():
        out_dir = repo_root / out_dir
    fail_on_breaking = args.fail_on_breaking if args.fail_on_breaking is not None else bool(section.fail_on_breaking)

    options = SnapshotDiffOptions(
        base_ref=base_ref,
        head_ref=head_ref,
        capture=CaptureOptions(spec_path=spec_path, capture_command=list(capture_command or [])),
        work_dir=work_dir,
        out_dir=out_dir,
        project_name=args.project_name or section.project_name,
        formats=formats,
        fail_on_breaking=fail_on_breaking,
    )

    try:
        outcome = run_snapshot_diff(options, git_client=git_client)
    except (GitError, CaptureError, SpecParseError, OSError, ValueError) as e:
        _fail(str(e))

    if not args.quiet:
        print(outcome.summary_text)
        for report_path in outcome.report_paths:
            print(f"  Report: {report_path}")
    sys.exit(outcome.exit_code)


def _command_init(args) -> None:
    from ._internal.config import CONFIG_FILENAME, default_config, dump_config

    config_path: Path = args.path or (Path.cwd() / CONFIG_FILENAME)
    if config_path.exists() and not args.force:
        _fail(f"{config_path} already exists (use --force to overwrite).")

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(dump_config(default_config()), encoding="utf-8")
    if not args.quiet:
        print(f"[OK] Wrote {config_path}")
    sys.exit(ExitCode.OK)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point for openapi-report commands."""
    try:
        package_version = get_version("openapi-report")
    except PackageNotFoundError:
        package_version = "dev"

    parser = _build_parser(package_version)
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(ExitCode.USAGE_ERROR)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if args.command == "diff":
        _command_diff(args)
    elif args.command == "capture":
        _command_capture(args)
    elif args.command == "snapshot-diff":
        _command_snapshot_diff(args)
    elif args.command == "init":
        _command_init(args)


if __name__ == "__main__":
    main()
