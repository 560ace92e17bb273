"""Guardrails to keep kernel free of side effects and OS-specific dependencies."""

import re
from pathlib import Path


FORBIDDEN_PATTERNS = {
    "argparse": re.compile(r"\bargparse\b"),
    "pathlib.Path": re.compile(r"\bpathlib\b"),
    "open(": re.compile(r"(?<![A-Za-z0-9_])open\s*\("),
    "print(": re.compile(r"(?<![A-Za-z0-9_])print\s*\("),
    "subprocess": re.compile(r"\bsubprocess\b"),
    "datetime.now": re.compile(r"\bdatetime\.now\b"),
    "time.time": re.compile(r"\btime\.time\b"),
    "os.path": re.compile(r"\bos\.path\b"),
}


def test_kernel_has_no_forbidden_tokens():
    kernel_dir = Path(__file__).resolve().parents[1] / "src" / "openapi_report" / "kernel"
    offenders = []

    for path in kernel_dir.glob("*.py"):
        contents = path.read_text(encoding="utf-8")
        for token, pattern in FORBIDDEN_PATTERNS.items():
            if pattern.search(contents):
                offenders.append(f"{path.name}: {token}")

    assert not offenders, "Forbidden kernel tokens found: " + ", ".join(offenders)


def test_kernel_does_not_import_outer_layers():
    kernel_dir = Path(__file__).resolve().parents[1] / "src" / "openapi_report" / "kernel"
    outer = re.compile(r"^\s*(from|import)\s+openapi_report\.(_internal|cli|snapshot|api|diff)\b", re.MULTILINE)

    offenders = [path.name for path in kernel_dir.glob("*.py") if outer.search(path.read_text(encoding="utf-8"))]

    assert not offenders, "Kernel modules import outer layers: " + ", ".join(offenders)
