"""openapi_report: semantic compatibility diff for OpenAPI contracts."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("openapi-report")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
# Note: diff is exported from openapi_report.api, not from root
# This avoids a name conflict with openapi_report.diff (report module)
from openapi_report.api import DiffResult, diff_changes
from openapi_report.codes import ExitCode
from openapi_report.kernel.changes import ChangeRecord, ChangeSeverity, DiffSummary
from openapi_report.kernel.parser import SpecParseError

__all__ = [
    "__version__",
    "diff_changes",
    "DiffResult",
    "ExitCode",
    "ChangeRecord",
    "ChangeSeverity",
    "DiffSummary",
    "SpecParseError",
]
