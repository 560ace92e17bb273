"""Load contract documents from disk."""

from pathlib import Path
from typing import Union

from openapi_report.kernel.parser import SpecParseError, parse_json
from openapi_report.kernel.spec import OpenApiSpec


def load_spec_from_path(path: Union[str, Path]) -> OpenApiSpec:
    """Read and parse a JSON contract document (a UTF-8 BOM is tolerated)."""
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8-sig') as f:
            text = f.read()
    except UnicodeDecodeError as e:
        raise SpecParseError(f"not valid UTF-8 ({e})", source=str(path)) from e
    return parse_json(text, source=str(path))
