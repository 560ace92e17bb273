"""Build an OpenApiSpec from a raw JSON contract document.

The parser is tolerant: missing sections become empty collections and
malformed entries are skipped. Only a document that cannot be decoded at all
is an error.
"""

import json
import logging
from json.decoder import JSONArray, JSONObject
from json.scanner import py_make_scanner
from typing import Any, Dict, List, Optional

from .spec import (
    HTTP_METHODS,
    MediaType,
    OpenApiSpec,
    Operation,
    Parameter,
    PathItem,
    RequestBody,
    Response,
    Schema,
)

logger = logging.getLogger(__name__)


class SpecParseError(ValueError):
    """Raised when a contract document cannot be decoded."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class _SourceNumber:
    """A JSON number kept as written (`1.50` stays `1.50`)."""

    __slots__ = ("source_text",)

    def __init__(self, source_text: str):
        self.source_text = source_text

    def __repr__(self) -> str:
        return self.source_text


class _SourceObject(dict):
    source_text: str


class _SourceArray(list):
    source_text: str


class _SourceTextDecoder(json.JSONDecoder):
    """JSON decoder whose numbers, arrays and objects remember their source text.

    Enum literals are compared textually, so `1.0` and `1.00` must stay distinct.
    """

    def __init__(self):
        super().__init__(parse_float=_SourceNumber, parse_int=_SourceNumber)
        self.parse_object = self._parse_object
        self.parse_array = self._parse_array
        # The C scanner ignores parse_object/parse_array overrides
        self.scan_once = py_make_scanner(self)

    @staticmethod
    def _parse_object(s_and_end, strict, scan_once, object_hook, object_pairs_hook, memo=None):
        text, start = s_and_end
        value, end = JSONObject(s_and_end, strict, scan_once, object_hook, object_pairs_hook, memo)
        result = _SourceObject(value)
        result.source_text = text[start - 1:end]
        return result, end

    @staticmethod
    def _parse_array(s_and_end, scan_once):
        text, start = s_and_end
        value, end = JSONArray(s_and_end, scan_once)
        result = _SourceArray(value)
        result.source_text = text[start - 1:end]
        return result, end


def parse_json(text: str, source: Optional[str] = None) -> OpenApiSpec:
    """Parse a contract document from JSON text."""
    try:
        document = _SourceTextDecoder().decode(text)
    except json.JSONDecodeError as e:
        raise SpecParseError(f"invalid JSON ({e})", source=source) from e
    return parse(document, source=source)


def parse(document: Any, source: Optional[str] = None) -> OpenApiSpec:
    """Parse an already-decoded contract document."""
    if not isinstance(document, dict):
        raise SpecParseError(
            f"top-level document must be a JSON object, got {type(document).__name__}",
            source=source,
        )

    paths: Dict[str, PathItem] = {}
    raw_paths = document.get("paths")
    if isinstance(raw_paths, dict):
        for path, raw_item in raw_paths.items():
            if not isinstance(raw_item, dict):
                continue
            operations: Dict[str, Operation] = {}
            for key, raw_operation in raw_item.items():
                if key.lower() not in HTTP_METHODS or not isinstance(raw_operation, dict):
                    continue
                operation = _parse_operation(path, key, raw_operation)
                operations[operation.method] = operation
            if operations:
                paths[path] = PathItem(operations=operations)

    schemas: Dict[str, Schema] = {}
    components = document.get("components")
    if isinstance(components, dict):
        raw_schemas = components.get("schemas")
        if isinstance(raw_schemas, dict):
            for name, raw_schema in raw_schemas.items():
                if isinstance(raw_schema, dict):
                    schemas[name] = _parse_schema(raw_schema)

    spec = OpenApiSpec(paths=paths, schemas=schemas)
    logger.debug(
        "Parsed %s: %d paths, %d operations, %d schemas",
        source or "document", len(spec.paths), spec.get_operation_count(), len(spec.schemas),
    )
    return spec


def _parse_operation(path: str, method: str, element: Dict[str, Any]) -> Operation:
    operation_id = element.get("operationId")
    if not isinstance(operation_id, str):
        operation_id = None

    tags: List[str] = []
    raw_tags = element.get("tags")
    if isinstance(raw_tags, list):
        tags = [tag for tag in raw_tags if isinstance(tag, str)]

    parameters: List[Parameter] = []
    raw_parameters = element.get("parameters")
    if isinstance(raw_parameters, list):
        for raw_parameter in raw_parameters:
            if not isinstance(raw_parameter, dict):
                continue
            parameter = _parse_parameter(raw_parameter)
            if parameter is not None:
                parameters.append(parameter)

    request_body = None
    raw_body = element.get("requestBody")
    if isinstance(raw_body, dict):
        request_body = RequestBody(
            required=raw_body.get("required") is True,
            content=_parse_content(raw_body.get("content")),
        )

    responses: Dict[str, Response] = {}
    raw_responses = element.get("responses")
    if isinstance(raw_responses, dict):
        for status_code, raw_response in raw_responses.items():
            if not isinstance(raw_response, dict):
                continue
            responses[status_code] = Response(
                status_code=status_code,
                content=_parse_content(raw_response.get("content")),
            )

    return Operation(
        method=method,
        path=path,
        operation_id=operation_id,
        tags=tags,
        parameters=parameters,
        request_body=request_body,
        responses=responses,
    )


def _parse_parameter(element: Dict[str, Any]) -> Optional[Parameter]:
    name = element.get("name")
    location = element.get("in")
    if not isinstance(name, str) or not isinstance(location, str):
        logger.debug("Dropping parameter without name/in: %r", element)
        return None

    raw_schema = element.get("schema")
    return Parameter(
        name=name,
        location=location,
        required=element.get("required") is True,
        schema=_parse_schema(raw_schema) if isinstance(raw_schema, dict) else None,
    )


def _parse_content(element: Any) -> Dict[str, MediaType]:
    content: Dict[str, MediaType] = {}
    if not isinstance(element, dict):
        return content
    for media_type, raw_media in element.items():
        if not isinstance(raw_media, dict):
            continue
        raw_schema = raw_media.get("schema")
        content[media_type] = MediaType(
            schema=_parse_schema(raw_schema) if isinstance(raw_schema, dict) else None
        )
    return content


def _parse_schema(element: Dict[str, Any]) -> Schema:
    # A $ref short-circuits everything else on the node
    ref = element.get("$ref")
    if isinstance(ref, str):
        return Schema(ref=ref)

    schema_type = element.get("type")
    schema_format = element.get("format")

    enum: List[str] = []
    raw_enum = element.get("enum")
    if isinstance(raw_enum, list):
        enum = [_enum_literal(value) for value in raw_enum]

    required: List[str] = []
    raw_required = element.get("required")
    if isinstance(raw_required, list):
        required = [name for name in raw_required if isinstance(name, str)]

    properties: Dict[str, Schema] = {}
    raw_properties = element.get("properties")
    if isinstance(raw_properties, dict):
        for name, raw_property in raw_properties.items():
            if isinstance(raw_property, dict):
                properties[name] = _parse_schema(raw_property)

    return Schema(
        type=schema_type if isinstance(schema_type, str) else None,
        format=schema_format if isinstance(schema_format, str) else None,
        properties=properties,
        required=frozenset(required),
        enum=tuple(enum),
    )


def _enum_literal(value: Any) -> str:
    """Raw textual form of an enum literal.

    Values decoded by `parse_json` carry their source text. Values from an
    already-decoded document fall back to compact JSON.
    """
    if isinstance(value, str):
        return value
    source_text = getattr(value, "source_text", None)
    if source_text is not None:
        return source_text
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
