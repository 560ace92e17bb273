"""Semantic diff between two contract documents."""

import logging
from typing import Dict, Iterable, List, Optional

from .changes import ChangeRecord, ChangeSeverity
from .spec import MediaType, OpenApiSpec, Operation, PathItem, Schema

logger = logging.getLogger(__name__)

COMPONENTS_TAG = "components"


def diff_specs(spec_v1: OpenApiSpec, spec_v2: OpenApiSpec) -> List[ChangeRecord]:
    """
    Compute the classified change list between two specs.

    Paths and component schemas are compared independently and the results are
    sorted by severity rank, tag, endpoint, then title. The sort is stable, so
    records with equal keys keep the order they were produced in.
    """
    changes: List[ChangeRecord] = []

    _compare_paths(spec_v1, spec_v2, changes)
    _compare_component_schemas(spec_v1, spec_v2, changes)

    logger.debug("Semantic diff produced %d change records", len(changes))
    return sort_changes(changes)


def sort_changes(changes: Iterable[ChangeRecord]) -> List[ChangeRecord]:
    """Canonical order: severity rank, tag, endpoint, title (ordinal)."""
    return sorted(
        changes,
        key=lambda change: (change.severity.rank, change.tag, change.endpoint, change.title),
    )


def describe_schema(schema: Optional[Schema]) -> str:
    """Canonical descriptor used for the "schema changed" test.

    ``$ref:<ref>`` for references, ``<type>:<format>`` when a format is present,
    else the type (``object`` if absent). A missing schema is ``none``.
    """
    if schema is None:
        return "none"
    if schema.is_ref:
        return f"$ref:{schema.ref}"
    if schema.format and schema.format.strip():
        return f"{schema.type or ''}:{schema.format}"
    return schema.type if schema.type is not None else "object"


def schema_type_changed(old: Optional[Schema], new: Optional[Schema]) -> bool:
    # Descriptor comparison only; nested structure and ref targets are not inspected
    return describe_schema(old) != describe_schema(new)


def calculate_risk(severity: ChangeSeverity, tags: Iterable[str]) -> int:
    """Base score per severity, +10 when any tag mentions "public"."""
    score = severity.base_risk
    if any("public" in tag.lower() for tag in tags):
        score += 10
    return score


def _operation_change(
    operation: Operation,
    severity: ChangeSeverity,
    title: str,
    pointer: str,
    before: str,
    after: str,
    meaning: str,
    suggested_action: str,
) -> ChangeRecord:
    return ChangeRecord(
        severity=severity,
        risk_score=calculate_risk(severity, operation.tags),
        tag=operation.primary_tag,
        endpoint=operation.endpoint,
        pointer=pointer,
        title=title,
        before=before,
        after=after,
        meaning=meaning,
        suggested_action=suggested_action,
    )


def _schema_change(
    schema_name: str,
    severity: ChangeSeverity,
    title: str,
    pointer: str,
    before: str,
    after: str,
    meaning: str,
    suggested_action: str,
) -> ChangeRecord:
    return ChangeRecord(
        severity=severity,
        risk_score=calculate_risk(severity, [COMPONENTS_TAG]),
        tag=COMPONENTS_TAG,
        endpoint=f"components.schemas.{schema_name}",
        pointer=pointer,
        title=title,
        before=before,
        after=after,
        meaning=meaning,
        suggested_action=suggested_action,
    )


def _operation_removed(path: str, operation: Operation) -> ChangeRecord:
    return _operation_change(
        operation,
        ChangeSeverity.BREAKING,
        "Operation removed",
        f"paths.{path}.{operation.method}",
        "present",
        "missing",
        "This endpoint is no longer available for consumers.",
        "Update clients or remove usage of this endpoint.",
    )


def _operation_added(path: str, operation: Operation) -> ChangeRecord:
    return _operation_change(
        operation,
        ChangeSeverity.ADDITIVE,
        "Operation added",
        f"paths.{path}.{operation.method}",
        "missing",
        "present",
        "A new endpoint is available for consumers.",
        "Document and monitor adoption for this endpoint.",
    )


def _compare_paths(spec_v1: OpenApiSpec, spec_v2: OpenApiSpec, changes: List[ChangeRecord]) -> None:
    for path, old_item in spec_v1.paths.items():
        new_item = spec_v2.paths.get(path)
        if new_item is None:
            for operation in old_item.operations.values():
                changes.append(_operation_removed(path, operation))
            continue
        _compare_operations(path, old_item, new_item, changes)

    for path, new_item in spec_v2.paths.items():
        if path in spec_v1.paths:
            continue
        for operation in new_item.operations.values():
            changes.append(_operation_added(path, operation))


def _compare_operations(path: str, old_item: PathItem, new_item: PathItem, changes: List[ChangeRecord]) -> None:
    for method, old_operation in old_item.operations.items():
        new_operation = new_item.get_operation(method)
        if new_operation is None:
            changes.append(_operation_removed(path, old_operation))
            continue

        _compare_parameters(path, old_operation, new_operation, changes)
        _compare_request_body(path, old_operation, new_operation, changes)
        _compare_responses(path, old_operation, new_operation, changes)

    for method, new_operation in new_item.operations.items():
        if old_item.get_operation(method) is not None:
            continue
        changes.append(_operation_added(path, new_operation))


def _compare_parameters(path: str, old_operation: Operation, new_operation: Operation, changes: List[ChangeRecord]) -> None:
    # Keyed by lower-cased "name:in"; a later duplicate wins
    old_params = {param.key: param for param in old_operation.parameters}
    new_params = {param.key: param for param in new_operation.parameters}
    prefix = f"paths.{path}.{new_operation.method}.parameters"

    for key, old_param in old_params.items():
        new_param = new_params.get(key)
        if new_param is None:
            changes.append(_operation_change(
                old_operation,
                ChangeSeverity.BREAKING,
                "Parameter removed",
                f"paths.{path}.{old_operation.method}.parameters[{old_param.name}]",
                old_param.name,
                "missing",
                "Clients that relied on this parameter can no longer send it.",
                "Remove the parameter from client requests.",
            ))
            continue

        if not old_param.required and new_param.required:
            changes.append(_operation_change(
                new_operation,
                ChangeSeverity.BREAKING,
                "Parameter became required",
                f"{prefix}[{new_param.name}].required",
                "false",
                "true",
                "Clients must now supply this parameter for requests to succeed.",
                "Ensure clients send the parameter before deployment.",
            ))
        elif old_param.required and not new_param.required:
            changes.append(_operation_change(
                new_operation,
                ChangeSeverity.ADDITIVE,
                "Parameter requirement relaxed",
                f"{prefix}[{new_param.name}].required",
                "true",
                "false",
                "Clients may omit this parameter without failing validation.",
                "Optionally update documentation to reflect optional usage.",
            ))

        if schema_type_changed(old_param.schema_, new_param.schema_):
            changes.append(_operation_change(
                new_operation,
                ChangeSeverity.BREAKING,
                "Parameter schema changed",
                f"{prefix}[{new_param.name}].schema",
                describe_schema(old_param.schema_),
                describe_schema(new_param.schema_),
                "The parameter value type is incompatible with previous clients.",
                "Update clients to match the new parameter type.",
            ))

    for key, new_param in new_params.items():
        if key in old_params:
            continue
        if new_param.required:
            changes.append(_operation_change(
                new_operation,
                ChangeSeverity.RISKY,
                "Required parameter added",
                f"{prefix}[{new_param.name}].required",
                "missing",
                "true",
                "Clients must send this new parameter or their requests will fail.",
                "Communicate the new required parameter before rollout.",
            ))
        else:
            changes.append(_operation_change(
                new_operation,
                ChangeSeverity.ADDITIVE,
                "Optional parameter added",
                f"{prefix}[{new_param.name}]",
                "missing",
                "present",
                "Clients can optionally send a new parameter.",
                "Document the new optional parameter for consumers.",
            ))


def _compare_request_body(path: str, old_operation: Operation, new_operation: Operation, changes: List[ChangeRecord]) -> None:
    old_body = old_operation.request_body
    new_body = new_operation.request_body

    if old_body is None and new_body is None:
        return

    if old_body is None:
        changes.append(_operation_change(
            new_operation,
            ChangeSeverity.ADDITIVE,
            "Request body added",
            f"paths.{path}.{new_operation.method}.requestBody",
            "missing",
            "present",
            "Clients can now send a request body.",
            "Document the new request body for consumers.",
        ))
        return

    if new_body is None:
        changes.append(_operation_change(
            old_operation,
            ChangeSeverity.BREAKING,
            "Request body removed",
            f"paths.{path}.{old_operation.method}.requestBody",
            "present",
            "missing",
            "Clients that sent request bodies will no longer be accepted.",
            "Update clients to remove request bodies.",
        ))
        return

    if not old_body.required and new_body.required:
        changes.append(_operation_change(
            new_operation,
            ChangeSeverity.BREAKING,
            "Request body became required",
            f"paths.{path}.{new_operation.method}.requestBody.required",
            "false",
            "true",
            "Clients must send a request body for this operation.",
            "Ensure clients send a request body before deployment.",
        ))
    elif old_body.required and not new_body.required:
        changes.append(_operation_change(
            new_operation,
            ChangeSeverity.ADDITIVE,
            "Request body became optional",
            f"paths.{path}.{new_operation.method}.requestBody.required",
            "true",
            "false",
            "Clients may omit the request body without failing validation.",
            "Optionally update documentation for the optional body.",
        ))

    _compare_content_types(path, new_operation, "requestBody", old_body.content, new_body.content, changes)


def _compare_responses(path: str, old_operation: Operation, new_operation: Operation, changes: List[ChangeRecord]) -> None:
    for status_code, old_response in old_operation.responses.items():
        new_response = new_operation.responses.get(status_code)
        if new_response is None:
            changes.append(_operation_change(
                old_operation,
                ChangeSeverity.BREAKING,
                "Response status removed",
                f"paths.{path}.{old_operation.method}.responses[{status_code}]",
                "present",
                "missing",
                "Clients can no longer receive this status code.",
                "Update client handling for the removed status code.",
            ))
            continue

        _compare_content_types(
            path, new_operation, f"responses[{status_code}]", old_response.content, new_response.content, changes
        )

    for status_code in new_operation.responses:
        if status_code in old_operation.responses:
            continue
        changes.append(_operation_change(
            new_operation,
            ChangeSeverity.ADDITIVE,
            "Response status added",
            f"paths.{path}.{new_operation.method}.responses[{status_code}]",
            "missing",
            "present",
            "Clients may receive a new response status code.",
            "Update client handling if the new status code is relevant.",
        ))


def _compare_content_types(
    path: str,
    operation: Operation,
    pointer_root: str,
    old_content: Dict[str, MediaType],
    new_content: Dict[str, MediaType],
    changes: List[ChangeRecord],
) -> None:
    """Shared by request bodies and responses; records attach to ``operation``."""
    prefix = f"paths.{path}.{operation.method}.{pointer_root}"

    for content_type, old_media in old_content.items():
        new_media = new_content.get(content_type)
        if new_media is None:
            changes.append(_operation_change(
                operation,
                ChangeSeverity.BREAKING,
                "Content type removed",
                f"{prefix}.content[{content_type}]",
                "present",
                "missing",
                "Clients can no longer send or receive this content type.",
                "Update clients to use supported content types.",
            ))
            continue

        if schema_type_changed(old_media.schema_, new_media.schema_):
            changes.append(_operation_change(
                operation,
                ChangeSeverity.BREAKING,
                "Schema changed",
                f"{prefix}.content[{content_type}].schema",
                describe_schema(old_media.schema_),
                describe_schema(new_media.schema_),
                "The payload schema is incompatible with previous clients.",
                "Update clients to match the new payload schema.",
            ))

    for content_type in new_content:
        if content_type in old_content:
            continue
        changes.append(_operation_change(
            operation,
            ChangeSeverity.ADDITIVE,
            "Content type added",
            f"{prefix}.content[{content_type}]",
            "missing",
            "present",
            "A new content type is supported.",
            "Document the new content type for consumers.",
        ))


def _compare_component_schemas(spec_v1: OpenApiSpec, spec_v2: OpenApiSpec, changes: List[ChangeRecord]) -> None:
    # Schemas present on only one side are not analyzed
    for name, old_schema in spec_v1.schemas.items():
        new_schema = spec_v2.schemas.get(name)
        if new_schema is None:
            continue
        _compare_schema_details(name, old_schema, new_schema, changes)


def _compare_schema_details(name: str, old_schema: Schema, new_schema: Schema, changes: List[ChangeRecord]) -> None:
    prefix = f"components.schemas.{name}"

    for prop_name, old_prop in old_schema.properties.items():
        new_prop = new_schema.properties.get(prop_name)
        if new_prop is None:
            changes.append(_schema_change(
                name,
                ChangeSeverity.BREAKING,
                "Schema property removed",
                f"{prefix}.properties.{prop_name}",
                "present",
                "missing",
                "Clients relying on this property will no longer receive it.",
                "Remove or replace usage of the removed property.",
            ))
            continue

        if schema_type_changed(old_prop, new_prop):
            changes.append(_schema_change(
                name,
                ChangeSeverity.BREAKING,
                "Schema property type changed",
                f"{prefix}.properties.{prop_name}.schema",
                describe_schema(old_prop),
                describe_schema(new_prop),
                "The property type is incompatible with previous payloads.",
                "Update clients to match the new property type.",
            ))

        _compare_enums(name, prop_name, old_prop, new_prop, changes)

    for prop_name in new_schema.properties:
        if prop_name in old_schema.properties:
            continue
        if prop_name in new_schema.required:
            changes.append(_schema_change(
                name,
                ChangeSeverity.RISKY,
                "Required schema property added",
                f"{prefix}.properties.{prop_name}",
                "missing",
                "present",
                "Clients must now supply this property in payloads.",
                "Ensure clients populate the new required property.",
            ))
        else:
            changes.append(_schema_change(
                name,
                ChangeSeverity.ADDITIVE,
                "Optional schema property added",
                f"{prefix}.properties.{prop_name}",
                "missing",
                "present",
                "Clients may include this new property in payloads.",
                "Document the new optional property for consumers.",
            ))

    # required is a set; iterate sorted so output does not depend on hash order
    for prop_name in sorted(new_schema.required - old_schema.required):
        if prop_name in old_schema.properties:
            changes.append(_schema_change(
                name,
                ChangeSeverity.RISKY,
                "Schema property became required",
                f"{prefix}.required[{prop_name}]",
                "optional",
                "required",
                "Payloads must now include this property to validate.",
                "Ensure clients always include the required property.",
            ))

    for prop_name in sorted(old_schema.required - new_schema.required):
        if prop_name in new_schema.properties:
            changes.append(_schema_change(
                name,
                ChangeSeverity.COSMETIC,
                "Schema property became optional",
                f"{prefix}.required[{prop_name}]",
                "required",
                "optional",
                "Payloads may omit this property without validation errors.",
                "Optionally update documentation for optional usage.",
            ))

    _compare_enums(name, None, old_schema, new_schema, changes)


def _compare_enums(
    schema_name: str,
    property_name: Optional[str],
    old_schema: Schema,
    new_schema: Schema,
    changes: List[ChangeRecord],
) -> None:
    if not old_schema.enum and not new_schema.enum:
        return

    new_values = set(new_schema.enum)
    old_values = set(old_schema.enum)
    removed = [value for value in old_schema.enum if value not in new_values]
    added = [value for value in new_schema.enum if value not in old_values]
    if not removed and not added:
        return

    if property_name is None:
        pointer = f"components.schemas.{schema_name}.enum"
    else:
        pointer = f"components.schemas.{schema_name}.properties.{property_name}.enum"
    before = ", ".join(old_schema.enum)
    after = ", ".join(new_schema.enum)

    if removed:
        changes.append(_schema_change(
            schema_name,
            ChangeSeverity.BREAKING,
            "Enum values removed",
            pointer,
            before,
            after,
            "Clients sending removed enum values will fail validation.",
            "Update clients to use supported enum values.",
        ))

    if added:
        changes.append(_schema_change(
            schema_name,
            ChangeSeverity.ADDITIVE,
            "Enum values added",
            pointer,
            before,
            after,
            "Clients may encounter new enum values.",
            "Update clients to handle the new enum values.",
        ))
