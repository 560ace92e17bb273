"""Pydantic models for the in-memory contract document."""

from typing import Dict, FrozenSet, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


HTTP_METHODS = frozenset({"get", "post", "put", "delete", "patch", "options", "head", "trace"})


class Schema(BaseModel):
    """A schema node: either an opaque reference or a structural description.

    References are never resolved. A node with ``ref`` set carries nothing else.
    """
    ref: Optional[str] = None
    type: Optional[str] = None
    format: Optional[str] = None
    properties: Dict[str, "Schema"] = Field(default_factory=dict)
    required: FrozenSet[str] = Field(default_factory=frozenset)
    enum: Tuple[str, ...] = ()  # Raw literal text, declaration order

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def is_ref(self) -> bool:
        return bool(self.ref and self.ref.strip())


class MediaType(BaseModel):
    schema_: Optional[Schema] = Field(None, alias="schema")

    model_config = {"frozen": True, "extra": "forbid", "populate_by_name": True}


class Parameter(BaseModel):
    """An operation parameter. Identity is (name, location), case-insensitive."""
    name: str
    location: str  # query, header, path, cookie
    required: bool = False
    schema_: Optional[Schema] = Field(None, alias="schema")

    model_config = {"frozen": True, "extra": "forbid", "populate_by_name": True}

    @property
    def key(self) -> str:
        return f"{self.name}:{self.location}".lower()


class RequestBody(BaseModel):
    required: bool = False
    content: Dict[str, MediaType] = Field(default_factory=dict)

    model_config = {"frozen": True, "extra": "forbid"}


class Response(BaseModel):
    status_code: str
    content: Dict[str, MediaType] = Field(default_factory=dict)

    model_config = {"frozen": True, "extra": "forbid"}


class Operation(BaseModel):
    """A single HTTP operation under a path."""
    method: str
    path: str
    operation_id: Optional[str] = None
    tags: Tuple[str, ...] = ()
    parameters: Tuple[Parameter, ...] = ()
    request_body: Optional[RequestBody] = None
    responses: Dict[str, Response] = Field(default_factory=dict)

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Canonicalize the method token to lower case and reject non-HTTP verbs."""
        method = v.lower()
        if method not in HTTP_METHODS:
            raise ValueError(f"'{v}' is not a canonical HTTP method")
        return method

    @property
    def endpoint(self) -> str:
        return f"{self.method.upper()} {self.path}"

    @property
    def primary_tag(self) -> str:
        return self.tags[0] if self.tags else "untagged"


class PathItem(BaseModel):
    """Operations under one path, keyed by lower-cased method."""
    operations: Dict[str, Operation] = Field(default_factory=dict)

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("operations")
    @classmethod
    def validate_operations(cls, v: Dict[str, Operation]) -> Dict[str, Operation]:
        return {method.lower(): operation for method, operation in v.items()}

    def get_operation(self, method: str) -> Optional[Operation]:
        """Case-insensitive operation lookup."""
        return self.operations.get(method.lower())


class OpenApiSpec(BaseModel):
    """A parsed contract document.

    Path and schema-name keys are case-sensitive. Built once per parse and
    never mutated afterwards.
    """
    paths: Dict[str, PathItem] = Field(default_factory=dict)
    schemas: Dict[str, Schema] = Field(default_factory=dict)

    model_config = {"frozen": True, "extra": "forbid"}

    def get_operation_count(self) -> int:
        return sum(len(item.operations) for item in self.paths.values())
