"""GraphQL schema introspection and classification.

Parses an introspection result into a typed schema graph and classifies
its fields into:
- Custom fields (``custom_`` prefix or ``Custom`` marker)
- Relationships (list-typed or connection-style fields)
- Data types (top-level scalar and enum types)

Schema analysis is best-effort: any failure yields an empty analysis with
version ``unknown``.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from ..errors import SchemaParseError
from .transport import GraphQLTransport

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"

INTROSPECTION_QUERY = """
query IntrospectionQuery {
  __schema {
    types {
      name
      kind
      fields {
        name
        type {
          name
          kind
          ofType {
            name
            kind
            ofType {
              name
              kind
            }
          }
        }
      }
    }
  }
}
"""


class TypeKind(Enum):
    """GraphQL ``__TypeKind`` values."""

    SCALAR = "SCALAR"
    OBJECT = "OBJECT"
    INTERFACE = "INTERFACE"
    UNION = "UNION"
    ENUM = "ENUM"
    INPUT_OBJECT = "INPUT_OBJECT"
    LIST = "LIST"
    NON_NULL = "NON_NULL"


@dataclass(frozen=True)
class TypeRef:
    """Reference to a type, possibly wrapped in LIST / NON_NULL."""

    kind: TypeKind
    name: str | None = None
    of_type: "TypeRef | None" = None

    @property
    def is_list(self) -> bool:
        """Check for a list type, looking through NON_NULL wrappers."""
        ref: TypeRef | None = self
        while ref is not None:
            if ref.kind == TypeKind.LIST:
                return True
            if ref.kind != TypeKind.NON_NULL:
                return False
            ref = ref.of_type
        return False

    @property
    def named_type(self) -> str | None:
        """Name of the innermost named type."""
        ref: TypeRef | None = self
        while ref is not None:
            if ref.name:
                return ref.name
            ref = ref.of_type
        return None


@dataclass(frozen=True)
class SchemaField:
    """A field on an object, interface or input type."""

    name: str
    type: TypeRef | None = None


@dataclass(frozen=True)
class SchemaType:
    """A named type from the introspected schema."""

    name: str
    kind: TypeKind
    fields: tuple[SchemaField, ...] = ()


@dataclass(frozen=True)
class SchemaGraph:
    """Read-only snapshot of the introspected type list."""

    types: tuple[SchemaType, ...] = ()
    version: str = UNKNOWN_VERSION


@dataclass(frozen=True)
class SchemaAnalysis:
    """Classified schema facts."""

    custom_fields: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    relationships: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    data_types: tuple[str, ...] = ()
    schema_version: str = UNKNOWN_VERSION

    def __post_init__(self) -> None:
        for name in ("custom_fields", "relationships"):
            entries = {k: MappingProxyType(dict(v)) for k, v in getattr(self, name).items()}
            object.__setattr__(self, name, MappingProxyType(entries))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "customFields": {k: dict(v) for k, v in self.custom_fields.items()},
            "relationships": {k: dict(v) for k, v in self.relationships.items()},
            "dataTypes": list(self.data_types),
            "schemaVersion": self.schema_version,
        }


def _parse_kind(value: Any) -> TypeKind:
    try:
        return TypeKind(value)
    except ValueError as e:
        raise SchemaParseError(f"Unknown type kind: {value!r}") from e


def _parse_type_ref(data: Any) -> TypeRef | None:
    if data is None:
        return None
    if not isinstance(data, dict):
        raise SchemaParseError(f"Malformed type reference: {data!r}")
    return TypeRef(
        kind=_parse_kind(data.get("kind")),
        name=data.get("name"),
        of_type=_parse_type_ref(data.get("ofType")),
    )


def parse_schema(data: Any) -> SchemaGraph:
    """Build a ``SchemaGraph`` from an introspection ``data`` payload.

    Args:
        data: The ``data`` member of the introspection response

    Returns:
        Parsed schema graph

    Raises:
        SchemaParseError: Payload is missing ``__schema`` or malformed
    """
    if not isinstance(data, dict) or not isinstance(data.get("__schema"), dict):
        raise SchemaParseError("Introspection result has no __schema")

    schema = data["__schema"]
    raw_types = schema.get("types") or []
    if not isinstance(raw_types, list):
        raise SchemaParseError("__schema.types is not a list")

    types = []
    for raw in raw_types:
        if not isinstance(raw, dict) or not raw.get("name"):
            raise SchemaParseError(f"Malformed type entry: {raw!r}")

        fields = []
        for raw_field in raw.get("fields") or []:
            if not isinstance(raw_field, dict) or not raw_field.get("name"):
                raise SchemaParseError(f"Malformed field on {raw['name']}")
            fields.append(
                SchemaField(name=raw_field["name"], type=_parse_type_ref(raw_field.get("type"))),
            )

        types.append(
            SchemaType(name=raw["name"], kind=_parse_kind(raw.get("kind")), fields=tuple(fields)),
        )

    return SchemaGraph(types=tuple(types), version=schema.get("version") or UNKNOWN_VERSION)


def is_custom_field(name: str) -> bool:
    return name.startswith("custom_") or "Custom" in name


def classify_relationship(schema_field: SchemaField) -> str | None:
    """Get the relation type of a field, or None if it is not a relationship."""
    ref = schema_field.type
    if ref is not None and ref.is_list:
        return "one-to-many"
    if schema_field.name.endswith("Connection"):
        return "connection"
    if ref is not None and (ref.named_type or "").endswith("Connection"):
        return "connection"
    return None


def analyze_graph(graph: SchemaGraph) -> SchemaAnalysis:
    """Classify the fields and types of a schema graph."""
    custom_fields: dict[str, dict[str, str]] = {}
    relationships: dict[str, dict[str, str]] = {}
    data_types: dict[str, None] = {}

    for schema_type in graph.types:
        if schema_type.kind in (TypeKind.SCALAR, TypeKind.ENUM):
            data_types.setdefault(schema_type.name, None)
        elif schema_type.kind in (TypeKind.OBJECT, TypeKind.INTERFACE, TypeKind.INPUT_OBJECT):
            for schema_field in schema_type.fields:
                key = f"{schema_type.name}.{schema_field.name}"
                ref = schema_field.type
                target = (ref.named_type if ref else None) or "unknown"

                if is_custom_field(schema_field.name):
                    custom_fields[key] = {
                        "type": target,
                        "kind": ref.kind.value if ref else "unknown",
                    }

                relation = classify_relationship(schema_field)
                if relation:
                    relationships[key] = {"targetType": target, "relationType": relation}
        elif schema_type.kind in (TypeKind.UNION, TypeKind.LIST, TypeKind.NON_NULL):
            continue
        else:
            raise SchemaParseError(f"Unhandled type kind: {schema_type.kind}")

    return SchemaAnalysis(
        custom_fields=custom_fields,
        relationships=relationships,
        data_types=tuple(data_types),
        schema_version=graph.version,
    )


class SchemaAnalyzer:
    """Run an introspection query and classify the result."""

    def __init__(self, graphql: GraphQLTransport) -> None:
        self.graphql = graphql

    async def analyze(self) -> SchemaAnalysis:
        """Introspect the remote schema.

        Returns:
            Schema analysis, or an empty analysis if introspection failed
        """
        logger.info("Analyzing schema structure...")
        try:
            data = await self.graphql.execute(INTROSPECTION_QUERY)
            graph = parse_schema(data)
            analysis = analyze_graph(graph)
        except Exception as e:
            logger.warning("Schema analysis failed: %s", e)
            return SchemaAnalysis()

        logger.info(
            "Schema: %d types, %d custom fields, %d relationships",
            len(graph.types),
            len(analysis.custom_fields),
            len(analysis.relationships),
        )
        return analysis
