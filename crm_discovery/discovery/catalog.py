"""Catalog of logical CRM operations and their GraphQL/REST realizations."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from ..errors import UnknownOperationError


class OperationKind(Enum):
    """Access class of a catalog operation."""

    READ = "read"
    WRITE = "write"
    SEARCH = "search"


@dataclass(frozen=True)
class OperationSpec:
    """One logical CRM operation with both protocol realizations."""

    name: str
    kind: OperationKind
    graphql_document: str
    rest_method: str
    rest_path: str
    graphql_variables: Mapping[str, Any] = field(default_factory=dict)
    rest_body: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "graphql_variables", MappingProxyType(dict(self.graphql_variables)))
        if self.rest_body is not None:
            object.__setattr__(self, "rest_body", MappingProxyType(dict(self.rest_body)))

    @property
    def graphql_endpoint(self) -> str:
        return f"graphql/{self.name}"


class OperationCatalog(Mapping[str, OperationSpec]):
    """Read-only name to ``OperationSpec`` mapping.

    Unknown names raise ``UnknownOperationError``.
    """

    def __init__(self, operations: list[OperationSpec]) -> None:
        self._operations: dict[str, OperationSpec] = {}
        for operation in operations:
            if operation.name in self._operations:
                raise ValueError(f"Duplicate operation: {operation.name}")
            self._operations[operation.name] = operation

    def __getitem__(self, name: str) -> OperationSpec:
        try:
            return self._operations[name]
        except KeyError:
            raise UnknownOperationError(name) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def operations(self) -> list[OperationSpec]:
        """Get operations in catalog order."""
        return list(self._operations.values())

    def subset(self, names: list[str]) -> "OperationCatalog":
        """Build a catalog restricted to ``names``, in the given order."""
        return OperationCatalog([self[name] for name in names])


_PERSON_FIELDS = """
    id
    name { firstName lastName }
    email
"""

DEFAULT_OPERATIONS = [
    OperationSpec(
        name="list_contacts",
        kind=OperationKind.READ,
        graphql_document="""
query ListContacts {
  people {
    edges {
      node {%s    phone
        createdAt
      }
    }
  }
}
"""
        % _PERSON_FIELDS,
        rest_method="GET",
        rest_path="/rest/people",
    ),
    OperationSpec(
        name="get_contact",
        kind=OperationKind.READ,
        graphql_document="""
query GetContact($id: ID!) {
  person(id: $id) {%s  phone
    createdAt
    updatedAt
  }
}
"""
        % _PERSON_FIELDS,
        graphql_variables={"id": "1"},
        rest_method="GET",
        rest_path="/rest/people/1",
    ),
    OperationSpec(
        name="create_contact",
        kind=OperationKind.WRITE,
        graphql_document="""
mutation CreateContact($input: PersonInput!) {
  createPerson(input: $input) {%s}
}
"""
        % _PERSON_FIELDS,
        graphql_variables={"input": {"name": {"firstName": "Probe", "lastName": "Contact"}}},
        rest_method="POST",
        rest_path="/rest/people",
        rest_body={"name": {"firstName": "Probe", "lastName": "Contact"}},
    ),
    OperationSpec(
        name="update_contact",
        kind=OperationKind.WRITE,
        graphql_document="""
mutation UpdateContact($id: ID!, $input: PersonInput!) {
  updatePerson(id: $id, input: $input) {%s}
}
"""
        % _PERSON_FIELDS,
        graphql_variables={"id": "1", "input": {"jobTitle": "Probe"}},
        rest_method="PATCH",
        rest_path="/rest/people/1",
        rest_body={"jobTitle": "Probe"},
    ),
    OperationSpec(
        name="list_companies",
        kind=OperationKind.READ,
        graphql_document="""
query ListCompanies {
  companies {
    edges {
      node {
        id
        name
        domainName
        employees
        createdAt
      }
    }
  }
}
""",
        rest_method="GET",
        rest_path="/rest/companies",
    ),
    OperationSpec(
        name="search_all",
        kind=OperationKind.SEARCH,
        graphql_document="""
query SearchAll($searchText: String!) {
  searchResults(searchText: $searchText) {
    ... on Person {%s}
    ... on Company {
      id
      name
      domainName
    }
  }
}
"""
        % _PERSON_FIELDS,
        graphql_variables={"searchText": "test"},
        rest_method="GET",
        rest_path="/rest/search?q=test",
    ),
]

DEFAULT_CATALOG = OperationCatalog(DEFAULT_OPERATIONS)
