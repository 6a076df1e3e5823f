"""
Operation Registry

Each domain module contributes an ``OperationSet`` of query and mutation
resolvers. The registry merges them into one dispatch table per root type and
builds the strawberry schema from it, refusing duplicated operation names at
startup.
"""

import inspect
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Type

import strawberry
import structlog
from strawberry.extensions import SchemaExtension
from strawberry.schema.config import StrawberryConfig
from strawberry.types.scalar import ScalarDefinition

from mediatrack.serving.api.types import SCALAR_MAP

logger = structlog.get_logger(__name__)

Resolver = Callable[..., object]


class OperationCollisionError(RuntimeError):
    """Two operation sets define the same operation name"""


class OperationSet:
    """
    Named group of resolvers owned by one domain.

    Example:
        operations = OperationSet("books")

        @operations.query
        async def book_items(info: Info) -> List[MediaItem]:
            ...
    """

    def __init__(self, name: str):
        self.name = name
        self.queries: Dict[str, Resolver] = {}
        self.mutations: Dict[str, Resolver] = {}

    def _add(self, table: Dict[str, Resolver], resolver: Resolver) -> Resolver:
        name = resolver.__name__
        if name in table:
            raise OperationCollisionError(f"{self.name} defines {name!r} twice")
        table[name] = resolver
        return resolver

    def query(self, resolver: Resolver) -> Resolver:
        return self._add(self.queries, resolver)

    def mutation(self, resolver: Resolver) -> Resolver:
        return self._add(self.mutations, resolver)


class OperationRegistry:
    """Merges operation sets into the query and mutation roots."""

    def __init__(self):
        self._queries: Dict[str, Tuple[str, Resolver]] = {}
        self._mutations: Dict[str, Tuple[str, Resolver]] = {}
        self.sets: List[str] = []

    def register(self, operations: OperationSet) -> None:
        """
        Add an operation set.

        Raises:
            OperationCollisionError: a name is already owned by another set;
                nothing from ``operations`` is registered in that case
        """
        if operations.name in self.sets:
            raise OperationCollisionError(f"Operation set {operations.name!r} registered twice")

        clashes = [
            f"{name} ({table[name][0]} / {operations.name})"
            for table, own in ((self._queries, operations.queries), (self._mutations, operations.mutations))
            for name in own
            if name in table
        ]
        if clashes:
            raise OperationCollisionError(f"Duplicate operations: {', '.join(clashes)}")

        for name, resolver in operations.queries.items():
            self._queries[name] = (operations.name, resolver)
        for name, resolver in operations.mutations.items():
            self._mutations[name] = (operations.name, resolver)
        self.sets.append(operations.name)

    @property
    def query_names(self) -> List[str]:
        return sorted(self._queries)

    @property
    def mutation_names(self) -> List[str]:
        return sorted(self._mutations)

    def owner(self, name: str) -> Optional[str]:
        entry = self._queries.get(name) or self._mutations.get(name)
        return entry[0] if entry else None

    @staticmethod
    def _root_type(name: str, table: Dict[str, Tuple[str, Resolver]]) -> type:
        namespace = {"__module__": __name__, "__annotations__": {}}
        for op_name, (_, resolver) in sorted(table.items()):
            namespace[op_name] = strawberry.field(
                resolver=resolver,
                description=inspect.getdoc(resolver),
            )
        return strawberry.type(type(name, (), namespace))

    def build_schema(
        self,
        extensions: Iterable[Type[SchemaExtension]] = (),
        scalar_map: Optional[Mapping[object, ScalarDefinition]] = None,
    ) -> strawberry.Schema:
        """Build the schema; custom scalars default to the shared ``SCALAR_MAP``."""
        if not self._queries:
            raise ValueError("At least one query operation is required")
        query = self._root_type("QueryRoot", self._queries)
        mutation = self._root_type("MutationRoot", self._mutations) if self._mutations else None
        logger.info(
            "GraphQL schema built",
            sets=self.sets,
            queries=len(self._queries),
            mutations=len(self._mutations),
        )
        return strawberry.Schema(
            query=query,
            mutation=mutation,
            extensions=list(extensions),
            config=StrawberryConfig(scalar_map=SCALAR_MAP if scalar_map is None else scalar_map),
        )
