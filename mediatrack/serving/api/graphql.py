"""
GraphQL API

Builds the single schema served at ``/graphql`` from the core, media, user
and per-domain operation sets.
"""

from typing import Iterable, List, Optional

import strawberry
import structlog
from graphql import GraphQLError
from strawberry.extensions import SchemaExtension
from strawberry.fastapi import GraphQLRouter

from mediatrack.domains import DOMAIN_OPERATIONS
from mediatrack.errors import Internal, TrackerError, ValidationFailed
from mediatrack.serving.api.context import get_context
from mediatrack.serving.api.operations import (
    core_operations,
    media_operations,
    users_operations,
)
from mediatrack.serving.api.registry import OperationRegistry, OperationSet

logger = structlog.get_logger(__name__)

MASKED_MESSAGE = "Internal server error"


class ErrorKindExtension(SchemaExtension):
    """
    Tags every error with ``extensions.kind``.

    Tracker errors keep their kind and message. Errors raised before any
    resolver ran (syntax, unknown fields, bad arguments) are
    ``ValidationFailed``. Anything else is logged and masked as ``Internal``.
    """

    def on_operation(self):
        try:
            yield
        finally:
            self._shape_results()

    def _shape_results(self) -> None:
        ctx = self.execution_context
        early = getattr(ctx, "pre_execution_errors", None)
        if early:
            ctx.pre_execution_errors = self._shape_all(early)
        result = ctx.result
        if result is not None and result.errors:
            result.errors = self._shape_all(result.errors)

    def _shape_all(self, errors: Iterable[GraphQLError]) -> List[GraphQLError]:
        return [self._shape(error) for error in errors]

    @staticmethod
    def _with_kind(error: GraphQLError, kind: str) -> GraphQLError:
        error.extensions = {**(error.extensions or {}), "kind": kind}
        return error

    def _shape(self, error: GraphQLError) -> GraphQLError:
        original = error.original_error
        if isinstance(original, TrackerError):
            return self._with_kind(error, original.kind)
        if original is None or error.path is None:
            return self._with_kind(error, ValidationFailed.kind)

        logger.error(
            "Unhandled error in resolver",
            path=".".join(str(p) for p in error.path),
            error=str(original),
            error_type=type(original).__name__,
        )
        masked = GraphQLError(
            message=MASKED_MESSAGE,
            nodes=error.nodes,
            source=error.source,
            positions=error.positions,
            path=error.path,
            original_error=None,
        )
        return self._with_kind(masked, Internal.kind)


def create_registry(extra: Optional[Iterable[OperationSet]] = None) -> OperationRegistry:
    """Register every operation set; name clashes fail here, at startup."""
    registry = OperationRegistry()
    for operations in [core_operations, media_operations, users_operations, *DOMAIN_OPERATIONS]:
        registry.register(operations)
    for operations in extra or ():
        registry.register(operations)
    return registry


def build_schema(extra: Optional[Iterable[OperationSet]] = None) -> strawberry.Schema:
    return create_registry(extra).build_schema(extensions=[ErrorKindExtension])


def create_graphql_router(schema: strawberry.Schema) -> GraphQLRouter:
    return GraphQLRouter(schema, context_getter=get_context)
