"""
Error Taxonomy

Typed failures raised by the entity store, the aggregation engine and the
domain services. The GraphQL layer reports ``kind`` and ``message`` of these
errors to clients.
"""

from typing import Optional


class TrackerError(Exception):
    """Base class for every failure surfaced to API clients"""

    kind: str = "Internal"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


class ReferenceNotFound(TrackerError):
    """A referenced user or metadata row does not exist"""

    kind = "ReferenceNotFound"

    def __init__(self, entity: str, entity_id: Optional[int]):
        super().__init__(f"{entity} with id {entity_id} does not exist", entity=entity, entity_id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class NotFound(TrackerError):
    """The row targeted by an update does not exist"""

    kind = "NotFound"

    def __init__(self, entity: str, entity_id: Optional[int]):
        super().__init__(f"{entity} with id {entity_id} not found", entity=entity, entity_id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class Conflict(TrackerError):
    """Concurrent conflicting write on the same key"""

    kind = "Conflict"


class ValidationFailed(TrackerError):
    """Malformed input"""

    kind = "ValidationFailed"


class NotEnabled(TrackerError):
    """Operation attempted against a disabled feature"""

    kind = "NotEnabled"

    def __init__(self, feature: str):
        super().__init__(f"{feature} is not enabled on this server", feature=feature)
        self.feature = feature


class Internal(TrackerError):
    """Unexpected storage or transport failure"""

    kind = "Internal"
