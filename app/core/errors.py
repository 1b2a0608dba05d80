"""Error taxonomy for coaching operations.

Every manager operation either succeeds or raises one of these.
The HTTP layer maps them to status codes in app.main.
"""


class CoachingError(RuntimeError):
    """Base class for expected, typed failures of a core operation."""

    code = "coaching_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(CoachingError):
    """Malformed input caught before anything is persisted.

    Attributes:
        path: Location of the offending value inside the input, e.g.
            ``meals[0].options[1].items[2]`` or ``effective_to``.
    """

    code = "validation_error"

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class NotFoundError(CoachingError):
    """The operation targets an id that does not exist."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidTransitionError(CoachingError):
    """Requested status change is not allowed from the plan's current status."""

    code = "invalid_transition"


class ConflictError(CoachingError):
    """A uniqueness invariant (single active plan, one cell per key) was hit by a race."""

    code = "conflict"


class PersistenceError(CoachingError):
    """Opaque failure from the storage layer. Never retried by the core."""

    code = "persistence_error"
