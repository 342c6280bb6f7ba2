"""
Domain exceptions for the co-expression engine.

Batch processing treats EntityNotFoundError and FetchFailureError as
pair-scoped; InvalidInputError and CollaboratorUnavailableError abort the
request. Degenerate vectors never raise.
"""


class CoexpressionError(Exception):
    """Base exception for co-expression errors."""

    code: str = "COEXPRESSION_ERROR"

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInputError(CoexpressionError):
    """A required identifier or mode parameter is missing or malformed."""

    code = "INVALID_INPUT"


class EntityNotFoundError(CoexpressionError):
    """An entity identifier matched nothing in the queried collaborator."""

    code = "NOT_FOUND"

    def __init__(self, identifier: str, source: str = "expression data"):
        super().__init__(
            f'No {source} found for "{identifier}"',
            details=f"Check that {identifier} is a valid gene name or UniProt ID",
        )
        self.identifier = identifier


class FetchFailureError(CoexpressionError):
    """A collaborator call failed for transient reasons."""

    code = "FETCH_FAILURE"


class CollaboratorUnavailableError(CoexpressionError):
    """The observation store or pair source could not be reached."""

    code = "COLLABORATOR_UNAVAILABLE"
