"""Domain errors raised by attribute services."""

from sqlalchemy.exc import StatementError


class AttributeInsightError(Exception):
    """Base class for domain failures surfaced to adapters."""


class NotFoundError(AttributeInsightError):
    """A referenced attribute, set, entity or proposal does not exist."""


class InvalidProposalStateError(AttributeInsightError):
    """A proposal action was attempted from the wrong workflow state."""


class MergeError(AttributeInsightError):
    """An attribute merge could not be carried out."""


def sanitize_error(exc: BaseException) -> str:
    """Render an exception as a single-line message safe to return to callers."""

    if isinstance(exc, StatementError):
        # Driver message only, without the SQL statement and bound parameters.
        if exc.orig is None:
            return type(exc).__name__
        exc = exc.orig

    message = " ".join(str(exc).split())
    if not message:
        return type(exc).__name__
    return f"{type(exc).__name__}: {message[:500]}"
