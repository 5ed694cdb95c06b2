"""Error taxonomy for the suggestion engine.

Routes translate these into HTTP responses; services raise them.
"""


class SuggestionError(Exception):
    """Base class for all suggestion-engine errors."""


class NotFoundError(SuggestionError):
    """Requester has no company profile, or a target company does not exist."""


class InvalidInputError(SuggestionError):
    """Malformed filter/sort parameters or an out-of-range value."""


class ConflictError(SuggestionError):
    """Concurrent write conflict. The keyed upsert absorbs these in practice."""


class InternalError(SuggestionError):
    """Storage or read failure."""
