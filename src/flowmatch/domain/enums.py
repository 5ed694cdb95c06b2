"""Domain enumerations for the FlowMatch suggestion engine.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class FlowKind(str, Enum):
    """Direction of a declared material flow."""

    PRODUCTION = "production"
    WASTE = "waste"
    NEED = "need"


class MatchKind(str, Enum):
    """Which attribute linked an offer to a need."""

    FAMILY = "family"
    CATEGORY = "category"
    NAME = "name"


class SuggestionStatus(str, Enum):
    """User disposition toward a suggested company."""

    NEW = "new"
    SAVED = "saved"
    IGNORED = "ignored"
    CONTACTED = "contacted"


class InteractionActor(str, Enum):
    """Who is changing a suggestion interaction."""

    USER = "user"
    SYSTEM = "system"


class ValidationStatus(str, Enum):
    """Moderation state of a company profile."""

    PENDING = "pending"
    VALIDATED = "validated"
    APPROVED = "approved"
    ACTIVE = "active"
    REJECTED = "rejected"


class SuggestionSort(str, Enum):
    """Supported orderings for a suggestion listing."""

    SCORE = "score"
    DISTANCE = "distance"
    RECENT = "recent"
    ALPHA = "alpha"


class ReasonType(str, Enum):
    """Category of a human-readable suggestion reason."""

    RESOURCE = "resource"
    PROXIMITY = "proximity"
    SECTOR = "sector"
    QUANTITY = "quantity"
    INSIGHT = "insight"
