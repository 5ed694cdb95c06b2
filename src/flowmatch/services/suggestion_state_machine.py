"""Suggestion interaction state machine: validates status changes.

The system only ever creates an interaction as ``new``; every later status
is a user decision that recomputation must not override.
"""

from typing import Optional

from flowmatch.domain.enums import InteractionActor, SuggestionStatus
from flowmatch.domain.errors import InvalidInputError


class InvalidTransitionError(InvalidInputError):
    """Raised when a suggestion status change is not allowed."""

    def __init__(
        self,
        current_status: Optional[SuggestionStatus],
        target_status: SuggestionStatus,
        reason: str,
    ):
        self.current_status = current_status
        self.target_status = target_status
        self.reason = reason
        current = current_status.value if current_status else "none"
        super().__init__(
            f"Invalid transition from {current} to {target_status.value}: {reason}"
        )


# ---------------------------------------------------------------------------
# Transition map: from_status -> {to_status: set_of_allowed_actors}
# ``None`` stands for "no interaction row yet".
# ---------------------------------------------------------------------------

S = SuggestionStatus
A = InteractionActor

USER_ACTION_STATUSES: set[SuggestionStatus] = {S.SAVED, S.IGNORED, S.CONTACTED}

TRANSITION_MAP: dict[Optional[SuggestionStatus], dict[SuggestionStatus, set[InteractionActor]]] = {
    None: {
        S.NEW: {A.SYSTEM},
        S.SAVED: {A.USER},
        S.IGNORED: {A.USER},
        S.CONTACTED: {A.USER},
    },
    S.NEW: {
        S.SAVED: {A.USER},
        S.IGNORED: {A.USER},
        S.CONTACTED: {A.USER},
    },
    S.SAVED: {
        S.SAVED: {A.USER},
        S.IGNORED: {A.USER},
        S.CONTACTED: {A.USER},
    },
    S.IGNORED: {
        S.SAVED: {A.USER},
        S.IGNORED: {A.USER},
        S.CONTACTED: {A.USER},
    },
    S.CONTACTED: {
        S.SAVED: {A.USER},
        S.IGNORED: {A.USER},
        S.CONTACTED: {A.USER},
    },
}

# Statuses counted as "awaiting a response" from the user
AWAITING_RESPONSE_STATUSES: set[SuggestionStatus] = {S.NEW, S.SAVED}


def coerce_status(value) -> Optional[SuggestionStatus]:
    """Map a stored status string (or enum) to ``SuggestionStatus``."""
    if value is None or isinstance(value, SuggestionStatus):
        return value
    try:
        return SuggestionStatus(value)
    except ValueError:
        raise InvalidInputError(f"Unknown suggestion status: {value!r}") from None


class SuggestionStateMachine:
    """Validates suggestion status transitions."""

    def validate_transition(
        self,
        current_status: Optional[SuggestionStatus],
        target_status: SuggestionStatus,
        actor: InteractionActor,
    ) -> bool:
        """Return True if the transition is valid. Raise InvalidTransitionError if not."""
        allowed_targets = TRANSITION_MAP.get(current_status, {})

        if target_status not in allowed_targets:
            if actor == A.SYSTEM and current_status is not None:
                reason = "recomputation cannot change a user's decision"
            elif target_status == S.NEW:
                reason = "a suggestion cannot be reset to new"
            else:
                reason = "transition is not allowed"
            raise InvalidTransitionError(current_status, target_status, reason)

        allowed_actors = allowed_targets[target_status]
        if actor not in allowed_actors:
            raise InvalidTransitionError(
                current_status,
                target_status,
                f"Actor {actor.value} is not permitted for this transition "
                f"(allowed: {', '.join(sorted(a.value for a in allowed_actors))})",
            )

        return True

    def get_allowed_transitions(
        self,
        current_status: Optional[SuggestionStatus],
        actor: InteractionActor,
    ) -> list[SuggestionStatus]:
        """Return the statuses *actor* may move to from *current_status*."""
        allowed_targets = TRANSITION_MAP.get(current_status, {})
        return [
            target
            for target, actors in allowed_targets.items()
            if actor in actors
        ]

    def resolve_recomputed_status(
        self,
        current_status: Optional[SuggestionStatus],
    ) -> SuggestionStatus:
        """Status a recomputation leaves on the row: the existing one, or ``new``."""
        if current_status is None:
            self.validate_transition(None, S.NEW, A.SYSTEM)
            return S.NEW
        return current_status
