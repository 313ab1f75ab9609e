from __future__ import annotations

from wallhub.models import APPROVED, PENDING, REJECTED

STATES: list[str] = [PENDING, APPROVED, REJECTED]


class WorkflowError(Exception):
    """Raised when a moderation transition is invalid."""


def list_states() -> list[str]:
    return list(STATES)


# approved -> approved is allowed so a repeated approve is harmless.
# rejected is terminal: the record is deleted on the way in.
_TRANSITIONS: dict[str, list[str]] = {
    PENDING: [APPROVED, REJECTED],
    APPROVED: [APPROVED],
    REJECTED: [],
}


def _normalize_state(state: str) -> str:
    if not state:
        return state
    return state.strip().lower()


def allowed_transitions(from_state: str) -> list[str]:
    s = _normalize_state(from_state)

    if s not in _TRANSITIONS:
        # Unknown state from the store: nothing is allowed.
        return []
    return list(_TRANSITIONS[s])


def validate_transition(from_state: str, to_state: str) -> None:
    """
    Raises WorkflowError if the transition is not permitted.
    """
    s_from = _normalize_state(from_state)
    s_to = _normalize_state(to_state)

    if s_from not in STATES:
        raise WorkflowError(f"Unknown from_state: {from_state}")

    if s_to not in STATES:
        raise WorkflowError(f"Unknown to_state: {to_state}")

    allowed = allowed_transitions(s_from)
    if s_to not in allowed:
        raise WorkflowError(f"Transition not allowed: {s_from} -> {s_to}. Allowed: {allowed}")


def approval_fields(state: str) -> dict[str, object]:
    """state and is_approved always move together."""
    s = _normalize_state(state)
    return {"state": s, "is_approved": s == APPROVED}
