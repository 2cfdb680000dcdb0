"""Job offer state machine.

    open -> in_progress -> completed
      |          |
      +----------+-----> cancelled

completed and cancelled are terminal. in_progress is entered exactly once,
through bid acceptance or fixed-price assignment.
"""

from datetime import datetime, timezone
from typing import Optional

from handyman_bids.errors import InvalidTransitionError
from handyman_bids.models.job_offer import JobOffer, JobStatus

_TRANSITIONS: dict[str, set[str]] = {
    "open": {"in_progress", "cancelled"},
    "in_progress": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}


def allowed_transitions(status: str) -> set[str]:
    return set(_TRANSITIONS.get(status, set()))


def is_terminal(status: str) -> bool:
    return not _TRANSITIONS.get(status)


def transition(
    offer: JobOffer,
    target: JobStatus,
    *,
    assigned_to: Optional[str] = None,
) -> JobOffer:
    """
    Return a copy of offer moved to target. assigned_to is required when
    entering in_progress, kept through completed, cleared on cancel.
    Raises InvalidTransitionError; the copy is re-validated against the model invariants.
    """
    allowed = _TRANSITIONS.get(offer.status, set())
    if target not in allowed:
        allowed_str = ", ".join(sorted(allowed)) or "none"
        raise InvalidTransitionError(
            f"Invalid job offer transition: {offer.status} -> {target}. "
            f"Allowed from {offer.status}: [{allowed_str}]"
        )

    if target == "in_progress":
        if not assigned_to:
            raise InvalidTransitionError("in_progress requires an assignee")
        assignee: Optional[str] = assigned_to
    elif target == "completed":
        assignee = offer.assigned_to
    else:
        assignee = None

    data = offer.model_dump()
    data.update(
        status=target,
        assigned_to=assignee,
        updated_at=datetime.now(timezone.utc),
    )
    return JobOffer.model_validate(data)
