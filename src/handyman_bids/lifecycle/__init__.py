"""Job offer lifecycle."""

from .service import JobOfferService
from .state_machine import allowed_transitions, is_terminal, transition

__all__ = ["JobOfferService", "allowed_transitions", "is_terminal", "transition"]
