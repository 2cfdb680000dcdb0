"""Job offer lifecycle: creation, bid acceptance, fixed-price assignment, budget updates, closing."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from handyman_bids.config import Settings
from handyman_bids.currency.service import CurrencyService
from handyman_bids.errors import (
    BidNotAvailableError,
    ConflictError,
    InvalidBudgetError,
    JobNotOpenError,
    NotFoundError,
    UnauthorizedError,
    UnsupportedCurrencyError,
    ValidationError,
)
from handyman_bids.models.bid import LIVE_STATUSES
from handyman_bids.models.job_offer import Budget, JobAssignment, JobOffer, JobType, Location, Urgency
from handyman_bids.notifications.fanout import FanOut, PendingEvent
from handyman_bids.store.market_store import MarketSession, MarketStore

from .state_machine import transition

logger = logging.getLogger(__name__)


class JobOfferService:
    """Owns job offer state. Every transition runs in one store transaction; notifications go out after commit."""

    def __init__(
        self,
        store: MarketStore,
        currency: CurrencyService,
        fanout: FanOut,
        settings: Optional[Settings] = None,
    ):
        self._store = store
        self._currency = currency
        self._fanout = fanout
        self._settings = settings or Settings()

    def _check_currency(self, currency: str) -> str:
        currency = (currency or "").upper()
        if currency not in self._settings.supported_currencies:
            raise UnsupportedCurrencyError(
                f"Unsupported currency {currency!r}. Supported: {self._settings.supported_currencies}"
            )
        return currency

    def create_job_offer(
        self,
        client_id: str,
        title: str,
        location: Location,
        budget: Budget,
        *,
        job_type: JobType = "bids_allowed",
        fixed_price: Optional[float] = None,
        accepts_bids: Optional[bool] = None,
        description: str = "",
        category: str = "",
        urgency: Urgency = "medium",
        required_skills: Optional[list[str]] = None,
        estimated_duration: str = "",
        target_categories: Optional[list[str]] = None,
        deadline: Optional[datetime] = None,
        scheduled_for: Optional[datetime] = None,
        alert_start_delay_minutes: Optional[int] = None,
        alert_duration_hours: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> JobOffer:
        """
        Post a job offer. Alerts start after alert_start_delay_minutes (default 5)
        and end at the deadline or after alert_duration_hours (default 24), whichever is first.
        """
        if not title or not title.strip():
            raise ValidationError("Required field missing: title", code="REQUIRED_FIELD_MISSING")
        if budget.max <= budget.min:
            raise InvalidBudgetError(f"Budget max {budget.max} must be above min {budget.min}")
        budget = budget.model_copy(update={"currency": self._check_currency(budget.currency)})

        if accepts_bids is None:
            accepts_bids = job_type == "bids_allowed"
        if job_type == "fixed_price":
            if not fixed_price or fixed_price <= 0:
                raise ValidationError("Fixed price is required for fixed price jobs", code="FIXED_PRICE_REQUIRED")
            if accepts_bids:
                raise ValidationError("Fixed price jobs cannot accept bids", code="INVALID_JOB_TYPE")

        now = now or datetime.now(timezone.utc)
        delay = alert_start_delay_minutes
        if delay is None:
            delay = self._settings.alert_start_delay_minutes
        duration = alert_duration_hours
        if duration is None:
            duration = self._settings.alert_duration_hours
        alert_end = now + timedelta(hours=duration)
        if deadline is not None:
            alert_end = min(alert_end, deadline)

        offer = JobOffer(
            client_id=client_id,
            title=title.strip(),
            description=description,
            category=category,
            location=location,
            job_type=job_type,
            budget=budget,
            fixed_price=fixed_price,
            urgency=urgency,
            required_skills=required_skills or [],
            estimated_duration=estimated_duration,
            accepts_bids=accepts_bids,
            target_categories=target_categories or [],
            deadline=deadline,
            scheduled_for=scheduled_for,
            alert_start_time=now + timedelta(minutes=delay),
            alert_end_time=alert_end,
            created_at=now,
            updated_at=now,
        )
        with self._store.transaction() as session:
            session.save_job_offer(offer)
        logger.info("Job offer %s created by %s (%s)", offer.id, client_id, job_type)
        return offer

    def get_job_offer(self, job_offer_id: str) -> JobOffer:
        with self._store.snapshot() as session:
            offer = session.get_job_offer(job_offer_id)
        if offer is None:
            raise NotFoundError(f"Job offer {job_offer_id} not found")
        return offer

    def list_client_offers(self, client_id: str) -> list[JobOffer]:
        """Offers posted by the client, newest first."""
        with self._store.snapshot() as session:
            return session.list_job_offers(client_id=client_id)

    def list_open_offers(self) -> list[JobOffer]:
        with self._store.snapshot() as session:
            return session.list_job_offers(status="open")

    def list_assignments(self, job_offer_id: str) -> list[JobAssignment]:
        with self._store.snapshot() as session:
            return session.list_assignments(job_offer_id)

    @staticmethod
    def _owned_offer(session: MarketSession, job_offer_id: str, client_id: str) -> JobOffer:
        offer = session.get_job_offer(job_offer_id)
        if offer is None:
            raise NotFoundError(f"Job offer {job_offer_id} not found")
        if offer.client_id != client_id:
            raise UnauthorizedError("Job offer not found or access denied")
        return offer

    @staticmethod
    def _reject_live_bids(
        session: MarketSession,
        job_offer_id: str,
        now: datetime,
        exclude_bid_id: Optional[str] = None,
    ) -> int:
        rejected = 0
        for other in session.find_bids(job_offer_id, statuses=LIVE_STATUSES):
            if other.id == exclude_bid_id:
                continue
            other.status = "rejected"
            other.is_current_highest = False
            other.updated_at = now
            session.save_bid(other)
            rejected += 1
        return rejected

    def accept_bid(self, bid_id: str, client_id: str) -> JobAssignment:
        """
        Assign the job to the bid's bidder and reject every other live bid.
        The open-status precondition makes acceptance happen at most once per offer.
        """
        with self._store.transaction() as session:
            bid = session.get_bid(bid_id)
            if bid is None or bid.status != "active":
                raise BidNotAvailableError("Bid not available")
            offer = self._owned_offer(session, bid.job_offer_id, client_id)
            if offer.status != "open":
                raise JobNotOpenError(f"Job offer is {offer.status}")

            now = datetime.now(timezone.utc)
            session.save_job_offer(transition(offer, "in_progress", assigned_to=bid.bidder_id))

            bid.status = "accepted"
            bid.updated_at = now
            session.save_bid(bid)
            rejected = self._reject_live_bids(session, offer.id, now, exclude_bid_id=bid.id)

            assignment = JobAssignment(
                job_offer_id=offer.id,
                bidder_id=bid.bidder_id,
                client_id=client_id,
                bid_id=bid.id,
                assigned_at=now,
            )
            session.insert_assignment(assignment)

        logger.info(
            "Bid %s accepted for %s; %d other bids rejected", bid_id, offer.id, rejected
        )
        self._fanout.dispatch(
            [
                PendingEvent(
                    user_id=bid.bidder_id,
                    kind="bid-accepted",
                    payload={
                        "jobOfferId": offer.id,
                        "title": offer.title,
                        "bidId": bid.id,
                        "bidAmount": bid.bid_amount,
                        "currency": bid.currency,
                        "assignmentId": assignment.id,
                    },
                )
            ]
        )
        return assignment

    def assign_fixed_price(
        self,
        job_offer_id: str,
        bidder_id: str,
        client_id: Optional[str] = None,
    ) -> JobAssignment:
        """Direct assignment for fixed-price offers. No bid records are involved."""
        with self._store.transaction() as session:
            offer = session.get_job_offer(job_offer_id)
            if offer is None:
                raise NotFoundError(f"Job offer {job_offer_id} not found")
            if client_id is not None and offer.client_id != client_id:
                raise UnauthorizedError("Job offer not found or access denied")
            if offer.status != "open":
                raise JobNotOpenError(f"Job offer is {offer.status}")
            if offer.job_type != "fixed_price":
                raise ConflictError("This is not a fixed price job", code="NOT_FIXED_PRICE")

            session.save_job_offer(transition(offer, "in_progress", assigned_to=bidder_id))
            assignment = JobAssignment(
                job_offer_id=offer.id,
                bidder_id=bidder_id,
                client_id=offer.client_id,
            )
            session.insert_assignment(assignment)

        logger.info("Fixed price job %s assigned to %s", job_offer_id, bidder_id)
        self._fanout.dispatch(
            [
                PendingEvent(
                    user_id=bidder_id,
                    kind="job-assigned",
                    payload={
                        "jobOfferId": offer.id,
                        "title": offer.title,
                        "fixedPrice": offer.fixed_price,
                        "currency": offer.budget.currency,
                        "assignmentId": assignment.id,
                    },
                )
            ]
        )
        return assignment

    def update_budget(
        self,
        job_offer_id: str,
        client_id: str,
        new_min: float,
        new_max: float,
        currency: str,
    ) -> tuple[JobOffer, dict[str, Budget]]:
        """
        Replace the budget of an open offer and tell every active bidder.
        Returns the updated offer and the budget converted into each normalized currency.
        Existing bids keep their amounts and highest flags.
        """
        if new_min < 0 or new_max <= new_min:
            raise InvalidBudgetError(f"Budget max must exceed min (got {new_min}-{new_max})")
        currency = self._check_currency(currency)

        converted: dict[str, Budget] = {}
        for target in self._settings.normalized_currencies:
            rate = self._currency.get_rate(currency, target).rate
            converted[target] = Budget(min=new_min * rate, max=new_max * rate, currency=target)

        with self._store.transaction() as session:
            offer = self._owned_offer(session, job_offer_id, client_id)
            if offer.status != "open":
                raise JobNotOpenError(f"Job offer is {offer.status}")
            offer.budget = Budget(min=new_min, max=new_max, currency=currency)
            offer.updated_at = datetime.now(timezone.utc)
            session.save_job_offer(offer)
            active = session.find_bids(job_offer_id, statuses=["active"])

        payload = {
            "jobOfferId": job_offer_id,
            "title": offer.title,
            "newBudget": {"min": new_min, "max": new_max, "currency": currency},
            **{f"budget{c}": {"min": b.min, "max": b.max} for c, b in converted.items()},
        }
        logger.info("Budget for %s updated to %s-%s %s", job_offer_id, new_min, new_max, currency)
        self._fanout.dispatch(
            PendingEvent(user_id=b.bidder_id, kind="budget-updated", payload=payload)
            for b in active
        )
        return offer, converted

    def complete_job(self, job_offer_id: str, client_id: str) -> JobOffer:
        with self._store.transaction() as session:
            offer = self._owned_offer(session, job_offer_id, client_id)
            offer = transition(offer, "completed")
            session.save_job_offer(offer)
        logger.info("Job offer %s completed", job_offer_id)
        return offer

    def cancel_job(self, job_offer_id: str, client_id: str) -> JobOffer:
        """Cancel an open or in-progress offer; live bids are rejected."""
        with self._store.transaction() as session:
            offer = self._owned_offer(session, job_offer_id, client_id)
            offer = transition(offer, "cancelled")
            session.save_job_offer(offer)
            rejected = self._reject_live_bids(session, job_offer_id, datetime.now(timezone.utc))
        logger.info("Job offer %s cancelled; %d live bids rejected", job_offer_id, rejected)
        return offer
