"""Offer negotiation on a single listing.

Per-offer state machine::

    pending   -> accepted | rejected | countered
    countered -> accepted | rejected | countered
    accepted, rejected, expired: terminal

Across offers, a listing has at most one accepted offer, ever. Rejecting or
countering one offer never touches its siblings.
"""

import logging
import uuid
from datetime import date, datetime
from typing import Optional, List, Dict, Any, Iterable, TYPE_CHECKING

from ..core.errors import ValidationError, InvariantViolation
from ..commission.calculator import CommissionInputs, validate_commission_inputs
from ..commission.models import Commission
from ..transactions.progression import create_transaction
from .models import (
    Offer,
    OfferStatus,
    FinancingStatus,
    BuyerQuality,
    OFFER_CONDITIONS,
    TERMINAL_STATUSES,
)

if TYPE_CHECKING:
    from ..opportunities.models import Opportunity

logger = logging.getLogger(__name__)

QUALITY_RANK = {BuyerQuality.HIGH: 3, BuyerQuality.MEDIUM: 2, BuyerQuality.LOW: 1}


def _validate_conditions(field: str, conditions: Iterable[str]) -> List[ValidationError]:
    unknown = [c for c in conditions if c not in OFFER_CONDITIONS]
    if unknown:
        return [ValidationError(field, f"unknown condition(s): {', '.join(unknown)}", unknown)]
    return []


def _find_offer(opportunity: "Opportunity", offer_id: str) -> Offer:
    for offer in opportunity.offers:
        if offer.id == offer_id:
            return offer
    raise ValidationError("offer_id", "no such offer on this opportunity", offer_id)


def _require_open(offer: Offer, action: str):
    if offer.status in TERMINAL_STATUSES:
        raise InvariantViolation(
            f"Cannot {action} offer {offer.id}: it is already {offer.status.value}",
            current_state=offer.status.value,
            action=action,
        )


def submit_offer(
    opportunity: "Opportunity",
    buyer_name: str,
    amount: float,
    down_payment: float = 0.0,
    financing_status: FinancingStatus = FinancingStatus.PENDING,
    conditions: Optional[Iterable[str]] = None,
    buyer_quality: BuyerQuality = BuyerQuality.MEDIUM,
    valid_until: Optional[date] = None,
    notes: str = "",
    offer_id: Optional[str] = None,
) -> Offer:
    """Record a new pending offer."""
    conditions = sorted(set(conditions or []))

    errors = []
    if not buyer_name or not buyer_name.strip():
        errors.append(ValidationError("buyer_name", "buyer name is required"))
    if amount is None or amount <= 0:
        errors.append(ValidationError("amount", "offer amount must be greater than zero", amount))
    if down_payment is not None and down_payment < 0:
        errors.append(ValidationError("down_payment", "cannot be negative", down_payment))
    elif amount and down_payment and down_payment > amount:
        errors.append(ValidationError("down_payment", "cannot exceed the offer amount", down_payment))
    errors.extend(_validate_conditions("conditions", conditions))
    if offer_id and any(o.id == offer_id for o in opportunity.offers):
        errors.append(ValidationError("offer_id", "an offer with this id already exists", offer_id))
    if errors:
        raise ValidationError.from_errors(errors)

    offer = Offer(
        id=offer_id or f"offer_{uuid.uuid4().hex[:8]}",
        buyer_name=buyer_name.strip(),
        amount=amount,
        down_payment=down_payment or 0.0,
        financing_status=financing_status,
        conditions=conditions,
        buyer_quality=buyer_quality,
        valid_until=valid_until,
        notes=notes,
    )
    opportunity.offers.append(offer)
    opportunity.marketing.offers_received += 1

    logger.info(f"Offer {offer.id} from {offer.buyer_name}: {offer.amount:.2f}")
    return offer


def accept_offer(
    opportunity: "Opportunity",
    offer_id: str,
    commission_inputs: CommissionInputs,
    today: Optional[date] = None,
) -> Offer:
    """Accept one offer, seeding the transaction and the commission.

    All checks run before anything changes: the offer must be open, within
    its validity, carry a positive amount, the listing must not already have
    an accepted offer, and the commission inputs must be valid.
    """
    offer = _find_offer(opportunity, offer_id)
    _require_open(offer, "accept")

    today = today or date.today()
    if offer.is_past_validity(today):
        raise InvariantViolation(
            f"Offer {offer.id} expired on {offer.valid_until.isoformat()}",
            current_state=offer.status.value,
            action="accept",
        )

    already = [o for o in opportunity.offers if o.status == OfferStatus.ACCEPTED]
    if already or opportunity.accepted_offer_id is not None:
        accepted_id = already[0].id if already else opportunity.accepted_offer_id
        raise InvariantViolation(
            f"Offer {accepted_id} is already accepted on this listing",
            current_state="accepted",
            action="accept",
        )

    if not offer.effective_amount or offer.effective_amount <= 0:
        raise ValidationError("amount", "offer amount must be greater than zero", offer.effective_amount)

    errors = validate_commission_inputs(commission_inputs)
    if errors:
        raise ValidationError.from_errors(errors)

    agreed_amount = offer.effective_amount
    now = datetime.now()
    offer.status = OfferStatus.ACCEPTED
    offer.responded_at = now
    opportunity.accepted_offer_id = offer.id
    opportunity.commission = Commission(inputs=commission_inputs, calculated_at=now, updated_at=now)
    opportunity.transaction = create_transaction(offer, accepted_at=now, amount=agreed_amount)

    logger.info(f"Accepted offer {offer.id} from {offer.buyer_name} at {agreed_amount:.2f}")
    return offer


def reject_offer(opportunity: "Opportunity", offer_id: str, reason: str) -> Offer:
    """Reject an open offer. Sibling offers are unaffected."""
    offer = _find_offer(opportunity, offer_id)
    _require_open(offer, "reject")
    if not reason or not reason.strip():
        raise ValidationError("reject_reason", "a reason is required to reject an offer")

    offer.status = OfferStatus.REJECTED
    offer.reject_reason = reason.strip()
    offer.counter_amount = None
    offer.counter_conditions = []
    offer.counter_notes = ""
    offer.responded_at = datetime.now()

    logger.info(f"Rejected offer {offer.id}: {offer.reject_reason}")
    return offer


def counter_offer(
    opportunity: "Opportunity",
    offer_id: str,
    counter_amount: float,
    counter_conditions: Optional[Iterable[str]] = None,
    counter_notes: str = "",
) -> Offer:
    """Answer an open offer with a counter amount.

    A new counter replaces the previous one; only the latest is kept. The
    buyer's original amount is never changed.
    """
    offer = _find_offer(opportunity, offer_id)
    _require_open(offer, "counter")

    counter_conditions = sorted(set(counter_conditions or []))
    errors = []
    if counter_amount is None or counter_amount <= 0:
        errors.append(ValidationError("counter_amount", "counter amount must be greater than zero", counter_amount))
    errors.extend(_validate_conditions("counter_conditions", counter_conditions))
    if errors:
        raise ValidationError.from_errors(errors)

    offer.status = OfferStatus.COUNTERED
    offer.counter_amount = counter_amount
    offer.counter_conditions = counter_conditions
    offer.counter_notes = counter_notes
    offer.responded_at = datetime.now()

    logger.info(f"Countered offer {offer.id} at {counter_amount:.2f} (buyer offered {offer.amount:.2f})")
    return offer


def expire_offers(opportunity: "Opportunity", today: Optional[date] = None) -> List[Offer]:
    """Expire open offers whose validity date has passed."""
    today = today or date.today()
    expired = []
    for offer in opportunity.offers:
        if offer.is_open and offer.is_past_validity(today):
            offer.status = OfferStatus.EXPIRED
            offer.responded_at = datetime.now()
            expired.append(offer)

    if expired:
        logger.info(f"Expired {len(expired)} offer(s): {', '.join(o.id for o in expired)}")
    return expired


def rank_offers(offers: Iterable[Offer]) -> List[Dict[str, Any]]:
    """Advisory comparison of live offers for display.

    Ordered by effective amount, then buyer quality. Badges only; nothing
    here selects or accepts an offer.
    """
    live = [o for o in offers if o.status not in (OfferStatus.REJECTED, OfferStatus.EXPIRED)]
    if not live:
        return []

    highest = max(o.effective_amount for o in live)
    ranked = []
    for offer in sorted(live, key=lambda o: (o.effective_amount, QUALITY_RANK[o.buyer_quality]), reverse=True):
        badges = []
        if offer.effective_amount == highest and offer.buyer_quality == BuyerQuality.HIGH:
            badges.append("best_overall")
        if offer.effective_amount == highest:
            badges.append("highest_value")
        if offer.financing_status == FinancingStatus.CASH:
            badges.append("cash")
        if offer.financing_status == FinancingStatus.PRE_APPROVED:
            badges.append("pre_approved")

        ranked.append({
            "offer_id": offer.id,
            "buyer_name": offer.buyer_name,
            "status": offer.status.value,
            "effective_amount": offer.effective_amount,
            "buyer_quality": offer.buyer_quality.value,
            "badges": badges,
        })

    return ranked
