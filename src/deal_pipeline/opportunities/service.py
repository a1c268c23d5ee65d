"""Deal service: every pipeline operation as one store round trip.

Each mutating call reads the opportunity, applies one transition to the
freshly decoded copy and writes it back with ``compare_and_set`` against the
version it read. A transition that raises leaves the stored record as it
was; a concurrent writer makes the write fail with ConflictError.
"""

import logging
import uuid
from datetime import date, datetime
from typing import Optional, List, Dict, Any, Callable, Iterable

from ..core.config import DealConfig
from ..core.errors import ValidationError, InvariantViolation, OpportunityNotFound
from ..commission.calculator import SplitType, build_commission_inputs, compute_commission as compute_breakdown
from ..commission.models import Commission, CommissionStatus
from ..commission import payments
from ..offers import negotiation
from ..offers.models import FinancingStatus, BuyerQuality
from ..transactions import progression, checklist, financing
from ..transactions.models import Transaction, DocumentStatus, FinancingMilestone
from ..storage.port import DocumentStore
from ..storage.paths import opportunity_path, opportunities_prefix, is_opportunity_path
from .models import Opportunity, SELLER_PIPELINE_STAGES

logger = logging.getLogger(__name__)


def _nudge_stage(opportunity: Opportunity, target: str):
    """Move the pipeline label forward to ``target``; never backwards."""
    current = opportunity.stage
    if current in SELLER_PIPELINE_STAGES and SELLER_PIPELINE_STAGES.index(target) <= SELLER_PIPELINE_STAGES.index(current):
        return
    opportunity.stage = target


def _require_transaction(opportunity: Opportunity, action: str) -> Transaction:
    if opportunity.transaction is None:
        raise InvariantViolation(
            f"Cannot {action}: no offer has been accepted on this listing",
            current_state=opportunity.stage,
            action=action,
        )
    return opportunity.transaction


def _require_commission(opportunity: Opportunity, action: str) -> Commission:
    if opportunity.commission is None:
        raise InvariantViolation(
            f"Cannot {action}: no commission has been computed for this listing",
            current_state=opportunity.stage,
            action=action,
        )
    return opportunity.commission


class DealService:
    """Facade over the pipeline transitions and the document store."""

    def __init__(self, store: DocumentStore, config: Optional[DealConfig] = None):
        self.store = store
        self.config = config or DealConfig()

    # === READS ===

    def get_opportunity(self, consultant_id: str, client_id: str, opportunity_id: str) -> Opportunity:
        path = opportunity_path(consultant_id, client_id, opportunity_id)
        record = self.store.get(path)
        if record is None:
            raise OpportunityNotFound(path)
        return Opportunity.from_dict(record)

    def list_opportunities(
        self,
        consultant_id: Optional[str] = None,
        client_id: Optional[str] = None,
        stage: Optional[str] = None,
    ) -> List[Opportunity]:
        """Opportunities under a consultant (or one client), optionally by stage label."""
        results = []
        for path, record in self.store.list(opportunities_prefix(consultant_id, client_id)):
            if not is_opportunity_path(path):
                continue
            try:
                opportunity = Opportunity.from_dict(record)
            except (KeyError, ValueError) as e:
                logger.error(f"Skipping unreadable opportunity at {path}: {e}")
                continue
            if stage and opportunity.stage != stage:
                continue
            results.append(opportunity)
        return results

    def deal_summary(self, consultant_id: str, client_id: str, opportunity_id: str) -> Dict[str, Any]:
        """Everything a dashboard needs about one listing."""
        opportunity = self.get_opportunity(consultant_id, client_id, opportunity_id)
        txn = opportunity.transaction
        commission = opportunity.commission
        return {
            "opportunity": opportunity.to_dict(),
            "offer_ranking": negotiation.rank_offers(opportunity.offers),
            "transaction_progress": progression.transaction_progress(txn) if txn else 0,
            "checklist": checklist.checklist_summary(txn) if txn else None,
            "financing": financing.financing_progress(txn.financing) if txn else None,
            "commission_pending_amount": commission.pending_amount if commission else None,
        }

    def commission_summary(self, consultant_id: Optional[str] = None, year: Optional[int] = None) -> Dict[str, Any]:
        opportunities = self.list_opportunities(consultant_id)
        return payments.commission_summary((o.commission for o in opportunities), year=year)

    # === WRITES ===

    def _apply(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        action: str,
        transition: Callable[[Opportunity], Any],
    ) -> Opportunity:
        """Run ``transition`` on a fresh copy and persist it with compare-and-set."""
        path = opportunity_path(consultant_id, client_id, opportunity_id)
        record = self.store.get(path)
        if record is None:
            raise OpportunityNotFound(path)

        opportunity = Opportunity.from_dict(record)
        expected_version = opportunity.version

        transition(opportunity)

        opportunity.updated_at = datetime.now()
        opportunity.version = self.store.compare_and_set(path, opportunity.to_dict(), expected_version)

        logger.info(f"{action} on {opportunity_id} (v{opportunity.version})")
        return opportunity

    def create_opportunity(
        self,
        consultant_id: str,
        client_id: str,
        property_address: str,
        asking_price: float,
        seller_ref: str = "",
        opportunity_id: Optional[str] = None,
        stage: str = "lead",
    ) -> Opportunity:
        errors = []
        if not property_address or not property_address.strip():
            errors.append(ValidationError("property_address", "property address is required"))
        if asking_price is None or asking_price < 0:
            errors.append(ValidationError("asking_price", "cannot be negative", asking_price))
        if stage not in SELLER_PIPELINE_STAGES:
            errors.append(ValidationError("stage", f"unknown pipeline stage: {stage}", stage))
        if errors:
            raise ValidationError.from_errors(errors)

        opportunity_id = opportunity_id or f"opp_{uuid.uuid4().hex[:10]}"
        path = opportunity_path(consultant_id, client_id, opportunity_id)
        if self.store.get(path) is not None:
            raise InvariantViolation(f"Opportunity {opportunity_id} already exists", action="create opportunity")

        now = datetime.now()
        opportunity = Opportunity(
            id=opportunity_id,
            consultant_id=consultant_id,
            client_id=client_id,
            seller_ref=seller_ref,
            property_address=property_address.strip(),
            asking_price=asking_price,
            stage=stage,
            listed_at=now,
            created_at=now,
            updated_at=now,
        )
        opportunity.version = self.store.compare_and_set(path, opportunity.to_dict(), 0)

        logger.info(f"Created opportunity {opportunity_id}: {opportunity.property_address}")
        return opportunity

    def set_stage(self, consultant_id: str, client_id: str, opportunity_id: str, stage: str) -> Opportunity:
        """Set the informational pipeline label to any known stage."""
        if stage not in SELLER_PIPELINE_STAGES:
            raise ValidationError("stage", f"unknown pipeline stage: {stage}", stage)

        path = opportunity_path(consultant_id, client_id, opportunity_id)
        if self.store.get(path) is None:
            raise OpportunityNotFound(path)
        self.store.set(path, {"stage": stage, "updated_at": datetime.now().isoformat()}, merge=True)

        logger.info(f"Opportunity {opportunity_id} stage -> {stage}")
        return self.get_opportunity(consultant_id, client_id, opportunity_id)

    def record_viewing(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        viewing_date: Optional[datetime] = None,
        visitor: str = "",
        completed: bool = False,
        notes: str = "",
    ) -> Opportunity:
        """Append a viewing to the log and bump the marketing counters."""
        current = self.get_opportunity(consultant_id, client_id, opportunity_id)
        path = opportunity_path(consultant_id, client_id, opportunity_id)

        viewing = {
            "date": (viewing_date or datetime.now()).isoformat(),
            "visitor": visitor,
            "completed": completed,
            "notes": notes,
        }
        self.store.append_to_list(path, "viewings", viewing)

        marketing = current.marketing
        self.store.set(path, {
            "marketing": {
                "viewings_scheduled": marketing.viewings_scheduled + 1,
                "viewings_completed": marketing.viewings_completed + (1 if completed else 0),
            },
            "updated_at": datetime.now().isoformat(),
        }, merge=True)

        logger.info(f"Recorded viewing on {opportunity_id}{' (completed)' if completed else ''}")
        return self.get_opportunity(consultant_id, client_id, opportunity_id)

    def refresh_days_on_market(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        today: Optional[date] = None,
    ) -> Opportunity:
        current = self.get_opportunity(consultant_id, client_id, opportunity_id)
        today = today or date.today()
        listed = (current.listed_at or current.created_at).date()
        days = max((today - listed).days, 0)

        path = opportunity_path(consultant_id, client_id, opportunity_id)
        self.store.set(path, {"marketing": {"days_on_market": days}}, merge=True)
        return self.get_opportunity(consultant_id, client_id, opportunity_id)

    # === OFFERS ===

    def submit_offer(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        buyer_name: str,
        amount: float,
        down_payment: float = 0.0,
        financing_status: FinancingStatus = FinancingStatus.PENDING,
        conditions: Optional[Iterable[str]] = None,
        buyer_quality: BuyerQuality = BuyerQuality.MEDIUM,
        valid_until: Optional[date] = None,
        notes: str = "",
        offer_id: Optional[str] = None,
    ) -> Opportunity:
        def transition(opportunity: Opportunity):
            negotiation.submit_offer(
                opportunity, buyer_name, amount,
                down_payment=down_payment,
                financing_status=financing_status,
                conditions=conditions,
                buyer_quality=buyer_quality,
                valid_until=valid_until,
                notes=notes,
                offer_id=offer_id,
            )
            _nudge_stage(opportunity, "proposta_recebida")

        return self._apply(consultant_id, client_id, opportunity_id, "Submit offer", transition)

    def accept_offer(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        offer_id: str,
        commission_rate: Optional[float] = None,
        split_type: Optional[SplitType] = None,
        my_split_percentage: Optional[float] = None,
        agency_split_percentage: Optional[float] = None,
        today: Optional[date] = None,
    ) -> Opportunity:
        """Accept an offer; the commission is computed on its effective amount."""
        def transition(opportunity: Opportunity):
            offer = opportunity.offer(offer_id)
            if offer is None:
                raise ValidationError("offer_id", "no such offer on this opportunity", offer_id)
            inputs = build_commission_inputs(
                offer.effective_amount,
                commission_rate=commission_rate,
                split_type=split_type,
                my_split_percentage=my_split_percentage,
                agency_split_percentage=agency_split_percentage,
                config=self.config,
            )
            negotiation.accept_offer(opportunity, offer_id, inputs, today=today)
            _nudge_stage(opportunity, "proposta_aceite")

        return self._apply(consultant_id, client_id, opportunity_id, f"Accept offer {offer_id}", transition)

    def reject_offer(
        self, consultant_id: str, client_id: str, opportunity_id: str, offer_id: str, reason: str
    ) -> Opportunity:
        return self._apply(
            consultant_id, client_id, opportunity_id, f"Reject offer {offer_id}",
            lambda opportunity: negotiation.reject_offer(opportunity, offer_id, reason),
        )

    def counter_offer(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        offer_id: str,
        counter_amount: float,
        counter_conditions: Optional[Iterable[str]] = None,
        counter_notes: str = "",
    ) -> Opportunity:
        def transition(opportunity: Opportunity):
            negotiation.counter_offer(opportunity, offer_id, counter_amount, counter_conditions, counter_notes)
            _nudge_stage(opportunity, "em_negociacao")

        return self._apply(consultant_id, client_id, opportunity_id, f"Counter offer {offer_id}", transition)

    def expire_offers(
        self, consultant_id: str, client_id: str, opportunity_id: str, today: Optional[date] = None
    ) -> Opportunity:
        """Expire overdue open offers. Nothing is written when none are overdue."""
        current = self.get_opportunity(consultant_id, client_id, opportunity_id)
        today = today or date.today()
        if not any(o.is_open and o.is_past_validity(today) for o in current.offers):
            return current

        return self._apply(
            consultant_id, client_id, opportunity_id, "Expire offers",
            lambda opportunity: negotiation.expire_offers(opportunity, today),
        )

    # === TRANSACTION ===

    def prepare_cpcv(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        scheduled_date: Optional[datetime] = None,
        signal_amount: Optional[float] = None,
        location: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Opportunity:
        def transition(opportunity: Opportunity):
            txn = _require_transaction(opportunity, "prepare CPCV")
            progression.prepare_cpcv(
                txn, scheduled_date, signal_amount, location, notes,
                signal_percentage=self.config.signal_percentage,
            )

        return self._apply(consultant_id, client_id, opportunity_id, "Prepare CPCV", transition)

    def sign_cpcv(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        scheduled_date: Optional[datetime] = None,
        signal_amount: Optional[float] = None,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        signed_at: Optional[datetime] = None,
    ) -> Opportunity:
        def transition(opportunity: Opportunity):
            txn = _require_transaction(opportunity, "sign CPCV")
            progression.sign_cpcv(
                txn, scheduled_date, signal_amount, location, notes,
                signed_at=signed_at,
                signal_percentage=self.config.signal_percentage,
            )
            _nudge_stage(opportunity, "cpcv")

        return self._apply(consultant_id, client_id, opportunity_id, "Sign CPCV", transition)

    def prepare_escritura(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        scheduled_date: Optional[datetime] = None,
        notary_name: Optional[str] = None,
        notary_location: Optional[str] = None,
        final_amount: Optional[float] = None,
        registration_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Opportunity:
        def transition(opportunity: Opportunity):
            txn = _require_transaction(opportunity, "prepare Escritura")
            progression.prepare_escritura(
                txn, scheduled_date, notary_name, notary_location,
                final_amount, registration_number, notes,
            )
            _nudge_stage(opportunity, "escritura")

        return self._apply(consultant_id, client_id, opportunity_id, "Prepare Escritura", transition)

    def complete_escritura(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        scheduled_date: Optional[datetime] = None,
        notary_name: Optional[str] = None,
        notary_location: Optional[str] = None,
        final_amount: Optional[float] = None,
        registration_number: Optional[str] = None,
        notes: Optional[str] = None,
        completed_at: Optional[datetime] = None,
    ) -> Opportunity:
        def transition(opportunity: Opportunity):
            txn = _require_transaction(opportunity, "complete Escritura")
            progression.complete_escritura(
                txn, scheduled_date, notary_name, notary_location,
                final_amount, registration_number, notes,
                completed_at=completed_at,
            )
            _nudge_stage(opportunity, "concluido")

        return self._apply(consultant_id, client_id, opportunity_id, "Complete Escritura", transition)

    def mark_fell_through(
        self, consultant_id: str, client_id: str, opportunity_id: str, reason: str
    ) -> Opportunity:
        def transition(opportunity: Opportunity):
            txn = _require_transaction(opportunity, "mark fell through")
            progression.mark_fell_through(txn, reason)

        return self._apply(consultant_id, client_id, opportunity_id, "Mark fell through", transition)

    def toggle_document_status(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        doc_type: str,
        status: DocumentStatus,
        notes: Optional[str] = None,
    ) -> Opportunity:
        def transition(opportunity: Opportunity):
            txn = _require_transaction(opportunity, "update document")
            checklist.set_document_status(txn, doc_type, status, notes)

        return self._apply(consultant_id, client_id, opportunity_id, f"Document {doc_type} -> {status.value}", transition)

    def set_financing(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        enabled: bool,
        bank_name: Optional[str] = None,
        approval_amount: Optional[float] = None,
    ) -> Opportunity:
        def transition(opportunity: Opportunity):
            txn = _require_transaction(opportunity, "change financing")
            financing.set_financing(txn, enabled, bank_name, approval_amount)

        return self._apply(consultant_id, client_id, opportunity_id, "Set financing", transition)

    def set_financing_milestone(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        milestone: FinancingMilestone,
        completed: bool = True,
    ) -> Opportunity:
        def transition(opportunity: Opportunity):
            txn = _require_transaction(opportunity, "update financing milestone")
            financing.set_financing_milestone(txn, milestone, completed)

        return self._apply(consultant_id, client_id, opportunity_id, f"Milestone {milestone.value}", transition)

    # === COMMISSION ===

    def compute_commission(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        sale_price: Optional[float] = None,
        commission_rate: Optional[float] = None,
        split_type: Optional[SplitType] = None,
        my_split_percentage: Optional[float] = None,
        agency_split_percentage: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> Opportunity:
        """Recalculate the commission from new inputs.

        Omitted inputs keep their current value. Payment tracking is kept.
        """
        def transition(opportunity: Opportunity):
            commission = _require_commission(opportunity, "compute commission")
            current = commission.inputs
            new_split_type = split_type or current.split_type
            if my_split_percentage is not None:
                my_split = my_split_percentage
            elif new_split_type != current.split_type:
                my_split = None
            else:
                my_split = current.my_split_percentage

            inputs = build_commission_inputs(
                current.sale_price if sale_price is None else sale_price,
                commission_rate=current.commission_rate if commission_rate is None else commission_rate,
                split_type=new_split_type,
                my_split_percentage=my_split,
                agency_split_percentage=(
                    current.agency_split_percentage if agency_split_percentage is None else agency_split_percentage
                ),
                config=self.config,
            )
            compute_breakdown(inputs, strict=True)

            commission.inputs = inputs
            if notes is not None:
                commission.notes = notes
            commission.updated_at = datetime.now()

        return self._apply(consultant_id, client_id, opportunity_id, "Compute commission", transition)

    def record_commission_payment(
        self,
        consultant_id: str,
        client_id: str,
        opportunity_id: str,
        status: CommissionStatus,
        amount_received: Optional[float] = None,
        payment_date: Optional[date] = None,
        payment_notes: Optional[str] = None,
    ) -> Opportunity:
        def transition(opportunity: Opportunity):
            commission = _require_commission(opportunity, "record commission payment")
            payments.record_commission_payment(commission, status, amount_received, payment_date, payment_notes)

        return self._apply(consultant_id, client_id, opportunity_id, f"Commission {status.value}", transition)
