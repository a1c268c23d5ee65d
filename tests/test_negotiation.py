"""Tests for offer negotiation."""

import pytest
from datetime import date

from deal_pipeline.core.errors import ValidationError, InvariantViolation
from deal_pipeline.commission import CommissionInputs
from deal_pipeline.offers import (
    OfferStatus,
    FinancingStatus,
    BuyerQuality,
    submit_offer,
    accept_offer,
    reject_offer,
    counter_offer,
    expire_offers,
    rank_offers,
)
from deal_pipeline.opportunities.models import Opportunity
from deal_pipeline.transactions import TransactionStage


@pytest.fixture
def opportunity():
    """Listing with no offers yet."""
    return Opportunity(
        id="opp1",
        consultant_id="ana",
        client_id="client1",
        property_address="Rua das Flores 12, Lisboa",
        asking_price=210000,
    )


@pytest.fixture
def inputs():
    return CommissionInputs(sale_price=200000, commission_rate=5, my_split_percentage=100, agency_split_percentage=55)


class TestSubmitOffer:
    """Tests for recording offers."""

    def test_submit_offer(self, opportunity):
        """Test a new offer starts pending and bumps the counter."""
        offer = submit_offer(
            opportunity, "Bruno Silva", 200000,
            financing_status=FinancingStatus.CASH,
            conditions=["inspection_contingency"],
            offer_id="o1",
        )

        assert offer.status == OfferStatus.PENDING
        assert offer.id == "o1"
        assert opportunity.offers == [offer]
        assert opportunity.marketing.offers_received == 1

    def test_zero_amount_rejected(self, opportunity):
        """Test zero amount is a validation error and nothing is added."""
        with pytest.raises(ValidationError) as exc:
            submit_offer(opportunity, "Bruno Silva", 0)

        assert exc.value.field == "amount"
        assert opportunity.offers == []
        assert opportunity.marketing.offers_received == 0

    def test_unknown_condition_rejected(self, opportunity):
        """Test contingency tags come from the catalog."""
        with pytest.raises(ValidationError) as exc:
            submit_offer(opportunity, "Bruno Silva", 1000, conditions=["pets_allowed"])

        assert exc.value.field == "conditions"

    def test_several_problems_reported(self, opportunity):
        """Test every bad field is reported at once."""
        with pytest.raises(ValidationError) as exc:
            submit_offer(opportunity, "  ", -5, down_payment=-1)

        assert {e.field for e in exc.value.errors} == {"buyer_name", "amount", "down_payment"}


class TestAcceptOffer:
    """Tests for accepting an offer."""

    def test_accept_seeds_transaction_and_commission(self, opportunity, inputs):
        """Test acceptance opens the transaction and computes commission."""
        submit_offer(opportunity, "Bruno Silva", 200000, financing_status=FinancingStatus.CASH, offer_id="o1")

        offer = accept_offer(opportunity, "o1", inputs)

        assert offer.status == OfferStatus.ACCEPTED
        assert offer.responded_at is not None
        assert opportunity.accepted_offer is offer
        assert opportunity.transaction.stage == TransactionStage.OFFER_ACCEPTED
        assert opportunity.transaction.accepted_offer.amount == 200000
        assert opportunity.transaction.escritura.final_amount == 200000
        assert opportunity.commission.total_commission == pytest.approx(10000)
        assert opportunity.commission.production_value == pytest.approx(10000)
        assert opportunity.commission.net_commission == pytest.approx(5500)
        assert opportunity.commission.agency_share == pytest.approx(4500)

    def test_second_accept_rejected(self, opportunity, inputs):
        """Test only one offer can ever be accepted."""
        submit_offer(opportunity, "Bruno Silva", 200000, offer_id="o1")
        submit_offer(opportunity, "Carla Dias", 205000, offer_id="o2")
        accept_offer(opportunity, "o1", inputs)

        with pytest.raises(InvariantViolation):
            accept_offer(opportunity, "o2", inputs)

        assert opportunity.offer("o2").status == OfferStatus.PENDING
        accepted = [o for o in opportunity.offers if o.status == OfferStatus.ACCEPTED]
        assert [o.id for o in accepted] == ["o1"]
        assert opportunity.accepted_offer_id == "o1"

    def test_accept_countered_uses_counter_amount(self, opportunity, inputs):
        """Test a countered offer is accepted at the counter amount."""
        submit_offer(opportunity, "Bruno Silva", 190000, offer_id="o1")
        counter_offer(opportunity, "o1", 198000)

        accept_offer(opportunity, "o1", inputs)

        assert opportunity.transaction.accepted_offer.amount == 198000
        assert opportunity.transaction.escritura.final_amount == 198000
        assert opportunity.offer("o1").effective_amount == 198000

    def test_accept_rejected_offer_fails(self, opportunity, inputs):
        """Test terminal offers cannot be accepted."""
        submit_offer(opportunity, "Bruno Silva", 200000, offer_id="o1")
        reject_offer(opportunity, "o1", "Too low")

        with pytest.raises(InvariantViolation):
            accept_offer(opportunity, "o1", inputs)

        assert opportunity.transaction is None

    def test_accept_past_validity_fails(self, opportunity, inputs):
        """Test an offer past its validity date cannot be accepted."""
        submit_offer(opportunity, "Bruno Silva", 200000, valid_until=date(2026, 1, 31), offer_id="o1")

        with pytest.raises(InvariantViolation):
            accept_offer(opportunity, "o1", inputs, today=date(2026, 2, 1))

        assert opportunity.offer("o1").status == OfferStatus.PENDING

    def test_bad_commission_inputs_block_accept(self, opportunity):
        """Test invalid commission inputs leave the offer untouched."""
        submit_offer(opportunity, "Bruno Silva", 200000, offer_id="o1")

        with pytest.raises(ValidationError):
            accept_offer(opportunity, "o1", CommissionInputs(200000, 150))

        assert opportunity.offer("o1").status == OfferStatus.PENDING
        assert opportunity.accepted_offer_id is None
        assert opportunity.commission is None

    def test_unknown_offer(self, opportunity, inputs):
        """Test accepting a missing offer is a validation error."""
        with pytest.raises(ValidationError):
            accept_offer(opportunity, "nope", inputs)


class TestRejectAndCounter:
    """Tests for rejecting and countering."""

    def test_reject_requires_reason(self, opportunity):
        """Test an empty reason is rejected."""
        submit_offer(opportunity, "Bruno Silva", 200000, offer_id="o1")

        with pytest.raises(ValidationError) as exc:
            reject_offer(opportunity, "o1", "   ")

        assert exc.value.field == "reject_reason"
        assert opportunity.offer("o1").status == OfferStatus.PENDING

    def test_reject_leaves_siblings(self, opportunity):
        """Test rejecting one offer does not touch the others."""
        submit_offer(opportunity, "Bruno Silva", 200000, offer_id="o1")
        submit_offer(opportunity, "Carla Dias", 195000, offer_id="o2")

        reject_offer(opportunity, "o1", "Financing too uncertain")

        assert opportunity.offer("o1").status == OfferStatus.REJECTED
        assert opportunity.offer("o1").reject_reason == "Financing too uncertain"
        assert opportunity.offer("o2").status == OfferStatus.PENDING

    def test_counter_twice_keeps_latest(self, opportunity):
        """Test a second counter overwrites the first."""
        submit_offer(opportunity, "Bruno Silva", 200000, offer_id="o1")

        counter_offer(opportunity, "o1", 190000)
        offer = counter_offer(opportunity, "o1", 195000, counter_conditions=["appraisal_contingency"])

        assert offer.counter_amount == 195000
        assert offer.counter_conditions == ["appraisal_contingency"]
        assert offer.status == OfferStatus.COUNTERED
        assert offer.amount == 200000

    def test_counter_requires_positive_amount(self, opportunity):
        """Test counter amount must be positive."""
        submit_offer(opportunity, "Bruno Silva", 200000, offer_id="o1")

        with pytest.raises(ValidationError):
            counter_offer(opportunity, "o1", 0)

        assert opportunity.offer("o1").status == OfferStatus.PENDING

    def test_countered_offer_can_be_rejected(self, opportunity):
        """Test a countered offer can still be rejected."""
        submit_offer(opportunity, "Bruno Silva", 200000, offer_id="o1")
        counter_offer(opportunity, "o1", 205000, counter_conditions=["appraisal_contingency"], counter_notes="Final price")

        offer = reject_offer(opportunity, "o1", "Buyer walked away")

        assert offer.status == OfferStatus.REJECTED
        assert offer.counter_amount is None
        assert offer.counter_conditions == []
        assert offer.counter_notes == ""
        assert offer.effective_amount == 200000

    @pytest.mark.parametrize("terminal", ["rejected", "accepted", "expired"])
    def test_terminal_offers_cannot_be_countered(self, opportunity, inputs, terminal):
        """Test accepted, rejected and expired offers are final."""
        submit_offer(opportunity, "Bruno Silva", 200000, valid_until=date(2026, 1, 1), offer_id="o1")
        if terminal == "rejected":
            reject_offer(opportunity, "o1", "No")
        elif terminal == "accepted":
            accept_offer(opportunity, "o1", inputs, today=date(2025, 12, 1))
        else:
            expire_offers(opportunity, today=date(2026, 1, 2))

        with pytest.raises(InvariantViolation):
            counter_offer(opportunity, "o1", 210000)


class TestExpireOffers:
    """Tests for offer expiry."""

    def test_expire_past_validity(self, opportunity):
        """Test only open offers past their date expire."""
        submit_offer(opportunity, "A", 100000, valid_until=date(2026, 3, 1), offer_id="old")
        submit_offer(opportunity, "B", 100000, valid_until=date(2026, 3, 31), offer_id="current")
        submit_offer(opportunity, "C", 100000, offer_id="open_ended")
        submit_offer(opportunity, "D", 100000, valid_until=date(2026, 2, 1), offer_id="rejected")
        reject_offer(opportunity, "rejected", "Too low")

        expired = expire_offers(opportunity, today=date(2026, 3, 15))

        assert [o.id for o in expired] == ["old"]
        assert opportunity.offer("old").status == OfferStatus.EXPIRED
        assert opportunity.offer("current").status == OfferStatus.PENDING
        assert opportunity.offer("open_ended").status == OfferStatus.PENDING
        assert opportunity.offer("rejected").status == OfferStatus.REJECTED

    def test_valid_until_day_is_still_valid(self, opportunity):
        """Test an offer is valid through its last day."""
        submit_offer(opportunity, "A", 100000, valid_until=date(2026, 3, 15), offer_id="o1")

        assert expire_offers(opportunity, today=date(2026, 3, 15)) == []


class TestRankOffers:
    """Tests for the advisory offer comparison."""

    def test_ranking_badges(self, opportunity):
        """Test ordering and badges."""
        submit_offer(opportunity, "A", 200000, financing_status=FinancingStatus.CASH,
                     buyer_quality=BuyerQuality.HIGH, offer_id="a")
        submit_offer(opportunity, "B", 195000, financing_status=FinancingStatus.PRE_APPROVED, offer_id="b")
        submit_offer(opportunity, "C", 210000, buyer_quality=BuyerQuality.LOW, offer_id="c")
        submit_offer(opportunity, "D", 300000, offer_id="d")
        reject_offer(opportunity, "d", "Not serious")

        ranked = rank_offers(opportunity.offers)

        assert [r["offer_id"] for r in ranked] == ["c", "a", "b"]
        assert ranked[0]["badges"] == ["highest_value"]
        assert ranked[1]["badges"] == ["cash"]
        assert ranked[2]["badges"] == ["pre_approved"]

    def test_counter_amount_counts(self, opportunity):
        """Test countered offers rank by their counter amount."""
        submit_offer(opportunity, "A", 200000, buyer_quality=BuyerQuality.HIGH, offer_id="a")
        submit_offer(opportunity, "B", 205000, offer_id="b")
        counter_offer(opportunity, "a", 215000)

        ranked = rank_offers(opportunity.offers)

        assert ranked[0]["offer_id"] == "a"
        assert ranked[0]["effective_amount"] == 215000
        assert ranked[0]["badges"] == ["best_overall", "highest_value"]

    def test_ranking_does_not_change_state(self, opportunity):
        """Test ranking never accepts anything."""
        submit_offer(opportunity, "A", 200000, offer_id="a")

        rank_offers(opportunity.offers)

        assert opportunity.accepted_offer_id is None
        assert opportunity.offer("a").status == OfferStatus.PENDING
