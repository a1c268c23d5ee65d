"""Tests for the document checklist and the financing milestones."""

import pytest
from datetime import datetime

from deal_pipeline.core.errors import ValidationError, InvariantViolation
from deal_pipeline.offers.models import Offer
from deal_pipeline.transactions import (
    DocumentStatus,
    FinancingMilestone,
    TransactionStage,
    create_transaction,
    set_document_status,
    checklist_summary,
    set_financing,
    set_financing_milestone,
    mark_fell_through,
)
from deal_pipeline.transactions.financing import financing_progress
from deal_pipeline.transactions.models import Transaction


@pytest.fixture
def transaction():
    return create_transaction(Offer(id="o1", buyer_name="Bruno Silva", amount=250000))


class TestDocumentChecklist:
    """Tests for per-document status tracking."""

    def test_received_stamps_upload_time(self, transaction):
        """Test the first move off pending records when the document arrived."""
        entry = set_document_status(transaction, "nif", DocumentStatus.RECEIVED)

        assert entry.status == DocumentStatus.RECEIVED
        assert entry.uploaded_at is not None

    def test_verified_keeps_upload_time(self, transaction):
        """Test verifying a received document keeps its upload time."""
        received = set_document_status(transaction, "nif", DocumentStatus.RECEIVED).uploaded_at

        entry = set_document_status(transaction, "nif", DocumentStatus.VERIFIED, notes="Checked at AT portal")

        assert entry.uploaded_at == received
        assert entry.notes == "Checked at AT portal"

    def test_round_trip_clears_upload_time(self, transaction):
        """Test received then pending restores the entry, uploaded_at cleared."""
        original = transaction.document("buyer_id").to_dict()

        set_document_status(transaction, "buyer_id", DocumentStatus.RECEIVED)
        set_document_status(transaction, "buyer_id", DocumentStatus.PENDING)

        entry = transaction.document("buyer_id")
        assert entry.status == DocumentStatus.PENDING
        assert entry.uploaded_at is None
        assert entry.to_dict() == original

    def test_any_direction(self, transaction):
        """Test statuses can move in any order."""
        set_document_status(transaction, "proof_of_funds", DocumentStatus.VERIFIED)
        entry = set_document_status(transaction, "proof_of_funds", DocumentStatus.RECEIVED)

        assert entry.status == DocumentStatus.RECEIVED

    def test_unknown_document(self, transaction):
        """Test unknown document types are rejected."""
        with pytest.raises(ValidationError) as exc:
            set_document_status(transaction, "passport_photo", DocumentStatus.RECEIVED)

        assert exc.value.field == "doc_type"

    def test_summary(self, transaction):
        """Test completion counts and missing required documents."""
        set_document_status(transaction, "buyer_id", DocumentStatus.VERIFIED)
        set_document_status(transaction, "nif", DocumentStatus.RECEIVED)

        summary = checklist_summary(transaction)

        assert summary["total"] == 4
        assert summary["total_required"] == 3
        assert summary["verified"] == 1
        assert summary["received"] == 1
        assert summary["progress_percent"] == 25
        assert summary["missing_required"] == ["proof_of_funds"]


class TestFinancing:
    """Tests for the mortgage milestone ledger."""

    def test_enable_creates_ledger(self, transaction):
        """Test enabling financing creates four open milestones."""
        ledger = set_financing(transaction, True, bank_name="Caixa Geral", approval_amount=180000)

        assert transaction.has_financing
        assert ledger.bank_name == "Caixa Geral"
        assert ledger.approval_amount == 180000
        assert len(ledger.milestones) == 4
        assert not any(m.completed for m in ledger.milestones.values())

    def test_enable_again_updates_bank(self, transaction):
        """Test enabling again keeps milestones and updates bank details."""
        set_financing(transaction, True, bank_name="Caixa Geral")
        set_financing_milestone(transaction, FinancingMilestone.BANK_APPROVAL)

        ledger = set_financing(transaction, True, bank_name="Millennium BCP")

        assert ledger.bank_name == "Millennium BCP"
        assert ledger.milestones[FinancingMilestone.BANK_APPROVAL].completed

    def test_milestone_toggle(self, transaction):
        """Test marking a milestone done dates it; undoing clears the date."""
        set_financing(transaction, True)

        done = set_financing_milestone(transaction, FinancingMilestone.EVALUATION_SCHEDULED)
        assert done.completed
        assert isinstance(done.date, datetime)

        undone = set_financing_milestone(transaction, FinancingMilestone.EVALUATION_SCHEDULED, completed=False)
        assert not undone.completed
        assert undone.date is None

    def test_disable_discards_ledger(self, transaction):
        """Test disabling financing throws away the milestones."""
        set_financing(transaction, True)
        set_financing_milestone(transaction, FinancingMilestone.FINAL_APPROVAL)

        set_financing(transaction, False)
        assert transaction.financing is None

        ledger = set_financing(transaction, True)
        assert not ledger.milestones[FinancingMilestone.FINAL_APPROVAL].completed

    def test_milestone_without_financing(self, transaction):
        """Test editing milestones when financing is off is refused."""
        with pytest.raises(InvariantViolation):
            set_financing_milestone(transaction, FinancingMilestone.BANK_APPROVAL)

    def test_closed_transaction(self, transaction):
        """Test financing is frozen once the deal fell through."""
        set_financing(transaction, True)
        mark_fell_through(transaction, "Bank declined")

        with pytest.raises(InvariantViolation):
            set_financing_milestone(transaction, FinancingMilestone.BANK_APPROVAL)
        assert transaction.stage == TransactionStage.FELL_THROUGH

    def test_progress_and_round_trip(self, transaction):
        """Test progress counts and the ledger survives serialization."""
        set_financing(transaction, True, bank_name="Novo Banco", approval_amount=200000)
        set_financing_milestone(transaction, FinancingMilestone.BANK_APPROVAL)
        set_financing_milestone(transaction, FinancingMilestone.EVALUATION_SCHEDULED)

        restored = Transaction.from_dict(transaction.to_dict())

        assert financing_progress(restored.financing) == {
            "enabled": True,
            "bank_name": "Novo Banco",
            "approval_amount": 200000,
            "completed": 2,
            "total": 4,
        }
        assert financing_progress(None)["enabled"] is False
