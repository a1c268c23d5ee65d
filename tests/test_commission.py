"""Tests for commission calculation and payment tracking."""

import pytest
from datetime import date, datetime

from deal_pipeline.core.config import DealConfig
from deal_pipeline.core.errors import ValidationError
from deal_pipeline.commission import (
    SplitType,
    CommissionInputs,
    Commission,
    CommissionStatus,
    compute_commission,
    validate_commission_inputs,
    build_commission_inputs,
    record_commission_payment,
    commission_summary,
)


@pytest.fixture
def full_inputs():
    """200k cash sale, full commission, 55% agency split."""
    return CommissionInputs(
        sale_price=200000,
        commission_rate=5,
        my_split_percentage=100,
        agency_split_percentage=55,
    )


class TestComputeCommission:
    """Tests for the split-of-a-split calculation."""

    def test_full_commission(self, full_inputs):
        """Test the plain 5% sale with no co-agent."""
        breakdown = compute_commission(full_inputs)

        assert breakdown.total_commission == pytest.approx(10000)
        assert breakdown.production_value == pytest.approx(10000)
        assert breakdown.net_commission == pytest.approx(5500)
        assert breakdown.agency_share == pytest.approx(4500)

    def test_shared_commission(self):
        """Test a 50/50 split with another agent."""
        inputs = CommissionInputs(
            sale_price=300000,
            commission_rate=4,
            my_split_percentage=50,
            agency_split_percentage=60,
            split_type=SplitType.SPLIT,
        )
        breakdown = compute_commission(inputs)

        assert breakdown.total_commission == pytest.approx(12000)
        assert breakdown.production_value == pytest.approx(6000)
        assert breakdown.net_commission == pytest.approx(3600)
        assert breakdown.agency_share == pytest.approx(2400)
        assert inputs.other_agent_percentage == 50

    @pytest.mark.parametrize("price,rate,mine,agency", [
        (150000, 5, 100, 55),
        (487350.5, 3.5, 40, 70),
        (1, 0, 0, 0),
        (999999, 100, 100, 100),
        (250000, 5, 33.3, 12.5),
    ])
    def test_split_identities(self, price, rate, mine, agency):
        """Test agency share plus net equals production, within total."""
        split_type = SplitType.FULL if mine == 100 else SplitType.SPLIT
        breakdown = compute_commission(CommissionInputs(price, rate, mine, agency, split_type))

        assert breakdown.agency_share + breakdown.net_commission == pytest.approx(breakdown.production_value)
        assert breakdown.production_value <= breakdown.total_commission + 1e-9

    def test_strict_rejects_bad_inputs(self):
        """Test strict mode raises instead of computing."""
        with pytest.raises(ValidationError) as exc:
            compute_commission(CommissionInputs(0, 5), strict=True)

        assert exc.value.field == "sale_price"


class TestValidateCommissionInputs:
    """Tests for input validation."""

    def test_valid_inputs(self, full_inputs):
        """Test valid inputs produce no errors."""
        assert validate_commission_inputs(full_inputs) == []

    def test_reports_every_problem(self):
        """Test several bad fields are reported together."""
        errors = validate_commission_inputs(CommissionInputs(
            sale_price=-1,
            commission_rate=120,
            my_split_percentage=50,
            agency_split_percentage=-5,
            split_type=SplitType.SPLIT,
        ))
        fields = {e.field for e in errors}

        assert fields == {"sale_price", "commission_rate", "agency_split_percentage"}

    def test_full_split_must_be_100(self):
        """Test a full commission cannot carry a partial split."""
        errors = validate_commission_inputs(CommissionInputs(200000, 5, 80, 55, SplitType.FULL))

        assert [e.field for e in errors] == ["my_split_percentage"]


class TestBuildCommissionInputs:
    """Tests for filling inputs from defaults."""

    def test_defaults_from_config(self):
        """Test omitted values come from the config."""
        config = DealConfig(commission_rate=4.0, agency_split_percentage=60.0)
        inputs = build_commission_inputs(100000, config=config)

        assert inputs.commission_rate == 4.0
        assert inputs.agency_split_percentage == 60.0
        assert inputs.my_split_percentage == 100.0
        assert inputs.split_type == SplitType.FULL

    def test_split_defaults_to_half(self):
        """Test a shared sale starts at 50/50."""
        inputs = build_commission_inputs(100000, split_type=SplitType.SPLIT)

        assert inputs.my_split_percentage == 50.0
        assert inputs.other_agent_percentage == 50.0

    def test_explicit_values_win(self):
        """Test explicit values override the defaults."""
        inputs = build_commission_inputs(
            100000, commission_rate=6, split_type=SplitType.SPLIT,
            my_split_percentage=70, agency_split_percentage=80,
        )

        assert (inputs.commission_rate, inputs.my_split_percentage, inputs.agency_split_percentage) == (6, 70, 80)


class TestCommissionRecord:
    """Tests for the stored commission record."""

    def test_derived_values_follow_inputs(self, full_inputs):
        """Test derived values are recomputed when inputs change."""
        commission = Commission(inputs=full_inputs)
        assert commission.net_commission == pytest.approx(5500)

        commission.inputs.sale_price = 400000

        assert commission.net_commission == pytest.approx(11000)

    def test_stored_derived_values_are_ignored(self, full_inputs):
        """Test tampered derived values in storage are not trusted."""
        data = Commission(inputs=full_inputs).to_dict()
        data["net_commission"] = 1.0
        data["total_commission"] = 2.0

        restored = Commission.from_dict(data)

        assert restored.net_commission == pytest.approx(5500)
        assert restored.total_commission == pytest.approx(10000)


class TestCommissionPayments:
    """Tests for payment tracking."""

    def test_received_defaults_to_net(self, full_inputs):
        """Test marking received with no amount books the full net commission."""
        commission = Commission(inputs=full_inputs)

        record_commission_payment(commission, CommissionStatus.RECEIVED, today=date(2026, 3, 15))

        assert commission.status == CommissionStatus.RECEIVED
        assert commission.amount_received == pytest.approx(5500)
        assert commission.pending_amount == pytest.approx(0)
        assert commission.payment_date == date(2026, 3, 15)

    def test_partial_payment(self, full_inputs):
        """Test an explicit amount leaves the rest pending."""
        commission = Commission(inputs=full_inputs)

        record_commission_payment(
            commission, CommissionStatus.RECEIVED,
            amount_received=2000, payment_date=date(2026, 4, 1), payment_notes="First tranche",
        )

        assert commission.pending_amount == pytest.approx(3500)
        assert commission.payment_date == date(2026, 4, 1)
        assert commission.payment_notes == "First tranche"

    def test_revert_to_pending(self, full_inputs):
        """Test a received commission can be reverted."""
        commission = Commission(inputs=full_inputs)
        record_commission_payment(commission, CommissionStatus.RECEIVED)

        record_commission_payment(commission, CommissionStatus.PENDING, amount_received=0)

        assert commission.status == CommissionStatus.PENDING
        assert commission.pending_amount == pytest.approx(5500)

    def test_negative_amount_rejected(self, full_inputs):
        """Test negative payments are rejected before any change."""
        commission = Commission(inputs=full_inputs)

        with pytest.raises(ValidationError):
            record_commission_payment(commission, CommissionStatus.RECEIVED, amount_received=-10)

        assert commission.status == CommissionStatus.PENDING
        assert commission.amount_received == 0

    def test_summary(self, full_inputs):
        """Test expected versus received totals."""
        paid = Commission(inputs=full_inputs, calculated_at=datetime(2026, 1, 10))
        record_commission_payment(paid, CommissionStatus.RECEIVED, payment_date=date(2026, 2, 3))
        open_one = Commission(
            inputs=CommissionInputs(100000, 5, 100, 50),
            calculated_at=datetime(2026, 5, 1),
        )
        last_year = Commission(inputs=full_inputs, calculated_at=datetime(2025, 6, 1))

        summary = commission_summary([paid, open_one, last_year, None], year=2026)

        assert summary["total_commissions"] == 2
        assert summary["expected_net"] == pytest.approx(8000)
        assert summary["received_net"] == pytest.approx(5500)
        assert summary["outstanding"] == pytest.approx(2500)
        assert summary["by_month"] == {"2026-02": {"received": 5500, "count": 1}}
