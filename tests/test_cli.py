"""Tests for the dealpipe command line."""

import json
import pytest
import tempfile
from pathlib import Path
from click.testing import CliRunner

from deal_pipeline.cli import cli

IDS = ["ana", "client1", "opp1"]


@pytest.fixture
def temp_data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def isolated_home(monkeypatch, temp_data_dir):
    """Keep config reads and writes out of the real home directory."""
    monkeypatch.setattr("deal_pipeline.core.config.DEFAULT_HOME", temp_data_dir / "home")


@pytest.fixture
def run(temp_data_dir):
    """Invoke the CLI against a temp database."""
    runner = CliRunner()
    db = str(temp_data_dir / "deals.db")

    def invoke(*args):
        return runner.invoke(cli, [*args, "--db", db])

    return invoke


@pytest.fixture
def listing(run):
    result = run("create", "ana", "client1", "--address", "Rua das Flores 12", "--price", "210000", "--id", "opp1")
    assert result.exit_code == 0, result.output
    return run


class TestCoreCommands:
    """Tests for init, create, list and show."""

    def test_init(self, run):
        """Test init reports the store location."""
        result = run("init")

        assert result.exit_code == 0
        assert "Deal store initialized" in result.output

    def test_create_and_list(self, listing):
        """Test a created opportunity is listed."""
        result = listing("list", "--consultant", "ana")

        assert result.exit_code == 0
        assert "opp1" in result.output

    def test_create_validation_error(self, run):
        """Test a negative price exits non-zero with the field name."""
        result = run("create", "ana", "client1", "--address", "Rua A", "--price", "-1")

        assert result.exit_code == 1
        assert "Invalid asking_price" in result.output

    def test_show_missing(self, run):
        """Test showing an unknown opportunity fails cleanly."""
        result = run("show", *IDS)

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_show_json(self, listing):
        """Test the JSON summary is machine readable."""
        result = listing("show", *IDS, "--json")

        assert result.exit_code == 0
        summary = json.loads(result.stdout)
        assert summary["opportunity"]["property_address"] == "Rua das Flores 12"
        assert summary["transaction_progress"] == 0

    def test_stage_and_viewing(self, listing):
        """Test stage labels and viewings."""
        assert listing("stage", *IDS, "em_marketing").exit_code == 0

        result = listing("viewing", *IDS, "--visitor", "Sr. Lopes", "--completed")

        assert result.exit_code == 0
        assert "1 total" in result.output


class TestDealCommands:
    """Tests for a sale driven from the command line."""

    def test_full_sale(self, listing):
        """Test offer, CPCV, Escritura and commission commands in sequence."""
        result = listing("offer", "submit", *IDS, "--buyer", "Bruno Silva", "--amount", "200000",
                         "--financing", "cash", "--id", "o1")
        assert result.exit_code == 0
        assert "Offer o1 from Bruno Silva" in result.output

        result = listing("offer", "accept", *IDS, "o1", "--rate", "5")
        assert result.exit_code == 0
        assert "Offer o1 accepted" in result.output

        assert listing("doc", *IDS, "buyer_id", "verified").exit_code == 0
        assert listing("cpcv", "prepare", *IDS, "--date", "2026-11-02", "--location", "Lisboa").exit_code == 0

        result = listing("cpcv", "sign", *IDS)
        assert result.exit_code == 0
        assert "CPCV signed" in result.output

        result = listing("escritura", "prepare", *IDS, "--date", "2027-01-15 11:30",
                         "--notary", "Dra. Marta Costa", "--location", "Lisboa")
        assert result.exit_code == 0

        result = listing("escritura", "complete", *IDS, "--registration", "AP-2027/0042")
        assert result.exit_code == 0
        assert "Sale completed" in result.output

        result = listing("commission", "pay", *IDS, "--date", "2027-01-20")
        assert result.exit_code == 0
        assert "Commission received" in result.output

        summary = json.loads(listing("show", *IDS, "--json").stdout)
        assert summary["opportunity"]["stage"] == "concluido"
        assert summary["transaction_progress"] == 100
        assert summary["commission_pending_amount"] == pytest.approx(0)

    def test_second_accept_not_allowed(self, listing):
        """Test accepting a second offer is refused."""
        listing("offer", "submit", *IDS, "--buyer", "A", "--amount", "200000", "--id", "o1")
        listing("offer", "submit", *IDS, "--buyer", "B", "--amount", "205000", "--id", "o2")
        listing("offer", "accept", *IDS, "o1")

        result = listing("offer", "accept", *IDS, "o2")

        assert result.exit_code == 1
        assert "Not allowed" in result.output

    def test_reject_requires_reason(self, listing):
        """Test --reason is mandatory."""
        listing("offer", "submit", *IDS, "--buyer", "A", "--amount", "200000", "--id", "o1")

        result = listing("offer", "reject", *IDS, "o1")

        assert result.exit_code != 0

    def test_cpcv_before_accept(self, listing):
        """Test transaction commands need an accepted offer."""
        result = listing("cpcv", "sign", *IDS, "--date", "2026-11-02", "--location", "Lisboa")

        assert result.exit_code == 1
        assert "Not allowed" in result.output

    def test_financing(self, listing):
        """Test financing tracking commands."""
        listing("offer", "submit", *IDS, "--buyer", "A", "--amount", "200000", "--id", "o1")
        listing("offer", "accept", *IDS, "o1")

        assert listing("financing", "enable", *IDS, "--bank", "Caixa Geral").exit_code == 0
        result = listing("financing", "milestone", *IDS, "bank_approval")

        assert result.exit_code == 0
        summary = json.loads(listing("show", *IDS, "--json").stdout)
        assert summary["financing"]["completed"] == 1


class TestConfigCommands:
    """Tests for the config group."""

    def test_set_and_show(self):
        """Test settings are saved and shown."""
        runner = CliRunner()

        result = runner.invoke(cli, ["config", "set", "--commission-rate", "4", "--signal", "15"])
        assert result.exit_code == 0

        result = runner.invoke(cli, ["config", "show"])
        assert "Commission rate: 4.0%" in result.output
        assert "CPCV signal: 15.0%" in result.output
