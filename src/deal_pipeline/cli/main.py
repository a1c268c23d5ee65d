"""Main CLI entry point for the dealpipe command."""

import functools
import json
import sys
import click
from pathlib import Path
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from typing import Optional

from ..core.config import DealConfigManager
from ..core.errors import ValidationError, InvariantViolation, OpportunityNotFound, PersistenceError
from ..commission.calculator import SplitType
from ..commission.models import CommissionStatus
from ..offers.models import FinancingStatus, BuyerQuality, OFFER_CONDITIONS
from ..offers.negotiation import rank_offers
from ..opportunities.models import Opportunity, SELLER_PIPELINE_STAGES
from ..opportunities.service import DealService
from ..storage import open_store, BACKENDS
from ..transactions.checklist import DOCUMENT_CATALOG, checklist_summary
from ..transactions.models import DocumentStatus, FinancingMilestone
from ..transactions.progression import transaction_progress

console = Console()

DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M"]


def get_service(db_path: Optional[str] = None, backend: Optional[str] = None) -> DealService:
    """Build the service over the configured store; ``--db`` forces SQLite at that path."""
    config = DealConfigManager().config
    if db_path:
        store = open_store(config, backend="sqlite", path=Path(db_path))
    else:
        store = open_store(config, backend=backend)
    return DealService(store, config)


def handle_errors(f):
    """Print pipeline errors as actionable messages and exit non-zero."""
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ValidationError as e:
            for error in e.errors:
                console.print(f"[red]Invalid {error.field}:[/red] {error.message}")
            sys.exit(1)
        except InvariantViolation as e:
            console.print(f"[red]Not allowed:[/red] {e.message}")
            sys.exit(1)
        except OpportunityNotFound as e:
            console.print(f"[red]{e.message}[/red]")
            sys.exit(1)
        except PersistenceError as e:
            hint = " (safe to retry)" if e.retryable else ""
            console.print(f"[red]Storage error:[/red] {e.message}{hint}")
            sys.exit(1)
    return wrapper


def opportunity_arguments(f):
    """CONSULTANT_ID CLIENT_ID OPPORTUNITY_ID positional arguments."""
    f = click.argument("opportunity_id")(f)
    f = click.argument("client_id")(f)
    f = click.argument("consultant_id")(f)
    return f


db_option = click.option("--db", "db_path", help="Custom database path")


def _money(value: Optional[float]) -> str:
    return f"€{value:,.2f}" if value is not None else "N/A"


def _when(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "N/A"


def _print_opportunity(opp: Opportunity):
    lines = [
        f"[bold]Address:[/bold] {opp.property_address}",
        f"[bold]Asking price:[/bold] {_money(opp.asking_price)}",
        f"[bold]Stage:[/bold] {opp.stage}",
        f"[bold]Seller:[/bold] {opp.seller_ref or 'N/A'}",
        f"[bold]Offers:[/bold] {len(opp.offers)} ({len(opp.open_offers)} open)",
        f"[bold]Viewings:[/bold] {opp.marketing.viewings_completed}/{opp.marketing.viewings_scheduled} completed",
        f"[bold]Days on market:[/bold] {opp.marketing.days_on_market}",
    ]

    accepted = opp.accepted_offer
    if accepted:
        lines.extend(["", f"[bold]Accepted:[/bold] {accepted.buyer_name} at {_money(accepted.effective_amount)}"])

    txn = opp.transaction
    if txn:
        docs = checklist_summary(txn)
        lines.extend([
            "",
            f"[bold]Transaction:[/bold] {txn.stage.value} ({transaction_progress(txn)}%)",
            f"  CPCV: {txn.cpcv.status.value}, signal {_money(txn.cpcv.signal_amount)}, {_when(txn.cpcv.scheduled_date)}",
            f"  Escritura: {txn.escritura.status.value}, {_when(txn.escritura.scheduled_date)}",
            f"  Documents: {docs['verified']}/{docs['total']} verified",
        ])
        if docs["missing_required"]:
            lines.append(f"  [yellow]Missing: {', '.join(docs['missing_required'])}[/yellow]")
        if txn.financing:
            done = len([m for m in txn.financing.milestones.values() if m.completed])
            lines.append(f"  Financing: {txn.financing.bank_name or 'bank TBD'}, {done}/4 milestones")
        if txn.fell_through_reason:
            lines.append(f"  [red]Fell through: {txn.fell_through_reason}[/red]")

    commission = opp.commission
    if commission:
        lines.extend([
            "",
            f"[bold]Commission:[/bold] total {_money(commission.total_commission)}, "
            f"net {_money(commission.net_commission)}",
            f"  Status: {commission.status.value}, received {_money(commission.amount_received)}, "
            f"pending {_money(commission.pending_amount)}",
        ])

    console.print(Panel("\n".join(lines), title=f"{opp.id} (v{opp.version})"))


@click.group()
@click.version_option(version="1.0.0", prog_name="dealpipe")
def cli():
    """Deal Pipeline - from accepted offer to signed deed.

    \b
    Quick Start:
      dealpipe create ana client1 --address "Rua X 1" --price 300000 --id opp1
      dealpipe offer submit ana client1 opp1 --buyer "B. Silva" --amount 290000
      dealpipe offer accept ana client1 opp1 OFFER_ID
      dealpipe cpcv sign ana client1 opp1 --date 2026-11-02 --location Lisboa
      dealpipe show ana client1 opp1
    """
    pass


# ============================================================================
# CORE COMMANDS
# ============================================================================

@cli.command()
@db_option
@handle_errors
def init(db_path: Optional[str]):
    """Initialize the deal store and show where it lives."""
    service = get_service(db_path)
    location = getattr(service.store, "db_path", None) or getattr(service.store, "data_path", "memory")
    count = len(service.store.list("consultants/"))

    console.print(Panel.fit(
        f"[green]✓ Deal store initialized![/green]\n\n"
        f"Location: [cyan]{location}[/cyan]\n"
        f"Documents: {count}\n\n"
        f"[bold]Defaults:[/bold]\n"
        f"• Commission rate: {service.config.commission_rate}%\n"
        f"• Agency split: {service.config.agency_split_percentage}%\n"
        f"• CPCV signal: {service.config.signal_percentage}%\n\n"
        f"[dim]Run 'dealpipe --help' for all commands[/dim]",
        title="Deal Pipeline"
    ))


@cli.command()
@click.argument("consultant_id")
@click.argument("client_id")
@click.option("--address", "-a", required=True, help="Property address")
@click.option("--price", "-p", type=float, required=True, help="Asking price")
@click.option("--seller-ref", default="", help="Seller reference")
@click.option("--id", "opportunity_id", help="Opportunity id (generated when omitted)")
@click.option("--stage", type=click.Choice(SELLER_PIPELINE_STAGES), default="lead")
@db_option
@handle_errors
def create(consultant_id: str, client_id: str, address: str, price: float, seller_ref: str,
           opportunity_id: Optional[str], stage: str, db_path: Optional[str]):
    """Create a listing opportunity."""
    service = get_service(db_path)
    opp = service.create_opportunity(
        consultant_id, client_id, address, price,
        seller_ref=seller_ref, opportunity_id=opportunity_id, stage=stage,
    )
    console.print(f"[green]✓ Created opportunity {opp.id}[/green]")


@cli.command("list")
@click.option("--consultant", "consultant_id", help="Filter by consultant")
@click.option("--client", "client_id", help="Filter by client (requires --consultant)")
@click.option("--stage", type=click.Choice(SELLER_PIPELINE_STAGES), help="Filter by stage")
@db_option
@handle_errors
def list_opportunities(consultant_id: Optional[str], client_id: Optional[str], stage: Optional[str],
                       db_path: Optional[str]):
    """List opportunities."""
    if client_id and not consultant_id:
        raise click.UsageError("--client requires --consultant")

    service = get_service(db_path)
    opportunities = service.list_opportunities(consultant_id, client_id, stage=stage)

    if not opportunities:
        console.print("[yellow]No opportunities found matching criteria.[/yellow]")
        return

    table = Table(title=f"Opportunities ({len(opportunities)})")
    table.add_column("ID", style="cyan")
    table.add_column("Consultant")
    table.add_column("Client")
    table.add_column("Address")
    table.add_column("Asking", justify="right")
    table.add_column("Stage")
    table.add_column("Offers", justify="right")
    table.add_column("Deal")

    for opp in opportunities:
        table.add_row(
            opp.id,
            opp.consultant_id,
            opp.client_id,
            opp.property_address[:30],
            _money(opp.asking_price),
            opp.stage,
            str(len(opp.offers)),
            opp.transaction.stage.value if opp.transaction else "-",
        )

    console.print(table)


@cli.command()
@opportunity_arguments
@click.option("--json", "as_json", is_flag=True, help="Print the full summary as JSON")
@db_option
@handle_errors
def show(consultant_id: str, client_id: str, opportunity_id: str, as_json: bool, db_path: Optional[str]):
    """Show one opportunity with its deal status."""
    service = get_service(db_path)
    if as_json:
        click.echo(json.dumps(service.deal_summary(consultant_id, client_id, opportunity_id), indent=2))
        return
    _print_opportunity(service.get_opportunity(consultant_id, client_id, opportunity_id))


@cli.command()
@opportunity_arguments
@click.argument("stage", type=click.Choice(SELLER_PIPELINE_STAGES))
@db_option
@handle_errors
def stage(consultant_id: str, client_id: str, opportunity_id: str, stage: str, db_path: Optional[str]):
    """Set the pipeline stage label."""
    service = get_service(db_path)
    service.set_stage(consultant_id, client_id, opportunity_id, stage)
    console.print(f"[green]✓ {opportunity_id} → {stage}[/green]")


@cli.command()
@opportunity_arguments
@click.option("--date", "viewing_date", type=click.DateTime(DATE_FORMATS), help="Viewing date")
@click.option("--visitor", default="", help="Who viewed the property")
@click.option("--completed", is_flag=True, help="The viewing already took place")
@click.option("--notes", default="")
@db_option
@handle_errors
def viewing(consultant_id: str, client_id: str, opportunity_id: str, viewing_date, visitor: str,
            completed: bool, notes: str, db_path: Optional[str]):
    """Record a property viewing."""
    service = get_service(db_path)
    opp = service.record_viewing(consultant_id, client_id, opportunity_id, viewing_date, visitor, completed, notes)
    console.print(f"[green]✓ Viewing recorded ({opp.marketing.viewings_scheduled} total)[/green]")


@cli.command("days-on-market")
@opportunity_arguments
@db_option
@handle_errors
def days_on_market(consultant_id: str, client_id: str, opportunity_id: str, db_path: Optional[str]):
    """Recompute days on market from the listing date."""
    service = get_service(db_path)
    opp = service.refresh_days_on_market(consultant_id, client_id, opportunity_id)
    console.print(f"[green]✓ {opp.marketing.days_on_market} days on market[/green]")


# ============================================================================
# OFFERS
# ============================================================================

@cli.group()
def offer():
    """Submit, accept, reject and counter buyer offers."""
    pass


@offer.command("submit")
@opportunity_arguments
@click.option("--buyer", required=True, help="Buyer name")
@click.option("--amount", type=float, required=True, help="Offer amount")
@click.option("--down-payment", type=float, default=0.0)
@click.option("--financing", type=click.Choice([s.value for s in FinancingStatus]), default="pending")
@click.option("--condition", "conditions", multiple=True, type=click.Choice(list(OFFER_CONDITIONS)),
              help="Contingency (repeatable)")
@click.option("--quality", type=click.Choice([q.value for q in BuyerQuality]), default="medium")
@click.option("--valid-until", type=click.DateTime(["%Y-%m-%d"]), help="Offer valid until")
@click.option("--notes", default="")
@click.option("--id", "offer_id", help="Offer id (generated when omitted)")
@db_option
@handle_errors
def offer_submit(consultant_id, client_id, opportunity_id, buyer, amount, down_payment, financing,
                 conditions, quality, valid_until, notes, offer_id, db_path):
    """Record a buyer's offer."""
    service = get_service(db_path)
    opp = service.submit_offer(
        consultant_id, client_id, opportunity_id, buyer, amount,
        down_payment=down_payment,
        financing_status=FinancingStatus(financing),
        conditions=conditions,
        buyer_quality=BuyerQuality(quality),
        valid_until=valid_until.date() if valid_until else None,
        notes=notes,
        offer_id=offer_id,
    )
    new_offer = opp.offers[-1]
    console.print(f"[green]✓ Offer {new_offer.id} from {new_offer.buyer_name}: {_money(new_offer.amount)}[/green]")


@offer.command("accept")
@opportunity_arguments
@click.argument("offer_id")
@click.option("--rate", type=float, help="Commission rate % (default from config)")
@click.option("--split-type", type=click.Choice([s.value for s in SplitType]), help="full or split")
@click.option("--my-split", type=float, help="Your share % when split")
@click.option("--agency-split", type=float, help="Share of production you keep %")
@db_option
@handle_errors
def offer_accept(consultant_id, client_id, opportunity_id, offer_id, rate, split_type, my_split,
                 agency_split, db_path):
    """Accept an offer and open the transaction."""
    service = get_service(db_path)
    opp = service.accept_offer(
        consultant_id, client_id, opportunity_id, offer_id,
        commission_rate=rate,
        split_type=SplitType(split_type) if split_type else None,
        my_split_percentage=my_split,
        agency_split_percentage=agency_split,
    )
    console.print(f"[green]✓ Offer {offer_id} accepted[/green]")
    console.print(f"[dim]Net commission: {_money(opp.commission.net_commission)}[/dim]")


@offer.command("reject")
@opportunity_arguments
@click.argument("offer_id")
@click.option("--reason", required=True, help="Why the offer was rejected")
@db_option
@handle_errors
def offer_reject(consultant_id, client_id, opportunity_id, offer_id, reason, db_path):
    """Reject an offer."""
    service = get_service(db_path)
    service.reject_offer(consultant_id, client_id, opportunity_id, offer_id, reason)
    console.print(f"[green]✓ Offer {offer_id} rejected[/green]")


@offer.command("counter")
@opportunity_arguments
@click.argument("offer_id")
@click.option("--amount", type=float, required=True, help="Counter amount")
@click.option("--condition", "conditions", multiple=True, type=click.Choice(list(OFFER_CONDITIONS)))
@click.option("--notes", default="")
@db_option
@handle_errors
def offer_counter(consultant_id, client_id, opportunity_id, offer_id, amount, conditions, notes, db_path):
    """Counter an offer."""
    service = get_service(db_path)
    service.counter_offer(consultant_id, client_id, opportunity_id, offer_id, amount, conditions, notes)
    console.print(f"[green]✓ Countered offer {offer_id} at {_money(amount)}[/green]")


@offer.command("expire")
@opportunity_arguments
@db_option
@handle_errors
def offer_expire(consultant_id, client_id, opportunity_id, db_path):
    """Expire offers past their validity date."""
    service = get_service(db_path)
    before = service.get_opportunity(consultant_id, client_id, opportunity_id)
    after = service.expire_offers(consultant_id, client_id, opportunity_id)
    expired = len([o for o in after.offers if o.status.value == "expired"]) - \
        len([o for o in before.offers if o.status.value == "expired"])
    console.print(f"[green]✓ Expired {expired} offer(s)[/green]")


@offer.command("list")
@opportunity_arguments
@db_option
@handle_errors
def offer_list(consultant_id, client_id, opportunity_id, db_path):
    """Compare the offers on a listing."""
    service = get_service(db_path)
    opp = service.get_opportunity(consultant_id, client_id, opportunity_id)

    if not opp.offers:
        console.print("[yellow]No offers yet.[/yellow]")
        return

    badges = {r["offer_id"]: r["badges"] for r in rank_offers(opp.offers)}

    table = Table(title=f"Offers on {opp.id} ({len(opp.offers)})")
    table.add_column("ID", style="cyan")
    table.add_column("Buyer")
    table.add_column("Amount", justify="right")
    table.add_column("Counter", justify="right")
    table.add_column("Financing")
    table.add_column("Quality")
    table.add_column("Status")
    table.add_column("Badges")

    status_colors = {
        "accepted": "green",
        "countered": "yellow",
        "rejected": "red",
        "expired": "dim",
    }

    for o in opp.offers:
        color = status_colors.get(o.status.value, "white")
        table.add_row(
            o.id,
            o.buyer_name[:20],
            _money(o.amount),
            _money(o.counter_amount) if o.counter_amount else "-",
            o.financing_status.value,
            o.buyer_quality.value,
            f"[{color}]{o.status.value}[/{color}]",
            ", ".join(badges.get(o.id, [])),
        )

    console.print(table)


# ============================================================================
# TRANSACTION
# ============================================================================

@cli.group()
def cpcv():
    """Prepare and sign the promissory contract."""
    pass


def _cpcv_options(f):
    f = click.option("--notes")(f)
    f = click.option("--location", help="Where the CPCV is signed")(f)
    f = click.option("--signal", "signal_amount", type=float, help="Signal (default: configured % of price)")(f)
    f = click.option("--date", "scheduled_date", type=click.DateTime(DATE_FORMATS), help="CPCV date")(f)
    return f


@cpcv.command("prepare")
@opportunity_arguments
@_cpcv_options
@db_option
@handle_errors
def cpcv_prepare(consultant_id, client_id, opportunity_id, scheduled_date, signal_amount, location, notes, db_path):
    """Save the CPCV details (repeatable)."""
    service = get_service(db_path)
    opp = service.prepare_cpcv(consultant_id, client_id, opportunity_id, scheduled_date, signal_amount, location, notes)
    console.print(f"[green]✓ CPCV prepared, signal {_money(opp.transaction.cpcv.signal_amount)}[/green]")


@cpcv.command("sign")
@opportunity_arguments
@_cpcv_options
@db_option
@handle_errors
def cpcv_sign(consultant_id, client_id, opportunity_id, scheduled_date, signal_amount, location, notes, db_path):
    """Mark the CPCV signed."""
    service = get_service(db_path)
    opp = service.sign_cpcv(consultant_id, client_id, opportunity_id, scheduled_date, signal_amount, location, notes)
    missing = checklist_summary(opp.transaction)["missing_required"]
    console.print("[green]✓ CPCV signed[/green]")
    if missing:
        console.print(f"[yellow]Warning:[/yellow] required documents still pending: {', '.join(missing)}")


@cli.group()
def escritura():
    """Schedule and complete the deed."""
    pass


def _escritura_options(f):
    f = click.option("--notes")(f)
    f = click.option("--registration", "registration_number", help="Registration number")(f)
    f = click.option("--final-amount", type=float, help="Final sale amount")(f)
    f = click.option("--location", "notary_location", help="Notary location")(f)
    f = click.option("--notary", "notary_name", help="Notary name")(f)
    f = click.option("--date", "scheduled_date", type=click.DateTime(DATE_FORMATS), help="Escritura date")(f)
    return f


@escritura.command("prepare")
@opportunity_arguments
@_escritura_options
@db_option
@handle_errors
def escritura_prepare(consultant_id, client_id, opportunity_id, scheduled_date, notary_name, notary_location,
                      final_amount, registration_number, notes, db_path):
    """Schedule the Escritura (repeatable)."""
    service = get_service(db_path)
    service.prepare_escritura(
        consultant_id, client_id, opportunity_id, scheduled_date, notary_name, notary_location,
        final_amount, registration_number, notes,
    )
    console.print("[green]✓ Escritura scheduled[/green]")


@escritura.command("complete")
@opportunity_arguments
@_escritura_options
@db_option
@handle_errors
def escritura_complete(consultant_id, client_id, opportunity_id, scheduled_date, notary_name, notary_location,
                       final_amount, registration_number, notes, db_path):
    """Record the deed as signed."""
    service = get_service(db_path)
    service.complete_escritura(
        consultant_id, client_id, opportunity_id, scheduled_date, notary_name, notary_location,
        final_amount, registration_number, notes,
    )
    console.print("[green]🎉 Sale completed![/green]")


@cli.command("fell-through")
@opportunity_arguments
@click.option("--reason", required=True, help="Why the deal collapsed")
@db_option
@handle_errors
def fell_through(consultant_id, client_id, opportunity_id, reason, db_path):
    """Close a deal that fell through."""
    service = get_service(db_path)
    service.mark_fell_through(consultant_id, client_id, opportunity_id, reason)
    console.print(f"[yellow]Deal {opportunity_id} marked as fell through[/yellow]")


@cli.command()
@opportunity_arguments
@click.argument("doc_type", type=click.Choice([d["type"] for d in DOCUMENT_CATALOG]))
@click.argument("status", type=click.Choice([s.value for s in DocumentStatus]))
@click.option("--notes")
@db_option
@handle_errors
def doc(consultant_id, client_id, opportunity_id, doc_type, status, notes, db_path):
    """Set a checklist document's status."""
    service = get_service(db_path)
    service.toggle_document_status(consultant_id, client_id, opportunity_id, doc_type, DocumentStatus(status), notes)
    console.print(f"[green]✓ {doc_type} → {status}[/green]")


@cli.group()
def financing():
    """Track the buyer's mortgage milestones."""
    pass


@financing.command("enable")
@opportunity_arguments
@click.option("--bank", "bank_name", help="Lending bank")
@click.option("--approval", "approval_amount", type=float, help="Approved loan amount")
@db_option
@handle_errors
def financing_enable(consultant_id, client_id, opportunity_id, bank_name, approval_amount, db_path):
    """Turn on financing tracking (or update bank details)."""
    service = get_service(db_path)
    service.set_financing(consultant_id, client_id, opportunity_id, True, bank_name, approval_amount)
    console.print("[green]✓ Financing tracking on[/green]")


@financing.command("disable")
@opportunity_arguments
@db_option
@handle_errors
def financing_disable(consultant_id, client_id, opportunity_id, db_path):
    """Turn off financing tracking, discarding milestones."""
    service = get_service(db_path)
    service.set_financing(consultant_id, client_id, opportunity_id, False)
    console.print("[yellow]Financing tracking off, milestones discarded[/yellow]")


@financing.command("milestone")
@opportunity_arguments
@click.argument("milestone", type=click.Choice([m.value for m in FinancingMilestone]))
@click.option("--undo", is_flag=True, help="Mark the milestone as not done")
@db_option
@handle_errors
def financing_milestone(consultant_id, client_id, opportunity_id, milestone, undo, db_path):
    """Mark a financing milestone done."""
    service = get_service(db_path)
    service.set_financing_milestone(consultant_id, client_id, opportunity_id, FinancingMilestone(milestone), not undo)
    console.print(f"[green]✓ {milestone} {'reopened' if undo else 'done'}[/green]")


# ============================================================================
# COMMISSION
# ============================================================================

@cli.group()
def commission():
    """Commission calculation and payments."""
    pass


@commission.command("compute")
@opportunity_arguments
@click.option("--sale-price", type=float)
@click.option("--rate", type=float, help="Commission rate %")
@click.option("--split-type", type=click.Choice([s.value for s in SplitType]))
@click.option("--my-split", type=float, help="Your share % when split")
@click.option("--agency-split", type=float, help="Share of production you keep %")
@click.option("--notes")
@db_option
@handle_errors
def commission_compute(consultant_id, client_id, opportunity_id, sale_price, rate, split_type, my_split,
                       agency_split, notes, db_path):
    """Recalculate the commission."""
    service = get_service(db_path)
    opp = service.compute_commission(
        consultant_id, client_id, opportunity_id,
        sale_price=sale_price,
        commission_rate=rate,
        split_type=SplitType(split_type) if split_type else None,
        my_split_percentage=my_split,
        agency_split_percentage=agency_split,
        notes=notes,
    )
    c = opp.commission

    table = Table(title="Commission")
    table.add_column("Item")
    table.add_column("Amount", justify="right")
    table.add_row("Sale price", _money(c.sale_price))
    table.add_row(f"Total commission ({c.inputs.commission_rate}%)", _money(c.total_commission))
    table.add_row(f"Production ({c.inputs.my_split_percentage}%)", _money(c.production_value))
    table.add_row(f"Net ({c.inputs.agency_split_percentage}%)", f"[green]{_money(c.net_commission)}[/green]")
    table.add_row("Agency share", _money(c.agency_share))
    console.print(table)


@commission.command("pay")
@opportunity_arguments
@click.option("--amount", "amount_received", type=float, help="Amount received (default: net commission)")
@click.option("--date", "payment_date", type=click.DateTime(["%Y-%m-%d"]), help="Payment date (default: today)")
@click.option("--notes", "payment_notes")
@click.option("--pending", is_flag=True, help="Revert to pending")
@db_option
@handle_errors
def commission_pay(consultant_id, client_id, opportunity_id, amount_received, payment_date, payment_notes,
                   pending, db_path):
    """Record a commission payment."""
    service = get_service(db_path)
    status = CommissionStatus.PENDING if pending else CommissionStatus.RECEIVED
    opp = service.record_commission_payment(
        consultant_id, client_id, opportunity_id, status,
        amount_received=amount_received,
        payment_date=payment_date.date() if payment_date else None,
        payment_notes=payment_notes,
    )
    c = opp.commission
    console.print(f"[green]✓ Commission {status.value}: {_money(c.amount_received)} "
                  f"(pending {_money(c.pending_amount)})[/green]")


@commission.command("summary")
@click.option("--consultant", "consultant_id", help="Only this consultant")
@click.option("--year", type=int, help="Only commissions calculated in this year")
@db_option
@handle_errors
def commission_summary(consultant_id, year, db_path):
    """Expected versus received commission."""
    service = get_service(db_path)
    summary = service.commission_summary(consultant_id, year)

    console.print(Panel.fit(
        f"[bold]Deals:[/bold] {summary['total_commissions']}\n"
        f"[bold]Gross commission:[/bold] {_money(summary['total_gross'])}\n"
        f"[bold]Expected net:[/bold] {_money(summary['expected_net'])}\n"
        f"[bold]Received:[/bold] [green]{_money(summary['received_net'])}[/green]\n"
        f"[bold]Outstanding:[/bold] [yellow]{_money(summary['outstanding'])}[/yellow]",
        title=f"Commission {year or 'all time'}"
    ))


# ============================================================================
# CONFIG
# ============================================================================

@cli.group()
def config():
    """Show or change the default settings."""
    pass


@config.command("show")
def config_show():
    """Show the current defaults."""
    cfg = DealConfigManager().config
    console.print(Panel.fit(
        f"Commission rate: {cfg.commission_rate}%\n"
        f"Agency split: {cfg.agency_split_percentage}%\n"
        f"Shared split: {cfg.shared_split_percentage}%\n"
        f"CPCV signal: {cfg.signal_percentage}%\n"
        f"Store: {cfg.store_backend} in {cfg.data_dir}",
        title="Deal Pipeline Config"
    ))


@config.command("set")
@click.option("--commission-rate", type=float)
@click.option("--agency-split", "agency_split_percentage", type=float)
@click.option("--shared-split", "shared_split_percentage", type=float)
@click.option("--signal", "signal_percentage", type=float)
@click.option("--store", "store_backend", type=click.Choice(BACKENDS))
@click.option("--data-dir", type=click.Path(file_okay=False))
def config_set(**changes):
    """Change one or more defaults."""
    manager = DealConfigManager()
    manager.update(**changes)
    console.print("[green]✓ Config saved[/green]")


if __name__ == "__main__":
    cli()
