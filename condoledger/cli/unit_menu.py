from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

import questionary
from rich.console import Console
from rich.table import Table

from condoledger.constants import DOMAIN_LABELS, STATUS_LABELS, today
from condoledger.errors import BillingError
from condoledger.models import format_money, parse_money
from condoledger.models.distribution import DistributionResult
from condoledger.models.payment import Payment
from condoledger.models.projection import Projection
from condoledger.models.reconciliation import DiscrepancyReport
from condoledger.settings import settings

if TYPE_CHECKING:
    from condoledger.cli.app import Services

console = Console()


def _money(minor: int) -> str:
    return format_money(minor, settings.currency_symbol)


def _ask_date(message: str, default: date | None = None) -> date | None:
    default = default or today()
    while True:
        val = questionary.text(f"{message} (YYYY-MM-DD):", default=default.isoformat()).ask()
        if val is None:
            return None
        try:
            return date.fromisoformat(val.strip())
        except ValueError:
            console.print("[red]Invalid date. Use YYYY-MM-DD.[/red]")


def _ask_amount(message: str, allow_negative: bool = False) -> int | None:
    while True:
        val = questionary.text(f"{message} (ex: 950.00):").ask()
        if val is None:
            return None
        negative = allow_negative and val.strip().startswith("-")
        parsed = parse_money(val.strip().lstrip("-") if negative else val)
        if parsed is not None and parsed > 0:
            return -parsed if negative else parsed
        console.print("[red]Invalid amount. Try again.[/red]")


def _show_discrepancy(report: DiscrepancyReport) -> None:
    if not report.detected:
        console.print("  [green]Bills agree with the transaction ledger.[/green]")
        return

    table = Table(title="Ledger Discrepancies", title_style="bold red")
    table.add_column("Bill")
    table.add_column("Stored paid", justify="right")
    table.add_column("Ledger paid", justify="right")
    table.add_column("Delta", justify="right")
    table.add_column("Suspected cause")
    table.add_column("Transactions")

    for mismatch in report.mismatches:
        table.add_row(
            mismatch.bill_id,
            _money(mismatch.stored_paid),
            _money(mismatch.allocated_paid),
            _money(mismatch.delta),
            mismatch.suspected_cause.value,
            ", ".join(mismatch.related_transaction_ids) or "-",
        )
    console.print(table)


def _show_projection(projection: Projection) -> None:
    table = Table(title=f"Unit {projection.unit_id} as of {projection.as_of.isoformat()}")
    table.add_column("Bill")
    table.add_column("Type")
    table.add_column("Due", justify="center")
    table.add_column("Principal", justify="right")
    table.add_column("Penalty", justify="right")
    table.add_column("Paid", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_column("Status", justify="center")

    for pb in projection.bills:
        bill = pb.bill
        table.add_row(
            bill.bill_id,
            DOMAIN_LABELS[bill.domain],
            bill.due_date.isoformat(),
            _money(bill.principal_due),
            _money(bill.penalty_due),
            _money(bill.total_paid),
            _money(pb.remaining),
            STATUS_LABELS[bill.status],
        )

    console.print(table)
    console.print(f"  Total remaining: [bold]{_money(projection.total_remaining)}[/bold]")
    console.print(f"  Available credit: {_money(projection.credit_balance)}")
    console.print(f"  Amount to clear: [bold]{_money(projection.amount_to_clear)}[/bold]")
    if projection.discrepancy.detected:
        console.print()
        _show_discrepancy(projection.discrepancy)


def _show_distribution(result: DistributionResult) -> None:
    if result.bill_payments:
        table = Table()
        table.add_column("Bill")
        table.add_column("Penalty", justify="right")
        table.add_column("Principal", justify="right")
        table.add_column("Status", justify="center")
        for bp in result.bill_payments:
            table.add_row(
                bp.bill_id,
                _money(bp.penalty_paid),
                _money(bp.principal_paid),
                STATUS_LABELS[bp.new_status],
            )
        console.print(table)
    else:
        console.print("  [yellow]Not enough to settle the next group of bills.[/yellow]")

    console.print(f"  Applied to bills: {_money(result.total_applied)}")
    console.print(f"  Credit used: {_money(result.credit_used)}")
    console.print(f"  Added to credit: {_money(result.overpayment)}")
    console.print(f"  New credit balance: [bold]{_money(result.new_credit_balance)}[/bold]")


def _record_payment(unit_id: str, services: Services) -> None:
    amount = _ask_amount("Payment amount")
    if amount is None:
        return
    payment_date = _ask_date("Payment date")
    if payment_date is None:
        return
    transaction_id = questionary.text("Transaction reference (optional):").ask() or ""
    notes = questionary.text("Notes (optional):").ask() or ""

    result = services.payment_service.preview_payment(unit_id, amount, payment_date)
    _show_distribution(result)
    if not questionary.confirm("Record this payment?", default=True).ask():
        return

    outcome = services.payment_service.record_payment(
        Payment(
            unit_id=unit_id,
            amount=amount,
            payment_date=payment_date,
            transaction_id=transaction_id.strip(),
            notes=notes,
        ),
        source="cli",
    )
    if outcome.replayed:
        console.print(f"[yellow]Transaction {outcome.record.transaction_id} was already recorded.[/yellow]")
        return
    console.print(f"[green bold]Payment recorded: {outcome.record.transaction_id}[/green bold]")


def _adjust_credit(unit_id: str, services: Services) -> None:
    amount = _ask_amount("Adjustment (negative to remove credit)", allow_negative=True)
    if amount is None:
        return
    reason = questionary.text("Reason:").ask()
    if not reason:
        console.print("[red]A reason is required.[/red]")
        return
    entry = services.credit_service.adjust(unit_id, amount, reason, source="cli")
    console.print(f"[green]Credit adjusted by {_money(entry.amount)}.[/green]")


def _show_credit_history(unit_id: str, services: Services) -> None:
    lines = services.credit_service.get_history(unit_id, limit=settings.history_limit)
    if not lines:
        console.print("[yellow]No credit entries for this unit.[/yellow]")
        return

    table = Table(title=f"Credit history for unit {unit_id}")
    table.add_column("Date")
    table.add_column("Amount", justify="right")
    table.add_column("Balance", justify="right")
    table.add_column("Reason")
    table.add_column("Transaction")
    for line in lines:
        entry = line.entry
        table.add_row(
            entry.created_at.strftime("%Y-%m-%d %H:%M") if entry.created_at else "",
            _money(entry.amount),
            _money(line.balance_after),
            entry.reason,
            entry.transaction_id or "-",
        )
    console.print(table)


def unit_menu(unit_id: str, services: Services) -> None:
    while True:
        console.print()
        choice = questionary.select(
            f"Unit {unit_id}",
            choices=[
                "Show Balance",
                "Preview Payment",
                "Record Payment",
                "Apply Credit",
                "Adjust Credit",
                "Credit History",
                "Reconcile",
                "Back",
            ],
        ).ask()

        if choice is None or choice == "Back":
            return

        try:
            if choice == "Show Balance":
                as_of = _ask_date("As of")
                if as_of is not None:
                    _show_projection(services.projection_service.project(unit_id, as_of))
            elif choice == "Preview Payment":
                amount = _ask_amount("Payment amount")
                if amount is not None:
                    _show_distribution(services.payment_service.preview_payment(unit_id, amount, today()))
            elif choice == "Record Payment":
                _record_payment(unit_id, services)
            elif choice == "Apply Credit":
                outcome = services.payment_service.apply_credit(unit_id, today(), source="cli")
                if outcome is None:
                    console.print("[yellow]Credit does not cover the next group of bills.[/yellow]")
                else:
                    _show_distribution(outcome.distribution)
            elif choice == "Adjust Credit":
                _adjust_credit(unit_id, services)
            elif choice == "Credit History":
                _show_credit_history(unit_id, services)
            elif choice == "Reconcile":
                _show_discrepancy(services.reconciliation_service.reconcile_unit(unit_id))
        except (BillingError, ValueError) as exc:
            console.print(f"[red]{exc}[/red]")
