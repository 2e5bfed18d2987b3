from __future__ import annotations

from decimal import Decimal, InvalidOperation

import questionary
from rich.console import Console
from rich.table import Table

from condoledger.constants import DOMAIN_LABELS
from condoledger.errors import MissingConfig
from condoledger.models.bill import BillDomain
from condoledger.models.penalty import PenaltyConfig
from condoledger.services.penalty_service import PenaltyConfigResolver

console = Console()


def _show_configs(resolver: PenaltyConfigResolver) -> None:
    table = Table(title="Penalty Settings")
    table.add_column("Domain")
    table.add_column("Monthly rate", justify="right")
    table.add_column("Grace days", justify="right")

    for domain in BillDomain:
        try:
            config = resolver.get(domain)
        except MissingConfig:
            table.add_row(DOMAIN_LABELS[domain], "[red]not set[/red]", "[red]not set[/red]")
            continue
        table.add_row(DOMAIN_LABELS[domain], f"{config.rate * 100}%", str(config.grace_days))

    console.print(table)


def _ask_config() -> PenaltyConfig | None:
    while True:
        val = questionary.text("Monthly penalty rate in percent (ex: 5):").ask()
        if val is None:
            return None
        try:
            rate = Decimal(val.strip().rstrip("%")) / 100
        except InvalidOperation:
            console.print("[red]Invalid rate. Try again.[/red]")
            continue
        if rate.is_finite() and rate >= 0:
            break
        console.print("[red]Invalid rate. Try again.[/red]")

    while True:
        val = questionary.text("Grace period in days (ex: 10):").ask()
        if val is None:
            return None
        if val.strip().isdigit():
            return PenaltyConfig(rate=rate, grace_days=int(val.strip()))
        console.print("[red]Invalid number of days. Try again.[/red]")


def penalty_config_menu(resolver: PenaltyConfigResolver) -> None:
    console.print()
    _show_configs(resolver)

    choice = questionary.select(
        "Change settings for:",
        choices=[DOMAIN_LABELS[domain] for domain in BillDomain] + ["Back"],
    ).ask()
    if choice is None or choice == "Back":
        return

    domain = next(d for d in BillDomain if DOMAIN_LABELS[d] == choice)
    config = _ask_config()
    if config is None:
        return

    resolver.update(domain, config, source="cli")
    console.print(f"[green]Penalty settings for {choice} saved.[/green]")
