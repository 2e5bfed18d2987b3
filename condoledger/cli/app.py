from dataclasses import dataclass

import questionary
from rich.console import Console

from condoledger.cli.config_menu import penalty_config_menu
from condoledger.cli.unit_menu import unit_menu
from condoledger.repositories.factory import (
    get_audit_log_repository,
    get_charge_sources,
    get_credit_ledger_repository,
    get_penalty_config_repository,
    get_transaction_ledger_repository,
)
from condoledger.services.audit_service import AuditService
from condoledger.services.bill_loader import BillLoader
from condoledger.services.credit_service import CreditLedgerService
from condoledger.services.payment_service import PaymentService
from condoledger.services.penalty_service import PenaltyConfigResolver
from condoledger.services.projection_service import ProjectionService
from condoledger.services.reconciliation import ReconciliationService

console = Console()


@dataclass
class Services:
    penalty_resolver: PenaltyConfigResolver
    credit_service: CreditLedgerService
    reconciliation_service: ReconciliationService
    projection_service: ProjectionService
    payment_service: PaymentService


def _build_services() -> Services:
    audit_service = AuditService(get_audit_log_repository())
    ledger_repo = get_transaction_ledger_repository()
    loader = BillLoader(get_charge_sources())
    penalty_resolver = PenaltyConfigResolver(get_penalty_config_repository(), audit_service)
    credit_service = CreditLedgerService(get_credit_ledger_repository(), audit_service)
    reconciliation_service = ReconciliationService(loader, ledger_repo)
    return Services(
        penalty_resolver=penalty_resolver,
        credit_service=credit_service,
        reconciliation_service=reconciliation_service,
        projection_service=ProjectionService(loader, penalty_resolver, credit_service, reconciliation_service),
        payment_service=PaymentService(loader, penalty_resolver, credit_service, ledger_repo, audit_service),
    )


def main_menu() -> None:
    services = _build_services()

    console.print()
    console.print("[bold]Condo Ledger[/bold]", style="cyan")
    console.print()

    while True:
        choice = questionary.select(
            "Main Menu",
            choices=[
                "Open Unit",
                "Penalty Settings",
                "Exit",
            ],
        ).ask()

        if choice is None or choice == "Exit":
            console.print("[bold]Goodbye![/bold]")
            break
        elif choice == "Open Unit":
            unit_id = questionary.text("Unit id:").ask()
            if unit_id:
                unit_menu(unit_id.strip(), services)
        elif choice == "Penalty Settings":
            penalty_config_menu(services.penalty_resolver)
