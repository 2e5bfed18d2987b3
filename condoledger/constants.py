from datetime import date, datetime
from zoneinfo import ZoneInfo

from condoledger.models.bill import BillDomain, BillStatus

LOCAL_TZ = ZoneInfo("America/Mexico_City")

# Stored-vs-ledger differences at or below this many minor units are noise.
DISCREPANCY_TOLERANCE = 1

DAYS_PER_PENALTY_MONTH = 30

DOMAIN_LABELS = {BillDomain.RECURRING: "Dues", BillDomain.METERED: "Water"}

STATUS_LABELS = {BillStatus.UNPAID: "Unpaid", BillStatus.PARTIAL: "Partial", BillStatus.PAID: "Paid"}


def today() -> date:
    return datetime.now(LOCAL_TZ).date()
