from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from condoledger.errors import MissingConfig

REQUIRED_KEYS = ("penalty_rate", "grace_days")


class PenaltyConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    rate: Decimal = Field(ge=0)  # 0.05 = 5% per month late
    grace_days: int = Field(ge=0)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None, context: str = "") -> PenaltyConfig:
        """Build a config from stored key/values, failing fast on anything missing.

        Floats are routed through ``str`` so 0.05 stays exactly 0.05.
        """
        data = data or {}
        missing = [key for key in REQUIRED_KEYS if data.get(key) is None]
        if missing:
            where = f" for {context}" if context else ""
            raise MissingConfig(f"Penalty configuration incomplete{where}. Missing: {', '.join(missing)}")
        raw_rate = data["penalty_rate"]
        try:
            rate = Decimal(str(raw_rate)) if isinstance(raw_rate, float) else Decimal(raw_rate)
        except InvalidOperation as exc:
            raise MissingConfig(f"penalty_rate is not a decimal: {raw_rate!r}") from exc
        return cls(rate=rate, grace_days=int(data["grace_days"]))
