"""
External cost ledger: persists one record per provider call and raises
spending alerts.

The orchestrator hands records over fire-and-forget. A ledger failure is
logged and never affects the conversation.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from .env import load_default_env

logger = logging.getLogger(__name__)

APPROACHING_LIMIT_RATIO = 0.8


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CostRecord:
    """One provider call as seen by the ledger."""

    provider: str
    model: str
    operation: str
    input_tokens: Optional[int]
    output_tokens: Optional[int]
    cost: float
    timestamp: str = field(default_factory=lambda: _utcnow().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CostRecord":
        return cls(
            provider=str(data.get("provider", "")),
            model=str(data.get("model", "")),
            operation=str(data.get("operation", "")),
            input_tokens=data.get("input_tokens"),
            output_tokens=data.get("output_tokens"),
            cost=float(data.get("cost") or 0.0),
            timestamp=str(data.get("timestamp") or _utcnow().isoformat()),
        )

    @property
    def when(self) -> datetime:
        parsed = datetime.fromisoformat(self.timestamp)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed


@dataclass(frozen=True)
class CostLimits:
    """Spending limits in USD."""

    daily: float = 2.00
    weekly: float = 10.00
    monthly: float = 35.00
    per_analysis: float = 1.00

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CostLimits":
        if environ is None:
            load_default_env()
            environ = os.environ
        defaults = cls()

        def read(name: str, default: float) -> float:
            raw = environ.get(name)
            if not raw:
                return default
            try:
                return float(raw)
            except ValueError:
                logger.warning("Ignoring non-numeric %s=%r", name, raw)
                return default

        return cls(
            daily=read("COST_DAILY_LIMIT", defaults.daily),
            weekly=read("COST_WEEKLY_LIMIT", defaults.weekly),
            monthly=read("COST_MONTHLY_LIMIT", defaults.monthly),
            per_analysis=read("COST_PER_ANALYSIS_LIMIT", defaults.per_analysis),
        )


@dataclass(frozen=True)
class CostAlert:
    """
    A spending threshold that was crossed.

    ``type`` is one of ``per_analysis``, ``daily``, ``approaching_limit``,
    ``weekly`` or ``monthly``.
    """

    type: str
    current_cost: float
    limit: float
    period: str
    recommendation: str

    @property
    def percentage(self) -> float:
        return (self.current_cost / self.limit) * 100 if self.limit else 0.0


@runtime_checkable
class CostLedger(Protocol):
    """Anything that accepts cost records."""

    def record(self, record: CostRecord) -> Any:
        ...


class InMemoryCostLedger:
    """Keeps records in a list. For tests and short-lived runs."""

    def __init__(self) -> None:
        self.records: List[CostRecord] = []

    def record(self, record: CostRecord) -> List[CostAlert]:
        self.records.append(record)
        return []

    @property
    def total_cost(self) -> float:
        return sum(r.cost for r in self.records)


class JsonFileCostLedger:
    """
    Appends records to a JSON array file and checks spending limits.

    Periods are computed in UTC. Weeks start on Sunday.
    """

    def __init__(
        self,
        path: str | Path = "cost-log.json",
        limits: Optional[CostLimits] = None,
        clock=_utcnow,
    ):
        self.path = Path(path)
        self.limits = limits or CostLimits.from_env()
        self._clock = clock
        self._lock = threading.Lock()

    def record(self, record: CostRecord) -> List[CostAlert]:
        """Persist ``record`` and return any alerts it triggers."""
        with self._lock:
            records = self.load()
            records.append(record)
            self._save(records)
        alerts = self.check_limits(records, record)
        for alert in alerts:
            logger.warning(
                "Cost alert [%s]: $%.4f of $%.2f (%.0f%%) %s. %s",
                alert.type,
                alert.current_cost,
                alert.limit,
                alert.percentage,
                alert.period,
                alert.recommendation,
            )
        return alerts

    def load(self) -> List[CostRecord]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text() or "[]")
        except json.JSONDecodeError as exc:
            logger.warning("Cost log %s is not valid JSON, starting fresh: %s", self.path, exc)
            return []
        return [CostRecord.from_dict(item) for item in data if isinstance(item, dict)]

    def _save(self, records: List[CostRecord]) -> None:
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps([r.to_dict() for r in records], indent=2))

    def _period_starts(self) -> Dict[str, datetime]:
        now = self._clock()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        # weekday(): Monday=0 ... Sunday=6
        week_start = day_start - timedelta(days=(day_start.weekday() + 1) % 7)
        month_start = day_start.replace(day=1)
        return {"day": day_start, "week": week_start, "month": month_start}

    def summary(self) -> Dict[str, Any]:
        records = self.load()
        starts = self._period_starts()
        total = sum(r.cost for r in records)
        return {
            "today": sum(r.cost for r in records if r.when >= starts["day"]),
            "this_week": sum(r.cost for r in records if r.when >= starts["week"]),
            "this_month": sum(r.cost for r in records if r.when >= starts["month"]),
            "total": total,
            "entry_count": len(records),
            "average_per_call": total / len(records) if records else 0.0,
            "limits": asdict(self.limits),
        }

    def check_limits(self, records: List[CostRecord], latest: CostRecord) -> List[CostAlert]:
        alerts: List[CostAlert] = []
        starts = self._period_starts()
        limits = self.limits

        if latest.cost > limits.per_analysis:
            alerts.append(
                CostAlert(
                    "per_analysis",
                    latest.cost,
                    limits.per_analysis,
                    "single analysis",
                    "Consider switching to a cheaper model such as gemini-1.5-flash.",
                )
            )

        daily = sum(r.cost for r in records if r.when >= starts["day"])
        if daily > limits.daily:
            alerts.append(
                CostAlert(
                    "daily",
                    daily,
                    limits.daily,
                    "today",
                    "Daily limit exceeded. Pause automation for today or use a cheaper provider.",
                )
            )
        elif daily > limits.daily * APPROACHING_LIMIT_RATIO:
            alerts.append(
                CostAlert(
                    "approaching_limit",
                    daily,
                    limits.daily,
                    "today",
                    "Approaching the daily limit. Use a cheaper model for the remaining runs.",
                )
            )

        weekly = sum(r.cost for r in records if r.when >= starts["week"])
        if weekly > limits.weekly:
            alerts.append(
                CostAlert(
                    "weekly",
                    weekly,
                    limits.weekly,
                    "this week",
                    "Weekly limit exceeded. Reduce run frequency.",
                )
            )

        monthly = sum(r.cost for r in records if r.when >= starts["month"])
        if monthly > limits.monthly:
            alerts.append(
                CostAlert(
                    "monthly",
                    monthly,
                    limits.monthly,
                    "this month",
                    "Monthly limit exceeded. Pause until next month or raise the limit.",
                )
            )
        return alerts


__all__ = [
    "CostRecord",
    "CostLimits",
    "CostAlert",
    "CostLedger",
    "InMemoryCostLedger",
    "JsonFileCostLedger",
]
