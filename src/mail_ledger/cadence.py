"""Billing-cadence classification over a user's full transaction history."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Protocol

import numpy as np

from mail_ledger.models import Cadence, RecurringPaymentRecord

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import date

logger = logging.getLogger(__name__)

MIN_OBSERVATIONS = 2
MIN_CONFIDENCE = 0.6


class DatedCharge(Protocol):
    """Anything with a canonical merchant, an amount and a date."""

    merchant: str
    amount: int
    date: date


@dataclass(frozen=True)
class CadenceWindow:
    """Acceptance window for one cadence and its confidence curve."""

    cadence: Cadence
    min_gap: float
    max_gap: float
    max_stddev: float
    per_observation: float
    ceiling: float
    base: float = 0.5

    def accepts(self, mean_gap: float, stddev: float) -> bool:
        return self.min_gap <= mean_gap <= self.max_gap and stddev <= self.max_stddev

    def confidence(self, observations: int) -> float:
        return round(min(self.ceiling, self.base + observations * self.per_observation), 4)


CADENCE_WINDOWS: tuple[CadenceWindow, ...] = (
    CadenceWindow(Cadence.WEEKLY, 6, 8, 1, per_observation=0.10, ceiling=0.85),
    CadenceWindow(Cadence.MONTHLY, 28, 31, 3, per_observation=0.15, ceiling=0.95),
    CadenceWindow(Cadence.QUARTERLY, 85, 95, 5, per_observation=0.15, ceiling=0.85),
    CadenceWindow(Cadence.YEARLY, 360, 370, 10, per_observation=0.20, ceiling=0.90),
)


def classify_recurring(history: Iterable[DatedCharge]) -> list[RecurringPaymentRecord]:
    """Detect recurring charges in a complete transaction history.

    Charges are grouped by (merchant, amount). Each group with at least
    two dates is tested against the cadence windows using the mean and
    population standard deviation of the day gaps between consecutive
    charges. The result is computed from scratch on every call and is
    sorted by service name, then amount.
    """
    groups: dict[tuple[str, int], list[date]] = defaultdict(list)
    for charge in history:
        groups[(charge.merchant, charge.amount)].append(charge.date)

    records: list[RecurringPaymentRecord] = []
    for (merchant, amount), dates in sorted(groups.items()):
        record = classify_group(merchant, amount, dates)
        if record is not None:
            records.append(record)

    logger.debug(
        "Classified %d charge groups, %d recurring", len(groups), len(records)
    )
    return records


def classify_group(
    merchant: str, amount: int, dates: Sequence[date]
) -> RecurringPaymentRecord | None:
    """Classify one (merchant, amount) group, or return None if irregular."""
    if len(dates) < MIN_OBSERVATIONS:
        return None

    ordered = sorted(dates)
    gaps = np.array(
        [(later - earlier).days for earlier, later in zip(ordered, ordered[1:])],
        dtype=float,
    )
    mean_gap = float(np.mean(gaps))
    stddev = float(np.std(gaps))

    window = next((w for w in CADENCE_WINDOWS if w.accepts(mean_gap, stddev)), None)
    if window is None:
        return None

    confidence = window.confidence(len(ordered))
    if confidence <= MIN_CONFIDENCE:
        return None

    return RecurringPaymentRecord(
        service_name=merchant,
        amount=amount,
        cadence=window.cadence,
        observation_count=len(ordered),
        first_observed=ordered[0],
        last_observed=ordered[-1],
        predicted_next=ordered[-1] + timedelta(days=round(mean_gap)),
        confidence=confidence,
    )


def reconcile_records(
    stored: Iterable[RecurringPaymentRecord],
    fresh: Iterable[RecurringPaymentRecord],
) -> list[RecurringPaymentRecord]:
    """Merge a fresh classification run into previously stored records.

    Records are identified by (service_name, amount). Fresh records
    replace the mutable fields of their stored counterpart, unknown ones
    are appended, and stored records absent from the fresh run are kept.
    """
    merged: dict[tuple[str, int], RecurringPaymentRecord] = {
        (record.service_name, record.amount): record for record in stored
    }
    for record in fresh:
        key = (record.service_name, record.amount)
        current = merged.get(key)
        if current is None:
            merged[key] = record
            continue
        merged[key] = current.model_copy(
            update={
                "cadence": record.cadence,
                "observation_count": record.observation_count,
                "first_observed": record.first_observed,
                "last_observed": record.last_observed,
                "predicted_next": record.predicted_next,
                "confidence": record.confidence,
            }
        )
    return list(merged.values())
