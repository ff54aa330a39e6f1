"""Domain models for mail-derived transactions and recurring payments."""

from __future__ import annotations

import datetime as dt
import unicodedata
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_MERCHANT = "unknown"


@dataclass(frozen=True)
class RawMail:
    """A single inbound notification mail, as handed over by a mail source."""

    id: str
    subject: str = ""
    text: str | None = None
    html: str | None = None
    received_at: dt.datetime | None = None
    sender: str | None = None


class ParsedTransaction(BaseModel):
    """A transaction extracted from one mail."""

    model_config = ConfigDict(frozen=True)

    source_tag: str
    mail_id: str
    date: dt.date
    time: dt.time | None = None
    amount: int = Field(gt=0)
    merchant: str = Field(min_length=1)
    raw_merchant: str | None = None
    is_overseas: bool = False
    confidence: float = Field(ge=0.0, le=1.0)
    prelim_subscription: bool = False


class LedgerEntry(BaseModel):
    """A persisted transaction row, as read back for history classification."""

    merchant: str = Field(min_length=1)
    amount: int = Field(gt=0)
    date: dt.date
    mail_id: str | None = None


class Cadence(StrEnum):
    """Billing period of a recurring charge."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class RecurringPaymentRecord(BaseModel):
    """A recurring charge inferred from the full transaction history."""

    model_config = ConfigDict(frozen=True)

    service_name: str
    amount: int = Field(gt=0)
    cadence: Cadence
    observation_count: int = Field(ge=2)
    first_observed: dt.date
    last_observed: dt.date
    predicted_next: dt.date
    confidence: float = Field(gt=0.6, le=1.0)


def _canonical_key(value: str) -> str:
    return unicodedata.normalize("NFKC", value).strip()


class MerchantDictionary(BaseModel):
    """Three-tier merchant canonicalization table.

    Keys are NFKC-normalized on load so that entries written with
    full-width characters match normalized merchant text. Lookup order
    (exact, then prefix, then contains) is applied by
    ``mail_ledger.normalizer.normalize_merchant``; mapping order within a
    tier is preserved from the source file.
    """

    model_config = ConfigDict(frozen=True)

    exact: dict[str, str] = Field(default_factory=dict)
    prefix: dict[str, str] = Field(default_factory=dict)
    contains: dict[str, str] = Field(default_factory=dict)

    @field_validator("exact", "prefix", "contains")
    @classmethod
    def _normalize_keys(cls, value: dict[str, str]) -> dict[str, str]:
        normalized: dict[str, str] = {}
        for key, canonical in value.items():
            norm_key = _canonical_key(key)
            if not norm_key:
                continue
            normalized.setdefault(norm_key, canonical.strip())
        return normalized
