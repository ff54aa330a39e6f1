"""Billing receipts from subscription services (Netflix, Spotify, ...)."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from mail_ledger.matchers.base import (
    AMOUNT_PATTERN,
    DATE_PATTERN,
    ExtractedFields,
    Matched,
    MatchResult,
    NoMatch,
    amount_from_match,
    find_amount,
    find_date,
    labeled_amount_re,
    labeled_date_re,
)

if TYPE_CHECKING:
    from datetime import date, time

# Longer, more specific brands first: "Apple Music" mails also mention iCloud.
SERVICES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Amazon Prime", re.compile(r"Amazon\s*Prime|プライム会員", re.IGNORECASE)),
    ("YouTube Premium", re.compile(r"YouTube\s*Premium", re.IGNORECASE)),
    ("Apple Music", re.compile(r"Apple\s*Music", re.IGNORECASE)),
    ("iCloud+", re.compile(r"iCloud", re.IGNORECASE)),
    ("Microsoft 365", re.compile(r"Microsoft\s*365|Office\s*365", re.IGNORECASE)),
    ("Netflix", re.compile(r"Netflix", re.IGNORECASE)),
    ("Spotify", re.compile(r"Spotify", re.IGNORECASE)),
    ("Disney+", re.compile(r"Disney\+|ディズニープラス", re.IGNORECASE)),
    ("Hulu", re.compile(r"Hulu", re.IGNORECASE)),
    ("U-NEXT", re.compile(r"U-NEXT", re.IGNORECASE)),
    ("dアニメストア", re.compile(r"dアニメストア")),
    ("Adobe", re.compile(r"Adobe", re.IGNORECASE)),
    ("Dropbox", re.compile(r"Dropbox", re.IGNORECASE)),
)

# Exclusive upper bound for one subscription charge, in yen.
MAX_SUBSCRIPTION_AMOUNT = 100_000

_BILLING_RE = re.compile(r"月額|年額|subscription|renewal|更新|請求|billing", re.IGNORECASE)

_AMOUNT_RE = labeled_amount_re(
    "ご請求金額", "請求金額", "請求額", "お支払い金額", "月額料金", "年額料金",
    "月額", "年額", "合計", "Total", "Amount",
)
_ANY_AMOUNT_RE = re.compile(AMOUNT_PATTERN)
_DATE_RE = labeled_date_re(
    "ご請求日", "請求日", "決済日", "お支払い日", "更新日", "課金日", "Billing Date", "Date"
)
_ANY_DATE_RE = re.compile(DATE_PATTERN)


class SubscriptionReceiptMatcher:
    """Extract a charge from a subscription service's own billing mail.

    The service name is the merchant and the charge is flagged as a
    provisional subscription straight away. Only yen amounts count.
    """

    source_tag = "Subscription"
    base_confidence = 0.75

    def recognizes(self, subject: str, text: str) -> bool:
        if self._service(f"{subject}\n{text}") is None:
            return False
        return bool(_BILLING_RE.search(subject) or _BILLING_RE.search(text))

    def extract(self, subject: str, text: str) -> MatchResult:
        service = self._service(f"{subject}\n{text}")
        if service is None:
            return NoMatch("no known service")

        amount = find_amount(_AMOUNT_RE, text) or _first_amount(text)
        if amount is None:
            return NoMatch("no yen amount")
        if amount >= MAX_SUBSCRIPTION_AMOUNT:
            return NoMatch("implausible subscription amount")

        when = _billing_date(text)
        if when is None:
            return NoMatch("no billing date")
        billed_on, billed_at = when

        return Matched(
            ExtractedFields(
                date=billed_on,
                time=billed_at,
                amount=amount,
                merchant=service,
                raw_merchant=service,
                confidence=self.base_confidence,
                prelim_subscription=True,
            )
        )

    @staticmethod
    def _service(combined: str) -> str | None:
        for name, pattern in SERVICES:
            if pattern.search(combined):
                return name
        return None


def _first_amount(text: str) -> int | None:
    for match in _ANY_AMOUNT_RE.finditer(text):
        amount = amount_from_match(match)
        if amount:
            return amount
    return None


def _billing_date(text: str) -> tuple[date, time | None] | None:
    return find_date(_DATE_RE, text) or find_date(_ANY_DATE_RE, text)
