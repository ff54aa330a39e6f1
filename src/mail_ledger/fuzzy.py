"""Format-agnostic fallback extraction."""

from __future__ import annotations

import re

from mail_ledger.matchers.base import (
    AMOUNT_PATTERN,
    DATE_PATTERN,
    ExtractedFields,
    Matched,
    MatchResult,
    NoMatch,
    amount_from_match,
    find_date,
    find_value,
    labeled_value_re,
)
from mail_ledger.models import UNKNOWN_MERCHANT

SOURCE_TAG = "fuzzy"
FUZZY_CONFIDENCE = 0.55

# Anything outside this range is usually a postcode, a phone number fragment
# or a marketing figure rather than a charge.
MIN_PLAUSIBLE_AMOUNT = 100
MAX_PLAUSIBLE_AMOUNT = 10_000_000

_DATE_RE = re.compile(DATE_PATTERN)
_AMOUNT_RE = re.compile(AMOUNT_PATTERN)
_MERCHANT_RE = labeled_value_re(
    "ご利用先", "ご利用店名", "利用店名", "利用先", "加盟店", "店名", "Merchant"
)


def fuzzy_extract(subject: str, text: str) -> MatchResult:
    """Extract a transaction with loose patterns and a low, fixed confidence.

    Takes the first real calendar date and the first plausible yen amount
    anywhere in the body. The merchant comes from a labeled line, else the
    subject, else the unknown placeholder.
    """
    when = find_date(_DATE_RE, text)
    if when is None:
        return NoMatch("no date")
    found_date, found_time = when

    amount = _first_plausible_amount(text)
    if amount is None:
        return NoMatch("no plausible amount")

    raw_merchant = find_value(_MERCHANT_RE, text) or subject.strip() or None

    return Matched(
        ExtractedFields(
            date=found_date,
            time=found_time,
            amount=amount,
            merchant=raw_merchant or UNKNOWN_MERCHANT,
            raw_merchant=raw_merchant,
            confidence=FUZZY_CONFIDENCE,
        )
    )


def _first_plausible_amount(text: str) -> int | None:
    for match in _AMOUNT_RE.finditer(text):
        amount = amount_from_match(match)
        if amount is not None and MIN_PLAUSIBLE_AMOUNT <= amount <= MAX_PLAUSIBLE_AMOUNT:
            return amount
    return None
