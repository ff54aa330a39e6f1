"""Template matcher protocol, result types and shared extraction helpers.

All helpers expect text that has already been through
``mail_ledger.normalizer.normalize_text``: digits, colons and the yen sign
are half-width by the time a matcher sees them.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, time
from typing import TYPE_CHECKING, ClassVar, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable

PLACEHOLDER_PENALTY = 0.1

# Foreign-currency subscriptions typically bill in this yen range.
OVERSEAS_SUBSCRIPTION_BAND = (2000, 4000)

DATE_PATTERN = (
    r"(?P<year>\d{4})\s*[/\-.年]\s*(?P<month>\d{1,2})\s*[/\-.月]\s*(?P<day>\d{1,2})"
    r"\s*日?(?:\s*\([^)\n]{1,6}\))?(?:\s*(?P<clock>\d{1,2}:\d{2}))?"
)

AMOUNT_PATTERN = (
    r"(?:¥\s*(?P<prefixed>\d[\d,]*)(?:\s*円)?|(?P<suffixed>\d[\d,]*)\s*円)"
)

_PRELIMINARY_RE = re.compile(
    r"速報|詳細な情報は.{0,20}後日.{0,10}配信|preliminary notice|details will follow",
    re.IGNORECASE,
)
# Only the explicit marker line or a usage-type label counts; footers such as
# "海外でのご利用時は..." appear on domestic notices too.
_OVERSEAS_RE = re.compile(
    r"^[^\S\n]*[■◇◆●・【\[]?[^\S\n]*海外利用分|(?:ご)?利用区分[】\]]?[ :]*海外",
    re.MULTILINE,
)


@dataclass(frozen=True)
class ExtractedFields:
    """Transaction fields recovered by one extraction strategy."""

    date: date
    amount: int
    merchant: str
    confidence: float
    raw_merchant: str | None = None
    time: time | None = None
    is_overseas: bool = False
    prelim_subscription: bool = False


@dataclass(frozen=True)
class Matched:
    fields: ExtractedFields


@dataclass(frozen=True)
class NoMatch:
    reason: str


@dataclass(frozen=True)
class Suppressed:
    """The mail is a preliminary notice and must not yield a transaction."""

    reason: str


MatchResult = Matched | NoMatch | Suppressed


class TemplateMatcher(Protocol):
    """A vendor-specific extraction strategy."""

    source_tag: str

    def recognizes(self, subject: str, text: str) -> bool: ...

    def extract(self, subject: str, text: str) -> MatchResult: ...


def label_prefix(*labels: str) -> str:
    """Build a regex fragment matching any label plus its trailing decoration.

    Handles the bracket and colon styles vendors wrap labels in, e.g.
    ``【ご利用日時(日本時間)】``, ``■利用金額:`` or ``ご利用先 :``.
    """
    alternatives = "|".join(
        re.escape(label) for label in sorted(labels, key=len, reverse=True)
    )
    return rf"(?:{alternatives})(?:\([^)\n]*\))?[】\]]?[ :]*"


def labeled_amount_re(*labels: str) -> re.Pattern[str]:
    return re.compile(label_prefix(*labels) + r"[^\d\n]{0,12}?" + AMOUNT_PATTERN)


def labeled_date_re(*labels: str) -> re.Pattern[str]:
    return re.compile(label_prefix(*labels) + DATE_PATTERN)


def labeled_value_re(*labels: str) -> re.Pattern[str]:
    return re.compile(label_prefix(*labels) + r"(?P<value>[^\n]+)")


def parse_amount(digits: str | None) -> int | None:
    """Convert a grouped numeral such as ``1,980`` to an int."""
    if not digits:
        return None
    cleaned = re.sub(r"\D", "", digits)
    if not cleaned:
        return None
    return int(cleaned)


def parse_clock(value: str | None) -> time | None:
    if not value:
        return None
    hours, minutes = value.split(":", 1)
    try:
        return time(int(hours), int(minutes))
    except ValueError:
        return None


def amount_from_match(match: re.Match[str]) -> int | None:
    return parse_amount(match.group("prefixed") or match.group("suffixed"))


def date_from_match(match: re.Match[str]) -> tuple[date, time | None] | None:
    """Build a calendar date (and optional clock time) from a DATE_PATTERN match.

    Returns None for impossible dates such as 2025/02/30.
    """
    try:
        found = date(
            int(match.group("year")), int(match.group("month")), int(match.group("day"))
        )
    except ValueError:
        return None
    return found, parse_clock(match.group("clock"))


def find_amount(pattern: re.Pattern[str], text: str) -> int | None:
    """Return the first positive labeled amount in text."""
    for match in pattern.finditer(text):
        amount = amount_from_match(match)
        if amount:
            return amount
    return None


def find_first_amount(patterns: Iterable[re.Pattern[str]], text: str) -> int | None:
    """Try labeled amount patterns in priority order, not text order."""
    for pattern in patterns:
        amount = find_amount(pattern, text)
        if amount is not None:
            return amount
    return None


def find_date(pattern: re.Pattern[str], text: str) -> tuple[date, time | None] | None:
    """Return the first labeled date in text that is a real calendar date."""
    for match in pattern.finditer(text):
        found = date_from_match(match)
        if found is not None:
            return found
    return None


def find_value(pattern: re.Pattern[str], text: str) -> str | None:
    for match in pattern.finditer(text):
        value = match.group("value").strip()
        if value:
            return value
    return None


def is_preliminary_notice(subject: str, text: str) -> bool:
    """Detect flash notices that announce a charge before its details exist."""
    return bool(_PRELIMINARY_RE.search(subject) or _PRELIMINARY_RE.search(text))


def is_overseas_charge(text: str) -> bool:
    return bool(_OVERSEAS_RE.search(text))


def in_overseas_band(amount: int) -> bool:
    low, high = OVERSEAS_SUBSCRIPTION_BAND
    return low <= amount <= high


class LabeledNoticeMatcher(ABC):
    """Base for card usage notices laid out as ``label: value`` lines.

    Subclasses provide the recognition rule and their label vocabularies;
    extraction, the placeholder penalty, flash-notice suppression and the
    overseas provisional flag are shared.
    """

    source_tag: ClassVar[str]
    base_confidence: ClassVar[float]
    placeholder: ClassVar[str]
    overseas_placeholder: ClassVar[str | None] = None
    suppress_preliminary: ClassVar[bool] = True
    detect_overseas: ClassVar[bool] = False

    amount_re: ClassVar[re.Pattern[str]]
    date_re: ClassVar[re.Pattern[str]]
    merchant_re: ClassVar[re.Pattern[str]]

    @abstractmethod
    def recognizes(self, subject: str, text: str) -> bool: ...

    def extract(self, subject: str, text: str) -> MatchResult:
        if self.suppress_preliminary and is_preliminary_notice(subject, text):
            return Suppressed(f"{self.source_tag} preliminary notice")

        amount = find_amount(self.amount_re, text)
        if amount is None:
            return NoMatch("no labeled amount")

        when = self._find_date(text)
        if when is None:
            return NoMatch("no labeled date")
        found_date, found_time = when

        overseas = self.detect_overseas and is_overseas_charge(text)
        raw_merchant = find_value(self.merchant_re, text)
        confidence = self.base_confidence
        if raw_merchant is None:
            confidence -= PLACEHOLDER_PENALTY
            merchant = self._placeholder(overseas)
        else:
            merchant = raw_merchant

        return Matched(
            ExtractedFields(
                date=found_date,
                time=found_time,
                amount=amount,
                merchant=merchant,
                raw_merchant=raw_merchant,
                confidence=round(confidence, 4),
                is_overseas=overseas,
                prelim_subscription=overseas and in_overseas_band(amount),
            )
        )

    def _find_date(self, text: str) -> tuple[date, time | None] | None:
        return find_date(self.date_re, text)

    def _placeholder(self, overseas: bool) -> str:
        if overseas and self.overseas_placeholder:
            return self.overseas_placeholder
        return self.placeholder


class OrderConfirmationMatcher(ABC):
    """Base for shop order confirmations that state one order total.

    Amount labels are tried in priority order so that a grand total wins
    over an item subtotal printed above it. The merchant is the shop
    itself, optionally qualified by a store name for marketplaces.
    """

    source_tag: ClassVar[str]
    base_confidence: ClassVar[float]
    merchant: ClassVar[str]

    amount_res: ClassVar[tuple[re.Pattern[str], ...]]
    date_re: ClassVar[re.Pattern[str]]
    store_re: ClassVar[re.Pattern[str] | None] = None

    @abstractmethod
    def recognizes(self, subject: str, text: str) -> bool: ...

    def extract(self, subject: str, text: str) -> MatchResult:
        amount = find_first_amount(self.amount_res, text)
        if amount is None:
            return NoMatch("no order total")

        when = find_date(self.date_re, text)
        if when is None:
            return NoMatch("no order date")
        order_date, order_time = when

        merchant = self.merchant
        store = find_value(self.store_re, text) if self.store_re is not None else None
        if store:
            merchant = f"{self.merchant} - {store}"

        return Matched(
            ExtractedFields(
                date=order_date,
                time=order_time,
                amount=amount,
                merchant=merchant,
                raw_merchant=merchant,
                confidence=self.base_confidence,
            )
        )
