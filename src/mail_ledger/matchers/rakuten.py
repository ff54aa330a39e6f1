"""Rakuten Card usage notices (カード利用お知らせメール)."""

from __future__ import annotations

import re

from mail_ledger.matchers.base import (
    LabeledNoticeMatcher,
    labeled_amount_re,
    labeled_date_re,
    labeled_value_re,
)

_BRAND_RE = re.compile(r"楽天カード|Rakuten", re.IGNORECASE)
_HEADER_RE = re.compile(r"カード利用お知らせメール|楽天カード株式会社")


class RakutenCardMatcher(LabeledNoticeMatcher):
    """Extract a confirmed charge from a Rakuten Card notice.

    Rakuten first sends a 速報版 (flash) notice carrying only date and
    amount; the confirmed notice with the merchant follows days later.
    Flash notices are suppressed.
    """

    source_tag = "Rakuten"
    base_confidence = 0.88
    placeholder = "楽天カード"

    amount_re = labeled_amount_re("ご利用金額", "利用金額", "ご請求金額")
    date_re = labeled_date_re("ご利用日時", "ご利用日", "利用日時", "利用日", "取引日")
    merchant_re = labeled_value_re("ご利用先", "ご利用店名", "利用先", "加盟店")

    def recognizes(self, subject: str, text: str) -> bool:
        return bool(_BRAND_RE.search(f"{subject}\n{text}") and _HEADER_RE.search(text))
