"""Rakuten Pay app payment receipts (楽天ペイアプリご利用内容確認メール)."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from mail_ledger.matchers.base import (
    DATE_PATTERN,
    LabeledNoticeMatcher,
    find_date,
    labeled_amount_re,
    labeled_date_re,
    labeled_value_re,
)

if TYPE_CHECKING:
    from datetime import date, time

_RECOGNIZE_RE = re.compile(
    r"楽天ペイアプリご利用内容確認メール|楽天ペイ|Rakuten\s*Pay", re.IGNORECASE
)
_ANY_DATE_RE = re.compile(DATE_PATTERN)


class RakutenPayMatcher(LabeledNoticeMatcher):
    """Extract a payment from a Rakuten Pay receipt.

    Receipts always name the store when one exists; app top-ups and
    in-app purchases fall back to the ``楽天ペイ`` placeholder. The receipt
    date is sometimes printed without a label, so the first date in the
    body is used when no labeled one is present.
    """

    source_tag = "RakutenPay"
    base_confidence = 0.85
    placeholder = "楽天ペイ"
    suppress_preliminary = False

    amount_re = labeled_amount_re(
        "決済総額", "お支払い金額", "支払金額", "ご利用金額", "合計金額", "合計"
    )
    date_re = labeled_date_re("ご利用日時", "決済日時", "ご利用日", "利用日時")
    merchant_re = labeled_value_re("ご利用店舗", "ご利用先", "利用先", "店名", "加盟店")

    def recognizes(self, subject: str, text: str) -> bool:
        return bool(_RECOGNIZE_RE.search(f"{subject}\n{text}"))

    def _find_date(self, text: str) -> tuple[date, time | None] | None:
        return find_date(self.date_re, text) or find_date(_ANY_DATE_RE, text)
