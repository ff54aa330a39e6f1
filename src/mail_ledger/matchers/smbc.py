"""Sumitomo Mitsui Card (SMBC / Vpass) usage notices."""

from __future__ import annotations

import re

from mail_ledger.matchers.base import (
    LabeledNoticeMatcher,
    labeled_amount_re,
    labeled_date_re,
    labeled_value_re,
)

_BRAND_RE = re.compile(r"三井住友|SMBC|Vpass", re.IGNORECASE)
_NOTICE_RE = re.compile(r"ご利用(?:の)?(?:お知らせ|確認)|カードご利用通知|ご利用金額")


class SmbcMatcher(LabeledNoticeMatcher):
    source_tag = "SMBC"
    base_confidence = 0.9
    placeholder = "三井住友カード"
    overseas_placeholder = "三井住友カード 海外利用"
    detect_overseas = True

    amount_re = labeled_amount_re("ご利用金額", "利用金額", "ご請求金額")
    date_re = labeled_date_re("ご利用日時", "ご利用日", "利用日")
    merchant_re = labeled_value_re("ご利用先", "ご利用店名", "利用先", "ご利用加盟店")

    def recognizes(self, subject: str, text: str) -> bool:
        combined = f"{subject}\n{text}"
        return bool(_BRAND_RE.search(combined) and _NOTICE_RE.search(combined))
