"""JCB card usage notices (ショッピングご利用のお知らせ)."""

from __future__ import annotations

import re

from mail_ledger.matchers.base import (
    LabeledNoticeMatcher,
    labeled_amount_re,
    labeled_date_re,
    labeled_value_re,
)

_BRAND_RE = re.compile(r"JCB", re.IGNORECASE)
_NOTICE_RE = re.compile(
    r"ご利用(?:の)?お知らせ|ショッピングご利用|カードご利用通知|【ご利用金額】"
)


class JcbMatcher(LabeledNoticeMatcher):
    """Extract a single charge from a JCB usage notice.

    JCB marks charges made abroad with ``海外利用分`` and often omits the
    merchant for them, so overseas notices fall back to their own
    placeholder and may be flagged as provisional subscriptions.
    """

    source_tag = "JCB"
    base_confidence = 0.9
    placeholder = "JCB"
    overseas_placeholder = "JCB 海外利用分"
    detect_overseas = True

    amount_re = labeled_amount_re("ご利用金額", "請求金額", "ご請求金額")
    date_re = labeled_date_re("ご利用日時", "ご利用日", "利用日時", "取引日")
    merchant_re = labeled_value_re("ご利用先", "ご利用店名", "利用先")

    def recognizes(self, subject: str, text: str) -> bool:
        combined = f"{subject}\n{text}"
        return bool(_BRAND_RE.search(combined) and _NOTICE_RE.search(combined))
