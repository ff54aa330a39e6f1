"""Rakuten Ichiba (楽天市場) order confirmations."""

from __future__ import annotations

import re

from mail_ledger.matchers.base import (
    OrderConfirmationMatcher,
    labeled_amount_re,
    labeled_date_re,
    labeled_value_re,
)

_BRAND_RE = re.compile(r"楽天市場|Rakuten\s*Ichiba", re.IGNORECASE)
_ORDER_RE = re.compile(r"注文確認|ご注文ありがとう|注文内容|受注番号|注文番号")
_SHIPMENT_RE = re.compile(r"発送|出荷|配達")


class RakutenIchibaMatcher(OrderConfirmationMatcher):
    """Extract the order total from a 楽天市場 order confirmation.

    Every order goes through an individual shop, so the merchant is
    ``楽天市場 - <shop>`` when the shop name is printed and plain
    ``楽天市場`` otherwise. Shipping notices are skipped like Amazon's.
    """

    source_tag = "RakutenIchiba"
    base_confidence = 0.9
    merchant = "楽天市場"

    amount_res = (
        labeled_amount_re("合計金額", "お支払い合計", "ご請求金額", "総合計"),
        labeled_amount_re("商品合計"),
        labeled_amount_re("合計"),
    )
    date_re = labeled_date_re("注文日時", "注文日", "ご注文日")
    store_re = labeled_value_re("ショップ名", "店舗名")

    def recognizes(self, subject: str, text: str) -> bool:
        if _SHIPMENT_RE.search(subject):
            return False
        combined = f"{subject}\n{text}"
        return bool(_BRAND_RE.search(combined) and _ORDER_RE.search(combined))
