"""Order mails from Yahoo!ショッピング, メルカリ and ZOZOTOWN."""

from __future__ import annotations

import re

from mail_ledger.matchers.base import (
    AMOUNT_PATTERN,
    OrderConfirmationMatcher,
    labeled_amount_re,
    labeled_date_re,
    labeled_value_re,
)

_SHIPMENT_RE = re.compile(r"発送|出荷|配達")

_YAHOO_RE = re.compile(r"Yahoo!\s*ショッピング|PayPayモール|Yahoo!\s*Shopping", re.IGNORECASE)
_YAHOO_ORDER_RE = re.compile(r"ご注文|注文確認|注文番号")

_MERCARI_RE = re.compile(r"メルカリ|mercari", re.IGNORECASE)
_MERCARI_PURCHASE_RE = re.compile(r"購入|お支払い")
# Seller-side notices describe someone else's purchase.
_MERCARI_SOLD_RE = re.compile(r"購入されました|売れました|発送")

_ZOZO_RE = re.compile(r"ZOZOTOWN", re.IGNORECASE)
_ZOZO_ORDER_RE = re.compile(r"注文|ご購入")


class YahooShoppingMatcher(OrderConfirmationMatcher):
    source_tag = "YahooShopping"
    base_confidence = 0.85
    merchant = "Yahoo!ショッピング"

    amount_res = (
        labeled_amount_re("お支払い金額", "合計金額", "総額"),
        labeled_amount_re("商品合計"),
    )
    date_re = labeled_date_re("注文日時", "注文日", "ご注文日")
    store_re = labeled_value_re("ストア名")

    def recognizes(self, subject: str, text: str) -> bool:
        if _SHIPMENT_RE.search(subject):
            return False
        combined = f"{subject}\n{text}"
        return bool(_YAHOO_RE.search(combined) and _YAHOO_ORDER_RE.search(combined))


class MercariMatcher(OrderConfirmationMatcher):
    """Purchases on メルカリ. The seller is never named in the mail."""

    source_tag = "Mercari"
    base_confidence = 0.8
    merchant = "メルカリ"

    amount_res = (
        labeled_amount_re("支払い金額", "購入金額"),
        re.compile(AMOUNT_PATTERN + r"\s*(?:で購入|をお支払い)"),
    )
    date_re = labeled_date_re("購入日時", "取引日時", "購入日")

    def recognizes(self, subject: str, text: str) -> bool:
        if _MERCARI_SOLD_RE.search(subject):
            return False
        combined = f"{subject}\n{text}"
        return bool(_MERCARI_RE.search(combined) and _MERCARI_PURCHASE_RE.search(combined))


class ZozotownMatcher(OrderConfirmationMatcher):
    source_tag = "ZOZOTOWN"
    base_confidence = 0.8
    merchant = "ZOZOTOWN"

    amount_res = (
        labeled_amount_re("合計金額", "お支払い金額"),
        labeled_amount_re("商品代金"),
    )
    date_re = labeled_date_re("注文日時", "注文日", "ご注文日")

    def recognizes(self, subject: str, text: str) -> bool:
        if _SHIPMENT_RE.search(subject):
            return False
        combined = f"{subject}\n{text}"
        return bool(_ZOZO_RE.search(combined) and _ZOZO_ORDER_RE.search(combined))
