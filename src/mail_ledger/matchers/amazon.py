"""Amazon.co.jp order confirmations."""

from __future__ import annotations

import re

from mail_ledger.matchers.base import (
    OrderConfirmationMatcher,
    labeled_amount_re,
    labeled_date_re,
)

MERCHANT = "Amazon.co.jp"

_BRAND_RE = re.compile(r"Amazon", re.IGNORECASE)
_ORDER_RE = re.compile(r"注文の確認|ご注文の確認|注文確定|Order Confirmation|ご注文ありがとう")
_SHIPMENT_RE = re.compile(r"発送|出荷|配達|Shipped|Delivered", re.IGNORECASE)


class AmazonOrderMatcher(OrderConfirmationMatcher):
    """Extract the order total from an Amazon order confirmation.

    Shipping and delivery notices repeat the order total, so only
    confirmation mails are recognized to avoid counting an order twice.
    """

    source_tag = "Amazon"
    base_confidence = 0.92
    merchant = MERCHANT

    amount_res = (
        labeled_amount_re("注文合計", "Order Total", "ご請求額", "ご請求金額"),
        labeled_amount_re("お支払い金額", "総計"),
    )
    date_re = labeled_date_re("注文日", "ご注文日", "Order Date", "Order Placed")

    def recognizes(self, subject: str, text: str) -> bool:
        if _SHIPMENT_RE.search(subject):
            return False
        combined = f"{subject}\n{text}"
        return bool(_BRAND_RE.search(combined) and _ORDER_RE.search(combined))
