"""Fixed matcher priority order."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mail_ledger.matchers.amazon import AmazonOrderMatcher
from mail_ledger.matchers.billing import SubscriptionReceiptMatcher
from mail_ledger.matchers.jcb import JcbMatcher
from mail_ledger.matchers.marketplaces import (
    MercariMatcher,
    YahooShoppingMatcher,
    ZozotownMatcher,
)
from mail_ledger.matchers.rakuten import RakutenCardMatcher
from mail_ledger.matchers.rakuten_ichiba import RakutenIchibaMatcher
from mail_ledger.matchers.rakuten_pay import RakutenPayMatcher
from mail_ledger.matchers.smbc import SmbcMatcher

if TYPE_CHECKING:
    from mail_ledger.matchers.base import TemplateMatcher

# Card notices precede shop and service mails.
DEFAULT_MATCHERS: tuple[TemplateMatcher, ...] = (
    JcbMatcher(),
    RakutenCardMatcher(),
    RakutenPayMatcher(),
    SmbcMatcher(),
    AmazonOrderMatcher(),
    RakutenIchibaMatcher(),
    YahooShoppingMatcher(),
    MercariMatcher(),
    ZozotownMatcher(),
    SubscriptionReceiptMatcher(),
)
