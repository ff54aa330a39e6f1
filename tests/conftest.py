"""Shared test fixtures."""

from __future__ import annotations

import pytest
from mail_samples import (
    GENERIC_SUBJECT,
    GENERIC_TEXT,
    JCB_SUBJECT,
    JCB_TEXT,
    RAKUTEN_FLASH_SUBJECT,
    RAKUTEN_FLASH_TEXT,
    RAKUTEN_SUBJECT,
    RAKUTEN_TEXT,
)

from mail_ledger.models import MerchantDictionary, RawMail


@pytest.fixture
def merchant_dictionary() -> MerchantDictionary:
    """Provide a small three-tier canonicalization table."""
    return MerchantDictionary(
        exact={"AMAZON.CO.JP": "Amazon", "NETFLIX.COM": "Netflix"},
        prefix={"スターバックス": "Starbucks"},
        contains={"ローソン": "Lawson"},
    )


@pytest.fixture
def jcb_mail() -> RawMail:
    return RawMail(id="<jcb-1@example.com>", subject=JCB_SUBJECT, text=JCB_TEXT)


@pytest.fixture
def rakuten_mail() -> RawMail:
    return RawMail(
        id="<rakuten-1@example.com>", subject=RAKUTEN_SUBJECT, text=RAKUTEN_TEXT
    )


@pytest.fixture
def rakuten_flash_mail() -> RawMail:
    return RawMail(
        id="<rakuten-flash@example.com>",
        subject=RAKUTEN_FLASH_SUBJECT,
        text=RAKUTEN_FLASH_TEXT,
    )


@pytest.fixture
def generic_mail() -> RawMail:
    return RawMail(id="<generic@example.com>", subject=GENERIC_SUBJECT, text=GENERIC_TEXT)
