"""Tests for mail_ledger.pipeline."""

from __future__ import annotations

import datetime as dt
import logging
import random
from typing import TYPE_CHECKING

import pytest
from mail_samples import (
    AMAZON_SUBJECT,
    AMAZON_TEXT,
    JCB_DOMESTIC_FOOTER_TEXT,
    JCB_OVERSEAS_TEXT,
    JCB_SUBJECT,
    JCB_TEXT,
    NETFLIX_SUBJECT,
    NETFLIX_TEXT,
    RAKUTEN_PAY_SUBJECT,
    RAKUTEN_PAY_TEXT,
    RAKUTEN_SUBJECT,
    RAKUTEN_TEXT,
    SMBC_SUBJECT,
    SMBC_TEXT,
)

from mail_ledger.fuzzy import FUZZY_CONFIDENCE
from mail_ledger.matchers.base import ExtractedFields, Matched, MatchResult
from mail_ledger.matchers.registry import DEFAULT_MATCHERS
from mail_ledger.models import RawMail
from mail_ledger.pipeline import parse_mail, parse_mails, select_body_text

if TYPE_CHECKING:
    from mail_ledger.models import MerchantDictionary


class _ExplodingMatcher:
    source_tag = "Boom"

    def recognizes(self, subject: str, text: str) -> bool:
        return "boom" in subject

    def extract(self, subject: str, text: str) -> MatchResult:
        msg = "template drift"
        raise RuntimeError(msg)


class _ZeroAmountMatcher:
    source_tag = "Zero"

    def recognizes(self, subject: str, text: str) -> bool:
        return True

    def extract(self, subject: str, text: str) -> MatchResult:
        return Matched(
            ExtractedFields(
                date=dt.date(2025, 1, 1), amount=0, merchant="x", confidence=0.99
            )
        )


class TestSelectBodyText:
    """Tests for select_body_text()."""

    def test_prefers_plain_text(self) -> None:
        mail = RawMail(id="1", text="plain", html="<p>html</p>")
        assert select_body_text(mail) == "plain"

    def test_falls_back_to_html(self) -> None:
        mail = RawMail(id="1", text="  \n", html="<p>html</p>")
        assert select_body_text(mail) == "html"

    def test_nothing_usable(self) -> None:
        assert select_body_text(RawMail(id="1")) is None
        assert select_body_text(RawMail(id="1", html="<style>x</style>")) is None


class TestParseMail:
    """Tests for parse_mail()."""

    def test_jcb_with_dictionary(
        self, jcb_mail: RawMail, merchant_dictionary: MerchantDictionary
    ) -> None:
        tx = parse_mail(jcb_mail, dictionary=merchant_dictionary)
        assert tx is not None
        assert tx.source_tag == "JCB"
        assert tx.mail_id == "<jcb-1@example.com>"
        assert tx.date == dt.date(2025, 8, 26)
        assert tx.time == dt.time(12, 34)
        assert tx.amount == 1980
        assert tx.merchant == "Amazon"
        assert tx.raw_merchant == "AMAZON.CO.JP"
        assert tx.confidence == 0.9

    def test_without_dictionary_keeps_normalized_name(self, jcb_mail: RawMail) -> None:
        tx = parse_mail(jcb_mail)
        assert tx is not None
        assert tx.merchant == "AMAZON.CO.JP"

    def test_prefix_and_contains_canonicalization(
        self, merchant_dictionary: MerchantDictionary
    ) -> None:
        smbc = parse_mail(
            RawMail(id="s", subject=SMBC_SUBJECT, text=SMBC_TEXT),
            dictionary=merchant_dictionary,
        )
        pay = parse_mail(
            RawMail(id="p", subject=RAKUTEN_PAY_SUBJECT, text=RAKUTEN_PAY_TEXT),
            dictionary=merchant_dictionary,
        )
        assert smbc is not None
        assert smbc.merchant == "Starbucks"
        assert pay is not None
        assert pay.merchant == "Lawson"

    def test_html_only_mail(self) -> None:
        html = (
            "<html><body><p>楽天カード株式会社</p><p>カード利用お知らせメール</p>"
            "<table><tr><td>■利用日:</td><td>2025/08/20</td></tr>"
            "<tr><td>■利用先:</td><td>NETFLIX.COM</td></tr>"
            "<tr><td>■利用金額:</td><td>1,490 円</td></tr></table></body></html>"
        )
        tx = parse_mail(RawMail(id="h", subject=RAKUTEN_SUBJECT, html=html))
        assert tx is not None
        assert tx.source_tag == "Rakuten"
        assert tx.amount == 1490
        assert tx.merchant == "NETFLIX.COM"

    def test_empty_mail(self) -> None:
        assert parse_mail(RawMail(id="e", subject="hello")) is None

    def test_unrecognized_without_fuzzy(self, generic_mail: RawMail) -> None:
        assert parse_mail(generic_mail) is None

    def test_fuzzy_opt_in(self, generic_mail: RawMail) -> None:
        tx = parse_mail(generic_mail, allow_fuzzy=True)
        assert tx is not None
        assert tx.source_tag == "fuzzy"
        assert tx.amount == 2200
        assert tx.date == dt.date(2025, 7, 1)
        assert tx.merchant == "ABCストア"
        assert tx.confidence == FUZZY_CONFIDENCE

    def test_flash_notice_never_falls_back_to_fuzzy(
        self, rakuten_flash_mail: RawMail
    ) -> None:
        assert parse_mail(rakuten_flash_mail, allow_fuzzy=True) is None

    def test_overseas_placeholder(self) -> None:
        tx = parse_mail(RawMail(id="o", subject=JCB_SUBJECT, text=JCB_OVERSEAS_TEXT))
        assert tx is not None
        assert tx.merchant == "JCB 海外利用分"
        assert tx.raw_merchant is None
        assert tx.is_overseas is True
        assert tx.prelim_subscription is True
        assert tx.confidence == pytest.approx(0.8)

    def test_matcher_error_skips_mail(
        self, jcb_mail: RawMail, caplog: pytest.LogCaptureFixture
    ) -> None:
        matchers = (_ExplodingMatcher(), *DEFAULT_MATCHERS)
        broken = RawMail(id="<boom>", subject="boom", text="2025/01/01 100円")
        with caplog.at_level(logging.WARNING, logger="mail_ledger.pipeline"):
            assert parse_mail(broken, matchers=matchers) is None
        assert "Failed to parse mail <boom>" in caplog.text
        assert parse_mail(jcb_mail, matchers=matchers) is not None

    def test_invalid_candidate_falls_through(self, jcb_mail: RawMail) -> None:
        tx = parse_mail(jcb_mail, matchers=(_ZeroAmountMatcher(), *DEFAULT_MATCHERS))
        assert tx is not None
        assert tx.source_tag == "JCB"
        assert tx.amount == 1980


class TestParseMails:
    """Tests for parse_mails()."""

    def _mails(self) -> list[RawMail]:
        return [
            RawMail(id="1", subject=JCB_SUBJECT, text=JCB_TEXT),
            RawMail(id="2", subject=RAKUTEN_SUBJECT, text=RAKUTEN_TEXT),
            RawMail(id="3", subject="newsletter", text="nothing to see"),
            RawMail(id="4", subject=AMAZON_SUBJECT, text=AMAZON_TEXT),
        ]

    def test_one_transaction_per_recognized_mail(self) -> None:
        result = parse_mails(self._mails())
        assert [tx.mail_id for tx in result] == ["1", "2", "4"]
        assert [tx.source_tag for tx in result] == ["JCB", "Rakuten", "Amazon"]

    def test_deterministic(self, merchant_dictionary: MerchantDictionary) -> None:
        first = parse_mails(self._mails(), dictionary=merchant_dictionary)
        second = parse_mails(self._mails(), dictionary=merchant_dictionary)
        assert first == second

    def test_repeated_charges_flagged(self) -> None:
        mails = [
            RawMail(
                id=f"r{month}",
                subject=RAKUTEN_SUBJECT,
                text=RAKUTEN_TEXT.replace("2025/08/20", f"2025/{month:02d}/20"),
            )
            for month in (6, 7, 8)
        ]
        result = parse_mails(mails)
        assert len(result) == 3
        assert all(tx.prelim_subscription for tx in result)

    def test_domestic_charges_with_overseas_footer_not_pooled(self) -> None:
        mails = [
            RawMail(id="d1", subject=JCB_SUBJECT, text=JCB_DOMESTIC_FOOTER_TEXT),
            RawMail(
                id="d2",
                subject=JCB_SUBJECT,
                text=JCB_DOMESTIC_FOOTER_TEXT.replace("2,480円", "2,300円").replace(
                    "セブン-イレブン", "ローソン"
                ),
            ),
        ]
        result = parse_mails(mails)
        assert [tx.merchant for tx in result] == ["セブン-イレブン", "ローソン"]
        assert not any(tx.is_overseas for tx in result)
        assert not any(tx.prelim_subscription for tx in result)

    def test_subscription_receipt_flagged_alone(self) -> None:
        result = parse_mails(
            [RawMail(id="n1", subject=NETFLIX_SUBJECT, text=NETFLIX_TEXT)]
        )
        assert len(result) == 1
        assert result[0].source_tag == "Subscription"
        assert result[0].merchant == "Netflix"
        assert result[0].prelim_subscription is True

    def test_empty_batch(self) -> None:
        assert parse_mails([]) == []

    def test_specific_matchers_outrank_fuzzy(self) -> None:
        result = parse_mails(self._mails(), allow_fuzzy=True)
        by_id = {tx.mail_id: tx for tx in result}
        assert by_id["1"].confidence > FUZZY_CONFIDENCE
        assert by_id["2"].confidence > FUZZY_CONFIDENCE
        assert by_id["4"].confidence > FUZZY_CONFIDENCE

    def test_random_mail_never_yields_invalid_transaction(self) -> None:
        rng = random.Random(20250826)
        fragments = [
            "JCB",
            "楽天カード株式会社",
            "カード利用お知らせメール",
            "楽天ペイ",
            "三井住友カード",
            "Amazon ご注文の確認",
            "【ご利用金額】",
            "ご利用日時",
            "ご利用先",
            "■利用金額:",
            "2025/02/30",
            "2025/12/31 23:59",
            "2025年1月5日",
            "0円",
            "¥",
            "1,234円",
            "速報",
            "海外利用分",
            "合計",
            "\n",
            " ",
        ]
        mails = []
        for index in range(300):
            body = "".join(rng.choice(fragments) for _ in range(rng.randint(0, 15)))
            subject = "".join(rng.choice(fragments) for _ in range(rng.randint(0, 3)))
            mails.append(RawMail(id=str(index), subject=subject, text=body))

        result = parse_mails(mails, allow_fuzzy=True)
        assert len(result) <= len(mails)
        for tx in result:
            assert tx.amount > 0
            assert isinstance(tx.date, dt.date)
            assert 0.0 <= tx.confidence <= 1.0
            assert tx.merchant
