"""Per-mail parsing orchestration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from mail_ledger import fuzzy
from mail_ledger.html_text import html_to_text
from mail_ledger.matchers.base import Matched, Suppressed
from mail_ledger.matchers.registry import DEFAULT_MATCHERS
from mail_ledger.models import UNKNOWN_MERCHANT, MerchantDictionary, ParsedTransaction
from mail_ledger.normalizer import normalize_merchant, normalize_text
from mail_ledger.subscription import score_subscriptions

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from mail_ledger.matchers.base import ExtractedFields, TemplateMatcher
    from mail_ledger.models import RawMail

logger = logging.getLogger(__name__)

_EMPTY_DICTIONARY = MerchantDictionary()


def parse_mails(
    mails: Iterable[RawMail],
    *,
    dictionary: MerchantDictionary | None = None,
    allow_fuzzy: bool = False,
    matchers: Sequence[TemplateMatcher] = DEFAULT_MATCHERS,
) -> list[ParsedTransaction]:
    """Parse a batch of mails and score the result for recurring charges.

    Mails that carry no text, are not recognized, or are preliminary
    notices contribute nothing. No input makes this function raise.
    """
    transactions: list[ParsedTransaction] = []
    for mail in mails:
        tx = parse_mail(
            mail, dictionary=dictionary, allow_fuzzy=allow_fuzzy, matchers=matchers
        )
        if tx is not None:
            transactions.append(tx)
    return score_subscriptions(transactions)


def parse_mail(
    mail: RawMail,
    *,
    dictionary: MerchantDictionary | None = None,
    allow_fuzzy: bool = False,
    matchers: Sequence[TemplateMatcher] = DEFAULT_MATCHERS,
) -> ParsedTransaction | None:
    """Parse one mail into at most one transaction.

    Independent of every other mail, so batches may be split across
    workers and the results concatenated in any order before scoring.
    """
    body = select_body_text(mail)
    if body is None:
        logger.debug("Skipping mail %s: no usable body text", mail.id)
        return None

    subject = normalize_text(mail.subject)
    text = normalize_text(body)
    dictionary = dictionary or _EMPTY_DICTIONARY

    try:
        for matcher in matchers:
            if not matcher.recognizes(subject, text):
                continue
            result = matcher.extract(subject, text)
            if isinstance(result, Suppressed):
                logger.debug("Suppressed mail %s: %s", mail.id, result.reason)
                return None
            if isinstance(result, Matched):
                tx = _finalize(result.fields, matcher.source_tag, mail, dictionary)
                if tx is not None:
                    return tx
            else:
                logger.debug(
                    "Matcher %s declined mail %s: %s",
                    matcher.source_tag,
                    mail.id,
                    result.reason,
                )

        if allow_fuzzy:
            result = fuzzy.fuzzy_extract(subject, text)
            if isinstance(result, Matched):
                return _finalize(result.fields, fuzzy.SOURCE_TAG, mail, dictionary)
    except Exception:
        logger.warning("Failed to parse mail %s", mail.id, exc_info=True)
        return None

    logger.debug("No extractor recognized mail %s", mail.id)
    return None


def select_body_text(mail: RawMail) -> str | None:
    """Return the plain body, else text derived from the HTML body."""
    if mail.text and mail.text.strip():
        return mail.text
    if not mail.html:
        return None
    text = html_to_text(mail.html)
    return text or None


def _finalize(
    fields: ExtractedFields,
    source_tag: str,
    mail: RawMail,
    dictionary: MerchantDictionary,
) -> ParsedTransaction | None:
    """Canonicalize the merchant and build a validated transaction.

    Candidates that fail validation (non-positive amount, confidence out
    of range) are discarded rather than raised.
    """
    raw_merchant = fields.raw_merchant or fields.merchant
    merchant = normalize_merchant(raw_merchant, dictionary) or UNKNOWN_MERCHANT
    try:
        tx = ParsedTransaction(
            source_tag=source_tag,
            mail_id=mail.id,
            date=fields.date,
            time=fields.time,
            amount=fields.amount,
            merchant=merchant,
            raw_merchant=fields.raw_merchant,
            is_overseas=fields.is_overseas,
            confidence=fields.confidence,
            prelim_subscription=fields.prelim_subscription,
        )
    except ValidationError:
        logger.debug("Discarded %s candidate for mail %s", source_tag, mail.id, exc_info=True)
        return None

    logger.debug(
        "Mail %s parsed by %s: %s %d", mail.id, source_tag, tx.merchant, tx.amount
    )
    return tx
