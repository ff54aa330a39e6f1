"""Caller-side pre-filter deciding which mails reach the parser."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from email.utils import parseaddr
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mail_ledger.models import RawMail

DEFAULT_EXCLUDED_SUBJECTS: frozenset[str] = frozenset(
    {
        "キャンペーン",
        "アンケート",
        "通信",
        "ニュース",
        "ポイント進呈",
        "プレゼント",
        "抽選",
        "特別価格",
        "クーポン",
        "エントリー",
        "Spot Mail",
    }
)

_DOMAIN_RE = re.compile(r"@([^>\s]+)")


@dataclass(frozen=True)
class MailFilter:
    """Subject keyword and sender domain rules for incoming mail."""

    excluded_subject_keywords: frozenset[str] = DEFAULT_EXCLUDED_SUBJECTS
    include_subject_keywords: frozenset[str] = field(default_factory=frozenset)
    include_sender_domains: frozenset[str] = field(default_factory=frozenset)
    exclude_sender_domains: frozenset[str] = field(default_factory=frozenset)

    def accepts(self, mail: RawMail) -> bool:
        """Return True if the mail should be handed to the parser."""
        domain = sender_domain(mail.sender)
        if domain and _domain_in(domain, self.exclude_sender_domains):
            return False

        subject = (mail.subject or "").lower()
        if any(k and k.lower() in subject for k in self.excluded_subject_keywords):
            return False

        if self.include_subject_keywords and not any(
            k and k.lower() in subject for k in self.include_subject_keywords
        ):
            return False

        if self.include_sender_domains:
            return bool(domain) and _domain_in(domain, self.include_sender_domains)

        return True


def filter_mails(mails: Iterable[RawMail], mail_filter: MailFilter) -> list[RawMail]:
    return [mail for mail in mails if mail_filter.accepts(mail)]


def sender_domain(sender: str | None) -> str | None:
    """Extract the lower-cased domain from a From header value."""
    if not sender:
        return None
    _name, address = parseaddr(sender)
    match = _DOMAIN_RE.search(address or sender)
    if match is None:
        return None
    return match.group(1).lower().rstrip(".")


def _domain_in(domain: str, domains: frozenset[str]) -> bool:
    """Match a domain against a set, treating subdomains as members."""
    for candidate in domains:
        candidate = candidate.lower().lstrip("@")
        if domain == candidate or domain.endswith(f".{candidate}"):
            return True
    return False
