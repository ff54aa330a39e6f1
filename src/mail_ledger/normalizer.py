"""Text and merchant-name canonicalization."""

from __future__ import annotations

import re
import unicodedata
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mail_ledger.models import MerchantDictionary

_TRAILING_SPACE_RE = re.compile(r"[^\S\n]+(?=\n)")


def normalize_text(value: str | None) -> str:
    """Fold a mail body or subject into a regex-friendly form.

    NFKC folds full-width digits, letters and punctuation (including the
    ideographic space) to their half-width forms. Carriage returns become
    line feeds, tabs and non-breaking spaces become plain spaces, and
    whitespace before a line break is dropped.
    """
    if not value:
        return ""
    text = unicodedata.normalize("NFKC", value)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = text.replace("\t", " ").replace("\u00a0", " ")
    return _TRAILING_SPACE_RE.sub("", text)


def normalize_merchant(raw: str | None, dictionary: MerchantDictionary) -> str:
    """Resolve a raw merchant string to its canonical display name.

    Tiers are tried strictly in order: exact, prefix, contains. The
    first hit wins; without one the NFKC-normalized, trimmed input is
    returned unchanged.
    """
    name = unicodedata.normalize("NFKC", raw or "").strip()
    if not name:
        return ""

    canonical = dictionary.exact.get(name)
    if canonical:
        return canonical

    for key, canonical in dictionary.prefix.items():
        if name.startswith(key):
            return canonical

    for key, canonical in dictionary.contains.items():
        if key in name:
            return canonical

    return name
