"""Configuration via environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from mail_ledger.mail_filter import DEFAULT_EXCLUDED_SUBJECTS, MailFilter
from mail_ledger.models import MerchantDictionary

load_dotenv()

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True)
class ParserConfig:
    """Everything the parsing pipeline needs, loaded once per run."""

    dictionary: MerchantDictionary
    allow_fuzzy: bool
    mail_filter: MailFilter


def get_dictionary_path() -> Path | None:
    """Return MERCHANT_DICTIONARY_PATH as an absolute path, if set."""
    value = os.environ.get("MERCHANT_DICTIONARY_PATH")
    if not value:
        return None
    return Path(value).resolve()


def load_merchant_dictionary(path: Path | None) -> MerchantDictionary:
    """Load the canonicalization dictionary from a JSON file.

    ``None`` yields an empty dictionary, so merchants pass through
    unchanged.
    """
    if path is None:
        return MerchantDictionary()
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read merchant dictionary {path}: {exc}"
        raise ValueError(msg) from exc
    try:
        return MerchantDictionary.model_validate_json(content)
    except ValidationError as exc:
        msg = f"Invalid merchant dictionary {path}: {exc}"
        raise ValueError(msg) from exc


def get_allow_fuzzy() -> bool:
    """Return ALLOW_FUZZY as a bool, defaulting to False."""
    return _get_bool("ALLOW_FUZZY", default=False)


def get_mail_filter() -> MailFilter:
    """Build the mail pre-filter from environment variables.

    Optional: MAIL_EXCLUDE_SUBJECTS (replaces the built-in list when set),
    MAIL_INCLUDE_SUBJECTS, MAIL_INCLUDE_DOMAINS, MAIL_EXCLUDE_DOMAINS,
    all comma separated.
    """
    excluded = _get_list("MAIL_EXCLUDE_SUBJECTS")
    return MailFilter(
        excluded_subject_keywords=(
            DEFAULT_EXCLUDED_SUBJECTS if excluded is None else excluded
        ),
        include_subject_keywords=_get_list("MAIL_INCLUDE_SUBJECTS") or frozenset(),
        include_sender_domains=_get_list("MAIL_INCLUDE_DOMAINS") or frozenset(),
        exclude_sender_domains=_get_list("MAIL_EXCLUDE_DOMAINS") or frozenset(),
    )


def get_parser_config() -> ParserConfig:
    return ParserConfig(
        dictionary=load_merchant_dictionary(get_dictionary_path()),
        allow_fuzzy=get_allow_fuzzy(),
        mail_filter=get_mail_filter(),
    )


def _get_bool(name: str, *, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    msg = f"{name} must be a boolean (true/false), got {value!r}"
    raise ValueError(msg)


def _get_list(name: str) -> frozenset[str] | None:
    value = os.environ.get(name)
    if value is None:
        return None
    return frozenset(item.strip() for item in value.split(",") if item.strip())
