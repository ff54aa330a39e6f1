"""Local mail sources: single .eml files and mbox archives."""

from __future__ import annotations

import hashlib
import logging
import mailbox
from email import message_from_bytes, policy
from email.header import decode_header
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, cast

from mail_ledger.models import RawMail

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from datetime import datetime
    from email.message import Message
    from pathlib import Path

logger = logging.getLogger(__name__)


class EmlFileSource:
    """Yield one RawMail per RFC 822 file."""

    def __init__(self, paths: Iterable[Path]) -> None:
        self.paths = list(paths)

    def fetch(self) -> Iterator[RawMail]:
        for path in self.paths:
            try:
                msg = message_from_bytes(path.read_bytes(), policy=policy.compat32)
                yield message_to_raw_mail(msg)
            except Exception:
                logger.warning("Failed to read mail file %s", path, exc_info=True)


class MboxSource:
    """Yield every message of an mbox archive."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def fetch(self) -> Iterator[RawMail]:
        box = mailbox.mbox(self.path, create=False)
        try:
            for key, msg in box.iteritems():
                try:
                    yield message_to_raw_mail(msg)
                except Exception:
                    logger.warning(
                        "Failed to parse message %s in %s", key, self.path, exc_info=True
                    )
        finally:
            box.close()


def message_to_raw_mail(msg: Message) -> RawMail:
    """Convert an email Message to a RawMail."""
    html_body, text_body = extract_bodies(msg)
    return RawMail(
        id=get_message_id(msg),
        subject=decode_header_value(msg.get("Subject")),
        text=text_body,
        html=html_body,
        received_at=_parse_date(msg.get("Date")),
        sender=decode_header_value(msg.get("From")) or None,
    )


def get_message_id(msg: Message) -> str:
    """Return the Message-ID, or a hash of subject, date and sender."""
    message_id = msg.get("Message-ID")
    if message_id:
        return str(message_id).strip()

    key = f"{msg.get('Subject', '')}|{msg.get('Date', '')}|{msg.get('From', '')}"
    return hashlib.sha256(key.encode()).hexdigest()


def decode_header_value(value: str | None) -> str:
    """Decode an RFC 2047 encoded header value."""
    if not value:
        return ""
    decoded: list[str] = []
    for data, charset in decode_header(str(value)):
        if isinstance(data, bytes):
            decoded.append(data.decode(charset or "utf-8", errors="replace"))
        else:
            decoded.append(data)
    return "".join(decoded)


def extract_bodies(msg: Message) -> tuple[str | None, str | None]:
    """Return the first inline (html, text) bodies found in the MIME tree."""
    html_body: str | None = None
    text_body: str | None = None

    for part in msg.walk():
        if part.get_content_maintype() == "multipart":
            continue
        disposition = str(part.get("Content-Disposition", "")).lower()
        if part.get_filename() or "attachment" in disposition:
            continue

        content_type = part.get_content_type()
        if content_type not in ("text/html", "text/plain"):
            continue
        raw_payload = part.get_payload(decode=True)
        if raw_payload is None:
            continue
        payload = cast("bytes", raw_payload)
        body = _decode_payload(payload, part.get_content_charset())

        if content_type == "text/html" and html_body is None:
            html_body = body
        elif content_type == "text/plain" and text_body is None:
            text_body = body

    return html_body, text_body


def _decode_payload(payload: bytes, charset: str | None) -> str:
    try:
        return payload.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return payload.decode("utf-8", errors="replace")


def _parse_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(str(value))
    except (TypeError, ValueError):
        return None
