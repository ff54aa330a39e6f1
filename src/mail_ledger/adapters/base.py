"""Mail source protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator

    from mail_ledger.models import RawMail


@runtime_checkable
class MailSource(Protocol):
    """Protocol for anything that yields inbound notification mails."""

    def fetch(self) -> Iterator[RawMail]: ...
