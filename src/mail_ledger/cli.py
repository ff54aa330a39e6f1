"""CLI entry point for mail-ledger."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click
from pydantic import TypeAdapter, ValidationError

from mail_ledger.adapters.mailfile import EmlFileSource, MboxSource
from mail_ledger.cadence import classify_recurring
from mail_ledger.config import (
    get_allow_fuzzy,
    get_dictionary_path,
    get_mail_filter,
    load_merchant_dictionary,
)
from mail_ledger.mail_filter import filter_mails
from mail_ledger.models import LedgerEntry
from mail_ledger.pipeline import parse_mails

_HISTORY_ADAPTER = TypeAdapter(list[LedgerEntry])


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log parser decisions.")
def cli(verbose: bool) -> None:
    """Mail Ledger: turn card and order mails into transactions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument(
    "paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path)
)
@click.option(
    "--fuzzy/--no-fuzzy",
    default=None,
    help="Fall back to loose extraction (default: ALLOW_FUZZY).",
)
@click.option(
    "--dictionary",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Merchant dictionary JSON (default: MERCHANT_DICTIONARY_PATH).",
)
@click.option("--no-filter", is_flag=True, help="Skip the subject/sender pre-filter.")
def parse(
    paths: tuple[Path, ...],
    fuzzy: bool | None,
    dictionary: Path | None,
    no_filter: bool,
) -> None:
    """Parse .eml files or mbox archives and print transactions as JSON lines."""
    try:
        merchant_dictionary = load_merchant_dictionary(
            dictionary or get_dictionary_path()
        )
        allow_fuzzy = get_allow_fuzzy() if fuzzy is None else fuzzy
        mail_filter = None if no_filter else get_mail_filter()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    mails = []
    for path in paths:
        source = MboxSource(path) if _is_mbox(path) else EmlFileSource([path])
        mails.extend(source.fetch())
    if mail_filter is not None:
        mails = filter_mails(mails, mail_filter)

    transactions = parse_mails(
        mails, dictionary=merchant_dictionary, allow_fuzzy=allow_fuzzy
    )
    for tx in transactions:
        click.echo(tx.model_dump_json())


@cli.command()
@click.argument("history", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def recurring(history: Path) -> None:
    """Classify recurring charges in a JSON array of ledger entries."""
    try:
        entries = _HISTORY_ADAPTER.validate_json(history.read_bytes())
    except ValidationError as exc:
        msg = f"Invalid history file {history}: {exc}"
        raise click.ClickException(msg) from exc

    records = classify_recurring(entries)
    click.echo(json.dumps([r.model_dump(mode="json") for r in records], ensure_ascii=False))


def _is_mbox(path: Path) -> bool:
    """Treat anything not named *.eml that starts with an mbox From line as mbox."""
    if path.suffix.lower() == ".eml":
        return False
    with path.open("rb") as fh:
        return fh.read(5) == b"From "
