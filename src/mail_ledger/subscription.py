"""Per-batch amount-stability heuristic for likely subscriptions."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

import numpy as np

from mail_ledger.models import UNKNOWN_MERCHANT

if TYPE_CHECKING:
    from mail_ledger.models import ParsedTransaction

OVERSEAS_CLUSTER = "__overseas__"

ABSOLUTE_TOLERANCE = 500
RELATIVE_TOLERANCE = 0.2
OVERSEAS_CONFIDENCE_BONUS = 0.05


def score_subscriptions(
    transactions: list[ParsedTransaction],
) -> list[ParsedTransaction]:
    """Flag groups of same-merchant charges whose amounts barely vary.

    Overseas charges are pooled into one cluster regardless of merchant,
    since foreign billing names differ between issuers while the amount
    stays put. A group is stable when the population standard deviation
    of its amounts is within ``max(ABSOLUTE_TOLERANCE, RELATIVE_TOLERANCE
    * mean)``; stable overseas members also gain a small confidence bonus.

    Returns a new list in input order. Flags are only ever added and
    confidence only ever raised.
    """
    groups: dict[str, list[int]] = defaultdict(list)
    for index, tx in enumerate(transactions):
        groups[_cluster_key(tx)].append(index)

    stable: set[int] = set()
    for indexes in groups.values():
        if len(indexes) < 2:
            continue
        amounts = np.array([transactions[i].amount for i in indexes], dtype=float)
        mean = float(np.mean(amounts))
        threshold = max(ABSOLUTE_TOLERANCE, RELATIVE_TOLERANCE * mean)
        if float(np.std(amounts)) <= threshold:
            stable.update(indexes)

    scored: list[ParsedTransaction] = []
    for index, tx in enumerate(transactions):
        if index not in stable:
            scored.append(tx)
            continue
        update: dict[str, object] = {"prelim_subscription": True}
        if tx.is_overseas:
            update["confidence"] = round(
                min(1.0, tx.confidence + OVERSEAS_CONFIDENCE_BONUS), 4
            )
        scored.append(tx.model_copy(update=update))
    return scored


def _cluster_key(tx: ParsedTransaction) -> str:
    if tx.is_overseas:
        return OVERSEAS_CLUSTER
    return tx.merchant or UNKNOWN_MERCHANT
