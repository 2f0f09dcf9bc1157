"""Identifier → attribute maps built from one source to enrich another.

Both maps are built once per run from the complete input set, before any
record is enriched.
"""
from __future__ import annotations

import pandas as pd

from revdash.ingest.schema import UNKNOWN_CHANNEL


def build_form_channel_map(form_submissions: pd.DataFrame) -> dict[str, str]:
    """Majority-vote channel per GA4 form id.

    Event counts are tallied per (formId, channel); the channel with the
    highest tally wins. Ties go to the lexicographically smallest channel
    name so the result does not depend on input order.
    """
    forms = form_submissions[
        (form_submissions["formId"] != "") & (form_submissions["channel"] != "")
    ]
    if forms.empty:
        return {}

    tallies = (
        forms.groupby(["formId", "channel"], sort=False)["count"]
        .sum()
        .reset_index()
        .sort_values(["formId", "count", "channel"], ascending=[True, False, True])
    )
    winners = tallies.drop_duplicates(subset="formId", keep="first")
    return dict(zip(winners["formId"], winners["channel"]))


def build_transaction_lookup(purchases: pd.DataFrame) -> dict[str, dict]:
    """transactionId → {channel, campaign}. Later rows overwrite earlier ones."""
    lookup: dict[str, dict] = {}
    rows = purchases[purchases["transactionId"] != ""]
    for txn_id, channel, campaign in zip(rows["transactionId"], rows["channel"], rows["campaign"]):
        lookup[txn_id] = {
            "channel": channel or UNKNOWN_CHANNEL,
            "campaign": campaign,
        }
    return lookup
