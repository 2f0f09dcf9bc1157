"""Channel attribution for deals and charges, plus derived dimension columns."""
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from revdash.ingest.classifiers import (
    classify_geo,
    get_business_unit,
    lifecycle_rank,
)
from revdash.ingest.schema import (
    LIFECYCLE_ORDER,
    PLAN_SUBSCRIPTION,
    STATUS_OPEN,
    STATUS_WON,
    SUBSCRIPTION_CHANNEL,
    TOP_UP_SENTINEL,
    UNKNOWN_CHANNEL,
)

logger = logging.getLogger(__name__)

MQL_RANK = LIFECYCLE_ORDER.index("MQL")
SQL_RANK = LIFECYCLE_ORDER.index("SQL")


def enrich_deals(deals: pd.DataFrame, form_to_channel: dict[str, str]) -> pd.DataFrame:
    """Attribute each deal to the majority channel of its GA4 form.

    Deals without a form id, or whose form never appeared in GA4, get
    "Unknown". The channel column is set in place and the frame returned.
    """
    deals["channel"] = [
        form_to_channel.get(form_id, UNKNOWN_CHANNEL) if form_id else UNKNOWN_CHANNEL
        for form_id in deals["formId"]
    ]
    matched = int((deals["channel"] != UNKNOWN_CHANNEL).sum())
    logger.info("Attributed %d of %d deals to a form channel", matched, len(deals))
    return deals


def match_transaction(
    payment_identifier: str,
    upload_batch_id: str,
    lookup: dict[str, dict],
) -> dict | None:
    """Strict-equality match on paymentIdentifier, then uploadBatchId.

    The top-up sentinel batch id never matches.
    """
    if payment_identifier and payment_identifier in lookup:
        return lookup[payment_identifier]
    if upload_batch_id and upload_batch_id != TOP_UP_SENTINEL and upload_batch_id in lookup:
        return lookup[upload_batch_id]
    return None


def attribute_charges(charges: pd.DataFrame, transaction_lookup: dict[str, dict]) -> pd.DataFrame:
    """Set channel and campaign on every charge from the GA4 purchase lookup.

    Misses fall back to "Subscription" for subscription plans, else "Unknown".
    """
    channels: list[str] = []
    campaigns: list[str] = []
    for pid, batch_id, plan_type in zip(
        charges["paymentIdentifier"], charges["uploadBatchId"], charges["planType"]
    ):
        hit = match_transaction(pid, batch_id, transaction_lookup)
        if hit is not None:
            channels.append(hit["channel"])
            campaigns.append(hit["campaign"])
        elif plan_type == PLAN_SUBSCRIPTION:
            channels.append(SUBSCRIPTION_CHANNEL)
            campaigns.append("")
        else:
            channels.append(UNKNOWN_CHANNEL)
            campaigns.append("")
    charges["channel"] = channels
    charges["campaign"] = campaigns
    return charges


def add_dimensions(df: pd.DataFrame, week_column: str = "week") -> pd.DataFrame:
    """Add geo, businessUnit and month columns used for grouping."""
    if "country" in df.columns:
        df["geo"] = df["country"].map(classify_geo).astype(object)
    if "product" in df.columns:
        df["businessUnit"] = df["product"].map(get_business_unit).astype(object)
    df["month"] = df[week_column].astype(str).str[:7]
    return df


def add_funnel_flags(deals: pd.DataFrame) -> pd.DataFrame:
    """Derive isMql/isSql/isWon and the week a win is booked in.

    Closed deals (won or lost) count as MQL and SQL whatever their recorded
    lifecycle stage. Wins are booked in the close week, falling back to the
    create week.
    """
    if deals.empty:
        for col in ("isMql", "isSql", "isWon"):
            deals[col] = pd.Series(dtype=bool)
        deals["winWeek"] = pd.Series(dtype=str)
        deals["winMonth"] = pd.Series(dtype=str)
        return deals

    rank = deals["lifecycleStage"].map(lifecycle_rank)
    closed = deals["status"] != STATUS_OPEN
    deals["isMql"] = (rank >= MQL_RANK) | closed
    deals["isSql"] = (rank >= SQL_RANK) | closed
    deals["isWon"] = deals["status"] == STATUS_WON
    deals["winWeek"] = np.where(deals["closeWeek"] != "", deals["closeWeek"], deals["createWeek"])
    deals["winMonth"] = deals["winWeek"].str[:7]
    return deals
