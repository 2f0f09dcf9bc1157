"""Segment cruncher: fixed filter-combination subtotals over charges.

The dashboard's cascading product → plan type → subtype filters read these
pre-computed {count, revenue} pairs instead of filtering charges client-side.
The table below is the complete contract with the dashboard: every key is
enumerated by hand, and Human-Made deliberately has no subtype drill-down.
Adding a filter dimension means adding rows here.
"""
from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from revdash.aggregate.metrics import round_output
from revdash.ingest.schema import (
    PLAN_INVOICE,
    PLAN_PREPAID,
    PLAN_SUBSCRIPTION,
    PRODUCT_HUMAN_MADE,
    PRODUCT_MACHINE_MADE,
    SUBTYPE_CREATION,
    SUBTYPE_JOB_CREATION,
    SUBTYPE_TOP_UP,
    SUBTYPE_UPDATE,
)


@dataclass(frozen=True)
class Segment:
    key: str
    product: str | None = None
    plan_type: str | None = None
    plan_subtype: str | None = None

    def mask(self, charges: pd.DataFrame) -> pd.Series:
        selected = pd.Series(True, index=charges.index)
        if self.product is not None:
            selected &= charges["product"] == self.product
        if self.plan_type is not None:
            selected &= charges["planType"] == self.plan_type
        if self.plan_subtype is not None:
            selected &= charges["planSubtype"] == self.plan_subtype
        return selected


MM = PRODUCT_MACHINE_MADE
HM = PRODUCT_HUMAN_MADE

SEGMENTS = (
    Segment("all"),
    Segment("prepaid", plan_type=PLAN_PREPAID),
    Segment("prepaid_job", plan_type=PLAN_PREPAID, plan_subtype=SUBTYPE_JOB_CREATION),
    Segment("prepaid_topup", plan_type=PLAN_PREPAID, plan_subtype=SUBTYPE_TOP_UP),
    Segment("subscription", plan_type=PLAN_SUBSCRIPTION),
    Segment("subscription_creation", plan_type=PLAN_SUBSCRIPTION, plan_subtype=SUBTYPE_CREATION),
    Segment("subscription_update", plan_type=PLAN_SUBSCRIPTION, plan_subtype=SUBTYPE_UPDATE),
    Segment("invoice", plan_type=PLAN_INVOICE),
    Segment("mm", product=MM),
    Segment("mm_prepaid", product=MM, plan_type=PLAN_PREPAID),
    Segment("mm_prepaid_job", product=MM, plan_type=PLAN_PREPAID, plan_subtype=SUBTYPE_JOB_CREATION),
    Segment("mm_prepaid_topup", product=MM, plan_type=PLAN_PREPAID, plan_subtype=SUBTYPE_TOP_UP),
    Segment("mm_subscription", product=MM, plan_type=PLAN_SUBSCRIPTION),
    Segment("mm_subscription_creation", product=MM, plan_type=PLAN_SUBSCRIPTION, plan_subtype=SUBTYPE_CREATION),
    Segment("mm_subscription_update", product=MM, plan_type=PLAN_SUBSCRIPTION, plan_subtype=SUBTYPE_UPDATE),
    Segment("mm_invoice", product=MM, plan_type=PLAN_INVOICE),
    Segment("hm", product=HM),
    Segment("hm_prepaid", product=HM, plan_type=PLAN_PREPAID),
    Segment("hm_subscription", product=HM, plan_type=PLAN_SUBSCRIPTION),
    Segment("hm_invoice", product=HM, plan_type=PLAN_INVOICE),
)

SEGMENT_KEYS = tuple(s.key for s in SEGMENTS)


def crunch_segments(charges: pd.DataFrame) -> dict[str, dict]:
    """{segment key: {count, revenue}} for every enumerated segment, in table order."""
    result = {}
    for segment in SEGMENTS:
        subset = charges.loc[segment.mask(charges), "amount"]
        result[segment.key] = {
            "count": int(len(subset)),
            "revenue": round_output(subset.sum()),
        }
    return result
