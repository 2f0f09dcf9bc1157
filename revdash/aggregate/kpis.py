"""All-time KPI totals and the subscription MRR snapshot."""
from __future__ import annotations

import pandas as pd

from revdash.aggregate.metrics import ratio, round_output
from revdash.aggregate.monthly import deal_aov, funnel_rates
from revdash.ingest.schema import (
    ACTIVE_SUB_STATUSES,
    SUB_PLAN_MONTHLY,
    SUB_PLAN_OTHER,
    SUB_PLAN_YEARLY,
)


def _round_numbers(value):
    """Round every float in a nested snapshot to 2 decimals."""
    if isinstance(value, dict):
        return {k: _round_numbers(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_round_numbers(v) for v in value]
    if isinstance(value, float):
        return round_output(value)
    return value


def subscription_snapshot(snapshot: dict | None, subs: pd.DataFrame) -> dict:
    """Pass a fetched MRR snapshot through, or derive one from subscriptions.

    The legacy subscriptions shape carries no snapshot, so MRR is summed over
    currently active subscriptions instead.
    """
    if snapshot is not None:
        return _round_numbers(snapshot)

    active = subs[subs["status"].isin(ACTIVE_SUB_STATUSES)]
    return {
        "mrr": round_output(active["monthlyAmount"].sum()),
        "activeSubscriptions": int(len(active)),
        "monthly": int((active["planType"] == SUB_PLAN_MONTHLY).sum()),
        "yearly": int((active["planType"] == SUB_PLAN_YEARLY).sum()),
        "other": int((active["planType"] == SUB_PLAN_OTHER).sum()),
    }


def _snapshot_mrr(sub_snapshot: dict) -> float:
    value = sub_snapshot.get("mrr", 0)
    try:
        return round_output(float(value or 0))
    except (TypeError, ValueError):
        return 0.0


def compute_kpis(
    ads: pd.DataFrame,
    deals: pd.DataFrame,
    charges: pd.DataFrame,
    forms: pd.DataFrame,
    purchases: pd.DataFrame,
    subs: pd.DataFrame,
    sub_snapshot: dict,
) -> dict:
    total_leads = int(len(deals))
    total_mqls = int(deals["isMql"].sum())
    total_sqls = int(deals["isSql"].sum())
    won = deals[deals["isWon"]]
    total_deals = int(len(won))
    deal_revenue = float(won["amount"].sum())
    stripe_revenue = float(charges["amount"].sum())
    ads_cost = float(ads["cost"].sum())
    new_mrr = float(subs.loc[subs["createdWeek"] != "", "monthlyAmount"].sum())
    churned_mrr = float(subs.loc[subs["canceledWeek"] != "", "monthlyAmount"].sum())

    return {
        "totalLeads": total_leads,
        "totalMQLs": total_mqls,
        "totalSQLs": total_sqls,
        "totalDeals": total_deals,
        "totalDealRevenue": round_output(deal_revenue),
        "totalStripeRevenue": round_output(stripe_revenue),
        "totalCharges": int(len(charges)),
        "totalAdsCost": round_output(ads_cost),
        "roas": ratio(stripe_revenue, ads_cost),
        **funnel_rates(total_leads, total_mqls, total_sqls, total_deals),
        "dealAOV": deal_aov(deal_revenue, total_deals),
        "totalFormSubmissions": int(forms["count"].sum()),
        "totalPurchases": int(purchases["transactions"].sum()),
        "totalPurchaseRevenue": round_output(purchases["revenue"].sum()),
        "mrr": _snapshot_mrr(sub_snapshot),
        "netNewMrr": round_output(new_mrr - churned_mrr),
    }
