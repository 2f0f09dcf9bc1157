"""Weekly aggregates per source.

Each *_metrics function summarises one bucket's rows and is shared with the
monthly rollup. Weeks with no rows for a source produce zero-valued buckets.
"""
from __future__ import annotations

import pandas as pd

from revdash.aggregate.buckets import split_by
from revdash.aggregate.metrics import (
    channel_counts,
    count_revenue,
    funnel_breakdown,
    round_output,
    spend_breakdown,
)
from revdash.aggregate.segments import crunch_segments
from revdash.ingest.classifiers import get_product_type
from revdash.ingest.schema import (
    PRODUCT_AMBERNOTES,
    PRODUCT_HUMAN_MADE,
    PRODUCT_MACHINE_MADE,
    SUB_PLAN_MONTHLY,
    SUB_PLAN_YEARLY,
    USER_TYPE_BRAND,
)


def _bucket(frames: dict[str, pd.DataFrame], key: str, template: pd.DataFrame) -> pd.DataFrame:
    return frames.get(key, template.iloc[0:0])


# --- ads ---

def ads_metrics(rows: pd.DataFrame) -> dict:
    cost = rows["cost"]
    notes = rows["product"].map(get_product_type) == PRODUCT_AMBERNOTES
    return {
        "totalCost": round_output(cost.sum()),
        "mmCost": round_output(cost[rows["userType"] == PRODUCT_MACHINE_MADE].sum()),
        "hmCost": round_output(cost[rows["userType"] == PRODUCT_HUMAN_MADE].sum()),
        "notesCost": round_output(cost[notes].sum()),
        "brandCost": round_output(cost[rows["userType"] == USER_TYPE_BRAND].sum()),
        "clicks": int(rows["clicks"].sum()),
        "conversions": round_output(rows["conversions"].sum()),
    }


def weekly_ads(ads: pd.DataFrame, weeks: list[str]) -> list[dict]:
    by_week = split_by(ads, "week")
    rows = []
    for week in weeks:
        bucket = _bucket(by_week, week, ads)
        rows.append({
            "week": week,
            **ads_metrics(bucket),
            "byCountry": spend_breakdown(bucket, "geo"),
            "byCampaignType": spend_breakdown(bucket, "campaignType"),
        })
    return rows


# --- CRM funnel ---

def funnel_metrics(created: pd.DataFrame, won: pd.DataFrame) -> dict:
    return {
        "leads": int(len(created)),
        "mqls": int(created["isMql"].sum()),
        "sqls": int(created["isSql"].sum()),
        "won": int(len(won)),
        "wonRevenue": round_output(won["amount"].sum()),
    }


def funnel_breakdowns(created: pd.DataFrame, won: pd.DataFrame) -> dict:
    return {
        "byChannel": funnel_breakdown(created, won, "channel"),
        "byCountry": funnel_breakdown(created, won, "geo"),
        "byProduct": funnel_breakdown(created, won, "product"),
        "byBusinessUnit": funnel_breakdown(created, won, "businessUnit"),
    }


def weekly_funnel(deals: pd.DataFrame, weeks: list[str]) -> list[dict]:
    created_by_week = split_by(deals, "createWeek")
    won_by_week = split_by(deals[deals["isWon"]], "winWeek")
    rows = []
    for week in weeks:
        created = _bucket(created_by_week, week, deals)
        won = _bucket(won_by_week, week, deals)
        rows.append({
            "week": week,
            **funnel_metrics(created, won),
            **funnel_breakdowns(created, won),
        })
    return rows


# --- charges ---

def stripe_metrics(rows: pd.DataFrame) -> dict:
    return {
        "totalRevenue": round_output(rows["amount"].sum()),
        "count": int(len(rows)),
    }


def stripe_breakdowns(rows: pd.DataFrame) -> dict:
    return {
        "byPlanType": count_revenue(rows, "planType"),
        "byCurrency": count_revenue(rows, "currency"),
        "byChannel": count_revenue(rows, "channel"),
        "byProduct": count_revenue(rows, "product"),
        "byCountry": count_revenue(rows, "geo"),
        "byBusinessUnit": count_revenue(rows, "businessUnit"),
        "segments": crunch_segments(rows),
    }


def weekly_stripe(charges: pd.DataFrame, weeks: list[str]) -> list[dict]:
    by_week = split_by(charges, "week")
    rows = []
    for week in weeks:
        bucket = _bucket(by_week, week, charges)
        rows.append({"week": week, **stripe_metrics(bucket), **stripe_breakdowns(bucket)})
    return rows


# --- GA4 ---

def ga4_metrics(forms: pd.DataFrame, purchases: pd.DataFrame) -> dict:
    return {
        "formSubmissions": int(forms["count"].sum()),
        "purchases": int(purchases["transactions"].sum()),
        "purchaseRevenue": round_output(purchases["revenue"].sum()),
    }


def ga4_breakdowns(forms: pd.DataFrame, purchases: pd.DataFrame) -> dict:
    purchases_by_channel = {}
    for channel, group in purchases.groupby("channel", sort=True):
        purchases_by_channel[str(channel)] = {
            "count": int(group["transactions"].sum()),
            "revenue": round_output(group["revenue"].sum()),
        }
    return {
        "formsByChannel": channel_counts(forms, "channel", "count"),
        "purchasesByChannel": purchases_by_channel,
    }


def weekly_ga4(forms: pd.DataFrame, purchases: pd.DataFrame, weeks: list[str]) -> list[dict]:
    forms_by_week = split_by(forms, "week")
    purchases_by_week = split_by(purchases, "week")
    rows = []
    for week in weeks:
        f = _bucket(forms_by_week, week, forms)
        p = _bucket(purchases_by_week, week, purchases)
        rows.append({"week": week, **ga4_metrics(f, p), **ga4_breakdowns(f, p)})
    return rows


# --- subscriptions ---

def subs_metrics(created: pd.DataFrame, canceled: pd.DataFrame) -> dict:
    new_mrr = float(created["monthlyAmount"].sum())
    churned_mrr = float(canceled["monthlyAmount"].sum())
    return {
        "newSubs": int(len(created)),
        "churnedSubs": int(len(canceled)),
        "newMrr": round_output(new_mrr),
        "churnedMrr": round_output(churned_mrr),
        "netMrr": round_output(new_mrr - churned_mrr),
        "monthly": int((created["planType"] == SUB_PLAN_MONTHLY).sum()),
        "yearly": int((created["planType"] == SUB_PLAN_YEARLY).sum()),
    }


def weekly_subs(subs: pd.DataFrame, weeks: list[str]) -> list[dict]:
    created_by_week = split_by(subs, "createdWeek")
    canceled_by_week = split_by(subs, "canceledWeek")
    return [
        {
            "week": week,
            **subs_metrics(
                _bucket(created_by_week, week, subs),
                _bucket(canceled_by_week, week, subs),
            ),
        }
        for week in weeks
    ]
