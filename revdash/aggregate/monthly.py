"""Monthly rollups.

A month is the YYYY-MM prefix of the week keys that fall in it, so each
record lands in the month of its week's Monday. Sums are taken over the raw
rows of those weeks, never over already-rounded weekly values.
"""
from __future__ import annotations

import pandas as pd

from revdash.aggregate.metrics import pct, ratio, round_output
from revdash.aggregate.weekly import (
    ads_metrics,
    funnel_metrics,
    ga4_metrics,
    stripe_breakdowns,
    stripe_metrics,
    subs_metrics,
)


def _by_month(df: pd.DataFrame, week_column: str) -> dict[str, pd.DataFrame]:
    months = df[week_column].astype(str).str[:7]
    return {str(month): group for month, group in df.groupby(months, sort=False)}


def funnel_rates(leads: int, mqls: int, sqls: int, won: int) -> dict:
    return {
        "leadToMql": pct(mqls, leads),
        "mqlToSql": pct(sqls, mqls),
        "mqlToDeal": pct(won, mqls),
        "sqlToDeal": pct(won, sqls),
    }


def deal_aov(won_revenue: float, won_count: int) -> int:
    """Average won-deal value, rounded to whole currency units; 0 without wins."""
    if won_count <= 0:
        return 0
    return int(round_output(won_revenue / won_count, 0))


def monthly_rollup(
    months: list[str],
    ads: pd.DataFrame,
    deals: pd.DataFrame,
    charges: pd.DataFrame,
    forms: pd.DataFrame,
    purchases: pd.DataFrame,
    subs: pd.DataFrame,
) -> list[dict]:
    ads_by_month = _by_month(ads, "week")
    created_by_month = _by_month(deals, "createWeek")
    won_by_month = _by_month(deals[deals["isWon"]], "winWeek")
    charges_by_month = _by_month(charges, "week")
    forms_by_month = _by_month(forms, "week")
    purchases_by_month = _by_month(purchases, "week")
    subs_created_by_month = _by_month(subs, "createdWeek")
    subs_canceled_by_month = _by_month(subs, "canceledWeek")

    def bucket(frames, month, template):
        return frames.get(month, template.iloc[0:0])

    rows = []
    for month in months:
        ad_rows = bucket(ads_by_month, month, ads)
        created = bucket(created_by_month, month, deals)
        won = bucket(won_by_month, month, deals)
        charge_rows = bucket(charges_by_month, month, charges)

        ads_m = ads_metrics(ad_rows)
        funnel = funnel_metrics(created, won)
        stripe = stripe_metrics(charge_rows)
        won_revenue = float(won["amount"].sum())

        rows.append({
            "month": month,
            "adsCost": ads_m["totalCost"],
            "mmCost": ads_m["mmCost"],
            "hmCost": ads_m["hmCost"],
            "notesCost": ads_m["notesCost"],
            "brandCost": ads_m["brandCost"],
            "clicks": ads_m["clicks"],
            "conversions": ads_m["conversions"],
            **funnel,
            **funnel_rates(funnel["leads"], funnel["mqls"], funnel["sqls"], funnel["won"]),
            "dealAOV": deal_aov(won_revenue, funnel["won"]),
            "stripeRevenue": stripe["totalRevenue"],
            "charges": stripe["count"],
            "roas": ratio(float(charge_rows["amount"].sum()), float(ad_rows["cost"].sum())),
            **ga4_metrics(
                bucket(forms_by_month, month, forms),
                bucket(purchases_by_month, month, purchases),
            ),
            **subs_metrics(
                bucket(subs_created_by_month, month, subs),
                bucket(subs_canceled_by_month, month, subs),
            ),
            **stripe_breakdowns(charge_rows),
        })
    return rows
