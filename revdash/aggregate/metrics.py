"""Output-boundary rounding, zero-safe ratios and per-dimension breakdowns.

Accumulation always runs on unrounded values; round_output is applied only
when a value is written into the output document.
"""
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal

import pandas as pd


def round_output(value, decimals: int = 2) -> float:
    """Round half away from zero at a fixed number of decimals.

    NaN and infinities are written as 0 so the document stays valid JSON.
    """
    value = float(value)
    if not math.isfinite(value):
        return 0.0
    quantum = Decimal(1).scaleb(-decimals)
    rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return float(rounded) + 0.0  # normalise -0.0


def pct(numerator, denominator) -> float:
    """numerator/denominator as a percentage to 1 decimal; 0 when denominator is 0."""
    if not denominator:
        return 0.0
    return round_output(numerator / denominator * 100, 1)


def ratio(numerator, denominator, decimals: int = 2) -> float:
    if not denominator:
        return 0.0
    return round_output(numerator / denominator, decimals)


def count_revenue(frame: pd.DataFrame, key: str, value: str = "amount") -> dict[str, dict]:
    """{group: {count, revenue}} for each value of key, sorted by key."""
    result = {}
    for group_key, group in frame.groupby(key, sort=True):
        result[str(group_key)] = {
            "count": int(len(group)),
            "revenue": round_output(group[value].sum()),
        }
    return result


def spend_breakdown(frame: pd.DataFrame, key: str) -> dict[str, dict]:
    """{group: {cost, clicks, conversions}} for ad spend rows."""
    result = {}
    for group_key, group in frame.groupby(key, sort=True):
        result[str(group_key)] = {
            "cost": round_output(group["cost"].sum()),
            "clicks": int(group["clicks"].sum()),
            "conversions": round_output(group["conversions"].sum()),
        }
    return result


def funnel_breakdown(created: pd.DataFrame, won: pd.DataFrame, key: str) -> dict[str, dict]:
    """{group: {leads, sqls, won, wonRevenue}}.

    Leads and SQLs come from deals created in the bucket, wins from deals
    won in the bucket, so a group may appear in only one of the two.
    """
    leads: dict[str, list] = {}
    for group_key, group in created.groupby(key, sort=False):
        leads[str(group_key)] = [int(len(group)), int(group["isSql"].sum())]
    wins: dict[str, list] = {}
    for group_key, group in won.groupby(key, sort=False):
        wins[str(group_key)] = [int(len(group)), float(group["amount"].sum())]

    result = {}
    for group_key in sorted(set(leads) | set(wins)):
        lead_count, sql_count = leads.get(group_key, [0, 0])
        won_count, won_revenue = wins.get(group_key, [0, 0.0])
        result[group_key] = {
            "leads": lead_count,
            "sqls": sql_count,
            "won": won_count,
            "wonRevenue": round_output(won_revenue),
        }
    return result


def channel_counts(frame: pd.DataFrame, key: str, value: str) -> dict[str, int]:
    return {str(k): int(g[value].sum()) for k, g in frame.groupby(key, sort=True)}
