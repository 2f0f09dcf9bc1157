"""The dashboard document: the single JSON snapshot the dashboard reads.

Field names and nesting are the compatibility contract with the dashboard
and must not change.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from revdash.aggregate.metrics import round_output

logger = logging.getLogger(__name__)


@dataclass
class DashboardDocument:
    updated_at: str
    date_range: dict
    kpis: dict
    sub_snapshot: dict
    monthly: list[dict]
    weekly_ads: list[dict]
    weekly_funnel: list[dict]
    weekly_stripe: list[dict]
    weekly_ga4: list[dict]
    weekly_subs: list[dict]
    deals: list[dict] = field(default_factory=list)
    ga4_forms: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "updatedAt": self.updated_at,
            "dateRange": self.date_range,
            "kpis": self.kpis,
            "subSnapshot": self.sub_snapshot,
            "monthly": self.monthly,
            "weekly": {
                "ads": self.weekly_ads,
                "funnel": self.weekly_funnel,
                "stripe": self.weekly_stripe,
                "ga4": self.weekly_ga4,
                "subs": self.weekly_subs,
            },
            "deals": self.deals,
            "ga4Forms": self.ga4_forms,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def date_range(weeks: list[str]) -> dict:
    return {"start": weeks[0] if weeks else "", "end": weeks[-1] if weeks else ""}


def deal_rows(deals: pd.DataFrame) -> list[dict]:
    """One flat row per deal for client-side filtering, ordered by create week then id."""
    ordered = deals.sort_values(["createWeek", "id"], kind="stable")
    rows = []
    for d in ordered.itertuples(index=False):
        rows.append({
            "id": d.id,
            "week": d.createWeek,
            "month": d.createWeek[:7],
            "closeWeek": d.closeWeek,
            "stage": d.lifecycleStage,
            "status": d.status,
            "amount": round_output(d.amount),
            "product": d.product,
            "businessUnit": d.businessUnit,
            "country": d.country,
            "geo": d.geo,
            "channel": d.channel,
            "formId": d.formId,
            "ownerName": d.ownerName,
            "transcriptionStyle": d.transcriptionStyle,
            "additionalOptions": d.additionalOptions,
        })
    return rows


def ga4_form_rows(forms: pd.DataFrame) -> list[dict]:
    """Form submission counts summed per week, form, channel, country and product."""
    if forms.empty:
        return []
    keys = ["week", "formId", "channel", "country", "product"]
    summed = forms.groupby(keys, sort=True)["count"].sum().reset_index()
    rows = []
    for record in summed.to_dict("records"):
        record["count"] = int(record["count"])
        rows.append({k: record[k] for k in keys + ["count"]})
    return rows


def write_document(document: DashboardDocument, path: str | Path) -> Path:
    """Write the document atomically: a partial file is never left at path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(document.to_json())
            fh.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("Wrote %s", path)
    return path
