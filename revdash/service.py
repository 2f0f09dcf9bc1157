"""Aggregation pipeline: raw snapshots in, one dashboard document out.

    load → normalise → build lookups → enrich → bucket → aggregate → write

Everything before the final write is a pure transform of the loaded
dataset, so re-running with the same inputs reproduces the same document
apart from updatedAt.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from pathlib import Path

from revdash import config
from revdash.aggregate.buckets import collect_months, collect_weeks
from revdash.aggregate.kpis import compute_kpis, subscription_snapshot
from revdash.aggregate.monthly import monthly_rollup
from revdash.aggregate.weekly import (
    weekly_ads,
    weekly_funnel,
    weekly_ga4,
    weekly_stripe,
    weekly_subs,
)
from revdash.enrich.attribution import (
    add_dimensions,
    add_funnel_flags,
    attribute_charges,
    enrich_deals,
)
from revdash.enrich.lookups import build_form_channel_map, build_transaction_lookup
from revdash.ingest.loader import Dataset, load_dataset
from revdash.outputs.document import (
    DashboardDocument,
    date_range,
    deal_rows,
    ga4_form_rows,
    write_document,
)

logger = logging.getLogger(__name__)


@dataclass
class AggregationResult:
    document: DashboardDocument
    output_path: Path
    weeks: list[str]
    months: list[str]
    missing_sources: list[str] = field(default_factory=list)


def enrich_dataset(dataset: Dataset) -> Dataset:
    """Build both lookups from the full input, then enrich deals and charges."""
    form_to_channel = build_form_channel_map(dataset.form_submissions)
    transaction_lookup = build_transaction_lookup(dataset.purchases)
    logger.info(
        "Built lookups: %d form ids, %d transaction ids",
        len(form_to_channel), len(transaction_lookup),
    )

    enrich_deals(dataset.deals, form_to_channel)
    add_funnel_flags(dataset.deals)
    add_dimensions(dataset.deals, week_column="createWeek")

    attribute_charges(dataset.charges, transaction_lookup)
    add_dimensions(dataset.charges)

    add_dimensions(dataset.ads)
    return dataset


def build_document(dataset: Dataset, updated_at: str | None = None) -> DashboardDocument:
    """Aggregate an enriched dataset into the dashboard document."""
    ads = dataset.ads
    deals = dataset.deals
    charges = dataset.charges
    forms = dataset.form_submissions
    purchases = dataset.purchases
    subs = dataset.subscriptions

    weeks = collect_weeks(
        ads["week"],
        deals["createWeek"],
        deals["closeWeek"],
        charges["week"],
        forms["week"],
        purchases["week"],
        subs["createdWeek"],
        subs["canceledWeek"],
    )
    months = collect_months(weeks)
    logger.info("Aggregating %d weeks across %d months", len(weeks), len(months))

    sub_snapshot = subscription_snapshot(dataset.sub_snapshot, subs)
    updated_at = updated_at or datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z")

    return DashboardDocument(
        updated_at=updated_at,
        date_range=date_range(weeks),
        kpis=compute_kpis(ads, deals, charges, forms, purchases, subs, sub_snapshot),
        sub_snapshot=sub_snapshot,
        monthly=monthly_rollup(months, ads, deals, charges, forms, purchases, subs),
        weekly_ads=weekly_ads(ads, weeks),
        weekly_funnel=weekly_funnel(deals, weeks),
        weekly_stripe=weekly_stripe(charges, weeks),
        weekly_ga4=weekly_ga4(forms, purchases, weeks),
        weekly_subs=weekly_subs(subs, weeks),
        deals=deal_rows(deals),
        ga4_forms=ga4_form_rows(forms),
    )


def run_aggregation(
    raw_dir: str | Path | None = None,
    output_path: str | Path | None = None,
    updated_at: str | None = None,
) -> AggregationResult:
    """Full pipeline: load raw snapshots, aggregate, write the document.

    Raises LoadError if a snapshot is not valid JSON.
    """
    raw_dir = raw_dir or config.RAW_DIR
    output_path = Path(output_path or config.OUTPUT_PATH)

    dataset = enrich_dataset(load_dataset(raw_dir))
    document = build_document(dataset, updated_at=updated_at)
    write_document(document, output_path)

    start, end = document.date_range["start"], document.date_range["end"]
    logger.info(
        "%s written: %d months, %d weeks (%s to %s)",
        output_path.name, len(document.monthly), len(document.weekly_ads), start or "-", end or "-",
    )
    return AggregationResult(
        document=document,
        output_path=output_path,
        weeks=[row["week"] for row in document.weekly_ads],
        months=[row["month"] for row in document.monthly],
        missing_sources=dataset.missing_sources,
    )
