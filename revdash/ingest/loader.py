"""Load raw JSON snapshots and build canonical, schema-validated frames.

A missing snapshot file is an empty dataset, never an error. Invalid JSON is
the one input failure that aborts the run.
"""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import pandas as pd
from pandera.errors import SchemaErrors

from revdash import config
from revdash.ingest.legacy import (
    normalize_ad_spend,
    normalize_charges,
    normalize_deal,
    normalize_ga4_bundle,
    normalize_subscription_bundle,
)
from revdash.ingest.schema import (
    AD_SPEND_COLUMNS,
    CHARGE_COLUMNS,
    DEAL_COLUMNS,
    FORM_SUBMISSION_COLUMNS,
    PURCHASE_COLUMNS,
    SUBSCRIPTION_COLUMNS,
    ad_spend_schema,
    charge_schema,
    deal_schema,
    form_submission_schema,
    purchase_schema,
    subscription_schema,
)

logger = logging.getLogger(__name__)


class LoadError(Exception):
    def __init__(self, message: str, details: list[str] | None = None):
        self.message = message
        self.details = details or []
        super().__init__(message)


class ValidationError(Exception):
    def __init__(self, message: str, details: list[str] | None = None):
        self.message = message
        self.details = details or []
        super().__init__(message)


@dataclass
class Dataset:
    """Every source as a canonical frame, plus the optional MRR snapshot."""
    ads: pd.DataFrame
    deals: pd.DataFrame
    charges: pd.DataFrame
    form_submissions: pd.DataFrame
    purchases: pd.DataFrame
    subscriptions: pd.DataFrame
    sub_snapshot: dict | None = None
    missing_sources: list[str] = field(default_factory=list)


def load_raw(raw_dir: str | Path, filename: str, missing: list[str] | None = None):
    """Read one raw snapshot. Returns None when the file does not exist.

    Raises LoadError if the file cannot be read or is not valid JSON.
    """
    path = Path(raw_dir) / filename
    if not path.exists():
        logger.warning("Missing raw/%s, using empty dataset", filename)
        if missing is not None:
            missing.append(filename)
        return None
    try:
        with path.open(encoding="utf-8") as fh:
            return json.load(fh)
    except json.JSONDecodeError as exc:
        raise LoadError(
            f"Invalid JSON in {filename}",
            details=[f"{path}: line {exc.lineno} column {exc.colno}: {exc.msg}"],
        ) from exc
    except UnicodeDecodeError as exc:
        raise LoadError(
            f"Invalid JSON in {filename}",
            details=[f"{path}: not valid UTF-8 at byte {exc.start}"],
        ) from exc
    except OSError as exc:
        raise LoadError(f"Could not read {filename}", details=[str(exc)]) from exc


def as_records(value, source: str) -> list[dict]:
    """Coerce a loaded snapshot to a list of record dicts."""
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("Expected an array in %s snapshot, got %s; using empty dataset",
                       source, type(value).__name__)
        return []
    return [r for r in value if isinstance(r, dict)]


def validate_frame(df: pd.DataFrame, schema, source: str) -> pd.DataFrame:
    try:
        return schema.validate(df, lazy=True)
    except SchemaErrors as exc:
        details = []
        for _, row in exc.failure_cases.iterrows():
            details.append(
                f"Column '{row.get('column', '?')}': {row.get('check', '?')} "
                f"(index {row.get('index', '?')})"
            )
        raise ValidationError(f"Schema validation failed for {source}", details=details) from exc


def as_text(value, default: str = "") -> str:
    """Text form of a raw value; integral floats lose their ".0" so ids stay joinable."""
    if value is None:
        return default
    if isinstance(value, float):
        if not math.isfinite(value):
            return default
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def build_frame(records: list[dict], columns: dict, schema, source: str) -> pd.DataFrame:
    """Build a frame with every canonical column present and zero-filled.

    Values are kept as raw objects until each column is converted, so a
    numeric id next to a null is never widened to float. Text columns
    default to their empty value; numeric columns coerce unparseable and
    non-finite values to the default before schema validation.
    """
    df = pd.DataFrame(records, dtype=object) if records else pd.DataFrame(index=pd.RangeIndex(0))
    for col, default in columns.items():
        if col not in df.columns:
            df[col] = default
        elif isinstance(default, str):
            df[col] = [as_text(v, default) for v in df[col]]
        else:
            numbers = pd.to_numeric(df[col], errors="coerce").replace([np.inf, -np.inf], np.nan)
            df[col] = numbers.fillna(default)
    df = df[list(columns)].reset_index(drop=True)
    return validate_frame(df, schema, source)


def load_dataset(raw_dir: str | Path | None = None) -> Dataset:
    """Load and normalise all five raw snapshots from raw_dir."""
    raw_dir = raw_dir or config.RAW_DIR
    files = config.RAW_FILES
    missing: list[str] = []

    ads = [normalize_ad_spend(r) for r in as_records(load_raw(raw_dir, files["ads"], missing), "ads")]
    deals = [normalize_deal(r) for r in as_records(load_raw(raw_dir, files["deals"], missing), "deals")]
    charges = normalize_charges(as_records(load_raw(raw_dir, files["charges"], missing), "charges"))
    forms, purchases = normalize_ga4_bundle(load_raw(raw_dir, files["ga4"], missing))
    snapshot, subs = normalize_subscription_bundle(load_raw(raw_dir, files["subscriptions"], missing) or [])

    dataset = Dataset(
        ads=build_frame(ads, AD_SPEND_COLUMNS, ad_spend_schema, "ads"),
        deals=build_frame(deals, DEAL_COLUMNS, deal_schema, "deals"),
        charges=build_frame(charges, CHARGE_COLUMNS, charge_schema, "charges"),
        form_submissions=build_frame(forms, FORM_SUBMISSION_COLUMNS, form_submission_schema, "formSubmissions"),
        purchases=build_frame(purchases, PURCHASE_COLUMNS, purchase_schema, "purchases"),
        subscriptions=build_frame(subs, SUBSCRIPTION_COLUMNS, subscription_schema, "subscriptions"),
        sub_snapshot=snapshot,
        missing_sources=missing,
    )
    logger.info(
        "Loaded %d ad rows, %d deals, %d charges, %d form rows, %d purchases, %d subscriptions",
        len(dataset.ads), len(dataset.deals), len(dataset.charges),
        len(dataset.form_submissions), len(dataset.purchases), len(dataset.subscriptions),
    )
    return dataset
