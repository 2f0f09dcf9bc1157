"""Resolve old and new snapshot shapes into one canonical record shape.

Charges arrive either flat (already carrying planType) or in the legacy shape
with a nested Stripe metadata blob. Subscriptions, ad spend rows, deals and the
GA4 bundle each have an older fetcher shape too. Every normaliser returns a
derived copy and is idempotent, so downstream aggregation never has to
detect shapes.
"""
from __future__ import annotations

import logging
import re

from revdash.aggregate.buckets import week_start
from revdash.ingest.classifiers import (
    canonical_user_type,
    classify_channel,
    classify_deal_status,
    get_product_type,
    map_lifecycle_stage,
    parse_campaign_name,
)
from revdash.ingest.schema import (
    DEFAULT_CURRENCY,
    PERIODS_PER_YEAR,
    PLAN_INVOICE,
    PLAN_PREPAID,
    PLAN_SUBSCRIPTION,
    PRODUCT_AMBERNOTES,
    PRODUCT_HUMAN_MADE,
    PRODUCT_MACHINE_MADE,
    PRODUCT_OTHER,
    SUB_PLAN_MONTHLY,
    SUB_PLAN_OTHER,
    SUB_PLAN_YEARLY,
    SUBTYPE_CREATION,
    SUBTYPE_JOB_CREATION,
    SUBTYPE_TOP_UP,
    SUBTYPE_UPDATE,
    TOP_UP_SENTINEL,
    VALID_PLAN_TYPES,
)

logger = logging.getLogger(__name__)

# Stripe metadata key carrying the customer country, e.g. "P1_NL_3"
COUNTRY_METADATA_KEY = re.compile(r"^P1_[A-Z]{2}_\d+$")
SUBSCRIPTION_DESCRIPTION = re.compile(r"subscription", re.IGNORECASE)
INVOICE_DESCRIPTION = re.compile(r"invoice", re.IGNORECASE)
CREATION_DESCRIPTION = re.compile(r"creation", re.IGNORECASE)

HUMAN_MADE_JOB_TYPE = "perfect"


def _str(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _first(*values) -> str:
    """First non-empty value as a string."""
    for value in values:
        text = _str(value)
        if text:
            return text
    return ""


def _number(value, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# --- charges ---

def detect_charge_shape(record: dict) -> str:
    """Return "legacy" for metadata-blob charges without planType, else "flat"."""
    if "planType" not in record and "metadata" in record:
        return "legacy"
    return "flat"


def canonical_plan_type(value) -> str:
    lookup = {p.lower(): p for p in VALID_PLAN_TYPES}
    return lookup.get(_str(value).lower(), PLAN_PREPAID)


def _legacy_plan(description: str, upload_batch_id: str) -> tuple[str, str]:
    if SUBSCRIPTION_DESCRIPTION.search(description):
        subtype = SUBTYPE_CREATION if CREATION_DESCRIPTION.search(description) else SUBTYPE_UPDATE
        return PLAN_SUBSCRIPTION, subtype
    if INVOICE_DESCRIPTION.search(description):
        return PLAN_INVOICE, ""
    subtype = SUBTYPE_TOP_UP if upload_batch_id == TOP_UP_SENTINEL else SUBTYPE_JOB_CREATION
    return PLAN_PREPAID, subtype


def _normalize_legacy_charge(record: dict) -> dict:
    meta = record.get("metadata")
    if not isinstance(meta, dict):
        meta = {}
    description = _str(record.get("description"))

    country_key = next((k for k in sorted(meta) if COUNTRY_METADATA_KEY.match(str(k))), None)
    country = str(country_key).split("_")[1] if country_key else ""

    job_type = _str(meta.get("jobType"))
    product = PRODUCT_HUMAN_MADE if job_type == HUMAN_MADE_JOB_TYPE else PRODUCT_MACHINE_MADE

    upload_batch_id = _first(record.get("uploadBatchId"), meta.get("uploadBatchId"))
    payment_identifier = _first(record.get("paymentIdentifier"), meta.get("paymentIdentifier"))
    plan_type, plan_subtype = _legacy_plan(description, upload_batch_id)

    out = dict(record)
    out.update({
        "week": week_start(record.get("week") or record.get("date") or record.get("created")),
        "currency": (_first(record.get("currency")) or DEFAULT_CURRENCY).upper(),
        "country": _first(record.get("country")) or country,
        "product": _first(record.get("product")) or product,
        "planType": plan_type,
        "planSubtype": plan_subtype,
        "paymentIdentifier": payment_identifier,
        "uploadBatchId": upload_batch_id,
        "customerId": _first(record.get("customerId"), record.get("customer")),
    })
    return out


def normalize_charge(record: dict) -> dict:
    """Canonical charge record; a no-op on already-normalised records."""
    if detect_charge_shape(record) == "legacy":
        return _normalize_legacy_charge(record)

    out = dict(record)
    out["planType"] = canonical_plan_type(record.get("planType"))
    out["planSubtype"] = _str(record.get("planSubtype"))
    out["country"] = _str(record.get("country"))
    out["currency"] = (_str(record.get("currency")) or DEFAULT_CURRENCY).upper()
    out["week"] = week_start(record.get("week") or record.get("date") or record.get("created"))
    return out


def normalize_charges(records: list[dict]) -> list[dict]:
    legacy = sum(1 for r in records if detect_charge_shape(r) == "legacy")
    if legacy:
        logger.info("Migrating %d legacy-shape charges", legacy)
    return [normalize_charge(r) for r in records]


# --- subscriptions ---

def monthly_amount(unit_amount, interval, interval_count=1) -> float:
    """Monthly-equivalent amount of a recurring price.

    Unknown intervals contribute nothing to MRR.
    """
    periods = PERIODS_PER_YEAR.get(_str(interval).lower())
    if periods is None:
        return 0.0
    count = _number(interval_count, 1.0)
    if count <= 0:
        count = 1.0
    return _number(unit_amount) * periods / 12 / count


def subscription_plan_type(interval) -> str:
    key = _str(interval).lower()
    if key == "year":
        return SUB_PLAN_YEARLY
    if key == "month":
        return SUB_PLAN_MONTHLY
    return SUB_PLAN_OTHER


def normalize_subscription(record: dict) -> dict:
    out = dict(record)
    interval = record.get("interval")
    interval_count = record.get("intervalCount", 1)
    unit_amount = record.get("unitAmount", record.get("amount"))

    if record.get("monthlyAmount") is None:
        out["monthlyAmount"] = monthly_amount(unit_amount, interval, interval_count)
    if _str(record.get("planType")).lower() in (SUB_PLAN_MONTHLY, SUB_PLAN_YEARLY, SUB_PLAN_OTHER):
        out["planType"] = _str(record.get("planType")).lower()
    else:
        out["planType"] = subscription_plan_type(interval)

    out["createdWeek"] = week_start(
        record.get("createdWeek") or record.get("week") or record.get("created") or record.get("date")
    )
    out["canceledWeek"] = week_start(
        record.get("canceledWeek") or record.get("canceledAt") or record.get("endedAt")
    )
    out["status"] = _str(record.get("status")).lower()
    return out


def normalize_subscription_bundle(value) -> tuple[dict | None, list[dict]]:
    """Split a subscriptions snapshot into (snapshot, records).

    The legacy shape is a bare array with no MRR snapshot.
    """
    if isinstance(value, list):
        records, snapshot = value, None
    elif isinstance(value, dict):
        records = value.get("subscriptions") or []
        snapshot = value.get("snapshot")
        if not isinstance(snapshot, dict):
            snapshot = None
    else:
        logger.warning("Unrecognised subscriptions snapshot shape %s, using empty dataset", type(value).__name__)
        return None, []
    return snapshot, [normalize_subscription(r) for r in records if isinstance(r, dict)]


# --- ad spend ---

def normalize_ad_spend(record: dict) -> dict:
    """Complete an ad spend row from its campaign name or legacy productType."""
    out = dict(record)
    if "userType" not in record:
        if _str(record.get("campaign")):
            parsed = parse_campaign_name(record["campaign"])
            for key, value in parsed.items():
                if not _str(out.get(key)):
                    out[key] = value
        elif "productType" in record:
            product_type = _str(record["productType"])
            if product_type == PRODUCT_AMBERNOTES:
                out["userType"] = PRODUCT_OTHER
                out.setdefault("product", PRODUCT_AMBERNOTES)
            else:
                out["userType"] = product_type
    out["userType"] = canonical_user_type(out.get("userType"))
    if not _str(out.get("product")) and _str(record.get("campaign")):
        if get_product_type(record["campaign"]) == PRODUCT_AMBERNOTES:
            out["product"] = PRODUCT_AMBERNOTES
    out["week"] = week_start(record.get("week") or record.get("date"))
    return out


# --- CRM deals ---

def normalize_deal(record: dict) -> dict:
    out = dict(record)
    stage = record.get("lifecycleStage") or record.get("stage")
    out["lifecycleStage"] = map_lifecycle_stage(stage)
    out["status"] = classify_deal_status(record.get("status") or stage)
    out["createWeek"] = week_start(
        record.get("createWeek") or record.get("createDate") or record.get("week")
    )
    out["closeWeek"] = week_start(record.get("closeWeek") or record.get("closeDate"))
    options = record.get("additionalOptions")
    if isinstance(options, (list, tuple)):
        out["additionalOptions"] = "; ".join(_str(o) for o in options if _str(o))
    return out


# --- GA4 ---

def _ga4_channel(record: dict) -> str:
    channel = _str(record.get("channel"))
    if channel:
        return channel
    if "source" in record or "medium" in record:
        return classify_channel(record.get("source"), record.get("medium"))
    return ""


def normalize_form_submission(record: dict) -> dict:
    out = dict(record)
    out["channel"] = _ga4_channel(record)
    if not _str(record.get("formId")) and _str(record.get("formName")) and _str(record.get("formIdLong")):
        out["formId"] = f"{_str(record['formName'])}_{_str(record['formIdLong'])}"
    out["week"] = week_start(record.get("week"))
    return out


def normalize_purchase(record: dict) -> dict:
    out = dict(record)
    out["channel"] = _ga4_channel(record)
    if "transactions" not in record and "count" in record:
        out["transactions"] = record["count"]
    if "revenue" not in record and "value" in record:
        out["revenue"] = record["value"]
    out["week"] = week_start(record.get("week"))
    return out


def normalize_ga4_bundle(value) -> tuple[list[dict], list[dict]]:
    """Return (form_submissions, purchases); an array snapshot is an empty bundle."""
    if not isinstance(value, dict):
        if value:
            logger.warning("GA4 snapshot is not a {formSubmissions, purchases} object, using empty bundle")
        return [], []
    forms = [normalize_form_submission(r) for r in value.get("formSubmissions") or [] if isinstance(r, dict)]
    purchases = [normalize_purchase(r) for r in value.get("purchases") or [] if isinstance(r, dict)]
    return forms, purchases
