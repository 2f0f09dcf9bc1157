"""Classifiers: map raw source strings and codes to canonical categories.

Every function is total. None, empty and unrecognised inputs fall through to
a defined default category instead of raising.
"""
from __future__ import annotations

import re

from revdash.ingest.schema import (
    AMBERNOTES_KEYWORDS,
    BU_INNOVATIONS,
    BU_MEDIA,
    BU_TRANSCRIPTION,
    CAMPAIGN_BRAND_MARKER,
    CAMPAIGN_DELIMITER,
    CAMPAIGN_PRODUCT_SUFFIXES,
    CAMPAIGN_TRAILING_SEPARATORS,
    CAMPAIGN_TYPE_OTHER,
    CAMPAIGN_TYPES,
    CHANNEL_DIRECT,
    CHANNEL_EMAIL,
    CHANNEL_ORGANIC,
    CHANNEL_OTHER,
    CHANNEL_PAID_BRAND,
    CHANNEL_PAID_GENERIC,
    CHANNEL_REFERRAL,
    DEFAULT_LIFECYCLE_STAGE,
    DIRECT_SOURCES,
    GEO_ALIASES,
    GEO_OTHER,
    HUMAN_MADE_KEYWORDS,
    INNOVATION_PRODUCTS,
    LIFECYCLE_ORDER,
    LOST_STATUS_ALIASES,
    MACHINE_MADE_KEYWORDS,
    MEDIA_PRODUCTS,
    ORGANIC_MEDIUMS,
    PAID_MEDIUM_TOKENS,
    PRODUCT_AMBERNOTES,
    PRODUCT_HUMAN_MADE,
    PRODUCT_MACHINE_MADE,
    PRODUCT_OTHER,
    STAGE_MAP,
    STATUS_LOST,
    STATUS_OPEN,
    STATUS_WON,
    USER_TYPE_BRAND,
    VALID_USER_TYPES,
    WON_STATUS_ALIASES,
)

_HM_TOKEN = re.compile(r"\bhm\b")
_MM_TOKEN = re.compile(r"\bmm\b")
_LIGHT_TOKEN = re.compile(r"\blight\b", re.IGNORECASE)
_HEAVY_TOKEN = re.compile(r"\bheavy\b", re.IGNORECASE)
_PRODUCT_SUFFIX = re.compile(
    r"(?:[\s\-_]+(?:" + "|".join(CAMPAIGN_PRODUCT_SUFFIXES) + r"))+[\s\-_]*$",
    re.IGNORECASE,
)


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def classify_channel(source, medium) -> str:
    """Classify a traffic source/medium pair.

    Priority: paid > organic > direct > referral > email > other.
    """
    src = _text(source).lower()
    med = _text(medium).lower()

    if any(token in med for token in PAID_MEDIUM_TOKENS):
        if "brand" in src or "brand" in med:
            return CHANNEL_PAID_BRAND
        return CHANNEL_PAID_GENERIC
    if med in ORGANIC_MEDIUMS:
        return CHANNEL_ORGANIC
    if src in DIRECT_SOURCES or (not src and not med):
        return CHANNEL_DIRECT
    if med == "referral":
        return CHANNEL_REFERRAL
    if med == "email":
        return CHANNEL_EMAIL
    return CHANNEL_OTHER


def classify_geo(country) -> str:
    """Map a country code or name to its geo group."""
    return GEO_ALIASES.get(_text(country).upper(), GEO_OTHER)


def get_product_type(campaign_name) -> str:
    """Product type from a campaign name. Specific categories are checked first."""
    lower = _text(campaign_name).lower()
    if any(k in lower for k in AMBERNOTES_KEYWORDS):
        return PRODUCT_AMBERNOTES
    if _HM_TOKEN.search(lower) or any(k in lower for k in HUMAN_MADE_KEYWORDS):
        return PRODUCT_HUMAN_MADE
    if _MM_TOKEN.search(lower) or any(k in lower for k in MACHINE_MADE_KEYWORDS):
        return PRODUCT_MACHINE_MADE
    return PRODUCT_OTHER


def get_business_unit(product) -> str:
    key = _text(product).lower()
    if key in MEDIA_PRODUCTS:
        return BU_MEDIA
    if key in INNOVATION_PRODUCTS:
        return BU_INNOVATIONS
    return BU_TRANSCRIPTION


def canonical_user_type(value) -> str:
    """Normalise a userType value, case-insensitively; unknown → Other."""
    lookup = {u.lower(): u for u in VALID_USER_TYPES}
    return lookup.get(_text(value).lower(), PRODUCT_OTHER)


def parse_campaign_name(name) -> dict:
    """Best-effort parse of the "CC | Type | Product Weight | Match" convention.

    A brand marker short-circuits the rest of the parse. Malformed names
    degrade to Other/empty values.
    """
    text = _text(name)
    country = text[:2].upper()

    if CAMPAIGN_BRAND_MARKER in text.lower():
        return {
            "country": country,
            "product": "",
            "userType": USER_TYPE_BRAND,
            "campaignType": USER_TYPE_BRAND,
        }

    if _LIGHT_TOKEN.search(text):
        user_type = PRODUCT_MACHINE_MADE
    elif _HEAVY_TOKEN.search(text):
        user_type = PRODUCT_HUMAN_MADE
    else:
        user_type = PRODUCT_OTHER

    parts = [p.strip() for p in text.split(CAMPAIGN_DELIMITER)]
    campaign_type = CAMPAIGN_TYPE_OTHER
    if len(parts) > 1:
        campaign_type = CAMPAIGN_TYPES.get(parts[1].lower(), CAMPAIGN_TYPE_OTHER)

    product = ""
    if len(parts) > 2:
        product = _PRODUCT_SUFFIX.sub("", parts[2]).rstrip(CAMPAIGN_TRAILING_SEPARATORS)

    return {
        "country": country,
        "product": product,
        "userType": user_type,
        "campaignType": campaign_type,
    }


def map_lifecycle_stage(stage) -> str:
    """Map a CRM stage id or label to a canonical lifecycle stage.

    Unrecognised stages count as plain leads.
    """
    raw = _text(stage)
    if raw in LIFECYCLE_ORDER:
        return raw
    return STAGE_MAP.get(raw.lower().replace(" ", ""), DEFAULT_LIFECYCLE_STAGE)


def lifecycle_rank(stage) -> int:
    """Position of a stage in the funnel; unknown stages rank as leads."""
    canonical = map_lifecycle_stage(stage)
    return LIFECYCLE_ORDER.index(canonical)


def classify_deal_status(status) -> str:
    key = _text(status).lower()
    if key in WON_STATUS_ALIASES:
        return STATUS_WON
    if key in LOST_STATUS_ALIASES:
        return STATUS_LOST
    return STATUS_OPEN
