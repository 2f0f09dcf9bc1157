import pandera.pandas as pa
from pandera.pandas import Column, Check

# --- channels ---

CHANNEL_PAID_BRAND = "Paid Search Brand"
CHANNEL_PAID_GENERIC = "Paid Search Generic"
CHANNEL_ORGANIC = "Organic"
CHANNEL_DIRECT = "Direct"
CHANNEL_REFERRAL = "Referral"
CHANNEL_EMAIL = "Email"
CHANNEL_OTHER = "Other"

VALID_CHANNELS = (
    CHANNEL_PAID_BRAND,
    CHANNEL_PAID_GENERIC,
    CHANNEL_ORGANIC,
    CHANNEL_DIRECT,
    CHANNEL_REFERRAL,
    CHANNEL_EMAIL,
    CHANNEL_OTHER,
)

# Attribution sentinels (not produced by classify_channel)
UNKNOWN_CHANNEL = "Unknown"
SUBSCRIPTION_CHANNEL = "Subscription"

PAID_MEDIUM_TOKENS = ("cpc", "ppc", "paid")
ORGANIC_MEDIUMS = ("organic", "seo")
DIRECT_SOURCES = ("(direct)", "direct")

# --- geography ---

GEO_OTHER = "Other"

# Country code or English/native name → geo group
GEO_ALIASES = {
    "NL": "NL",
    "NETHERLANDS": "NL",
    "THE NETHERLANDS": "NL",
    "NEDERLAND": "NL",
    "DE": "DE",
    "GERMANY": "DE",
    "DEUTSCHLAND": "DE",
    "CH": "CH",
    "SWITZERLAND": "CH",
    "SCHWEIZ": "CH",
    "AT": "AT",
    "AUSTRIA": "AT",
    "ÖSTERREICH": "AT",
    "FR": "FR",
    "FRANCE": "FR",
    "IT": "IT",
    "ITALY": "IT",
    "ITALIA": "IT",
}

# --- products ---

PRODUCT_AMBERNOTES = "AmberNotes"
PRODUCT_HUMAN_MADE = "Human-Made"
PRODUCT_MACHINE_MADE = "Machine-Made"
PRODUCT_OTHER = "Other"

AMBERNOTES_KEYWORDS = ("ambernotes", "amber notes")
HUMAN_MADE_KEYWORDS = ("human", "professional")
MACHINE_MADE_KEYWORDS = ("machine", "asr", "automat")

USER_TYPE_BRAND = "Brand"
VALID_USER_TYPES = (PRODUCT_MACHINE_MADE, PRODUCT_HUMAN_MADE, PRODUCT_OTHER, USER_TYPE_BRAND)

# --- business units ---

BU_TRANSCRIPTION = "Transcription"
BU_MEDIA = "Media"
BU_INNOVATIONS = "Innovations"

MEDIA_PRODUCTS = frozenset({
    "subtitles",
    "translated subtitles",
    "translation",
    "dubbing",
    "voice-over",
    "audio description",
})

INNOVATION_PRODUCTS = frozenset({
    "ambernotes",
    "api",
    "live captioning",
    "summaries",
})

# --- campaign naming convention: "NL | Search | Transcription Light | Exact" ---

CAMPAIGN_DELIMITER = "|"
CAMPAIGN_BRAND_MARKER = "brand"
CAMPAIGN_TRAILING_SEPARATORS = " -_/|"
CAMPAIGN_PRODUCT_SUFFIXES = ("light", "heavy", "hq", "premium", "pro", "standard")

CAMPAIGN_TYPES = {
    "search": "Search",
    "sea": "Search",
    "pmax": "PMax",
    "performance max": "PMax",
    "display": "Display",
    "youtube": "Video",
    "video": "Video",
    "demand gen": "Demand Gen",
    "dgen": "Demand Gen",
}
CAMPAIGN_TYPE_OTHER = "Other"

# --- CRM lifecycle ---

LIFECYCLE_ORDER = ("subscriber", "lead", "MQL", "SQL", "opportunity", "customer")
DEFAULT_LIFECYCLE_STAGE = "lead"

# HubSpot lifecycle / deal stage ids → canonical lifecycle stage
STAGE_MAP = {
    "subscriber": "subscriber",
    "lead": "lead",
    "appointmentscheduled": "lead",
    "mql": "MQL",
    "marketingqualifiedlead": "MQL",
    "qualifiedtobuy": "MQL",
    "sql": "SQL",
    "salesqualifiedlead": "SQL",
    "presentationscheduled": "SQL",
    "decisionmakerboughtin": "SQL",
    "contractsent": "SQL",
    "opportunity": "opportunity",
    "customer": "customer",
    "closedwon": "customer",
    "closed-won": "customer",
    "closedlost": "SQL",
    "closed-lost": "SQL",
}

STATUS_OPEN = "Open"
STATUS_WON = "Won"
STATUS_LOST = "Lost"
VALID_DEAL_STATUSES = (STATUS_OPEN, STATUS_WON, STATUS_LOST)

WON_STATUS_ALIASES = frozenset({"won", "closedwon", "closed-won", "closed won"})
LOST_STATUS_ALIASES = frozenset({"lost", "closedlost", "closed-lost", "closed lost"})

# --- charges ---

PLAN_PREPAID = "Prepaid"
PLAN_SUBSCRIPTION = "Subscription"
PLAN_INVOICE = "Invoice"
VALID_PLAN_TYPES = (PLAN_PREPAID, PLAN_SUBSCRIPTION, PLAN_INVOICE)

SUBTYPE_JOB_CREATION = "Job Creation"
SUBTYPE_TOP_UP = "Top-Up"
SUBTYPE_CREATION = "Creation"
SUBTYPE_UPDATE = "Update"

# uploadBatchId written for credit top-ups; never a trackable purchase
TOP_UP_SENTINEL = "addCredit"

DEFAULT_CURRENCY = "EUR"

# --- subscriptions ---

SUB_PLAN_MONTHLY = "monthly"
SUB_PLAN_YEARLY = "yearly"
SUB_PLAN_OTHER = "other"
VALID_SUB_PLAN_TYPES = (SUB_PLAN_MONTHLY, SUB_PLAN_YEARLY, SUB_PLAN_OTHER)

# Billing periods per year, used for monthly-equivalent normalisation
PERIODS_PER_YEAR = {
    "year": 1,
    "month": 12,
    "week": 52,
    "day": 365,
}

ACTIVE_SUB_STATUSES = frozenset({"active", "trialing", "past_due"})

# --- canonical frame columns with zero-fill defaults ---

AD_SPEND_COLUMNS = {
    "week": "",
    "cost": 0.0,
    "clicks": 0,
    "conversions": 0.0,
    "country": "",
    "product": "",
    "userType": PRODUCT_OTHER,
    "campaignType": CAMPAIGN_TYPE_OTHER,
}

DEAL_COLUMNS = {
    "id": "",
    "createWeek": "",
    "closeWeek": "",
    "lifecycleStage": DEFAULT_LIFECYCLE_STAGE,
    "status": STATUS_OPEN,
    "amount": 0.0,
    "product": "",
    "country": "",
    "formId": "",
    "ownerName": "",
    "transcriptionStyle": "",
    "additionalOptions": "",
}

CHARGE_COLUMNS = {
    "id": "",
    "week": "",
    "amount": 0.0,
    "currency": DEFAULT_CURRENCY,
    "planType": PLAN_PREPAID,
    "planSubtype": "",
    "country": "",
    "product": "",
    "paymentIdentifier": "",
    "uploadBatchId": "",
}

FORM_SUBMISSION_COLUMNS = {
    "week": "",
    "formId": "",
    "channel": "",
    "country": "",
    "product": "",
    "count": 0,
}

PURCHASE_COLUMNS = {
    "week": "",
    "transactionId": "",
    "channel": "",
    "campaign": "",
    "transactions": 0,
    "revenue": 0.0,
}

SUBSCRIPTION_COLUMNS = {
    "id": "",
    "createdWeek": "",
    "canceledWeek": "",
    "planType": SUB_PLAN_OTHER,
    "monthlyAmount": 0.0,
    "status": "",
}

# --- pandera schemas ---

ad_spend_schema = pa.DataFrameSchema(
    columns={
        "week": Column(str, nullable=False),
        "cost": Column(float, coerce=True, nullable=False),
        "clicks": Column(int, coerce=True, nullable=False),
        "conversions": Column(float, coerce=True, nullable=False),
        "country": Column(str, nullable=False),
        "product": Column(str, nullable=False),
        "userType": Column(str, Check.isin(VALID_USER_TYPES), nullable=False),
        "campaignType": Column(str, nullable=False),
    },
    strict=False,
    coerce=True,
)

deal_schema = pa.DataFrameSchema(
    columns={
        "id": Column(str, nullable=False),
        "createWeek": Column(str, nullable=False),
        "closeWeek": Column(str, nullable=False),
        "lifecycleStage": Column(str, Check.isin(LIFECYCLE_ORDER), nullable=False),
        "status": Column(str, Check.isin(VALID_DEAL_STATUSES), nullable=False),
        "amount": Column(float, coerce=True, nullable=False),
        "product": Column(str, nullable=False),
        "country": Column(str, nullable=False),
        "formId": Column(str, nullable=False),
    },
    strict=False,
    coerce=True,
)

charge_schema = pa.DataFrameSchema(
    columns={
        "id": Column(str, nullable=False),
        "week": Column(str, nullable=False),
        "amount": Column(float, coerce=True, nullable=False),
        "currency": Column(str, nullable=False),
        "planType": Column(str, Check.isin(VALID_PLAN_TYPES), nullable=False),
        "planSubtype": Column(str, nullable=False),
        "country": Column(str, nullable=False),
        "product": Column(str, nullable=False),
        "paymentIdentifier": Column(str, nullable=False),
        "uploadBatchId": Column(str, nullable=False),
    },
    strict=False,
    coerce=True,
)

form_submission_schema = pa.DataFrameSchema(
    columns={
        "week": Column(str, nullable=False),
        "formId": Column(str, nullable=False),
        "channel": Column(str, nullable=False),
        "count": Column(int, coerce=True, nullable=False),
    },
    strict=False,
    coerce=True,
)

purchase_schema = pa.DataFrameSchema(
    columns={
        "week": Column(str, nullable=False),
        "transactionId": Column(str, nullable=False),
        "channel": Column(str, nullable=False),
        "campaign": Column(str, nullable=False),
        "transactions": Column(int, coerce=True, nullable=False),
        "revenue": Column(float, coerce=True, nullable=False),
    },
    strict=False,
    coerce=True,
)

subscription_schema = pa.DataFrameSchema(
    columns={
        "id": Column(str, nullable=False),
        "createdWeek": Column(str, nullable=False),
        "canceledWeek": Column(str, nullable=False),
        "planType": Column(str, Check.isin(VALID_SUB_PLAN_TYPES), nullable=False),
        "monthlyAmount": Column(float, coerce=True, nullable=False),
        "status": Column(str, nullable=False),
    },
    strict=False,
    coerce=True,
)
