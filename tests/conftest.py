import json

import pytest


# 2025-06-02 and 2025-06-09 are Mondays; every record below falls in one of those two weeks.

SAMPLE_ADS = [
    {"week": "2025-06-02", "cost": 100.0, "clicks": 10, "conversions": 1.0,
     "userType": "Other", "product": "AmberNotes", "country": "NL", "campaignType": "Search"},
    {"week": "2025-06-03", "cost": 200.0, "clicks": 40, "conversions": 4.0,
     "userType": "Machine-Made", "product": "Transcription", "country": "DE", "campaignType": "Search"},
    {"week": "2025-06-04", "cost": 50.0, "clicks": 5, "conversions": 0.5,
     "userType": "Human-Made", "product": "Transcription", "country": "NL", "campaignType": "PMax"},
]

SAMPLE_DEALS = [
    {"id": "d1", "createDate": "2025-06-03", "stage": "lead", "status": "open",
     "formId": "contact_1", "product": "Transcription", "country": "NL"},
    {"id": "d2", "createDate": "2025-06-03", "stage": "marketingqualifiedlead",
     "formId": "contact_1", "product": "Transcription", "country": "NL"},
    {"id": "d3", "createDate": "2025-06-04", "stage": "closedwon", "status": "closedwon",
     "closeDate": "2025-06-10", "amount": 1200, "formId": "demo_2", "product": "Subtitles",
     "country": "DE", "additionalOptions": ["rush", "verbatim"]},
]

SAMPLE_GA4 = {
    "formSubmissions": [
        {"week": "2025-06-02", "formId": "contact_1", "channel": "Organic", "count": 3},
        {"week": "2025-06-02", "formId": "contact_1", "channel": "Paid Search Generic", "count": 1},
        {"week": "2025-06-02", "formId": "demo_2", "channel": "Direct", "count": 2},
    ],
    "purchases": [
        {"week": "2025-06-02", "transactionId": "pi_1", "channel": "Paid Search Generic",
         "campaign": "NL | Search | Transcription Light", "transactions": 1, "revenue": 25.0},
    ],
}

SAMPLE_CHARGES = [
    {"id": "ch_1", "week": "2025-06-02", "amount": 25.0, "currency": "eur", "planType": "Prepaid",
     "planSubtype": "Job Creation", "product": "Machine-Made", "country": "NL", "paymentIdentifier": "pi_1"},
    # legacy shape, created 2025-06-09T00:00:00Z
    {"id": "ch_2", "amount": 100.0, "created": 1749427200, "description": "Subscription creation",
     "metadata": {"P1_DE_1": "1", "jobType": "perfect"}},
    {"id": "ch_3", "week": "2025-06-10", "amount": 10.0, "planType": "Prepaid", "planSubtype": "Top-Up",
     "uploadBatchId": "addCredit", "product": "Machine-Made", "country": "NL"},
]

SAMPLE_SUBS = {
    "snapshot": {"mrr": 150.456, "activeSubscriptions": 3},
    "subscriptions": [
        {"id": "sub_1", "created": "2025-06-05", "interval": "year", "unitAmount": 120, "status": "active"},
        {"id": "sub_2", "created": "2025-06-11", "interval": "month", "unitAmount": 30,
         "status": "canceled", "canceledAt": "2025-06-12"},
    ],
}


def _write(directory, name, payload):
    path = directory / name
    if isinstance(payload, str):
        path.write_text(payload, encoding="utf-8")
    else:
        path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def raw_dir(tmp_path):
    """A raw snapshot directory holding the full sample dataset."""
    directory = tmp_path / "raw"
    directory.mkdir()
    _write(directory, "google-ads.json", SAMPLE_ADS)
    _write(directory, "hubspot-deals.json", SAMPLE_DEALS)
    _write(directory, "ga4.json", SAMPLE_GA4)
    _write(directory, "stripe-charges.json", SAMPLE_CHARGES)
    _write(directory, "stripe-subs.json", SAMPLE_SUBS)
    return directory


@pytest.fixture
def write_raw():
    return _write
