import pandas as pd
import pytest

from revdash.aggregate.buckets import collect_months, collect_weeks
from revdash.aggregate.metrics import pct, ratio, round_output
from revdash.aggregate.monthly import deal_aov, funnel_rates
from revdash.aggregate.segments import SEGMENT_KEYS, crunch_segments
from revdash.ingest.loader import load_dataset
from revdash.service import build_document, enrich_dataset


@pytest.fixture
def document(raw_dir):
    return build_document(enrich_dataset(load_dataset(raw_dir)), updated_at="2025-06-16T00:00:00Z")


def _by_week(rows: list[dict]) -> dict[str, dict]:
    return {row["week"]: row for row in rows}


# ---- rounding and ratios ----

class TestMetrics:
    def test_round_half_away_from_zero(self):
        assert round_output(2.675) == 2.68
        assert round_output(-2.675) == -2.68
        assert round_output(0.5, 0) == 1.0
        assert round_output(-0.5, 0) == -1.0

    def test_no_negative_zero(self):
        assert str(round_output(-0.001)) == "0.0"

    def test_non_finite_values_written_as_zero(self):
        assert round_output(float("nan")) == 0.0
        assert round_output(float("inf")) == 0.0
        assert round_output(float("-inf"), 0) == 0.0
        assert ratio(float("inf"), 2) == 0.0

    def test_zero_safe_ratios(self):
        assert pct(1, 3) == 33.3
        assert pct(5, 0) == 0.0
        assert ratio(135, 350) == 0.39
        assert ratio(10, 0) == 0.0

    def test_funnel_rates_without_mqls(self):
        rates = funnel_rates(leads=4, mqls=0, sqls=0, won=0)
        assert rates == {"leadToMql": 0.0, "mqlToSql": 0.0, "mqlToDeal": 0.0, "sqlToDeal": 0.0}

    def test_deal_aov(self):
        assert deal_aov(1000.0, 3) == 333
        assert deal_aov(500.0, 0) == 0


# ---- bucketing ----

class TestBuckets:
    def test_weeks_sorted_distinct_non_empty(self):
        weeks = collect_weeks(
            pd.Series(["2025-06-09", "", "2025-06-02"]),
            pd.Series(["2025-06-02", "2025-05-26"]),
        )
        assert weeks == ["2025-05-26", "2025-06-02", "2025-06-09"]

    def test_months(self):
        assert collect_months(["2025-05-26", "2025-06-02", "2025-06-09"]) == ["2025-05", "2025-06"]

    def test_document_weeks(self, document):
        weeks = [row["week"] for row in document.weekly_ads]
        assert weeks == ["2025-06-02", "2025-06-09"]
        for section in (document.weekly_funnel, document.weekly_stripe, document.weekly_ga4, document.weekly_subs):
            assert [row["week"] for row in section] == weeks
        assert document.date_range == {"start": "2025-06-02", "end": "2025-06-09"}


# ---- weekly sections ----

class TestWeeklyAds:
    def test_spend_split_by_user_type(self, document):
        week = _by_week(document.weekly_ads)["2025-06-02"]
        assert week["totalCost"] == 350.0
        assert week["mmCost"] == 200.0
        assert week["hmCost"] == 50.0
        assert week["notesCost"] == 100.0
        assert week["brandCost"] == 0.0
        assert week["clicks"] == 55

    def test_breakdowns_sum_to_total(self, document):
        week = _by_week(document.weekly_ads)["2025-06-02"]
        assert week["byCountry"]["NL"]["cost"] == 150.0
        assert week["byCountry"]["DE"]["cost"] == 200.0
        assert sum(v["cost"] for v in week["byCampaignType"].values()) == week["totalCost"]

    def test_week_without_spend_is_zero(self, document):
        week = _by_week(document.weekly_ads)["2025-06-09"]
        assert week["totalCost"] == 0.0
        assert week["byCountry"] == {}


class TestWeeklyFunnel:
    def test_created_and_won_buckets(self, document):
        weeks = _by_week(document.weekly_funnel)
        first = weeks["2025-06-02"]
        assert (first["leads"], first["mqls"], first["sqls"], first["won"]) == (3, 2, 1, 0)
        second = weeks["2025-06-09"]
        assert (second["leads"], second["won"], second["wonRevenue"]) == (0, 1, 1200.0)

    def test_channel_breakdown(self, document):
        first = _by_week(document.weekly_funnel)["2025-06-02"]
        assert first["byChannel"]["Organic"]["leads"] == 2
        assert first["byChannel"]["Direct"]["leads"] == 1
        second = _by_week(document.weekly_funnel)["2025-06-09"]
        assert second["byChannel"] == {"Direct": {"leads": 0, "sqls": 0, "won": 1, "wonRevenue": 1200.0}}
        assert second["byBusinessUnit"]["Media"]["won"] == 1


class TestWeeklyStripe:
    def test_totals_and_channels(self, document):
        weeks = _by_week(document.weekly_stripe)
        assert weeks["2025-06-02"]["totalRevenue"] == 25.0
        assert weeks["2025-06-02"]["byChannel"] == {"Paid Search Generic": {"count": 1, "revenue": 25.0}}
        second = weeks["2025-06-09"]
        assert second["totalRevenue"] == 110.0
        assert second["count"] == 2
        assert second["byChannel"]["Subscription"]["revenue"] == 100.0
        assert second["byChannel"]["Unknown"]["revenue"] == 10.0

    def test_breakdowns_sum_to_total(self, document):
        for week in document.weekly_stripe:
            for key in ("byPlanType", "byCurrency", "byChannel", "byProduct"):
                assert sum(v["revenue"] for v in week[key].values()) == pytest.approx(week["totalRevenue"])
                assert sum(v["count"] for v in week[key].values()) == week["count"]

    def test_segments(self, document):
        segments = _by_week(document.weekly_stripe)["2025-06-09"]["segments"]
        assert list(segments) == list(SEGMENT_KEYS)
        assert segments["all"] == {"count": 2, "revenue": 110.0}
        assert segments["subscription_creation"] == {"count": 1, "revenue": 100.0}
        assert segments["hm_subscription"] == {"count": 1, "revenue": 100.0}
        assert segments["mm_prepaid_topup"] == {"count": 1, "revenue": 10.0}
        assert segments["invoice"] == {"count": 0, "revenue": 0.0}


class TestWeeklyGa4AndSubs:
    def test_ga4(self, document):
        week = _by_week(document.weekly_ga4)["2025-06-02"]
        assert week["formSubmissions"] == 6
        assert week["purchases"] == 1
        assert week["purchaseRevenue"] == 25.0
        assert week["formsByChannel"] == {"Direct": 2, "Organic": 3, "Paid Search Generic": 1}
        assert week["purchasesByChannel"] == {"Paid Search Generic": {"count": 1, "revenue": 25.0}}

    def test_subs(self, document):
        weeks = _by_week(document.weekly_subs)
        first = weeks["2025-06-02"]
        assert (first["newSubs"], first["newMrr"], first["yearly"]) == (1, 10.0, 1)
        second = weeks["2025-06-09"]
        assert (second["newSubs"], second["churnedSubs"]) == (1, 1)
        assert second["newMrr"] == 30.0
        assert second["churnedMrr"] == 30.0
        assert second["netMrr"] == 0.0


# ---- monthly and KPIs ----

class TestMonthlyAndKpis:
    def test_single_month_rollup(self, document):
        assert len(document.monthly) == 1
        month = document.monthly[0]
        assert month["month"] == "2025-06"
        assert month["adsCost"] == 350.0
        assert month["leads"] == 3
        assert month["won"] == 1
        assert month["stripeRevenue"] == 135.0
        assert month["charges"] == 3
        assert month["roas"] == 0.39
        assert month["dealAOV"] == 1200
        assert month["newSubs"] == 2
        assert month["segments"]["all"]["revenue"] == 135.0

    def test_kpis(self, document):
        kpis = document.kpis
        assert kpis["totalLeads"] == 3
        assert kpis["totalMQLs"] == 2
        assert kpis["totalSQLs"] == 1
        assert kpis["totalDeals"] == 1
        assert kpis["totalDealRevenue"] == 1200.0
        assert kpis["leadToMql"] == 66.7
        assert kpis["mqlToSql"] == 50.0
        assert kpis["sqlToDeal"] == 100.0
        assert kpis["totalStripeRevenue"] == 135.0
        assert kpis["totalAdsCost"] == 350.0
        assert kpis["roas"] == 0.39
        assert kpis["mrr"] == 150.46
        assert kpis["netNewMrr"] == 10.0

    def test_fetched_snapshot_passes_through(self, document):
        assert document.sub_snapshot == {"mrr": 150.46, "activeSubscriptions": 3}

    def test_snapshot_derived_without_fetch(self, raw_dir, write_raw):
        write_raw(raw_dir, "stripe-subs.json", [
            {"id": "s1", "created": "2025-06-03", "interval": "year", "unitAmount": 120, "status": "active"},
            {"id": "s2", "created": "2025-06-03", "interval": "month", "unitAmount": 15, "status": "canceled",
             "canceledAt": "2025-06-04"},
        ])
        document = build_document(enrich_dataset(load_dataset(raw_dir)))
        assert document.sub_snapshot == {
            "mrr": 10.0, "activeSubscriptions": 1, "monthly": 0, "yearly": 1, "other": 0,
        }
        assert document.kpis["mrr"] == 10.0


class TestInputEdges:
    def test_numeric_form_id_joins_ga4(self, tmp_path, write_raw):
        write_raw(tmp_path, "hubspot-deals.json", [
            {"id": "a", "formId": 5, "createDate": "2025-06-03"},
            {"id": "b", "formId": None, "createDate": "2025-06-03"},
        ])
        write_raw(tmp_path, "ga4.json", {
            "formSubmissions": [{"week": "2025-06-02", "formId": 5, "channel": "Organic", "count": 3}],
            "purchases": [],
        })
        document = build_document(enrich_dataset(load_dataset(tmp_path)))
        assert [(d["formId"], d["channel"]) for d in document.deals] == [("5", "Organic"), ("", "Unknown")]

    def test_numeric_payment_identifier_joins_purchase(self, tmp_path, write_raw):
        write_raw(tmp_path, "stripe-charges.json", [
            {"id": "c1", "planType": "Prepaid", "paymentIdentifier": 901, "amount": 20, "week": "2025-06-02"},
            {"id": "c2", "planType": "Prepaid", "paymentIdentifier": None, "amount": 5, "week": "2025-06-02"},
        ])
        write_raw(tmp_path, "ga4.json", {
            "formSubmissions": [],
            "purchases": [{"week": "2025-06-02", "transactionId": 901, "channel": "Email",
                           "transactions": 1, "revenue": 20}],
        })
        document = build_document(enrich_dataset(load_dataset(tmp_path)))
        by_channel = document.weekly_stripe[0]["byChannel"]
        assert by_channel == {"Email": {"count": 1, "revenue": 20.0}, "Unknown": {"count": 1, "revenue": 5.0}}

    def test_non_finite_inputs_never_reach_the_document(self, tmp_path, write_raw):
        write_raw(tmp_path, "google-ads.json", '[{"week": "2025-06-02", "cost": 1e400, "userType": "Machine-Made"}]')
        write_raw(tmp_path, "stripe-subs.json", '{"snapshot": {"mrr": NaN, "arr": Infinity}, "subscriptions": []}')
        document = build_document(enrich_dataset(load_dataset(tmp_path)), updated_at="t")
        assert document.weekly_ads[0]["totalCost"] == 0.0
        assert document.kpis["mrr"] == 0.0
        assert document.sub_snapshot == {"mrr": 0.0, "arr": 0.0}
        text = document.to_json()
        assert "NaN" not in text
        assert "Infinity" not in text


class TestSegmentTable:
    def test_fixed_enumeration(self):
        assert len(SEGMENT_KEYS) == 20
        assert "hm_prepaid_job" not in SEGMENT_KEYS

    def test_empty_charges(self):
        empty = pd.DataFrame(columns=["product", "planType", "planSubtype", "amount"])
        result = crunch_segments(empty)
        assert all(v == {"count": 0, "revenue": 0.0} for v in result.values())
