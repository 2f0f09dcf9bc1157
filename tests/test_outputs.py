"""Tests for the dashboard document, its writer and the end-to-end pipeline."""
import json

import pytest

from revdash.cli import main
from revdash.ingest.loader import LoadError, load_dataset
from revdash.outputs.document import DashboardDocument, date_range, deal_rows, ga4_form_rows, write_document
from revdash.service import build_document, enrich_dataset, run_aggregation


TOP_LEVEL_KEYS = {"updatedAt", "dateRange", "kpis", "subSnapshot", "monthly", "weekly", "deals", "ga4Forms"}


# ---- helpers ----

def _empty_document(**overrides) -> DashboardDocument:
    fields = dict(
        updated_at="2025-06-16T00:00:00Z",
        date_range=date_range([]),
        kpis={},
        sub_snapshot={},
        monthly=[],
        weekly_ads=[],
        weekly_funnel=[],
        weekly_stripe=[],
        weekly_ga4=[],
        weekly_subs=[],
    )
    fields.update(overrides)
    return DashboardDocument(**fields)


# ---- document shape ----

class TestDocument:
    def test_keys(self):
        doc = _empty_document().to_dict()
        assert set(doc) == TOP_LEVEL_KEYS
        assert set(doc["weekly"]) == {"ads", "funnel", "stripe", "ga4", "subs"}
        assert doc["dateRange"] == {"start": "", "end": ""}

    def test_json_serialisable(self, raw_dir):
        document = build_document(enrich_dataset(load_dataset(raw_dir)), updated_at="2025-06-16T00:00:00Z")
        parsed = json.loads(document.to_json())
        assert parsed["updatedAt"] == "2025-06-16T00:00:00Z"
        assert parsed["kpis"]["totalLeads"] == 3

    def test_updated_at_defaults_to_utc_now(self, raw_dir):
        document = build_document(enrich_dataset(load_dataset(raw_dir)))
        assert document.updated_at.endswith("Z")

    def test_deal_rows(self, raw_dir):
        dataset = enrich_dataset(load_dataset(raw_dir))
        rows = deal_rows(dataset.deals)
        assert [r["id"] for r in rows] == ["d1", "d2", "d3"]
        won = rows[2]
        assert won["status"] == "Won"
        assert won["channel"] == "Direct"
        assert won["geo"] == "DE"
        assert won["businessUnit"] == "Media"
        assert won["closeWeek"] == "2025-06-09"
        assert won["month"] == "2025-06"
        assert won["additionalOptions"] == "rush; verbatim"

    def test_ga4_form_rows(self, raw_dir):
        dataset = load_dataset(raw_dir)
        rows = ga4_form_rows(dataset.form_submissions)
        assert len(rows) == 3
        assert sum(r["count"] for r in rows) == 6
        assert {r["formId"] for r in rows} == {"contact_1", "demo_2"}


# ---- writing ----

class TestWriteDocument:
    def test_writes_json_and_leaves_no_temp_file(self, tmp_path):
        path = tmp_path / "out" / "data.json"
        write_document(_empty_document(), path)
        assert json.loads(path.read_text(encoding="utf-8"))["updatedAt"] == "2025-06-16T00:00:00Z"
        assert [p.name for p in path.parent.iterdir()] == ["data.json"]

    def test_overwrites_previous_document(self, tmp_path):
        path = tmp_path / "data.json"
        write_document(_empty_document(updated_at="first"), path)
        write_document(_empty_document(updated_at="second"), path)
        assert json.loads(path.read_text(encoding="utf-8"))["updatedAt"] == "second"


# ---- end to end ----

class TestRunAggregation:
    def test_full_run(self, raw_dir, tmp_path):
        output = tmp_path / "data.json"
        result = run_aggregation(raw_dir=raw_dir, output_path=output, updated_at="2025-06-16T00:00:00Z")
        assert result.weeks == ["2025-06-02", "2025-06-09"]
        assert result.months == ["2025-06"]
        assert result.missing_sources == []
        written = json.loads(output.read_text(encoding="utf-8"))
        assert set(written) == TOP_LEVEL_KEYS
        assert written == result.document.to_dict()

    def test_rerun_is_deterministic(self, raw_dir, tmp_path):
        first = run_aggregation(raw_dir, tmp_path / "a.json", updated_at="t").document.to_json()
        second = run_aggregation(raw_dir, tmp_path / "b.json", updated_at="t").document.to_json()
        assert first == second

    def test_empty_raw_dir(self, tmp_path):
        raw = tmp_path / "raw"
        raw.mkdir()
        result = run_aggregation(raw, tmp_path / "data.json")
        assert result.weeks == []
        assert result.document.monthly == []
        assert result.document.kpis["totalLeads"] == 0
        assert result.document.kpis["roas"] == 0.0
        assert len(result.missing_sources) == 5

    def test_invalid_json_aborts_without_writing(self, raw_dir, tmp_path, write_raw):
        write_raw(raw_dir, "stripe-charges.json", "[{")
        output = tmp_path / "data.json"
        with pytest.raises(LoadError):
            run_aggregation(raw_dir, output)
        assert not output.exists()


class TestCli:
    def test_success_exit_code(self, raw_dir, tmp_path):
        output = tmp_path / "data.json"
        assert main(["--raw-dir", str(raw_dir), "--output", str(output)]) == 0
        assert output.exists()

    def test_invalid_json_exit_code(self, raw_dir, tmp_path, write_raw):
        write_raw(raw_dir, "ga4.json", "{")
        assert main(["--raw-dir", str(raw_dir), "--output", str(tmp_path / "data.json")]) == 1
