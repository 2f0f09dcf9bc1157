import json
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from revdash import config
from revdash.ingest.loader import LoadError, ValidationError
from revdash.service import run_aggregation

app = FastAPI(title="RevDash", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class AggregateRequest(BaseModel):
    # Subdirectory of the configured raw directory; the output path is fixed by config.
    raw_dir: str | None = None


def resolve_raw_dir(raw_dir: str | None) -> Path:
    """Resolve a requested snapshot directory inside config.RAW_DIR."""
    root = Path(config.RAW_DIR).resolve()
    if not raw_dir:
        return root
    candidate = (root / raw_dir).resolve()
    if not candidate.is_relative_to(root):
        raise HTTPException(status_code=400, detail="raw_dir must stay inside the configured raw directory.")
    return candidate


@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.post("/api/aggregate")
def aggregate(req: AggregateRequest | None = None):
    """Re-run the aggregation and return a summary of the written document."""
    req = req or AggregateRequest()
    raw_dir = resolve_raw_dir(req.raw_dir)
    try:
        result = run_aggregation(raw_dir=raw_dir, output_path=config.OUTPUT_PATH)
    except (LoadError, ValidationError) as exc:
        raise HTTPException(
            status_code=422,
            detail={"message": exc.message, "errors": exc.details},
        )

    document = result.document
    return {
        "updated_at": document.updated_at,
        "date_range": document.date_range,
        "weeks": len(result.weeks),
        "months": len(result.months),
        "missing_sources": result.missing_sources,
        "kpis": document.kpis,
    }


@app.get("/api/data")
def get_data():
    """Serve the dashboard document written by the last aggregation."""
    path = Path(config.OUTPUT_PATH)
    if not path.exists():
        raise HTTPException(status_code=404, detail="Dashboard document not found. Run an aggregation first.")
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)
