from typing import Any

from fastapi import APIRouter, HTTPException

from madrid_map.app.errors import DatasetLoadFailed, LoadInProgress
from madrid_map.app.services.datasets import DatasetSchema, find_dataset
from madrid_map.app.services.map_session import MapSession


router = APIRouter(prefix="/datasets")


def _dataset_payload(schema: DatasetSchema) -> Any:
    return {
        "key": schema.key,
        "label": schema.label,
        "category": schema.category.value,
        "file": schema.filename,
        "fields": {name: list(headers) for name, headers in schema.fields},
    }


@router.get("/")
def list_datasets() -> Any:
    session = MapSession.get_instance()
    return {"datasets": [_dataset_payload(schema) for schema in session.datasets]}


@router.post("/load")
async def load_datasets() -> Any:
    """
    Fetch every configured dataset, rebuild the marker store, reset the
    filters to "all selected" and return the load report.
    """
    session = MapSession.get_instance()
    try:
        report = await session.load()
    except LoadInProgress as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except DatasetLoadFailed as exc:
        raise HTTPException(status_code=502, detail={"dataset": exc.dataset, "message": str(exc)})
    return {
        "report": report.to_dict(),
        "progress": session.progress.to_dict(),
        "statistics": session.statistics.to_dict(),
    }


@router.get("/progress")
def load_progress() -> Any:
    session = MapSession.get_instance()
    return {
        "loading": session.loading,
        "progress": session.progress.to_dict(),
        "report": session.report.to_dict() if session.report else None,
        "errors": session.recent_errors(),
    }


@router.get("/{key}")
def get_dataset(key: str) -> Any:
    session = MapSession.get_instance()
    schema = find_dataset(key, session.datasets)
    if schema is None:
        raise HTTPException(status_code=404, detail=f"Unknown dataset '{key}'")
    payload = _dataset_payload(schema)
    report = session.report
    if report is not None:
        payload["rows"] = report.rows.get(schema.key, 0)
        payload["features"] = report.features.get(schema.key, 0)
        payload["batches"] = list(report.batches.get(schema.key, []))
    return payload
