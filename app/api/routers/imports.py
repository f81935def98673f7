from typing import List

from fastapi import APIRouter, HTTPException, Query

from app.models.import_run import ImportRunCreate, ImportRunOut
from app.models.providers import ImportProviderDefinition
from app.services.importing.errors import UnknownProviderError
from app.services.importing.providers import IMPORT_PROVIDERS, parse_provider_id
from app.services.importing.store import GraphImportStore, ImportStore

router = APIRouter(tags=["imports"])

_store = None


def get_import_store() -> ImportStore:
    global _store
    if _store is None:
        _store = GraphImportStore()
    return _store


@router.get("/imports/providers", response_model=List[ImportProviderDefinition])
def api_list_providers():
    return IMPORT_PROVIDERS


@router.post("/imports", response_model=ImportRunOut, status_code=201)
def api_create_import(payload: ImportRunCreate):
    """Enqueue a pending run; a worker picks it up on its next tick."""
    try:
        provider = parse_provider_id(payload.provider)
    except UnknownProviderError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if payload.dataset is None and payload.mapping is None:
        raise HTTPException(status_code=400, detail="Provide either a dataset or a mapping.")
    data = payload.to_input()
    data["provider"] = provider.value
    run = get_import_store().create_run(provider.value, data, triggered_by=payload.triggered_by)
    return ImportRunOut.from_run(run)


@router.get("/imports", response_model=List[ImportRunOut])
def api_list_imports(limit: int = Query(20, ge=1, le=200)):
    return [ImportRunOut.from_run(run) for run in get_import_store().list_runs(limit)]


@router.get("/imports/{run_id}", response_model=ImportRunOut)
def api_get_import(run_id: int):
    run = get_import_store().get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Import run {run_id} not found")
    return ImportRunOut.from_run(run)
