"""
Import endpoints: column schemas, templates, dry-run validation and import.
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile

from rendezvous.api.dependencies import get_store, load_grid, read_upload, resolve_entity_type
from rendezvous.api.schemas.shared import (
    ColumnsResponse,
    ImportColumnInfo,
    ImportResultResponse,
    ValidateResponse,
)
from rendezvous.db.store import EntityStore
from rendezvous.domain.imports.columns import get_columns
from rendezvous.domain.imports.importer import import_data, validate_data
from rendezvous.domain.imports.mapper import ImportMapping, detect_import_mapping
from rendezvous.domain.imports.templates import XLSX_MEDIA_TYPE, generate_template, template_filename

router = APIRouter(prefix="/imports", tags=["imports"])

logger = logging.getLogger(__name__)


def _parse_mapping(mapping_json: Optional[str], grid, entity_type: str) -> ImportMapping:
    """Use the client-edited mapping when given, else auto-detect it."""
    if not mapping_json:
        return detect_import_mapping(grid, get_columns(entity_type))

    try:
        mapping = json.loads(mapping_json)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"Mapping JSON invalide: {exc.msg}") from exc

    if not isinstance(mapping, dict) or not all(
        isinstance(key, str) and (value is None or isinstance(value, str)) for key, value in mapping.items()
    ):
        raise HTTPException(status_code=400, detail="Le mapping doit associer chaque champ à un nom de colonne")

    return {key: value for key, value in mapping.items() if value}


@router.get("/{entity_type}/columns", response_model=ColumnsResponse)
async def list_columns(entity_type: str = Depends(resolve_entity_type)):
    columns = [
        ImportColumnInfo(
            key=column.key,
            label=column.label,
            required=column.required,
            type=column.type,
            example=column.example,
            description=column.description,
        )
        for column in get_columns(entity_type)
    ]
    return ColumnsResponse(entity_type=entity_type, columns=columns)


@router.get("/{entity_type}/template")
async def download_template(entity_type: str = Depends(resolve_entity_type)):
    """Download an .xlsx template with the expected headers and example rows."""
    filename = template_filename(entity_type)
    return Response(
        content=generate_template(entity_type),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{entity_type}/validate", response_model=ValidateResponse)
async def validate_endpoint(
    file: UploadFile = File(...),
    mapping_json: Optional[str] = Form(None),
    skip_first_row: bool = Form(True),
    entity_type: str = Depends(resolve_entity_type),
):
    """
    Dry-run an import: every row is checked, nothing is written.

    Parameters:
    - file: CSV or Excel upload
    - mapping_json: JSON object of field key -> header (auto-detected when omitted)
    - skip_first_row: treat the first row as the header row
    """
    content, file_hash = await read_upload(file)
    grid = load_grid(content, file_hash, file.filename)
    mapping = _parse_mapping(mapping_json, grid, entity_type)

    report = validate_data(grid, mapping, entity_type, skip_first_row)
    return ValidateResponse(success=report.is_valid, **report.to_dict())


@router.post("/{entity_type}", response_model=ImportResultResponse)
async def import_endpoint(
    file: UploadFile = File(...),
    mapping_json: Optional[str] = Form(None),
    skip_first_row: bool = Form(True),
    entity_type: str = Depends(resolve_entity_type),
    store: EntityStore = Depends(get_store),
):
    """
    Import clients, services or appointments from an uploaded spreadsheet.

    Row failures do not fail the request: they are listed in ``errors`` and
    the remaining rows are still imported.
    """
    logger.info("Received %s import for file '%s'", entity_type, file.filename)
    content, file_hash = await read_upload(file)
    grid = load_grid(content, file_hash, file.filename)
    mapping = _parse_mapping(mapping_json, grid, entity_type)

    result = import_data(entity_type, grid, mapping, skip_first_row, store=store)
    return ImportResultResponse(entity_type=entity_type, **result.to_dict())
