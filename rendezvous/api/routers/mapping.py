"""
Mapping detection endpoint: suggests which uploaded column feeds which field.
"""
import logging

from fastapi import APIRouter, Depends, File, UploadFile

from rendezvous.api.dependencies import load_grid, read_upload, resolve_entity_type
from rendezvous.api.schemas.shared import ColumnScore, DetectMappingResponse
from rendezvous.domain.imports.columns import get_columns
from rendezvous.domain.imports.mapper import detect_columns, missing_required_columns, score_columns

router = APIRouter(prefix="/imports", tags=["mapping"])

logger = logging.getLogger(__name__)


@router.post("/{entity_type}/detect-mapping", response_model=DetectMappingResponse)
async def detect_mapping_endpoint(
    file: UploadFile = File(...),
    entity_type: str = Depends(resolve_entity_type),
):
    """
    Detect the column mapping of an uploaded spreadsheet.

    The parsed grid is cached by file hash so the follow-up validate/import
    calls on the same file skip parsing.

    Returns:
    - Header row as found in the file
    - Suggested mapping (field key -> header)
    - Per-field best candidate and score
    - Required fields left unmapped
    - Number of data rows
    """
    content, file_hash = await read_upload(file)
    grid = load_grid(content, file_hash, file.filename)
    columns = get_columns(entity_type)

    mapping = detect_columns(grid, columns)
    missing = missing_required_columns(mapping, columns)
    if missing:
        logger.info(
            "Detected mapping for '%s' is missing required fields: %s",
            file.filename, ", ".join(column.key for column in missing),
        )

    return DetectMappingResponse(
        success=not missing,
        entity_type=entity_type,
        file_hash=file_hash,
        headers=["" if cell is None else str(cell).strip() for cell in grid[0]],
        detected_mapping=mapping,
        scores={key: ColumnScore(**score) for key, score in score_columns(grid, columns).items()},
        missing_required=[column.key for column in missing],
        row_count=max(len(grid) - 1, 0),
    )
