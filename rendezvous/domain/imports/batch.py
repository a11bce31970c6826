"""
Chunked validate/import runs with progress reporting.

Rows are processed sequentially in fixed-size chunks; the progress callback
fires once per chunk and once when the phase completes.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from rendezvous.core.config import settings
from rendezvous.db.store import EntityStore
from rendezvous.domain.imports.importer import (
    ImportContext,
    ImportResult,
    ValidationReport,
    iter_data_rows,
    persist_outcome,
    validate_rows,
)
from rendezvous.domain.imports.mapper import ImportMapping

logger = logging.getLogger(__name__)

BatchValidation = ValidationReport


@dataclass
class ImportProgress:
    current: int
    total: int
    percentage: int
    phase: str  # validation | import | complete
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


ProgressCallback = Callable[[ImportProgress], None]


def _percentage(current: int, total: int) -> int:
    if total <= 0:
        return 100
    return int(round(current / total * 100))


def _report(on_progress: Optional[ProgressCallback], current: int, total: int, phase: str, message: str) -> None:
    if on_progress is None:
        return
    on_progress(ImportProgress(
        current=current,
        total=total,
        percentage=_percentage(current, total),
        phase=phase,
        message=message,
    ))


def validate_data_batch(
    grid: Sequence[Sequence[Any]],
    mapping: ImportMapping,
    entity_type: str,
    skip_first_row: bool = True,
    on_progress: Optional[ProgressCallback] = None,
    batch_size: Optional[int] = None,
) -> BatchValidation:
    """Validation-only pass over ``grid`` in chunks of ``batch_size`` rows."""
    batch_size = max(1, batch_size or settings.import_validate_batch_size)
    total = len(list(iter_data_rows(grid, skip_first_row)))
    report = BatchValidation(entity_type=entity_type, total_rows=total)

    for chunk_start in range(0, total, batch_size):
        chunk_end = min(chunk_start + batch_size, total)
        chunk = validate_rows(grid, mapping, entity_type, skip_first_row, start=chunk_start, stop=chunk_end)
        report.valid_rows.extend(chunk.valid_rows)
        report.errors.extend(chunk.errors)
        report.warnings.extend(chunk.warnings)
        report.skipped += chunk.skipped
        _report(on_progress, chunk_end, total, "validation", f"Validation des lignes {chunk_start + 1} à {chunk_end}")

    logger.info(
        "Batch validation of %d %s rows: %d valid, %d errors",
        total, entity_type, len(report.valid_rows), len(report.errors),
    )
    _report(on_progress, total, total, "complete", f"{len(report.valid_rows)} lignes valides sur {total}")
    return report


def import_data_batch(
    validation: BatchValidation,
    entity_type: str,
    store: EntityStore,
    on_progress: Optional[ProgressCallback] = None,
    batch_size: Optional[int] = None,
    skip_duplicates: Optional[bool] = None,
) -> ImportResult:
    """
    Persist the valid rows of a previous ``validate_data_batch`` run.

    Validation errors and warnings carry over into the returned result so the
    caller sees one combined report.
    """
    batch_size = max(1, batch_size or settings.import_batch_size)
    rows = validation.valid_rows
    total = len(rows)
    context = ImportContext(entity_type, store, skip_duplicates)
    result = ImportResult(
        errors=list(validation.errors),
        warnings=list(validation.warnings),
        skipped=validation.skipped,
    )

    for chunk_start in range(0, total, batch_size):
        chunk_end = min(chunk_start + batch_size, total)
        for outcome in rows[chunk_start:chunk_end]:
            persist_outcome(outcome, context, result)
        _report(on_progress, chunk_end, total, "import", f"Import des lignes {chunk_start + 1} à {chunk_end}")

    result.finalize()
    logger.info(
        "Batch import of %s finished: %d imported, %d errors, %d duplicates",
        entity_type, result.imported, len(result.errors), result.duplicates,
    )
    _report(on_progress, total, total, "complete", f"{result.imported} éléments importés")
    return result
