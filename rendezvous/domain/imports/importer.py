"""
Row validation and entity import for clients, services and appointments.

Rows are validated against the entity's ImportColumn schema. Failures never
abort a run: they are collected as French, 1-indexed "Ligne N: ..." messages
so a partially successful import can be reported back to the user.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rendezvous.core.config import settings
from rendezvous.db.store import Entity, EntityStore
from rendezvous.domain.imports.columns import ImportColumn, entity_defaults, get_columns
from rendezvous.domain.imports.mapper import ImportMapping, resolve_column_indexes
from rendezvous.domain.imports.processors.file_parser import cell_to_text

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    success: bool = True
    imported: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    skipped: int = 0
    duplicates: int = 0

    def finalize(self) -> "ImportResult":
        self.success = not self.errors
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RowOutcome:
    """Validation result for a single spreadsheet row."""
    line: int
    entity: Entity = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class ValidationReport:
    entity_type: str
    total_rows: int = 0
    valid_rows: List[RowOutcome] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    skipped: int = 0

    @property
    def invalid_count(self) -> int:
        return self.total_rows - self.skipped - len(self.valid_rows)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_type": self.entity_type,
            "total_rows": self.total_rows,
            "valid_count": len(self.valid_rows),
            "invalid_count": self.invalid_count,
            "skipped": self.skipped,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


def iter_data_rows(grid: Sequence[Sequence[Any]], skip_first_row: bool):
    """Yield ``(line_number, row)``; line numbers are 1-indexed file lines."""
    start = 1 if skip_first_row else 0
    for index in range(start, len(grid)):
        yield index + 1, grid[index]


def is_blank_row(row: Sequence[Any]) -> bool:
    return all(not cell_to_text(cell) for cell in row)


def validate_row(
    row: Sequence[Any],
    line: int,
    columns: Sequence[ImportColumn],
    indexes: Dict[str, int],
    *,
    stop_on_first_error: bool = False,
) -> RowOutcome:
    """
    Validate and transform one row.

    Missing or invalid required fields are errors. Invalid optional fields are
    warnings and the field is dropped. With ``stop_on_first_error`` the row is
    abandoned at the first error (import path); otherwise every column is
    checked (validation-only path).
    """
    outcome = RowOutcome(line=line)

    for column in columns:
        index = indexes.get(column.key)
        raw = row[index] if index is not None and index < len(row) else None
        value = cell_to_text(raw)

        if not value:
            if column.required:
                outcome.errors.append(f"Ligne {line}: {column.label} requis")
                if stop_on_first_error:
                    break
            continue

        try:
            is_valid = bool(column.validation(value))
        except (ValueError, TypeError) as exc:
            logger.debug("Validator for '%s' raised on %r: %s", column.key, value, exc)
            is_valid = False

        if not is_valid:
            if column.required:
                outcome.errors.append(f"Ligne {line}: {column.label} invalide ({value})")
                if stop_on_first_error:
                    break
            else:
                outcome.warnings.append(f"Ligne {line}: {column.label} invalide ({value}), valeur ignorée")
            continue

        outcome.entity[column.key] = column.transform(value)

    return outcome


def validate_rows(
    grid: Sequence[Sequence[Any]],
    mapping: ImportMapping,
    entity_type: str,
    skip_first_row: bool = True,
    *,
    stop_on_first_error: bool = False,
    start: int = 0,
    stop: Optional[int] = None,
) -> ValidationReport:
    """Validate a slice of the data rows (all of them by default)."""
    columns = get_columns(entity_type)
    indexes = resolve_column_indexes(grid, mapping)
    rows = list(iter_data_rows(grid, skip_first_row))[start:stop]
    report = ValidationReport(entity_type=entity_type, total_rows=len(rows))

    for line, row in rows:
        if is_blank_row(row):
            report.skipped += 1
            continue
        outcome = validate_row(row, line, columns, indexes, stop_on_first_error=stop_on_first_error)
        report.warnings.extend(outcome.warnings)
        if outcome.is_valid:
            report.valid_rows.append(outcome)
        else:
            report.errors.extend(outcome.errors)

    return report


def validate_data(
    grid: Sequence[Sequence[Any]],
    mapping: ImportMapping,
    entity_type: str,
    skip_first_row: bool = True,
) -> ValidationReport:
    """Dry run: check every row and every column without persisting anything."""
    report = validate_rows(grid, mapping, entity_type, skip_first_row)
    logger.info(
        "Validated %d %s rows: %d valid, %d invalid, %d skipped",
        report.total_rows, entity_type, len(report.valid_rows), report.invalid_count, report.skipped,
    )
    return report


def _norm(value: Any) -> str:
    return str(value or "").strip().casefold()


class ImportContext:
    """
    Lookups shared by every row of one import run.

    Existing clients and services are loaded once; entities created during
    the run are added so in-file duplicates are caught too.
    """

    def __init__(self, entity_type: str, store: EntityStore, skip_duplicates: Optional[bool] = None):
        self.entity_type = entity_type
        self.store = store
        self.skip_duplicates = settings.import_skip_duplicates if skip_duplicates is None else skip_duplicates
        self.clients: List[Entity] = []
        self.services: List[Entity] = []

        if entity_type == "appointments" or (entity_type == "clients" and self.skip_duplicates):
            self.clients = list(store.get_clients())
        if entity_type == "appointments" or (entity_type == "services" and self.skip_duplicates):
            self.services = list(store.get_services())

        self.client_emails = {_norm(client.get("email")) for client in self.clients if client.get("email")}
        self.service_names = {_norm(service.get("name")) for service in self.services}

    def find_client_by_email(self, email: str) -> Optional[Entity]:
        target = _norm(email)
        return next((client for client in self.clients if _norm(client.get("email")) == target), None)

    def find_service(self, name: str) -> Optional[Entity]:
        target = _norm(name)
        if not target:
            return None
        exact = next((service for service in self.services if _norm(service.get("name")) == target), None)
        if exact is not None:
            return exact
        return next(
            (
                service for service in self.services
                if _norm(service.get("name")) and (
                    target in _norm(service.get("name")) or _norm(service.get("name")) in target
                )
            ),
            None,
        )


def build_client(entity: Entity) -> Entity:
    client = entity_defaults("clients")
    client.update(entity)
    parts = [client.get("address"), client.get("city"), client.get("province"), client.get("postalCode")]
    client["fullAddress"] = ", ".join(str(part).strip() for part in parts if part and str(part).strip())
    return client


def build_service(entity: Entity) -> Entity:
    service = entity_defaults("services")
    service.update(entity)
    return service


def build_appointment(entity: Entity, line: int, context: ImportContext) -> Tuple[Optional[Entity], List[str], List[str]]:
    """
    Resolve client/service references and compute the time slot.

    Returns:
        Tuple of (payload or None, errors, warnings)
    """
    appointment = entity_defaults("appointments")
    appointment.update(entity)
    errors: List[str] = []
    warnings: List[str] = []

    client = context.find_client_by_email(appointment["clientEmail"])
    if client is None:
        errors.append(f'Ligne {line}: Client "{appointment["clientEmail"]}" non trouvé')
        return None, errors, warnings

    service = context.find_service(appointment["serviceName"])
    if service is None:
        warnings.append(
            f'Ligne {line}: Service "{appointment["serviceName"]}" non trouvé, rendez-vous importé sans service'
        )

    start = datetime.fromisoformat(f"{appointment['date']}T{appointment['startTime']}")
    if appointment.get("endTime"):
        end = datetime.fromisoformat(f"{appointment['date']}T{appointment['endTime']}")
        if end <= start:
            errors.append(f"Ligne {line}: L'heure de fin doit être après l'heure de début")
            return None, errors, warnings
    else:
        minutes = int(service.get("duration") or 0) if service else 0
        end = start + timedelta(minutes=minutes or settings.default_service_duration)

    payload = {
        "clientId": client["id"],
        "serviceId": service["id"] if service else None,
        "startTime": start,
        "endTime": end,
        "duration": int((end - start).total_seconds() // 60),
        "status": appointment["status"],
        "notes": appointment["notes"],
        "sendReminder": bool(appointment["sendReminder"]),
        "sendConfirmation": bool(appointment["sendConfirmation"]),
    }
    return payload, errors, warnings


def persist_outcome(outcome: RowOutcome, context: ImportContext, result: ImportResult) -> None:
    """Create the entity for one valid row, recording duplicates and failures on ``result``."""
    line = outcome.line
    entity_type = context.entity_type

    try:
        if entity_type == "clients":
            client = build_client(outcome.entity)
            email = _norm(client.get("email"))
            if context.skip_duplicates and email and email in context.client_emails:
                result.duplicates += 1
                result.warnings.append(f"Ligne {line}: Client {client['email']} existe déjà, ligne ignorée")
                return
            created = context.store.create_client(client)
            if email:
                context.client_emails.add(email)
            context.clients.append(created)

        elif entity_type == "services":
            service = build_service(outcome.entity)
            name = _norm(service["name"])
            if context.skip_duplicates and name in context.service_names:
                result.duplicates += 1
                result.warnings.append(f"Ligne {line}: Service {service['name']} existe déjà, ligne ignorée")
                return
            created = context.store.create_service(service)
            context.service_names.add(name)
            context.services.append(created)

        else:
            payload, errors, warnings = build_appointment(outcome.entity, line, context)
            result.warnings.extend(warnings)
            if payload is None:
                result.errors.extend(errors)
                return
            context.store.create_appointment(payload)

    except Exception as exc:
        logger.warning("Failed to create %s from line %d: %s", entity_type, line, exc)
        result.errors.append(f"Ligne {line}: {str(exc) or 'Erreur inconnue'}")
        return

    result.imported += 1


def import_data(
    entity_type: str,
    grid: Sequence[Sequence[Any]],
    mapping: ImportMapping,
    skip_first_row: bool = True,
    *,
    store: EntityStore,
    skip_duplicates: Optional[bool] = None,
) -> ImportResult:
    """
    Validate and import every data row of ``grid``, one create call per valid row.

    A row stops at its first required-field failure. Persistence errors are
    recorded per row and never stop the remaining rows.
    """
    columns = get_columns(entity_type)
    indexes = resolve_column_indexes(grid, mapping)
    context = ImportContext(entity_type, store, skip_duplicates)
    result = ImportResult()

    logger.info("Starting %s import (%d rows in grid)", entity_type, len(grid))
    for line, row in iter_data_rows(grid, skip_first_row):
        if is_blank_row(row):
            result.skipped += 1
            continue

        outcome = validate_row(row, line, columns, indexes, stop_on_first_error=True)
        result.warnings.extend(outcome.warnings)
        if not outcome.is_valid:
            result.errors.extend(outcome.errors)
            continue

        persist_outcome(outcome, context, result)

    result.finalize()
    logger.info(
        "Finished %s import: %d imported, %d errors, %d warnings, %d duplicates, %d skipped",
        entity_type, result.imported, len(result.errors), len(result.warnings), result.duplicates, result.skipped,
    )
    return result


def import_clients(grid, mapping: ImportMapping, skip_first_row: bool = True, *, store: EntityStore,
                   skip_duplicates: Optional[bool] = None) -> ImportResult:
    return import_data("clients", grid, mapping, skip_first_row, store=store, skip_duplicates=skip_duplicates)


def import_services(grid, mapping: ImportMapping, skip_first_row: bool = True, *, store: EntityStore,
                    skip_duplicates: Optional[bool] = None) -> ImportResult:
    return import_data("services", grid, mapping, skip_first_row, store=store, skip_duplicates=skip_duplicates)


def import_appointments(grid, mapping: ImportMapping, skip_first_row: bool = True, *,
                        store: EntityStore) -> ImportResult:
    return import_data("appointments", grid, mapping, skip_first_row, store=store)
