"""
Target schemas for spreadsheet imports.

Each entity type (clients, services, appointments) is described by an
ordered list of ImportColumn definitions. The same definitions drive column
auto-detection, row validation, value normalization and template generation.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Literal, Tuple

from rendezvous.core.config import settings
from rendezvous.domain.imports.validators import (
    is_boolean_text,
    is_email,
    is_hex_color,
    is_non_negative_number,
    parse_boolean,
    parse_int_in_range,
    parse_non_negative_float,
    parse_non_negative_int,
)
from rendezvous.utils.date import is_valid_date, is_valid_time, normalize_time, parse_flexible_date
from rendezvous.utils.phone import format_quebec_phone, validate_quebec_phone
from rendezvous.utils.postal import format_canadian_postal_code, validate_canadian_postal_code

ColumnType = Literal["text", "email", "phone", "date", "time", "number"]

MIN_SERVICE_DURATION = 15
MAX_SERVICE_DURATION = 480

APPOINTMENT_STATUSES = {
    "pending": "pending",
    "en attente": "pending",
    "confirmed": "confirmed",
    "confirme": "confirmed",
    "confirmé": "confirmed",
    "completed": "completed",
    "termine": "completed",
    "terminé": "completed",
    "cancelled": "cancelled",
    "canceled": "cancelled",
    "annule": "cancelled",
    "annulé": "cancelled",
}


def _strip(value: Any) -> str:
    return str(value).strip()


def _not_blank(value: Any) -> bool:
    return value is not None and bool(str(value).strip())


def _any_text(value: Any) -> bool:
    return True


@dataclass(frozen=True)
class ImportColumn:
    """One logical target field of an import schema."""
    key: str
    label: str
    required: bool = False
    type: ColumnType = "text"
    example: str = ""
    keywords: Tuple[str, ...] = ()
    validation: Callable[[Any], bool] = _any_text
    transform: Callable[[Any], Any] = _strip
    description: str = ""

    def candidate_keywords(self) -> List[str]:
        """Strings the mapper compares against raw headers: key, label, then synonyms."""
        return [self.key, self.label, *self.keywords]


CLIENT_COLUMNS: List[ImportColumn] = [
    ImportColumn(
        key="firstName",
        label="Prénom",
        required=True,
        example="Jean",
        keywords=("prénom", "prenom", "first name", "firstname", "given name"),
        validation=_not_blank,
    ),
    ImportColumn(
        key="lastName",
        label="Nom du famille",
        required=True,
        example="Dupont",
        keywords=("nom", "nom de famille", "last name", "lastname", "surname", "family name"),
        validation=_not_blank,
    ),
    ImportColumn(
        key="email",
        label="Courriel",
        type="email",
        example="jean.dupont@example.com",
        keywords=("email", "e-mail", "courriel", "adresse courriel", "mail"),
        validation=is_email,
        transform=lambda value: _strip(value).lower(),
    ),
    ImportColumn(
        key="phone",
        label="Téléphone",
        type="phone",
        example="514-555-0123",
        keywords=("téléphone", "telephone", "tél", "tel", "phone", "cellulaire", "mobile"),
        validation=validate_quebec_phone,
        transform=format_quebec_phone,
    ),
    ImportColumn(
        key="address",
        label="Adresse",
        example="123 rue Principale",
        keywords=("adresse", "rue", "street", "address"),
    ),
    ImportColumn(
        key="city",
        label="Ville",
        example="Montréal",
        keywords=("ville", "city", "municipalité"),
    ),
    ImportColumn(
        key="province",
        label="Province",
        example="QC",
        keywords=("province", "état", "state", "région"),
        transform=lambda value: _strip(value).upper() if len(_strip(value)) == 2 else _strip(value),
    ),
    ImportColumn(
        key="postalCode",
        label="Code postal",
        example="H2X 1Y2",
        keywords=("code postal", "postal", "zip", "cp"),
        validation=validate_canadian_postal_code,
        transform=format_canadian_postal_code,
        description="Format canadien A1A 1A1",
    ),
    ImportColumn(
        key="notes",
        label="Notes",
        example="Cliente fidèle",
        keywords=("notes", "note", "commentaires", "remarques", "comments"),
    ),
    ImportColumn(
        key="loyaltyPoints",
        label="Points fidélité",
        type="number",
        example="120",
        keywords=("points", "fidélité", "loyalty", "loyalty points"),
        validation=is_non_negative_number,
        transform=parse_non_negative_int,
    ),
]


SERVICE_COLUMNS: List[ImportColumn] = [
    ImportColumn(
        key="name",
        label="Nom du service",
        required=True,
        example="Consultation Premium",
        keywords=("service", "nom", "name", "prestation", "soin"),
        validation=lambda value: _not_blank(value) and len(_strip(value)) >= 3,
    ),
    ImportColumn(
        key="description",
        label="Description",
        example="Consultation complète de 60 minutes",
        keywords=("description", "desc", "détails", "details"),
    ),
    ImportColumn(
        key="duration",
        label="Durée (minutes)",
        type="number",
        example="60",
        keywords=("durée", "duree", "duration", "minutes", "temps"),
        validation=lambda value: is_non_negative_number(value) and parse_non_negative_float(value) > 0,
        transform=lambda value: parse_int_in_range(
            value, MIN_SERVICE_DURATION, MAX_SERVICE_DURATION, settings.default_service_duration
        ),
        description=f"Entre {MIN_SERVICE_DURATION} et {MAX_SERVICE_DURATION} minutes",
    ),
    ImportColumn(
        key="price",
        label="Prix",
        type="number",
        example="125.00",
        keywords=("prix", "price", "tarif", "coût", "cost", "montant"),
        validation=is_non_negative_number,
        transform=parse_non_negative_float,
    ),
    ImportColumn(
        key="color",
        label="Couleur",
        example="#E91E63",
        keywords=("couleur", "color", "colour"),
        validation=is_hex_color,
        transform=lambda value: _strip(value).upper(),
    ),
    ImportColumn(
        key="category",
        label="Catégorie",
        example="Soins",
        keywords=("catégorie", "categorie", "category", "type"),
    ),
]


APPOINTMENT_COLUMNS: List[ImportColumn] = [
    ImportColumn(
        key="clientEmail",
        label="Courriel du client",
        required=True,
        type="email",
        example="jean.dupont@example.com",
        keywords=("courriel client", "email client", "client email", "courriel", "email", "client"),
        validation=is_email,
        transform=lambda value: _strip(value).lower(),
    ),
    ImportColumn(
        key="serviceName",
        label="Service",
        required=True,
        example="Consultation Premium",
        keywords=("service", "nom du service", "prestation", "soin", "type"),
        validation=_not_blank,
    ),
    ImportColumn(
        key="date",
        label="Date",
        required=True,
        type="date",
        example="2024-01-15",
        keywords=("date", "jour", "date du rendez-vous", "day"),
        validation=is_valid_date,
        transform=lambda value: parse_flexible_date(value, log_context="appointment date"),
    ),
    ImportColumn(
        key="startTime",
        label="Heure de début",
        required=True,
        type="time",
        example="09:00",
        keywords=("heure de début", "heure début", "début", "heure", "start", "start time"),
        validation=is_valid_time,
        transform=normalize_time,
    ),
    ImportColumn(
        key="endTime",
        label="Heure de fin",
        type="time",
        example="10:00",
        keywords=("heure de fin", "heure fin", "fin", "end", "end time"),
        validation=is_valid_time,
        transform=normalize_time,
    ),
    ImportColumn(
        key="status",
        label="Statut",
        example="confirmé",
        keywords=("statut", "status", "état"),
        validation=lambda value: _strip(value).lower() in APPOINTMENT_STATUSES,
        transform=lambda value: APPOINTMENT_STATUSES[_strip(value).lower()],
    ),
    ImportColumn(
        key="notes",
        label="Notes",
        example="Première consultation",
        keywords=("notes", "note", "commentaires", "remarques", "comments"),
    ),
    ImportColumn(
        key="sendReminder",
        label="Envoyer rappel",
        example="Oui",
        keywords=("rappel", "envoyer rappel", "reminder"),
        validation=is_boolean_text,
        transform=parse_boolean,
    ),
    ImportColumn(
        key="sendConfirmation",
        label="Envoyer confirmation",
        example="Non",
        keywords=("confirmation", "envoyer confirmation"),
        validation=is_boolean_text,
        transform=parse_boolean,
    ),
]


ENTITY_COLUMNS: Dict[str, List[ImportColumn]] = {
    "clients": CLIENT_COLUMNS,
    "services": SERVICE_COLUMNS,
    "appointments": APPOINTMENT_COLUMNS,
}

ENTITY_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "clients": {"email": "", "phone": "", "address": "", "city": "", "province": "",
                "postalCode": "", "notes": "", "loyaltyPoints": 0},
    "services": {"description": "", "duration": settings.default_service_duration, "price": 0.0,
                 "color": settings.default_service_color, "category": ""},
    "appointments": {"endTime": None, "status": "pending", "notes": "",
                     "sendReminder": False, "sendConfirmation": False},
}


def get_columns(entity_type: str) -> List[ImportColumn]:
    try:
        return ENTITY_COLUMNS[entity_type]
    except KeyError:
        raise ValueError(f"Type d'import inconnu: {entity_type}") from None


def required_columns(entity_type: str) -> List[ImportColumn]:
    return [column for column in get_columns(entity_type) if column.required]


def entity_defaults(entity_type: str) -> Dict[str, Any]:
    get_columns(entity_type)
    return dict(ENTITY_DEFAULTS[entity_type])
