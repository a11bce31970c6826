"""Downloadable .xlsx import templates built from the column schemas."""
import io
import logging
from typing import Dict, List

import pandas as pd

from rendezvous.domain.imports.columns import get_columns

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SHEET_NAMES = {
    "clients": "Clients",
    "services": "Services",
    "appointments": "Rendez-vous",
}

TEMPLATE_FILENAMES = {
    "clients": "modele_clients.xlsx",
    "services": "modele_services.xlsx",
    "appointments": "modele_rendez_vous.xlsx",
}

# Second example row; the first comes from each column's own example value.
EXTRA_EXAMPLES: Dict[str, Dict[str, str]] = {
    "clients": {
        "firstName": "Marie",
        "lastName": "Tremblay",
        "email": "marie.tremblay@example.com",
        "phone": "(418) 555-0199",
        "address": "45 avenue des Érables",
        "city": "Québec",
        "province": "QC",
        "postalCode": "G1R 2B5",
        "notes": "",
        "loyaltyPoints": "0",
    },
    "services": {
        "name": "Coupe et brushing",
        "description": "Coupe femme avec mise en plis",
        "duration": "45",
        "price": "55",
        "color": "#3B82F6",
        "category": "Coiffure",
    },
    "appointments": {
        "clientEmail": "marie.tremblay@example.com",
        "serviceName": "Coupe et brushing",
        "date": "2024-01-16",
        "startTime": "14:30",
        "endTime": "",
        "status": "en attente",
        "notes": "",
        "sendReminder": "Oui",
        "sendConfirmation": "Oui",
    },
}


def template_rows(entity_type: str) -> List[List[str]]:
    """Header row of labels followed by two example rows."""
    columns = get_columns(entity_type)
    extra = EXTRA_EXAMPLES.get(entity_type, {})
    return [
        [column.label for column in columns],
        [column.example for column in columns],
        [extra.get(column.key, "") for column in columns],
    ]


def template_filename(entity_type: str) -> str:
    get_columns(entity_type)
    return TEMPLATE_FILENAMES[entity_type]


def generate_template(entity_type: str) -> bytes:
    rows = template_rows(entity_type)
    df = pd.DataFrame(rows[1:], columns=rows[0])
    sheet_name = SHEET_NAMES[entity_type]

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        worksheet = writer.sheets[sheet_name]
        for cells in worksheet.columns:
            width = max(len(str(cell.value or "")) for cell in cells)
            worksheet.column_dimensions[cells[0].column_letter].width = width + 4

    content = buffer.getvalue()
    logger.debug("Generated %s template (%d bytes)", entity_type, len(content))
    return content


def generate_client_template() -> bytes:
    return generate_template("clients")


def generate_service_template() -> bytes:
    return generate_template("services")


def generate_appointment_template() -> bytes:
    return generate_template("appointments")
