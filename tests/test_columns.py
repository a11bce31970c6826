"""
Tests for the import column schemas.
"""

import pytest
from rendezvous.domain.imports.columns import (
    CLIENT_COLUMNS,
    ENTITY_COLUMNS,
    SERVICE_COLUMNS,
    entity_defaults,
    get_columns,
    required_columns,
)


def _column(columns, key):
    return next(column for column in columns if column.key == key)


class TestSchemaLookup:
    def test_get_columns(self):
        assert get_columns("clients") is CLIENT_COLUMNS
        assert set(ENTITY_COLUMNS) == {"clients", "services", "appointments"}

    def test_unknown_entity_type(self):
        with pytest.raises(ValueError, match="Type d'import inconnu"):
            get_columns("factures")

    def test_required_columns(self):
        assert [c.key for c in required_columns("clients")] == ["firstName", "lastName"]
        assert [c.key for c in required_columns("services")] == ["name"]
        assert [c.key for c in required_columns("appointments")] == [
            "clientEmail", "serviceName", "date", "startTime",
        ]

    def test_keys_are_unique(self):
        for columns in ENTITY_COLUMNS.values():
            keys = [column.key for column in columns]
            assert len(keys) == len(set(keys))

    def test_defaults_are_copies(self):
        defaults = entity_defaults("services")
        defaults["duration"] = 1
        assert entity_defaults("services")["duration"] == 60


class TestColumnTransforms:
    def test_client_fields(self):
        assert _column(CLIENT_COLUMNS, "email").transform(" Marie@Test.COM ") == "marie@test.com"
        assert _column(CLIENT_COLUMNS, "phone").transform("(514) 555-0123") == "514-555-0123"
        assert _column(CLIENT_COLUMNS, "postalCode").transform("h2x1y2") == "H2X 1Y2"
        assert _column(CLIENT_COLUMNS, "province").transform("qc") == "QC"
        assert _column(CLIENT_COLUMNS, "province").transform("Québec") == "Québec"

    def test_service_duration(self):
        duration = _column(SERVICE_COLUMNS, "duration")
        assert duration.validation("45")
        assert not duration.validation("0")
        assert not duration.validation("longue")
        assert duration.transform("5") == 15
        assert duration.transform("1000") == 480

    def test_service_name_length(self):
        name = _column(SERVICE_COLUMNS, "name")
        assert name.validation("Spa")
        assert not name.validation("ab")

    def test_color(self):
        color = _column(SERVICE_COLUMNS, "color")
        assert color.validation("#e91e63")
        assert color.transform("#e91e63") == "#E91E63"
        assert not color.validation("rouge")

    def test_appointment_status(self):
        status = _column(get_columns("appointments"), "status")
        assert status.transform("Confirmé") == "confirmed"
        assert status.transform("annulé") == "cancelled"
        assert not status.validation("reporté")
