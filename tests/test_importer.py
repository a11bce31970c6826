"""
Tests for row validation and entity import.
"""

from datetime import datetime

from conftest import FakeStore
from rendezvous.domain.imports.columns import APPOINTMENT_COLUMNS, CLIENT_COLUMNS
from rendezvous.domain.imports.importer import (
    ImportResult,
    import_appointments,
    import_clients,
    import_data,
    import_services,
    validate_data,
    validate_row,
)
from rendezvous.domain.imports.mapper import detect_import_mapping

CLIENT_MAPPING = {"lastName": "Nom", "firstName": "Prenom", "email": "Email"}


class TestValidateRow:
    def test_valid_row_is_transformed(self):
        indexes = {"firstName": 0, "lastName": 1, "phone": 2, "postalCode": 3}
        outcome = validate_row(["Marie", "Curie", "5145550123", "h2x1y2"], 2, CLIENT_COLUMNS, indexes)
        assert outcome.is_valid
        assert outcome.entity == {
            "firstName": "Marie",
            "lastName": "Curie",
            "phone": "514-555-0123",
            "postalCode": "H2X 1Y2",
        }

    def test_validation_path_collects_every_error(self):
        outcome = validate_row(["", ""], 4, CLIENT_COLUMNS, {"firstName": 0, "lastName": 1})
        assert outcome.errors == ["Ligne 4: Prénom requis", "Ligne 4: Nom du famille requis"]

    def test_import_path_stops_at_first_error(self):
        outcome = validate_row(
            ["", ""], 4, CLIENT_COLUMNS, {"firstName": 0, "lastName": 1}, stop_on_first_error=True
        )
        assert outcome.errors == ["Ligne 4: Prénom requis"]

    def test_invalid_optional_field_is_a_warning(self):
        indexes = {"firstName": 0, "lastName": 1, "email": 2}
        outcome = validate_row(["Marie", "Curie", "pas-un-courriel"], 3, CLIENT_COLUMNS, indexes)
        assert outcome.is_valid
        assert "email" not in outcome.entity
        assert outcome.warnings == ["Ligne 3: Courriel invalide (pas-un-courriel), valeur ignorée"]

    def test_unmapped_required_column_fails_every_row(self):
        outcome = validate_row(["Marie"], 2, CLIENT_COLUMNS, {"firstName": 0})
        assert outcome.errors == ["Ligne 2: Nom du famille requis"]


class TestImportClients:
    def test_scenario_missing_last_name(self, fake_store):
        grid = [
            ["Nom", "Prenom", "Email"],
            ["", "Marie", "marie@test.com"],
            ["Martin", "Jean", "jean@test.com"],
        ]
        result = import_clients(grid, CLIENT_MAPPING, True, store=fake_store)

        assert result.imported == 1
        assert result.errors == ["Ligne 2: Nom du famille requis"]
        assert result.success is False
        assert fake_store.clients[0]["firstName"] == "Jean"
        assert fake_store.clients[0]["lastName"] == "Martin"

    def test_all_rows_valid(self, fake_store):
        grid = [["Nom", "Prenom", "Email"], ["Curie", "Marie", "MARIE@test.com"]]
        result = import_clients(grid, CLIENT_MAPPING, store=fake_store)
        assert result.success is True
        assert result.imported == 1
        assert fake_store.clients[0]["email"] == "marie@test.com"

    def test_without_header_row(self, fake_store):
        grid = [["Curie", "Marie", "marie@test.com"]]
        mapping = {"lastName": "Curie", "firstName": "Marie"}
        result = import_clients(grid, mapping, False, store=fake_store)
        assert result.imported == 1

    def test_full_address_and_defaults(self, fake_store):
        grid = [
            ["Prénom", "Nom", "Adresse", "Ville", "Province", "Code postal"],
            ["Marie", "Curie", "123 rue Principale", "Montréal", "qc", "h2x1y2"],
        ]
        mapping = {
            "firstName": "Prénom", "lastName": "Nom", "address": "Adresse",
            "city": "Ville", "province": "Province", "postalCode": "Code postal",
        }
        import_clients(grid, mapping, store=fake_store)

        client = fake_store.clients[0]
        assert client["fullAddress"] == "123 rue Principale, Montréal, QC, H2X 1Y2"
        assert client["loyaltyPoints"] == 0
        assert client["email"] == ""

    def test_blank_rows_are_skipped(self, fake_store):
        grid = [["Nom", "Prenom"], ["", ""], ["Curie", "Marie"]]
        result = import_clients(grid, CLIENT_MAPPING, store=fake_store)
        assert result.skipped == 1
        assert result.imported == 1
        assert result.errors == []

    def test_duplicate_emails_are_skipped(self):
        store = FakeStore(clients=[{"id": 1, "firstName": "A", "lastName": "B", "email": "marie@test.com"}])
        grid = [
            ["Nom", "Prenom", "Email"],
            ["Curie", "Marie", "Marie@Test.com"],
            ["Martin", "Jean", "jean@test.com"],
            ["Martin", "Jean", "jean@test.com"],
        ]
        result = import_clients(grid, CLIENT_MAPPING, store=store)

        assert result.imported == 1
        assert result.duplicates == 2
        assert result.success is True
        assert len(result.warnings) == 2

    def test_duplicates_allowed_when_disabled(self):
        store = FakeStore(clients=[{"id": 1, "firstName": "A", "lastName": "B", "email": "marie@test.com"}])
        grid = [["Nom", "Prenom", "Email"], ["Curie", "Marie", "marie@test.com"]]
        result = import_clients(grid, CLIENT_MAPPING, store=store, skip_duplicates=False)
        assert result.imported == 1
        assert result.duplicates == 0

    def test_create_failure_does_not_abort_remaining_rows(self):
        store = FakeStore(fail_on=lambda data: data["lastName"] == "Boom")
        grid = [["Nom", "Prenom"], ["Boom", "Marie"], ["Martin", "Jean"]]
        result = import_clients(grid, CLIENT_MAPPING, store=store)

        assert result.imported == 1
        assert result.errors == ["Ligne 2: Erreur de base de données"]
        assert store.create_calls == 2

    def test_create_failure_without_message(self):
        class SilentStore(FakeStore):
            def create_client(self, data):
                raise RuntimeError()

        grid = [["Nom", "Prenom"], ["Martin", "Jean"]]
        result = import_clients(grid, CLIENT_MAPPING, store=SilentStore())

        assert result.imported == 0
        assert result.errors == ["Ligne 2: Erreur inconnue"]


class TestImportServices:
    MAPPING = {"name": "Nom du service", "duration": "Durée", "price": "Prix", "color": "Couleur"}

    def test_defaults_and_clamping(self, fake_store):
        grid = [
            ["Nom du service", "Durée", "Prix", "Couleur"],
            ["Massage suédois", "600", "95,00 $", "#e91e63"],
            ["Coupe", "", "", ""],
        ]
        result = import_services(grid, self.MAPPING, store=fake_store)

        assert result.imported == 2
        massage, coupe = fake_store.services
        assert massage["duration"] == 480
        assert massage["price"] == 95.0
        assert massage["color"] == "#E91E63"
        assert coupe["duration"] == 60
        assert coupe["price"] == 0.0
        assert coupe["color"] == "#3B82F6"

    def test_invalid_optional_values_fall_back(self, fake_store):
        grid = [["Nom du service", "Durée", "Prix", "Couleur"], ["Massage", "longue", "-3", "rouge"]]
        result = import_services(grid, self.MAPPING, store=fake_store)

        assert result.success is True
        assert len(result.warnings) == 3
        service = fake_store.services[0]
        assert (service["duration"], service["price"], service["color"]) == (60, 0.0, "#3B82F6")

    def test_short_name_is_an_error(self, fake_store):
        grid = [["Nom du service"], ["ab"]]
        result = import_services(grid, self.MAPPING, store=fake_store)
        assert result.errors == ["Ligne 2: Nom du service invalide (ab)"]
        assert result.imported == 0

    def test_existing_service_is_a_duplicate(self, store_with_catalog):
        grid = [["Nom du service"], ["coupe"], ["Soin visage"]]
        result = import_services(grid, self.MAPPING, store=store_with_catalog)
        assert result.duplicates == 1
        assert result.imported == 1


class TestImportAppointments:
    MAPPING = {
        "clientEmail": "Courriel", "serviceName": "Service", "date": "Date",
        "startTime": "Début", "endTime": "Fin", "status": "Statut",
    }
    HEADER = ["Courriel", "Service", "Date", "Début", "Fin", "Statut"]

    def test_resolves_client_and_service(self, store_with_catalog):
        grid = [self.HEADER, ["JEAN.DUPONT@example.com", "consultation premium", "15/01/2024", "9:00", "", "Confirmé"]]
        result = import_appointments(grid, self.MAPPING, store=store_with_catalog)

        assert result.success is True
        appointment = store_with_catalog.appointments[0]
        assert appointment["clientId"] == 1
        assert appointment["serviceId"] == 1
        assert appointment["startTime"] == datetime(2024, 1, 15, 9, 0)
        assert appointment["endTime"] == datetime(2024, 1, 15, 10, 30)
        assert appointment["duration"] == 90
        assert appointment["status"] == "confirmed"

    def test_service_matched_by_containment(self, store_with_catalog):
        grid = [self.HEADER, ["jean.dupont@example.com", "Coupe homme", "2024-01-15", "10:00", "10:45", ""]]
        result = import_appointments(grid, self.MAPPING, store=store_with_catalog)

        assert result.imported == 1
        appointment = store_with_catalog.appointments[0]
        assert appointment["serviceId"] == 2
        assert appointment["duration"] == 45
        assert appointment["status"] == "pending"

    def test_unknown_client_is_an_error(self, store_with_catalog):
        grid = [self.HEADER, ["inconnu@example.com", "Coupe", "2024-01-15", "10:00", "", ""]]
        result = import_appointments(grid, self.MAPPING, store=store_with_catalog)

        assert result.imported == 0
        assert result.errors == ['Ligne 2: Client "inconnu@example.com" non trouvé']

    def test_unknown_service_is_a_warning(self, store_with_catalog):
        grid = [self.HEADER, ["jean.dupont@example.com", "Massage", "2024-01-15", "10:00", "", ""]]
        result = import_appointments(grid, self.MAPPING, store=store_with_catalog)

        assert result.success is True
        assert result.imported == 1
        assert result.warnings == [
            'Ligne 2: Service "Massage" non trouvé, rendez-vous importé sans service'
        ]
        appointment = store_with_catalog.appointments[0]
        assert appointment["serviceId"] is None
        assert appointment["duration"] == 60

    def test_detected_mapping_without_end_time_column(self):
        store = FakeStore(
            clients=[{"id": 1, "email": "jean@test.com"}],
            services=[{"id": 1, "name": "Massage", "duration": 60}],
        )
        grid = [["Courriel", "Service", "Date", "Heure"], ["jean@test.com", "Massage", "2024-01-15", "09:00"]]

        result = import_appointments(grid, detect_import_mapping(grid, APPOINTMENT_COLUMNS), store=store)

        assert result.errors == []
        assert result.imported == 1
        appointment = store.appointments[0]
        assert appointment["endTime"] == datetime(2024, 1, 15, 10, 0)
        assert appointment["notes"] == ""
        assert appointment["sendConfirmation"] is False

    def test_end_before_start_is_an_error(self, store_with_catalog):
        grid = [self.HEADER, ["jean.dupont@example.com", "Coupe", "2024-01-15", "10:00", "09:00", ""]]
        result = import_appointments(grid, self.MAPPING, store=store_with_catalog)

        assert result.imported == 0
        assert result.errors == ["Ligne 2: L'heure de fin doit être après l'heure de début"]

    def test_invalid_date_is_an_error(self, store_with_catalog):
        grid = [self.HEADER, ["jean.dupont@example.com", "Coupe", "demain", "10:00", "", ""]]
        result = import_appointments(grid, self.MAPPING, store=store_with_catalog)
        assert result.errors == ["Ligne 2: Date invalide (demain)"]


class TestValidateData:
    def test_report_counts(self):
        grid = [
            ["Nom", "Prenom", "Email"],
            ["", "", "marie@test.com"],
            ["Martin", "Jean", "pas-un-courriel"],
            ["", "", ""],
        ]
        report = validate_data(grid, CLIENT_MAPPING, "clients")

        assert report.total_rows == 3
        assert len(report.valid_rows) == 1
        assert report.invalid_count == 1
        assert report.skipped == 1
        assert report.errors == ["Ligne 2: Prénom requis", "Ligne 2: Nom du famille requis"]
        assert len(report.warnings) == 1
        assert report.to_dict()["valid_count"] == 1


class TestImportResult:
    def test_to_dict(self):
        result = ImportResult(imported=2, errors=["Ligne 3: x"]).finalize()
        assert result.to_dict() == {
            "success": False,
            "imported": 2,
            "errors": ["Ligne 3: x"],
            "warnings": [],
            "skipped": 0,
            "duplicates": 0,
        }

    def test_import_data_dispatch(self, fake_store):
        grid = [["Nom du service"], ["Massage"]]
        result = import_data("services", grid, {"name": "Nom du service"}, store=fake_store)
        assert result.imported == 1
