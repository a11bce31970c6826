"""
Tests for column auto-detection.
"""

from rendezvous.domain.imports.columns import (
    APPOINTMENT_COLUMNS,
    CLIENT_COLUMNS,
    SERVICE_COLUMNS,
    ImportColumn,
)
from rendezvous.domain.imports.mapper import (
    MATCH_THRESHOLD,
    detect_columns,
    detect_import_mapping,
    drop_shared_optional_headers,
    levenshtein_distance,
    missing_required_columns,
    normalize_header,
    resolve_column_indexes,
    score_columns,
    similarity_score,
)


class TestNormalization:
    def test_normalize_header(self):
        assert normalize_header("  Prénom ") == "prenom"
        assert normalize_header("Code_Postal") == "code postal"
        assert normalize_header("e-mail") == "e mail"
        assert normalize_header(None) == ""

    def test_levenshtein_distance(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0


class TestSimilarityScore:
    def test_exact_match_ignores_case_and_accents(self):
        assert similarity_score("PRENOM", "prénom") == 1.0

    def test_containment(self):
        assert similarity_score("Adresse email", "email") == 0.8
        assert similarity_score("tel", "téléphone") == 0.8

    def test_edit_distance(self):
        score = similarity_score("telephon", "telefone")
        assert 0 < score < 0.8

    def test_empty_values(self):
        assert similarity_score("", "email") == 0.0


class TestDetectColumns:
    def test_detects_french_headers(self):
        grid = [["Prénom", "Nom de famille", "Adresse email", "Téléphone", "Code postal"]]
        mapping = detect_columns(grid, CLIENT_COLUMNS)

        assert mapping["firstName"] == "Prénom"
        assert mapping["lastName"] == "Nom de famille"
        assert mapping["email"] == "Adresse email"
        assert mapping["phone"] == "Téléphone"
        assert mapping["postalCode"] == "Code postal"

    def test_detects_partial_headers(self):
        grid = [["nom", "email", "tel"]]
        mapping = detect_columns(grid, CLIENT_COLUMNS)

        assert mapping["lastName"] == "nom"
        assert mapping["email"] == "email"
        assert mapping["phone"] == "tel"

    def test_exact_keyword_match_is_case_insensitive(self):
        grid = [["COURRIEL", "VILLE"]]
        mapping = detect_columns(grid, CLIENT_COLUMNS)
        assert mapping["email"] == "COURRIEL"
        assert mapping["city"] == "VILLE"

    def test_unrelated_headers_are_not_mapped(self):
        column = ImportColumn(key="zzz", label="zzz", keywords=("qqq",))
        mapping = detect_columns([["abcdefgh", "uvwxy"]], [column])
        assert mapping == {}

    def test_empty_grid(self):
        assert detect_columns([], CLIENT_COLUMNS) == {}

    def test_blank_headers_are_ignored(self):
        mapping = detect_columns([["", None, "Ville"]], CLIENT_COLUMNS)
        assert mapping["city"] == "Ville"
        assert "" not in mapping.values()

    def test_keeps_original_header_text(self):
        mapping = detect_columns([["  Durée (minutes) ", "Nom du service"]], SERVICE_COLUMNS)
        assert mapping["duration"] == "Durée (minutes)"
        assert mapping["name"] == "Nom du service"

    def test_appointment_headers(self):
        grid = [["Courriel du client", "Service", "Date", "Heure de début", "Heure de fin"]]
        mapping = detect_columns(grid, APPOINTMENT_COLUMNS)
        assert mapping["clientEmail"] == "Courriel du client"
        assert mapping["serviceName"] == "Service"
        assert mapping["date"] == "Date"
        assert mapping["startTime"] == "Heure de début"
        assert mapping["endTime"] == "Heure de fin"


class TestScoresAndResolution:
    def test_score_columns_reports_every_column(self):
        scores = score_columns([["Prénom", "xyz"]], CLIENT_COLUMNS)
        assert set(scores) == {column.key for column in CLIENT_COLUMNS}
        assert scores["firstName"] == {"header": "Prénom", "score": 1.0, "accepted": True}
        assert all(
            entry["accepted"] == (entry["header"] is not None and entry["score"] > MATCH_THRESHOLD)
            for entry in scores.values()
        )

    def test_missing_required_columns(self):
        missing = missing_required_columns({"firstName": "Prénom", "lastName": "  "}, CLIENT_COLUMNS)
        assert [column.key for column in missing] == ["lastName"]

    def test_resolve_column_indexes(self):
        grid = [["Nom", "Prenom", "Email"]]
        indexes = resolve_column_indexes(grid, {"lastName": "Nom", "firstName": "prénom", "email": "Absent"})
        assert indexes == {"lastName": 0, "firstName": 1}


class TestImportMapping:
    GRID = [["Courriel", "Service", "Date", "Heure"], ["jean@test.com", "Massage", "2024-01-15", "09:00"]]

    def test_optional_columns_give_up_shared_headers(self):
        assert detect_columns(self.GRID, APPOINTMENT_COLUMNS)["endTime"] == "Heure"

        mapping = detect_import_mapping(self.GRID, APPOINTMENT_COLUMNS)

        assert mapping == {
            "clientEmail": "Courriel",
            "serviceName": "Service",
            "date": "Date",
            "startTime": "Heure",
        }

    def test_best_optional_claimant_keeps_header(self):
        columns = [ImportColumn(key="summary", label="Résumé"), ImportColumn(key="notes", label="Notes")]
        mapping = drop_shared_optional_headers({"summary": "Notes", "notes": "Notes"}, columns)
        assert mapping == {"notes": "Notes"}

    def test_required_columns_keep_shared_headers(self):
        columns = [
            ImportColumn(key="first", label="Nom", required=True),
            ImportColumn(key="second", label="Nom complet", required=True),
        ]
        mapping = {"first": "Nom", "second": "Nom"}
        assert drop_shared_optional_headers(mapping, columns) == mapping

    def test_distinct_headers_are_untouched(self):
        mapping = {"lastName": "Nom", "firstName": "Prenom", "email": "Email"}
        assert drop_shared_optional_headers(mapping, CLIENT_COLUMNS) == mapping
