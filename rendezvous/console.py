#!/usr/bin/env python3
"""
Console interface for importing clients, services and appointments from a
spreadsheet without going through the HTTP API.
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from rendezvous.core.config import settings
from rendezvous.core.logging_config import configure_logging
from rendezvous.db.store import EntityStore
from rendezvous.domain.imports.batch import ImportProgress, import_data_batch, validate_data_batch
from rendezvous.domain.imports.columns import ENTITY_COLUMNS, get_columns
from rendezvous.domain.imports.importer import ImportResult, ValidationReport
from rendezvous.domain.imports.mapper import detect_import_mapping, missing_required_columns, score_columns
from rendezvous.domain.imports.processors.file_parser import FileParseError, parse_file

MAX_LISTED_MESSAGES = 20


class ImportConsole:
    """Runs one file import and renders each step with rich."""

    def __init__(self, console: Optional[Console] = None, store: Optional[EntityStore] = None):
        self.console = console or Console()
        self.store = store

    def print_mapping(self, entity_type: str, grid) -> dict:
        columns = get_columns(entity_type)
        mapping = detect_import_mapping(grid, columns)
        scores = score_columns(grid, columns)

        table = Table(title="Colonnes détectées")
        table.add_column("Champ", style="cyan", no_wrap=True)
        table.add_column("Colonne du fichier", style="white")
        table.add_column("Score", justify="right")
        table.add_column("Requis", justify="center")

        for column in columns:
            score = scores[column.key]
            header = mapping.get(column.key)
            table.add_row(
                column.label,
                header or "[dim]non trouvée[/dim]",
                f"{score['score']:.2f}",
                "✓" if column.required else "",
            )
        self.console.print(table)

        missing = missing_required_columns(mapping, columns)
        if missing:
            self.console.print(
                f"[yellow]Colonnes requises introuvables: {', '.join(column.label for column in missing)}[/yellow]"
            )
        return mapping

    def _print_messages(self, title: str, messages: List[str], style: str) -> None:
        if not messages:
            return
        shown = "\n".join(messages[:MAX_LISTED_MESSAGES])
        if len(messages) > MAX_LISTED_MESSAGES:
            shown += f"\n[dim]... et {len(messages) - MAX_LISTED_MESSAGES} de plus[/dim]"
        self.console.print(Panel(shown, title=f"{title} ({len(messages)})", border_style=style))

    def print_validation(self, report: ValidationReport) -> None:
        summary = (
            f"Lignes: {report.total_rows}\n"
            f"Valides: [green]{len(report.valid_rows)}[/green]\n"
            f"Invalides: [red]{report.invalid_count}[/red]\n"
            f"Vides: {report.skipped}"
        )
        self.console.print(Panel(summary, title="Validation", border_style="blue"))
        self._print_messages("Erreurs", report.errors, "red")
        self._print_messages("Avertissements", report.warnings, "yellow")

    def print_result(self, result: ImportResult) -> None:
        style = "green" if result.success else "red"
        summary = (
            f"Importés: [green]{result.imported}[/green]\n"
            f"Doublons ignorés: {result.duplicates}\n"
            f"Erreurs: [red]{len(result.errors)}[/red]\n"
            f"Avertissements: [yellow]{len(result.warnings)}[/yellow]"
        )
        self.console.print(Panel(summary, title="Résultat de l'import", border_style=style))
        self._print_messages("Erreurs", result.errors, "red")

    def run(self, entity_type: str, path: Path, dry_run: bool = False, skip_first_row: bool = True) -> int:
        """Returns a process exit code."""
        try:
            grid = parse_file(path.read_bytes(), path.name)
        except (OSError, FileParseError) as exc:
            self.console.print(Panel(f"[red]{exc}[/red]", title="Erreur", border_style="red"))
            return 1

        self.console.print(f"[bold blue]{path.name}[/bold blue]: {len(grid)} lignes lues")
        mapping = self.print_mapping(entity_type, grid)

        with Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=self.console,
        ) as progress:
            task = progress.add_task("Validation", total=None)

            def on_progress(update: ImportProgress) -> None:
                progress.update(task, description=update.message, completed=update.current, total=update.total)

            report = validate_data_batch(grid, mapping, entity_type, skip_first_row, on_progress)
            self.print_validation(report)

            if dry_run:
                return 0 if report.is_valid else 2

            if self.store is None:
                raise RuntimeError("An entity store is required to import")
            task = progress.add_task("Import", total=None)
            result = import_data_batch(report, entity_type, self.store, on_progress)

        self.print_result(result)
        return 0 if result.success else 2


def _database_store() -> EntityStore:
    from rendezvous.db.session import get_session_local, init_db
    from rendezvous.db.store import SqlAlchemyStore

    init_db()
    return SqlAlchemyStore(get_session_local()())


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Import clients, services or appointments from a CSV/Excel file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s clients clients.xlsx              # Import clients
  %(prog)s services services.csv --dry-run   # Validate only
        """,
    )
    parser.add_argument("entity_type", choices=sorted(ENTITY_COLUMNS), help="What the file contains")
    parser.add_argument("file", type=Path, help="Path to a .csv, .xlsx or .xls file")
    parser.add_argument("--dry-run", action="store_true", help="Validate without importing")
    parser.add_argument("--no-header", action="store_true", help="The first row is data, not headers")
    args = parser.parse_args(argv)

    configure_logging(settings.log_level)
    store = None if args.dry_run else _database_store()
    return ImportConsole(store=store).run(
        args.entity_type, args.file, dry_run=args.dry_run, skip_first_row=not args.no_header
    )


if __name__ == "__main__":
    sys.exit(main())
