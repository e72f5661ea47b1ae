"""Command-line interface for trying extraction on local files."""

import json
import mimetypes
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from upload_extractor.config import ExtractorConfig
from upload_extractor.exceptions import ConfigurationError
from upload_extractor.extractor import PdfExtractor
from upload_extractor.handler import DocumentHandler
from upload_extractor.logger import request_context, setup_logging

app = typer.Typer(
    name="upload-extractor",
    help="Extract prompt-ready text from uploaded documents",
    add_completion=False,
)
console = Console()


def _load_config(max_pages: Optional[int], max_chars: Optional[int]) -> ExtractorConfig:
    try:
        return ExtractorConfig.from_env().with_limits(max_pages, max_chars)
    except ConfigurationError as e:
        console.print(f"[red]✗[/red] Invalid configuration: {e}")
        raise typer.Exit(2)


@app.command()
def extract(
    file_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to extract"),
    mime_type: Optional[str] = typer.Option(
        None, "--mime-type", "-m", help="Declared MIME type (guessed from extension if omitted)"
    ),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", help="PDF page limit"),
    max_chars: Optional[int] = typer.Option(None, "--max-chars", help="Output character cap"),
    preview: int = typer.Option(1000, "--preview", "-p", help="Characters of text to print"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
):
    """Extract text from FILE_PATH and show how it was produced."""
    setup_logging(log_level)

    declared = mime_type or mimetypes.guess_type(file_path.name)[0] or ""
    handler = DocumentHandler(config=_load_config(max_pages, max_chars))
    with request_context():
        result = handler.extract_document(file_path.read_bytes(), declared)

    if as_json:
        typer.echo(
            json.dumps(
                {
                    "mime_type": result.mime_type,
                    "method": result.method.value,
                    "ocr_used": result.ocr_used,
                    "ocr_attempted": result.ocr_attempted,
                    "character_count": result.character_count,
                    "truncated": result.truncated,
                    "pages_processed": result.pages_processed,
                    "total_pages": result.total_pages,
                    "is_sentinel": result.is_sentinel,
                    "text": result.text[:preview],
                }
            )
        )
        return

    table = Table(title=file_path.name)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("MIME type", result.mime_type or "-")
    table.add_row("Method", result.method.value)
    table.add_row("OCR used", "yes" if result.ocr_used else "no")
    table.add_row("Characters", str(result.character_count))
    table.add_row("Truncated", "yes" if result.truncated else "no")
    table.add_row("Pages", f"{result.pages_processed}/{result.total_pages}")
    console.print(table)

    if result.is_sentinel:
        console.print(f"[yellow]![/yellow] {result.text}")
    else:
        console.print(result.text[:preview], markup=False, highlight=False)


@app.command()
def metadata(
    file_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="PDF file"),
):
    """Show PDF document info without extracting text."""
    info = PdfExtractor().read_metadata(file_path.read_bytes())
    if info.page_count == 0:
        console.print("[red]✗[/red] Could not read PDF metadata")
        raise typer.Exit(1)

    table = Table(title=file_path.name)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field_name, value in vars(info).items():
        table.add_row(field_name, "-" if value is None else str(value))
    console.print(table)


if __name__ == "__main__":
    app()
