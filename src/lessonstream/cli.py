import typer
import os
import json
import time
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import load_settings
from .document_store import DocumentStore
from .errors import LessonstreamError
from .generation_service import GenerationService, create_session, finish_units, parse_content
from .models import ContentKind, GenerationRequest, resolve_kind
from .presenter import ThrottledPresenter
from .slide_markup import parse_outline_markdown
from .source_loader import SourceLoader

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Typer app
app = typer.Typer(
    name="lessonstream",
    help="Parse streamed AI output into structured lessons, quizzes, summaries and slides",
    add_completion=False
)

# Initialize console for rich output
console = Console()


def _kind_or_exit(kind: str) -> ContentKind:
    try:
        return resolve_kind(kind)
    except LessonstreamError as e:
        console.print(f"[red]Error: {str(e)}[/red]")
        raise typer.Exit(1)


def _read_file_or_exit(path: str) -> str:
    if not os.path.exists(path):
        console.print(f"[red]Error: File not found: {path}[/red]")
        raise typer.Exit(1)
    return Path(path).read_text(encoding="utf-8")


@app.command()
def parse(
    input_file: str = typer.Argument(..., help="Path to a saved AI response"),
    kind: str = typer.Option("lesson", "--kind", "-k", help="Content kind of the response"),
    target_count: Optional[int] = typer.Option(None, "--target-count", help="Fixed unit count for summaries"),
    as_json: bool = typer.Option(False, "--json", help="Print the parsed units as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")
):
    """Parse a complete AI response file"""

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    content_kind = _kind_or_exit(kind)
    content = _read_file_or_exit(input_file)
    response = parse_content(content_kind, content, target_count=target_count)

    if as_json:
        console.print_json(json.dumps(response.model_dump(mode="json")))
        return

    console.print(f"[green]✓ Parsed {len(response.units)} units using {response.strategy}[/green]")
    display_units(content_kind, response.units)


@app.command()
def replay(
    input_file: str = typer.Argument(..., help="Path to a saved AI response"),
    kind: str = typer.Option("lesson", "--kind", "-k", help="Content kind of the response"),
    chunk_size: int = typer.Option(64, "--chunk-size", help="Bytes per simulated stream fragment"),
    delay: float = typer.Option(0.0, "--delay", help="Seconds to wait between fragments"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")
):
    """Replay a saved response as a byte stream through an incremental session"""

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    content_kind = _kind_or_exit(kind)
    if not os.path.exists(input_file):
        console.print(f"[red]Error: File not found: {input_file}[/red]")
        raise typer.Exit(1)
    if chunk_size < 1:
        console.print("[red]Error: --chunk-size must be at least 1[/red]")
        raise typer.Exit(1)

    data = Path(input_file).read_bytes()
    try:
        session = create_session(content_kind)
    except LessonstreamError as e:
        console.print(f"[red]Error: {str(e)}[/red]")
        raise typer.Exit(1)

    def show_snapshot(units: List[Any]):
        provisional = sum(1 for unit in units if unit.is_provisional)
        console.print(f"[dim]  {len(units)} units ({provisional} provisional)[/dim]")

    presenter = ThrottledPresenter(show_snapshot, min_interval=load_settings().presenter_min_interval)
    for start in range(0, len(data), chunk_size):
        presenter.submit(session.feed(data[start:start + chunk_size]))
        if delay:
            time.sleep(delay)
    if not data:
        session.parse_chunk("")

    units = session.finalize()
    presenter.flush()
    console.print(f"[green]✓ Replayed {len(data)} bytes into {len(units)} units using {session.strategy}[/green]")
    display_units(content_kind, finish_units(content_kind, units))


@app.command()
def generate(
    kind: str = typer.Argument(..., help="Content kind to generate"),
    topic: str = typer.Argument(..., help="Topic of the generated content"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="PDF, text or markdown file to base the content on"),
    units: int = typer.Option(5, "--units", "-n", help="Number of pages, questions, slides or cards"),
    quizzes: Optional[int] = typer.Option(None, "--quizzes", help="Split quiz questions into this many quizzes"),
    grade_level: str = typer.Option("secondary", "--grade", help="Target grade level"),
    language: str = typer.Option("English", "--language", help="Output language"),
    outline_file: Optional[str] = typer.Option(None, "--outline", help="Markdown outline for the presentation kind"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")
):
    """Generate content with Gemini, parse it while it streams and save it"""

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    content_kind = _kind_or_exit(kind)
    settings = load_settings()

    source_text = None
    if source:
        try:
            loaded_source = SourceLoader(settings.source_max_chars).load(source)
        except (OSError, ValueError) as e:
            console.print(f"[red]Error loading source: {str(e)}[/red]")
            raise typer.Exit(1)

        source_text = loaded_source.text
        console.print(f"[green]✓ Loaded source: {loaded_source.title} ({loaded_source.total_pages} pages)[/green]")
        if loaded_source.metadata.get("author"):
            console.print(f"[dim]Author: {loaded_source.metadata['author']}[/dim]")
        if loaded_source.truncated:
            console.print(f"[yellow]⚠️ Source text truncated to {settings.source_max_chars} characters[/yellow]")

    outline: List[str] = []
    if outline_file:
        outline = parse_outline_markdown(_read_file_or_exit(outline_file))

    request = GenerationRequest(
        topic=topic,
        source_text=source_text,
        grade_level=grade_level,
        language=language,
        number_of_units=units,
        number_of_quizzes=quizzes,
        outline=outline,
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console
    ) as progress:
        task = progress.add_task(f"Generating {content_kind.value}...", total=None)

        def on_update(snapshot: List[Any]):
            progress.update(task, description=f"Generating {content_kind.value}... {len(snapshot)} units")

        service = GenerationService(settings=settings)
        response = service.generate(content_kind, request, on_update=on_update)

    if not response.success:
        console.print(f"[red]{response.message}[/red]")
        raise typer.Exit(1)

    document = response.document
    console.print(f"[green]✓ Generated in {response.processing_time:.2f} seconds[/green]")
    console.print(f"[green]✓ Saved to: {Path(settings.output_dir) / (document.id + '.json')}[/green]")
    display_units(content_kind, document.units)
    display_statistics(service.store.get_statistics(document))


def _load_document_or_exit(document: str):
    store = DocumentStore(load_settings().output_dir)
    try:
        if os.path.exists(document):
            return store, store.load_file(document)
        loaded = store.load(document)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading document: {str(e)}[/red]")
        raise typer.Exit(1)

    if loaded is None:
        console.print(f"[red]Error: Document not found: {document}[/red]")
        raise typer.Exit(1)
    return store, loaded


@app.command()
def show(
    document: str = typer.Argument(..., help="Document id or path to a document JSON file")
):
    """Show the units of a saved document"""
    _, loaded = _load_document_or_exit(document)
    console.print(f"\n[bold blue]{loaded.kind.value}: {loaded.title}[/bold blue]")
    console.print(f"[dim]Created: {loaded.created_at}[/dim]\n")
    display_units(loaded.kind, loaded.units)


@app.command()
def stats(
    document: str = typer.Argument(..., help="Document id or path to a document JSON file")
):
    """Show statistics for a saved document"""
    store, loaded = _load_document_or_exit(document)
    display_statistics(store.get_statistics(loaded))


def display_units(kind: ContentKind, units: List[Dict[str, Any]]):
    """Display a list of parsed units"""
    for unit in units:
        if kind == ContentKind.FLASHCARDS:
            console.print(f"[bold]Q: {unit['question']}[/bold]")
            console.print(f"   A: {unit['answer']}\n")
            continue

        if kind == ContentKind.PRESENTATION:
            console.print(f"[bold]{unit['sequence_number']}. {unit['id']}[/bold] layout={unit.get('layout') or 'default'}")
            if unit.get("root_image"):
                console.print(f"   Image: {unit['root_image']['query']}")
            console.print(f"   Nodes: {len(unit.get('content', []))}\n")
            continue

        marker = " [yellow](placeholder)[/yellow]" if unit.get("is_placeholder") else ""
        console.print(f"[bold]{unit['sequence_number']}. {unit['title']}[/bold]{marker}")
        console.print(f"   Type: {unit.get('unit_type', 'content')}")

        if kind == ContentKind.QUIZ:
            for index, option in enumerate(unit.get("options", [])):
                check = " ✓" if unit.get("correct_answer") == index else ""
                console.print(f"   {'ABCD'[index]}) {option}{check}")
        else:
            body = unit.get("body", "")
            preview = [line for line in body.split("\n") if line.strip()][:3]
            for line in preview:
                console.print(f"   {line[:100]}{'...' if len(line) > 100 else ''}")
        console.print()


def display_statistics(stats: Dict[str, Any]):
    """Display document statistics"""
    table = Table(title="Document Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")

    for key, value in stats.items():
        if isinstance(value, float):
            value = f"{value:.1f}"
        elif isinstance(value, dict):
            value = ", ".join(f"{k}: {v}" for k, v in value.items())
        table.add_row(key.replace("_", " ").title(), str(value))

    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Host to bind the server to"),
    port: int = typer.Option(8000, "--port", help="Port to bind the server to")
):
    """Start the FastAPI server"""

    console.print(f"[green]Starting server on {host}:{port}[/green]")

    import uvicorn
    uvicorn.run("src.lessonstream.api:app", host=host, port=port, reload=True)

if __name__ == "__main__":
    app()
