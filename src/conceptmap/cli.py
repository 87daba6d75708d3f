from __future__ import annotations

import logging
import mimetypes
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from . import documents
from .chat.llm import LLMError
from .config import Settings
from .db import open_db
from .errors import ConceptMapError
from .graph.query import get_map
from .pipeline import make_llm, process_document


app = typer.Typer(add_completion=False, help="ConceptMap: grow a per-user concept graph from your documents.")
console = Console()


@app.callback()
def main(
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)"),
):
    logging.basicConfig(
        level=log_level.upper(),
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@app.command()
def process(
    file: Path = typer.Argument(..., exists=True, file_okay=True, dir_okay=False),
    user: str = typer.Option(..., "--user", help="Owner of the graph to grow"),
    db: Path | None = typer.Option(None, "--db", help="SQLite DB path"),
    model: str | None = typer.Option(None, "--model", help="Ollama model name"),
    base_url: str | None = typer.Option(None, "--base-url", help="Ollama base URL"),
    timeout: float | None = typer.Option(None, "--timeout", help="Concept extraction timeout in seconds"),
    atomic: bool = typer.Option(False, "--atomic", help="Roll back the whole merge if any write fails"),
):
    """Process one document synchronously and merge it into the user's graph."""
    settings = Settings()
    db_path = str(db or settings.db_path)

    conn = open_db(db_path)
    try:
        guessed = mimetypes.guess_type(file.name)[0]
        doc = documents.create_document(
            conn,
            user_id=user,
            file_name=file.name,
            file_type=guessed or "application/octet-stream",
            path=str(file.resolve()),
        )
    finally:
        conn.close()

    llm = make_llm(settings, model=model, base_url=base_url, timeout_s=timeout)
    try:
        res = process_document(file, user, doc.doc_id, db_path=db_path, llm=llm, settings=settings, atomic=atomic)
    except ConceptMapError as e:
        console.print(f"Processing failed: {e}", style="red", markup=False)
        raise typer.Exit(code=1)

    for k, v in res.stats().items():
        console.print(f"{k}: {v}", markup=False)


@app.command("map")
def map_(
    user: str = typer.Option(..., "--user"),
    db: Path | None = typer.Option(None, "--db", help="SQLite DB path"),
):
    """Show a user's concepts and relationships."""
    settings = Settings()
    conn = open_db(db or settings.db_path)
    try:
        graph = get_map(conn=conn, user_id=user)
    finally:
        conn.close()

    nodes = Table(title=f"Concepts ({len(graph['nodes'])})")
    nodes.add_column("id", justify="right")
    nodes.add_column("name")
    for n in graph["nodes"]:
        nodes.add_row(Text(str(n["id"])), Text(n["name"]))
    console.print(nodes)

    edges = Table(title=f"Relationships ({len(graph['edges'])})")
    edges.add_column("id", justify="right")
    edges.add_column("source")
    edges.add_column("target")
    for e in graph["edges"]:
        edges.add_row(
            Text(str(e["id"])),
            Text(f"{e['source_name']} ({e['source_node_id']})"),
            Text(f"{e['target_name']} ({e['target_node_id']})"),
        )
    console.print(edges)


@app.command()
def files(
    user: str = typer.Option(..., "--user"),
    db: Path | None = typer.Option(None, "--db", help="SQLite DB path"),
):
    """List a user's documents and their processing status."""
    settings = Settings()
    conn = open_db(db or settings.db_path)
    try:
        docs = documents.list_documents(conn, user)
    finally:
        conn.close()

    if not docs:
        console.print("No documents.", style="yellow")
        return

    table = Table(title="Documents")
    table.add_column("id", justify="right")
    table.add_column("file")
    table.add_column("status")
    table.add_column("detail")
    for d in docs:
        style = {"done": "green", "failed": "red"}.get(d.status, "yellow")
        detail = d.error or ", ".join(f"{k}={v}" for k, v in d.stats.items() if k.endswith("created"))
        table.add_row(Text(str(d.doc_id)), Text(d.file_name), Text(d.status, style=style), Text(detail))
    console.print(table)


@app.command()
def doctor(
    db: Path | None = typer.Option(None, "--db", help="Optional DB path to check"),
    model: str | None = typer.Option(None, "--model", help="Ollama model name to check"),
    base_url: str | None = typer.Option(None, "--base-url", help="Ollama base URL"),
):
    """Check local dependencies (DB + Ollama) and print actionable fixes."""
    settings = Settings()
    llm = make_llm(settings, model=model, base_url=base_url)

    ok = True

    console.print("Ollama:")
    try:
        models = llm.list_models()
        if not models:
            console.print(f"- Server reachable at {llm.base_url} but no models are installed.", style="yellow")
            console.print(f"  Fix: `ollama pull {llm.model}`", style="yellow")
            ok = False
        else:
            console.print(f"- Server reachable at {llm.base_url} ({len(models)} model(s) installed).", style="green")
            if llm.model not in models:
                console.print(f"- Missing model: {llm.model}", style="yellow")
                console.print(f"  Fix: `ollama pull {llm.model}`", style="yellow")
                ok = False
            else:
                console.print(f"- Model OK: {llm.model}", style="green")
    except LLMError as e:
        console.print(f"- {e}", style="red")
        console.print("  Fix: start Ollama (`ollama serve`) then retry.", style="yellow")
        ok = False

    if db is not None:
        console.print("\nDB:")
        if not db.exists():
            console.print(f"- Missing DB: {db}", style="yellow")
            console.print("  It is created on the first `conceptmap process` or upload.", style="yellow")
        else:
            conn = open_db(db)
            try:
                node_n = int(conn.execute("SELECT COUNT(*) AS n FROM nodes").fetchone()["n"])
                edge_n = int(conn.execute("SELECT COUNT(*) AS n FROM edges").fetchone()["n"])
                failed_n = int(
                    conn.execute("SELECT COUNT(*) AS n FROM documents WHERE status = ?", (documents.STATUS_FAILED,)).fetchone()["n"]
                )
            finally:
                conn.close()
            console.print(f"- Nodes: {node_n}", style="green")
            console.print(f"- Edges: {edge_n}", style="green")
            if failed_n:
                console.print(f"- Failed documents: {failed_n}", style="yellow")
                console.print("  Inspect with `conceptmap files --user ...`", style="yellow")

    if not ok:
        raise typer.Exit(code=1)


@app.command()
def serve(
    db: Path | None = typer.Option(None, "--db", help="Default DB path for the server"),
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(3003, "--port"),
):
    """Run the upload/graph API (FastAPI)."""
    try:
        import uvicorn
    except ImportError:
        console.print("Missing web dependencies. Install: `pip install -e '.[web]'`", style="red")
        raise typer.Exit(code=2)

    from .web.server import create_app

    settings = Settings()
    app_ = create_app(default_db_path=str(db or settings.db_path))
    uvicorn.run(app_, host=host, port=int(port))


if __name__ == "__main__":
    app()
