from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .config import Settings
from .errors import NodiError
from .graph import query as graph_query
from .graph import sqlite_graph
from .graph.build import build_index
from .index import sqlite_store


app = typer.Typer(add_completion=False, help="nodi: index [[wiki-links]] between markdown documents.")
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log per-document detail"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


def _db_for(root: Path, db: Path | None, settings: Settings) -> Path:
    return db if db is not None else settings.db_path_for(root)


def _open_existing(root: Path, db: Path | None, settings: Settings):
    path = _db_for(root, db, settings)
    if not path.exists():
        console.print(f"No index found at {path}", style="red", markup=False)
        console.print(f"Run: `nodi index {root}`", style="yellow", markup=False)
        raise typer.Exit(code=2)
    return sqlite_store.connect(path)


@app.command()
def index(
    path: Path = typer.Argument(..., exists=True, file_okay=False, dir_okay=True, help="Directory to index"),
    db: Path | None = typer.Option(None, "--db", help="Index DB path (default: <path>/.nodi/index.sqlite)"),
    extension: str | None = typer.Option(None, "--extension", help="Document extension"),
    chunk_size: int | None = typer.Option(None, "--chunk-size", min=1, help="Read size in bytes"),
    strict: bool = typer.Option(
        False, "--strict", help="Fail on unterminated [[ references instead of dropping them"
    ),
):
    """Generate an index over the markdown files at PATH (full rebuild)."""
    settings = Settings()
    db_path = _db_for(path, db, settings)

    conn = sqlite_store.connect(db_path)
    try:
        res = build_index(
            conn=conn,
            root=path,
            extension=extension or settings.extension,
            chunk_size=chunk_size or settings.chunk_size,
            hash_name=settings.hash_name,
            encoding=settings.encoding,
            strict_references=strict or settings.strict_references,
        )
    except NodiError as e:
        console.print(f"Indexing failed: {e}", style="red", markup=False)
        raise typer.Exit(code=1)
    finally:
        conn.close()

    console.print(f"Documents indexed: {res.documents_indexed}")
    console.print(f"References found: {res.references_found}")
    console.print(f"Links written: {res.edges_written}")
    if res.discarded_references:
        console.print(f"Unterminated references dropped: {res.discarded_references}", style="yellow")
    console.print(f"Index: {db_path}", markup=False)


def _print_links(title: str, res: dict) -> None:
    table = Table(title=title)
    table.add_column("#", justify="right", width=4)
    table.add_column("document")
    table.add_column("reference")
    for i, link in enumerate(res["links"], start=1):
        table.add_row(Text(str(i)), Text(link["path"]), Text(f"[[{link['reference'] or ''}]]"))
    console.print(table)


@app.command()
def links(
    path: Path = typer.Argument(..., exists=True, file_okay=False, dir_okay=True),
    name: str = typer.Argument(..., help="Reference name or stored path of the document"),
    db: Path | None = typer.Option(None, "--db"),
):
    """Show the documents NAME links to."""
    settings = Settings()
    conn = _open_existing(path, db, settings)
    try:
        res = graph_query.links_from(conn, name)
    except NodiError as e:
        console.print(str(e), style="red", markup=False)
        raise typer.Exit(code=1)
    finally:
        conn.close()

    _print_links(f"Links from {res['document'].path}", res)


@app.command()
def backlinks(
    path: Path = typer.Argument(..., exists=True, file_okay=False, dir_okay=True),
    name: str = typer.Argument(..., help="Reference name or stored path of the document"),
    db: Path | None = typer.Option(None, "--db"),
):
    """Show the documents that link to NAME."""
    settings = Settings()
    conn = _open_existing(path, db, settings)
    try:
        res = graph_query.links_to(conn, name)
    except NodiError as e:
        console.print(str(e), style="red", markup=False)
        raise typer.Exit(code=1)
    finally:
        conn.close()

    _print_links(f"Links to {res['document'].path}", res)


@app.command()
def status(
    path: Path = typer.Argument(..., exists=True, file_okay=False, dir_okay=True),
    db: Path | None = typer.Option(None, "--db"),
    show_unchanged: bool = typer.Option(False, "--show-unchanged", help="Also list unchanged documents"),
):
    """Compare the index with the documents on disk."""
    settings = Settings()
    conn = _open_existing(path, db, settings)
    try:
        st = graph_query.document_status(conn, path, chunk_size=settings.chunk_size)
    except NodiError as e:
        console.print(str(e), style="red", markup=False)
        raise typer.Exit(code=1)
    finally:
        conn.close()

    groups = [("added", st.added, "green"), ("modified", st.modified, "yellow"), ("deleted", st.deleted, "red")]
    if show_unchanged:
        groups.append(("unchanged", st.unchanged, "dim"))
    for label, paths, style in groups:
        for p in paths:
            console.print(f"{label:>9}  {p}", style=style, markup=False)

    if st.is_clean:
        console.print(f"Index is up to date ({len(st.unchanged)} documents).", style="green")
    else:
        console.print(
            f"{len(st.added)} added, {len(st.modified)} modified, {len(st.deleted)} deleted. "
            f"Run `nodi index {path}` to rebuild.",
            style="yellow",
            markup=False,
        )
        raise typer.Exit(code=1)


@app.command()
def stats(
    path: Path = typer.Argument(..., exists=True, file_okay=False, dir_okay=True),
    db: Path | None = typer.Option(None, "--db"),
):
    """Show index stats."""
    settings = Settings()
    conn = _open_existing(path, db, settings)
    try:
        sqlite_store.init_db(conn)
        sqlite_graph.init_graph(conn)
        doc_n = sqlite_store.count_documents(conn)
        link_n = sqlite_graph.count_links(conn)
        meta = sqlite_store.get_meta(conn)
    finally:
        conn.close()

    table = Table(title="nodi Stats")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Documents", str(doc_n))
    table.add_row("Links", str(link_n))
    for key in ("extension", "hash_name", "completed_at"):
        if key in meta:
            table.add_row(key, Text(meta[key]))
    console.print(table)


if __name__ == "__main__":
    app()
