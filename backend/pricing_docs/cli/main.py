"""CLI entrypoint for the document pipeline service."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

import requests
import typer

app = typer.Typer(name="pdocs", help="Document ingestion and retrieval command-line interface")
docs_app = typer.Typer(name="docs", help="Manage indexed documents")
app.add_typer(docs_app, name="docs")

DEFAULT_HOST = "http://127.0.0.1:8000"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("PDOCS_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(method: str, path: str, owner: int, host: Optional[str] = None, **kwargs) -> requests.Response:
    url = f"{_resolve_host(host)}{path}"
    headers = {"X-Owner-Id": str(owner)}
    resp = requests.request(method, url, headers=headers, timeout=600, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _echo(resp: requests.Response) -> None:
    typer.echo(json.dumps(resp.json(), indent=2))


OwnerOption = typer.Option(..., "--owner", envvar="PDOCS_OWNER", help="Owner identity of the documents")
HostOption = typer.Option(None, "--host", help="Override backend host")


@app.command()
def ingest(
    path: Path = typer.Argument(..., help="Stored upload to index"),
    name: Optional[str] = typer.Option(None, "--name", help="Display name (defaults to the file name)"),
    file_type: Optional[str] = typer.Option(None, "--type", help="Declared file type (defaults to the extension)"),
    owner: int = OwnerOption,
    host: Optional[str] = HostOption,
) -> None:
    """Extract, chunk and embed one file."""
    body = {"path": str(path.expanduser()), "original_name": name, "file_type": file_type}
    resp = _request("POST", "/ingest", owner, host=host, json=body)
    payload = resp.json()
    typer.echo(json.dumps(payload, indent=2))
    if payload["chunks_embedded"] < payload["chunks_total"]:
        typer.echo(
            f"Warning: only {payload['chunks_embedded']} of {payload['chunks_total']} chunks are searchable",
            err=True,
        )


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    top_k: int = typer.Option(5, "--top-k", min=1, max=50, help="Number of hits to return"),
    owner: int = OwnerOption,
    host: Optional[str] = HostOption,
) -> None:
    """Rank indexed chunks by similarity to the query."""
    _echo(_request("POST", "/search", owner, host=host, json={"query": query, "top_k": top_k}))


@app.command()
def get(
    document_id: str = typer.Argument(..., help="Document identifier"),
    chunk_id: Optional[str] = typer.Option(None, "--chunk", help="Fetch a single chunk"),
    owner: int = OwnerOption,
    host: Optional[str] = HostOption,
) -> None:
    """Print a document's text, or one of its chunks."""
    params = {"chunk_id": chunk_id} if chunk_id else None
    resp = _request("GET", f"/docs/{document_id}/content", owner, host=host, params=params)
    typer.echo(resp.json()["content"])


@app.command()
def reindex(
    document_id: str = typer.Argument(..., help="Document identifier"),
    owner: int = OwnerOption,
    host: Optional[str] = HostOption,
) -> None:
    """Regenerate all chunks and embeddings of a document."""
    _echo(_request("POST", f"/docs/{document_id}/reindex", owner, host=host))


@docs_app.command("list")
def list_documents(
    owner: int = OwnerOption,
    host: Optional[str] = HostOption,
) -> None:
    """List indexed documents with their coverage."""
    _echo(_request("GET", "/docs", owner, host=host))


@docs_app.command("delete")
def delete_document(
    document_id: str = typer.Argument(..., help="Document identifier"),
    owner: int = OwnerOption,
    host: Optional[str] = HostOption,
) -> None:
    """Delete a document, its chunks and its stored file."""
    _echo(_request("DELETE", f"/docs/{document_id}", owner, host=host))


if __name__ == "__main__":
    app()
