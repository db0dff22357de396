"""
docstore CLI.

Developer commands for inspecting schemas and running queries against an
in-memory store seeded from JSON:
- resources: Show resources, fields and relations
- query:     Run find_all with filters, ordering, paging and includes
- aggregate: Run an aggregation pipeline
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from docstore.config import StoreConfig
from docstore.errors import DocstoreError
from docstore.runtime.logging import setup_logging
from docstore.runtime.registry import SchemaRegistry, foreign_key_field
from docstore.runtime.store import DocumentStore
from docstore.schema_loader import load_schema
from docstore.specs.resource import Cardinality, ResourceSpec

app = typer.Typer(
    help="Embedded document store developer tools",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Engine log level (DEBUG, INFO, WARNING, ERROR)",
    ),
) -> None:
    """Embedded document store developer tools."""
    setup_logging(level=log_level)


def _parse_json_option(value: str | None, option: str) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON for {option}: {e}[/red]")
        raise typer.Exit(1)


def _read_seed(path: Path | None) -> dict[str, list[dict[str, Any]]]:
    if path is None:
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Failed to read seed data {path}: {e}[/red]")
        raise typer.Exit(1)
    if not isinstance(data, dict):
        console.print("[red]Seed data must be a JSON object of resource -> records[/red]")
        raise typer.Exit(1)
    return data


def _foreign_keys(resource: ResourceSpec) -> set[str]:
    return {foreign_key_field(r) for r in resource.relations if r.cardinality == Cardinality.ONE}


async def _seed(store: DocumentStore, data: dict[str, list[dict[str, Any]]]) -> None:
    """
    Create seed records in file order.

    A record's ``id`` is an alias: foreign keys in later records that
    reference the alias are rewritten to the generated ``_id``.
    """
    aliases: dict[str, str] = {}
    for resource_name, records in data.items():
        foreign_keys = _foreign_keys(store.registry.get_resource(resource_name))
        for record in records:
            values = dict(record)
            alias = values.pop("id", None)
            values.pop("_id", None)
            for key in foreign_keys & values.keys():
                if isinstance(values[key], str):
                    values[key] = aliases.get(values[key], values[key])
            created = await store.create(resource_name, values)
            if alias is not None:
                aliases[str(alias)] = created["_id"]


def _open_store(schema_path: Path) -> DocumentStore:
    try:
        schema = load_schema(schema_path)
    except DocstoreError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)
    return DocumentStore(schema, StoreConfig(in_memory=True, database=schema.name))


def _echo_json(value: Any) -> None:
    typer.echo(json.dumps(value, indent=2, default=str))


@app.command(name="resources")
def resources_command(
    schema_path: Path = typer.Argument(..., help="Schema file (YAML or JSON)"),
) -> None:
    """Show resources, fields and relations of a schema."""
    store = _open_store(schema_path)
    registry: SchemaRegistry = store.registry

    table = Table(title=f"Resources ({store.schema.name} {store.schema.version})")
    table.add_column("Resource", style="cyan")
    table.add_column("Fields")
    table.add_column("Relations")
    table.add_column("Inverse")

    for name in registry.resource_names:
        resource = registry.get_resource(name)
        fields = ", ".join(f"{f.name}{'' if f.required else '?'}: {f.type.value}" for f in resource.fields)
        relations = ", ".join(
            f"{r.name} -> {r.to}{'[]' if r.cardinality == Cardinality.MANY else ''}"
            for r in resource.relations
        )
        inverse = ", ".join(
            f"{i.name} <- {i.source_resource}" for i in registry.get_inverse_relations(name).values()
        )
        table.add_row(name, fields or "-", relations or "-", inverse or "-")

    console.print(table)


@app.command(name="query")
def query_command(
    schema_path: Path = typer.Argument(..., help="Schema file (YAML or JSON)"),
    resource: str = typer.Argument(..., help="Resource to query"),
    data: Path | None = typer.Option(None, "--data", "-d", help="Seed data JSON (resource -> records)"),
    where: str | None = typer.Option(None, "--where", "-w", help="Filter as JSON"),
    order_by: str | None = typer.Option(None, "--order-by", "-o", help='Ordering as JSON, e.g. {"value": "desc"}'),
    limit: int | None = typer.Option(None, "--limit", help="Maximum number of records"),
    offset: int | None = typer.Option(None, "--offset", help="Records to skip"),
    include: list[str] | None = typer.Option(None, "--include", "-i", help="Relation to include (repeatable)"),
) -> None:
    """Run a query against seeded in-memory data and print the results as JSON."""
    store = _open_store(schema_path)
    seed = _read_seed(data)
    where_value = _parse_json_option(where, "--where")
    order_value = _parse_json_option(order_by, "--order-by")

    async def _query() -> list[dict[str, Any]]:
        await store.connect()
        try:
            await _seed(store, seed)
            return await store.find_all(
                resource,
                where=where_value,
                order_by=order_value,
                limit=limit,
                offset=offset,
                include=include or None,
            )
        finally:
            await store.disconnect()

    try:
        results = asyncio.run(_query())
    except DocstoreError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    _echo_json(results)


@app.command(name="aggregate")
def aggregate_command(
    schema_path: Path = typer.Argument(..., help="Schema file (YAML or JSON)"),
    resource: str = typer.Argument(..., help="Resource to aggregate"),
    pipeline: str = typer.Argument(..., help="Pipeline as a JSON array of stages"),
    data: Path | None = typer.Option(None, "--data", "-d", help="Seed data JSON (resource -> records)"),
) -> None:
    """Run an aggregation pipeline against seeded in-memory data."""
    store = _open_store(schema_path)
    seed = _read_seed(data)
    stages = _parse_json_option(pipeline, "PIPELINE")
    if not isinstance(stages, list):
        console.print("[red]Pipeline must be a JSON array of stages[/red]")
        raise typer.Exit(1)

    async def _aggregate() -> list[dict[str, Any]]:
        await store.connect()
        try:
            await _seed(store, seed)
            return await store.aggregate(resource, stages)
        finally:
            await store.disconnect()

    try:
        results = asyncio.run(_aggregate())
    except DocstoreError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    _echo_json(results)


if __name__ == "__main__":
    app()
