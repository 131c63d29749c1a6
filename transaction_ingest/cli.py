"""CLI for the ``transaction_ingest`` package.

Command handlers (``cmd_normalize``, ``cmd_derive_id``) hold the logic and
return a process exit code; the Typer commands are thin wrappers. The root
callback loads a local ``.env`` with python-dotenv, reads :class:`Settings`
and configures logging before any command runs.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import IO, Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .config import Settings
from .logging_setup import configure_logging, get_logger

logger = get_logger(__name__)

app = typer.Typer(
    name="transaction-ingest",
    help="Normalize mapped payment/donation rows into transaction records.",
    no_args_is_help=True,
)
err_console = Console(stderr=True, soft_wrap=True)


def _print_summary(accepted: int, rejected: int) -> None:
    table = Table(title="Normalization summary")
    table.add_column("Accepted", justify="right", style="green")
    table.add_column("Rejected", justify="right", style="red")
    table.add_row(str(accepted), str(rejected))
    err_console.print(table)


def _write_jsonl(records, out: IO[str]) -> None:
    for record in records:
        out.write(json.dumps(record.to_row(), sort_keys=True) + "\n")
    out.flush()


def cmd_normalize(
    rows_path: str,
    *,
    input_id: str | None = None,
    people_path: str | None = None,
    pages_path: str | None = None,
    output_path: str | None = None,
    strict: bool = False,
    settings: Settings | None = None,
) -> int:
    """Normalize every row in ``rows_path`` and write JSON Lines.

    Output goes to ``output_path`` (written to ``<path>.tmp`` and moved into
    place once complete) or to stdout. Rejected rows are reported on stderr as
    ``row <n>: invalid <field>``. The exit code is 1 when the input cannot be
    read, the output cannot be written, or ``strict`` is set and any row was
    rejected.
    """

    from .loaders import load_id_map, load_rows
    from .pipeline import normalize_rows
    from .resolvers import MappingInputResolver, MappingPersonResolver

    settings = settings or Settings.from_env()

    try:
        rows = load_rows(rows_path)
        people = load_id_map(people_path) if people_path else {}
        pages = load_id_map(pages_path) if pages_path else {}
    except FileNotFoundError as e:
        err_console.print(f"[red]Error:[/red] File not found: {e.filename}")
        return 1
    except PermissionError as e:
        err_console.print(f"[red]Error:[/red] Permission denied: {e.filename}")
        return 1
    except ValueError as e:
        # json.JSONDecodeError is a ValueError too.
        err_console.print(f"[red]Error:[/red] Failed to parse input: {e}")
        return 1
    logger.debug("loaded %d rows from %s", len(rows), rows_path)

    person_resolver = MappingPersonResolver(people) if people_path else None
    input_resolver = None
    if pages_path or input_id is not None:
        input_resolver = MappingInputResolver(by_page_name=pages, default=input_id)

    result = normalize_rows(
        rows,
        person_resolver=person_resolver,
        input_resolver=input_resolver,
        namespace=settings.id_namespace,
    )

    if output_path is None:
        _write_jsonl(result.records, sys.stdout)
    else:
        path = Path(output_path)
        tmp = path.with_name(path.name + ".tmp")
        try:
            with tmp.open("w", encoding="utf-8") as fh:
                _write_jsonl(result.records, fh)
            os.replace(tmp, path)
        except OSError as e:
            err_console.print(f"[red]Error:[/red] Cannot write {path}: {e}")
            return 1

    for failure in result.failures:
        err_console.print(f"row {failure.index}: {failure.error}", markup=False, highlight=False)
    _print_summary(len(result.records), len(result.failures))

    if strict and result.failures:
        return 1
    return 0


def cmd_derive_id(
    *,
    ts: str,
    input_id: str | None = None,
    person_id: str | None = None,
    remote_transaction_id: str | None = None,
    settings: Settings | None = None,
) -> int:
    """Print the composite id for the given key parts (no row validation)."""

    from .errors import ValidationError
    from .identity import composite_id
    from .normalizer import parse_ts

    settings = settings or Settings.from_env()
    try:
        parsed = parse_ts(ts)
    except ValidationError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        return 1

    typer.echo(
        str(
            composite_id(
                input_id=input_id,
                person_id=person_id,
                ts=parsed,
                remote_transaction_id=remote_transaction_id,
                namespace=settings.id_namespace,
            )
        )
    )
    return 0


@app.command("normalize")
def normalize_cmd(
    ctx: typer.Context,
    rows_path: Annotated[
        Path,
        typer.Option(
            "--rows-path",
            help="JSON array/object or JSON Lines file of mapped rows.",
            dir_okay=False,
        ),
    ],
    input_id: Annotated[
        str | None,
        typer.Option(help="input_id for rows whose page name is not in --pages-path."),
    ] = None,
    people_path: Annotated[
        Path | None,
        typer.Option(help="JSON object mapping remote_person_id to person_id.", dir_okay=False),
    ] = None,
    pages_path: Annotated[
        Path | None,
        typer.Option(help="JSON object mapping remote_page_name to input_id.", dir_okay=False),
    ] = None,
    output_path: Annotated[
        Path | None,
        typer.Option(help="Write JSON Lines here instead of stdout.", dir_okay=False),
    ] = None,
    strict: Annotated[
        bool, typer.Option(help="Exit with status 1 when any row is rejected.")
    ] = False,
) -> None:
    """Validate rows, derive computed fields, and emit one record per line."""

    code = cmd_normalize(
        str(rows_path),
        input_id=input_id,
        people_path=str(people_path) if people_path else None,
        pages_path=str(pages_path) if pages_path else None,
        output_path=str(output_path) if output_path else None,
        strict=strict,
        settings=ctx.obj,
    )
    if code:
        raise typer.Exit(code)


@app.command("derive-id")
def derive_id_cmd(
    ctx: typer.Context,
    ts: Annotated[str, typer.Option(help="ISO-8601 timestamp or epoch milliseconds.")],
    input_id: Annotated[str | None, typer.Option(help="Resolved input_id.")] = None,
    person_id: Annotated[str | None, typer.Option(help="Resolved person_id.")] = None,
    remote_transaction_id: Annotated[
        str | None, typer.Option(help="Remote transaction id, when the source has one.")
    ] = None,
) -> None:
    """Print the composite transaction id for a key."""

    code = cmd_derive_id(
        ts=ts,
        input_id=input_id,
        person_id=person_id,
        remote_transaction_id=remote_transaction_id,
        settings=ctx.obj,
    )
    if code:
        raise typer.Exit(code)


@app.callback()
def _root(ctx: typer.Context) -> None:
    """Load ``.env`` from the working directory, read settings, configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    try:
        settings = Settings.from_env()
    except RuntimeError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    configure_logging(settings.log_level)
    ctx.obj = settings


if __name__ == "__main__":  # pragma: no cover
    app()
