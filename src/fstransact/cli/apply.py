"""CLI entry point for applying batch plans transactionally."""

from __future__ import annotations

import importlib
import json
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

if TYPE_CHECKING:  # pragma: no cover - typing only
    import typer
    from typer import Typer as TyperType
else:  # pragma: no cover - runtime fallback for typing
    typer = importlib.import_module("typer")
    TyperType = Any

from pydantic import ValidationError
from rich.console import Console

from fstransact.chains.batch_chain import BatchChain, BatchOptions
from fstransact.core.errors import FsTransactError
from fstransact.core.schemas import BatchPlan
from fstransact.utils.logging import configure_logging

app: TyperType = typer.Typer(help="Apply filesystem operations as one transaction.")


@app.callback()
def main() -> None:
    """Transactional filesystem operations."""


PlanArgument = Annotated[
    Path,
    typer.Argument(help="JSON batch plan to apply."),
]
BaseDirOption = Annotated[
    str | None,
    typer.Option("--base-dir", help="Override the plan's base directory."),
]
NamespaceOption = Annotated[
    str | None,
    typer.Option("--namespace", help="Override the transaction namespace."),
]
JournalDirOption = Annotated[
    Path | None,
    typer.Option("--journal-dir", help="Write a JSONL commit journal here."),
]
DryRunFlag = Annotated[
    bool,
    typer.Option("--dry-run", help="Stage every operation, then roll back."),
]
JsonFlag = Annotated[
    bool,
    typer.Option("--json", help="Emit the batch report as JSON."),
]
VerboseFlag = Annotated[
    bool,
    typer.Option("--verbose", help="Log every replay step."),
]


def apply_plan(
    plan_path: PlanArgument,
    base_dir: BaseDirOption = None,
    namespace: NamespaceOption = None,
    journal_dir: JournalDirOption = None,
    dry_run: DryRunFlag = False,
    json_output: JsonFlag = False,
    verbose: VerboseFlag = False,
) -> None:
    """Stage a batch plan in one transaction and commit it."""

    configure_logging("DEBUG" if verbose else "INFO", json_format=json_output)

    try:
        plan = BatchPlan.model_validate_json(plan_path.read_text(encoding="utf-8"))
    except OSError as exc:
        typer.secho(
            f"Cannot read plan {plan_path}: {exc}", err=True, fg=typer.colors.RED
        )
        raise typer.Exit(code=1) from exc
    except ValidationError as exc:
        typer.secho(
            f"Invalid plan {plan_path}:\n{exc}", err=True, fg=typer.colors.RED
        )
        raise typer.Exit(code=1) from exc

    # Keep stdout clean for the JSON report.
    chain = BatchChain(ui=Console(stderr=True, quiet=json_output))
    opts = BatchOptions(
        base_dir=base_dir,
        namespace=namespace,
        journal_dir=journal_dir,
        dry_run=dry_run,
    )

    try:
        report = chain.run(plan, opts)
    except FsTransactError as exc:
        typer.secho(f"Batch failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    if json_output:
        typer.echo(json.dumps(report.to_dict(), indent=2, sort_keys=True))
    else:
        color = typer.colors.RED if report.status == "failed" else typer.colors.GREEN
        typer.secho(
            f"{report.status}: {report.staged_count}/{report.total_operations} "
            "operation(s) staged",
            fg=color,
        )

    if report.status == "failed":
        raise typer.Exit(code=1)


def run_cli(args: Sequence[str] | None = None) -> None:
    app(args=args)


app.command("apply")(apply_plan)
