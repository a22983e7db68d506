"""CLI entrypoint for vaultlint."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .policy import POLICY_FILENAME


def _auto_detect_vault(start: Path) -> Path:
    """Nearest directory holding vaultlint.toml, walking up from `start`; else `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if (p / POLICY_FILENAME).is_file():
            return p
    return cur


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(__version__, prog_name="vaultlint")
@click.option(
    "--vault",
    "-v",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help=f"Path to the vault root (defaults to the nearest directory holding {POLICY_FILENAME}, else the cwd)",
)
@click.option("--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, vault: Path | None, verbose: bool) -> None:
    """vaultlint - Schema and cross-reference checker for Markdown vaults.

    Validate frontmatter, template completeness, maturity status, links
    and category index listings.
    """
    ctx.ensure_object(dict)
    _configure_logging(verbose)
    if vault is None:
        vault = _auto_detect_vault(Path.cwd())

    if not vault.exists() or not vault.is_dir():
        raise click.BadParameter(f"Directory '{vault}' does not exist.", param_hint="--vault / -v")

    ctx.obj["vault"] = vault.resolve()


@cli.command()
@click.argument("target", required=False)
@click.option("--strict", is_flag=True, help="Treat dangling links as errors")
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.option("--jobs", "-j", type=click.IntRange(min=1), default=None, help="Worker threads (default: CPU count)")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Abandon unfinished documents after this many seconds",
)
@click.option(
    "--explain",
    "explain_rule",
    type=str,
    default=None,
    metavar="RULE_ID",
    help="Explain a specific rule and exit (e.g., --explain missing-backlink)",
)
@click.pass_context
def validate(
    ctx: click.Context,
    target: str | None,
    strict: bool,
    output_json: bool,
    jobs: int | None,
    timeout: float | None,
    explain_rule: str | None,
) -> None:
    """Check the vault, reporting findings for documents under TARGET.

    TARGET is a document or directory path relative to the vault root;
    without it the whole vault is reported. Link and index checks always
    consider the whole vault.

    Exit codes: 0 clean (or info only), 1 errors, 2 warnings only.
    """
    from .commands.validate import run_explain, run_validate

    if explain_rule:
        sys.exit(run_explain(explain_rule))

    exit_code = run_validate(
        ctx.obj["vault"],
        target=target,
        strict=strict,
        output_json=output_json,
        jobs=jobs,
        timeout=timeout,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("category")
@click.pass_context
def reindex(ctx: click.Context, category: str) -> None:
    """Show drift between CATEGORY's index listing and its documents.

    Exit codes: 0 up to date, 3 drift, 1 no index for CATEGORY.
    """
    from .commands.reindex import run_reindex

    sys.exit(run_reindex(ctx.obj["vault"], category))


@cli.command("apply-reindex")
@click.argument("category")
@click.option("--dry-run", is_flag=True, help="Show what would change without writing")
@click.pass_context
def apply_reindex(ctx: click.Context, category: str, dry_run: bool) -> None:
    """Rewrite the generated listing in CATEGORY's index document.

    Only the region between the generated-listing markers is replaced.
    The write is recorded in the audit log.
    """
    from .commands.reindex import run_apply_reindex

    sys.exit(run_apply_reindex(ctx.obj["vault"], category, dry_run=dry_run))


@cli.command("set-status")
@click.argument("document")
@click.argument("status", type=click.Choice(["seed", "growing", "evergreen"], case_sensitive=False))
@click.option("--force", is_flag=True, help="Allow a downgrade")
@click.pass_context
def set_status(ctx: click.Context, document: str, status: str, force: bool) -> None:
    """Set the maturity STATUS of DOCUMENT.

    DOCUMENT is a document id, path or wiki-link style name.
    """
    from .commands.status import run_set_status

    sys.exit(run_set_status(ctx.obj["vault"], document, status, force=force))


@cli.command()
@click.argument("document")
@click.option("--dry-run", is_flag=True, help="Show what would change without writing")
@click.pass_context
def remove(ctx: click.Context, document: str, dry_run: bool) -> None:
    """Delete DOCUMENT, unwrap links to it and resync index listings."""
    from .commands.remove import run_remove

    sys.exit(run_remove(ctx.obj["vault"], document, dry_run=dry_run))


@cli.command()
@click.argument("rule_id")
def explain(rule_id: str) -> None:
    """Explain RULE_ID, or list template contracts with "templates"."""
    from .commands.validate import run_explain

    sys.exit(run_explain(rule_id))


@cli.command()
@click.option("--last", "last_n", type=int, default=None, help="Show only the last N entries")
@click.option("--operation", type=str, default=None, help="Filter by operation (e.g., apply-reindex)")
@click.option("--json", "output_json", is_flag=True, help="Output entries as JSON")
@click.pass_context
def history(ctx: click.Context, last_n: int | None, operation: str | None, output_json: bool) -> None:
    """Show the audit log of vault writes."""
    from .commands.history import run_history

    sys.exit(run_history(ctx.obj["vault"], last_n=last_n, operation=operation, output_json=output_json))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
