"""Reindex commands - show and repair category index listings."""

from datetime import date
from pathlib import Path

from rich.console import Console
from rich.syntax import Syntax

from ..audit_log import CreationSummary, ErasureCost
from ..errors import FileStoreError, PolicyError
from ..planning import ReindexPlan, ReindexResult
from ..policy import load_policy
from ..store import FileStore, LocalFileStore
from ..vault.index_sync import compute_drift, upsert_listing
from ..vault.loader import Vault, load_vault
from ..vault.parser import update_frontmatter_fields
from ..vault.rules import EXIT_DRIFT, EXIT_ERROR, EXIT_OK


def _find_index(vault: Vault, category: str):
    entry = vault.categories.get(category.strip("/"))
    if entry is None or entry.index_id is None:
        return None
    return vault.get(entry.index_id)


def compute_reindex_plan(vault_path: Path, category: str, store: FileStore | None = None) -> ReindexPlan:
    """
    Compute the corrected listing of one category index without writing.

    Raises:
        ValueError: the category has no index document
    """
    store = store or LocalFileStore(vault_path)
    vault = load_vault(store, load_policy(vault_path))
    category = category.strip("/")

    index = _find_index(vault, category)
    if index is None:
        raise ValueError(f"No index document for category '{category}'")

    drift = compute_drift(vault, index)
    existing = store.read(index.path)
    updated = existing
    if drift is not None:
        updated = upsert_listing(existing, drift.expected.render())
        updated = update_frontmatter_fields(updated, {"date-updated": date.today().isoformat()})

    return ReindexPlan(
        vault_path=vault_path,
        category=category,
        index_path=index.path,
        drift=drift,
        existing_content=existing,
        updated_content=updated,
    )


def execute_reindex_plan(plan: ReindexPlan, store: FileStore | None = None) -> ReindexResult:
    """
    Write the planned listing, then re-check the index for drift.
    """
    store = store or LocalFileStore(plan.vault_path)
    if plan.index_path is None:
        return ReindexResult(success=False, error=f"No index document for category '{plan.category}'")
    if not plan.has_changes:
        return ReindexResult(success=True, index_path=plan.index_path)

    store.write(plan.index_path, plan.updated_content)

    vault = load_vault(store, load_policy(plan.vault_path))
    index = _find_index(vault, plan.category)
    remaining = compute_drift(vault, index) if index is not None else None

    result = ReindexResult(
        erased=ErasureCost(files=1, bytes_erased=len(plan.existing_content.encode("utf-8"))),
        created=CreationSummary(files=1, bytes_written=len(plan.updated_content.encode("utf-8"))),
        index_path=plan.index_path,
        remaining_drift=remaining,
    )
    if remaining is not None:
        result.success = False
        result.error = f"Listing still differs after rewrite: {remaining.summary()}"
    return result


def _print_drift(console: Console, plan: ReindexPlan) -> None:
    console.print(f"Index {plan.index_path} is stale: {plan.drift.summary()}", style="yellow")
    diff_text = plan.drift.unified_diff()
    if diff_text:
        console.print(Syntax(diff_text, "diff", theme="ansi_dark", word_wrap=True))


def run_reindex(vault_path: Path, category: str) -> int:
    """Show drift between a category index and its documents.

    Returns:
        Exit code (0 = up to date, 3 = drift, 1 = no index or unreadable vault)
    """
    console = Console(stderr=True)
    try:
        plan = compute_reindex_plan(vault_path, category)
    except (ValueError, FileStoreError, PolicyError) as e:
        console.print(str(e), style="bold red")
        return EXIT_ERROR

    if plan.drift is None:
        console.print(f"Index {plan.index_path} is up to date", style="green")
        return EXIT_OK
    _print_drift(console, plan)
    return EXIT_DRIFT


def run_apply_reindex(vault_path: Path, category: str, dry_run: bool = False) -> int:
    """Rewrite the generated listing of a category index.

    Returns:
        Exit code (0 = success, 1 = failure)
    """
    console = Console(stderr=True)

    # Phase 1: compute, no side effects
    try:
        plan = compute_reindex_plan(vault_path, category)
    except (ValueError, FileStoreError, PolicyError) as e:
        console.print(str(e), style="bold red")
        return EXIT_ERROR

    if dry_run:
        console.print("\n[bold]DRY RUN[/bold] - No changes will be made\n")
        console.print(plan.summary())
        if plan.drift is not None:
            _print_drift(console, plan)
        return EXIT_OK

    if not plan.has_changes:
        console.print(f"Index {plan.index_path} is up to date", style="green")
        return EXIT_OK

    # Phase 2: execute
    try:
        result = execute_reindex_plan(plan)
    except FileStoreError as e:
        console.print(str(e), style="bold red")
        return EXIT_ERROR

    result.log_to_audit(
        vault_path,
        "apply-reindex",
        metadata={
            "category": plan.category,
            "index_path": plan.index_path,
            "added": [e.doc_id for e in plan.drift.missing],
            "removed": [e.doc_id for e in plan.drift.extra],
            "updated": [e.doc_id for e, _ in plan.drift.changed],
        },
    )

    if not result.success:
        console.print(str(result.error), style="red")
        return EXIT_ERROR
    console.print(f"Index {plan.index_path} updated", style="green")
    return EXIT_OK
