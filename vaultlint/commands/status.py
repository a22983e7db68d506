"""Set-status command - manual maturity status override."""

from datetime import date
from pathlib import Path

from rich.console import Console

from ..audit_log import CreationSummary, ErasureCost
from ..errors import FileStoreError, PolicyError, StatusTransitionError
from ..models import Status
from ..planning import StatusOverridePlan, StatusOverrideResult
from ..policy import load_policy
from ..store import FileStore, LocalFileStore
from ..vault.loader import load_vault
from ..vault.maturity import transition
from ..vault.parser import update_frontmatter_fields
from ..vault.rules import EXIT_ERROR, EXIT_OK


def compute_status_plan(
    vault_path: Path,
    doc_ref: str,
    status: str,
    force: bool = False,
    store: FileStore | None = None,
) -> StatusOverridePlan:
    """
    Compute a status override without writing.

    Raises:
        ValueError: unknown document or status value
        StatusTransitionError: a downgrade without `force`
    """
    store = store or LocalFileStore(vault_path)
    target = Status.parse(status)
    if target is None:
        raise ValueError(f"Unknown status '{status}' (expected one of: {', '.join(s.value for s in Status)})")

    vault = load_vault(store, load_policy(vault_path))
    doc = vault.get(doc_ref)
    if doc is None:
        raise ValueError(f"Document not found: {doc_ref}")

    transition(doc.status, target, force=force)

    existing = store.read(doc.path)
    updated = update_frontmatter_fields(
        existing,
        {"status": target.value, "date-updated": date.today().isoformat()},
    )
    return StatusOverridePlan(
        vault_path=vault_path,
        doc_path=doc.path,
        previous=doc.status,
        target=target,
        forced=force and doc.status is not None and target.rank < doc.status.rank,
        existing_content=existing,
        updated_content=updated,
    )


def execute_status_plan(plan: StatusOverridePlan, store: FileStore | None = None) -> StatusOverrideResult:
    store = store or LocalFileStore(plan.vault_path)
    store.write(plan.doc_path, plan.updated_content)
    return StatusOverrideResult(
        erased=ErasureCost(files=1, bytes_erased=len(plan.existing_content.encode("utf-8"))),
        created=CreationSummary(files=1, bytes_written=len(plan.updated_content.encode("utf-8"))),
        doc_path=plan.doc_path,
    )


def run_set_status(vault_path: Path, doc_ref: str, status: str, force: bool = False) -> int:
    """Set the maturity status of one document.

    Promotions are always accepted; a downgrade requires `force`. Every
    override is recorded in the audit log.

    Returns:
        Exit code (0 = success, 1 = failure)
    """
    console = Console(stderr=True)

    try:
        plan = compute_status_plan(vault_path, doc_ref, status, force=force)
    except (StatusTransitionError, ValueError, FileStoreError, PolicyError) as e:
        console.print(str(e), style="bold red")
        return EXIT_ERROR

    try:
        result = execute_status_plan(plan)
    except FileStoreError as e:
        console.print(str(e), style="bold red")
        return EXIT_ERROR

    result.log_to_audit(
        vault_path,
        "status-override",
        metadata={
            "document": plan.doc_path,
            "from": plan.previous.value if plan.previous else None,
            "to": plan.target.value,
            "forced": plan.forced,
        },
    )
    previous = plan.previous.value if plan.previous else "(invalid)"
    console.print(f"{plan.doc_path}: {previous} -> {plan.target.value}", style="green")
    return EXIT_OK
