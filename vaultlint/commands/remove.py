"""Remove command - delete a document and clean up references to it."""

import re
from datetime import date
from pathlib import Path
from typing import Callable

from rich.console import Console

from ..audit_log import CreationSummary, ErasureCost
from ..errors import FileStoreError, PolicyError
from ..planning import RemovalPlan, RemovalResult
from ..policy import load_policy
from ..store import FileStore, LocalFileStore
from ..vault.graph import LinkGraph
from ..vault.index_sync import expected_listing, index_documents, upsert_listing
from ..vault.loader import Vault, load_vault
from ..vault.parser import FENCE_PATTERN, is_asset_target, update_frontmatter_fields
from ..vault.rules import EXIT_ERROR, EXIT_OK

# Same shapes as the parser's wiki-link pattern, with the parts captured.
LINK_PARTS_PATTERN = re.compile(r"!?\[\[([^\]|#\\]+)(#[^\]|\\]*)?(?:\\?\|([^\]]*))?\]\]")


def unwrap_links(text: str, matches: Callable[[str], bool]) -> tuple[str, int]:
    """Replace wiki-links whose target satisfies `matches` with plain text.

    `[[target|Alias]]` becomes `Alias`, `[[target]]` becomes `target`.
    `target#anchor` is tried whole first, since ids may contain "#".
    Fenced code blocks are left alone. Returns (new text, links unwrapped).
    """
    count = 0

    def replace(m: re.Match) -> str:
        nonlocal count
        target = m.group(1)
        if is_asset_target(target):
            return m.group(0)
        if m.group(2) and matches(target + m.group(2)):
            target += m.group(2)
        elif not matches(target):
            return m.group(0)
        count += 1
        alias = m.group(3)
        return (alias if alias and alias.strip() else target).strip()

    out = []
    fence: str | None = None
    for line in text.split("\n"):
        fm = FENCE_PATTERN.match(line)
        if fm:
            marker = fm.group(1)
            if fence is None:
                fence = marker[0] * 3
            elif marker.startswith(fence) and not fm.group(2):
                fence = None
            out.append(line)
            continue
        out.append(line if fence is not None else LINK_PARTS_PATTERN.sub(replace, line))
    return "\n".join(out), count


def compute_removal_plan(vault_path: Path, doc_ref: str, store: FileStore | None = None) -> RemovalPlan:
    """
    Plan the deletion of a document: links to it are unwrapped, and index
    listings that included it are regenerated without it.

    Raises:
        ValueError: the document does not exist
    """
    store = store or LocalFileStore(vault_path)
    vault = load_vault(store, load_policy(vault_path))
    doc = vault.get(doc_ref)
    if doc is None:
        raise ValueError(f"Document not found: {doc_ref}")

    raw = store.read(doc.path)
    plan = RemovalPlan(vault_path=vault_path, doc_id=doc.id, doc_path=doc.path, doc_size=len(raw.encode("utf-8")))

    def points_at_doc(target: str) -> bool:
        candidates = vault.resolve(target)
        return bool(candidates) and candidates[0] == doc.id

    graph = LinkGraph.build(vault)
    texts: dict[str, tuple[str, str]] = {}
    for source_id in sorted(graph.get_links_to(doc.id)):
        source = vault.get(source_id)
        existing = store.read(source.path)
        updated, count = unwrap_links(existing, points_at_doc)
        if count:
            texts[source.path] = (existing, updated)
            plan.unwrapped_links += count

    remaining = Vault(results=tuple(r for r in vault.results if r.path != doc.path))
    if not doc.is_index:
        for index in index_documents(remaining):
            if not (doc.category == index.category or doc.category.startswith(index.category + "/")):
                continue
            if index.path in texts:
                existing, current = texts.pop(index.path)
            else:
                existing = current = store.read(index.path)
            listing = expected_listing(index.category, remaining.members_under(index.category)).render()
            updated = upsert_listing(current, listing)
            updated = update_frontmatter_fields(updated, {"date-updated": date.today().isoformat()})
            plan.index_updates[index.path] = (existing, updated)

    plan.rewrites = texts
    return plan


def execute_removal_plan(plan: RemovalPlan, store: FileStore | None = None) -> RemovalResult:
    """
    Write the rewrites and index updates, then delete the document.

    The delete comes last so a failed write never leaves links pointing at
    a missing document. On failure the result lists what was written.
    """
    store = store or LocalFileStore(plan.vault_path)
    result = RemovalResult()

    written = 0
    try:
        for path, (_, updated) in sorted({**plan.rewrites, **plan.index_updates}.items()):
            store.write(path, updated)
            result.written.append(path)
            written += len(updated.encode("utf-8"))
        store.delete(plan.doc_path)
    except FileStoreError as e:
        result.success = False
        result.error = str(e)
    else:
        result.erased = ErasureCost(
            documents=1,
            links=plan.unwrapped_links,
            files=1,
            bytes_erased=plan.doc_size,
            details={"document": plan.doc_id},
        )
    result.created = CreationSummary(files=len(result.written), bytes_written=written)
    return result


def run_remove(vault_path: Path, doc_ref: str, dry_run: bool = False) -> int:
    """Delete a document, unwrap links to it and resync affected indexes.

    Returns:
        Exit code (0 = success, 1 = failure)
    """
    console = Console(stderr=True)

    try:
        plan = compute_removal_plan(vault_path, doc_ref)
    except (ValueError, FileStoreError, PolicyError) as e:
        console.print(str(e), style="bold red")
        return EXIT_ERROR

    if dry_run:
        console.print("\n[bold]DRY RUN[/bold] - No changes will be made\n")
        console.print(plan.summary(), markup=False)
        return EXIT_OK

    # Phase 2: execute. A failed write is recorded on the result and still audited.
    result = execute_removal_plan(plan)
    result.log_to_audit(
        vault_path,
        "remove-document",
        metadata={
            "document": plan.doc_path,
            "unwrapped_links": plan.unwrapped_links,
            "rewritten": sorted(plan.rewrites),
            "reindexed": sorted(plan.index_updates),
            "written": result.written,
            "completed": result.success,
        },
    )
    if not result.success:
        console.print(f"{plan.doc_path} was not removed: {result.error}", style="bold red")
        return EXIT_ERROR

    console.print(f"Removed {plan.doc_path}", style="green")
    if result.written:
        console.print(f"  Updated {len(result.written)} document(s)", style="dim")
    return EXIT_OK
