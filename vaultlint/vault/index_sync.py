"""Category index listings: generate, parse, diff and upsert.

The listing of an index document lives between START_MARKER and END_MARKER.
Everything outside the markers is authored text and is left untouched.
"""

import difflib
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from ..models import Document
from .parser import HEADING_PATTERN, TABLE_SEPARATOR_PATTERN, split_table_row
from .rules import Finding, make_finding

if TYPE_CHECKING:
    from .loader import Vault

START_MARKER = "<!-- GENERATED: index listing -->"
END_MARKER = "<!-- END GENERATED -->"

TABLE_HEADER = "| Document | Difficulty | Status |"
TABLE_SEPARATOR = "|---|---|---|"
UNSET = "-"

ENTRY_LINK_PATTERN = re.compile(r"\[\[([^\]|\\]+)(?:\\?\|([^\]]*))?\]\]")


@dataclass(frozen=True)
class ListingEntry:
    doc_id: str
    title: str
    difficulty: str
    status: str

    def row(self) -> str:
        return f"| [[{self.doc_id}\\|{self.title}]] | {self.difficulty} | {self.status} |"


@dataclass(frozen=True)
class ListingGroup:
    title: str
    entries: tuple[ListingEntry, ...] = ()


@dataclass(frozen=True)
class ListingTable:
    """Index listing for one category, grouped by subcategory."""

    category: str
    groups: tuple[ListingGroup, ...] = ()

    def entries(self) -> list[tuple[str, ListingEntry]]:
        """(group title, entry) pairs in listing order."""
        return [(g.title, e) for g in self.groups for e in g.entries]

    def render(self) -> str:
        lines: list[str] = []
        for group in self.groups:
            lines.append(f"### {group.title}")
            lines.append("")
            lines.append(TABLE_HEADER)
            lines.append(TABLE_SEPARATOR)
            lines.extend(entry.row() for entry in group.entries)
            lines.append("")
        return "\n".join(lines).strip()


def _label(value) -> str:
    return value.value.capitalize() if value is not None else UNSET


def _cell_title(title: str) -> str:
    # "|" would split the table cell; brackets would end the link alias early
    return title.replace("|", "-").replace("[", "(").replace("]", ")")


def _entry_sort_key(doc: Document) -> tuple:
    rank = doc.difficulty.rank if doc.difficulty is not None else 99
    return (rank, doc.title.lower(), doc.id)


def expected_listing(category: str, documents: Iterable[Document]) -> ListingTable:
    """Listing implied by the documents at or below `category`.

    Direct members come first under the category's own name, then one group
    per subcategory in path order. Entries are sorted by difficulty, then
    title. Index documents are never listed.
    """
    prefix = category + "/"
    leaf = category.rsplit("/", 1)[-1] if category else "Vault"
    groups: dict[str, list[Document]] = {}
    for doc in documents:
        if doc.is_index:
            continue
        if doc.category == category:
            key = ""
        elif doc.category.startswith(prefix):
            key = doc.category[len(prefix):]
        else:
            continue
        groups.setdefault(key, []).append(doc)

    result = []
    for key in sorted(groups, key=lambda k: (k != "", k.lower())):
        docs = sorted(groups[key], key=_entry_sort_key)
        entries = tuple(
            ListingEntry(
                doc_id=d.id,
                title=_cell_title(d.title),
                difficulty=_label(d.difficulty),
                status=_label(d.status),
            )
            for d in docs
        )
        result.append(ListingGroup(title=key or leaf, entries=entries))
    return ListingTable(category=category, groups=tuple(result))


def extract_region(content: str) -> str | None:
    """Text between the generated-listing markers, or None without markers."""
    if START_MARKER not in content or END_MARKER not in content:
        return None
    _, rest = content.split(START_MARKER, 1)
    region, _ = rest.split(END_MARKER, 1)
    return region.strip()


def parse_listing(category: str, text: str) -> ListingTable:
    """Parse rendered listing text back into a ListingTable."""
    groups: list[ListingGroup] = []
    title: str | None = None
    entries: list[ListingEntry] = []

    def flush() -> None:
        if title is not None:
            groups.append(ListingGroup(title=title, entries=tuple(entries)))

    for line in text.split("\n"):
        heading = HEADING_PATTERN.match(line)
        if heading and len(heading.group(1)) == 3:
            flush()
            title = heading.group(2).strip()
            entries = []
            continue
        stripped = line.strip()
        if not stripped.startswith("|") or TABLE_SEPARATOR_PATTERN.match(stripped):
            continue
        cells = split_table_row(stripped)
        if len(cells) < 3:
            continue
        link = ENTRY_LINK_PATTERN.search(cells[0])
        if not link:
            continue  # header row or free text
        doc_id = link.group(1).strip()
        entry_title = (link.group(2) or doc_id).strip()
        if title is None:
            title = ""
        entries.append(ListingEntry(doc_id=doc_id, title=entry_title, difficulty=cells[1], status=cells[2]))
    flush()
    return ListingTable(category=category, groups=tuple(groups))


def actual_listing(index: Document) -> ListingTable:
    region = extract_region(index.body)
    return parse_listing(index.category, region or "")


@dataclass
class IndexDrift:
    """Difference between the expected and the stored listing of one index."""

    category: str
    index_id: str | None
    expected: ListingTable
    actual: ListingTable
    missing: list[ListingEntry] = field(default_factory=list)
    extra: list[ListingEntry] = field(default_factory=list)
    changed: list[tuple[ListingEntry, ListingEntry]] = field(default_factory=list)  # (expected, actual)
    regrouped: list[str] = field(default_factory=list)  # ids listed under the wrong group
    reordered: bool = False

    def summary(self) -> str:
        parts = []
        if self.missing:
            parts.append(f"missing {', '.join(e.doc_id for e in self.missing)}")
        if self.extra:
            parts.append(f"unexpected {', '.join(e.doc_id for e in self.extra)}")
        if self.changed:
            parts.append(f"outdated {', '.join(e.doc_id for e, _ in self.changed)}")
        if self.regrouped:
            parts.append(f"misgrouped {', '.join(self.regrouped)}")
        if self.reordered:
            parts.append("entries out of order")
        return "; ".join(parts) or "formatting differs"

    def unified_diff(self) -> str:
        return "\n".join(
            difflib.unified_diff(
                self.actual.render().splitlines(),
                self.expected.render().splitlines(),
                fromfile=f"{self.index_id or self.category} (current)",
                tofile=f"{self.index_id or self.category} (expected)",
                lineterm="",
            )
        )


def diff(expected: ListingTable, actual: ListingTable, index_id: str | None = None) -> IndexDrift | None:
    """Compare listings; None when they are identical."""
    if expected == actual:
        return None
    exp = {e.doc_id: (g, e) for g, e in expected.entries()}
    act = {e.doc_id: (g, e) for g, e in actual.entries()}

    drift = IndexDrift(category=expected.category, index_id=index_id, expected=expected, actual=actual)
    drift.missing = [e for doc_id, (_, e) in exp.items() if doc_id not in act]
    drift.extra = [e for doc_id, (_, e) in act.items() if doc_id not in exp]
    for doc_id, (group, entry) in exp.items():
        if doc_id not in act:
            continue
        actual_group, actual_entry = act[doc_id]
        if entry != actual_entry:
            drift.changed.append((entry, actual_entry))
        if group != actual_group:
            drift.regrouped.append(doc_id)
    common_expected = [doc_id for doc_id in exp if doc_id in act]
    common_actual = [doc_id for doc_id in act if doc_id in exp]
    drift.reordered = common_expected != common_actual
    return drift


def compute_drift(vault: "Vault", index: Document) -> IndexDrift | None:
    """Drift of one index document against the current snapshot."""
    expected = expected_listing(index.category, vault.members_under(index.category))
    return diff(expected, actual_listing(index), index_id=index.id)


def index_documents(vault: "Vault") -> list[Document]:
    """Index documents, one per category (the first by id wins)."""
    return [vault.get(c.index_id) for c in vault.categories.values() if c.index_id is not None]


def check_indexes(vault: "Vault") -> list[Finding]:
    """Stale listings, plus categories no index covers."""
    results = []
    for index in index_documents(vault):
        drift = compute_drift(vault, index)
        if drift is not None:
            results.append(
                make_finding(
                    "index-stale",
                    index.path,
                    f"Listing for '{index.category}' is stale: {drift.summary()}",
                    category=index.category,
                    missing=[e.doc_id for e in drift.missing],
                    extra=[e.doc_id for e in drift.extra],
                )
            )

    indexed = {c.path for c in vault.categories.values() if c.index_id is not None}
    for category in vault.categories.values():
        if category.index_id is not None or not category.member_ids:
            continue
        parts = category.path.split("/")
        ancestors = {"/".join(parts[:i]) for i in range(1, len(parts))}
        if ancestors & indexed:
            continue
        results.append(
            make_finding(
                "missing-index",
                "",
                f"Category '{category.path}' has {len(category.member_ids)} document(s) but no index",
                category=category.path,
            )
        )
    return results


def upsert_listing(existing: str, listing: str) -> str:
    """Insert or replace the generated listing region in an index document."""
    block = START_MARKER + "\n" + (listing.rstrip() + "\n" if listing.strip() else "") + END_MARKER
    if START_MARKER in existing and END_MARKER in existing:
        before, rest = existing.split(START_MARKER, 1)
        _, after = rest.split(END_MARKER, 1)
        return before + block + after

    # No markers yet: append at the end of the document.
    return existing.rstrip() + "\n\n" + block + "\n"
