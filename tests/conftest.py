"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Callable

import pytest

from vaultlint.errors import FileStoreError
from vaultlint.store import FileStore, LocalFileStore


class MemoryStore(FileStore):
    """In-memory file store keyed by vault-relative path."""

    def __init__(self, files: dict[str, str] | None = None):
        self.files = dict(files or {})
        self.writes: list[str] = []

    def list_documents(self) -> list[str]:
        return [p for p in self.files if p.endswith(".md")]

    def read(self, path: str) -> str:
        try:
            return self.files[path]
        except KeyError:
            raise FileStoreError(f"Cannot read {path}: not found") from None

    def write(self, path: str, text: str) -> None:
        self.files[path] = text
        self.writes.append(path)

    def delete(self, path: str) -> None:
        if path not in self.files:
            raise FileStoreError(f"Cannot delete {path}: not found")
        del self.files[path]


def python_examples(count: int) -> str:
    return "\n\n".join(f"```python\nprint({i})\n```" for i in range(count))


def standard_sections(
    *,
    examples: int = 3,
    related: str = "",
    theory: str = "Binary search halves the search space on every step.",
    callouts: bool = True,
) -> dict[str, str]:
    """Sections of a complete standard document, in contract order."""
    tip = "> [!tip] Keep the input sorted.\n\n" if callouts else ""
    warning = "> [!warning] Watch for overflow in (lo + hi) / 2.\n\n" if callouts else ""
    return {
        "Summary": "Find an item in a sorted array in logarithmic time.",
        "Theory": theory,
        "Quick Reference": "- O(log n) time\n- O(1) space",
        "Examples": tip + python_examples(examples),
        "Edge Cases": warning + "Empty arrays return -1.",
        "Related Topics": related or "- None yet",
        "References": "- [Wikipedia](https://en.wikipedia.org/wiki/Binary_search_algorithm)",
    }


def render_doc(
    *,
    title: str | None = None,
    category: str = "Concepts/Algorithms",
    kind: str | None = None,
    difficulty: str | None = "intermediate",
    status: str = "seed",
    created: str = "2024-01-10",
    updated: str = "2024-02-01",
    tags: tuple[str, ...] = ("algorithms",),
    sources: tuple[str, ...] | None = ("https://en.wikipedia.org/wiki/Binary_search_algorithm",),
    sections: dict[str, str] | None = None,
    extra_body: str = "",
) -> str:
    """Raw text of a vault document."""
    lines = ["---"]
    if title is not None:
        lines.append(f"title: {title}")
    lines.append(f"category: {category}")
    if kind is not None:
        lines.append(f"kind: {kind}")
    lines.append(f"tags: [{', '.join(tags)}]")
    if difficulty is not None:
        lines.append(f"difficulty: {difficulty}")
    lines.append(f"status: {status}")
    lines.append(f"date-created: {created}")
    lines.append(f"date-updated: {updated}")
    if sources is not None:
        if sources:
            lines.append("sources:")
            lines.extend(f"  - {s}" for s in sources)
        else:
            lines.append("sources: []")
    lines.append("---")
    lines.append("")
    if title is not None:
        lines.append(f"# {title}")
        lines.append("")
    for heading, content in (standard_sections() if sections is None else sections).items():
        lines.append(f"## {heading}")
        lines.append("")
        lines.append(content)
        lines.append("")
    if extra_body:
        lines.append(extra_body)
    return "\n".join(lines)


def render_index(*, category: str, title: str = "Index", listing: str | None = None, status: str = "evergreen") -> str:
    body = "Documents in this category."
    if listing is not None:
        body += f"\n\n<!-- GENERATED: index listing -->\n{listing}\n<!-- END GENERATED -->"
    return render_doc(
        title=title,
        category=category,
        kind="index",
        difficulty=None,
        status=status,
        sources=None,
        sections={"Summary": body},
    )


@pytest.fixture
def memory_store() -> Callable[..., MemoryStore]:
    """Factory for in-memory stores."""
    return MemoryStore


@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    vault.mkdir()
    return vault


@pytest.fixture
def write_doc(vault_dir: Path) -> Callable[[str, str], Path]:
    """Write a document under the tmp vault: write_doc("Concepts/x.md", text)."""

    def _write(rel_path: str, text: str) -> Path:
        path = vault_dir / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def local_store(vault_dir: Path) -> LocalFileStore:
    return LocalFileStore(vault_dir)
