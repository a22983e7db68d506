import threading
from pathlib import Path

import pytest

from conftest import MemoryStore, render_doc

from vaultlint.engine import run_validation
from vaultlint.errors import FileStoreError
from vaultlint.store import LocalFileStore
from vaultlint.vault.loader import load_vault


def test_local_store_skips_hidden_and_non_markdown(vault_dir: Path, write_doc) -> None:
    write_doc("Concepts/a.md", render_doc(category="Concepts"))
    write_doc("Concepts/notes.txt", "not a document")
    write_doc(".vaultlint/cache.md", "hidden")
    write_doc("Concepts/.draft.md", "hidden")

    assert LocalFileStore(vault_dir).list_documents() == ["Concepts/a.md"]


def test_local_store_rejects_escaping_paths(local_store: LocalFileStore) -> None:
    with pytest.raises(FileStoreError):
        local_store.read("../outside.md")


def test_missing_vault_directory(tmp_path: Path) -> None:
    with pytest.raises(FileStoreError):
        load_vault(LocalFileStore(tmp_path / "nope"))


def test_parse_failures_are_isolated() -> None:
    store = MemoryStore(
        {
            "Concepts/good.md": render_doc(category="Concepts"),
            "Concepts/bare.md": "# No frontmatter\n",
            "Concepts/poem.md": render_doc(category="Concepts", kind="poem"),
        }
    )
    vault = load_vault(store)

    assert [d.id for d in vault.documents] == ["Concepts/good"]
    rules = {f.path: f.rule for f in vault.findings if f.level == "error"}
    assert rules == {"Concepts/bare.md": "missing-frontmatter", "Concepts/poem.md": "unknown-kind"}


class FailingReadStore(MemoryStore):
    def read(self, path: str) -> str:
        if path.endswith("broken.md"):
            raise FileStoreError(f"Cannot read {path}: permission denied")
        return super().read(path)


def test_unreadable_document_is_a_finding() -> None:
    store = FailingReadStore({"Concepts/broken.md": "", "Concepts/ok.md": render_doc(category="Concepts")})
    vault = load_vault(store)
    assert [(f.path, f.rule) for f in vault.findings if f.level == "error"] == [("Concepts/broken.md", "read-error")]
    assert vault.complete


class BlockingStore(MemoryStore):
    """Reads of `slow` block until `release` is set."""

    def __init__(self, files: dict[str, str], slow: str):
        super().__init__(files)
        self.slow = slow
        self.release = threading.Event()

    def read(self, path: str) -> str:
        if path == self.slow:
            self.release.wait(timeout=10)
        return super().read(path)


def test_timeout_keeps_finished_documents() -> None:
    files = {
        "Concepts/a.md": render_doc(category="Concepts", sections={"Summary": "[[b]]"}),
        "Concepts/b.md": render_doc(category="Concepts", sections={"Summary": "[[a]]"}),
        "Concepts/c.md": render_doc(category="Concepts"),
    }
    store = BlockingStore(files, slow="Concepts/a.md")
    try:
        vault = load_vault(store, jobs=2, timeout=0.5)
    finally:
        store.release.set()

    assert not vault.complete
    assert vault.pending == ("Concepts/a.md",)
    assert [d.id for d in vault.documents] == ["Concepts/b", "Concepts/c"]


def test_timed_out_run_skips_vault_checks() -> None:
    files = {
        "Concepts/a.md": render_doc(category="Concepts", sections={"Summary": "[[missing]]"}),
        "Concepts/b.md": render_doc(category="Concepts"),
    }
    store = BlockingStore(files, slow="Concepts/b.md")
    try:
        report = run_validation(store, jobs=2, timeout=0.5)
    finally:
        store.release.set()

    rules = [f.rule for f in report.findings]
    assert "run-timeout" in rules
    assert "dangling-link" not in rules
    assert "orphaned" not in rules
    timeout = next(f for f in report.findings if f.rule == "run-timeout")
    assert timeout.data["pending"] == ["Concepts/b.md"]
    assert report.exit_code == 1


def test_target_filters_documents_but_not_vault_checks() -> None:
    files = {
        "Concepts/a.md": render_doc(category="Concepts", sections={"Summary": "[[b]]"}),
        "Concepts/b.md": render_doc(category="Concepts", sections={"Summary": "No links."}),
        "Guides/c.md": render_doc(category="Guides", sections={"Summary": "[[nowhere]]"}),
    }
    report = run_validation(MemoryStore(files), target="Concepts/b.md")

    # Vault-level findings (no path) are always reported.
    assert {f.path for f in report.findings if f.path} == {"Concepts/b.md"}
    assert "missing-backlink" in [f.rule for f in report.findings]


def test_validation_output_is_identical_across_runs() -> None:
    files = {
        "Concepts/a.md": render_doc(category="Concepts", sections={"Summary": "[[b]] [[zzz]]"}),
        "Concepts/b.md": render_doc(category="Concepts", status="evergreen"),
    }
    first = run_validation(MemoryStore(files), jobs=4)
    second = run_validation(MemoryStore(files), jobs=1)
    assert [f.to_dict() for f in first.findings] == [f.to_dict() for f in second.findings]


def test_impossible_date_is_isolated_to_its_document() -> None:
    files = {
        "Concepts/good.md": render_doc(category="Concepts"),
        "Concepts/bad.md": render_doc(category="Concepts", created="2024-02-30"),
    }
    report = run_validation(MemoryStore(files))

    assert [d.id for d in report.vault.documents] == ["Concepts/good"]
    errors = [(f.path, f.rule) for f in report.findings if f.level == "error"]
    assert errors == [("Concepts/bad.md", "malformed-frontmatter")]
    assert report.exit_code == 1
