from pathlib import Path

import pytest

from conftest import MemoryStore, render_doc, render_index, standard_sections

from vaultlint.commands.remove import compute_removal_plan, execute_removal_plan, unwrap_links
from vaultlint.errors import FileStoreError
from vaultlint.vault.index_sync import check_indexes, expected_listing
from vaultlint.vault.loader import load_vault, parse_document


def _is_b(target: str) -> bool:
    return target in ("b", "Concepts/b")


def test_unwrap_links_uses_alias_or_target() -> None:
    text = "See [[b|Bee]], [[b]] and [[Concepts/b#Usage]] but not [[c]]."
    updated, count = unwrap_links(text, _is_b)
    assert updated == "See Bee, b and Concepts/b but not [[c]]."
    assert count == 3


def test_unwrap_links_handles_escaped_table_pipe() -> None:
    updated, count = unwrap_links("| [[Concepts/b\\|Beta]] | Beginner |", _is_b)
    assert updated == "| Beta | Beginner |"
    assert count == 1


def test_unwrap_links_skips_code_and_assets() -> None:
    text = "```markdown\n[[b]]\n```\n![[b.png]] [[b]]"
    updated, count = unwrap_links(text, lambda t: t.startswith("b"))
    assert updated == "```markdown\n[[b]]\n```\n![[b.png]] b"
    assert count == 1


def _store() -> MemoryStore:
    members = [
        parse_document(render_doc(category="Concepts", title="Alpha"), "Concepts/a.md"),
        parse_document(render_doc(category="Concepts/Sorting", title="Beta"), "Concepts/Sorting/b.md"),
    ]
    listing = expected_listing("Concepts", members).render()
    return MemoryStore(
        {
            "Concepts/index.md": render_index(category="Concepts", listing=listing),
            "Concepts/a.md": render_doc(
                category="Concepts", title="Alpha", sections=standard_sections(related="- [[b|Bee]]")
            ),
            "Concepts/Sorting/b.md": render_doc(
                category="Concepts/Sorting", title="Beta", sections=standard_sections(related="- [[a]]")
            ),
        }
    )


def test_removal_plan_has_no_side_effects(tmp_path: Path) -> None:
    store = _store()
    plan = compute_removal_plan(tmp_path, "b", store=store)

    assert store.writes == []
    assert plan.doc_path == "Concepts/Sorting/b.md"
    assert sorted(plan.rewrites) == ["Concepts/a.md"]
    assert sorted(plan.index_updates) == ["Concepts/index.md"]
    assert plan.unwrapped_links == 2
    assert "[DESTRUCTIVE] Delete: Concepts/Sorting/b.md" in plan.summary()


def test_execute_removal(tmp_path: Path) -> None:
    store = _store()
    result = execute_removal_plan(compute_removal_plan(tmp_path, "Concepts/Sorting/b", store=store), store=store)

    assert "Concepts/Sorting/b.md" not in store.files
    assert result.written == ["Concepts/a.md", "Concepts/index.md"]
    assert result.erased.documents == 1
    assert "- Bee" in store.files["Concepts/a.md"]
    assert "### Sorting" not in store.files["Concepts/index.md"]

    vault = load_vault(store)
    assert check_indexes(vault) == []


def test_removing_unknown_document(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Document not found"):
        compute_removal_plan(tmp_path, "ghost", store=_store())


def test_unwrap_links_keeps_hash_that_belongs_to_the_id() -> None:
    text = "Use [[Languages/C#/linq]] or [[Languages/C#/linq\\|LINQ]]."
    updated, count = unwrap_links(text, lambda t: t == "Languages/C#/linq")
    assert updated == "Use Languages/C#/linq or LINQ."
    assert count == 2


class FailingWriteStore(MemoryStore):
    def __init__(self, files: dict[str, str], fail_on: str):
        super().__init__(files)
        self.fail_on = fail_on

    def write(self, path: str, text: str) -> None:
        if path == self.fail_on:
            raise FileStoreError(f"Cannot write {path}: disk full")
        super().write(path, text)


def test_failed_write_keeps_the_document(tmp_path: Path) -> None:
    store = FailingWriteStore(_store().files, fail_on="Concepts/index.md")
    plan = compute_removal_plan(tmp_path, "b", store=store)
    result = execute_removal_plan(plan, store=store)

    assert not result.success
    assert "disk full" in result.error
    assert "Concepts/Sorting/b.md" in store.files
    assert result.written == ["Concepts/a.md"]
    assert result.erased.documents == 0
