import json
from datetime import date
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import render_doc, render_index, standard_sections

from vaultlint.audit_log import read_audit_log
from vaultlint.cli import _auto_detect_vault, cli
from vaultlint.policy import POLICY_FILENAME


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _invoke(runner: CliRunner, vault: Path, *args: str):
    return runner.invoke(cli, ["--vault", str(vault), *args])


def test_too_few_examples_exits_with_warnings(runner, vault_dir, write_doc) -> None:
    write_doc("Concepts/a.md", render_doc(category="Concepts", sections=standard_sections(examples=2)))

    result = _invoke(runner, vault_dir, "validate", "--json")
    assert result.exit_code == 2, result.output
    payload = json.loads(result.output)
    rules = [f["rule"] for f in payload["findings"]]
    assert "too-few-examples" in rules
    assert payload["summary"]["errors"] == 0


def test_dangling_link_exit_codes(runner, vault_dir, write_doc) -> None:
    write_doc("Concepts/a.md", render_doc(category="Concepts", sections=standard_sections(related="- [[B]]")))

    result = _invoke(runner, vault_dir, "validate", "--json")
    assert result.exit_code == 2
    dangling = [f for f in json.loads(result.output)["findings"] if f["rule"] == "dangling-link"]
    assert dangling[0]["data"]["target"] == "B"

    assert _invoke(runner, vault_dir, "validate", "--strict").exit_code == 1


def test_clean_vault_exits_zero(runner, vault_dir, write_doc) -> None:
    write_doc("Concepts/index.md", render_index(category="Concepts", listing=""))
    write_doc("Concepts/a.md", render_doc(category="Concepts", title="Alpha", sections=standard_sections(related="- [[b]]")))
    write_doc("Concepts/b.md", render_doc(category="Concepts", title="Beta", sections=standard_sections(related="- [[a]]")))

    assert _invoke(runner, vault_dir, "apply-reindex", "Concepts").exit_code == 0
    result = _invoke(runner, vault_dir, "validate")
    assert result.exit_code == 0, result.output


def test_validate_is_idempotent(runner, vault_dir, write_doc) -> None:
    write_doc("Concepts/a.md", render_doc(category="Concepts", sections=standard_sections(related="- [[b]] [[c]]")))
    write_doc("Concepts/b.md", render_doc(category="Concepts", status="evergreen"))

    first = _invoke(runner, vault_dir, "validate", "--json", "--jobs", "4")
    second = _invoke(runner, vault_dir, "validate", "--json", "--jobs", "1")
    assert first.output == second.output


def test_malformed_document_is_an_error(runner, vault_dir, write_doc) -> None:
    write_doc("Concepts/a.md", "# No frontmatter\n")
    result = _invoke(runner, vault_dir, "validate", "--json")
    assert result.exit_code == 1
    assert "missing-frontmatter" in [f["rule"] for f in json.loads(result.output)["findings"]]


def test_invalid_policy_exits_one(runner, vault_dir, write_doc) -> None:
    write_doc("Concepts/a.md", render_doc(category="Concepts"))
    (vault_dir / POLICY_FILENAME).write_text("[maturity]\ngrowing_words = -5\n", encoding="utf-8")
    assert _invoke(runner, vault_dir, "validate").exit_code == 1


def test_reindex_then_apply_reindex(runner, vault_dir, write_doc) -> None:
    write_doc("Concepts/index.md", render_index(category="Concepts"))
    write_doc("Concepts/a.md", render_doc(category="Concepts", title="Alpha"))
    write_doc("Concepts/Sorting/b.md", render_doc(category="Concepts/Sorting", title="Beta"))

    assert _invoke(runner, vault_dir, "reindex", "Concepts").exit_code == 3

    dry = _invoke(runner, vault_dir, "apply-reindex", "Concepts", "--dry-run")
    assert dry.exit_code == 0
    assert "GENERATED" not in (vault_dir / "Concepts/index.md").read_text(encoding="utf-8")

    assert _invoke(runner, vault_dir, "apply-reindex", "Concepts").exit_code == 0
    text = (vault_dir / "Concepts/index.md").read_text(encoding="utf-8")
    assert "| [[Concepts/a\\|Alpha]] | Intermediate | Seed |" in text
    assert "### Sorting" in text
    assert f"date-updated: {date.today().isoformat()}" in text
    assert "Documents in this category." in text

    assert _invoke(runner, vault_dir, "reindex", "Concepts").exit_code == 0
    entries = read_audit_log(vault_dir)
    assert [e.operation for e in entries] == ["apply-reindex"]
    assert entries[0].metadata["added"] == ["Concepts/a", "Concepts/Sorting/b"]


def test_reindex_unknown_category(runner, vault_dir, write_doc) -> None:
    write_doc("Concepts/a.md", render_doc(category="Concepts"))
    assert _invoke(runner, vault_dir, "reindex", "Concepts").exit_code == 1


def test_set_status_promotes_and_logs(runner, vault_dir, write_doc) -> None:
    path = write_doc("Concepts/a.md", render_doc(category="Concepts", status="seed"))

    result = _invoke(runner, vault_dir, "set-status", "a", "growing")
    assert result.exit_code == 0, result.output
    text = path.read_text(encoding="utf-8")
    assert "status: growing" in text
    assert f"date-updated: {date.today().isoformat()}" in text

    entry = read_audit_log(vault_dir)[-1]
    assert entry.operation == "status-override"
    assert entry.metadata == {"document": "Concepts/a.md", "from": "seed", "to": "growing", "forced": False}


def test_set_status_downgrade_needs_force(runner, vault_dir, write_doc) -> None:
    path = write_doc("Concepts/a.md", render_doc(category="Concepts", status="evergreen"))

    assert _invoke(runner, vault_dir, "set-status", "Concepts/a", "seed").exit_code == 1
    assert "status: evergreen" in path.read_text(encoding="utf-8")
    assert read_audit_log(vault_dir) == []

    assert _invoke(runner, vault_dir, "set-status", "Concepts/a", "seed", "--force").exit_code == 0
    assert "status: seed" in path.read_text(encoding="utf-8")
    assert read_audit_log(vault_dir)[-1].metadata["forced"] is True


def test_remove_unwraps_links_and_resyncs_index(runner, vault_dir, write_doc) -> None:
    write_doc("Concepts/index.md", render_index(category="Concepts", listing=""))
    write_doc("Concepts/a.md", render_doc(category="Concepts", title="Alpha", sections=standard_sections(related="- [[b|Bee]]")))
    write_doc("Concepts/b.md", render_doc(category="Concepts", title="Beta", sections=standard_sections(related="- [[a]]")))
    assert _invoke(runner, vault_dir, "apply-reindex", "Concepts").exit_code == 0
    assert "[[Concepts/b\\|Beta]]" in (vault_dir / "Concepts/index.md").read_text(encoding="utf-8")

    dry = _invoke(runner, vault_dir, "remove", "b", "--dry-run")
    assert dry.exit_code == 0
    assert (vault_dir / "Concepts/b.md").exists()

    result = _invoke(runner, vault_dir, "remove", "b")
    assert result.exit_code == 0, result.output
    assert not (vault_dir / "Concepts/b.md").exists()

    a_text = (vault_dir / "Concepts/a.md").read_text(encoding="utf-8")
    assert "- Bee" in a_text
    assert "[[b" not in a_text
    index_text = (vault_dir / "Concepts/index.md").read_text(encoding="utf-8")
    assert "Concepts/b" not in index_text
    assert "[[Concepts/a\\|Alpha]]" in index_text

    entry = read_audit_log(vault_dir)[-1]
    assert entry.operation == "remove-document"
    assert entry.erased.documents == 1
    assert entry.erased.links == 2
    assert _invoke(runner, vault_dir, "reindex", "Concepts").exit_code == 0


def test_remove_unknown_document(runner, vault_dir, write_doc) -> None:
    write_doc("Concepts/a.md", render_doc(category="Concepts"))
    assert _invoke(runner, vault_dir, "remove", "ghost").exit_code == 1


def test_explain(runner, vault_dir) -> None:
    assert _invoke(runner, vault_dir, "explain", "too-few-examples").exit_code == 0
    assert _invoke(runner, vault_dir, "explain", "templates").exit_code == 0
    assert _invoke(runner, vault_dir, "explain", "no-such-rule").exit_code == 1
    assert _invoke(runner, vault_dir, "validate", "--explain", "orphaned").exit_code == 0


def test_history(runner, vault_dir, write_doc) -> None:
    write_doc("Concepts/a.md", render_doc(category="Concepts"))
    assert _invoke(runner, vault_dir, "history").exit_code == 0

    _invoke(runner, vault_dir, "set-status", "a", "growing")
    result = _invoke(runner, vault_dir, "history", "--json")
    assert result.exit_code == 0
    assert [e["operation"] for e in json.loads(result.output)] == ["status-override"]


def test_auto_detect_vault(tmp_path: Path) -> None:
    root = tmp_path / "vault"
    nested = root / "Concepts" / "Algorithms"
    nested.mkdir(parents=True)
    (root / POLICY_FILENAME).write_text("", encoding="utf-8")

    assert _auto_detect_vault(nested) == root.resolve()
    assert _auto_detect_vault(tmp_path) == tmp_path.resolve()
