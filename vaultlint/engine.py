"""Validation run: per-document phase, then graph and index phases."""

import logging
from dataclasses import dataclass, field

from .policy import Policy
from .store import FileStore
from .vault.graph import LinkGraph
from .vault.index_sync import check_indexes
from .vault.loader import Vault, load_vault
from .vault.rules import Finding, count_levels, exit_code_for, make_finding
from .vault.templates import TemplateRepository

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    """Findings of one validation run, sorted and filtered to the target."""

    vault: Vault
    findings: list[Finding] = field(default_factory=list)
    target: str | None = None

    @property
    def counts(self) -> dict[str, int]:
        return count_levels(self.findings)

    @property
    def exit_code(self) -> int:
        return exit_code_for(self.findings)

    def by_path(self) -> dict[str, list[Finding]]:
        grouped: dict[str, list[Finding]] = {}
        for finding in self.findings:
            grouped.setdefault(finding.path, []).append(finding)
        return grouped


def _in_target(path: str, target: str | None) -> bool:
    if not target:
        return True
    target = target.strip("/")
    stem = path[:-3] if path.endswith(".md") else path
    return path == target or stem == target or path.startswith(target + "/")


def run_validation(
    store: FileStore,
    policy: Policy | None = None,
    templates: TemplateRepository | None = None,
    *,
    jobs: int | None = None,
    timeout: float | None = None,
    strict: bool = False,
    target: str | None = None,
) -> ValidationReport:
    """Validate the whole vault and report findings under `target`.

    Cross-document checks always see the whole vault, so a document's
    backlink and orphan findings do not depend on `target`. When the run
    times out, only per-document findings are available; a `run-timeout`
    error names the documents that were not processed.

    Raises:
        FileStoreError: the vault cannot be listed
    """
    policy = policy or Policy()
    templates = templates or TemplateRepository.from_policy(policy)
    vault = load_vault(store, policy, templates, jobs=jobs, timeout=timeout)

    findings = list(vault.findings)
    if vault.complete:
        graph = LinkGraph.build(vault)
        findings.extend(graph.check(vault, policy, strict=strict))
        findings.extend(check_indexes(vault))
    else:
        findings.append(
            make_finding(
                "run-timeout",
                "",
                f"Timed out after {timeout}s with {len(vault.pending)} document(s) unprocessed; "
                "link and index checks were skipped",
                pending=list(vault.pending),
            )
        )

    selected = [f for f in findings if not f.path or _in_target(f.path, target)]
    selected.sort(key=Finding.sort_key)
    logger.info("Validation finished: %s", count_levels(selected))
    return ValidationReport(vault=vault, findings=selected, target=target)
