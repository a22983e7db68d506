"""Validate command implementation."""

import json
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from ..engine import ValidationReport, run_validation
from ..errors import FileStoreError, PolicyError
from ..models import Kind
from ..policy import load_policy
from ..store import LocalFileStore
from ..vault.rules import EXIT_ERROR, RULE_EXPLANATIONS, Finding, get_rule_ids
from ..vault.templates import TemplateRepository

LEVEL_STYLES = {
    "error": ("ERROR", "bold red"),
    "warning": ("WARN", "yellow"),
    "info": ("INFO", "dim"),
}


def run_validate(
    vault_path: Path,
    target: str | None = None,
    strict: bool = False,
    output_json: bool = False,
    jobs: int | None = None,
    timeout: float | None = None,
) -> int:
    """Run every check on the vault.

    Args:
        vault_path: Vault root directory
        target: Only report findings for this document or directory
        strict: Treat dangling links as errors
        output_json: Output results as JSON instead of human-readable
        jobs: Worker threads for the per-document phase
        timeout: Seconds before unfinished documents are abandoned

    Returns:
        Exit code (0 = clean or info only, 1 = errors, 2 = warnings only)
    """
    console = Console(stderr=True)

    try:
        policy = load_policy(vault_path)
        templates = TemplateRepository.from_policy(policy)
    except PolicyError as e:
        console.print(f"Invalid policy: {e}", style="bold red")
        return EXIT_ERROR

    if not output_json:
        console.print(f"Loading vault from {vault_path}...", style="dim")
    try:
        report = run_validation(
            LocalFileStore(vault_path),
            policy,
            templates,
            jobs=jobs,
            timeout=timeout,
            strict=strict,
            target=target,
        )
    except FileStoreError as e:
        console.print(str(e), style="bold red")
        return EXIT_ERROR

    if output_json:
        _output_json(report)
    else:
        _print_human_output(console, report)
    return report.exit_code


def _output_json(report: ValidationReport) -> None:
    counts = report.counts
    output = {
        "findings": [f.to_dict() for f in report.findings],
        "summary": {
            "documents": len(report.vault.documents),
            "unparsed": sum(1 for r in report.vault.results if r.document is None),
            "pending": list(report.vault.pending),
            "errors": counts["error"],
            "warnings": counts["warning"],
            "info": counts["info"],
        },
        "exit_code": report.exit_code,
    }
    print(json.dumps(output, indent=2, default=str))


def _format_finding(finding: Finding) -> tuple[str, str]:
    prefix, style = LEVEL_STYLES.get(finding.level, ("INFO", "dim"))
    loc = f" line {finding.line}" if finding.line else ""
    return f"  {prefix}{loc}: [{finding.rule}] {finding.message}", style


def _print_human_output(console: Console, report: ValidationReport) -> None:
    """Print findings grouped by document, then a summary table."""
    for path, findings in report.by_path().items():
        console.print()
        console.print(path or "<vault>", style="bold")
        for finding in findings:
            text, style = _format_finding(finding)
            console.print(text, style=style, markup=False)

    vault = report.vault
    console.print()
    table = Table(title="Vault Summary", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Documents", str(len(vault.documents)))
    table.add_row("Index documents", str(sum(1 for d in vault.documents if d.is_index)))
    table.add_row("Categories", str(len(vault.categories)))
    table.add_row("Unparsed", str(sum(1 for r in vault.results if r.document is None)))
    if vault.pending:
        table.add_row("Not processed (timeout)", str(len(vault.pending)))
    console.print(table)

    counts = report.counts
    console.print()
    if counts["error"] > 0:
        console.print(f"{counts['error']} error(s)", style="bold red")
    if counts["warning"] > 0:
        console.print(f"{counts['warning']} warning(s)", style="yellow")
    if counts["info"] > 0:
        console.print(f"{counts['info']} info(s)", style="dim")
    if counts["error"] == 0 and counts["warning"] == 0:
        console.print("No errors or warnings", style="bold green")


def run_explain(rule_id: str) -> int:
    """Explain a rule, or list the template contracts for "templates".

    Returns:
        Exit code (0 = success, 1 = rule not found)
    """
    console = Console()
    rule_id = rule_id.lower().strip()

    if rule_id == "templates":
        console.print(Markdown(_templates_markdown(TemplateRepository())))
        return 0

    if rule_id not in RULE_EXPLANATIONS:
        console.print(f"Unknown rule: {rule_id}", style="bold red")
        console.print()
        console.print("Known rules:", style="bold")
        for rid in sorted(get_rule_ids()):
            console.print(f"  - {rid}")
        return 1

    console.print(Markdown(RULE_EXPLANATIONS[rule_id]))
    return 0


def _templates_markdown(templates: TemplateRepository) -> str:
    lines = ["# Template contracts", ""]
    for kind in Kind:
        lines.append(f"- {templates.contract_for(kind).describe()}")
    return "\n".join(lines)
