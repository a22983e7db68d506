"""History command - show the audit log."""

import json
from pathlib import Path

from rich.console import Console

from ..audit_log import format_audit_entry, get_audit_log_path, read_audit_log


def run_history(vault_path: Path, last_n: int | None = None, operation: str | None = None, output_json: bool = False) -> int:
    """Print audit log entries, oldest first.

    Args:
        vault_path: Vault root directory
        last_n: Only show the newest N entries
        operation: Only show entries of this operation
        output_json: Output the entries as JSON

    Returns:
        Exit code (always 0)
    """
    console = Console()
    entries = read_audit_log(vault_path)
    if operation:
        entries = [e for e in entries if e.operation == operation]
    if last_n is not None:
        entries = entries[-last_n:] if last_n > 0 else []

    if output_json:
        print(json.dumps([e.to_dict() for e in entries], indent=2, default=str))
        return 0

    if not entries:
        console.print(f"No audit entries in {get_audit_log_path(vault_path)}", style="dim")
        return 0
    for entry in entries:
        console.print(format_audit_entry(entry), markup=False, highlight=False)
        console.print()
    return 0
