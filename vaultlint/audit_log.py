"""
Audit log for operations that change the vault.

Every write made by vaultlint (index listings, status overrides, document
removal) is appended here as one JSON object per line, with what was
rewritten or deleted and what was written.
"""

import json
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

AUDIT_DIR = ".vaultlint"
AUDIT_FILENAME = "audit.log"


@dataclass
class ErasureCost:
    """Summary of what an operation overwrote or deleted."""
    documents: int = 0
    links: int = 0
    files: int = 0
    bytes_erased: int = 0
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class CreationSummary:
    """Summary of what an operation wrote."""
    documents: int = 0
    links: int = 0
    files: int = 0
    bytes_written: int = 0
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class AuditEntry:
    """A single audit log entry."""
    timestamp: str
    operation: str
    erased: ErasureCost
    created: CreationSummary
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "operation": self.operation,
            "erased": asdict(self.erased),
            "created": asdict(self.created),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEntry":
        return cls(
            timestamp=data["timestamp"],
            operation=data["operation"],
            erased=ErasureCost(**data.get("erased", {})),
            created=CreationSummary(**data.get("created", {})),
            metadata=data.get("metadata", {}),
        )


def get_audit_log_path(vault_path: Path) -> Path:
    """Audit log location. The directory is hidden, so the loader skips it."""
    return vault_path / AUDIT_DIR / AUDIT_FILENAME


def log_operation(
    vault_path: Path,
    operation: str,
    erased: ErasureCost | None = None,
    created: CreationSummary | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditEntry:
    """
    Append an operation to the audit log.

    Args:
        vault_path: Vault root directory
        operation: Name of the operation ("apply-reindex", "status-override",
            "remove-document")
        erased: Summary of what was overwritten or deleted
        created: Summary of what was written
        metadata: Additional context (document ids, old and new values)

    Returns:
        The appended entry
    """
    entry = AuditEntry(
        timestamp=datetime.now(timezone.utc).isoformat(),
        operation=operation,
        erased=erased or ErasureCost(),
        created=created or CreationSummary(),
        metadata=metadata or {},
    )

    log_path = get_audit_log_path(vault_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry.to_dict()) + "\n")
    logger.debug("Logged %s to %s", operation, log_path)

    return entry


def read_audit_log(vault_path: Path, last_n: int | None = None) -> list[AuditEntry]:
    """Read audit entries, oldest first. `last_n` keeps only the newest N."""
    log_path = get_audit_log_path(vault_path)
    if not log_path.exists():
        return []

    entries = []
    with log_path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(AuditEntry.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError):
                logger.warning("Skipping malformed audit entry at %s:%d", log_path, lineno)

    if last_n is not None:
        return entries[-last_n:] if last_n > 0 else []
    return entries


def _counts(summary: ErasureCost | CreationSummary) -> str:
    parts = []
    if summary.documents:
        parts.append(f"{summary.documents} documents")
    if summary.links:
        parts.append(f"{summary.links} links")
    if summary.files:
        parts.append(f"{summary.files} files")
    return ", ".join(parts)


def format_audit_entry(entry: AuditEntry) -> str:
    """Format an audit entry for human-readable display."""
    lines = [f"[{entry.timestamp}] {entry.operation}"]

    erased = _counts(entry.erased)
    if erased:
        lines.append(f"  Erased: {erased}")
    created = _counts(entry.created)
    if created:
        lines.append(f"  Created: {created}")

    for key, value in entry.metadata.items():
        lines.append(f"  {key}: {value}")

    return "\n".join(lines)
