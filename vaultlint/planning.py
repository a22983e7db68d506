"""
Plan/Result types for commands that write to the vault.

Each write command is split into a compute phase, which reads the vault and
returns a Plan without side effects, and an execute phase, which performs
the writes and returns a Result. `--dry-run` stops after the compute phase.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .audit_log import ErasureCost, CreationSummary, log_operation
from .models import Status
from .vault.index_sync import IndexDrift


@dataclass
class BasePlan(ABC):
    """Base class for operation plans (diagnostic output)."""
    vault_path: Path

    @abstractmethod
    def summary(self) -> str:
        """Human-readable summary of what would be done."""
        ...


@dataclass
class BaseResult:
    """Base class for operation results (action output)."""
    erased: ErasureCost = field(default_factory=ErasureCost)
    created: CreationSummary = field(default_factory=CreationSummary)
    success: bool = True
    error: str | None = None

    def log_to_audit(self, vault_path: Path, operation: str, metadata: dict[str, Any] | None = None) -> None:
        """Log this result to the audit trail."""
        log_operation(vault_path, operation, self.erased, self.created, metadata or {})


@dataclass
class ReindexPlan(BasePlan):
    """Plan for rewriting the listing of one category index."""
    category: str
    index_path: str | None = None
    drift: IndexDrift | None = None
    existing_content: str = ""
    updated_content: str = ""

    @property
    def has_changes(self) -> bool:
        return self.drift is not None and self.existing_content != self.updated_content

    def summary(self) -> str:
        lines = [
            "Reindex Plan",
            f"  Category: {self.category}",
            f"  Index: {self.index_path or '(none)'}",
        ]
        if self.drift is None:
            lines.append("  Listing is up to date")
        else:
            lines.append(f"  Drift: {self.drift.summary()}")
            existing_len = len(self.existing_content.encode("utf-8"))
            updated_len = len(self.updated_content.encode("utf-8"))
            lines.append(f"  Size change: {existing_len} -> {updated_len} bytes")
        return "\n".join(lines)


@dataclass
class ReindexResult(BaseResult):
    """Result of a reindex write."""
    index_path: str | None = None
    remaining_drift: IndexDrift | None = None


@dataclass
class StatusOverridePlan(BasePlan):
    """Plan for a manual status change on one document."""
    doc_path: str
    previous: Status | None
    target: Status
    forced: bool = False
    existing_content: str = ""
    updated_content: str = ""

    def summary(self) -> str:
        previous = self.previous.value if self.previous else "(invalid)"
        line = f"Status Override Plan\n  Document: {self.doc_path}\n  Status: {previous} -> {self.target.value}"
        if self.forced:
            line += "\n  [FORCED] downgrade"
        return line


@dataclass
class StatusOverrideResult(BaseResult):
    """Result of a status override."""
    doc_path: str | None = None


@dataclass
class RemovalPlan(BasePlan):
    """Plan for deleting a document and cleaning up references to it."""
    doc_id: str
    doc_path: str
    doc_size: int = 0
    rewrites: dict[str, tuple[str, str]] = field(default_factory=dict)  # path -> (old, new)
    unwrapped_links: int = 0
    index_updates: dict[str, tuple[str, str]] = field(default_factory=dict)  # path -> (old, new)

    def summary(self) -> str:
        lines = [
            "Removal Plan",
            f"  [DESTRUCTIVE] Delete: {self.doc_path} ({self.doc_size} bytes)",
            f"  Links to unwrap: {self.unwrapped_links} in {len(self.rewrites)} documents",
            f"  Index listings to resync: {len(self.index_updates)}",
        ]
        for path in sorted(self.rewrites):
            lines.append(f"    rewrite {path}")
        for path in sorted(self.index_updates):
            lines.append(f"    reindex {path}")
        return "\n".join(lines)


@dataclass
class RemovalResult(BaseResult):
    """Result of a document removal."""
    written: list[str] = field(default_factory=list)
