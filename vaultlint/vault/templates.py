"""Template contracts: the sections and extras each document kind must carry.

Kinds form a closed set. Adding a kind means adding a row to CONTRACTS, so
every kind is reviewed against the whole table.
"""

from dataclasses import dataclass, replace
from typing import Any

from ..errors import PolicyError, UnknownKindError
from ..models import Kind, SectionTag

KIND_ALIASES = {
    "data-structure": Kind.ALGORITHM,
    "algorithm-or-data-structure": Kind.ALGORITHM,
}


@dataclass(frozen=True)
class TemplateContract:
    """What a document of one kind must contain."""

    kind: Kind
    required: tuple[SectionTag, ...]
    ordered: bool = True
    min_examples: int = 3
    tables: tuple[SectionTag, ...] = ()  # sections that must hold a table
    requires_callouts: bool = True
    requires_sources: bool = True

    def describe(self) -> str:
        sections = ", ".join(tag.label for tag in self.required)
        order = "in order" if self.ordered else "any order"
        return f"{self.kind.value}: {sections} ({order}); min examples {self.min_examples}"


_TAIL = (SectionTag.EDGE_CASES, SectionTag.RELATED_TOPICS, SectionTag.REFERENCES)

CONTRACTS: dict[Kind, TemplateContract] = {
    Kind.STANDARD: TemplateContract(
        kind=Kind.STANDARD,
        required=(SectionTag.SUMMARY, SectionTag.THEORY, SectionTag.QUICK_REFERENCE, SectionTag.EXAMPLES, *_TAIL),
    ),
    Kind.ALGORITHM: TemplateContract(
        kind=Kind.ALGORITHM,
        required=(
            SectionTag.SUMMARY,
            SectionTag.THEORY,
            SectionTag.COMPLEXITY,
            SectionTag.IMPLEMENTATION,
            SectionTag.EXAMPLES,
            *_TAIL,
        ),
        tables=(SectionTag.COMPLEXITY,),
    ),
    Kind.PROMPTING_TECHNIQUE: TemplateContract(
        kind=Kind.PROMPTING_TECHNIQUE,
        required=(SectionTag.SUMMARY, SectionTag.THEORY, SectionTag.PATTERNS, SectionTag.EXAMPLES, *_TAIL),
    ),
    Kind.SHELL_TOOL: TemplateContract(
        kind=Kind.SHELL_TOOL,
        required=(SectionTag.SUMMARY, SectionTag.QUICK_REFERENCE, SectionTag.FLAGS, SectionTag.EXAMPLES, *_TAIL),
        tables=(SectionTag.FLAGS,),
    ),
    Kind.FRAMEWORK_FEATURE: TemplateContract(
        kind=Kind.FRAMEWORK_FEATURE,
        required=(SectionTag.SUMMARY, SectionTag.THEORY, SectionTag.EXAMPLES, SectionTag.PATTERNS, *_TAIL),
    ),
    Kind.INDEX: TemplateContract(
        kind=Kind.INDEX,
        required=(SectionTag.SUMMARY,),
        ordered=False,
        min_examples=0,
        requires_callouts=False,
        requires_sources=False,
    ),
}


def resolve_kind(value: Any) -> Kind:
    """Map a frontmatter `kind` value to a Kind. Missing means standard."""
    if value is None:
        return Kind.STANDARD
    if isinstance(value, Kind):
        return value
    if not isinstance(value, str):
        raise UnknownKindError(value)
    key = value.strip().lower().replace("_", "-").replace(" ", "-")
    if key in KIND_ALIASES:
        return KIND_ALIASES[key]
    try:
        return Kind(key)
    except ValueError:
        raise UnknownKindError(value) from None


def contract_for(kind: Kind) -> TemplateContract:
    """Look up the static contract for `kind`."""
    if not isinstance(kind, Kind):
        raise UnknownKindError(kind)
    return CONTRACTS[kind]


def _section_tags(value: Any, field_name: str, kind: Kind) -> tuple[SectionTag, ...]:
    if not isinstance(value, list):
        raise PolicyError(f"[templates.{kind.value}] {field_name} must be a list of section names")
    tags = []
    for item in value:
        try:
            tags.append(SectionTag(str(item).strip().lower().replace(" ", "-")))
        except ValueError:
            raise PolicyError(f"[templates.{kind.value}] unknown section {item!r}") from None
    return tuple(tags)


class TemplateRepository:
    """Contract lookup with optional per-kind overrides from the policy file."""

    def __init__(self, overrides: dict[str, dict[str, Any]] | None = None, min_examples: int | None = None):
        self._contracts = dict(CONTRACTS)
        if min_examples is not None:
            for kind, contract in self._contracts.items():
                if kind is not Kind.INDEX:
                    self._contracts[kind] = replace(contract, min_examples=min_examples)
        for raw_kind, table in (overrides or {}).items():
            try:
                kind = resolve_kind(raw_kind)
            except UnknownKindError:
                raise PolicyError(f"[templates.{raw_kind}] is not a known kind") from None
            self._contracts[kind] = self._apply(self._contracts[kind], table)

    @classmethod
    def from_policy(cls, policy) -> "TemplateRepository":
        return cls(policy.template_overrides, min_examples=policy.min_examples)

    @staticmethod
    def _apply(contract: TemplateContract, table: dict[str, Any]) -> TemplateContract:
        changes: dict[str, Any] = {}
        if "required" in table:
            changes["required"] = _section_tags(table["required"], "required", contract.kind)
        if "tables" in table:
            changes["tables"] = _section_tags(table["tables"], "tables", contract.kind)
        for key in ("ordered", "requires_callouts", "requires_sources"):
            if key in table:
                if not isinstance(table[key], bool):
                    raise PolicyError(f"[templates.{contract.kind.value}] {key} must be true or false")
                changes[key] = table[key]
        if "min_examples" in table:
            value = table["min_examples"]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise PolicyError(f"[templates.{contract.kind.value}] min_examples must be a non-negative integer")
            changes["min_examples"] = value
        return replace(contract, **changes)

    def contract_for(self, kind: Kind) -> TemplateContract:
        if not isinstance(kind, Kind):
            raise UnknownKindError(kind)
        return self._contracts[kind]
