"""Data models for vault documents."""

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Literal


class Kind(str, Enum):
    """Document kinds. Each kind maps to exactly one template contract."""

    STANDARD = "standard"
    INDEX = "index"
    ALGORITHM = "algorithm"  # algorithms and data structures
    PROMPTING_TECHNIQUE = "prompting-technique"
    SHELL_TOOL = "shell-tool"
    FRAMEWORK_FEATURE = "framework-feature"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_RANK[self]

    @classmethod
    def parse(cls, value: Any) -> "Difficulty | None":
        """Return the member for `value`, or None when it is not one."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class Status(str, Enum):
    """Maturity status: seed -> growing -> evergreen."""

    SEED = "seed"
    GROWING = "growing"
    EVERGREEN = "evergreen"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    @classmethod
    def parse(cls, value: Any) -> "Status | None":
        """Return the member for `value`, or None when it is not one."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


_DIFFICULTY_RANK = {Difficulty.BEGINNER: 0, Difficulty.INTERMEDIATE: 1, Difficulty.ADVANCED: 2}
_STATUS_RANK = {Status.SEED: 0, Status.GROWING: 1, Status.EVERGREEN: 2}


class SectionTag(str, Enum):
    """Controlled vocabulary of `## ` section headings."""

    SUMMARY = "summary"
    THEORY = "theory"
    QUICK_REFERENCE = "quick-reference"
    EXAMPLES = "examples"
    PATTERNS = "patterns"
    EDGE_CASES = "edge-cases"
    RELATED_TOPICS = "related-topics"
    REFERENCES = "references"
    COMPLEXITY = "complexity"
    FLAGS = "flags"
    IMPLEMENTATION = "implementation"
    CONTENTS = "contents"

    @property
    def label(self) -> str:
        return _SECTION_LABELS[self]


_SECTION_LABELS = {
    SectionTag.SUMMARY: "Summary",
    SectionTag.THEORY: "Theory",
    SectionTag.QUICK_REFERENCE: "Quick Reference",
    SectionTag.EXAMPLES: "Examples",
    SectionTag.PATTERNS: "Patterns",
    SectionTag.EDGE_CASES: "Edge Cases",
    SectionTag.RELATED_TOPICS: "Related Topics",
    SectionTag.REFERENCES: "References",
    SectionTag.COMPLEXITY: "Complexity",
    SectionTag.FLAGS: "Flags",
    SectionTag.IMPLEMENTATION: "Implementation",
    SectionTag.CONTENTS: "Contents",
}

WORD_PATTERN = re.compile(r"[A-Za-z0-9][\w'’-]*")


@dataclass(frozen=True)
class Reference:
    """An outbound reference found in a document body."""

    kind: Literal["wikilink", "url"]
    target: str  # normalized wikilink target, or the URL as written
    raw: str  # text as it appeared between the brackets
    line: int
    section: SectionTag | None = None
    anchor: str | None = None  # text after "#" in [[target#anchor]]

    @property
    def full_target(self) -> str:
        """Target including the anchor, for ids that contain "#"."""
        return self.raw if self.anchor is None else f"{self.raw}#{self.anchor}"


@dataclass(frozen=True)
class Section:
    """A `## ` section of a document body."""

    heading: str
    tag: SectionTag | None  # None for headings outside the vocabulary
    body: str
    line: int
    code_examples: int = 0
    has_table: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.body.strip()


@dataclass(frozen=True)
class Document:
    """One parsed vault document.

    Fields mirror the frontmatter after type coercion. `difficulty` and
    `status` are None when the stored value is absent or not an enum member;
    the raw value stays available in `frontmatter`.
    """

    id: str  # vault-relative path without extension
    path: str  # vault-relative path
    category: str
    kind: Kind
    title: str
    tags: frozenset[str]
    difficulty: Difficulty | None
    status: Status | None
    created: date
    updated: date
    sources: tuple[str, ...]
    sections: tuple[Section, ...]
    references: tuple[Reference, ...]
    frontmatter: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
    body: str = field(default="", compare=False, repr=False)  # raw text after the frontmatter
    prose: str = field(default="", compare=False, repr=False)  # body text outside code blocks
    callouts: frozenset[str] = frozenset()

    @property
    def name(self) -> str:
        """File stem."""
        return self.id.rsplit("/", 1)[-1]

    @property
    def directory(self) -> str:
        """Category implied by the file's location."""
        return self.id.rsplit("/", 1)[0] if "/" in self.id else ""

    @property
    def is_index(self) -> bool:
        return self.kind is Kind.INDEX

    @property
    def word_count(self) -> int:
        return len(WORD_PATTERN.findall(self.prose))

    @property
    def example_count(self) -> int:
        return sum(section.code_examples for section in self.sections)

    @property
    def has_tip_callout(self) -> bool:
        return bool(self.callouts & TIP_CALLOUTS)

    @property
    def has_warning_callout(self) -> bool:
        return bool(self.callouts & WARNING_CALLOUTS)

    @property
    def wikilinks(self) -> list[Reference]:
        return [r for r in self.references if r.kind == "wikilink"]

    def section(self, tag: SectionTag) -> Section | None:
        """First section carrying `tag`."""
        for section in self.sections:
            if section.tag is tag:
                return section
        return None

    def section_tags(self) -> list[SectionTag]:
        return [s.tag for s in self.sections if s.tag is not None]


TIP_CALLOUTS = frozenset({"tip", "hint", "success", "important"})
WARNING_CALLOUTS = frozenset({"warning", "caution", "danger", "attention", "bug"})


@dataclass(frozen=True)
class Category:
    """A category path with its index document and direct members."""

    path: str
    index_id: str | None
    member_ids: tuple[str, ...] = ()

    @property
    def leaf(self) -> str:
        return self.path.rsplit("/", 1)[-1] if self.path else "Vault"


@dataclass(frozen=True)
class Link:
    """A wikilink edge in the cross-reference graph."""

    source_id: str
    target_ref: str
    resolved_target_id: str | None  # None means dangling
    line: int = 0
    section: SectionTag | None = None

    @property
    def is_dangling(self) -> bool:
        return self.resolved_target_id is None
