"""Findings, rule catalogue and severity handling."""

from dataclasses import dataclass, field
from typing import Any, Iterable, Literal

Level = Literal["error", "warning", "info"]

LEVEL_ORDER = {"error": 0, "warning": 1, "info": 2}

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_WARNINGS = 2
EXIT_DRIFT = 3


@dataclass(frozen=True)
class Finding:
    """A single validation finding attached to one document (or the vault)."""

    level: Level
    rule: str
    path: str  # vault-relative path; "" for vault-level findings
    message: str
    line: int | None = None
    data: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __str__(self) -> str:
        loc = self.path or "<vault>"
        if self.line:
            loc += f":{self.line}"
        return f"{self.level.upper()}: [{self.rule}] {loc} - {self.message}"

    def sort_key(self) -> tuple:
        return (self.path, LEVEL_ORDER.get(self.level, 99), self.line or 0, self.rule, self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "rule": self.rule,
            "path": self.path,
            "line": self.line,
            "message": self.message,
            "data": self.data,
        }


# Default level per rule. `dangling-link` is escalated to error in strict mode.
RULE_LEVELS: dict[str, Level] = {
    "missing-frontmatter": "error",
    "malformed-frontmatter": "error",
    "unknown-kind": "error",
    "read-error": "error",
    "unknown-section": "info",
    "invalid-enum": "warning",
    "invalid-date-order": "warning",
    "category-mismatch": "warning",
    "missing-section": "warning",
    "section-order": "warning",
    "missing-table": "warning",
    "too-few-examples": "warning",
    "missing-callout": "warning",
    "missing-sources": "warning",
    "invalid-url": "warning",
    "status-overclaim": "warning",
    "status-upgrade-available": "info",
    "dangling-link": "warning",
    "ambiguous-link": "warning",
    "missing-backlink": "warning",
    "orphaned": "warning",
    "index-stale": "warning",
    "missing-index": "info",
    "run-timeout": "error",
}


RULE_EXPLANATIONS = {
    "missing-frontmatter": """
# missing-frontmatter

**Level**: error

The file does not open with a `---` delimited YAML block. The document is
skipped by the graph and index phases; other documents are still checked.
""",
    "malformed-frontmatter": """
# malformed-frontmatter

**Level**: error

The frontmatter is not valid YAML, or a required key (`category`, `tags`,
`status`, `date-created`, `date-updated`, plus `difficulty` and `sources` for
non-index kinds) is missing or has the wrong type.
""",
    "unknown-kind": """
# unknown-kind

**Level**: error

`kind` names none of: standard, index, algorithm (data-structure),
prompting-technique, shell-tool, framework-feature. Without a kind there is no
template to check against, so the document is excluded from the run.
""",
    "read-error": """
# read-error

**Level**: error

The file could not be read from the vault (permissions, encoding). Other
documents are still checked.
""",
    "unknown-section": """
# unknown-section

**Level**: info

A `## ` heading is outside the section vocabulary. The section is kept but
does not count towards template completeness.
""",
    "invalid-enum": """
# invalid-enum

**Level**: warning

`difficulty` must be beginner, intermediate or advanced; `status` must be
seed, growing or evergreen.
""",
    "invalid-date-order": """
# invalid-date-order

**Level**: warning

`date-updated` is earlier than `date-created`.
""",
    "category-mismatch": """
# category-mismatch

**Level**: warning

The `category` frontmatter value does not match the folder the file lives in.
Move the file or fix the value.
""",
    "missing-section": """
# missing-section

**Level**: warning

A section required by the document's kind template is absent. Run
`vaultlint explain templates` to list the contracts.
""",
    "section-order": """
# section-order

**Level**: warning

Required sections appear out of template order. Summary always comes first.
""",
    "missing-table": """
# missing-table

**Level**: warning

Algorithm documents need a complexity table under Complexity; shell tool
documents need a flags table under Flags.
""",
    "too-few-examples": """
# too-few-examples

**Level**: warning

Fewer fenced code examples (blocks tagged with a recognized language) than
the template minimum, 3 by default. Index documents are exempt.
""",
    "missing-callout": """
# missing-callout

**Level**: warning

Growing and evergreen documents need at least one tip-style (`> [!tip]`) and
one warning-style (`> [!warning]`) callout. Seed documents are exempt.
""",
    "missing-sources": """
# missing-sources

**Level**: warning

Only index documents may have an empty `sources` list.
""",
    "invalid-url": """
# invalid-url

**Level**: warning

A `sources` entry, or a link in the References section, is not an absolute
http(s) URL.
""",
    "status-overclaim": """
# status-overclaim

**Level**: warning

The stored status is higher than the content supports (word count, example
count, section completeness). Status is never rewritten automatically.
""",
    "status-upgrade-available": """
# status-upgrade-available

**Level**: info

The content already meets the criteria of a higher status. Use
`vaultlint set-status` to promote it.
""",
    "dangling-link": """
# dangling-link

**Level**: warning (error with `--strict` or `[links] strict = true`)

A `[[wikilink]]` resolves to no document in the vault.
""",
    "ambiguous-link": """
# ambiguous-link

**Level**: warning

A short `[[name]]` link matches several documents by file name. It resolves
to the first id in sort order; link by full path to disambiguate.
""",
    "missing-backlink": """
# missing-backlink

**Level**: warning

Document A links to document B but B never links back to A. Reported on B.

Index documents are exempt in both directions. A link to an index never
asks the index to link back, and a link from an index listing never asks
the listed document to link to its index.
""",
    "orphaned": """
# orphaned

**Level**: warning

No other document links to this one, so it is unreachable from its category
index.
""",
    "index-stale": """
# index-stale

**Level**: warning

A category index listing differs from what the member documents imply. See
`vaultlint reindex CATEGORY`, fix with `vaultlint apply-reindex CATEGORY`.
""",
    "missing-index": """
# missing-index

**Level**: info

A category has documents but neither it nor any parent category has an index
document.
""",
    "run-timeout": """
# run-timeout

**Level**: error

The run hit its `--timeout`. Findings for finished documents are reported;
the vault-wide graph and index checks were skipped.
""",
}


def get_rule_ids() -> list[str]:
    """Return all known rule ids."""
    return list(RULE_EXPLANATIONS.keys())


def make_finding(rule: str, path: str, message: str, *, line: int | None = None, level: Level | None = None, **data: Any) -> Finding:
    """Build a finding at the rule's default level."""
    return Finding(
        level=level or RULE_LEVELS[rule],
        rule=rule,
        path=path,
        message=message,
        line=line,
        data=data,
    )


def count_levels(findings: Iterable[Finding]) -> dict[str, int]:
    counts = {"error": 0, "warning": 0, "info": 0}
    for f in findings:
        counts[f.level] = counts.get(f.level, 0) + 1
    return counts


def exit_code_for(findings: Iterable[Finding]) -> int:
    """Exit code from the worst level present: 1 error, 2 warnings, else 0."""
    counts = count_levels(findings)
    if counts["error"]:
        return EXIT_ERROR
    if counts["warning"]:
        return EXIT_WARNINGS
    return EXIT_OK
