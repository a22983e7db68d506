"""Markdown parsing utilities for wiki-links, sections, callouts and tables."""

import logging
import re
from dataclasses import dataclass, field

from ..errors import MissingFrontmatterError
from ..models import Reference, Section, SectionTag

logger = logging.getLogger(__name__)

# Match [[target]], [[target|display]], [[target#section]], and the
# table-escaped form [[target\|display]]
WIKILINK_PATTERN = re.compile(r"!?\[\[([^\]|#\\]+)(?:#([^\]|\\]*))?(?:\\?\|[^\]]*)?\]\]")
MARKDOWN_LINK_PATTERN = re.compile(r"(?<!!)\[[^\]]*\]\(\s*<?([^)\s>]+)>?(?:\s+\"[^\"]*\")?\s*\)")
BARE_URL_PATTERN = re.compile(r"(?<![(<\w])(?:https?://|www\.)[^\s)>\]]+")
CALLOUT_PATTERN = re.compile(r"^\s*>\s*\[!([A-Za-z-]+)\]")
# A closing run of "#" must follow whitespace, so "### C#" keeps its "#"
HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.*?)(?:\s+#+)?\s*$")
FENCE_PATTERN = re.compile(r"^\s*(`{3,}|~{3,})\s*([^\s`{]*)")
TABLE_ROW_PATTERN = re.compile(r"^\s*\|.*\|\s*$")
TABLE_SEPARATOR_PATTERN = re.compile(r"^\s*\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?\s*$")
FRONTMATTER_DELIMITER = "---"

ASSET_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".pdf",
    ".mp3", ".mp4", ".webm", ".excalidraw", ".canvas",
}

# Heading text (normalized) -> section tag
SECTION_VOCABULARY: dict[str, SectionTag] = {
    "summary": SectionTag.SUMMARY,
    "overview": SectionTag.SUMMARY,
    "tl;dr": SectionTag.SUMMARY,
    "tldr": SectionTag.SUMMARY,
    "theory": SectionTag.THEORY,
    "core concepts": SectionTag.THEORY,
    "how it works": SectionTag.THEORY,
    "background": SectionTag.THEORY,
    "quick reference": SectionTag.QUICK_REFERENCE,
    "cheat sheet": SectionTag.QUICK_REFERENCE,
    "cheatsheet": SectionTag.QUICK_REFERENCE,
    "examples": SectionTag.EXAMPLES,
    "example": SectionTag.EXAMPLES,
    "code examples": SectionTag.EXAMPLES,
    "usage examples": SectionTag.EXAMPLES,
    "patterns": SectionTag.PATTERNS,
    "common patterns": SectionTag.PATTERNS,
    "best practices": SectionTag.PATTERNS,
    "use cases": SectionTag.PATTERNS,
    "edge cases": SectionTag.EDGE_CASES,
    "edge cases and pitfalls": SectionTag.EDGE_CASES,
    "pitfalls": SectionTag.EDGE_CASES,
    "common pitfalls": SectionTag.EDGE_CASES,
    "gotchas": SectionTag.EDGE_CASES,
    "related topics": SectionTag.RELATED_TOPICS,
    "related": SectionTag.RELATED_TOPICS,
    "see also": SectionTag.RELATED_TOPICS,
    "references": SectionTag.REFERENCES,
    "sources": SectionTag.REFERENCES,
    "further reading": SectionTag.REFERENCES,
    "complexity": SectionTag.COMPLEXITY,
    "complexity analysis": SectionTag.COMPLEXITY,
    "time and space complexity": SectionTag.COMPLEXITY,
    "flags": SectionTag.FLAGS,
    "options": SectionTag.FLAGS,
    "common flags": SectionTag.FLAGS,
    "flags and options": SectionTag.FLAGS,
    "implementation": SectionTag.IMPLEMENTATION,
    "contents": SectionTag.CONTENTS,
    "documents": SectionTag.CONTENTS,
}


def normalize_target(target: str) -> str:
    """Normalize a wiki-link target (or a document id) to lookup form.

    Lowercases, maps spaces and underscores to hyphens, and drops a `.md`
    suffix: `[[Binary Search]]` and `binary-search.md` both become
    `binary-search`.
    """
    text = target.strip().rstrip("\\").strip()
    if text.lower().endswith(".md"):
        text = text[:-3]
    text = text.lstrip("./").lower()
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"-{2,}", "-", text)
    return "/".join(part.strip("-") for part in text.split("/"))


def is_asset_target(target: str) -> bool:
    last = target.strip().rsplit("/", 1)[-1].lower()
    dot = last.rfind(".")
    return dot > 0 and last[dot:] in ASSET_EXTENSIONS


def normalize_heading(heading: str) -> str:
    """Lowercase a heading and strip emoji, numbering and trailing colons."""
    text = heading.strip().lower().replace("&", " and ")
    text = re.sub(r"^[^a-z0-9]+", "", text)
    text = re.sub(r"[^a-z0-9;)]+$", "", text)
    text = re.sub(r"^\d+[.)]\s*", "", text)
    return re.sub(r"\s+", " ", text).strip()


def section_tag_for(heading: str) -> SectionTag | None:
    return SECTION_VOCABULARY.get(normalize_heading(heading))


def split_frontmatter(raw: str) -> tuple[list[str], list[str], int]:
    """Split raw text into (header lines, body lines, body start line).

    Line numbers are 1-based. Raises MissingFrontmatterError when the text
    does not open with a `---` delimited block.
    """
    lines = raw.lstrip("\ufeff").split("\n")
    if not lines or lines[0].strip() != FRONTMATTER_DELIMITER:
        raise MissingFrontmatterError("Document does not start with a '---' frontmatter block", line=1)
    for i in range(1, len(lines)):
        if lines[i].strip() == FRONTMATTER_DELIMITER:
            return lines[1:i], lines[i + 1 :], i + 2
    raise MissingFrontmatterError("Frontmatter block is never closed", line=1)


@dataclass
class ParsedBody:
    """Structural view of a document body."""

    title: str | None = None
    sections: list[Section] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)
    prose: str = ""
    callouts: set[str] = field(default_factory=set)


@dataclass
class _SectionBuffer:
    heading: str
    tag: SectionTag | None
    line: int
    lines: list[str] = field(default_factory=list)
    code_examples: int = 0


def parse_body(body_lines: list[str], first_line: int, languages: frozenset[str]) -> ParsedBody:
    """Parse body lines into sections, references, prose and callouts.

    `first_line` is the file line number of `body_lines[0]`. A fenced block
    counts as an example when its info string names one of `languages`.
    """
    parsed = ParsedBody()
    prose: list[str] = []
    current = _SectionBuffer(heading="", tag=None, line=first_line)
    buffers = [current]
    fence: str | None = None

    for offset, line in enumerate(body_lines):
        lineno = first_line + offset
        m = FENCE_PATTERN.match(line)
        if m:
            marker = m.group(1)
            if fence is None:
                fence = marker[0] * 3
                if m.group(2).strip().lower() in languages:
                    current.code_examples += 1
            elif marker.startswith(fence) and not m.group(2):
                fence = None
            current.lines.append(line)
            continue
        if fence is not None:
            current.lines.append(line)
            continue

        heading = HEADING_PATTERN.match(line)
        if heading and len(heading.group(1)) == 2:
            text = heading.group(2)
            current = _SectionBuffer(heading=text, tag=section_tag_for(text), line=lineno)
            buffers.append(current)
            if current.tag is None:
                logger.debug("Unrecognized section heading %r at line %d", text, lineno)
            prose.append(text)
            continue
        if heading and len(heading.group(1)) == 1 and parsed.title is None:
            parsed.title = heading.group(2).strip()

        current.lines.append(line)
        prose.append(line)

        callout = CALLOUT_PATTERN.match(line)
        if callout:
            parsed.callouts.add(callout.group(1).lower())

        for match in WIKILINK_PATTERN.finditer(line):
            target = match.group(1)
            if is_asset_target(target):
                continue
            normalized = normalize_target(target)
            if normalized:
                parsed.references.append(
                    Reference(
                        kind="wikilink",
                        target=normalized,
                        raw=target.strip(),
                        line=lineno,
                        section=current.tag,
                        anchor=match.group(2),
                    )
                )
        for url in _line_urls(line):
            parsed.references.append(Reference(kind="url", target=url, raw=url, line=lineno, section=current.tag))

    for buf in buffers:
        text = "\n".join(buf.lines).strip()
        if buf is buffers[0] and not text:
            continue
        parsed.sections.append(
            Section(
                heading=buf.heading,
                tag=buf.tag,
                body=text,
                line=buf.line,
                code_examples=buf.code_examples,
                has_table=has_table(text),
            )
        )
    parsed.prose = "\n".join(prose)
    return parsed


def _line_urls(line: str) -> list[str]:
    stripped = WIKILINK_PATTERN.sub(" ", line)
    urls = [m.group(1) for m in MARKDOWN_LINK_PATTERN.finditer(stripped)]
    without_md = MARKDOWN_LINK_PATTERN.sub(" ", stripped)
    urls.extend(m.group(0).rstrip(".,;:") for m in BARE_URL_PATTERN.finditer(without_md))
    return urls


def has_table(content: str) -> bool:
    """True when content holds a Markdown table (header row + separator)."""
    lines = content.split("\n")
    for i in range(len(lines) - 1):
        if TABLE_ROW_PATTERN.match(lines[i]) and TABLE_SEPARATOR_PATTERN.match(lines[i + 1]):
            return True
    return False


def split_table_row(line: str) -> list[str]:
    """Split a `| a | b |` row into cells, honouring escaped pipes."""
    stripped = line.strip()
    if stripped.startswith("|"):
        stripped = stripped[1:]
    if stripped.endswith("|") and not stripped.endswith("\\|"):
        stripped = stripped[:-1]
    return [cell.strip() for cell in re.split(r"(?<!\\)\|", stripped)]


def update_frontmatter_fields(raw: str, updates: dict[str, str]) -> str:
    """Rewrite `key: value` lines in the frontmatter block.

    Keys not yet present are appended before the closing delimiter. Other
    lines are left byte-for-byte untouched.
    """
    header, body, _ = split_frontmatter(raw)
    header = list(header)
    for key, value in updates.items():
        pattern = re.compile(rf"^{re.escape(key)}\s*:")
        for i, line in enumerate(header):
            if pattern.match(line):
                header[i] = f"{key}: {value}"
                break
        else:
            header.append(f"{key}: {value}")
    prefix = "\ufeff" if raw.startswith("\ufeff") else ""
    return prefix + "\n".join([FRONTMATTER_DELIMITER, *header, FRONTMATTER_DELIMITER, *body])
