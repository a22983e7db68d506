"""Schema validation of a single document against its template contract.

Every check here looks at one Document only, so documents can be validated
independently and in parallel.
"""

from urllib.parse import urlparse

from ..models import Difficulty, Document, SectionTag, Status
from .rules import Finding, make_finding
from .templates import TemplateContract


def is_valid_url(value: str) -> bool:
    """Absolute http(s) URL with a host and no whitespace."""
    if not value or any(ch.isspace() for ch in value):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def validate_document(doc: Document, contract: TemplateContract) -> list[Finding]:
    """Run all single-document checks and return findings (never raises)."""
    results: list[Finding] = []
    results.extend(check_enums(doc))
    results.extend(check_dates(doc))
    results.extend(check_category(doc))
    results.extend(check_unknown_sections(doc))
    results.extend(check_required_sections(doc, contract))
    results.extend(check_section_order(doc, contract))
    results.extend(check_tables(doc, contract))
    results.extend(check_examples(doc, contract))
    results.extend(check_callouts(doc, contract))
    results.extend(check_sources(doc, contract))
    results.extend(check_urls(doc))
    return results


def check_enums(doc: Document) -> list[Finding]:
    results = []
    if doc.status is None:
        allowed = ", ".join(s.value for s in Status)
        results.append(
            make_finding(
                "invalid-enum",
                doc.path,
                f"status '{doc.frontmatter.get('status')}' is not one of: {allowed}",
                field="status",
            )
        )
    raw_difficulty = doc.frontmatter.get("difficulty")
    if doc.difficulty is None and (raw_difficulty is not None or not doc.is_index):
        allowed = ", ".join(d.value for d in Difficulty)
        results.append(
            make_finding(
                "invalid-enum",
                doc.path,
                f"difficulty '{raw_difficulty}' is not one of: {allowed}",
                field="difficulty",
            )
        )
    return results


def check_dates(doc: Document) -> list[Finding]:
    if doc.updated < doc.created:
        return [
            make_finding(
                "invalid-date-order",
                doc.path,
                f"date-updated {doc.updated.isoformat()} is before date-created {doc.created.isoformat()}",
            )
        ]
    return []


def check_category(doc: Document) -> list[Finding]:
    if doc.category != doc.directory:
        return [
            make_finding(
                "category-mismatch",
                doc.path,
                f"category '{doc.category}' does not match location '{doc.directory or '/'}'",
                category=doc.category,
                location=doc.directory,
            )
        ]
    return []


def check_unknown_sections(doc: Document) -> list[Finding]:
    return [
        make_finding("unknown-section", doc.path, f"Section '{s.heading}' is not a recognized section", line=s.line)
        for s in doc.sections
        if s.tag is None and s.heading
    ]


def check_required_sections(doc: Document, contract: TemplateContract) -> list[Finding]:
    present = set(doc.section_tags())
    return [
        make_finding(
            "missing-section",
            doc.path,
            f"Missing required section '{tag.label}' for kind '{contract.kind.value}'",
            section=tag.value,
        )
        for tag in contract.required
        if tag not in present
    ]


def check_section_order(doc: Document, contract: TemplateContract) -> list[Finding]:
    """Required sections that are present must follow the contract order."""
    if not contract.ordered:
        return []
    first_seen: dict[SectionTag, int] = {}
    for section in doc.sections:
        if section.tag in contract.required and section.tag not in first_seen:
            first_seen[section.tag] = section.line
    expected = [tag for tag in contract.required if tag in first_seen]
    actual = sorted(first_seen, key=first_seen.get)
    if expected == actual:
        return []
    for want, got in zip(expected, actual):
        if want != got:
            return [
                make_finding(
                    "section-order",
                    doc.path,
                    f"Section '{got.label}' appears where '{want.label}' is expected "
                    f"(order: {', '.join(t.label for t in expected)})",
                    line=first_seen[got],
                )
            ]
    return []


def check_tables(doc: Document, contract: TemplateContract) -> list[Finding]:
    results = []
    for tag in contract.tables:
        section = doc.section(tag)
        if section is not None and not section.has_table:
            results.append(
                make_finding(
                    "missing-table",
                    doc.path,
                    f"Section '{tag.label}' must contain a table for kind '{contract.kind.value}'",
                    line=section.line,
                    section=tag.value,
                )
            )
    return results


def check_examples(doc: Document, contract: TemplateContract) -> list[Finding]:
    if contract.min_examples and doc.example_count < contract.min_examples:
        return [
            make_finding(
                "too-few-examples",
                doc.path,
                f"{doc.example_count} code example(s); at least {contract.min_examples} required",
                count=doc.example_count,
                required=contract.min_examples,
            )
        ]
    return []


def check_callouts(doc: Document, contract: TemplateContract) -> list[Finding]:
    # Seed documents are incomplete by definition
    if not contract.requires_callouts or doc.status not in (Status.GROWING, Status.EVERGREEN):
        return []
    results = []
    if not doc.has_tip_callout:
        results.append(
            make_finding("missing-callout", doc.path, "No tip callout (> [!tip])", callout="tip")
        )
    if not doc.has_warning_callout:
        results.append(
            make_finding("missing-callout", doc.path, "No warning callout (> [!warning])", callout="warning")
        )
    return results


def check_sources(doc: Document, contract: TemplateContract) -> list[Finding]:
    if contract.requires_sources and not doc.sources:
        return [make_finding("missing-sources", doc.path, "No sources listed in frontmatter")]
    return []


def check_urls(doc: Document) -> list[Finding]:
    results = []
    for source in doc.sources:
        if not is_valid_url(source):
            results.append(make_finding("invalid-url", doc.path, f"Invalid source URL '{source}'", url=source))
    for ref in doc.references:
        if ref.kind == "url" and ref.section is SectionTag.REFERENCES and not is_valid_url(ref.target):
            results.append(
                make_finding("invalid-url", doc.path, f"Invalid reference URL '{ref.target}'", line=ref.line, url=ref.target)
            )
    return results
