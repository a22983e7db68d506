"""Vault loading: parse documents in parallel into one immutable snapshot."""

import concurrent.futures
import logging
import os
from dataclasses import dataclass
from datetime import date, datetime
from functools import cached_property
from typing import Any

import frontmatter
import yaml

from ..errors import FileStoreError, MalformedFrontmatterError, ParseError, TemplateError
from ..models import Category, Difficulty, Document, Kind, Status
from ..policy import DEFAULT_LANGUAGES, Policy
from ..store import FileStore
from .maturity import validate_status
from .parser import normalize_target, parse_body, split_frontmatter
from .rules import Finding, make_finding
from .schema import validate_document
from .templates import TemplateRepository, resolve_kind

logger = logging.getLogger(__name__)


def _coerce_date(value: Any, key: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise MalformedFrontmatterError(f"'{key}' must be an ISO date (YYYY-MM-DD), got {value!r}")


def _coerce_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    raise MalformedFrontmatterError(f"'{key}' must be a list of strings, got {value!r}")


def _require(fm: dict[str, Any], key: str) -> Any:
    if key not in fm or fm[key] is None:
        raise MalformedFrontmatterError(f"Missing required frontmatter key '{key}'")
    return fm[key]


def _require_str(fm: dict[str, Any], key: str) -> str:
    value = _require(fm, key)
    if not isinstance(value, str) or not value.strip():
        raise MalformedFrontmatterError(f"'{key}' must be a non-empty string, got {value!r}")
    return value.strip()


def parse_document(raw: str, path: str, languages: frozenset[str] = DEFAULT_LANGUAGES) -> Document:
    """Parse raw text of the document stored at `path` into a Document.

    Raises:
        MissingFrontmatterError: no `---` block at the top of the file
        MalformedFrontmatterError: invalid YAML, or a required key is
            missing or has the wrong type
        UnknownKindError: `kind` is outside the closed set of kinds
    """
    _, body_lines, body_start = split_frontmatter(raw)
    try:
        post = frontmatter.loads(raw.lstrip("\ufeff"))
    except yaml.YAMLError as e:
        raise MalformedFrontmatterError(f"Frontmatter is not valid YAML: {e}", line=1) from e
    except ValueError as e:
        # YAML scalars such as an impossible date (2024-02-30)
        raise MalformedFrontmatterError(f"Frontmatter has an invalid value: {e}", line=1) from e
    fm = post.metadata
    if not isinstance(fm, dict):
        raise MalformedFrontmatterError("Frontmatter must be a mapping of keys to values", line=1)

    kind = resolve_kind(fm.get("kind"))
    category = _require_str(fm, "category").strip("/")
    tags = _coerce_str_list(_require(fm, "tags"), "tags")
    status_raw = _require_str(fm, "status")
    created = _coerce_date(_require(fm, "date-created"), "date-created")
    updated = _coerce_date(_require(fm, "date-updated"), "date-updated")

    difficulty = None
    if kind is Kind.INDEX:
        if isinstance(fm.get("difficulty"), str):
            difficulty = Difficulty.parse(fm["difficulty"])
        sources = _coerce_str_list(fm.get("sources"), "sources")
    else:
        difficulty = Difficulty.parse(_require_str(fm, "difficulty"))
        if "sources" not in fm:
            raise MalformedFrontmatterError("Missing required frontmatter key 'sources'")
        sources = _coerce_str_list(fm["sources"], "sources")

    body = parse_body(body_lines, body_start, languages)
    doc_id = path[:-3] if path.lower().endswith(".md") else path
    title = fm.get("title") if isinstance(fm.get("title"), str) and fm["title"].strip() else None

    return Document(
        id=doc_id,
        path=path,
        category=category,
        kind=kind,
        title=(title or body.title or doc_id.rsplit("/", 1)[-1]).strip(),
        tags=frozenset(t.strip() for t in tags if t.strip()),
        difficulty=difficulty,
        status=Status.parse(status_raw),
        created=created,
        updated=updated,
        sources=tuple(s.strip() for s in sources),
        sections=tuple(body.sections),
        references=tuple(body.references),
        frontmatter=dict(fm),
        body="\n".join(body_lines),
        prose=body.prose,
        callouts=frozenset(body.callouts),
    )


@dataclass(frozen=True)
class DocumentResult:
    """Outcome of the per-document phase for one file."""

    path: str
    document: Document | None  # None when the file could not be parsed
    findings: tuple[Finding, ...] = ()


@dataclass(frozen=True)
class Vault:
    """Immutable snapshot of every document loaded in one run."""

    results: tuple[DocumentResult, ...]
    pending: tuple[str, ...] = ()  # paths not processed before the timeout

    @property
    def complete(self) -> bool:
        return not self.pending

    @cached_property
    def documents(self) -> tuple[Document, ...]:
        """Successfully parsed documents, sorted by id."""
        docs = [r.document for r in self.results if r.document is not None]
        return tuple(sorted(docs, key=lambda d: d.id))

    @cached_property
    def _by_id(self) -> dict[str, Document]:
        return {d.id: d for d in self.documents}

    @cached_property
    def _by_normalized(self) -> dict[str, str]:
        return {normalize_target(d.id): d.id for d in self.documents}

    @cached_property
    def _by_stem(self) -> dict[str, list[str]]:
        stems: dict[str, list[str]] = {}
        for d in self.documents:
            stems.setdefault(normalize_target(d.name), []).append(d.id)
        return stems

    def get(self, doc_id: str) -> Document | None:
        """Get a document by id or by any wiki-link spelling of it."""
        if doc_id in self._by_id:
            return self._by_id[doc_id]
        candidates = self.resolve(doc_id)
        return self._by_id[candidates[0]] if candidates else None

    def resolve(self, target: str) -> list[str]:
        """Ids a wiki-link target can refer to: full-path match first, then by stem."""
        normalized = normalize_target(target)
        if normalized in self._by_normalized:
            return [self._by_normalized[normalized]]
        return list(self._by_stem.get(normalized, []))

    @property
    def findings(self) -> list[Finding]:
        return [f for r in self.results for f in r.findings]

    @cached_property
    def categories(self) -> dict[str, Category]:
        """Categories keyed by path, with their index and direct members."""
        paths: set[str] = set()
        for d in self.documents:
            paths.add(d.category)
        result = {}
        for path in sorted(paths):
            indexes = [d.id for d in self.documents if d.is_index and d.category == path]
            members = tuple(d.id for d in self.documents if not d.is_index and d.category == path)
            result[path] = Category(path=path, index_id=indexes[0] if indexes else None, member_ids=members)
        return result

    def members_under(self, category: str) -> list[Document]:
        """Non-index documents in `category` or any of its subcategories."""
        prefix = category + "/"
        return [
            d for d in self.documents if not d.is_index and (d.category == category or d.category.startswith(prefix))
        ]


def check_document(
    store: FileStore,
    path: str,
    policy: Policy,
    templates: TemplateRepository,
) -> DocumentResult:
    """Read, parse and validate one document in isolation."""
    try:
        raw = store.read(path)
    except FileStoreError as e:
        return DocumentResult(path, None, (make_finding("read-error", path, str(e)),))

    try:
        doc = parse_document(raw, path, policy.languages)
    except (ParseError, TemplateError) as e:
        logger.debug("Skipping %s: %s", path, e)
        return DocumentResult(path, None, (make_finding(e.rule, path, str(e), line=getattr(e, "line", None)),))

    contract = templates.contract_for(doc.kind)
    findings = validate_document(doc, contract)
    status_finding = validate_status(doc, contract, policy)
    if status_finding is not None:
        findings.append(status_finding)
    return DocumentResult(path, doc, tuple(sorted(findings, key=Finding.sort_key)))


def load_vault(
    store: FileStore,
    policy: Policy | None = None,
    templates: TemplateRepository | None = None,
    *,
    jobs: int | None = None,
    timeout: float | None = None,
) -> Vault:
    """Load and check every document of the store into a Vault snapshot.

    Documents are processed on a thread pool. When `timeout` (seconds)
    expires, finished documents are kept and the rest are listed as pending.

    Raises:
        FileStoreError: the store cannot be listed
    """
    policy = policy or Policy()
    templates = templates or TemplateRepository.from_policy(policy)
    paths = store.list_documents()
    logger.info("Loading %d documents", len(paths))

    results: dict[str, DocumentResult] = {}
    if not paths:
        return Vault(results=())

    executor = concurrent.futures.ThreadPoolExecutor(max_workers=jobs or os.cpu_count() or 1)
    timed_out = False
    try:
        futures = {executor.submit(check_document, store, path, policy, templates): path for path in paths}
        done, not_done = concurrent.futures.wait(futures, timeout=timeout)
        timed_out = bool(not_done)
        for future in done:
            results[futures[future]] = future.result()
    finally:
        executor.shutdown(wait=not timed_out, cancel_futures=True)

    pending = tuple(sorted(set(paths) - set(results)))
    if pending:
        logger.warning("Timed out with %d documents unprocessed", len(pending))
    ordered = tuple(results[p] for p in sorted(results))
    return Vault(results=ordered, pending=pending)
