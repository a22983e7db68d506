"""Cross-reference graph over a complete vault snapshot."""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..models import Link, SectionTag
from ..policy import Policy
from .rules import Finding, make_finding

if TYPE_CHECKING:
    from .loader import Vault


@dataclass
class LinkGraph:
    """Directed wiki-link graph between documents.

    `links` is ordered by source id, then by position in the source body, so
    everything derived from it is stable across runs.
    """

    links: list[Link] = field(default_factory=list)
    edges: dict[str, set[str]] = field(default_factory=lambda: defaultdict(set))  # source -> targets
    reverse_edges: dict[str, set[str]] = field(default_factory=lambda: defaultdict(set))  # target -> sources
    related_edges: dict[str, set[str]] = field(default_factory=lambda: defaultdict(set))  # from Related Topics only
    ambiguous: dict[tuple[str, int, str], list[str]] = field(default_factory=dict)  # (source, line, ref) -> ids

    @classmethod
    def build(cls, vault: "Vault") -> "LinkGraph":
        """Extract and resolve every wiki-link of every document in `vault`."""
        graph = cls()
        for doc in vault.documents:
            for ref in doc.wikilinks:
                target_ref = ref.raw
                candidates = vault.resolve(ref.full_target) if ref.anchor is not None else []
                if candidates:
                    target_ref = ref.full_target
                else:
                    candidates = vault.resolve(ref.target)
                resolved = candidates[0] if candidates else None
                link = Link(
                    source_id=doc.id,
                    target_ref=target_ref,
                    resolved_target_id=resolved,
                    line=ref.line,
                    section=ref.section,
                )
                graph.links.append(link)
                if len(candidates) > 1:
                    graph.ambiguous[(doc.id, ref.line, target_ref)] = candidates
                if resolved is None or resolved == doc.id:
                    continue
                graph.edges[doc.id].add(resolved)
                graph.reverse_edges[resolved].add(doc.id)
                if ref.section is SectionTag.RELATED_TOPICS:
                    graph.related_edges[doc.id].add(resolved)
        return graph

    def dangling(self) -> list[Link]:
        return [link for link in self.links if link.is_dangling]

    def get_links_from(self, doc_id: str) -> set[str]:
        return self.edges.get(doc_id, set())

    def get_links_to(self, doc_id: str) -> set[str]:
        return self.reverse_edges.get(doc_id, set())

    def check(self, vault: "Vault", policy: Policy, strict: bool = False) -> list[Finding]:
        """Vault-wide link checks: dangling, ambiguous, missing backlinks, orphans."""
        results: list[Finding] = []
        results.extend(self.check_dangling(vault, strict or policy.strict_links))
        results.extend(self.check_ambiguous(vault))
        results.extend(self.check_backlinks(vault, policy.backlinks_from_related_only))
        results.extend(self.check_orphans(vault))
        return sorted(results, key=Finding.sort_key)

    def check_dangling(self, vault: "Vault", strict: bool) -> list[Finding]:
        results = []
        for link in self.dangling():
            source = vault.get(link.source_id)
            results.append(
                make_finding(
                    "dangling-link",
                    source.path,
                    f"Link to '{link.target_ref}' does not resolve to any document",
                    line=link.line,
                    level="error" if strict else None,
                    target=link.target_ref,
                )
            )
        return results

    def check_ambiguous(self, vault: "Vault") -> list[Finding]:
        results = []
        for (source_id, line, ref), candidates in sorted(self.ambiguous.items()):
            results.append(
                make_finding(
                    "ambiguous-link",
                    vault.get(source_id).path,
                    f"Link '{ref}' matches {len(candidates)} documents ({', '.join(candidates)}); "
                    f"using '{candidates[0]}'",
                    line=line,
                    target=ref,
                    candidates=candidates,
                )
            )
        return results

    def check_backlinks(self, vault: "Vault", related_only: bool = False) -> list[Finding]:
        """For A -> B between non-index documents, B must link back to A.

        The finding is attached to B, the document that needs the edit.
        """
        back_edges = self.related_edges if related_only else self.edges
        results = []
        for source_id in sorted(self.edges):
            source = vault.get(source_id)
            # Listed members are not expected to link to their index
            if source.is_index:
                continue
            for target_id in sorted(self.edges[source_id]):
                target = vault.get(target_id)
                if target.is_index:
                    continue
                if source_id in back_edges.get(target_id, set()):
                    continue
                where = "its Related Topics section" if related_only else "it"
                results.append(
                    make_finding(
                        "missing-backlink",
                        target.path,
                        f"'{source_id}' links here but {where} has no link back to '{source_id}'",
                        source=source_id,
                    )
                )
        return results

    def check_orphans(self, vault: "Vault") -> list[Finding]:
        """Non-index documents no other document links to."""
        return [
            make_finding(
                "orphaned",
                doc.path,
                "No document links here; it is unreachable from its category index",
            )
            for doc in vault.documents
            if not doc.is_index and not self.get_links_to(doc.id)
        ]
