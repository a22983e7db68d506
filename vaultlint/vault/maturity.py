"""Maturity status: suggestion from content signals and consistency checks.

Status is authored metadata. The checks here only report disagreement
between the stored status and what the content supports; they never rewrite
it. Changing status is an explicit, logged operation (see `transition`).
"""

from ..errors import StatusTransitionError
from ..models import Document, Status
from ..policy import Policy
from .rules import Finding, make_finding
from .templates import TemplateContract


def is_structurally_complete(doc: Document, contract: TemplateContract) -> bool:
    """All required sections present and non-empty."""
    for tag in contract.required:
        section = doc.section(tag)
        if section is None or section.is_empty:
            return False
    return True


def suggested_status(doc: Document, contract: TemplateContract, policy: Policy) -> Status:
    """Highest status whose word, example and completeness thresholds are met."""
    t = policy.maturity
    words = doc.word_count
    examples = doc.example_count
    if words >= t.evergreen_words and examples >= t.evergreen_examples and is_structurally_complete(doc, contract):
        return Status.EVERGREEN
    if words >= t.growing_words and examples >= t.growing_examples:
        return Status.GROWING
    return Status.SEED


def validate_status(doc: Document, contract: TemplateContract, policy: Policy) -> Finding | None:
    """Compare stored status to the suggestion.

    Index documents and documents whose status is not a valid value are not
    checked.
    """
    if doc.is_index or doc.status is None:
        return None
    suggested = suggested_status(doc, contract, policy)
    metrics = {
        "stored": doc.status.value,
        "suggested": suggested.value,
        "words": doc.word_count,
        "examples": doc.example_count,
    }
    if doc.status.rank > suggested.rank:
        return make_finding(
            "status-overclaim",
            doc.path,
            f"Marked '{doc.status.value}' but content supports '{suggested.value}' "
            f"({doc.word_count} words, {doc.example_count} examples)",
            **metrics,
        )
    if doc.status.rank < suggested.rank:
        return make_finding(
            "status-upgrade-available",
            doc.path,
            f"Content supports '{suggested.value}' (marked '{doc.status.value}')",
            **metrics,
        )
    return None


def transition(current: Status | None, target: Status, force: bool = False) -> Status:
    """Validate a status change.

    Promotions (and unchanged status) are always allowed. A downgrade needs
    `force`, since nothing downgrades automatically.
    """
    if current is not None and target.rank < current.rank and not force:
        raise StatusTransitionError(
            f"Refusing to downgrade status from '{current.value}' to '{target.value}' without --force"
        )
    return target
