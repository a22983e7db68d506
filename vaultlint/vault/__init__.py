"""Vault loading, parsing and checking."""

from .loader import load_vault, parse_document, Vault
from .graph import LinkGraph
from .index_sync import check_indexes, expected_listing
from .rules import Finding
from .templates import TemplateRepository, contract_for

__all__ = [
    "load_vault",
    "parse_document",
    "Vault",
    "LinkGraph",
    "check_indexes",
    "expected_listing",
    "Finding",
    "TemplateRepository",
    "contract_for",
]
