"""vaultlint - schema and cross-reference checker for Markdown knowledge vaults."""

__version__ = "0.1.0"
