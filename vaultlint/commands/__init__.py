"""Command implementations behind the vaultlint CLI."""
