"""Exceptions raised by vaultlint.

Checks report problems as findings; exceptions are reserved for the cases
where a document (or the whole run) cannot be processed at all.
"""


class VaultlintError(Exception):
    """Base class for vaultlint errors."""


class ParseError(VaultlintError):
    """A document could not be turned into a Document."""

    rule = "parse-error"

    def __init__(self, message: str, line: int | None = None):
        super().__init__(message)
        self.line = line


class MissingFrontmatterError(ParseError):
    rule = "missing-frontmatter"


class MalformedFrontmatterError(ParseError):
    rule = "malformed-frontmatter"


class TemplateError(VaultlintError):
    rule = "template-error"


class UnknownKindError(TemplateError):
    """A document names a kind outside the closed set of kinds."""

    rule = "unknown-kind"

    def __init__(self, kind: object):
        super().__init__(f"Unknown document kind {kind!r}")
        self.kind = kind


class StatusTransitionError(VaultlintError):
    """A status change that needs an explicit override."""


class PolicyError(VaultlintError, ValueError):
    """Invalid vaultlint.toml contents."""


class FileStoreError(VaultlintError):
    """The file store could not be listed, read or written."""
