"""Vault policy: thresholds and switches read from vaultlint.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import PolicyError

POLICY_FILENAME = "vaultlint.toml"

DEFAULT_LANGUAGES = frozenset(
    {
        "bash",
        "c",
        "cpp",
        "c++",
        "csharp",
        "cs",
        "css",
        "console",
        "dockerfile",
        "go",
        "html",
        "ini",
        "java",
        "javascript",
        "js",
        "json",
        "jsx",
        "kotlin",
        "lua",
        "make",
        "php",
        "powershell",
        "py",
        "python",
        "r",
        "rb",
        "ruby",
        "rust",
        "scala",
        "sh",
        "shell",
        "sql",
        "swift",
        "toml",
        "ts",
        "tsx",
        "typescript",
        "xml",
        "yaml",
        "yml",
        "zsh",
    }
)


@dataclass(frozen=True)
class MaturityThresholds:
    growing_words: int = 1000
    evergreen_words: int = 3000
    growing_examples: int = 2
    evergreen_examples: int = 3


@dataclass(frozen=True)
class Policy:
    """Configurable validation policy. Defaults apply when no file exists."""

    maturity: MaturityThresholds = field(default_factory=MaturityThresholds)
    min_examples: int = 3
    languages: frozenset[str] = DEFAULT_LANGUAGES
    strict_links: bool = False
    backlinks_from_related_only: bool = False
    template_overrides: dict[str, dict[str, Any]] = field(default_factory=dict, hash=False)
    source: Path | None = None


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _int(table: dict[str, Any], key: str, default: int, section: str) -> int:
    value = table.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise PolicyError(f"[{section}] {key} must be a non-negative integer, got {value!r}")
    return value


def _bool(table: dict[str, Any], key: str, default: bool, section: str) -> bool:
    value = table.get(key, default)
    if not isinstance(value, bool):
        raise PolicyError(f"[{section}] {key} must be true or false, got {value!r}")
    return value


def parse_policy(data: dict[str, Any], source: Path | None = None) -> Policy:
    """Build a Policy from already-decoded TOML data."""
    maturity_raw = _coerce_dict(data.get("maturity"))
    defaults = MaturityThresholds()
    maturity = MaturityThresholds(
        growing_words=_int(maturity_raw, "growing_words", defaults.growing_words, "maturity"),
        evergreen_words=_int(maturity_raw, "evergreen_words", defaults.evergreen_words, "maturity"),
        growing_examples=_int(maturity_raw, "growing_examples", defaults.growing_examples, "maturity"),
        evergreen_examples=_int(maturity_raw, "evergreen_examples", defaults.evergreen_examples, "maturity"),
    )
    if maturity.growing_words > maturity.evergreen_words:
        raise PolicyError("[maturity] growing_words must not exceed evergreen_words")
    if maturity.growing_examples > maturity.evergreen_examples:
        raise PolicyError("[maturity] growing_examples must not exceed evergreen_examples")

    examples_raw = _coerce_dict(data.get("examples"))
    min_examples = _int(examples_raw, "min_examples", 3, "examples")
    languages = DEFAULT_LANGUAGES
    if "languages" in examples_raw:
        raw_languages = examples_raw["languages"]
        if not isinstance(raw_languages, list) or not all(isinstance(x, str) for x in raw_languages):
            raise PolicyError("[examples] languages must be a list of strings")
        languages = frozenset(x.strip().lower() for x in raw_languages if x.strip())

    links_raw = _coerce_dict(data.get("links"))

    overrides: dict[str, dict[str, Any]] = {}
    for kind, table in _coerce_dict(data.get("templates")).items():
        if not isinstance(table, dict):
            raise PolicyError(f"[templates.{kind}] must be a table")
        overrides[str(kind).strip().lower()] = dict(table)

    return Policy(
        maturity=maturity,
        min_examples=min_examples,
        languages=languages,
        strict_links=_bool(links_raw, "strict", False, "links"),
        backlinks_from_related_only=_bool(links_raw, "backlinks_from_related_only", False, "links"),
        template_overrides=overrides,
        source=source,
    )


def load_policy(vault_path: Path) -> Policy:
    """Load `<vault>/vaultlint.toml`, or the default policy if it is absent."""
    path = vault_path / POLICY_FILENAME
    if not path.exists():
        return Policy()
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise PolicyError(f"{path}: {e}") from e
    return parse_policy(data, source=path)
