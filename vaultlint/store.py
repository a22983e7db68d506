"""File store: where raw vault documents come from and go back to."""

from abc import ABC, abstractmethod
from pathlib import Path

from .errors import FileStoreError


class FileStore(ABC):
    """Storage backend for vault documents, addressed by vault-relative path."""

    @abstractmethod
    def list_documents(self) -> list[str]:
        """Vault-relative POSIX paths of all Markdown documents."""
        ...

    @abstractmethod
    def read(self, path: str) -> str:
        ...

    @abstractmethod
    def write(self, path: str, text: str) -> None:
        ...

    @abstractmethod
    def delete(self, path: str) -> None:
        ...


class LocalFileStore(FileStore):
    """A vault rooted at a directory on the local filesystem."""

    def __init__(self, root: Path):
        self.root = root

    def _resolve(self, path: str) -> Path:
        full = (self.root / path).resolve()
        if not full.is_relative_to(self.root.resolve()):
            raise FileStoreError(f"Path escapes the vault: {path}")
        return full

    def list_documents(self) -> list[str]:
        if not self.root.is_dir():
            raise FileStoreError(f"Vault directory not found: {self.root}")
        paths = []
        try:
            for md_file in self.root.rglob("*.md"):
                rel = md_file.relative_to(self.root)
                # Skip hidden files and directories
                if any(part.startswith(".") for part in rel.parts):
                    continue
                paths.append(rel.as_posix())
        except OSError as e:
            raise FileStoreError(f"Cannot list vault {self.root}: {e}") from e
        return sorted(paths)

    def read(self, path: str) -> str:
        try:
            return self._resolve(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FileStoreError(f"Cannot read {path}: {e}") from e

    def write(self, path: str, text: str) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        except OSError as e:
            raise FileStoreError(f"Cannot write {path}: {e}") from e

    def delete(self, path: str) -> None:
        try:
            self._resolve(path).unlink()
        except OSError as e:
            raise FileStoreError(f"Cannot delete {path}: {e}") from e
