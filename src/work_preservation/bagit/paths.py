"""Path analysis for bag inputs: traversal, totals, common roots, safe names."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Iterable, Iterator
import unicodedata

from .contracts import BagIoError, NoCommonRootError, NonUtf8PathError, PathNotFoundError


_UNSAFE_NAME_CHARS = frozenset('/\\:*?"<>|')
_PASSTHROUGH_CHARS = frozenset(" -_.")
_COMBINING_CATEGORIES = frozenset({"Mn", "Mc"})


@dataclass(frozen=True)
class FileEntry:
    path: Path
    name: str
    size: int
    is_directory: bool


@dataclass
class DirectoryStats:
    file_count: int = 0
    total_size: int = 0
    entries: list[FileEntry] = field(default_factory=list)

    def add(self, entry: FileEntry) -> None:
        self.entries.append(entry)
        if not entry.is_directory:
            self.file_count += 1
            self.total_size += entry.size

    def merge(self, other: "DirectoryStats") -> None:
        for entry in other.entries:
            self.add(entry)


def analyze_path(path: str | Path) -> DirectoryStats:
    target = Path(path)
    _require_text(target)
    if not target.exists():
        raise PathNotFoundError(f"PATH_NOT_FOUND:{target}")
    stats = DirectoryStats()
    if target.is_file():
        stats.add(_file_entry(target, _stat_size(target)))
        return stats
    if target.is_dir():
        for entry in iter_tree(target):
            stats.add(entry)
    return stats


def analyze_paths(paths: Iterable[str | Path]) -> DirectoryStats:
    stats = DirectoryStats()
    for path in paths:
        stats.merge(analyze_path(path))
    return stats


def validate_paths(paths: Iterable[str | Path]) -> list[FileEntry]:
    validated: list[FileEntry] = []
    for raw in paths:
        path = Path(raw)
        _require_text(path)
        if not path.exists():
            raise PathNotFoundError(f"PATH_NOT_FOUND:{path}")
        if path.is_dir():
            validated.append(FileEntry(path=path, name=_entry_name(path), size=0, is_directory=True))
        else:
            validated.append(_file_entry(path, _stat_size(path)))
    return validated


def iter_tree(root: Path) -> Iterator[FileEntry]:
    """Yield every regular file and sub-directory under ``root``, name-sorted, pre-order.

    The root itself is not yielded and symbolic links are neither followed nor
    reported.
    """
    try:
        with os.scandir(root) as scanner:
            children = sorted(scanner, key=lambda item: item.name)
    except OSError as exc:
        raise BagIoError(f"DIRECTORY_UNREADABLE:{root}") from exc
    for child in children:
        child_path = Path(child.path)
        _require_text(child_path)
        try:
            if child.is_dir(follow_symlinks=False):
                yield FileEntry(path=child_path, name=child.name, size=0, is_directory=True)
                yield from iter_tree(child_path)
            elif child.is_file(follow_symlinks=False):
                size = child.stat(follow_symlinks=False).st_size
                yield FileEntry(path=child_path, name=child.name, size=size, is_directory=False)
        except OSError as exc:
            raise BagIoError(f"ENTRY_UNREADABLE:{child_path}") from exc


def find_common_root(paths: Iterable[str | Path]) -> Path:
    candidates = [Path(path) for path in paths]
    if not candidates:
        raise NoCommonRootError("NO_PATHS_PROVIDED")
    if len(candidates) == 1:
        return _effective_directory(candidates[0])

    common_root = candidates[0].parent
    for path in candidates[1:]:
        effective = _effective_directory(path)
        while not effective.is_relative_to(common_root):
            parent = common_root.parent
            if parent == common_root:
                raise NoCommonRootError(f"NO_COMMON_ROOT:{path}")
            common_root = parent
    return common_root


def sanitize_name(text: str) -> str:
    """Map path-hostile characters to ``-`` and other symbols to ``_``.

    Letters, digits and the combining marks attached to them (vowel signs in
    Devanagari, accents in decomposed Latin) are kept as written.
    """
    mapped: list[str] = []
    previous_kept = False
    for char in text:
        if char in _UNSAFE_NAME_CHARS:
            mapped.append("-")
            previous_kept = False
        elif char.isalnum() or char in _PASSTHROUGH_CHARS:
            mapped.append(char)
            previous_kept = char.isalnum()
        elif previous_kept and unicodedata.category(char) in _COMBINING_CATEGORIES:
            mapped.append(char)
        else:
            mapped.append("_")
            previous_kept = False
    return "".join(mapped).strip()


def _effective_directory(path: Path) -> Path:
    if path.is_dir():
        return path
    return path.parent


def _file_entry(path: Path, size: int) -> FileEntry:
    return FileEntry(path=path, name=_entry_name(path), size=size, is_directory=False)


def _entry_name(path: Path) -> str:
    return path.name or "Unknown"


def _stat_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError as exc:
        raise BagIoError(f"STAT_FAILED:{path}") from exc


def _require_text(path: Path) -> None:
    # undecodable bytes surface as lone surrogates, which strict UTF-8 rejects
    try:
        str(path).encode("utf-8")
    except UnicodeEncodeError as exc:
        raise NonUtf8PathError(f"NON_UTF8_PATH:{path!r}") from exc
