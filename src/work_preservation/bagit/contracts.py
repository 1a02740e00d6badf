"""BagIt contracts: fixed layout, metadata, validation issues, error types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
import re
from typing import Any


BAGIT_VERSION_LINE = "BagIt-Version: 1.0"
BAGIT_ENCODING_LINE = "Tag-File-Character-Encoding: UTF-8"

PAYLOAD_DIR_NAME = "data"
MANIFEST_FILE_NAME = "manifest-sha256.txt"
BAG_INFO_FILE_NAME = "bag-info.txt"
BAGIT_FILE_NAME = "bagit.txt"

MANIFEST_SEPARATOR = "  "

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"
SEVERITY_INFO = "info"

_SIZE_UNITS: tuple[str, ...] = ("B", "KB", "MB", "GB", "TB")
_SIZE_STEP = 1024

_MANIFEST_ESCAPE = re.compile(r"%(?:25|0[DdAa])")
_MANIFEST_UNESCAPED = {"%25": "%", "%0D": "\r", "%0A": "\n"}


class BagError(RuntimeError):
    """Base error for the bagit core."""


class PathNotFoundError(BagError):
    pass


class NonUtf8PathError(BagError):
    pass


class BagIoError(BagError):
    pass


class NoCommonRootError(BagError):
    pass


class BagBuildError(BagError):
    pass


@dataclass(frozen=True)
class BagLayout:
    root: Path
    data_dir: Path
    manifest_path: Path
    bag_info_path: Path
    bagit_txt_path: Path

    @classmethod
    def for_root(cls, root: str | Path) -> "BagLayout":
        bag_root = Path(root)
        return cls(
            root=bag_root,
            data_dir=bag_root / PAYLOAD_DIR_NAME,
            manifest_path=bag_root / MANIFEST_FILE_NAME,
            bag_info_path=bag_root / BAG_INFO_FILE_NAME,
            bagit_txt_path=bag_root / BAGIT_FILE_NAME,
        )


@dataclass(frozen=True)
class BagMetadata:
    external_description: str
    internal_sender_identifier: str
    source_organization: str | None = None
    contact_name: str | None = None
    contact_email: str | None = None
    internal_sender_description: str | None = None
    bagging_date: date | None = None


@dataclass
class PayloadTally:
    """Running payload totals accumulated while the payload is copied."""

    total_bytes: int = 0
    file_count: int = 0
    digests: dict[str, str] = field(default_factory=dict)

    def record(self, relative_path: str, size: int, sha256: str) -> None:
        if relative_path not in self.digests:
            self.file_count += 1
            self.total_bytes += int(size)
        self.digests[relative_path] = sha256

    @property
    def oxum(self) -> str:
        return payload_oxum(self.total_bytes, self.file_count)


@dataclass(frozen=True)
class ValidationIssue:
    severity: str
    code: str
    message: str
    affected_file: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity,
            "code": self.code,
            "message": self.message,
            "file": self.affected_file,
        }


def payload_oxum(total_bytes: int, file_count: int) -> str:
    return f"{int(total_bytes)}.{int(file_count)}"


def format_bytes(size: int) -> str:
    size = int(size)
    if size <= 0:
        return "0 B"
    unit_index = 0
    while unit_index < len(_SIZE_UNITS) - 1 and size >= _SIZE_STEP ** (unit_index + 1):
        unit_index += 1
    if unit_index == 0:
        return f"{size} {_SIZE_UNITS[0]}"
    value = size / (_SIZE_STEP**unit_index)
    return f"{value:.1f} {_SIZE_UNITS[unit_index]}"


def encode_manifest_path(relative_path: str) -> str:
    """Percent-encode ``%``, CR and LF so a path always fits on one manifest line."""
    return relative_path.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def decode_manifest_path(encoded: str) -> str:
    return _MANIFEST_ESCAPE.sub(lambda match: _MANIFEST_UNESCAPED[match.group(0).upper()], encoded)
