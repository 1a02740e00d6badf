"""BagIt bag builder: declaration, payload copy, manifest, bag-info."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Any, Iterable

from .checksums import copy_with_sha256, hash_file_sha256
from .config import (
    DEFAULT_SOFTWARE_AGENT,
    PAYLOAD_ACCOUNTING_INCREMENTAL,
    PAYLOAD_ACCOUNTING_RECOMPUTE,
    BaggingProfile,
)
from .contracts import (
    BAGIT_ENCODING_LINE,
    BAGIT_VERSION_LINE,
    MANIFEST_SEPARATOR,
    BagBuildError,
    BagIoError,
    BagLayout,
    BagMetadata,
    PayloadTally,
    encode_manifest_path,
    format_bytes,
    payload_oxum,
)
from .paths import FileEntry, iter_tree


logger = logging.getLogger("work_preservation.bagit.builder")


@dataclass(frozen=True)
class BuildSummary:
    bag_root: str
    payload_oxum: str
    bag_size: str
    manifest_entries: int

    def as_dict(self) -> dict[str, Any]:
        return {
            "bag_root": self.bag_root,
            "payload_oxum": self.payload_oxum,
            "bag_size": self.bag_size,
            "manifest_entries": self.manifest_entries,
        }


class BagBuilder:
    """Writes one bag under a fixed root.

    Steps run in order (create, declaration, payload, manifest, bag-info) and
    each may be retried on its own. A failed step leaves whatever it had
    already written on disk.
    """

    def __init__(
        self,
        layout: BagLayout,
        *,
        software_agent: str = DEFAULT_SOFTWARE_AGENT,
        payload_accounting: str = PAYLOAD_ACCOUNTING_INCREMENTAL,
    ) -> None:
        self.layout = layout
        self.software_agent = software_agent
        self.payload_accounting = payload_accounting

    @classmethod
    def from_profile(cls, bag_root: str | Path, profile: BaggingProfile) -> "BagBuilder":
        return cls(
            BagLayout.for_root(bag_root),
            software_agent=profile.wiring.software_agent,
            payload_accounting=profile.policy.payload_accounting,
        )

    def build(
        self,
        entries: Iterable[FileEntry],
        source_root: str | Path,
        metadata: BagMetadata,
    ) -> BuildSummary:
        self.create()
        self.write_declaration()
        tally = self.copy_payload(entries, source_root)
        lines = self.write_manifest(tally)
        info = self.write_bag_info(metadata, tally)
        logger.info(
            "bag built root=%s oxum=%s size=%s",
            self.layout.root,
            info["Payload-Oxum"],
            info["Bag-Size"],
            extra={"narrative": True},
        )
        return BuildSummary(
            bag_root=str(self.layout.root),
            payload_oxum=info["Payload-Oxum"],
            bag_size=info["Bag-Size"],
            manifest_entries=len(lines),
        )

    def create(self) -> None:
        try:
            self.layout.data_dir.mkdir(parents=True, exist_ok=True)
            occupied = any(self.layout.data_dir.iterdir())
        except OSError as exc:
            raise BagIoError(f"BAG_CREATE_FAILED:{self.layout.root}") from exc
        if occupied:
            raise BagBuildError(f"PAYLOAD_NOT_EMPTY:{self.layout.data_dir}")
        logger.debug("bag root ready root=%s", self.layout.root)

    def write_declaration(self) -> None:
        _write_lines(self.layout.bagit_txt_path, [BAGIT_VERSION_LINE, BAGIT_ENCODING_LINE])

    def copy_payload(self, entries: Iterable[FileEntry], source_root: str | Path) -> PayloadTally:
        root = Path(source_root)
        tally = PayloadTally()
        for entry in entries:
            try:
                relative = entry.path.relative_to(root)
            except ValueError as exc:
                raise BagBuildError(f"ENTRY_OUTSIDE_SOURCE_ROOT:{entry.path}") from exc
            if ".." in relative.parts:
                raise BagBuildError(f"ENTRY_OUTSIDE_SOURCE_ROOT:{entry.path}")
            destination = self.layout.data_dir / relative
            try:
                if entry.is_directory:
                    destination.mkdir(parents=True, exist_ok=True)
                    continue
                destination.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise BagIoError(f"PAYLOAD_DIR_CREATE_FAILED:{destination}") from exc
            written, digest = copy_with_sha256(entry.path, destination)
            tally.record(self._manifest_path(destination), written, digest)
        logger.info(
            "payload copied root=%s files=%d bytes=%d",
            self.layout.root,
            tally.file_count,
            tally.total_bytes,
        )
        return tally

    def write_manifest(self, tally: PayloadTally | None = None) -> list[str]:
        if tally is None or self.payload_accounting == PAYLOAD_ACCOUNTING_RECOMPUTE:
            digests = self._payload_digests_from_disk()
            if tally is not None and digests != tally.digests:
                raise BagBuildError(f"PAYLOAD_TALLY_MISMATCH:{self.layout.data_dir}")
        else:
            digests = tally.digests
        lines = sorted(
            f"{digest}{MANIFEST_SEPARATOR}{encode_manifest_path(path)}" for path, digest in digests.items()
        )
        _write_lines(self.layout.manifest_path, lines)
        return lines

    def write_bag_info(self, metadata: BagMetadata, tally: PayloadTally | None = None) -> dict[str, str]:
        if tally is None or self.payload_accounting == PAYLOAD_ACCOUNTING_RECOMPUTE:
            total_bytes, file_count = self.payload_oxum()
            if tally is not None and (total_bytes, file_count) != (tally.total_bytes, tally.file_count):
                raise BagBuildError(f"PAYLOAD_TALLY_MISMATCH:{self.layout.data_dir}")
        else:
            total_bytes, file_count = tally.total_bytes, tally.file_count

        bagging_date = metadata.bagging_date or datetime.now(tz=timezone.utc).date()
        fields: list[tuple[str, str | None]] = [
            ("Bag-Software-Agent", self.software_agent),
            ("Bagging-Date", bagging_date.strftime("%Y-%m-%d")),
            ("Payload-Oxum", payload_oxum(total_bytes, file_count)),
            ("Bag-Size", format_bytes(self.bag_directory_size())),
            ("Source-Organization", metadata.source_organization),
            ("Contact-Name", metadata.contact_name),
            ("Contact-Email", metadata.contact_email),
            ("External-Description", metadata.external_description),
            ("Internal-Sender-Identifier", metadata.internal_sender_identifier),
            ("Internal-Sender-Description", metadata.internal_sender_description),
        ]
        info = {label: _tag_value(value) for label, value in fields if value is not None}
        _write_lines(self.layout.bag_info_path, [f"{label}: {value}" for label, value in info.items()])
        return info

    def payload_oxum(self) -> tuple[int, int]:
        total_bytes = 0
        file_count = 0
        for entry in iter_tree(self.layout.data_dir):
            if not entry.is_directory:
                total_bytes += entry.size
                file_count += 1
        return total_bytes, file_count

    def bag_directory_size(self) -> int:
        return sum(entry.size for entry in iter_tree(self.layout.root) if not entry.is_directory)

    def _payload_digests_from_disk(self) -> dict[str, str]:
        digests: dict[str, str] = {}
        for entry in iter_tree(self.layout.data_dir):
            if entry.is_directory:
                continue
            digests[self._manifest_path(entry.path)] = hash_file_sha256(entry.path)
        return digests

    def _manifest_path(self, path: Path) -> str:
        return path.relative_to(self.layout.root).as_posix()


def _tag_value(value: str) -> str:
    return " ".join(str(value).splitlines()).strip()


def _write_lines(path: Path, lines: list[str]) -> None:
    try:
        with path.open("w", encoding="utf-8", newline="\n") as handle:
            for line in lines:
                handle.write(line + "\n")
    except OSError as exc:
        raise BagIoError(f"WRITE_FAILED:{path}") from exc
