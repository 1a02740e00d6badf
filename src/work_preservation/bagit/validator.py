"""BagIt bag validation (structure, declaration, manifest checksums)."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Iterable

from .checksums import hash_file_sha256
from .contracts import (
    BAGIT_ENCODING_LINE,
    BAGIT_VERSION_LINE,
    MANIFEST_SEPARATOR,
    PAYLOAD_DIR_NAME,
    SEVERITY_ERROR,
    SEVERITY_INFO,
    SEVERITY_WARNING,
    BagIoError,
    BagLayout,
    NonUtf8PathError,
    ValidationIssue,
    decode_manifest_path,
    payload_oxum,
)
from .paths import iter_tree


logger = logging.getLogger("work_preservation.bagit.validator")

SUCCESS_MESSAGE = "BagIt package created and validated successfully"


class BagValidator:
    """Read-only re-verification of a bag on disk.

    Every check runs even when an earlier one fails, so a single pass reports
    all discrepancies. The bag is never repaired or rewritten.
    """

    def __init__(self, layout: BagLayout) -> None:
        self.layout = layout

    def validate(self) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        has_declaration = self.layout.bagit_txt_path.is_file()
        has_manifest = self.layout.manifest_path.is_file()
        has_payload = self.layout.data_dir.is_dir()

        if not has_declaration:
            issues.append(_error("BAGIT_TXT_MISSING", "Missing bagit.txt file"))
        if not has_manifest:
            issues.append(_error("MANIFEST_MISSING", "Missing manifest-sha256.txt file"))
        if not has_payload:
            issues.append(_error("PAYLOAD_DIR_MISSING", "Missing data directory"))

        if has_declaration:
            self._check_declaration(issues)
        listed: set[str] = set()
        if has_manifest:
            listed = self._check_manifest(issues)
        if has_payload:
            payload_files, complete = self._walk_payload(issues)
            if has_manifest:
                self._check_unlisted(listed, payload_files, issues)
            if complete:
                self._check_oxum(payload_files, issues)

        errors = sum(1 for issue in issues if issue.severity == SEVERITY_ERROR)
        if errors:
            logger.warning("bag invalid root=%s errors=%d issues=%d", self.layout.root, errors, len(issues))
        else:
            logger.info("bag valid root=%s issues=%d", self.layout.root, len(issues), extra={"narrative": True})
        return issues

    def _check_declaration(self, issues: list[ValidationIssue]) -> None:
        content = self._read_tag_file(self.layout.bagit_txt_path, issues)
        if content is None:
            return
        if BAGIT_VERSION_LINE not in content:
            issues.append(_error("BAGIT_VERSION_INVALID", "Invalid BagIt version in bagit.txt"))
        if BAGIT_ENCODING_LINE not in content:
            issues.append(
                _error("BAGIT_ENCODING_INVALID", "Invalid character encoding declaration in bagit.txt")
            )

    def _check_manifest(self, issues: list[ValidationIssue]) -> set[str]:
        listed: set[str] = set()
        content = self._read_tag_file(self.layout.manifest_path, issues)
        if content is None:
            return listed
        for line in _tag_lines(content):
            if not line.strip():
                continue
            expected, separator, relative = line.partition(MANIFEST_SEPARATOR)
            if not separator:
                issues.append(_error("MANIFEST_LINE_MALFORMED", f"Invalid manifest line format: {line}"))
                continue
            relative = decode_manifest_path(relative)
            listed.add(relative)
            if not _inside_payload(relative):
                issues.append(
                    _error(
                        "MANIFEST_PATH_OUTSIDE_PAYLOAD",
                        f"Manifest path outside payload directory: {relative}",
                        relative,
                    )
                )
                continue
            target = self.layout.root / relative
            if not target.is_file():
                issues.append(_error("PAYLOAD_FILE_MISSING", f"File missing: {relative}", relative))
                continue
            if hash_file_sha256(target) != expected.strip().lower():
                issues.append(
                    _error("CHECKSUM_MISMATCH", f"Checksum mismatch for file: {relative}", relative)
                )
        return listed

    def _walk_payload(self, issues: list[ValidationIssue]) -> tuple[dict[str, int], bool]:
        """Map payload files to sizes; a walk that hits an unreadable entry stops early."""
        files: dict[str, int] = {}
        try:
            for entry in iter_tree(self.layout.data_dir):
                if not entry.is_directory:
                    files[entry.path.relative_to(self.layout.root).as_posix()] = entry.size
        except (NonUtf8PathError, BagIoError) as exc:
            issues.append(
                ValidationIssue(
                    severity=SEVERITY_WARNING,
                    code="PAYLOAD_PATH_UNREADABLE",
                    message=f"Payload directory could not be fully read: {exc}",
                )
            )
            return files, False
        return files, True

    def _check_unlisted(
        self,
        listed: set[str],
        payload_files: dict[str, int],
        issues: list[ValidationIssue],
    ) -> None:
        for relative in payload_files:
            if relative not in listed:
                issues.append(
                    ValidationIssue(
                        severity=SEVERITY_WARNING,
                        code="PAYLOAD_FILE_UNLISTED",
                        message=f"Payload file not listed in manifest: {relative}",
                        affected_file=relative,
                    )
                )

    def _check_oxum(self, payload_files: dict[str, int], issues: list[ValidationIssue]) -> None:
        if not self.layout.bag_info_path.is_file():
            return
        content = self._read_tag_file(self.layout.bag_info_path, issues)
        if content is None:
            return
        recorded = _tag_field(content, "Payload-Oxum")
        if recorded is None:
            return
        actual = payload_oxum(sum(payload_files.values()), len(payload_files))
        if recorded != actual:
            issues.append(
                ValidationIssue(
                    severity=SEVERITY_WARNING,
                    code="PAYLOAD_OXUM_MISMATCH",
                    message=f"Payload-Oxum mismatch: recorded {recorded}, found {actual}",
                )
            )

    def _read_tag_file(self, path: Path, issues: list[ValidationIssue]) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            issues.append(_error("TAG_FILE_ENCODING_INVALID", f"Tag file is not valid UTF-8: {path.name}"))
            return None
        except OSError as exc:
            raise BagIoError(f"READ_FAILED:{path}") from exc


def validate_bag(bag_root: str | Path) -> list[ValidationIssue]:
    return BagValidator(BagLayout.for_root(bag_root)).validate()


def is_valid(issues: Iterable[ValidationIssue]) -> bool:
    return all(issue.severity != SEVERITY_ERROR for issue in issues)


def summarize_issues(
    issues: list[ValidationIssue],
    *,
    success_message: str = SUCCESS_MESSAGE,
) -> list[ValidationIssue]:
    if issues:
        return list(issues)
    return [ValidationIssue(severity=SEVERITY_INFO, code="BAG_VALID", message=success_message)]


def _error(code: str, message: str, affected_file: str | None = None) -> ValidationIssue:
    return ValidationIssue(severity=SEVERITY_ERROR, code=code, message=message, affected_file=affected_file)


def _tag_lines(content: str) -> list[str]:
    return [line.removesuffix("\r") for line in content.split("\n")]


def _tag_field(content: str, label: str) -> str | None:
    prefix = f"{label}:"
    for line in _tag_lines(content):
        if line.startswith(prefix):
            return line[len(prefix) :].strip()
    return None


def _inside_payload(relative: str) -> bool:
    candidate = PurePosixPath(relative)
    if candidate.is_absolute() or ".." in candidate.parts:
        return False
    return len(candidate.parts) > 1 and candidate.parts[0] == PAYLOAD_DIR_NAME
