"""Caller-facing bag operations: build-and-validate, re-validate, naming."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
import logging
import os
from pathlib import Path
from typing import Any, Iterable

from .builder import BagBuilder
from .config import BaggingProfile
from .contracts import BagMetadata, ValidationIssue
from .paths import analyze_paths, find_common_root, sanitize_name, validate_paths
from .validator import BagValidator, is_valid, summarize_issues, validate_bag


logger = logging.getLogger("work_preservation.bagit.service")


@dataclass(frozen=True)
class BagResult:
    success: bool
    bag_path: str | None
    validation_results: list[ValidationIssue] = field(default_factory=list)
    error: str | None = None
    payload_oxum: str | None = None
    bag_size: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "bag_path": self.bag_path,
            "validation_results": [issue.as_dict() for issue in self.validation_results],
            "error": self.error,
            "payload_oxum": self.payload_oxum,
            "bag_size": self.bag_size,
        }


def create_bag(
    paths: Iterable[str | Path],
    bag_root: str | Path,
    metadata: BagMetadata,
    *,
    profile: BaggingProfile | None = None,
) -> BagResult:
    profile = profile or BaggingProfile.default()
    # lexical normalisation only; symlinked inputs keep their own location
    inputs = [Path(os.path.abspath(path)) for path in paths]
    validate_paths(inputs)
    stats = analyze_paths(inputs)
    source_root = find_common_root(inputs)
    logger.info(
        "bagging inputs=%d files=%d bytes=%d source_root=%s",
        len(inputs),
        stats.file_count,
        stats.total_size,
        source_root,
    )

    builder = BagBuilder.from_profile(bag_root, profile)
    summary = builder.build(stats.entries, source_root, metadata)

    issues: list[ValidationIssue] = []
    if profile.policy.validate_after_build:
        issues = BagValidator(builder.layout).validate()
    return BagResult(
        success=is_valid(issues),
        bag_path=str(builder.layout.root),
        validation_results=summarize_issues(issues),
        payload_oxum=summary.payload_oxum,
        bag_size=summary.bag_size,
    )


def revalidate_bag(bag_root: str | Path) -> list[ValidationIssue]:
    return validate_bag(bag_root)


def bag_name(project_name: str, project_id: str) -> str:
    return f"{sanitize_name(project_name)}-{str(project_id)[:8]}"


def default_bag_root(project_name: str, project_id: str, *, profile: BaggingProfile) -> Path:
    return Path(profile.wiring.bags_root) / bag_name(project_name, project_id)


def default_metadata(
    project_name: str,
    project_id: str,
    *,
    description: str | None = None,
    profile: BaggingProfile | None = None,
    archived_on: date | None = None,
) -> BagMetadata:
    profile = profile or BaggingProfile.default()
    archived_on = archived_on or datetime.now(tz=timezone.utc).date()
    external = (description or "").strip() or f"Archived project: {project_name}"
    return BagMetadata(
        external_description=external,
        internal_sender_identifier=str(project_id),
        source_organization=profile.wiring.source_organization,
        contact_name=profile.wiring.contact_name,
        contact_email=profile.wiring.contact_email,
        internal_sender_description=f"Creative work archived on {archived_on.strftime('%Y-%m-%d')}",
    )
