from __future__ import annotations

from datetime import date
import hashlib
from pathlib import Path

import pytest

from work_preservation.bagit.builder import BagBuilder
from work_preservation.bagit.config import PAYLOAD_ACCOUNTING_RECOMPUTE
from work_preservation.bagit.contracts import (
    BagBuildError,
    BagLayout,
    BagMetadata,
    PayloadTally,
    format_bytes,
)
from work_preservation.bagit.paths import FileEntry, analyze_path


def _metadata(**overrides) -> BagMetadata:
    values = {
        "external_description": "Archived project: Novel",
        "internal_sender_identifier": "3f2a9c1e-0000-4000-8000-000000000000",
        "bagging_date": date(2026, 10, 17),
    }
    values.update(overrides)
    return BagMetadata(**values)


def _seed_project(root: Path) -> Path:
    project = root / "novel"
    (project / "chapters").mkdir(parents=True)
    (project / "assets" / "empty").mkdir(parents=True)
    (project / "chapters" / "01.md").write_text("It was a dark night.", encoding="utf-8")
    (project / "chapters" / "02.md").write_text("Morning came.", encoding="utf-8")
    (project / "cover.png").write_bytes(b"\x89PNG" + b"\x00" * 60)
    return project


def _build(project: Path, bag_root: Path, **kwargs) -> BagBuilder:
    builder = BagBuilder(BagLayout.for_root(bag_root), **kwargs)
    builder.build(analyze_path(project).entries, project, _metadata())
    return builder


def test_format_bytes() -> None:
    assert format_bytes(0) == "0 B"
    assert format_bytes(512) == "512 B"
    assert format_bytes(1023) == "1023 B"
    assert format_bytes(1024) == "1.0 KB"
    assert format_bytes(1536) == "1.5 KB"
    assert format_bytes(1048576) == "1.0 MB"
    assert format_bytes(1073741824) == "1.0 GB"
    assert format_bytes(1024**4) == "1.0 TB"
    assert format_bytes(1024**5) == "1024.0 TB"


def test_declaration_is_two_fixed_lines(tmp_path: Path) -> None:
    builder = BagBuilder(BagLayout.for_root(tmp_path / "bag"))
    builder.create()
    builder.write_declaration()
    assert builder.layout.bagit_txt_path.read_text(encoding="utf-8") == (
        "BagIt-Version: 1.0\nTag-File-Character-Encoding: UTF-8\n"
    )


def test_create_is_idempotent_but_refuses_occupied_payload(tmp_path: Path) -> None:
    builder = BagBuilder(BagLayout.for_root(tmp_path / "bag"))
    builder.create()
    builder.create()
    (builder.layout.data_dir / "stray.txt").write_text("x", encoding="utf-8")
    with pytest.raises(BagBuildError):
        builder.create()


def test_build_writes_layout_and_sorted_manifest(tmp_path: Path) -> None:
    project = _seed_project(tmp_path)
    builder = _build(project, tmp_path / "bag")
    layout = builder.layout

    assert (layout.data_dir / "chapters" / "01.md").read_text(encoding="utf-8") == "It was a dark night."
    assert (layout.data_dir / "assets" / "empty").is_dir()

    lines = layout.manifest_path.read_text(encoding="utf-8").splitlines()
    assert lines == sorted(lines)
    assert len(lines) == 3
    expected = hashlib.sha256(b"Morning came.").hexdigest()
    assert f"{expected}  data/chapters/02.md" in lines


def test_bag_info_field_order_and_optional_omission(tmp_path: Path) -> None:
    project = _seed_project(tmp_path)
    builder = _build(project, tmp_path / "bag", software_agent="Test Agent v1")
    labels = [
        line.split(":", 1)[0]
        for line in builder.layout.bag_info_path.read_text(encoding="utf-8").splitlines()
    ]
    assert labels == [
        "Bag-Software-Agent",
        "Bagging-Date",
        "Payload-Oxum",
        "Bag-Size",
        "External-Description",
        "Internal-Sender-Identifier",
    ]
    text = builder.layout.bag_info_path.read_text(encoding="utf-8")
    assert "Bag-Software-Agent: Test Agent v1\n" in text
    assert "Bagging-Date: 2026-10-17\n" in text
    payload_bytes = len("It was a dark night.") + len("Morning came.") + 64
    assert f"Payload-Oxum: {payload_bytes}.3\n" in text


def test_bag_info_includes_optional_fields_in_order(tmp_path: Path) -> None:
    builder = BagBuilder(BagLayout.for_root(tmp_path / "bag"))
    builder.create()
    builder.write_declaration()
    builder.write_manifest(PayloadTally())
    info = builder.write_bag_info(
        _metadata(
            source_organization="Studio",
            contact_name="Sam Archivist",
            contact_email="sam@example.org",
            internal_sender_description="Creative work\narchived",
        ),
        PayloadTally(),
    )
    assert list(info) == [
        "Bag-Software-Agent",
        "Bagging-Date",
        "Payload-Oxum",
        "Bag-Size",
        "Source-Organization",
        "Contact-Name",
        "Contact-Email",
        "External-Description",
        "Internal-Sender-Identifier",
        "Internal-Sender-Description",
    ]
    assert info["Internal-Sender-Description"] == "Creative work archived"


def test_bag_size_counts_payload_and_tag_files(tmp_path: Path) -> None:
    project = _seed_project(tmp_path)
    builder = _build(project, tmp_path / "bag")
    layout = builder.layout
    payload_bytes, _ = builder.payload_oxum()
    tag_bytes = layout.bagit_txt_path.stat().st_size + layout.manifest_path.stat().st_size
    text = layout.bag_info_path.read_text(encoding="utf-8")
    assert f"Bag-Size: {format_bytes(payload_bytes + tag_bytes)}\n" in text


def test_empty_source_yields_zero_oxum_and_empty_manifest(tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()
    builder = _build(empty, tmp_path / "bag")
    assert builder.layout.manifest_path.read_bytes() == b""
    assert "Payload-Oxum: 0.0\n" in builder.layout.bag_info_path.read_text(encoding="utf-8")


def test_builds_are_deterministic_across_roots(tmp_path: Path) -> None:
    project = _seed_project(tmp_path)
    first = _build(project, tmp_path / "bag-a")
    second = _build(project, tmp_path / "bag-b")
    assert first.layout.manifest_path.read_bytes() == second.layout.manifest_path.read_bytes()
    assert first.layout.bag_info_path.read_bytes() == second.layout.bag_info_path.read_bytes()


def test_recompute_mode_matches_incremental(tmp_path: Path) -> None:
    project = _seed_project(tmp_path)
    incremental = _build(project, tmp_path / "bag-inc")
    recomputed = _build(project, tmp_path / "bag-re", payload_accounting=PAYLOAD_ACCOUNTING_RECOMPUTE)
    assert incremental.layout.manifest_path.read_bytes() == recomputed.layout.manifest_path.read_bytes()


def test_recompute_mode_detects_tally_drift(tmp_path: Path) -> None:
    project = _seed_project(tmp_path)
    builder = BagBuilder(
        BagLayout.for_root(tmp_path / "bag"),
        payload_accounting=PAYLOAD_ACCOUNTING_RECOMPUTE,
    )
    builder.create()
    builder.write_declaration()
    tally = builder.copy_payload(analyze_path(project).entries, project)
    (builder.layout.data_dir / "cover.png").write_bytes(b"changed after copy")
    with pytest.raises(BagBuildError, match="PAYLOAD_TALLY_MISMATCH"):
        builder.write_manifest(tally)


def test_manifest_without_tally_rewalks_payload(tmp_path: Path) -> None:
    project = _seed_project(tmp_path)
    builder = BagBuilder(BagLayout.for_root(tmp_path / "bag"))
    builder.create()
    builder.copy_payload(analyze_path(project).entries, project)
    lines = builder.write_manifest()
    assert lines == sorted(lines)
    assert {line.split("  ", 1)[1] for line in lines} == {
        "data/chapters/01.md",
        "data/chapters/02.md",
        "data/cover.png",
    }


def test_copy_rejects_entries_outside_source_root(tmp_path: Path) -> None:
    project = _seed_project(tmp_path)
    outsider = tmp_path / "outside.txt"
    outsider.write_text("x", encoding="utf-8")
    builder = BagBuilder(BagLayout.for_root(tmp_path / "bag"))
    builder.create()
    with pytest.raises(BagBuildError, match="ENTRY_OUTSIDE_SOURCE_ROOT"):
        builder.copy_payload(analyze_path(outsider).entries, project)


def test_copy_rejects_parent_segments_that_escape_payload(tmp_path: Path) -> None:
    project = _seed_project(tmp_path)
    escaping = FileEntry(
        path=project / "chapters" / ".." / ".." / "escape.txt",
        name="escape.txt",
        size=1,
        is_directory=False,
    )
    builder = BagBuilder(BagLayout.for_root(tmp_path / "bag"))
    builder.create()
    with pytest.raises(BagBuildError, match="ENTRY_OUTSIDE_SOURCE_ROOT"):
        builder.copy_payload([escaping], project)
    assert not (tmp_path / "bag" / "escape.txt").exists()


def test_manifest_percent_encodes_line_breaks_and_percent(tmp_path: Path) -> None:
    project = tmp_path / "odd"
    project.mkdir()
    (project / "100%.txt").write_text("full", encoding="utf-8")
    (project / "line\nbreak.txt").write_text("split", encoding="utf-8")
    builder = _build(project, tmp_path / "bag")

    manifest = builder.layout.manifest_path.read_text(encoding="utf-8").splitlines()
    assert len(manifest) == 2
    assert {line.split("  ", 1)[1] for line in manifest} == {"data/100%25.txt", "data/line%0Abreak.txt"}
