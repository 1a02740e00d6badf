from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from work_preservation.bagit.config import BaggingProfile
from work_preservation.bagit.contracts import NoCommonRootError, PathNotFoundError
from work_preservation.bagit.service import (
    bag_name,
    create_bag,
    default_bag_root,
    default_metadata,
    revalidate_bag,
)
from work_preservation.bagit.validator import SUCCESS_MESSAGE


def _seed(tmp_path: Path) -> tuple[Path, Path]:
    sketches = tmp_path / "work" / "sketches"
    sketches.mkdir(parents=True)
    (sketches / "a.svg").write_text("<svg/>", encoding="utf-8")
    script = tmp_path / "work" / "script.txt"
    script.write_text("FADE IN.", encoding="utf-8")
    return sketches, script


def test_create_bag_round_trip(tmp_path: Path) -> None:
    sketches, script = _seed(tmp_path)
    metadata = default_metadata("Short Film", "0123456789abcdef", archived_on=date(2026, 3, 4))
    result = create_bag([sketches, script], tmp_path / "bag", metadata)

    assert result.success is True
    assert result.bag_path == str(tmp_path / "bag")
    assert [issue.message for issue in result.validation_results] == [SUCCESS_MESSAGE]
    assert result.payload_oxum == f"{len('<svg/>') + len('FADE IN.')}.2"
    assert (tmp_path / "bag" / "data" / "sketches" / "a.svg").is_file()
    assert (tmp_path / "bag" / "data" / "script.txt").is_file()
    assert revalidate_bag(tmp_path / "bag") == []

    payload = result.as_dict()
    assert payload["validation_results"][0]["severity"] == "info"


def test_create_bag_single_file_lands_at_payload_top(tmp_path: Path) -> None:
    _, script = _seed(tmp_path)
    result = create_bag([script], tmp_path / "bag", default_metadata("Script", "id-1"))
    assert result.success is True
    assert (tmp_path / "bag" / "data" / "script.txt").is_file()


def test_create_bag_fails_before_writing_on_missing_input(tmp_path: Path) -> None:
    _, script = _seed(tmp_path)
    with pytest.raises(PathNotFoundError):
        create_bag([script, tmp_path / "ghost.txt"], tmp_path / "bag", default_metadata("X", "id"))
    assert not (tmp_path / "bag").exists()


def test_create_bag_rejects_empty_path_set(tmp_path: Path) -> None:
    with pytest.raises(NoCommonRootError):
        create_bag([], tmp_path / "bag", default_metadata("X", "id"))


def test_create_bag_without_post_validation(tmp_path: Path) -> None:
    sketches, _ = _seed(tmp_path)
    profile = BaggingProfile.from_mapping({"profile_id": "fast", "policy": {"validate_after_build": False}})
    result = create_bag([sketches], tmp_path / "bag", default_metadata("X", "id"), profile=profile)
    assert result.success is True
    assert [issue.code for issue in result.validation_results] == ["BAG_VALID"]


def test_bag_name_and_default_root() -> None:
    assert bag_name("My/Project: Draft", "3f2a9c1e-aaaa-bbbb") == "My-Project- Draft-3f2a9c1e"
    profile = BaggingProfile.from_mapping({"profile_id": "t", "wiring": {"bags_root": "/vault/bags"}})
    assert default_bag_root("Novel", "abcdef0123", profile=profile) == Path("/vault/bags/Novel-abcdef01")


def test_default_metadata_fallbacks() -> None:
    metadata = default_metadata("Novel", "abc", archived_on=date(2026, 10, 17))
    assert metadata.external_description == "Archived project: Novel"
    assert metadata.internal_sender_identifier == "abc"
    assert metadata.internal_sender_description == "Creative work archived on 2026-10-17"
    assert metadata.source_organization == "Creative Work Preservation Toolkit"

    described = default_metadata("Novel", "abc", description="  First draft  ")
    assert described.external_description == "First draft"


def test_create_bag_collapses_parent_segments_in_inputs(tmp_path: Path) -> None:
    (tmp_path / "work").mkdir()
    project = tmp_path / "proj"
    project.mkdir()
    (project / "a.txt").write_text("alpha", encoding="utf-8")
    (project / "b.txt").write_text("beta", encoding="utf-8")
    bag_root = tmp_path / "bag"

    result = create_bag(
        [tmp_path / "work" / ".." / "proj" / "a.txt", project / "b.txt"],
        bag_root,
        default_metadata("Proj", "id"),
    )
    assert result.success is True
    assert [issue.code for issue in result.validation_results] == ["BAG_VALID"]
    assert sorted(path.name for path in (bag_root / "data").iterdir()) == ["a.txt", "b.txt"]


def test_create_bag_keeps_deep_parent_segments_inside_payload(tmp_path: Path) -> None:
    (tmp_path / "f.txt").write_text("f", encoding="utf-8")
    (tmp_path / "g.txt").write_text("g", encoding="utf-8")
    bag_root = tmp_path / "out" / "bag"

    result = create_bag(
        [tmp_path / "a" / ".." / ".." / tmp_path.name / "f.txt", tmp_path / "g.txt"],
        bag_root,
        default_metadata("Deep", "id"),
    )
    assert result.success is True
    assert sorted(path.name for path in bag_root.iterdir()) == [
        "bag-info.txt",
        "bagit.txt",
        "data",
        "manifest-sha256.txt",
    ]
    assert sorted(path.name for path in (bag_root / "data").iterdir()) == ["f.txt", "g.txt"]
