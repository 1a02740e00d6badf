"""CLI entrypoint for building and validating bags."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import uuid

from work_preservation.logging_utils import configure_logging

from .config import BaggingProfile
from .contracts import BagError
from .service import create_bag, default_bag_root, default_metadata, revalidate_bag
from .validator import is_valid, summarize_issues


def _load_profile(raw: str | None) -> BaggingProfile:
    if not raw:
        return BaggingProfile.default()
    return BaggingProfile.load(Path(raw))


def _build(args: argparse.Namespace) -> int:
    profile = _load_profile(args.profile)
    project_id = args.project_id or str(uuid.uuid4())
    bag_root = Path(args.bag_root) if args.bag_root else default_bag_root(args.name, project_id, profile=profile)
    metadata = default_metadata(args.name, project_id, description=args.description, profile=profile)
    result = create_bag(args.path, bag_root, metadata, profile=profile)
    print(json.dumps(result.as_dict(), sort_keys=True))
    return 0 if result.success else 1


def _validate(args: argparse.Namespace) -> int:
    issues = revalidate_bag(args.bag_root)
    payload = {
        "bag_path": str(args.bag_root),
        "valid": is_valid(issues),
        "validation_results": [issue.as_dict() for issue in summarize_issues(issues)],
    }
    print(json.dumps(payload, sort_keys=True))
    return 0 if payload["valid"] else 1


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="BagIt packager for archived work")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Copy paths into a new bag and validate it")
    build.add_argument("--name", required=True, help="Project name (used for the default bag name)")
    build.add_argument("--path", action="append", required=True, help="File or directory to archive (repeatable)")
    build.add_argument("--bag-root", help="Bag root directory (defaults under the profile bags_root)")
    build.add_argument("--project-id", help="Internal sender identifier (random UUID when omitted)")
    build.add_argument("--description", help="External description tag")
    build.add_argument("--profile", help="Path to bagging profile YAML")
    build.set_defaults(handler=_build)

    validate = subparsers.add_parser("validate", help="Re-verify an existing bag")
    validate.add_argument("--bag-root", required=True, help="Bag root directory")
    validate.set_defaults(handler=_validate)

    args = parser.parse_args(argv)
    configure_logging(level=logging.INFO)
    try:
        code = args.handler(args)
    except BagError as exc:
        raise SystemExit(str(exc)) from exc
    raise SystemExit(code)


if __name__ == "__main__":
    main()
