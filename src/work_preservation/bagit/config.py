"""Bagging profile loader (YAML profiles)."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
import re
from typing import Any

import yaml

from .contracts import BagError


_ENV_PATTERN = re.compile(r"^\$\{([^}:]+)(?::-([^}]*))?\}$")

PAYLOAD_ACCOUNTING_INCREMENTAL = "incremental"
PAYLOAD_ACCOUNTING_RECOMPUTE = "recompute"
_PAYLOAD_ACCOUNTING_MODES = frozenset({PAYLOAD_ACCOUNTING_INCREMENTAL, PAYLOAD_ACCOUNTING_RECOMPUTE})

DEFAULT_BAGS_ROOT = "/tmp/cwpt-bags"
DEFAULT_SOFTWARE_AGENT = "Creative Work Preservation Toolkit v0.1.0"
DEFAULT_SOURCE_ORGANIZATION = "Creative Work Preservation Toolkit"


class BaggingProfileError(BagError):
    pass


@dataclass(frozen=True)
class BaggingPolicy:
    policy_rev: str
    payload_accounting: str
    validate_after_build: bool


@dataclass(frozen=True)
class BaggingWiring:
    profile_id: str
    bags_root: str
    software_agent: str
    source_organization: str | None
    contact_name: str | None
    contact_email: str | None


@dataclass(frozen=True)
class BaggingProfile:
    policy: BaggingPolicy
    wiring: BaggingWiring

    @classmethod
    def default(cls) -> "BaggingProfile":
        return cls.from_mapping({"profile_id": "local"})

    @classmethod
    def load(cls, path: Path) -> "BaggingProfile":
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise BaggingProfileError(f"PROFILE_UNREADABLE:{path}") from exc
        except yaml.YAMLError as exc:
            raise BaggingProfileError(f"PROFILE_INVALID_YAML:{path}") from exc
        if not isinstance(data, dict):
            raise BaggingProfileError(f"PROFILE_NOT_A_MAPPING:{path}")
        return cls.from_mapping(data)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "BaggingProfile":
        profile_id = str(data.get("profile_id") or "").strip()
        if not profile_id:
            raise BaggingProfileError("PROFILE_ID_MISSING")
        policy = data.get("policy") or {}
        wiring = data.get("wiring") or {}

        payload_accounting = str(
            _env(policy.get("payload_accounting")) or PAYLOAD_ACCOUNTING_INCREMENTAL
        ).strip().lower()
        if payload_accounting not in _PAYLOAD_ACCOUNTING_MODES:
            raise BaggingProfileError(f"PAYLOAD_ACCOUNTING_UNSUPPORTED:{payload_accounting}")
        validate_after_build = _as_bool(_env(policy.get("validate_after_build")), default=True)

        return cls(
            policy=BaggingPolicy(
                policy_rev=str(policy.get("policy_rev") or profile_id),
                payload_accounting=payload_accounting,
                validate_after_build=validate_after_build,
            ),
            wiring=BaggingWiring(
                profile_id=profile_id,
                bags_root=_none_if_blank(_env(wiring.get("bags_root"))) or DEFAULT_BAGS_ROOT,
                software_agent=_none_if_blank(_env(wiring.get("software_agent"))) or DEFAULT_SOFTWARE_AGENT,
                source_organization=_none_if_blank(
                    _env(wiring.get("source_organization", DEFAULT_SOURCE_ORGANIZATION))
                ),
                contact_name=_none_if_blank(_env(wiring.get("contact_name"))),
                contact_email=_none_if_blank(_env(wiring.get("contact_email"))),
            ),
        )


def _env(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    token = value.strip()
    match = _ENV_PATTERN.fullmatch(token)
    if not match:
        return value
    return os.getenv(match.group(1), match.group(2) or "")


def _none_if_blank(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None


def _as_bool(value: Any, *, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)
