"""
Typed models for batch files, remote achievements, and batch outcomes.
"""

import os
from dataclasses import dataclass, field

from gamecenter_cli.api import _safe_json_parse
from gamecenter_cli.exceptions import CliError


@dataclass(frozen=True)
class DesiredLocalization:
    """Per-locale text for one achievement, as written in the batch file."""

    locale: str
    name: str
    before_earned_text: str
    after_earned_text: str

    @classmethod
    def from_dict(cls, value, context):
        if not isinstance(value, dict):
            raise CliError(f"[ERROR] {context}: expected object, got {type(value).__name__}.")
        return cls(
            locale=_require_str(value, "locale", context),
            name=_require_str(value, "name", context),
            before_earned_text=_require_str(value, "beforeDescription", context),
            after_earned_text=_require_str(value, "afterDescription", context),
        )


@dataclass(frozen=True)
class DesiredAchievement:
    """An achievement the remote side should end up with."""

    name: str
    vendor_identifier: str
    points: int
    is_secret: bool = False
    can_repeat: bool = False
    localizations: tuple[DesiredLocalization, ...] = ()

    @classmethod
    def from_dict(cls, value, context):
        if not isinstance(value, dict):
            raise CliError(f"[ERROR] {context}: expected object, got {type(value).__name__}.")
        points = value.get("points")
        if isinstance(points, bool) or not isinstance(points, int):
            raise CliError(f"[ERROR] {context}: 'points' must be an integer.")
        raw_locs = value.get("localizations")
        if not isinstance(raw_locs, list):
            raise CliError(f"[ERROR] {context}: 'localizations' must be a list.")
        return cls(
            name=_require_str(value, "name", context),
            vendor_identifier=_require_str(value, "vendorIdentifier", context),
            points=points,
            is_secret=_optional_bool(value, "isSecret", context),
            can_repeat=_optional_bool(value, "canRepeat", context),
            localizations=tuple(
                DesiredLocalization.from_dict(loc, f"{context}, localization {j + 1}")
                for j, loc in enumerate(raw_locs)
            ),
        )


@dataclass(frozen=True)
class RemoteAchievementRef:
    """An achievement as App Store Connect reports it."""

    id: str
    reference_name: str | None = None
    vendor_identifier: str | None = None
    points: int | None = None

    @classmethod
    def from_resource(cls, resource):
        """Build from a JSON:API ``gameCenterAchievements`` resource object."""
        if not isinstance(resource, dict) or not resource.get("id"):
            raise CliError("[ERROR] Achievement resource is missing its id.")
        attrs = resource.get("attributes") or {}
        return cls(
            id=str(resource["id"]),
            reference_name=attrs.get("referenceName"),
            vendor_identifier=attrs.get("vendorIdentifier"),
            points=attrs.get("points"),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "reference_name": self.reference_name,
            "vendor_identifier": self.vendor_identifier,
            "points": self.points,
        }


@dataclass
class LocalizationStats:
    added: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class ItemResult:
    """What happened to one achievement in a batch run."""

    name: str
    ok: bool
    achievement_id: str | None = None
    resolved_existing: bool = False
    localizations: LocalizationStats | None = None
    error: str | None = None

    def to_dict(self):
        out = {"name": self.name, "ok": self.ok, "achievement_id": self.achievement_id}
        if self.resolved_existing:
            out["resolved_existing"] = True
        if self.localizations is not None:
            out["localizations_added"] = self.localizations.added
            out["localizations_skipped"] = self.localizations.skipped
            out["localizations_failed"] = self.localizations.failed
        if self.error:
            out["error"] = self.error
        return out


@dataclass
class BatchOutcome:
    """Counters accumulated over a batch create or delete run."""

    action: str
    success_count: int = 0
    fail_count: int = 0
    localization_success_count: int = 0
    localization_skip_count: int = 0
    localization_fail_count: int = 0
    items: list[ItemResult] = field(default_factory=list)

    @property
    def ok(self):
        return self.fail_count == 0

    def record(self, item):
        self.items.append(item)
        if item.ok:
            self.success_count += 1
        else:
            self.fail_count += 1
        if item.localizations is not None:
            self.localization_success_count += item.localizations.added
            self.localization_skip_count += item.localizations.skipped
            self.localization_fail_count += item.localizations.failed

    def to_dict(self):
        out = {
            "ok": self.ok,
            "action": self.action,
            "succeeded": self.success_count,
            "failed": self.fail_count,
        }
        if self.action == "create":
            out["localizations_added"] = self.localization_success_count
            out["localizations_skipped"] = self.localization_skip_count
            out["localizations_failed"] = self.localization_fail_count
        out["items"] = [item.to_dict() for item in self.items]
        return out


# ---------------------------------------------------------------------------
# Batch file parsing
# ---------------------------------------------------------------------------


def _require_str(d, key, context):
    value = d.get(key)
    if not isinstance(value, str):
        raise CliError(f"[ERROR] {context}: '{key}' must be a string.")
    return value


def _optional_bool(d, key, context):
    value = d.get(key, False)
    if not isinstance(value, bool):
        raise CliError(f"[ERROR] {context}: '{key}' must be true or false.")
    return value


def parse_batch(data):
    """Validate a decoded batch file into DesiredAchievement records, in order."""
    if not isinstance(data, list):
        raise CliError(
            f"[ERROR] Batch file must contain a JSON array, got {type(data).__name__}."
        )
    return [
        DesiredAchievement.from_dict(entry, f"Achievement {i + 1}")
        for i, entry in enumerate(data)
    ]


def load_batch_file(path):
    full_path = os.path.expanduser(path)
    try:
        with open(full_path, encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise CliError(f"[ERROR] Cannot read batch file {path}: {e.strerror}") from e
    return parse_batch(_safe_json_parse(text, path))
