"""
Shared test fixtures for gamecenter-cli tests.
Patches the config module so no test reads a real .env or credential file,
and provides an in-memory stand-in for GameCenterClient.
"""

import pytest

from gamecenter_cli import config
from gamecenter_cli.exceptions import CliError
from gamecenter_cli.models import RemoteAchievementRef


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path):
    """Ensure every test starts with a clean config state."""
    monkeypatch.setattr(config, "env", {})
    monkeypatch.setattr(config, "CONFIG_PATH", str(tmp_path / "missing-config.json"))
    monkeypatch.setattr(config, "PACING_SECONDS", 0.0)
    monkeypatch.setattr(config, "HTTP_LOG_ENABLED", False)
    monkeypatch.setattr(config, "HTTP_MAX_RETRIES", 2)
    monkeypatch.setattr(config, "HTTP_RETRY_BASE_SECONDS", 0.0)
    monkeypatch.setattr(config, "RUNTIME_DRY_RUN", False)
    monkeypatch.setattr(config, "RUNTIME_QUIET", False)
    monkeypatch.setattr(config, "RUNTIME_VERBOSE", False)


class FakeClient:
    """Records every call; failures are scripted per vendor id, locale or achievement id."""

    def __init__(
        self,
        *,
        group_id="gc-detail-1",
        existing=(),
        create_errors=None,
        localization_errors=None,
        delete_errors=None,
        group_failures=0,
    ):
        self.group_id = group_id
        self.existing = list(existing)
        self.create_errors = dict(create_errors or {})
        self.localization_errors = dict(localization_errors or {})
        self.delete_errors = dict(delete_errors or {})
        self.group_failures = group_failures
        self.calls = []
        self.created = []
        self.localizations = []
        self._next_id = 0

    def calls_named(self, name):
        return [c for c in self.calls if c[0] == name]

    def get_group_id(self, app_id=None):
        self.calls.append(("get_group_id", app_id))
        if self.group_failures:
            self.group_failures -= 1
            raise CliError("[ERROR] Connection failed: boom")
        return self.group_id

    def create_achievement(
        self,
        group_id,
        *,
        reference_name,
        vendor_identifier,
        points,
        show_before_earned,
        repeatable,
    ):
        self.calls.append(("create_achievement", vendor_identifier))
        self.created.append(
            {
                "group_id": group_id,
                "reference_name": reference_name,
                "vendor_identifier": vendor_identifier,
                "points": points,
                "show_before_earned": show_before_earned,
                "repeatable": repeatable,
            }
        )
        exc = self.create_errors.get(vendor_identifier)
        if exc is not None:
            raise exc
        self._next_id += 1
        ref = RemoteAchievementRef(
            id=f"ach-{self._next_id}",
            reference_name=reference_name,
            vendor_identifier=vendor_identifier,
            points=points,
        )
        self.existing.append(ref)
        return ref

    def create_localization(
        self, achievement_id, *, locale, name, before_earned_text, after_earned_text
    ):
        self.calls.append(("create_localization", achievement_id, locale))
        exc = self.localization_errors.get(locale)
        if exc is not None:
            raise exc
        self.localizations.append((achievement_id, locale, name))

    def list_achievements(self, group_id, *, limit=200):
        self.calls.append(("list_achievements", group_id))
        return list(self.existing)[: min(limit, 200)]

    def delete_achievement(self, achievement_id):
        self.calls.append(("delete_achievement", achievement_id))
        exc = self.delete_errors.get(achievement_id)
        if exc is not None:
            raise exc


@pytest.fixture
def make_client():
    """Factory for FakeClient instances."""
    return FakeClient
