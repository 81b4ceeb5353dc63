"""
GameCenterClient: typed App Store Connect operations used by the batch engine.

Every method issues exactly one request. Failures surface as CliError
subclasses; error responses carrying a known code raise the matching
ApiError subclass (see exceptions.py).
"""

from __future__ import annotations

from typing import Any

from gamecenter_cli import config
from gamecenter_cli.api import TokenProvider, _expect_object_response, api_request
from gamecenter_cli.exceptions import CliError
from gamecenter_cli.models import RemoteAchievementRef


class GameCenterClient:
    """Remote resource client for Game Center achievements of one app."""

    def __init__(self, cli_config, *, tokens=None):
        self.app_id = cli_config.app_id
        self._tokens = tokens or TokenProvider(cli_config)

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        return _expect_object_response(
            api_request(self._tokens, method, path, **kwargs), f"{method} {path}"
        )

    def get_group_id(self, app_id: str | None = None) -> str:
        """Return the id of the app's Game Center detail."""
        app = app_id or self.app_id
        result = self._request("GET", f"/v1/apps/{app}/gameCenterDetail")
        data = result.get("data")
        if not isinstance(data, dict) or not data.get("id"):
            raise CliError(
                f"[ERROR] App {app} has no Game Center detail. "
                "Enable Game Center for the app in App Store Connect first."
            )
        return str(data["id"])

    def create_achievement(
        self,
        group_id: str,
        *,
        reference_name: str,
        vendor_identifier: str,
        points: int,
        show_before_earned: bool,
        repeatable: bool,
    ) -> RemoteAchievementRef:
        payload = {
            "data": {
                "type": "gameCenterAchievements",
                "attributes": {
                    "referenceName": reference_name,
                    "vendorIdentifier": vendor_identifier,
                    "points": points,
                    "showBeforeEarned": show_before_earned,
                    "repeatable": repeatable,
                },
                "relationships": {
                    "gameCenterDetail": {
                        "data": {"type": "gameCenterDetails", "id": group_id},
                    }
                },
            }
        }
        result = self._request("POST", "/v1/gameCenterAchievements", data=payload)
        data = result.get("data")
        if not isinstance(data, dict) or not data.get("id"):
            raise CliError("[ERROR] Create achievement response is missing data.id.")
        return RemoteAchievementRef.from_resource(data)

    def create_localization(
        self,
        achievement_id: str,
        *,
        locale: str,
        name: str,
        before_earned_text: str,
        after_earned_text: str,
    ) -> None:
        payload = {
            "data": {
                "type": "gameCenterAchievementLocalizations",
                "attributes": {
                    "locale": locale,
                    "name": name,
                    "beforeEarnedDescription": before_earned_text,
                    "afterEarnedDescription": after_earned_text,
                },
                "relationships": {
                    "gameCenterAchievement": {
                        "data": {"type": "gameCenterAchievements", "id": achievement_id},
                    }
                },
            }
        }
        self._request("POST", "/v1/gameCenterAchievementLocalizations", data=payload)

    def list_achievements(
        self, group_id: str, *, limit: int = config.LIST_LIMIT
    ) -> list[RemoteAchievementRef]:
        """List achievements of a group. Only the first page is read (at most 200)."""
        limit = max(1, min(limit, config.LIST_LIMIT))
        result = self._request(
            "GET",
            f"/v1/gameCenterDetails/{group_id}/gameCenterAchievements",
            params={
                "fields[gameCenterAchievements]": "vendorIdentifier,referenceName,points",
                "limit": limit,
            },
        )
        data = result.get("data") or []
        if not isinstance(data, list):
            raise CliError("[ERROR] Unexpected achievements listing: 'data' is not a list.")
        return [RemoteAchievementRef.from_resource(r) for r in data[:limit]]

    def delete_achievement(self, achievement_id: str) -> None:
        self._request("DELETE", f"/v1/gameCenterAchievements/{achievement_id}")
