"""
Achievement reconciler: converge one desired achievement onto App Store Connect.

Each achievement walks CREATING -> RESOLVED -> LOCALIZING -> DONE, or ends
in FAILED. A VENDOR_IDENTIFIER_DUPLICATE on create is expected when a
previous run got this far: the existing achievement is looked up by vendor
identifier and its localizations are applied as usual. Localizations are
independent of each other; one failing never stops the rest.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from gamecenter_cli._utils import emit, strip_tag
from gamecenter_cli.cache import GroupIdCache
from gamecenter_cli.exceptions import (
    AlreadyExistsError,
    CliError,
    DuplicateVendorIdError,
    LocalizationDuplicateError,
)
from gamecenter_cli.locales import is_valid_locale, normalize_locale
from gamecenter_cli.models import DesiredAchievement, LocalizationStats, RemoteAchievementRef


class ReconcileState(enum.Enum):
    CREATING = "creating"
    RESOLVED = "resolved"
    LOCALIZING = "localizing"
    DONE = "done"
    FAILED = "failed"


class ReconcileError(CliError):
    """Per-achievement failure. The batch records it and moves on."""


@dataclass
class Reconciliation:
    """Progress of one desired achievement through the reconciler."""

    desired: DesiredAchievement
    state: ReconcileState = ReconcileState.CREATING
    ref: RemoteAchievementRef | None = None
    resolved_existing: bool = False
    stats: LocalizationStats = field(default_factory=LocalizationStats)


class AchievementReconciler:
    """Creates (or finds) achievements and attaches their localizations."""

    def __init__(self, client, *, cache: GroupIdCache | None = None, app_id: str | None = None):
        self.client = client
        self.cache = cache if cache is not None else GroupIdCache()
        self.app_id = app_id

    def group_id(self) -> str:
        """Group id for the configured app, fetched at most once per cache."""
        return self.cache.get_or_fetch(lambda: self.client.get_group_id(self.app_id))

    def reconcile(self, desired: DesiredAchievement) -> Reconciliation:
        """Run the full state machine for *desired*.

        Raises CliError (usually ReconcileError or an ApiError) when the
        achievement could not be created or resolved.
        """
        rec = Reconciliation(desired)
        self.create_or_resolve(rec)
        self.apply_localizations(rec)
        return rec

    def create_or_resolve(self, rec: Reconciliation) -> None:
        if rec.state is not ReconcileState.CREATING:
            raise RuntimeError(f"create_or_resolve called in state {rec.state.name}")
        desired = rec.desired
        try:
            group_id = self.group_id()
            try:
                rec.ref = self.client.create_achievement(
                    group_id,
                    reference_name=desired.name,
                    vendor_identifier=desired.vendor_identifier,
                    points=desired.points,
                    show_before_earned=not desired.is_secret,
                    repeatable=desired.can_repeat,
                )
            except DuplicateVendorIdError:
                emit("Achievement already exists, fetching existing achievement...", "INFO", 2)
                rec.ref = self.find_by_vendor_identifier(group_id, desired.vendor_identifier)
                if rec.ref is None:
                    raise ReconcileError(
                        "[ERROR] Duplicate vendor identifier reported but no achievement "
                        f"'{desired.vendor_identifier}' was found in the listing."
                    ) from None
                rec.resolved_existing = True
                emit(f"Found existing achievement with ID: {rec.ref.id}", "INFO", 2)
        except CliError:
            rec.state = ReconcileState.FAILED
            raise
        rec.state = ReconcileState.RESOLVED

    def find_by_vendor_identifier(
        self, group_id: str, vendor_identifier: str
    ) -> RemoteAchievementRef | None:
        for ref in self.client.list_achievements(group_id):
            if ref.vendor_identifier == vendor_identifier:
                return ref
        return None

    def apply_localizations(self, rec: Reconciliation) -> LocalizationStats:
        if rec.state is not ReconcileState.RESOLVED or rec.ref is None:
            raise RuntimeError(f"apply_localizations called in state {rec.state.name}")
        rec.state = ReconcileState.LOCALIZING
        for loc in rec.desired.localizations:
            locale = normalize_locale(loc.locale)
            if locale != loc.locale:
                emit(f"Mapped locale '{loc.locale}' -> '{locale}'", "INFO", 4)
            if not is_valid_locale(locale):
                emit(f"Locale '{locale}' may not be valid for App Store Connect", "WARN", 4)
            try:
                self.client.create_localization(
                    rec.ref.id,
                    locale=locale,
                    name=loc.name,
                    before_earned_text=loc.before_earned_text,
                    after_earned_text=loc.after_earned_text,
                )
            except (AlreadyExistsError, LocalizationDuplicateError):
                emit(f"Localization for {locale} already exists", "SKIP", 4)
                rec.stats.skipped += 1
            except CliError as e:
                emit(f"Failed to add {locale} localization: {strip_tag(e)}", "WARN", 4)
                rec.stats.failed += 1
            else:
                rec.stats.added += 1
        rec.state = ReconcileState.DONE
        return rec.stats
