"""
Batch orchestration: create a list of achievements, or delete all of them.

Items run strictly in input order, one request in flight at a time, with a
short pause between items to stay under App Store Connect rate limits.
Per-item failures are counted and never stop the run.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence

from gamecenter_cli import config
from gamecenter_cli._utils import emit, strip_tag
from gamecenter_cli.exceptions import CliError
from gamecenter_cli.models import BatchOutcome, DesiredAchievement, ItemResult, RemoteAchievementRef
from gamecenter_cli.reconciler import AchievementReconciler

_RULE = "=" * 40


def _pause(index: int, total: int, pacing: float | None, sleep: Callable[[float], None]) -> None:
    if index >= total - 1:
        return
    delay = config.PACING_SECONDS if pacing is None else pacing
    if delay > 0:
        sleep(delay)


def run_batch(
    items: Sequence[DesiredAchievement],
    reconciler: AchievementReconciler,
    *,
    pacing: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> BatchOutcome:
    """Reconcile every item in order and return the accumulated outcome."""
    outcome = BatchOutcome(action="create")
    total = len(items)
    for index, desired in enumerate(items):
        emit(f"[{index + 1}/{total}] Creating achievement: {desired.name}...")
        try:
            rec = reconciler.reconcile(desired)
        except CliError as e:
            emit(f"{desired.name}: {strip_tag(e)}", "FAIL", 2)
            outcome.record(ItemResult(name=desired.name, ok=False, error=strip_tag(e)))
        else:
            stats = rec.stats
            if stats.skipped:
                emit(
                    f"{desired.name} - {stats.added} localizations added, "
                    f"{stats.skipped} skipped (already exist)",
                    "OK",
                    2,
                )
            else:
                emit(f"{desired.name} created with {stats.added} localizations", "OK", 2)
            outcome.record(
                ItemResult(
                    name=desired.name,
                    ok=True,
                    achievement_id=rec.ref.id if rec.ref else None,
                    resolved_existing=rec.resolved_existing,
                    localizations=stats,
                )
            )
        _pause(index, total, pacing, sleep)

    emit("")
    emit(_RULE)
    emit(f"Batch complete: {outcome.success_count} succeeded, {outcome.fail_count} failed")
    emit(_RULE)
    return outcome


# ---------------------------------------------------------------------------
# Bulk deletion
# ---------------------------------------------------------------------------


def list_all(reconciler: AchievementReconciler) -> list[RemoteAchievementRef]:
    """All achievements of the app, capped at the first 200 the API returns."""
    return reconciler.client.list_achievements(reconciler.group_id(), limit=config.LIST_LIMIT)


def delete_all(
    client,
    refs: Sequence[RemoteAchievementRef],
    *,
    pacing: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> BatchOutcome:
    """Delete every ref in order. Confirmation is the caller's job."""
    outcome = BatchOutcome(action="delete")
    total = len(refs)
    for index, ref in enumerate(refs):
        name = ref.reference_name or "Unknown"
        emit(f"[{index + 1}/{total}] Deleting: {name}...")
        try:
            client.delete_achievement(ref.id)
        except CliError as e:
            emit(strip_tag(e), "FAIL", 2)
            outcome.record(
                ItemResult(name=name, ok=False, achievement_id=ref.id, error=strip_tag(e))
            )
        else:
            emit("Deleted", "OK", 2)
            outcome.record(ItemResult(name=name, ok=True, achievement_id=ref.id))
        _pause(index, total, pacing, sleep)

    emit("")
    emit(_RULE)
    emit(f"Deletion complete: {outcome.success_count} deleted, {outcome.fail_count} failed")
    emit(_RULE)
    return outcome
