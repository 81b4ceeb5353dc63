"""
Command implementations for gamecenter-cli.
Each cmd_*() function receives an argparse.Namespace and handles one CLI command.

Reconciliation logic lives in reconciler.py and batch.py. These thin wrappers
handle argparse → domain objects, confirmation, and output formatting.
"""

import sys

from gamecenter_cli import config
from gamecenter_cli._utils import emit, strip_tag
from gamecenter_cli.batch import delete_all, list_all, run_batch
from gamecenter_cli.client import GameCenterClient
from gamecenter_cli.exceptions import CliError
from gamecenter_cli.formatters import (
    format_achievements_table,
    format_locales_table,
    format_outcome_table,
    format_plan_table,
    output,
)
from gamecenter_cli.locales import LOCALE_ALIASES, VALID_LOCALES, is_valid_locale, normalize_locale
from gamecenter_cli.models import DesiredAchievement, DesiredLocalization, load_batch_file
from gamecenter_cli.reconciler import AchievementReconciler

_RULE = "=" * 40


def _get_reconciler():
    """Build the reconciler for the configured app (loads credentials)."""
    cli_config = config.load_cli_config()
    client = GameCenterClient(cli_config)
    return AchievementReconciler(client, app_id=cli_config.app_id)


def plan_batch(achievements):
    """Describe what create-batch would send, without touching the API."""
    plan = []
    for a in achievements:
        locs = []
        for loc in a.localizations:
            mapped = normalize_locale(loc.locale)
            locs.append(
                {
                    "locale": loc.locale,
                    "mapped_locale": mapped,
                    "valid": is_valid_locale(mapped),
                    "name": loc.name,
                }
            )
        plan.append(
            {
                "name": a.name,
                "vendor_identifier": a.vendor_identifier,
                "points": a.points,
                "show_before_earned": not a.is_secret,
                "repeatable": a.can_repeat,
                "localizations": locs,
            }
        )
    return {
        "dry_run": True,
        "count": len(plan),
        "total_points": sum(a.points for a in achievements),
        "achievements": plan,
    }


# ---------------------------------------------------------------------------
# Create commands
# ---------------------------------------------------------------------------


def _single_achievement(ns):
    name = (ns.name or "").strip()
    vendor_id = (ns.vendor_id or "").strip()
    if not name:
        raise CliError("[ERROR] Achievement name cannot be empty.")
    if not vendor_id:
        raise CliError("[ERROR] Vendor identifier cannot be empty.")
    return DesiredAchievement(
        name=name,
        vendor_identifier=vendor_id,
        points=ns.points,
        is_secret=ns.secret,
        can_repeat=ns.repeatable,
        localizations=(
            DesiredLocalization(
                locale=config.DEFAULT_LOCALE,
                name=name,
                before_earned_text=f"Earn {name}",
                after_earned_text=f"You've earned {name}!",
            ),
        ),
    )


def cmd_create(ns):
    desired = _single_achievement(ns)
    if getattr(ns, "image", None):
        emit(f"Image upload is not supported yet; ignoring --image {ns.image}", "WARN")
    if config.RUNTIME_DRY_RUN:
        output(plan_batch([desired]), format_plan_table, ns.format)
        return

    emit(f"Creating achievement: {desired.name}")
    try:
        rec = _get_reconciler().reconcile(desired)
    except CliError as e:
        raise CliError(f"[ERROR] Failed to create achievement: {strip_tag(e)}") from e

    result = {
        "ok": rec.stats.failed == 0,
        "id": rec.ref.id if rec.ref else None,
        "name": desired.name,
        "vendor_identifier": desired.vendor_identifier,
        "points": desired.points,
        "resolved_existing": rec.resolved_existing,
        "localizations_added": rec.stats.added,
        "localizations_skipped": rec.stats.skipped,
        "localizations_failed": rec.stats.failed,
    }
    if ns.format == "table":
        verb = "Found existing" if rec.resolved_existing else "Created"
        print(f"OK: {verb} achievement {result['id']}")
        print(f"   Vendor ID: {desired.vendor_identifier}")
        print(f"   Points: {desired.points}")
    else:
        output(result)
    if rec.stats.failed:
        raise CliError("[ERROR] Achievement saved but its en-US localization failed.")


def cmd_create_batch(ns):
    achievements = load_batch_file(ns.path)
    if config.RUNTIME_DRY_RUN:
        output(plan_batch(achievements), format_plan_table, ns.format)
        return

    emit(f"Creating {len(achievements)} achievements from {ns.path}")
    emit("")
    outcome = run_batch(achievements, _get_reconciler())
    output(outcome.to_dict(), format_outcome_table, ns.format)
    if not outcome.ok:
        raise CliError(
            f"[ERROR] {outcome.fail_count} of {len(achievements)} achievement(s) failed."
        )


# ---------------------------------------------------------------------------
# Read commands
# ---------------------------------------------------------------------------


def _listing_payload(refs):
    return {
        "count": len(refs),
        "capped": len(refs) >= config.LIST_LIMIT,
        "achievements": [r.to_dict() for r in refs],
    }


def cmd_list(ns):
    refs = list_all(_get_reconciler())
    output(_listing_payload(refs), format_achievements_table, ns.format)


def cmd_locales(ns):
    payload = {
        "valid_locales": sorted(VALID_LOCALES),
        "aliases": dict(sorted(LOCALE_ALIASES.items())),
    }
    output(payload, format_locales_table, ns.format)


# ---------------------------------------------------------------------------
# Delete command
# ---------------------------------------------------------------------------


def _confirm_delete(count):
    """Ask the user to type 'yes'. Any other answer (or no stdin) declines.

    The prompt goes to stderr so stdout only ever carries the JSON result.
    """
    emit(_RULE, always=True)
    emit(f"This will permanently delete ALL {count} achievements!", "WARN")
    emit("This action cannot be undone.", "WARN")
    emit(_RULE, always=True)
    print("Type 'yes' to confirm deletion: ", end="", file=sys.stderr, flush=True)
    answer = sys.stdin.readline()
    return answer.strip().lower() == "yes"


def cmd_delete_all(ns):
    emit("Fetching all achievements...")
    reconciler = _get_reconciler()
    refs = list_all(reconciler)
    if not refs:
        emit("No achievements found to delete.", "INFO")
        return

    emit(f"Found {len(refs)} achievement(s):", always=True)
    for i, ref in enumerate(refs, 1):
        name = ref.reference_name or "Unknown"
        vendor_id = ref.vendor_identifier or "Unknown"
        emit(f"{i}. {name} ({vendor_id})", indent=2, always=True)

    if config.RUNTIME_DRY_RUN:
        output(_listing_payload(refs), format_achievements_table, ns.format)
        return

    if not ns.confirm and not _confirm_delete(len(refs)):
        emit("Deletion cancelled. No achievements were deleted.", "ABORTED")
        return

    emit("Deleting achievements...")
    outcome = delete_all(reconciler.client, refs)
    output(outcome.to_dict(), format_outcome_table, ns.format)
    if not outcome.ok:
        raise CliError(f"[ERROR] {outcome.fail_count} of {len(refs)} deletion(s) failed.")
