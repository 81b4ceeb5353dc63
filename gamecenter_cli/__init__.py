"""gamecenter-cli: create, localize, list and delete Game Center achievements."""

from gamecenter_cli.batch import delete_all, list_all, run_batch
from gamecenter_cli.cache import GroupIdCache
from gamecenter_cli.client import GameCenterClient
from gamecenter_cli.config import VERSION, CliConfig, load_cli_config
from gamecenter_cli.exceptions import (
    AlreadyExistsError,
    ApiError,
    CliError,
    DuplicateVendorIdError,
    LocalizationDuplicateError,
    SetupError,
)
from gamecenter_cli.locales import is_valid_locale, normalize_locale
from gamecenter_cli.models import (
    BatchOutcome,
    DesiredAchievement,
    DesiredLocalization,
    LocalizationStats,
    RemoteAchievementRef,
    load_batch_file,
)
from gamecenter_cli.reconciler import AchievementReconciler, ReconcileError, ReconcileState

__all__ = [
    "VERSION",
    "AchievementReconciler",
    "AlreadyExistsError",
    "ApiError",
    "BatchOutcome",
    "CliConfig",
    "CliError",
    "DesiredAchievement",
    "DesiredLocalization",
    "DuplicateVendorIdError",
    "GameCenterClient",
    "GroupIdCache",
    "LocalizationDuplicateError",
    "LocalizationStats",
    "ReconcileError",
    "ReconcileState",
    "RemoteAchievementRef",
    "SetupError",
    "delete_all",
    "is_valid_locale",
    "list_all",
    "load_batch_file",
    "load_cli_config",
    "normalize_locale",
    "run_batch",
]
