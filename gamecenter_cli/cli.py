"""
gamecenter-cli: manage Game Center achievements on App Store Connect
"""

import argparse
import json
import sys

from gamecenter_cli import config
from gamecenter_cli.commands import (
    cmd_create,
    cmd_create_batch,
    cmd_delete_all,
    cmd_list,
    cmd_locales,
)
from gamecenter_cli.exceptions import CliError

HELP_TEXT = """\
Usage: gamecenter-cli <command> [args...]

Global flags:
  --format table          Output as readable text instead of JSON (default: json)
  --config <path>         Credential file (default: ~/.gamecenter-cli-config.json)
  --dry-run               Preview create-batch / create / delete-all without changes
  --quiet, -q             Hide progress lines (warnings, skips and failures still show)
  --verbose, -v           Enable HTTP request logging
  --version               Show version number

Commands:
  create                  - Create a single achievement (with an en-US localization)
    --name <name>           Achievement name (required)
    --vendor-id <id>        Vendor identifier (required)
    --points <n>            Point value (default: 10)
    --secret                Hide the achievement until earned
    --repeatable            Allow earning it more than once
    --image <path>          Not supported yet (ignored with a warning)
  create-batch <path>     - Create achievements and localizations from a JSON file.
                            Safe to re-run: existing achievements are found by
                            vendor identifier, existing localizations are skipped.
  list                    - List achievements (first 200 only)
  delete-all              - Delete ALL achievements (asks you to type 'yes')
    --confirm               Skip the interactive confirmation
  locales                 - Show accepted locales and the aliases mapped onto them
  version                 - Show version number

Configuration file (~/.gamecenter-cli-config.json):
  {
    "issuerId": "xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx",
    "apiKeyId": "ABCD1234XY",
    "privateKeyPath": "~/.appstoreconnect/AuthKey_ABCD1234XY.p8",
    "appId": "123456789"
  }

Batch file format:
  [
    {
      "name": "First Player",
      "vendorIdentifier": "com.game.first_player",
      "points": 5,
      "isSecret": false,
      "localizations": [
        {
          "locale": "en-US",
          "name": "First Player",
          "beforeDescription": "Play your first game",
          "afterDescription": "You've played your first game!"
        }
      ]
    }
  ]
"""


# ---------------------------------------------------------------------------
# Global flag extraction (before argparse, so flags work after the subcommand)
# ---------------------------------------------------------------------------


def _extract_global_flags(argv):
    """Extract global flags from argv regardless of position.

    Returns (format_str, config_path, dry_run, quiet, verbose, remaining_argv).
    Handles --version directly.
    """
    fmt = "json"
    config_path = None
    dry_run = False
    quiet = False
    verbose = False
    remaining = []
    i = 0
    while i < len(argv):
        if argv[i] == "--version":
            print(f"gamecenter-cli {config.VERSION}")
            sys.exit(0)
        elif argv[i] == "--dry-run":
            dry_run = True
            i += 1
            continue
        elif argv[i] in ("--quiet", "-q"):
            quiet = True
            i += 1
            continue
        elif argv[i] in ("--verbose", "-v"):
            verbose = True
            i += 1
            continue
        elif argv[i] == "--format" and i + 1 < len(argv):
            fmt = argv[i + 1]
            if fmt not in ("json", "table"):
                raise CliError(f"[ERROR] Invalid format '{fmt}'. Use: json, table")
            i += 2
            continue
        elif argv[i] == "--config" and i + 1 < len(argv):
            config_path = argv[i + 1]
            i += 2
            continue
        else:
            remaining.append(argv[i])
        i += 1
    if quiet and verbose:
        raise CliError("[ERROR] --quiet and --verbose are mutually exclusive.")
    return fmt, config_path, dry_run, quiet, verbose, remaining


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


class _SubcommandParser(argparse.ArgumentParser):
    """Subparser that raises CliError instead of printing full help text."""

    def error(self, message):
        raise CliError(f"[ERROR] {message}")


def _positive_int(value):
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a positive integer") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return parsed


def build_parser():
    parser = _SubcommandParser(
        prog="gamecenter-cli",
        description="Manage Game Center achievements on App Store Connect",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("--help", "-h", action="store_true", dest="show_help")
    sub = parser.add_subparsers(dest="command", parser_class=_SubcommandParser)

    # --- create ---
    p = sub.add_parser("create")
    p.add_argument("--name", required=True)
    p.add_argument("--vendor-id", required=True, dest="vendor_id")
    p.add_argument("--points", type=_positive_int, default=config.DEFAULT_POINTS)
    p.add_argument("--secret", action="store_true")
    p.add_argument("--repeatable", action="store_true")
    p.add_argument("--image")
    p.set_defaults(func=cmd_create)

    # --- create-batch ---
    p = sub.add_parser("create-batch")
    p.add_argument("path")
    p.set_defaults(func=cmd_create_batch)

    # --- list ---
    sub.add_parser("list").set_defaults(func=cmd_list)

    # --- delete-all ---
    p = sub.add_parser("delete-all")
    p.add_argument("--confirm", action="store_true")
    p.set_defaults(func=cmd_delete_all)

    # --- locales ---
    sub.add_parser("locales").set_defaults(func=cmd_locales)

    # --- version / help (bare words) ---
    sub.add_parser("version").set_defaults(func=None)
    sub.add_parser("help").set_defaults(func=None)

    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------


def _error_type_from_message(message):
    if message.startswith("[TOKEN_INVALID]"):
        return "token_invalid"
    if message.startswith("[SETUP_NEEDED]"):
        return "setup_needed"
    if message.startswith("[ERROR]"):
        return "error"
    return "cli_error"


def _emit_cli_error(err, fmt):
    msg = str(err)
    if fmt == "json":
        payload = {
            "ok": False,
            "error": {
                "type": _error_type_from_message(msg),
                "message": msg,
                "exit_code": getattr(err, "exit_code", 1),
            },
        }
        code = getattr(err, "code", None)
        if isinstance(code, str):
            payload["error"]["code"] = code
        print(json.dumps(payload, ensure_ascii=False), file=sys.stderr)
        return
    print(msg, file=sys.stderr)


def main(argv=None):
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")

    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print(HELP_TEXT)
        sys.exit(0)

    fmt = "json"
    try:
        fmt, config_path, dry_run, quiet, verbose, remaining_argv = _extract_global_flags(argv)
        if config_path:
            config.CONFIG_PATH = config_path
        config.RUNTIME_DRY_RUN = dry_run
        config.RUNTIME_QUIET = quiet
        config.RUNTIME_VERBOSE = verbose
        if verbose:
            config.HTTP_LOG_ENABLED = True

        if not remaining_argv:
            print(HELP_TEXT)
            sys.exit(0)

        ns = build_parser().parse_args(remaining_argv)
        ns.format = fmt  # inject global format flag

        if ns.show_help or not ns.command or ns.command == "help":
            print(HELP_TEXT)
            sys.exit(0)

        if ns.command == "version":
            print(f"gamecenter-cli {config.VERSION}")
            sys.exit(0)

        handler = getattr(ns, "func", None)
        if handler:
            handler(ns)
        else:
            raise CliError(f"[ERROR] Unknown command: {ns.command}")

    except CliError as e:
        _emit_cli_error(e, fmt)
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        print("\n[ABORTED] Interrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
