"""Output formatting for gamecenter-cli (JSON by default, plain tables on request)."""

import json
import re

_CONTROL_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]|[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def output(data, formatter=None, fmt="json"):
    """Output data in requested format."""
    if fmt == "table" and formatter:
        print(formatter(data))
    else:
        print(json.dumps(data, indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# Table helpers
# ---------------------------------------------------------------------------


def _trunc(s, maxlen):
    """Truncate string with ellipsis indicator."""
    if not s:
        return ""
    return s[: maxlen - 1] + "…" if len(s) > maxlen else s


def _sanitize_str(s):
    """Strip ANSI escape sequences and control chars from table output."""
    if not s:
        return s
    return _CONTROL_RE.sub("", str(s))


def _table(columns, rows, footer=None):
    """Build a formatted table string.
    columns: list of (name, width) tuples. Last column has no width (fills).
    rows: list of tuples matching columns."""
    parts = []
    for i, (name, width) in enumerate(columns):
        if i == len(columns) - 1:
            parts.append(name)
        else:
            parts.append(f"{name:<{width}}")
    header = " ".join(parts)
    lines = [header, "-" * max(len(header), 72)]
    for row in rows:
        parts = []
        for i, val in enumerate(row):
            safe = _sanitize_str(val) if isinstance(val, str) else str(val)
            if i == len(columns) - 1:
                parts.append(safe)
            else:
                parts.append(f"{safe:<{columns[i][1]}}")
        lines.append(" ".join(parts))
    if footer:
        lines.append(f"\n{footer}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def format_achievements_table(result):
    rows = []
    for i, a in enumerate(result.get("achievements", []), 1):
        points = a.get("points")
        rows.append(
            (
                str(i),
                _trunc(a.get("reference_name") or "Unknown", 32),
                "-" if points is None else str(points),
                a.get("id") or "",
                a.get("vendor_identifier") or "Unknown",
            )
        )
    footer = f"Total: {result.get('count', len(rows))}"
    if result.get("capped"):
        footer += " (listing stops at the first page; more may exist)"
    return _table(
        [("#", 4), ("Name", 33), ("Pts", 5), ("ID", 38), ("Vendor ID", 0)], rows, footer
    )


def format_outcome_table(result):
    verb = "deleted" if result.get("action") == "delete" else "succeeded"
    rows = []
    for i, item in enumerate(result.get("items", []), 1):
        if item.get("ok"):
            status = "existing" if item.get("resolved_existing") else "ok"
        else:
            status = "FAILED"
        locs = ""
        if "localizations_added" in item:
            locs = (
                f"+{item['localizations_added']} "
                f"~{item['localizations_skipped']} "
                f"!{item['localizations_failed']}"
            )
        detail = item.get("error") or item.get("achievement_id") or ""
        rows.append((str(i), _trunc(item.get("name") or "", 32), status, locs, detail))
    footer = f"{result.get('succeeded', 0)} {verb}, {result.get('failed', 0)} failed"
    if result.get("action") == "create":
        footer += (
            f"; localizations: {result.get('localizations_added', 0)} added, "
            f"{result.get('localizations_skipped', 0)} skipped, "
            f"{result.get('localizations_failed', 0)} failed"
        )
    return _table(
        [("#", 4), ("Name", 33), ("Status", 9), ("Locs", 12), ("Detail", 0)], rows, footer
    )


def format_plan_table(result):
    lines = [f"Dry run: {result['count']} achievement(s), {result['total_points']} points total", ""]
    for i, a in enumerate(result["achievements"], 1):
        secret = "" if a["show_before_earned"] else " [secret]"
        lines.append(f"{i}. {a['name']} ({a['vendor_identifier']}) {a['points']} pts{secret}")
        for loc in a["localizations"]:
            arrow = ""
            if loc["mapped_locale"] != loc["locale"]:
                arrow = f" -> {loc['mapped_locale']}"
            flag = "" if loc["valid"] else "  [WARN] not an accepted locale"
            lines.append(f"     {loc['locale']}{arrow}: {_sanitize_str(loc['name'])}{flag}")
    return "\n".join(lines)


def format_locales_table(result):
    lines = ["Accepted locales:", "  " + ", ".join(result["valid_locales"]), "", "Aliases:"]
    for src, dst in result["aliases"].items():
        lines.append(f"  {src:<8} -> {dst}")
    return "\n".join(lines)
