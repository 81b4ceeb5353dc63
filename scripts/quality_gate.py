"""Run ruff, mypy and pytest for gamecenter-cli and report one JSON summary.

Usage:
    python scripts/quality_gate.py              # run everything
    python scripts/quality_gate.py --skip-tests # lint and types only
    python scripts/quality_gate.py --fix        # let ruff fix what it can first
"""

from __future__ import annotations

import argparse
import json
import re
import subprocess
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent

# Modules that carry annotations; the CLI and command layers are untyped.
MYPY_TARGETS = [
    "gamecenter_cli/batch.py",
    "gamecenter_cli/client.py",
    "gamecenter_cli/reconciler.py",
    "gamecenter_cli/exceptions.py",
]


def _run(cmd: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(cmd, capture_output=True, text=True, cwd=str(ROOT), timeout=300)


def _tool(*args: str) -> list[str]:
    return [sys.executable, "-m", *args]


def _count(lines: list[str], pattern: str) -> int:
    return sum(1 for line in lines if re.search(pattern, line))


def _result(r: subprocess.CompletedProcess, t0: float, **extra: object) -> dict:
    out: dict = {"status": "pass" if r.returncode == 0 else "fail", **extra}
    out["duration_s"] = round(time.monotonic() - t0, 1)
    if r.returncode != 0:
        out["output"] = (r.stdout + r.stderr).strip()[-2000:]
    return out


def check_ruff_lint(fix: bool = False) -> dict:
    t0 = time.monotonic()
    if fix:
        _run(_tool("ruff", "check", "--fix", "."))
    r = _run(_tool("ruff", "check", "."))
    return _result(r, t0, errors=_count(r.stdout.splitlines(), r"^\S+:\d+:\d+:"))


def check_ruff_format() -> dict:
    t0 = time.monotonic()
    r = _run(_tool("ruff", "format", "--check", "."))
    lines = r.stdout.splitlines() + r.stderr.splitlines()
    return _result(r, t0, files_to_reformat=_count(lines, r"^Would reformat"))


def check_mypy() -> dict:
    t0 = time.monotonic()
    r = _run(_tool("mypy", *MYPY_TARGETS))
    return _result(r, t0, errors=_count(r.stdout.splitlines(), r": error:"))


def check_pytest() -> dict:
    t0 = time.monotonic()
    r = _run(_tool("pytest", "tests/", "-q", "--no-header", "--tb=short"))
    # Summary line looks like "3 failed, 85 passed in 1.2s"
    passed = failed = 0
    for line in reversed(r.stdout.strip().splitlines()):
        m_passed = re.search(r"(\d+)\s+passed", line)
        m_failed = re.search(r"(\d+)\s+failed", line)
        if m_passed or m_failed:
            passed = int(m_passed.group(1)) if m_passed else 0
            failed = int(m_failed.group(1)) if m_failed else 0
            break
    return _result(r, t0, passed=passed, failed=failed)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run all quality checks")
    parser.add_argument("--skip-tests", action="store_true", help="Skip pytest")
    parser.add_argument("--fix", action="store_true", help="Auto-fix ruff issues first")
    args = parser.parse_args()

    t0 = time.monotonic()
    checks: dict[str, dict] = {}
    print("Running ruff lint...", file=sys.stderr)
    checks["ruff_lint"] = check_ruff_lint(fix=args.fix)
    print("Running ruff format...", file=sys.stderr)
    checks["ruff_format"] = check_ruff_format()
    print("Running mypy...", file=sys.stderr)
    checks["mypy"] = check_mypy()
    if args.skip_tests:
        checks["pytest"] = {"status": "skip", "reason": "--skip-tests"}
    else:
        print("Running pytest...", file=sys.stderr)
        checks["pytest"] = check_pytest()

    ok = all(c["status"] in ("pass", "skip") for c in checks.values())
    result = {
        "overall": "pass" if ok else "fail",
        "checks": checks,
        "total_duration_s": round(time.monotonic() - t0, 1),
    }
    print(json.dumps(result, indent=2))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
