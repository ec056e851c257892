#!/usr/bin/env python3
"""
Test runner for Thread Mention Tally.

Runs the in-module ``_create_module_tests()`` suites of every core module,
then (optionally) the pytest suite and the Ruff linter.

Usage:
    python run_tests.py                # Module suites, pytest, linter
    python run_tests.py --skip-linter  # Skip linter checks
    python run_tests.py --skip-pytest  # Module suites only
"""

import importlib
import logging
import subprocess
import sys
import time
from pathlib import Path
from typing import Final

from test_framework import Colors, Icons, suppress_logging

SEPARATOR_LINE: Final[str] = "=" * 70

# Module registry: (module_name, display_name)
TEST_MODULES: list[tuple[str, str]] = [
    ("config", "Configuration"),
    ("text_utils", "Text Utilities"),
    ("error_handling", "Error Handling"),
    ("monitoring", "Monitoring"),
    ("models", "Models"),
    ("entity_constants", "Entity Constants"),
    ("reaction_classifier", "Reaction Classifier"),
    ("candidate_extractor", "Candidate Extractor"),
    ("rate_limiter", "Rate Limiter"),
    ("prompt_detector", "Prompt Detector"),
    ("property_tests", "Property Tests"),
]


def _tool_available(module: str) -> bool:
    """Return True if ``python -m <module>`` runs."""
    try:
        result = subprocess.run(
            [sys.executable, "-m", module, "--version"],
            check=False, capture_output=True, text=True, timeout=10,
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return False


def _section(title: str) -> None:
    print(f"\n{Colors.BOLD}{Colors.CYAN}{SEPARATOR_LINE}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}{title}{Colors.RESET}")
    print(f"{Colors.CYAN}{SEPARATOR_LINE}{Colors.RESET}\n")


def _run_linter() -> bool:
    """Run Ruff linter and return True if no issues found."""
    _section("🔍 Running Linter (Ruff)")

    if not _tool_available("ruff"):
        print(f"{Colors.YELLOW}⚠️ Ruff not available, skipping linter checks{Colors.RESET}")
        return True

    try:
        result = subprocess.run(
            [sys.executable, "-m", "ruff", "check", "."],
            check=False, capture_output=True, text=True,
            cwd=Path.cwd(), timeout=60,
        )
    except subprocess.TimeoutExpired:
        print(f"{Colors.YELLOW}⚠️ Linter timed out{Colors.RESET}")
        return True

    if result.returncode == 0:
        print(f"{Colors.GREEN}✅ Linter: No issues found{Colors.RESET}")
        return True
    lines = [ln for ln in result.stdout.splitlines() if ln.strip()][-30:]
    for ln in lines:
        print(ln)
    print(f"\n{Colors.RED}❌ Linter: Issues found{Colors.RESET}")
    return False


def _run_pytest() -> bool:
    """Run the pytest suite and return True if it passed."""
    _section("🧪 Running pytest")
    result = subprocess.run(
        [sys.executable, "-m", "pytest", "-q"], check=False, cwd=Path.cwd()
    )
    return result.returncode == 0


def _run_module_tests(module_name: str, display_name: str) -> tuple[bool, float]:
    """Import a module and run its ``_create_module_tests`` suite.

    Returns:
        Tuple of (success, duration_seconds)
    """
    start = time.time()
    try:
        module = importlib.import_module(module_name)
    except Exception as e:
        print(f"{Colors.RED}❌ {display_name}: Failed to load - {e}{Colors.RESET}")
        return False, time.time() - start

    if not hasattr(module, "_create_module_tests"):
        print(f"{Colors.YELLOW}⚠️ {display_name}: no test function found{Colors.RESET}")
        return True, time.time() - start

    suite = module._create_module_tests()
    result = suite.run()
    return result.ok, time.time() - start


def main() -> int:
    """Run all tests and return exit code."""
    overall_start = time.time()
    skip_linter = "--skip-linter" in sys.argv
    skip_pytest = "--skip-pytest" in sys.argv

    _section(f"{Icons.ROCKET} Thread Mention Tally - Test Suite")

    linter_ok = True
    if not skip_linter:
        linter_ok = _run_linter()

    passed_modules = 0
    failed_names: list[str] = []

    with suppress_logging(logging.ERROR):
        for module_name, display_name in TEST_MODULES:
            success, _duration = _run_module_tests(module_name, display_name)
            if success:
                passed_modules += 1
            else:
                failed_names.append(display_name)

    pytest_ok = True
    if not skip_pytest:
        if _tool_available("pytest"):
            pytest_ok = _run_pytest()
        else:
            print(f"{Colors.YELLOW}⚠️ pytest not available, skipping{Colors.RESET}")

    total_duration = time.time() - overall_start
    total_modules = passed_modules + len(failed_names)

    _section(f"{Icons.MAGNIFY} Final Test Report")
    print(f"{Icons.CLOCK} Total Duration: {total_duration:.1f}s")
    print(f"{Colors.GREEN}{Icons.PASS} Modules Passed: {passed_modules}/{total_modules}{Colors.RESET}")

    if failed_names:
        print(f"{Colors.RED}{Icons.FAIL} Modules Failed: {len(failed_names)}/{total_modules}{Colors.RESET}")
        for name in failed_names:
            print(f"  {Colors.RED}• {name}{Colors.RESET}")
    if not pytest_ok:
        print(f"{Colors.RED}{Icons.FAIL} pytest suite failed{Colors.RESET}")
    if not linter_ok:
        print(f"{Colors.YELLOW}⚠️ Linter issues detected{Colors.RESET}")

    ok = not failed_names and pytest_ok
    if ok:
        print(f"\n{Colors.GREEN}{Colors.BOLD}{Icons.PASS} ALL TESTS PASSED{Colors.RESET}")
    else:
        print(f"\n{Colors.RED}{Colors.BOLD}{Icons.FAIL} SOME TESTS FAILED{Colors.RESET}")
    print(f"{Colors.CYAN}{SEPARATOR_LINE}{Colors.RESET}\n")

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
