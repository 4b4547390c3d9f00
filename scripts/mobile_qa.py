#!/usr/bin/env python3
"""
Mobile QA - responsiveness and basic accessibility checks for a marketing site.
Runs every catalog page through a mobile Chromium profile with Playwright,
captures screenshots and writes a severity-tagged report.
"""

import argparse
import asyncio
import sys

from qa_checks import select_checks
from qa_config import ConfigError, QAConfig, build_config
from qa_models import RunResult
from qa_report import build_report, gate_failed, print_summary, write_report
from qa_runner import PageRunner, run_all
from qa_session import open_session


async def run_harness(config: QAConfig) -> RunResult:
    checks = select_checks(config.only_checks)
    runner = PageRunner(
        base_url=config.base_url,
        screenshots_dir=config.screenshots_dir,
        checks=checks,
        thresholds=config.thresholds,
        timings=config.timings,
    )
    async with open_session(config.device, headless=config.headless) as session:
        return await run_all(config.pages, session, runner)


async def main_async(args: argparse.Namespace) -> int:
    config = build_config(
        base_url=args.base_url,
        config_path=args.config,
        pages_path=args.pages,
        output=args.output,
        viewport=args.viewport,
        only=args.only,
        headed=args.headed,
        fail_on=args.fail_on,
    )
    checks = [check.name for check in select_checks(config.only_checks)]

    print("Starting Mobile QA Tests...")
    print(f"Site: {config.base_url}")
    print(f"Viewport: {config.device.label()} (mobile, touch)")
    print(f"Testing {len(config.pages)} pages...\n")

    run = await run_harness(config)

    report = build_report(run, config, checks=checks)
    results_path, report_path = write_report(config.output_dir, report)
    print_summary(run)

    print("✅ Mobile QA complete")
    print(f"Screenshots: {config.screenshots_dir}")
    print(f"Results: {results_path}")
    print(f"Report: {report_path}")

    if gate_failed(run, config.fail_on):
        print(f"❌ Issues at or above {config.fail_on.value} found")
        return 1
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Run mobile responsiveness QA checks against a website")
    parser.add_argument("base_url", nargs="?", help="Target website base URL (or 'base_url' in --config)")
    parser.add_argument("--output", "-o", help="Output directory (default ./qa-mobile-output)")
    parser.add_argument("--config", help="Path to a JSON config file")
    parser.add_argument("--pages", help="Path to a JSON list of {name, path} page entries")
    parser.add_argument("--viewport", help="Viewport size, e.g. 375x812")
    parser.add_argument("--only", help="Comma-separated check names to run")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument(
        "--fail-on",
        help="Exit with status 1 when an issue at or above this severity is found (CRITICAL, HIGH, MEDIUM, LOW)",
    )

    args = parser.parse_args()
    try:
        code = asyncio.run(main_async(args))
    except ConfigError as exc:
        print(f"ERROR: {exc}")
        sys.exit(2)
    sys.exit(code)


if __name__ == "__main__":
    main()
