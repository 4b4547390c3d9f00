"""
Page runner and run aggregator.

Pages are processed one after another against a single browser session;
each page yields a frozen PageResult and the run summary is folded from
those results once every page is done.
"""

import asyncio
from pathlib import Path
from typing import List, Optional, Sequence

from qa_checks import DEFAULT_CHECKS, HeuristicCheck, PageState, capture_measurements, needs_menu_probe
from qa_config import Thresholds, Timings, ensure_dir, safe_filename, validate_catalog
from qa_menu import probe_menu
from qa_models import LOAD_CHECK, CheckResult, PageResult, PageResultBuilder, PageSpec, RunResult


class PageRunner:
    def __init__(
        self,
        base_url: str,
        screenshots_dir: Optional[Path] = None,
        checks: Optional[Sequence[HeuristicCheck]] = None,
        thresholds: Optional[Thresholds] = None,
        timings: Optional[Timings] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.screenshots_dir = Path(screenshots_dir) if screenshots_dir else None
        self.checks: List[HeuristicCheck] = list(checks if checks is not None else DEFAULT_CHECKS)
        self.thresholds = thresholds or Thresholds()
        self.timings = timings or Timings()
        if self.screenshots_dir:
            ensure_dir(self.screenshots_dir)

    def page_url(self, spec: PageSpec) -> str:
        if spec.path.startswith(("http://", "https://")):
            return spec.path
        return f"{self.base_url}/{spec.path.lstrip('/')}"

    def screenshot_path(self, spec: PageSpec, suffix: str) -> Optional[str]:
        if not self.screenshots_dir:
            return None
        return str(self.screenshots_dir / f"{safe_filename(spec.name)}-{suffix}.png")

    async def run(self, spec: PageSpec, session) -> PageResult:
        page = PageResultBuilder(spec=spec, url=self.page_url(spec))
        nav_timeout = self.timings.navigation_timeout_ms / 1000

        try:
            status = await asyncio.wait_for(
                session.navigate(page.url, wait_until=self.timings.wait_until, timeout_ms=self.timings.navigation_timeout_ms),
                timeout=nav_timeout,
            )
        except asyncio.TimeoutError:
            return page.load_failed(
                f"Page failed to load: navigation timed out after {nav_timeout:g}s",
                {"error_type": "TimeoutError"},
            )
        except Exception as exc:
            return page.load_failed(f"Page failed to load: {exc}", {"error_type": type(exc).__name__})

        page.status_code = status
        if status != 200:
            label = status if status is not None else "no response"
            return page.load_failed(f"Page failed to load: HTTP {label}", {"status_code": status})

        page.append(CheckResult(name=LOAD_CHECK, passed=True))
        page_timeout = self.timings.page_timeout_ms / 1000
        try:
            await asyncio.wait_for(self.inspect(spec, session, page), timeout=page_timeout)
        except asyncio.TimeoutError:
            return page.load_failed(
                f"Page timed out after {page_timeout:g}s during {page.stage}",
                {"stage": page.stage},
            )
        except Exception as exc:
            print(f"    ⚠️ {spec.name} failed during {page.stage}: {exc}")
            return page.load_failed(
                f"Page test error during {page.stage}: {exc}",
                {"stage": page.stage, "error_type": type(exc).__name__},
            )
        return page.build()

    async def inspect(self, spec: PageSpec, session, page: PageResultBuilder) -> None:
        page.stage = "settle"
        await session.wait(self.timings.settle_ms)

        page.stage = "screenshot"
        full_path = self.screenshot_path(spec, "mobile")
        if full_path:
            try:
                await session.screenshot(full_path, full_page=True)
                page.screenshots.append(full_path)
            except Exception as exc:
                page.notes.append(f"Screenshot failed: {exc}")
                print(f"    ⚠️ Screenshot failed for {spec.name}: {exc}")

        page.stage = "measure"
        state = PageState(url=page.url, thresholds=self.thresholds)
        await capture_measurements(session, self.checks, state)
        for probe, error in state.probe_errors.items():
            page.notes.append(f"Measurement '{probe}' failed: {error}")

        if needs_menu_probe(self.checks):
            page.stage = "menu"
            menu_path = self.screenshot_path(spec, "mobile-menu-open")
            state.menu = await probe_menu(session, timings=self.timings, screenshot_path=menu_path)
            if state.menu.screenshot:
                page.screenshots.append(state.menu.screenshot)
            elif state.menu.trigger_found and menu_path:
                page.notes.append("Menu-open screenshot not captured")

        page.stage = "checks"
        for check in self.checks:
            page.append(check.run(state))


async def run_all(specs: Sequence[PageSpec], session, runner: PageRunner) -> RunResult:
    validate_catalog(list(specs))
    pages: List[PageResult] = []
    for spec in specs:
        print(f"Testing: {spec.name}...")
        result = await runner.run(spec, session)
        if not result.loaded:
            print(f"  WARNING: {result.issues[0].description}")
        pages.append(result)
    return RunResult.from_pages(pages)
