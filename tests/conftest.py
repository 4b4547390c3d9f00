import asyncio
import copy

import pytest

from qa_checks import PROBES, PageState
from qa_config import Thresholds
from qa_menu import NAV_LINKS_VISIBLE
from qa_models import MenuProbe

BASE_URL = "https://site.test"
MENU_SELECTOR = 'button[aria-label*="menu" i]'


def healthy_measurements():
    return {
        "document": {"scrollWidth": 375, "clientWidth": 375, "innerWidth": 375},
        "text": [
            {"tag": "P", "fontSize": 16, "text": "Fuel systems built to last"},
            {"tag": "A", "fontSize": 14, "text": "Contact us"},
        ],
        "tap_targets": [{"text": "Get a quote", "width": 200, "height": 48}],
        "hero": {"height": 520, "width": 375, "viewportHeight": 812},
        "images": {"viewportWidth": 375, "images": [{"src": "hero.jpg", "naturalWidth": 1600, "width": 375}]},
        "grids": [
            {"index": 0, "childCount": 3, "first": {"top": 100, "width": 343}, "second": {"top": 420, "width": 343}},
        ],
        "forms": [{"inputs": [{"type": "email", "name": "email", "height": 48}]}],
        "footer": {"links": [{"text": "Privacy", "height": 44}, {"text": "Terms", "height": 44}]},
        "clickables": [
            {"left": 16, "right": 180, "top": 20, "bottom": 64},
            {"left": 16, "right": 180, "top": 120, "bottom": 164},
        ],
    }


class FakeHandle:
    def __init__(self, name, visible=True, action="toggle", fail_click=False):
        self.name = name
        self.visible = visible
        self.action = action
        self.fail_click = fail_click


class FakeSession:
    """In-memory stand-in for the Playwright session."""

    def __init__(self, statuses=None, measurements=None, selectors=None, links_always_visible=False):
        self.statuses = statuses or {}
        self.measurements = measurements if measurements is not None else healthy_measurements()
        self.selectors = dict(selectors or {})
        self.links_always_visible = links_always_visible
        self.menu_open = False
        self.fail_screenshots = False
        self.hang_navigation = False
        self.hang_wait = False
        self.fail_lookup = False
        self.fail_wait = False
        self.navigations = []
        self.clicks = []
        self.screenshots = []
        self.waits = []

    async def navigate(self, url, wait_until="networkidle", timeout_ms=30000):
        self.navigations.append(url)
        if self.hang_navigation:
            await asyncio.sleep(5)
        outcome = self.statuses.get(url, 200)
        if isinstance(outcome, Exception):
            raise outcome
        self.menu_open = False
        return outcome

    async def evaluate(self, script, arg=None):
        if script == NAV_LINKS_VISIBLE:
            return self.links_always_visible or self.menu_open
        for probe, source in PROBES.items():
            if script == source:
                value = self.measurements[probe]
                if isinstance(value, Exception):
                    raise value
                return copy.deepcopy(value)
        raise AssertionError("unexpected script")

    async def query_selector_all(self, selector):
        if self.fail_lookup:
            raise RuntimeError("Target page, context or browser has been closed")
        matches = self.selectors.get(selector, [])
        return list(matches) if isinstance(matches, (list, tuple)) else [matches]

    async def click(self, handle):
        self.clicks.append(handle.name)
        if handle.fail_click:
            raise RuntimeError("Element is not attached to the DOM")
        if handle.action == "toggle":
            self.menu_open = not self.menu_open
        elif handle.action == "close":
            self.menu_open = False

    async def is_visible(self, handle):
        return handle.visible

    async def screenshot(self, path, full_page=True):
        if self.fail_screenshots:
            raise RuntimeError("screenshot crashed")
        self.screenshots.append((path, full_page))

    async def wait(self, ms):
        self.waits.append(ms)
        if self.fail_wait:
            raise RuntimeError("Execution context was destroyed, most likely because of a navigation")
        if self.hang_wait:
            await asyncio.sleep(5)


@pytest.fixture
def measurements():
    return healthy_measurements()


@pytest.fixture
def session():
    return FakeSession(selectors={MENU_SELECTOR: FakeHandle("menu")})


@pytest.fixture
def make_state():
    def factory(measurements=None, menu=None, thresholds=None, probe_errors=None):
        return PageState(
            url=BASE_URL + "/",
            measurements=measurements if measurements is not None else healthy_measurements(),
            probe_errors=probe_errors or {},
            menu=menu or MenuProbe(trigger_found=True, opened=True, closed=True, strategy="aria-label"),
            thresholds=thresholds or Thresholds(),
        )

    return factory
