"""
Mobile menu probe: find the hamburger trigger, open the menu, close it again.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from qa_config import Timings
from qa_models import MenuProbe


@dataclass(frozen=True)
class SelectorStrategy:
    name: str
    selector: str


# Stricter accessibility-oriented signals come first.
TRIGGER_STRATEGIES: List[SelectorStrategy] = [
    SelectorStrategy("aria-label", 'button[aria-label*="menu" i]'),
    SelectorStrategy(
        "known-class",
        ".hamburger, .mobile-menu-btn, .mobile-menu-toggle, .menu-toggle, [data-mobile-menu], button.md\\:hidden",
    ),
    SelectorStrategy("aria-expanded", "header button[aria-expanded], nav button[aria-expanded]"),
    SelectorStrategy("structural", "nav button"),
]

CLOSE_STRATEGIES: List[SelectorStrategy] = [
    SelectorStrategy("close-class", ".menu-close, .mobile-menu-close"),
    SelectorStrategy("close-aria-label", 'button[aria-label*="close" i]'),
]

NAV_LINKS_VISIBLE = """() => {
    const links = document.querySelectorAll('nav a, .mobile-nav a, .nav-links a, #fullscreen-menu a');
    for (const link of links) {
        const rect = link.getBoundingClientRect();
        const style = window.getComputedStyle(link);
        if (rect.height > 0 && style.visibility !== 'hidden' && style.display !== 'none') {
            return true;
        }
    }
    return false;
}"""


async def find_first(session, strategies: Sequence[SelectorStrategy]) -> Tuple[Optional[SelectorStrategy], object]:
    for strategy in strategies:
        for handle in await session.query_selector_all(strategy.selector):
            if await session.is_visible(handle):
                return strategy, handle
    return None, None


async def probe_menu(
    session,
    timings: Optional[Timings] = None,
    screenshot_path: Optional[str] = None,
    strategies: Sequence[SelectorStrategy] = TRIGGER_STRATEGIES,
) -> MenuProbe:
    timings = timings or Timings()
    strategy = None
    opened = False
    shot = None
    try:
        strategy, trigger = await find_first(session, strategies)
        if strategy is None:
            return MenuProbe()

        await session.click(trigger)
        await session.wait(timings.menu_open_ms)
        opened = bool(await session.evaluate(NAV_LINKS_VISIBLE))

        if screenshot_path:
            try:
                await session.screenshot(screenshot_path, full_page=False)
                shot = screenshot_path
            except Exception as exc:
                print(f"    ⚠️ Menu screenshot failed: {exc}")

        _, close_button = await find_first(session, CLOSE_STRATEGIES)
        await session.click(close_button if close_button is not None else trigger)
        await session.wait(timings.menu_close_ms)
        closed = not await session.evaluate(NAV_LINKS_VISIBLE)
    except Exception as exc:
        return MenuProbe(
            trigger_found=strategy is not None,
            opened=opened,
            closed=False,
            strategy=strategy.name if strategy else None,
            error=str(exc),
            screenshot=shot,
        )

    return MenuProbe(trigger_found=True, opened=opened, closed=closed, strategy=strategy.name, screenshot=shot)
