"""
Heuristic mobile checks.

Each check reads a PageState (DOM measurements taken once per page, the menu
probe outcome and the active thresholds) and returns a Verdict. Checks never
touch the browser; the runner captures the measurements up front with one
JavaScript probe per measurement group.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from qa_config import ConfigError, Thresholds, normalize_text
from qa_models import CheckResult, Issue, MenuProbe, Severity


PROBES: Dict[str, str] = {
    "document": """() => ({
        scrollWidth: document.documentElement.scrollWidth,
        clientWidth: document.documentElement.clientWidth,
        innerWidth: window.innerWidth,
    })""",
    "text": """() => {
        const out = [];
        document.querySelectorAll('p, span, li, a, td, th, label').forEach(el => {
            const text = (el.textContent || '').trim();
            if (!text) return;
            const rect = el.getBoundingClientRect();
            const style = window.getComputedStyle(el);
            if (rect.width === 0 || rect.height === 0) return;
            if (style.display === 'none' || style.visibility === 'hidden') return;
            out.push({tag: el.tagName, fontSize: parseFloat(style.fontSize), text: text.substring(0, 80)});
        });
        return out;
    }""",
    "tap_targets": """() => {
        const out = [];
        document.querySelectorAll('button, a.btn, .button, [role="button"], input[type="submit"]').forEach(el => {
            const rect = el.getBoundingClientRect();
            const style = window.getComputedStyle(el);
            if (rect.width === 0) return;
            if (style.display === 'none' || style.visibility === 'hidden') return;
            out.push({text: (el.textContent || el.value || '').trim().substring(0, 30), width: rect.width, height: rect.height});
        });
        return out;
    }""",
    "hero": """() => {
        const hero = document.querySelector('.hero, [class*="hero"], section:first-of-type');
        if (!hero) return null;
        const rect = hero.getBoundingClientRect();
        return {height: rect.height, width: rect.width, viewportHeight: window.innerHeight};
    }""",
    "images": """() => ({
        viewportWidth: window.innerWidth,
        images: Array.from(document.querySelectorAll('img')).map(img => ({
            src: img.src.substring(img.src.lastIndexOf('/') + 1),
            naturalWidth: img.naturalWidth,
            width: img.width,
        })),
    })""",
    "grids": """() => {
        const out = [];
        document.querySelectorAll('.grid, [class*="grid"], .cards, [class*="card-"]').forEach((grid, i) => {
            const children = grid.children;
            if (children.length < 2) return;
            const first = children[0].getBoundingClientRect();
            const second = children[1].getBoundingClientRect();
            out.push({
                index: i,
                childCount: children.length,
                first: {top: first.top, width: first.width},
                second: {top: second.top, width: second.width},
            });
        });
        return out;
    }""",
    "forms": """() => Array.from(document.querySelectorAll('form')).map(form => ({
        inputs: Array.from(form.querySelectorAll('input, textarea, select')).map(input => ({
            type: input.type || input.tagName.toLowerCase(),
            name: input.name || '',
            height: input.getBoundingClientRect().height,
        })),
    }))""",
    "footer": """() => {
        const footer = document.querySelector('footer');
        if (!footer) return null;
        return {
            links: Array.from(footer.querySelectorAll('a')).map(link => ({
                text: (link.textContent || '').trim().substring(0, 20),
                height: link.getBoundingClientRect().height,
            })),
        };
    }""",
    "clickables": """() => {
        const out = [];
        document.querySelectorAll('a, button').forEach(el => {
            const rect = el.getBoundingClientRect();
            if (rect.width > 0 && rect.height > 0) {
                out.push({left: rect.left, right: rect.right, top: rect.top, bottom: rect.bottom});
            }
        });
        return out;
    }""",
}


class ProbeError(RuntimeError):
    pass


@dataclass
class PageState:
    url: str
    measurements: Dict[str, Any] = field(default_factory=dict)
    probe_errors: Dict[str, str] = field(default_factory=dict)
    menu: MenuProbe = field(default_factory=MenuProbe)
    thresholds: Thresholds = field(default_factory=Thresholds)

    def measure(self, probe: str) -> Any:
        if probe in self.probe_errors:
            raise ProbeError(f"measurement '{probe}' failed: {self.probe_errors[probe]}")
        if probe not in self.measurements:
            raise ProbeError(f"measurement '{probe}' was not captured")
        return self.measurements[probe]


@dataclass(frozen=True)
class Verdict:
    passed: bool
    description: str = ""
    evidence: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class HeuristicCheck:
    name: str
    severity: Optional[Severity]
    evaluate: Callable[[PageState], Verdict]
    probe: Optional[str] = None

    @property
    def advisory(self) -> bool:
        return self.severity is None

    def run(self, state: PageState) -> CheckResult:
        try:
            verdict = self.evaluate(state)
        except Exception as exc:
            return CheckResult(
                name=self.name,
                passed=False,
                issue=Issue(
                    severity=Severity.MEDIUM,
                    description=f"Check '{self.name}' could not run: {exc}",
                    evidence={"error_type": type(exc).__name__},
                ),
            )
        if verdict.passed:
            return CheckResult(name=self.name, passed=True)
        if self.advisory:
            return CheckResult(name=self.name, passed=False, evidence=verdict.evidence)
        return CheckResult(
            name=self.name,
            passed=False,
            issue=Issue(severity=self.severity, description=verdict.description, evidence=verdict.evidence),
        )


def bounded(items: Sequence[Dict[str, Any]], limit: int) -> Dict[str, Any]:
    return {"count": len(items), "sample": list(items[:limit])}


def check_horizontal_overflow(state: PageState) -> Verdict:
    doc = state.measure("document")
    scroll_width = doc["scrollWidth"]
    client_width = doc["clientWidth"]
    if scroll_width <= client_width:
        return Verdict(True)
    return Verdict(
        False,
        "Horizontal scrolling detected - content overflows viewport",
        {"scroll_width": scroll_width, "client_width": client_width, "overflow_px": scroll_width - client_width},
    )


def check_menu_trigger(state: PageState) -> Verdict:
    if state.menu.trigger_found:
        return Verdict(True)
    if state.menu.error:
        return Verdict(False, f"Mobile menu lookup failed: {state.menu.error}", state.menu.to_dict())
    return Verdict(False, "Mobile hamburger menu not found or not visible")


def check_menu_behavior(state: PageState) -> Verdict:
    menu = state.menu
    if not menu.trigger_found:
        return Verdict(True)
    if menu.error:
        return Verdict(False, f"Menu interaction error: {menu.error}", menu.to_dict())
    if not menu.opened:
        return Verdict(False, "Mobile menu trigger did not reveal any navigation links", menu.to_dict())
    if not menu.closed:
        return Verdict(False, "Mobile menu did not close again", menu.to_dict())
    return Verdict(True)


def check_text_readable(state: PageState) -> Verdict:
    limits = state.thresholds
    small = [
        {"tag": el["tag"], "font_size": el["fontSize"], "text": normalize_text(el.get("text", ""))}
        for el in state.measure("text")
        if el["fontSize"] < limits.min_font_px
    ]
    if not small:
        return Verdict(True)
    return Verdict(
        False,
        f"Found {len(small)} elements with font-size < {limits.min_font_px:g}px",
        bounded(small, limits.sample_limit),
    )


def check_tap_targets(state: PageState) -> Verdict:
    limits = state.thresholds
    small = [
        {"text": normalize_text(el.get("text", ""), 30), "width": round(el["width"]), "height": round(el["height"])}
        for el in state.measure("tap_targets")
        if el["width"] < limits.min_tap_px or el["height"] < limits.min_tap_px
    ]
    if not small:
        return Verdict(True)
    size = f"{limits.min_tap_px:g}x{limits.min_tap_px:g}px"
    return Verdict(
        False,
        f"Found {len(small)} buttons smaller than {size} tap target",
        bounded(small, limits.small_sample_limit),
    )


def check_hero_height(state: PageState) -> Verdict:
    hero = state.measure("hero")
    if not hero or hero["height"] >= state.thresholds.min_hero_height_px:
        return Verdict(True)
    height = round(hero["height"])
    return Verdict(
        False,
        f"Hero section may be too short on mobile: {height}px",
        {"height": height, "width": round(hero["width"]), "viewport_height": hero.get("viewportHeight")},
    )


def check_images_fit(state: PageState) -> Verdict:
    data = state.measure("images")
    viewport_width = data["viewportWidth"]
    oversized = [
        {"src": img["src"], "display_width": img["width"], "viewport_width": viewport_width}
        for img in data["images"]
        if img["naturalWidth"] > 0 and img["width"] > viewport_width
    ]
    if not oversized:
        return Verdict(True)
    return Verdict(
        False,
        f"{len(oversized)} image(s) overflow viewport width",
        bounded(oversized, state.thresholds.sample_limit),
    )


def check_grid_stacking(state: PageState) -> Verdict:
    limits = state.thresholds
    side_by_side = []
    for grid in state.measure("grids"):
        first, second = grid["first"], grid["second"]
        same_row = abs(first["top"] - second["top"]) < limits.grid_row_tolerance_px
        if same_row and first["width"] < limits.grid_narrow_width_px:
            side_by_side.append({
                "grid_index": grid["index"],
                "children_count": grid["childCount"],
                "first_child_width": round(first["width"]),
            })
    if not side_by_side:
        return Verdict(True)
    return Verdict(
        False,
        f"{len(side_by_side)} grid(s) may not be stacking properly on mobile",
        bounded(side_by_side, limits.sample_limit),
    )


def check_form_inputs(state: PageState) -> Verdict:
    limits = state.thresholds
    small = []
    for form_index, form in enumerate(state.measure("forms")):
        for control in form["inputs"]:
            height = control["height"]
            if 0 < height < limits.min_input_height_px:
                small.append({
                    "form_index": form_index,
                    "type": control["type"],
                    "name": control.get("name", ""),
                    "height": round(height),
                })
    if not small:
        return Verdict(True)
    return Verdict(
        False,
        f"{len(small)} form input(s) may be too small for mobile",
        bounded(small, limits.sample_limit),
    )


def check_footer_links(state: PageState) -> Verdict:
    limits = state.thresholds
    footer = state.measure("footer")
    if not footer:
        return Verdict(True)
    small = [
        {"text": normalize_text(link.get("text", ""), 20), "height": round(link["height"])}
        for link in footer["links"]
        if 0 < link["height"] < limits.min_footer_link_height_px
    ]
    if len(small) < limits.max_small_footer_links:
        return Verdict(True)
    evidence = bounded(small, limits.small_sample_limit)
    evidence["link_count"] = len(footer["links"])
    return Verdict(False, f"{len(small)} footer links may be hard to tap on mobile", evidence)


def find_crowded_pairs(rects: Sequence[Dict[str, float]], thresholds: Thresholds) -> List[Dict[str, Any]]:
    """Pairs of clickables sitting on one row with less than the minimum gap.

    Each element contributes at most one pair.
    """
    crowded: List[Dict[str, Any]] = []
    for i, first in enumerate(rects):
        for j in range(i + 1, len(rects)):
            second = rects[j]
            # overlapping boxes count as a zero gap
            gap = max(0.0, second["left"] - first["right"], first["left"] - second["right"])
            if gap < thresholds.min_touch_gap_px and abs(first["top"] - second["top"]) < thresholds.touch_row_tolerance_px:
                crowded.append({"first": i, "second": j, "gap": round(gap)})
                break
    return crowded


def check_touch_spacing(state: PageState) -> Verdict:
    limits = state.thresholds
    crowded = find_crowded_pairs(state.measure("clickables"), limits)
    if len(crowded) < limits.max_crowded_pairs:
        return Verdict(True)
    return Verdict(
        False,
        f"{len(crowded)} clickable pairs closer than {limits.min_touch_gap_px:g}px",
        bounded(crowded, limits.small_sample_limit),
    )


DEFAULT_CHECKS: List[HeuristicCheck] = [
    HeuristicCheck("no_horizontal_overflow", Severity.CRITICAL, check_horizontal_overflow, probe="document"),
    HeuristicCheck("menu_trigger_present", Severity.HIGH, check_menu_trigger),
    HeuristicCheck("menu_opens_and_closes", Severity.MEDIUM, check_menu_behavior),
    HeuristicCheck("text_readable", Severity.MEDIUM, check_text_readable, probe="text"),
    HeuristicCheck("tap_targets", Severity.MEDIUM, check_tap_targets, probe="tap_targets"),
    HeuristicCheck("hero_height", Severity.LOW, check_hero_height, probe="hero"),
    HeuristicCheck("images_fit_viewport", Severity.HIGH, check_images_fit, probe="images"),
    HeuristicCheck("grid_stacking", Severity.MEDIUM, check_grid_stacking, probe="grids"),
    HeuristicCheck("form_inputs_usable", Severity.MEDIUM, check_form_inputs, probe="forms"),
    HeuristicCheck("footer_navigable", Severity.LOW, check_footer_links, probe="footer"),
    HeuristicCheck("touch_spacing", None, check_touch_spacing, probe="clickables"),
]

MENU_CHECKS = {"menu_trigger_present", "menu_opens_and_closes"}


def select_checks(names: Optional[Sequence[str]], checks: Sequence[HeuristicCheck] = DEFAULT_CHECKS) -> List[HeuristicCheck]:
    if not names:
        return list(checks)
    known = {check.name for check in checks}
    unknown = [name for name in names if name not in known]
    if unknown:
        raise ConfigError(f"Unknown check(s): {', '.join(unknown)}. Available: {', '.join(sorted(known))}")
    wanted = set(names)
    # registry order wins over the order given on the command line
    return [check for check in checks if check.name in wanted]


def needs_menu_probe(checks: Sequence[HeuristicCheck]) -> bool:
    return any(check.name in MENU_CHECKS for check in checks)


async def capture_measurements(session, checks: Sequence[HeuristicCheck], state: PageState) -> None:
    for probe in dict.fromkeys(c.probe for c in checks if c.probe):
        try:
            state.measurements[probe] = await session.evaluate(PROBES[probe])
        except Exception as exc:
            state.probe_errors[probe] = str(exc)
