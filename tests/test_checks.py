import pytest

from qa_checks import (
    DEFAULT_CHECKS,
    HeuristicCheck,
    Verdict,
    find_crowded_pairs,
    select_checks,
)
from qa_config import ConfigError, Thresholds
from qa_models import MenuProbe, Severity


def run_check(name, state):
    check = next(c for c in DEFAULT_CHECKS if c.name == name)
    return check.run(state)


def test_healthy_page_passes_every_check(make_state):
    state = make_state()
    results = [check.run(state) for check in DEFAULT_CHECKS]
    assert all(r.passed for r in results), [r for r in results if not r.passed]
    assert all(r.issue is None for r in results)


def test_registry_order_is_stable():
    assert [c.name for c in DEFAULT_CHECKS] == [
        "no_horizontal_overflow",
        "menu_trigger_present",
        "menu_opens_and_closes",
        "text_readable",
        "tap_targets",
        "hero_height",
        "images_fit_viewport",
        "grid_stacking",
        "form_inputs_usable",
        "footer_navigable",
        "touch_spacing",
    ]


def test_overflow_equal_widths_pass(make_state, measurements):
    measurements["document"] = {"scrollWidth": 375, "clientWidth": 375, "innerWidth": 375}
    assert run_check("no_horizontal_overflow", make_state(measurements)).passed


def test_overflow_one_pixel_fails_critical(make_state, measurements):
    measurements["document"] = {"scrollWidth": 376, "clientWidth": 375, "innerWidth": 375}
    result = run_check("no_horizontal_overflow", make_state(measurements))
    assert not result.passed
    assert result.issue.severity == Severity.CRITICAL
    assert result.issue.evidence["overflow_px"] == 1


def test_tap_target_43_by_50_is_flagged(make_state, measurements):
    measurements["tap_targets"] = [{"text": "Menu", "width": 43, "height": 50}]
    result = run_check("tap_targets", make_state(measurements))
    assert not result.passed
    assert result.issue.severity == Severity.MEDIUM
    assert result.issue.evidence["sample"] == [{"text": "Menu", "width": 43, "height": 50}]


def test_tap_target_44_by_44_passes(make_state, measurements):
    measurements["tap_targets"] = [{"text": "Menu", "width": 44, "height": 44}]
    assert run_check("tap_targets", make_state(measurements)).passed


def test_small_text_is_reported_with_bounded_sample(make_state, measurements):
    measurements["text"] = [{"tag": "SPAN", "fontSize": 12, "text": f"legal {i}"} for i in range(40)]
    result = run_check("text_readable", make_state(measurements))
    assert not result.passed
    assert result.issue.description == "Found 40 elements with font-size < 14px"
    assert result.issue.evidence["count"] == 40
    assert len(result.issue.evidence["sample"]) == 10


def test_menu_trigger_missing_is_high(make_state):
    state = make_state(menu=MenuProbe())
    result = run_check("menu_trigger_present", state)
    assert not result.passed
    assert result.issue.severity == Severity.HIGH
    # behaviour check has nothing to exercise without a trigger
    assert run_check("menu_opens_and_closes", state).passed


def test_failed_menu_lookup_is_reported(make_state):
    state = make_state(menu=MenuProbe(error="Target closed"))
    result = run_check("menu_trigger_present", state)
    assert result.issue.severity == Severity.HIGH
    assert result.issue.description == "Mobile menu lookup failed: Target closed"


@pytest.mark.parametrize(
    "menu, fragment",
    [
        (MenuProbe(trigger_found=True, opened=False, closed=True), "did not reveal"),
        (MenuProbe(trigger_found=True, opened=True, closed=False), "did not close"),
        (MenuProbe(trigger_found=True, opened=False, error="detached"), "Menu interaction error"),
    ],
)
def test_menu_behaviour_failures(make_state, menu, fragment):
    result = run_check("menu_opens_and_closes", make_state(menu=menu))
    assert not result.passed
    assert fragment in result.issue.description
    assert result.issue.evidence["trigger_found"] is True


def test_short_hero_is_low(make_state, measurements):
    measurements["hero"] = {"height": 150.4, "width": 375, "viewportHeight": 812}
    result = run_check("hero_height", make_state(measurements))
    assert result.issue.severity == Severity.LOW
    assert result.issue.description == "Hero section may be too short on mobile: 150px"


def test_missing_hero_passes(make_state, measurements):
    measurements["hero"] = None
    assert run_check("hero_height", make_state(measurements)).passed


def test_oversized_image_is_high_and_unloaded_images_ignored(make_state, measurements):
    measurements["images"] = {
        "viewportWidth": 375,
        "images": [
            {"src": "banner.png", "naturalWidth": 1200, "width": 600},
            {"src": "lazy.png", "naturalWidth": 0, "width": 900},
        ],
    }
    result = run_check("images_fit_viewport", make_state(measurements))
    assert result.issue.severity == Severity.HIGH
    assert result.issue.evidence["count"] == 1
    assert result.issue.evidence["sample"][0]["src"] == "banner.png"


def test_grid_side_by_side_narrow_children(make_state, measurements):
    measurements["grids"] = [
        {"index": 2, "childCount": 4, "first": {"top": 300, "width": 160}, "second": {"top": 305, "width": 160}},
        {"index": 3, "childCount": 2, "first": {"top": 300, "width": 343}, "second": {"top": 300, "width": 343}},
    ]
    result = run_check("grid_stacking", make_state(measurements))
    assert not result.passed
    assert result.issue.evidence["sample"] == [{"grid_index": 2, "children_count": 4, "first_child_width": 160}]


def test_grid_thresholds_are_overridable(make_state, measurements):
    measurements["grids"] = [
        {"index": 0, "childCount": 2, "first": {"top": 0, "width": 160}, "second": {"top": 0, "width": 160}},
    ]
    limits = Thresholds(grid_narrow_width_px=150)
    assert run_check("grid_stacking", make_state(measurements, thresholds=limits)).passed


def test_short_form_inputs(make_state, measurements):
    measurements["forms"] = [
        {"inputs": [{"type": "text", "name": "zip", "height": 32}, {"type": "hidden", "name": "t", "height": 0}]},
    ]
    result = run_check("form_inputs_usable", make_state(measurements))
    assert result.issue.severity == Severity.MEDIUM
    assert result.issue.evidence["count"] == 1


def test_footer_needs_three_small_links_to_fail(make_state, measurements):
    measurements["footer"] = {"links": [{"text": f"link {i}", "height": 18} for i in range(2)]}
    assert run_check("footer_navigable", make_state(measurements)).passed

    measurements["footer"] = {"links": [{"text": f"link {i}", "height": 18} for i in range(8)]}
    result = run_check("footer_navigable", make_state(measurements))
    assert result.issue.severity == Severity.LOW
    assert result.issue.evidence["count"] == 8
    assert len(result.issue.evidence["sample"]) == 5
    assert result.issue.evidence["link_count"] == 8


def test_missing_footer_passes(make_state, measurements):
    measurements["footer"] = None
    assert run_check("footer_navigable", make_state(measurements)).passed


def test_touch_spacing_is_advisory(make_state, measurements):
    row = [{"left": x, "right": x + 40, "top": 10, "bottom": 50} for x in range(0, 400, 44)]
    measurements["clickables"] = row
    result = run_check("touch_spacing", make_state(measurements))
    assert not result.passed
    assert result.issue is None
    assert result.evidence["count"] >= 3


def test_crowded_pairs_are_all_counted():
    rects = [{"left": x, "right": x + 20, "top": 0, "bottom": 20} for x in range(0, 30 * 24, 24)]
    pairs = find_crowded_pairs(rects, Thresholds())
    assert len(pairs) == 29


def test_touch_spacing_sample_size_does_not_decide_the_outcome(make_state, measurements):
    measurements["clickables"] = [{"left": x, "right": x + 20, "top": 0, "bottom": 20} for x in range(0, 30 * 24, 24)]
    result = run_check("touch_spacing", make_state(measurements, thresholds=Thresholds(small_sample_limit=2)))
    assert not result.passed
    assert result.issue is None
    assert result.evidence["count"] == 29
    assert len(result.evidence["sample"]) == 2


def test_failed_measurement_becomes_medium_issue(make_state):
    state = make_state(probe_errors={"text": "Execution context was destroyed"})
    result = run_check("text_readable", state)
    assert not result.passed
    assert result.issue.severity == Severity.MEDIUM
    assert "Execution context was destroyed" in result.issue.description
    # other checks are unaffected
    assert run_check("tap_targets", state).passed


def test_unexpected_dom_shape_is_isolated(make_state, measurements):
    measurements["document"] = {"clientWidth": 375}
    result = run_check("no_horizontal_overflow", make_state(measurements))
    assert result.issue.severity == Severity.MEDIUM
    assert result.issue.evidence == {"error_type": "KeyError"}


def test_advisory_check_error_still_reports_issue(make_state):
    def explode(state):
        raise ValueError("boom")

    check = HeuristicCheck("custom", None, explode)
    result = check.run(make_state())
    assert result.issue.severity == Severity.MEDIUM


def test_custom_check_uses_declared_severity(make_state):
    check = HeuristicCheck("always_fails", Severity.HIGH, lambda state: Verdict(False, "nope", {"n": 1}))
    result = check.run(make_state())
    assert result.issue.severity == Severity.HIGH
    assert result.issue.evidence == {"n": 1}


def test_select_checks_keeps_registry_order():
    chosen = select_checks(["touch_spacing", "no_horizontal_overflow"])
    assert [c.name for c in chosen] == ["no_horizontal_overflow", "touch_spacing"]
    assert len(select_checks(None)) == len(DEFAULT_CHECKS)


def test_select_checks_rejects_unknown_names():
    with pytest.raises(ConfigError):
        select_checks(["no_such_check"])
