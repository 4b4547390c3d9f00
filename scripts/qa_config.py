"""
Configuration for the mobile QA harness: page catalog, device profile,
timings and check thresholds, plus the small file helpers shared by the
runner and the report writer.
"""

import json
import re
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from qa_models import PageSpec, Severity


class ConfigError(ValueError):
    pass


IPHONE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 14_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/14.0 Mobile/15E148 Safari/604.1"
)

DEFAULT_PAGES = [
    {"name": "homepage", "path": "/"},
    {"name": "about", "path": "/about.html"},
    {"name": "careers", "path": "/careers.html"},
    {"name": "contact", "path": "/contact.html"},
    {"name": "financing", "path": "/financing.html"},
    {"name": "locations", "path": "/locations.html"},
    {"name": "projects", "path": "/projects.html"},
    {"name": "news", "path": "/news.html"},
    {"name": "market-fuel-systems", "path": "/markets/fuel-systems.html"},
    {"name": "market-car-wash", "path": "/markets/car-wash.html"},
    {"name": "market-environmental", "path": "/markets/environmental.html"},
    {"name": "service-design-engineering", "path": "/services/design-engineering.html"},
    {"name": "service-installation", "path": "/services/installation.html"},
    {"name": "service-maintenance", "path": "/services/service-maintenance.html"},
    {"name": "service-remodels", "path": "/services/remodels-upgrades.html"},
    {"name": "service-equipment", "path": "/services/equipment-parts.html"},
    {"name": "service-testing", "path": "/services/testing-compliance.html"},
    {"name": "service-training", "path": "/services/training.html"},
    {"name": "legal-privacy", "path": "/legal/privacy.html"},
    {"name": "legal-terms", "path": "/legal/terms.html"},
    {"name": "legal-accessibility", "path": "/legal/accessibility.html"},
    {"name": "news-arkoma", "path": "/news/arkoma-acquisition.html"},
    {"name": "news-able-cleanup", "path": "/news/able-cleanup-acquisition.html"},
    {"name": "news-palmetto", "path": "/news/palmetto-acquisition.html"},
]


@dataclass(frozen=True)
class Thresholds:
    min_font_px: float = 14.0
    min_tap_px: float = 44.0
    min_hero_height_px: float = 200.0
    grid_row_tolerance_px: float = 20.0
    grid_narrow_width_px: float = 200.0
    min_input_height_px: float = 40.0
    min_footer_link_height_px: float = 30.0
    max_small_footer_links: int = 3
    min_touch_gap_px: float = 8.0
    touch_row_tolerance_px: float = 10.0
    max_crowded_pairs: int = 3
    sample_limit: int = 10
    small_sample_limit: int = 5

    @classmethod
    def from_dict(cls, overrides: Optional[Dict[str, Any]]) -> "Thresholds":
        return _override(cls(), overrides or {}, "thresholds")


@dataclass(frozen=True)
class Timings:
    wait_until: str = "networkidle"
    navigation_timeout_ms: int = 30000
    page_timeout_ms: int = 30000
    settle_ms: int = 1000
    menu_open_ms: int = 500
    menu_close_ms: int = 300

    @classmethod
    def from_dict(cls, overrides: Optional[Dict[str, Any]]) -> "Timings":
        return _override(cls(), overrides or {}, "timings")


@dataclass(frozen=True)
class DeviceProfile:
    width: int = 375
    height: int = 812
    device_scale_factor: float = 2
    is_mobile: bool = True
    has_touch: bool = True
    user_agent: str = IPHONE_USER_AGENT

    @property
    def viewport(self) -> Dict[str, int]:
        return {"width": self.width, "height": self.height}

    def label(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass
class QAConfig:
    base_url: str
    pages: List[PageSpec]
    output_dir: Path = Path("./qa-mobile-output")
    device: DeviceProfile = field(default_factory=DeviceProfile)
    timings: Timings = field(default_factory=Timings)
    thresholds: Thresholds = field(default_factory=Thresholds)
    only_checks: Optional[List[str]] = None
    headless: bool = True
    fail_on: Optional[Severity] = None

    @property
    def screenshots_dir(self) -> Path:
        return self.output_dir / "screenshots"

    def describe(self) -> Dict[str, Any]:
        return {
            "base_url": self.base_url,
            "viewport": self.device.viewport,
            "device": asdict(self.device),
            "timings": asdict(self.timings),
            "thresholds": asdict(self.thresholds),
        }


def _coerce(default, value):
    if isinstance(value, bool) and not isinstance(default, bool):
        raise TypeError(value)
    if isinstance(default, int) and not isinstance(default, bool):
        number = float(value)
        if not number.is_integer():
            raise ValueError(value)
        return int(number)
    return type(default)(value)


def _override(base, overrides: Dict[str, Any], section: str):
    known = {f.name: f for f in fields(base)}
    changes = {}
    for key, value in overrides.items():
        if key not in known:
            raise ConfigError(f"Unknown {section} setting: {key}")
        default = getattr(base, key)
        try:
            changes[key] = _coerce(default, value)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid value for {section}.{key}: {value!r}") from None
    return replace(base, **changes)


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def now_iso() -> str:
    return datetime.now().isoformat()


def normalize_text(text: str, limit: int = 50) -> str:
    clean = re.sub(r"\s+", " ", text or "").strip()
    return clean[:limit]


def safe_filename(value: str) -> str:
    return re.sub(r"[^\w\-]", "_", value)


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def write_text(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")


def write_json(path: Path, data: Any) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def read_json(path: Path) -> Any:
    try:
        return json.loads(read_text(path))
    except FileNotFoundError:
        raise ConfigError(f"File not found: {path}") from None
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from None


def page_name_from_path(path: str) -> str:
    stem = path.strip("/")
    if not stem:
        return "homepage"
    stem = re.sub(r"\.html?$", "", stem)
    return safe_filename(stem.replace("/", "-"))


def parse_pages(data: Any) -> List[PageSpec]:
    if not isinstance(data, list) or not data:
        raise ConfigError("Page catalog must be a non-empty list")
    pages = []
    for item in data:
        if isinstance(item, str):
            pages.append(PageSpec(name=page_name_from_path(item), path=item))
        elif isinstance(item, dict) and item.get("path") is not None:
            path = str(item["path"])
            pages.append(PageSpec(name=str(item.get("name") or page_name_from_path(path)), path=path))
        else:
            raise ConfigError(f"Invalid page entry: {item!r}")
    validate_catalog(pages)
    return pages


def validate_catalog(pages: List[PageSpec]) -> None:
    seen = set()
    for spec in pages:
        # screenshot names derive from page names and must not collide
        key = safe_filename(spec.name)
        if key in seen:
            raise ConfigError(f"Duplicate page name in catalog: {spec.name}")
        seen.add(key)


def parse_viewport(raw: Any) -> Optional[Dict[str, int]]:
    if not raw:
        return None
    if isinstance(raw, dict):
        try:
            return {"width": int(raw["width"]), "height": int(raw["height"])}
        except (KeyError, TypeError, ValueError):
            raise ConfigError(f"Invalid viewport: {raw!r}") from None
    text = str(raw).lower().strip()
    if "x" not in text:
        raise ConfigError(f"Invalid viewport (expected WIDTHxHEIGHT): {raw}")
    width_str, height_str = text.split("x", 1)
    try:
        return {"width": int(width_str), "height": int(height_str)}
    except ValueError:
        raise ConfigError(f"Invalid viewport (expected WIDTHxHEIGHT): {raw}") from None


def parse_check_names(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    names = [n.strip() for n in raw.split(",") if n.strip()]
    return names or None


def parse_severity(raw: Optional[str]) -> Optional[Severity]:
    if not raw:
        return None
    try:
        return Severity(raw.strip().upper())
    except ValueError:
        raise ConfigError(f"Unknown severity: {raw}") from None


def build_config(
    base_url: Optional[str] = None,
    config_path: Optional[str] = None,
    pages_path: Optional[str] = None,
    output: Optional[str] = None,
    viewport: Optional[str] = None,
    only: Optional[str] = None,
    headed: bool = False,
    fail_on: Optional[str] = None,
) -> QAConfig:
    """Merge defaults, the optional JSON config file and command-line values."""
    data: Dict[str, Any] = {}
    if config_path:
        data = read_json(Path(config_path))
        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a JSON object: {config_path}")

    resolved_url = base_url or data.get("base_url")
    if not resolved_url:
        raise ConfigError("A base URL is required (argument or 'base_url' in the config file)")

    if pages_path:
        raw_pages = read_json(Path(pages_path))
        if isinstance(raw_pages, dict):
            raw_pages = raw_pages.get("pages")
    else:
        raw_pages = data.get("pages", DEFAULT_PAGES)

    device = DeviceProfile()
    size = parse_viewport(viewport) or parse_viewport(data.get("viewport"))
    if size:
        device = replace(device, **size)

    config = QAConfig(
        base_url=resolved_url.rstrip("/"),
        pages=parse_pages(raw_pages),
        device=device,
        timings=Timings.from_dict(data.get("timings")),
        thresholds=Thresholds.from_dict(data.get("thresholds")),
        only_checks=parse_check_names(only) or data.get("checks"),
        headless=not headed,
        fail_on=parse_severity(fail_on or data.get("fail_on")),
    )
    if output or data.get("output"):
        config.output_dir = Path(output or data["output"])
    return config
