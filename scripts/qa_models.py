"""
Result model for the mobile QA harness: pages in, checks and issues out.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return SEVERITY_ORDER.index(self)

    def at_least(self, other: "Severity") -> bool:
        return self.rank <= other.rank


SEVERITY_ORDER = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]

LOAD_CHECK = "page_loads"


@dataclass(frozen=True)
class PageSpec:
    name: str
    path: str


@dataclass(frozen=True)
class Issue:
    severity: Severity
    description: str
    evidence: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "description": self.description,
            "evidence": self.evidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Issue":
        return cls(
            severity=Severity(data["severity"]),
            description=data["description"],
            evidence=data.get("evidence"),
        )


@dataclass(frozen=True)
class CheckResult:
    name: str
    passed: bool
    issue: Optional[Issue] = None
    # advisory checks report evidence without raising an issue
    evidence: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "issue": self.issue.to_dict() if self.issue else None,
            "evidence": self.evidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckResult":
        issue = data.get("issue")
        return cls(
            name=data["name"],
            passed=bool(data["passed"]),
            issue=Issue.from_dict(issue) if issue else None,
            evidence=data.get("evidence"),
        )


@dataclass(frozen=True)
class MenuProbe:
    trigger_found: bool = False
    opened: bool = False
    closed: bool = False
    strategy: Optional[str] = None
    error: Optional[str] = None
    screenshot: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trigger_found": self.trigger_found,
            "opened": self.opened,
            "closed": self.closed,
            "strategy": self.strategy,
            "error": self.error,
            "screenshot": self.screenshot,
        }


@dataclass(frozen=True)
class PageResult:
    spec: PageSpec
    url: str
    loaded: bool
    checks: Tuple[CheckResult, ...] = ()
    status_code: Optional[int] = None
    screenshots: Tuple[str, ...] = ()
    notes: Tuple[str, ...] = ()

    @property
    def issues(self) -> List[Issue]:
        return [check.issue for check in self.checks if check.issue is not None]

    def check(self, name: str) -> Optional[CheckResult]:
        for result in self.checks:
            if result.name == name:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.spec.name,
            "path": self.spec.path,
            "url": self.url,
            "loaded": self.loaded,
            "status_code": self.status_code,
            "checks": [c.to_dict() for c in self.checks],
            "issues": [i.to_dict() for i in self.issues],
            "screenshots": list(self.screenshots),
            "notes": list(self.notes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageResult":
        # issues are derived from checks, the serialized copy is for readers
        return cls(
            spec=PageSpec(name=data["name"], path=data["path"]),
            url=data["url"],
            loaded=bool(data["loaded"]),
            checks=tuple(CheckResult.from_dict(c) for c in data.get("checks", [])),
            status_code=data.get("status_code"),
            screenshots=tuple(data.get("screenshots", [])),
            notes=tuple(data.get("notes", [])),
        )


@dataclass
class PageResultBuilder:
    """Accumulates one page's checks; `build` freezes them into a PageResult."""

    spec: PageSpec
    url: str
    status_code: Optional[int] = None
    stage: str = "init"
    checks: List[CheckResult] = field(default_factory=list)
    screenshots: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    def append(self, result: CheckResult) -> None:
        self.checks.append(result)

    def load_failed(self, description: str, evidence: Optional[Dict[str, Any]] = None) -> PageResult:
        issue = Issue(severity=Severity.CRITICAL, description=description, evidence=evidence)
        return PageResult(
            spec=self.spec,
            url=self.url,
            loaded=False,
            checks=(CheckResult(name=LOAD_CHECK, passed=False, issue=issue),),
            status_code=self.status_code,
            screenshots=tuple(self.screenshots),
            notes=tuple(self.notes),
        )

    def build(self) -> PageResult:
        return PageResult(
            spec=self.spec,
            url=self.url,
            loaded=True,
            checks=tuple(self.checks),
            status_code=self.status_code,
            screenshots=tuple(self.screenshots),
            notes=tuple(self.notes),
        )


@dataclass(frozen=True)
class RunSummary:
    total_pages: int
    pages_with_issues: int
    total_issues: int
    counts_by_severity: Dict[str, int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_pages": self.total_pages,
            "pages_with_issues": self.pages_with_issues,
            "total_issues": self.total_issues,
            "counts_by_severity": dict(self.counts_by_severity),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunSummary":
        return cls(
            total_pages=data["total_pages"],
            pages_with_issues=data["pages_with_issues"],
            total_issues=data["total_issues"],
            counts_by_severity={k: int(v) for k, v in data["counts_by_severity"].items()},
        )


def summarize(pages: Sequence[PageResult]) -> RunSummary:
    counts = Counter(issue.severity.value for page in pages for issue in page.issues)
    return RunSummary(
        total_pages=len(pages),
        pages_with_issues=sum(1 for page in pages if page.issues),
        total_issues=sum(len(page.issues) for page in pages),
        counts_by_severity={sev.value: counts.get(sev.value, 0) for sev in SEVERITY_ORDER},
    )


@dataclass(frozen=True)
class RunResult:
    summary: RunSummary
    pages: Tuple[PageResult, ...]

    @classmethod
    def from_pages(cls, pages: Sequence[PageResult]) -> "RunResult":
        return cls(summary=summarize(pages), pages=tuple(pages))

    def issues_by_severity(self, severity: Severity) -> List[Tuple[str, Issue]]:
        return [
            (page.spec.name, issue)
            for page in self.pages
            for issue in page.issues
            if issue.severity == severity
        ]
