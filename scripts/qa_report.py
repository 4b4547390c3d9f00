"""
Report output: results JSON, Markdown report and the console summary.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from qa_config import QAConfig, ensure_dir, now_iso, read_json, read_text, write_json, write_text
from qa_models import SEVERITY_ORDER, PageResult, RunResult, RunSummary, Severity

RESULTS_FILENAME = "mobile-qa-results.json"
REPORT_FILENAME = "mobile-qa-report.md"
# source checkout first, then the data-files location of a regular install
TEMPLATE_DIRS = [
    Path(__file__).resolve().parent.parent / "templates",
    Path(sys.prefix) / "share" / "mobile-qa" / "templates",
]


def find_templates_dir(candidates: Optional[List[Path]] = None) -> Path:
    for path in candidates or TEMPLATE_DIRS:
        if (path / "report.md").exists():
            return path
    searched = ", ".join(str(p) for p in candidates or TEMPLATE_DIRS)
    raise FileNotFoundError(f"Report template not found (searched: {searched})")


def build_report(run: RunResult, config: Optional[QAConfig] = None, checks: Optional[List[str]] = None) -> Dict[str, Any]:
    meta: Dict[str, Any] = {"collected_at": now_iso(), "checks": checks or []}
    if config is not None:
        meta.update(config.describe())
    return {
        "meta": meta,
        "summary": run.summary.to_dict(),
        "pages": [page.to_dict() for page in run.pages],
    }


def load_report(path: Path) -> Tuple[Dict[str, Any], RunResult]:
    data = read_json(Path(path))
    pages = tuple(PageResult.from_dict(p) for p in data.get("pages", []))
    run = RunResult(summary=RunSummary.from_dict(data["summary"]), pages=pages)
    return data.get("meta", {}), run


def write_report(output_dir: Path, report: Dict[str, Any], templates_dir: Optional[Path] = None) -> Tuple[Path, Path]:
    markdown = render_report(report, templates_dir)
    ensure_dir(output_dir)
    results_path = output_dir / RESULTS_FILENAME
    write_json(results_path, report)
    report_path = output_dir / REPORT_FILENAME
    write_text(report_path, markdown)
    return results_path, report_path


def render_report(report: Dict[str, Any], templates_dir: Optional[Path] = None) -> str:
    template = read_text((templates_dir or find_templates_dir()) / "report.md")
    meta = report.get("meta", {})
    summary = report.get("summary", {})
    pages = report.get("pages", [])

    def join_list(items: List[str]) -> str:
        if not items:
            return "-"
        return "\n".join([f"- {item}" for item in items])

    def simple_table(rows: List[Dict[str, Any]], columns: List[str]) -> str:
        if not rows:
            return "(none)"
        header = "| " + " | ".join(columns) + " |\n"
        divider = "|" + "|".join([" --- " for _ in columns]) + "|\n"
        body = ""
        for row in rows:
            body += "| " + " | ".join(str(row.get(col, "")) for col in columns) + " |\n"
        return header + divider + body

    counts = summary.get("counts_by_severity", {})
    severity_rows = [{"severity": sev.value, "issues": counts.get(sev.value, 0)} for sev in SEVERITY_ORDER]

    page_rows = []
    issue_lines = []
    advisory_lines = []
    note_lines = []
    for page in pages:
        checks = page.get("checks", [])
        page_rows.append({
            "page": page.get("name"),
            "status": page.get("status_code") if page.get("status_code") is not None else "-",
            "loaded": "yes" if page.get("loaded") else "no",
            "checks passed": f"{sum(1 for c in checks if c.get('passed'))}/{len(checks)}",
            "issues": len(page.get("issues", [])),
        })
        for issue in sorted(page.get("issues", []), key=lambda i: Severity(i["severity"]).rank):
            issue_lines.append(f"**{issue['severity']}** [{page.get('name')}] {issue['description']}")
        for check in checks:
            if not check.get("passed") and not check.get("issue"):
                count = (check.get("evidence") or {}).get("count", "?")
                advisory_lines.append(f"[{page.get('name')}] {check.get('name')}: {count} finding(s)")
        for note in page.get("notes", []):
            note_lines.append(f"[{page.get('name')}] {note}")

    viewport = meta.get("viewport") or {}
    replacements = {
        "base_url": meta.get("base_url", ""),
        "collected_at": meta.get("collected_at", ""),
        "viewport": f"{viewport.get('width', '?')}x{viewport.get('height', '?')}" if viewport else "-",
        "checks": ", ".join(meta.get("checks", [])) or "-",
        "total_pages": summary.get("total_pages", 0),
        "pages_with_issues": summary.get("pages_with_issues", 0),
        "total_issues": summary.get("total_issues", 0),
        "severity_table": simple_table(severity_rows, ["severity", "issues"]),
        "pages_table": simple_table(page_rows, ["page", "status", "loaded", "checks passed", "issues"]),
        "issues_block": join_list(issue_lines),
        "advisory_block": join_list(advisory_lines),
        "notes_block": join_list(note_lines),
    }

    for key, value in replacements.items():
        template = template.replace("{{" + key + "}}", str(value))
    return template


def print_summary(run: RunResult) -> None:
    summary = run.summary
    counts = summary.counts_by_severity
    print("\n========================================")
    print("MOBILE QA TEST SUMMARY")
    print("========================================")
    print(f"Total Pages Tested: {summary.total_pages}")
    print(f"Pages with Issues: {summary.pages_with_issues}")
    print(f"Total Issues Found: {summary.total_issues}")
    for sev in SEVERITY_ORDER:
        print(f"  - {sev.value}: {counts.get(sev.value, 0)}")
    print("========================================\n")

    headings = {
        Severity.CRITICAL: "CRITICAL ISSUES:",
        Severity.HIGH: "HIGH PRIORITY ISSUES:",
        Severity.MEDIUM: "MEDIUM PRIORITY ISSUES:",
    }
    for severity, heading in headings.items():
        issues = run.issues_by_severity(severity)
        if not issues:
            continue
        print(heading)
        for page_name, issue in issues:
            print(f"  [{page_name}] {issue.description}")
        print("")


def gate_failed(run: RunResult, fail_on: Optional[Severity]) -> bool:
    if fail_on is None:
        return False
    return any(issue.severity.at_least(fail_on) for page in run.pages for issue in page.issues)
