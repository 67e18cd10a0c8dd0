"""Healing report building: JSON for tooling, plain text for humans."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from pathlib import Path

    from healwright.models.domain import SuggestionRecord

logger = structlog.get_logger(__name__)

REPORT_JSON = "healing-report.json"
REPORT_SUMMARY = "healing-summary.txt"


@dataclass
class HealingReport:
    """Aggregated view over stored healing attempts."""

    entries: list[SuggestionRecord]
    generated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def total(self) -> int:
        return len(self.entries)

    @property
    def successful(self) -> int:
        return sum(1 for e in self.entries if e.result.success)

    @property
    def failed(self) -> int:
        return self.total - self.successful

    @property
    def applied(self) -> int:
        return sum(1 for e in self.entries if e.applied)

    @property
    def success_rate(self) -> float:
        return round(100 * self.successful / self.total, 1) if self.total else 0.0

    @property
    def strategies(self) -> dict[str, int]:
        counts = Counter(e.result.strategy for e in self.entries if e.result.strategy)
        return dict(counts.most_common())

    def to_dict(self) -> dict[str, Any]:
        return {
            "generatedAt": self.generated_at.isoformat(),
            "summary": {
                "total": self.total,
                "successful": self.successful,
                "failed": self.failed,
                "applied": self.applied,
                "successRate": self.success_rate,
                "strategies": self.strategies,
            },
            "entries": [e.model_dump(mode="json", by_alias=True) for e in self.entries],
        }


def render_summary(report: HealingReport) -> str:
    lines = [
        "Self-Healing Report",
        "===================",
        f"Generated: {report.generated_at:%Y-%m-%d %H:%M:%S} UTC",
        f"Attempts: {report.total}",
        f"Successful: {report.successful} ({report.success_rate}%)",
        f"Failed: {report.failed}",
        f"Applied: {report.applied}",
    ]
    if report.strategies:
        lines.append("")
        lines.append("Winning strategies:")
        lines.extend(f"  {name}: {count}" for name, count in report.strategies.items())
    healed = [e for e in report.entries if e.result.success and e.result.applied_locator]
    if healed:
        lines.append("")
        lines.append("Healed locators:")
        for e in healed:
            score = f"{e.result.score:.1f}" if e.result.score is not None else "-"
            test = f" [{e.test_name}]" if e.test_name else ""
            lines.append(
                f"  {e.original_locator or '?'} -> {e.result.applied_locator} "
                f"(score {score}){test}"
            )
    return "\n".join(lines) + "\n"


class HealingReporter:
    """Writes healing reports to an output directory."""

    def __init__(self, output_dir: Path) -> None:
        self._output_dir = output_dir

    def build(self, entries: list[SuggestionRecord]) -> HealingReport:
        return HealingReport(entries=list(entries))

    def write(self, report: HealingReport) -> tuple[Path, Path]:
        self._output_dir.mkdir(parents=True, exist_ok=True)
        json_path = self._output_dir / REPORT_JSON
        summary_path = self._output_dir / REPORT_SUMMARY
        json_path.write_text(json.dumps(report.to_dict(), indent=2) + "\n", encoding="utf-8")
        summary_path.write_text(render_summary(report), encoding="utf-8")
        logger.info(
            "healing_report_written",
            output_dir=str(self._output_dir),
            total=report.total,
            successful=report.successful,
        )
        return json_path, summary_path
