"""Run summary across all processed targets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from builder_pipeline.core.csp import CSPCheck
from builder_pipeline.models import BuilderRecord, ProcessingOutcome, Target

logger = logging.getLogger(__name__)


@dataclass
class TargetResult:
    target: Target
    outcome: ProcessingOutcome
    attempts: int
    reason: str
    record: Optional[BuilderRecord] = None
    csp: Optional[CSPCheck] = None

    @property
    def name(self) -> Optional[str]:
        return self.record.name if self.record else self.target.known_name

    @property
    def photo_count(self) -> int:
        return len(self.record.photos) if self.record else 0

    @property
    def missing_fields(self) -> List[str]:
        return self.record.missing_fields() if self.record else []

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "url": self.target.url,
            "state": self.target.state,
            "name": self.name,
            "outcome": self.outcome.value,
            "attempts": self.attempts,
            "reason": self.reason,
            "photos": self.photo_count,
            "missing_fields": self.missing_fields,
        }
        if self.record and self.record.geocode:
            data["geocode"] = {"accuracy": self.record.geocode.accuracy, "source": self.record.geocode.source}
        if self.csp:
            data["csp"] = {
                "violations": len(self.csp.validation.violations),
                "new_origins": list(self.csp.validation.new_origins),
                "added": list(self.csp.remediation.added) if self.csp.remediation else [],
                "dropped_photos": self.csp.dropped_photos,
                "error": self.csp.error,
            }
        return data


@dataclass
class RunReport:
    results: List[TargetResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    def add(self, result: TargetResult) -> None:
        self.results.append(result)

    def finish(self) -> None:
        self.finished_at = datetime.now(timezone.utc)

    def counts(self) -> Dict[str, int]:
        counts = {outcome.value: 0 for outcome in ProcessingOutcome}
        for result in self.results:
            counts[result.outcome.value] += 1
        return counts

    def photo_stats(self) -> Dict[str, Any]:
        saved = [r for r in self.results if r.outcome in (ProcessingOutcome.SUCCESS, ProcessingOutcome.PARTIAL)]
        total = sum(result.photo_count for result in saved)
        return {
            "total": total,
            "average_per_saved": round(total / len(saved), 1) if saved else 0.0,
            "saved_without_photos": sum(1 for result in saved if result.photo_count == 0),
        }

    def csp_summary(self) -> Dict[str, Any]:
        checks = [result.csp for result in self.results if result.csp is not None]
        origins: List[str] = []
        added: List[str] = []
        for check in checks:
            origins.extend(o for o in check.validation.new_origins if o not in origins)
            if check.remediation:
                added.extend(o for o in check.remediation.added if o not in added)
        return {
            "builders_with_violations": sum(1 for check in checks if check.validation.violations),
            "total_violations": sum(len(check.validation.violations) for check in checks),
            "unique_origins": origins,
            "origins_added": added,
            "remediation_failures": sum(1 for check in checks if check.error),
            "dropped_photos": sum(check.dropped_photos for check in checks),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "total": len(self.results),
            "counts": self.counts(),
            "photos": self.photo_stats(),
            "csp": self.csp_summary(),
            "targets": [result.to_dict() for result in self.results],
        }

    def render(self) -> str:
        counts = self.counts()
        photos = self.photo_stats()
        csp = self.csp_summary()
        lines = [
            "Builder import report",
            f"  targets: {len(self.results)}  success: {counts['success']}  partial: {counts['partial']}"
            f"  skipped: {counts['skipped']}  failed: {counts['failed']}",
            f"  photos: {photos['total']} total, {photos['average_per_saved']} per saved builder,"
            f" {photos['saved_without_photos']} saved without photos",
        ]
        if csp["total_violations"]:
            lines.append(
                f"  csp: {csp['total_violations']} violation(s) on {csp['builders_with_violations']} builder(s);"
                f" origins added: {', '.join(csp['origins_added']) or 'none'}"
            )
            if csp["remediation_failures"]:
                lines.append(
                    f"  csp: allow-list update failed {csp['remediation_failures']} time(s); add manually: "
                    + ", ".join(o for o in csp["unique_origins"] if o not in csp["origins_added"])
                )
        for result in self.results:
            label = result.name or result.target.url
            line = f"  [{result.outcome.value}] {label} ({result.attempts} attempt(s)): {result.reason}"
            if result.outcome in (ProcessingOutcome.SUCCESS, ProcessingOutcome.PARTIAL) and result.missing_fields:
                line += f"; missing {', '.join(result.missing_fields)}"
            lines.append(line)
        return "\n".join(lines)

    def log(self) -> None:
        for line in self.render().splitlines():
            logger.info(line)
