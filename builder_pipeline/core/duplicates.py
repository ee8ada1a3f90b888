"""Duplicate detection and the overwrite decision."""

from __future__ import annotations

import logging
import dataclasses
from dataclasses import dataclass
from typing import Callable, Optional

from builder_pipeline.models import BuilderRecord

logger = logging.getLogger(__name__)

Lookup = Callable[[str], Optional[BuilderRecord]]
Confirm = Callable[[BuilderRecord, BuilderRecord, "ExistingRecordMatch"], bool]


def normalize_name(name: str) -> str:
    return " ".join((name or "").split()).lower()


@dataclass(frozen=True)
class ExistingRecordMatch:
    new_completeness: int
    existing_completeness: int
    new_photos: int
    existing_photos: int

    @classmethod
    def compare(cls, new: BuilderRecord, existing: BuilderRecord) -> "ExistingRecordMatch":
        return cls(
            new_completeness=new.contact_completeness(),
            existing_completeness=existing.contact_completeness(),
            new_photos=len(new.photos),
            existing_photos=len(existing.photos),
        )

    @property
    def new_is_richer(self) -> bool:
        """Contact completeness decides first, photo count breaks ties."""
        return (self.new_completeness, self.new_photos) >= (self.existing_completeness, self.existing_photos)

    def describe(self) -> str:
        return (
            f"contact {self.new_completeness} vs {self.existing_completeness}, "
            f"photos {self.new_photos} vs {self.existing_photos}"
        )


@dataclass(frozen=True)
class DuplicateDecision:
    """Whether to write, and the record to write.

    An overwrite carries the stored name so the upsert lands on the existing row.
    """

    proceed: bool
    reason: str
    record: BuilderRecord
    existing: Optional[BuilderRecord] = None
    match: Optional[ExistingRecordMatch] = None


def prompt_overwrite(new: BuilderRecord, existing: BuilderRecord, match: ExistingRecordMatch) -> bool:
    """Ask on the console whether to replace an existing record."""
    print(f"\nA builder named {existing.name!r} already exists.")
    print(f"  existing: {existing.phone or '-'} | {existing.email or '-'} | {existing.city or '-'} | {len(existing.photos)} photos")
    print(f"  new:      {new.phone or '-'} | {new.email or '-'} | {new.city or '-'} | {len(new.photos)} photos")
    answer = input("Overwrite existing record? [y/N] ")
    return answer.strip().lower() in {"y", "yes"}


class DuplicateResolver:
    def __init__(self, lookup: Lookup, *, policy: str = "auto", confirm: Optional[Confirm] = None) -> None:
        if policy not in {"auto", "confirm"}:
            raise ValueError(f"unknown overwrite policy {policy!r}")
        self.lookup = lookup
        self.policy = policy
        self.confirm = confirm or prompt_overwrite

    def resolve(self, record: BuilderRecord) -> DuplicateDecision:
        existing = self.lookup(normalize_name(record.name))
        if existing is None:
            return DuplicateDecision(proceed=True, reason="new builder", record=record)

        match = ExistingRecordMatch.compare(record, existing)
        if self.policy == "confirm":
            proceed = bool(self.confirm(record, existing, match))
            reason = "overwrite confirmed" if proceed else "overwrite declined by operator"
        elif match.new_is_richer:
            proceed, reason = True, "new data at least as complete"
        else:
            proceed, reason = False, "existing record is more complete"

        logger.info(
            "Duplicate %s (%s policy): %s [%s]",
            record.name,
            self.policy,
            "overwrite" if proceed else "keep existing",
            match.describe(),
        )
        if proceed and existing.name != record.name:
            logger.info("Writing %s under stored name %s", record.name, existing.name)
            record = dataclasses.replace(record, name=existing.name)
        return DuplicateDecision(proceed=proceed, reason=reason, record=record, existing=existing, match=match)
