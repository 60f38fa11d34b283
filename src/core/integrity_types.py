"""Typed models for post-load integrity verification."""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import IntegrityViolation

ORPHAN_CHECK_NAMES = ("orphaned_ratings", "orphaned_tags", "orphaned_links")


@dataclass(frozen=True)
class IntegrityCheckResult:
    """One named integrity count; zero means the check passed."""

    check_id: str
    name: str
    title: str
    count: int
    duration_seconds: float

    @property
    def passed(self) -> bool:
        """Return whether the check found no offending rows."""
        return self.count == 0


@dataclass(frozen=True)
class IntegrityReport:
    """Integrity counts for the whole store."""

    checks: tuple[IntegrityCheckResult, ...]
    row_counts: dict[str, int]

    @property
    def counts(self) -> dict[str, int]:
        """Map check name to offending row count."""
        return {check.name: check.count for check in self.checks}

    @property
    def violations(self) -> dict[str, int]:
        """Checks with a non-zero count."""
        return {check.name: check.count for check in self.checks if check.count}

    @property
    def orphan_count(self) -> int:
        """Dependent rows whose title does not exist."""
        return sum(self.counts.get(name, 0) for name in ORPHAN_CHECK_NAMES)

    @property
    def is_clean(self) -> bool:
        """Return whether every check passed."""
        return not self.violations

    def raise_for_violations(self) -> None:
        """Raise when any check failed.

        Raises:
            IntegrityViolation: With the non-zero counts. Orphans are
                named separately because they indicate a load-ordering bug
                or a corrupt source rather than an empty dataset.
        """
        violations = self.violations
        if not violations:
            return
        rendered = ", ".join(f"{name}={count}" for name, count in violations.items())
        hint = ""
        if self.orphan_count:
            hint = " Orphaned rows mean dependents were loaded without their titles."
        raise IntegrityViolation(f"Integrity verification failed: {rendered}.{hint}", violations)
