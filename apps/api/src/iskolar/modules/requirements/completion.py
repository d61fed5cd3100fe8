"""
Requirement Completion

Pure aggregation of submission statuses against a catalog. The catalog
decides which keys count; rows for keys outside the catalog are ignored and
catalog keys without a row count as missing.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass

from .catalog import RequirementCatalog
from .models import SubmissionStatus


@dataclass(frozen=True)
class CompletionSummary:
    total: int
    approved: int
    pending: int
    rejected: int
    missing: int
    in_progress: int

    @property
    def all_approved(self) -> bool:
        return self.total > 0 and self.approved == self.total

    def to_dict(self) -> dict:
        return {**asdict(self), "all_approved": self.all_approved}


def summarize(
    catalog: RequirementCatalog, statuses: Mapping[str, SubmissionStatus]
) -> CompletionSummary:
    """Count each catalog requirement by its submission status."""
    counts = {status: 0 for status in SubmissionStatus}
    for key in catalog.keys:
        counts[statuses.get(key, SubmissionStatus.MISSING)] += 1

    return CompletionSummary(
        total=len(catalog),
        approved=counts[SubmissionStatus.APPROVED],
        pending=counts[SubmissionStatus.PENDING],
        rejected=counts[SubmissionStatus.REJECTED],
        missing=counts[SubmissionStatus.MISSING],
        in_progress=counts[SubmissionStatus.IN_PROGRESS],
    )
