from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import List


@dataclass
class BatchReport:
    """Outcome counts of a batch job. Items are games unless noted otherwise."""

    succeeded: int = 0
    skipped: int = 0
    errored: int = 0
    created: int = 0  # rows written (auto picks, scored picks)
    item_ids: List[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.skipped + self.errored

    def as_dict(self) -> dict:
        return asdict(self)
