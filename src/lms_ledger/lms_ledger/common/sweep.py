"""Batch sweep helper.

A sweep folds a handler over a list of items. Each item is isolated: an
exception is logged and recorded in the result and the fold moves on to the
next item. Handlers return the outcome tags for their item ("generated",
"skipped", ...), which are counted into the aggregate.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

FAILED = "failed"


@dataclass
class SweepResult:
    job: str
    total: int = 0
    counts: Counter = field(default_factory=Counter)
    failures: list[dict[str, Any]] = field(default_factory=list)

    def count(self, tag: str) -> int:
        return int(self.counts.get(tag, 0))

    @property
    def failed(self) -> int:
        return self.count(FAILED)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "job": self.job,
            "total": self.total,
            "counts": dict(self.counts),
            "failed": self.failed,
            "failures": list(self.failures),
        }


def run_sweep(
    job: str,
    items: Iterable[T],
    handler: Callable[[T], Sequence[str]],
    *,
    describe: Callable[[T], str] = repr,
) -> SweepResult:
    result = SweepResult(job=job)
    for item in items:
        result.total += 1
        try:
            tags = handler(item)
        except Exception as exc:
            label = describe(item)
            logger.exception("%s: failed on %s", job, label)
            result.counts[FAILED] += 1
            result.failures.append({"item": label, "error": str(exc)})
            continue
        for tag in tags:
            result.counts[tag] += 1

    logger.info("%s: %d item(s), outcome %s", job, result.total, dict(result.counts))
    return result
