from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from ..common.datetime_utils import now_utc
from .installment_generator import InstallmentGenerator
from .overdue_evaluator import OverdueEvaluator

logger = logging.getLogger(__name__)

JOB_NAME = "billing_sweep"


class BillingSweep:
    """Daily billing pass: generate due installments, then evaluate overdue ones.

    A failing stage is logged and reported; it does not stop the other one.
    """

    def __init__(self, generator: InstallmentGenerator, evaluator: OverdueEvaluator):
        self._generator = generator
        self._evaluator = evaluator

    def run(self, *, now: Optional[datetime] = None) -> dict[str, Any]:
        now = now or now_utc()
        out: dict[str, Any] = {"job": JOB_NAME, "ok": True}
        for stage, runner in (("generation", self._generator.run), ("overdue", self._evaluator.run)):
            try:
                result = runner(now=now)
            except Exception as exc:
                logger.exception("%s: stage %s failed", JOB_NAME, stage)
                out[stage] = {"error": str(exc)}
                out["ok"] = False
                continue
            out[stage] = result.to_dict()
            out["ok"] = out["ok"] and result.ok
        return out
