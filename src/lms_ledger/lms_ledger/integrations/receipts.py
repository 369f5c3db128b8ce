from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

from ..core.exceptions import TransientDependencyError

logger = logging.getLogger(__name__)


class ReceiptStore(Protocol):
    """External storage of payment receipt images; this core only ever deletes."""

    def delete(self, reference: str) -> None:
        raise NotImplementedError


class LocalReceiptStore(ReceiptStore):
    """Receipts kept as files under one upload directory; references are relative paths."""

    def __init__(self, base_dir: str | Path):
        self._base_dir = Path(base_dir).resolve()

    def _resolve(self, reference: str) -> Path:
        path = (self._base_dir / reference.lstrip("/")).resolve()
        if self._base_dir not in path.parents:
            raise TransientDependencyError(f"Receipt reference outside upload dir: {reference!r}")
        return path

    def delete(self, reference: str) -> None:
        path = self._resolve(reference)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.info("Receipt %s already gone", reference)
        except OSError as exc:
            raise TransientDependencyError(f"Could not delete receipt {reference!r}: {exc}") from exc


class NullReceiptStore(ReceiptStore):
    def delete(self, reference: str) -> None:
        logger.debug("Receipt store disabled, keeping %s", reference)


def discard_receipt(store: ReceiptStore, reference: Optional[str]) -> bool:
    """Best-effort delete: failures are logged and reported as False, never raised."""

    if not reference:
        return False
    try:
        store.delete(reference)
        return True
    except Exception:
        logger.warning("Receipt cleanup failed for %s", reference, exc_info=True)
        return False
