import pytest

from src.lms_ledger.lms_ledger.core.exceptions import TransientDependencyError
from src.lms_ledger.lms_ledger.integrations.events import emit
from src.lms_ledger.lms_ledger.integrations.receipts import LocalReceiptStore, discard_receipt


def test_local_store_deletes_inside_upload_dir(tmp_path):
    (tmp_path / "receipts").mkdir()
    receipt = tmp_path / "receipts" / "r1.png"
    receipt.write_bytes(b"png")
    store = LocalReceiptStore(tmp_path)

    store.delete("receipts/r1.png")
    store.delete("receipts/r1.png")  # already gone

    assert not receipt.exists()


def test_local_store_refuses_paths_outside_upload_dir(tmp_path):
    store = LocalReceiptStore(tmp_path / "uploads")

    with pytest.raises(TransientDependencyError):
        store.delete("../secrets.txt")


def test_discard_receipt_never_raises(tmp_path):
    store = LocalReceiptStore(tmp_path)

    assert discard_receipt(store, None) is False
    assert discard_receipt(store, "../../etc/passwd") is False
    assert discard_receipt(store, "missing.png") is True


def test_emit_swallows_publisher_failures():
    class Broken:
        def publish(self, name, payload):
            raise ConnectionError("bus down")

    emit(Broken(), "payment.submitted", {"fee_id": 1})
    emit(None, "payment.submitted", {"fee_id": 1})
