from __future__ import annotations

from datetime import date
from pathlib import Path
import tempfile
import unittest
from unittest import mock

from contractpress import config, models
from contractpress.document import ContractDocument
from contractpress.exceptions import ContractNotFound, RasterizationFailed
from contractpress.models import ContractStatus, init_db, reset_engine
from contractpress.pipeline.measure import default_typography
from contractpress.pipeline.run import run_exports
from contractpress.storage import (
    get_record,
    list_exports,
    load_contract,
    record_export,
    save_contract,
    write_pdf,
)


class StorageTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        config.set_out_dir(Path(self.temp_dir.name))
        reset_engine()
        init_db()
        default_typography().prepare()
        self.document = ContractDocument(
            title="Logo Design Agreement",
            provider={"name": "Asha Rao"},
            counterparty={"name": "Vikram Shah"},
            total_amount=20000,
        )

    def tearDown(self) -> None:
        models.engine.dispose()
        self.temp_dir.cleanup()

    def test_save_and_load_round_trip(self) -> None:
        record = save_contract(self.document)
        self.assertEqual(record.id, self.document.id)
        self.assertEqual(record.status, ContractStatus.DRAFT)
        self.assertEqual(load_contract(self.document.id), self.document)

    def test_saving_again_updates_the_record(self) -> None:
        save_contract(self.document)
        renamed = self.document.model_copy(update={"title": "Brand Identity Agreement"})
        save_contract(renamed)
        self.assertEqual(get_record(self.document.id).title, "Brand Identity Agreement")
        self.assertEqual(load_contract(self.document.id).title, "Brand Identity Agreement")

    def test_missing_contract(self) -> None:
        with self.assertRaises(ContractNotFound):
            load_contract("missing")

    def test_record_export_marks_ready(self) -> None:
        save_contract(self.document)
        path = write_pdf("logo-design-agreement", "logo-design-agreement-2025-03-01.pdf", b"%PDF-1.4")
        rows = record_export(self.document.id, [("pdf", path)], page_count=2)
        self.assertEqual(rows[0].path, str(Path("logo-design-agreement") / "logo-design-agreement-2025-03-01.pdf"))
        self.assertEqual(get_record(self.document.id).status, ContractStatus.READY)
        self.assertEqual(len(list_exports(self.document.id)), 1)

    def test_run_exports_writes_pdf(self) -> None:
        save_contract(self.document)
        results = run_exports([self.document.id], on=date(2025, 3, 1))
        self.assertEqual(results["READY"], [self.document.id])
        pdf = Path(self.temp_dir.name) / "logo-design-agreement" / "logo-design-agreement-2025-03-01.pdf"
        self.assertTrue(pdf.exists())
        exports = list_exports(self.document.id)
        self.assertGreaterEqual(exports[0].page_count, 1)

    def test_run_exports_records_failure(self) -> None:
        save_contract(self.document)
        with mock.patch(
            "contractpress.pipeline.run.export_document",
            side_effect=RasterizationFailed(0, "corrupt surface"),
        ):
            results = run_exports([self.document.id, "missing"])
        self.assertEqual(results["FAILED"], [self.document.id, "missing"])
        record = get_record(self.document.id)
        self.assertEqual(record.status, ContractStatus.FAILED)
        self.assertEqual(record.fail_code, "RASTERIZATION_FAILED")
        error_log = Path(self.temp_dir.name) / "logo-design-agreement" / "error.log"
        self.assertTrue(error_log.exists())
        self.assertIn("RASTERIZATION_FAILED", error_log.read_text(encoding="utf-8"))
        self.assertFalse((Path(self.temp_dir.name) / self.document.id).exists())


if __name__ == "__main__":
    unittest.main()
