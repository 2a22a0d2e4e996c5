import unittest
import uuid
from datetime import date

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from meuboleto.core.auth import CurrentUser, get_current_user
from meuboleto.core.dependencies import get_db
from meuboleto.main import app
from meuboleto.models.bill import Base
from meuboleto.services.bill_lifecycle import build_bill, mark_paid


class ReportsApiTests(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine)

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        self.user_id = str(uuid.uuid4())
        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_current_user] = lambda: CurrentUser(id=self.user_id)
        self.client = TestClient(app)

        db = self.SessionLocal()
        paid = build_bill(owner_id=self.user_id, beneficiary="Luz", amount=100, due_date=date(2024, 7, 15))
        mark_paid(paid, "PIX", today=date(2024, 7, 14))
        outside = build_bill(owner_id=self.user_id, beneficiary="Aluguel", amount=1500, due_date=date(2024, 8, 5))
        foreign = build_bill(owner_id=str(uuid.uuid4()), beneficiary="Outro", amount=5, due_date=date(2024, 7, 20))
        db.add_all([paid, outside, foreign])
        db.commit()
        db.close()

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def test_json_summary_for_interval(self):
        resp = self.client.get("/api/v1/reports/bills", params={"start": "2024-07-01", "end": "2024-07-31"})
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertEqual(body["total_paid"], 100.0)
        self.assertEqual(body["total_pending"], 0.0)
        self.assertEqual([b["beneficiary"] for b in body["paid"]], ["Luz"])
        self.assertEqual(body["pending"], [])
        self.assertEqual(body["filename"], "relatorio-contas-01-07-2024-a-31-07-2024.pdf")

    def test_pdf_download(self):
        resp = self.client.get("/api/v1/reports/bills.pdf", params={"start": "2024-07-01", "end": "2024-08-31"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["content-type"], "application/pdf")
        self.assertIn(
            'filename="relatorio-contas-01-07-2024-a-31-08-2024.pdf"',
            resp.headers["content-disposition"],
        )
        self.assertTrue(resp.content.startswith(b"%PDF"))

    def test_missing_bound_is_rejected(self):
        resp = self.client.get("/api/v1/reports/bills.pdf", params={"start": "2024-07-01"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "missing_range")
