import unittest
import uuid
from datetime import date, timedelta
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from meuboleto.core.auth import CurrentUser, get_current_user
from meuboleto.core.dependencies import get_db
from meuboleto.main import app
from meuboleto.models.bill import AuditLog, Base, Bill


class BillsApiTests(unittest.TestCase):
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

        self.current_user = CurrentUser(id=str(uuid.uuid4()), email="dono@example.com")

        def override_get_current_user():
            return self.current_user

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_current_user] = override_get_current_user
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def _create(self, **overrides):
        payload = {
            "beneficiary": "Companhia de Luz",
            "amount": 120.4,
            "due_date": (date.today() + timedelta(days=2)).isoformat(),
            "category": "Energia",
        }
        payload.update(overrides)
        resp = self.client.post("/api/v1/bills", json=payload)
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    def test_create_bill_is_pending_and_audited(self):
        body = self._create(barcode="8364.0000 0012")
        self.assertEqual(body["status"], "pending")
        self.assertIsNone(body["paid_at"])
        self.assertEqual(body["barcode"], "836400000012")
        self.assertEqual(body["days_until_due"], 2)
        self.assertEqual(body["due_state"], "due_soon")

        db = self.SessionLocal()
        try:
            log = db.query(AuditLog).filter(AuditLog.action == "BILL_CREATED").one()
            self.assertEqual(str(log.entity_id), body["id"])
            # barcode is a PII field and is redacted in the audit trail
            self.assertEqual(log.new_value["barcode"], "[REDACTED]")
        finally:
            db.close()

    def test_create_rejects_missing_fields(self):
        resp = self.client.post("/api/v1/bills", json={"beneficiary": "X", "amount": 10})
        self.assertEqual(resp.status_code, 422)
        resp = self.client.post(
            "/api/v1/bills",
            json={"beneficiary": "   ", "amount": 10, "due_date": "2024-07-01"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "validation_error")

    def test_list_splits_and_sorts(self):
        later = self._create(beneficiary="Aluguel", due_date=(date.today() + timedelta(days=20)).isoformat())
        sooner = self._create(beneficiary="Agua", due_date=(date.today() + timedelta(days=1)).isoformat())
        paid = self._create(beneficiary="Gas")
        self.client.post(f"/api/v1/bills/{paid['id']}/mark-paid", json={"payment_method": "PIX"})

        resp = self.client.get("/api/v1/bills")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual([b["id"] for b in body["pending"]], [sooner["id"], later["id"]])
        self.assertEqual([b["id"] for b in body["paid"]], [paid["id"]])

    def test_mark_paid_requires_method(self):
        bill = self._create()
        resp = self.client.post(f"/api/v1/bills/{bill['id']}/mark-paid", json={})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["code"], "validation_error")

        resp = self.client.get(f"/api/v1/bills/{bill['id']}")
        self.assertEqual(resp.json()["status"], "pending")

    def test_mark_paid_then_pending(self):
        bill = self._create()
        with patch("meuboleto.api.v1.bills.notify_payment") as notify:
            resp = self.client.post(
                f"/api/v1/bills/{bill['id']}/mark-paid",
                json={"payment_method": "BANK_TRANSFER"},
            )
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertEqual(body["status"], "paid")
        self.assertEqual(body["payment_method"], "BANK_TRANSFER")
        self.assertEqual(body["paid_at"], date.today().isoformat())
        notify.assert_called_once()

        resp = self.client.post(f"/api/v1/bills/{bill['id']}/mark-pending")
        body = resp.json()
        self.assertEqual(body["status"], "pending")
        self.assertIsNone(body["paid_at"])
        self.assertIsNone(body["payment_method"])

    def test_update_fields(self):
        bill = self._create()
        resp = self.client.patch(f"/api/v1/bills/{bill['id']}", json={"amount": 99.9, "category": "Luz"})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()["amount"], 99.9)
        self.assertEqual(resp.json()["category"], "Luz")

    def test_delete_requires_confirmation(self):
        bill = self._create()
        resp = self.client.delete(f"/api/v1/bills/{bill['id']}")
        self.assertEqual(resp.status_code, 400)

        resp = self.client.delete(f"/api/v1/bills/{bill['id']}?confirm=true")
        self.assertEqual(resp.status_code, 204)
        resp = self.client.get(f"/api/v1/bills/{bill['id']}")
        self.assertEqual(resp.status_code, 404)

    def test_other_users_bills_are_invisible(self):
        bill = self._create()
        self.current_user = CurrentUser(id=str(uuid.uuid4()))

        self.assertEqual(self.client.get("/api/v1/bills").json(), {"pending": [], "paid": []})
        self.assertEqual(self.client.get(f"/api/v1/bills/{bill['id']}").status_code, 404)
        resp = self.client.post(f"/api/v1/bills/{bill['id']}/mark-paid", json={"payment_method": "PIX"})
        self.assertEqual(resp.status_code, 404)

    def test_stats_and_categories(self):
        self._create(beneficiary="Luz", amount=100, category="Energia")
        self._create(beneficiary="Agua", amount=50, category="Água")
        paid = self._create(beneficiary="Gas", amount=30, category="Energia")
        self.client.post(f"/api/v1/bills/{paid['id']}/mark-paid", json={"payment_method": "CARD"})

        stats = self.client.get("/api/v1/bills/stats").json()
        self.assertEqual(stats["total_pending"], 150.0)
        self.assertEqual(stats["total_paid_overall"], 30.0)
        self.assertEqual(stats["total_paid_this_month"], 30.0)
        self.assertEqual(stats["upcoming_count"], 2)
        energia = [c for c in stats["category_breakdown"] if c["category"] == "Energia"][0]
        self.assertEqual(energia["count"], 2)

        categories = self.client.get("/api/v1/bills/categories").json()["categories"]
        self.assertEqual(categories, ["Energia", "Água"])

    def test_filter_by_month(self):
        self._create(beneficiary="Julho", due_date="2024-07-10")
        self._create(beneficiary="Agosto", due_date="2024-08-10")
        body = self.client.get("/api/v1/bills", params={"month": "2024-07"}).json()
        self.assertEqual([b["beneficiary"] for b in body["pending"]], ["Julho"])
        self.assertEqual(self.client.get("/api/v1/bills", params={"month": "julho"}).status_code, 400)

    def test_security_headers_present(self):
        resp = self.client.get("/health")
        self.assertEqual(resp.json(), {"status": "ok"})
        self.assertEqual(resp.headers["X-Content-Type-Options"], "nosniff")

    def test_bill_rows_are_owner_scoped_in_storage(self):
        bill = self._create()
        db = self.SessionLocal()
        try:
            row = db.query(Bill).one()
            self.assertEqual(str(row.id), bill["id"])
            self.assertEqual(str(row.user_id), self.current_user.id)
        finally:
            db.close()

    def test_reminder_preview_and_send(self):
        self._create(beneficiary="Luz", due_date=(date.today() + timedelta(days=1)).isoformat())
        self._create(beneficiary="Agua", due_date=(date.today() + timedelta(days=4)).isoformat())

        body = self.client.get("/api/v1/reminders").json()
        self.assertEqual([r["beneficiary"] for r in body["reminders"]], ["Luz"])
        self.assertIn("amanhã", body["reminders"][0]["message"])

        resp = self.client.post("/api/v1/reminders/send")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"reminders": 1, "sent": 0, "failed": 0, "skipped_channels": []})
