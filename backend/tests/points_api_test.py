import json
import sys
import unittest
from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


# Ensure `backend/` is on sys.path so `import app...` works
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
sys.path.insert(0, str(BACKEND_DIR))

from app.db.db import Base  # noqa: E402
from app.dependencies.db import get_db  # noqa: E402
from app.dependencies.services import get_catalog_store  # noqa: E402
from app.main import app  # noqa: E402
from app.services.catalog_service import CatalogService  # noqa: E402
from points_engine.source import CatalogStore  # noqa: E402

SAMPLE_CATALOG = REPO_ROOT / "data" / "conversions.json"


class PointsApiTests(unittest.TestCase):
    def setUp(self):
        engine = create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=engine)
        self.Session = sessionmaker(bind=engine)

        with open(SAMPLE_CATALOG, "r", encoding="utf-8") as f:
            document = json.load(f)
        with self.Session() as db:
            CatalogService(db).import_document(document)

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.store = CatalogStore()
        app.dependency_overrides[get_catalog_store] = lambda: self.store
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_health(self):
        resp = self.client.get("/api/v1/health")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["status"], "healthy")
        self.assertEqual(data["programs"], 10)
        self.assertEqual(data["conversions"], 18)

    def test_conversions_document(self):
        resp = self.client.get("/api/v1/conversions")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(len(data["conversions"]), 18)
        self.assertEqual(data["conversions"][0]["from"], "chase_ur")
        self.assertIn("hyatt", data["programs"])

    def test_routes_direct_and_two_step(self):
        resp = self.client.get("/api/v1/routes", params={"from": "amex_mr", "to": "flying_blue"})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["direct"]["effective_rate"], 1.0)
        self.assertEqual([r["via"] for r in data["routes"]], ["marriott", "hilton"])
        self.assertAlmostEqual(data["routes"][1]["total_rate"], 0.2)

    def test_routes_unknown_program_returns_404(self):
        resp = self.client.get("/api/v1/routes", params={"from": "nope", "to": "united"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"]["code"], "PROGRAM_NOT_FOUND")

    def test_convert_multi_step_only(self):
        resp = self.client.get(
            "/api/v1/convert",
            params={"from": "amex_mr", "to": "united", "amount": 10000},
        )
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["status"], "multi_step_only")
        self.assertIsNone(data["direct"])
        self.assertEqual(data["best"]["converted_amount"], 3300)
        self.assertEqual(data["best"]["step_amounts"], [10000, 3300])

    def test_convert_direct_bonus(self):
        resp = self.client.get(
            "/api/v1/convert",
            params={"from": "amex_mr", "to": "british_airways", "amount": 10000, "multi_step": "false"},
        )
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["status"], "direct")
        self.assertEqual(data["direct"]["converted_amount"], 13000)
        self.assertTrue(data["direct"]["has_bonus"])
        self.assertEqual(data["routes"], [])

    def test_convert_invalid_amount_returns_400(self):
        resp = self.client.get(
            "/api/v1/convert",
            params={"from": "amex_mr", "to": "united", "amount": 0},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["code"], "VALIDATION_ERROR")

    def test_convert_non_finite_amount_returns_400(self):
        for amount in ("inf", "nan"):
            resp = self.client.get(
                "/api/v1/convert",
                params={"from": "amex_mr", "to": "united", "amount": amount},
            )
            self.assertEqual(resp.status_code, 400)
            body = resp.json()
            self.assertEqual(body["error"]["code"], "VALIDATION_ERROR")
            self.assertEqual(body["error"]["details"]["amount"], amount)

    def test_convert_missing_param_returns_400(self):
        resp = self.client.get("/api/v1/convert", params={"from": "amex_mr", "to": "united"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["code"], "VALIDATION_ERROR")

    def test_reachable_and_sources(self):
        resp = self.client.get("/api/v1/programs/hilton/reachable")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["programs"], ["flying_blue"])

        resp = self.client.get("/api/v1/programs/united/sources")
        self.assertEqual(resp.json()["programs"], ["amex_mr", "chase_ur", "marriott"])

    def test_transfers_to(self):
        resp = self.client.get("/api/v1/transfers/to/united")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual([c["from_id"] for c in data["direct"]], ["chase_ur", "marriott"])
        self.assertEqual([r["from_id"] for r in data["two_step"]], ["chase_ur", "amex_mr"])

    def test_transfers_from_unknown_program(self):
        resp = self.client.get("/api/v1/transfers/from/ghost")
        self.assertEqual(resp.status_code, 404)

    def test_add_program_and_conversion_changes_routing(self):
        resp = self.client.post(
            "/api/v1/programs",
            json={"id": "rail", "name": "Rail Rewards", "short_name": "Rail", "type": "other"},
        )
        self.assertEqual(resp.status_code, 201)

        resp = self.client.post(
            "/api/v1/conversions",
            json={"from_id": "hyatt", "to_id": "rail", "rate": 0.5},
        )
        self.assertEqual(resp.status_code, 201)

        resp = self.client.get("/api/v1/programs/chase_ur/reachable")
        self.assertIn("rail", resp.json()["programs"])

    def test_routing_snapshot_reused_until_catalog_write(self):
        self.client.get("/api/v1/programs/hyatt/sources")
        self.client.get("/api/v1/programs/hyatt/reachable")
        self.assertEqual(self.store.generation, 1)
        snapshot = self.store.catalog

        resp = self.client.post(
            "/api/v1/programs",
            json={"id": "rail", "name": "Rail Rewards", "short_name": "Rail", "type": "other"},
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(self.store.generation, 2)
        self.assertIsNot(self.store.catalog, snapshot)
        self.assertTrue(self.store.catalog.has_program("rail"))

    def test_rejected_write_keeps_snapshot(self):
        self.client.get("/api/v1/programs/hyatt/sources")

        resp = self.client.post(
            "/api/v1/conversions",
            json={"from_id": "chase_ur", "to_id": "hyatt", "rate": 2.0},
        )
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(self.store.generation, 1)

    def test_add_duplicate_conversion_returns_409(self):
        resp = self.client.post(
            "/api/v1/conversions",
            json={"from_id": "chase_ur", "to_id": "hyatt", "rate": 2.0},
        )
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["error"]["code"], "DUPLICATE_CONVERSION")

    def test_add_conversion_bonus_without_rate_returns_400(self):
        resp = self.client.post(
            "/api/v1/conversions",
            json={"from_id": "hyatt", "to_id": "united", "rate": 1.0, "bonus": True},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["code"], "VALIDATION_ERROR")

    def test_integrity_report(self):
        resp = self.client.get("/api/v1/catalog/integrity")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["critical_issues"], 0)
        self.assertIn("integrity", data)
        self.assertEqual(data["integrity"]["stats"]["total_conversions"], 18)


if __name__ == "__main__":
    unittest.main()
