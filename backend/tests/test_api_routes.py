"""HTTP-level checks for the analysis, merge and approval routes."""

from __future__ import annotations

import unittest
from collections.abc import Iterator

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from attribute_insight.config import get_settings
from attribute_insight.db.dependencies import get_db
from attribute_insight.main import app
from catalog_factories import (
    add_attribute,
    add_entity,
    add_entity_type,
    add_set,
    make_engine,
    make_session_factory,
    make_settings,
    reset_tables,
    set_value,
)


class ApiRouteTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = make_engine()
        cls.SessionLocal = make_session_factory(cls.engine)
        cls.settings = make_settings(approval_auto_approve_threshold=5)

        def override_get_db() -> Iterator[Session]:
            db = cls.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_settings] = lambda: cls.settings
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls) -> None:
        app.dependency_overrides.clear()
        cls.engine.dispose()

    def setUp(self) -> None:
        with self.SessionLocal() as db:
            reset_tables(db)
            entity_type = add_entity_type(db)
            breite = add_attribute(db, entity_type, "breite", label="Breite")
            add_attribute(db, entity_type, "breite_mm", label="Breite (mm)")
            attribute_set = add_set(db, entity_type, "Default", [breite])
            for index, value in enumerate(("600 mm", "60cm", "")):
                entity = add_entity(db, entity_type, attribute_set, f"KT-{index}")
                set_value(db, entity, breite, value)
            db.commit()
            self.breite_id = breite.id

    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")

    def test_fill_rates_are_wrapped_in_envelope(self) -> None:
        response = self.client.get("/analysis/fill-rates")
        self.assertEqual(response.status_code, 200)
        rates = {item["code"]: item for item in response.json()["data"]}
        self.assertEqual(rates["breite"]["rate"], 66.67)
        self.assertEqual(rates["breite_mm"]["status"], "critical")

    def test_unknown_attribute_routes_return_404(self) -> None:
        self.assertEqual(self.client.get("/analysis/duplicates/similar/999999").status_code, 404)
        response = self.client.post(
            "/merges/preview",
            json={"source_attribute_ids": [self.breite_id], "target_attribute_id": 999999},
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Target attribute not found")

    def test_proposal_lifecycle_over_http(self) -> None:
        created = self.client.post(
            "/approvals",
            json={"payload": {"type": "delete", "attribute_ids": [self.breite_id]}, "reason": "unused"},
        )
        self.assertEqual(created.status_code, 200)
        proposal_id = created.json()["data"]["id"]
        self.assertEqual(created.json()["data"]["status"], "pending")

        self.assertEqual(self.client.post(f"/approvals/{proposal_id}/execute").status_code, 409)
        approved = self.client.post(f"/approvals/{proposal_id}/approve", json={"actor_id": 1, "comment": "ok"})
        self.assertEqual(approved.json()["data"]["status"], "approved")
        self.assertEqual(
            self.client.post(f"/approvals/{proposal_id}/reject", json={"actor_id": 1}).status_code,
            409,
        )

        executed = self.client.post(f"/approvals/{proposal_id}/execute")
        self.assertEqual(executed.status_code, 200)
        self.assertTrue(executed.json()["data"]["success"])
        history = self.client.get(f"/approvals/{proposal_id}/history").json()["data"]
        self.assertEqual([entry["action"] for entry in history], ["created", "approved", "executed"])

        self.assertEqual(self.client.delete(f"/approvals/{proposal_id}").status_code, 200)
        self.assertEqual(self.client.get(f"/approvals/{proposal_id}").status_code, 404)


if __name__ == "__main__":
    unittest.main()
