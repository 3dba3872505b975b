import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from crisiskit.app import create_app
from crisiskit.dependencies import get_incidents_repo, get_webhook_service
from crisiskit.errors import BackendUnavailableError
from crisiskit.kv import InMemoryKeyValueStore
from crisiskit.local_repo import LocalRepo
from crisiskit.models import Region, WebhookConfig
from crisiskit.webhook import GoogleSheetsWebhookService

SUBMISSION = {
    "name": "Ann",
    "contact": "555-0100",
    "location": "Block A, 3/F",
    "needs": "Insulin",
    "region": "Kowloon",
}


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.app = create_app()
        store = InMemoryKeyValueStore()
        self.repo = LocalRepo(store)
        self.session = MagicMock()
        self.webhook = GoogleSheetsWebhookService(store, session=self.session)
        self.app.dependency_overrides[get_incidents_repo] = lambda: self.repo
        self.app.dependency_overrides[get_webhook_service] = lambda: self.webhook
        self.client = TestClient(self.app)

    def _create_incident(self, **overrides) -> dict:
        body = {"title": "Tai Po Fire", "description": "Building A residents"}
        body.update(overrides)
        response = self.client.post("/api/incidents", json=body)
        self.assertEqual(response.status_code, 201)
        return response.json()

    def test_create_and_get_incident(self):
        incident = self._create_incident(
            regions=[{"name": "New Territories", "districts": "Sha Tin, Tai Po,,"}]
        )
        self.assertEqual(incident["regions"][0]["districts"], ["Sha Tin", "Tai Po"])

        fetched = self.client.get(f"/api/incidents/{incident['id']}")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json(), incident)

    def test_empty_regions_are_stored_as_absent(self):
        incident = self._create_incident(regions=[])
        self.assertIsNone(incident["regions"])

    def test_missing_title_is_rejected(self):
        response = self.client.post(
            "/api/incidents", json={"title": "  ", "description": "d"}
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(self.repo.get_incidents(), [])

    def test_blank_region_name_is_rejected(self):
        response = self.client.post(
            "/api/incidents",
            json={
                "title": "Fire",
                "description": "d",
                "regions": [{"name": "   ", "districts": "A, B"}],
            },
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(self.repo.get_incidents(), [])
        listed = self.client.get("/api/incidents")
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.json(), [])

    def test_region_name_is_stripped(self):
        incident = self._create_incident(regions=[{"name": "  Kowloon ", "districts": []}])
        self.assertEqual(incident["regions"][0]["name"], "Kowloon")

    def test_stored_blank_region_does_not_break_listing(self):
        self.repo.create_incident("Fire", "d", regions=[Region("", ["A"])])
        listed = self.client.get("/api/incidents")
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.json()[0]["regions"], [{"name": "", "districts": ["A"]}])

    def test_unknown_incident_is_404(self):
        self.assertEqual(self.client.get("/api/incidents/missing").status_code, 404)

    def test_list_incidents_newest_first(self):
        first = self._create_incident(title="First")
        second = self._create_incident(title="Second")
        listed = self.client.get("/api/incidents").json()
        self.assertEqual([i["id"] for i in listed], [second["id"], first["id"]])

    def test_submit_response_relays_to_webhook(self):
        incident = self._create_incident()
        self.webhook.save_config(
            incident["id"], WebhookConfig("https://script.google.com/x/exec", True)
        )
        response = self.client.post(
            f"/api/incidents/{incident['id']}/responses", json=SUBMISSION
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["incidentId"], incident["id"])
        self.session.post.assert_called_once()
        self.assertEqual(
            self.session.post.call_args.args[0], "https://script.google.com/x/exec"
        )

    def test_submit_response_without_webhook(self):
        incident = self._create_incident()
        response = self.client.post(
            f"/api/incidents/{incident['id']}/responses", json=SUBMISSION
        )
        self.assertEqual(response.status_code, 201)
        self.session.post.assert_not_called()

    def test_submit_response_requires_contact(self):
        incident = self._create_incident()
        body = dict(SUBMISSION, contact="")
        response = self.client.post(
            f"/api/incidents/{incident['id']}/responses", json=body
        )
        self.assertEqual(response.status_code, 422)

    def test_update_response(self):
        incident = self._create_incident()
        created = self.client.post(
            f"/api/incidents/{incident['id']}/responses", json=SUBMISSION
        ).json()
        created["status"] = "resolved"
        created["assignedTo"] = "Team B"

        response = self.client.put(f"/api/responses/{created['id']}", json=created)
        self.assertEqual(response.status_code, 204)

        (stored,) = self.client.get(f"/api/incidents/{incident['id']}/responses").json()
        self.assertEqual(stored["status"], "resolved")
        self.assertEqual(stored["assignedTo"], "Team B")
        self.assertEqual(stored["needs"], "Insulin")

    def test_update_unknown_response_is_404(self):
        incident = self._create_incident()
        created = self.client.post(
            f"/api/incidents/{incident['id']}/responses", json=SUBMISSION
        ).json()
        del created["id"]
        response = self.client.put("/api/responses/missing", json=created)
        self.assertEqual(response.status_code, 404)

    def test_update_response_without_body_id_uses_path(self):
        incident = self._create_incident()
        created = self.client.post(
            f"/api/incidents/{incident['id']}/responses", json=SUBMISSION
        ).json()
        response_id = created.pop("id")
        created["notes"] = "Delivered"

        response = self.client.put(f"/api/responses/{response_id}", json=created)
        self.assertEqual(response.status_code, 204)
        (stored,) = self.client.get(f"/api/incidents/{incident['id']}/responses").json()
        self.assertEqual(stored["id"], response_id)
        self.assertEqual(stored["notes"], "Delivered")

    def test_update_response_with_mismatched_body_id_is_400(self):
        incident = self._create_incident()
        first = self.client.post(
            f"/api/incidents/{incident['id']}/responses", json=SUBMISSION
        ).json()
        second = self.client.post(
            f"/api/incidents/{incident['id']}/responses", json=dict(SUBMISSION, name="Bob")
        ).json()
        first["status"] = "resolved"

        response = self.client.put(f"/api/responses/{second['id']}", json=first)
        self.assertEqual(response.status_code, 400)
        statuses = {
            r["id"]: r["status"]
            for r in self.client.get(f"/api/incidents/{incident['id']}/responses").json()
        }
        self.assertIsNone(statuses[first["id"]])
        self.assertIsNone(statuses[second["id"]])

    def test_export_csv(self):
        incident = self._create_incident()
        self.client.post(f"/api/incidents/{incident['id']}/responses", json=SUBMISSION)
        response = self.client.get(f"/api/incidents/{incident['id']}/responses/export")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/csv"))
        lines = response.text.strip().splitlines()
        self.assertTrue(lines[0].startswith("Timestamp,Status,Name"))
        self.assertIn("Insulin", lines[1])

    def test_webhook_config_lifecycle(self):
        path = "/api/incidents/i1/webhook"
        self.assertEqual(self.client.get(path).status_code, 404)

        enabled = self.client.put(path, json={"webhookUrl": " https://a.example/exec "})
        self.assertEqual(enabled.json(), {"webhookUrl": "https://a.example/exec", "enabled": True})

        disabled = self.client.delete(path)
        self.assertEqual(disabled.json(), {"webhookUrl": "", "enabled": False})
        self.assertEqual(self.client.get(path).json(), {"webhookUrl": "", "enabled": False})

    def test_enable_webhook_requires_url(self):
        response = self.client.put("/api/incidents/i1/webhook", json={"webhookUrl": "   "})
        self.assertEqual(response.status_code, 422)

    def test_webhook_test_endpoint(self):
        response = self.client.post("/api/webhook/test", json={"webhookUrl": "https://a.example/exec"})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])
        self.session.post.assert_called_once()

    def test_webhook_script_and_presets(self):
        script = self.client.get("/api/webhook/script")
        self.assertIn("function doPost(e)", script.text)
        presets = self.client.get("/api/region-presets").json()["presets"]
        self.assertEqual(presets["none"], [])
        self.assertEqual(presets["hongkong"][1]["name"], "Kowloon")

    def test_backend_failure_returns_503(self):
        failing = MagicMock()
        failing.get_incidents.side_effect = BackendUnavailableError("down")
        self.app.dependency_overrides[get_incidents_repo] = lambda: failing
        response = self.client.get("/api/incidents")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["detail"], "Storage backend unavailable")


if __name__ == "__main__":
    unittest.main()
