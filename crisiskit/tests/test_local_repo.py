import json
import threading
import time
import unittest

from crisiskit.errors import NotFoundError
from crisiskit.kv import InMemoryKeyValueStore
from crisiskit.local_repo import STORAGE_KEY, LocalRepo
from crisiskit.models import NewResponse, Region, UrgencyClassification


class SlowStore(InMemoryKeyValueStore):
    """Widens the gap between reading and writing the blob."""

    def get(self, key):
        value = super().get(key)
        time.sleep(0.05)
        return value


def make_response(incident_id: str, name: str = "Ann") -> NewResponse:
    return NewResponse(
        incident_id=incident_id,
        name=name,
        contact="555-0100",
        location="Block A, 3/F",
        needs="Drinking water",
    )


class LocalRepoTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryKeyValueStore()
        self.repo = LocalRepo(self.store)

    def test_create_incident_assigns_id_and_timestamp(self):
        first = self.repo.create_incident("Fire", "Building A")
        second = self.repo.create_incident("Flood", "River bank")
        self.assertTrue(first.id)
        self.assertNotEqual(first.id, second.id)
        self.assertGreater(second.created_at, first.created_at)

    def test_get_incidents_newest_first(self):
        created = [self.repo.create_incident(f"Incident {i}", "d") for i in range(5)]
        listed = self.repo.get_incidents()
        self.assertEqual([i.id for i in listed], [i.id for i in reversed(created)])
        timestamps = [i.created_at for i in listed]
        self.assertEqual(timestamps, sorted(timestamps, reverse=True))

    def test_get_incident_by_id(self):
        regions = [Region("Kowloon", ["Mong Kok", "Sham Shui Po"])]
        incident = self.repo.create_incident("Fire", "d", regions=regions)
        fetched = self.repo.get_incident_by_id(incident.id)
        self.assertEqual(fetched, incident)
        self.assertIsNone(self.repo.get_incident_by_id("missing"))

    def test_responses_filtered_and_newest_first(self):
        incident = self.repo.create_incident("Fire", "d")
        other = self.repo.create_incident("Flood", "d")
        first = self.repo.submit_response(make_response(incident.id, "Ann"))
        self.repo.submit_response(make_response(other.id, "Bob"))
        second = self.repo.submit_response(make_response(incident.id, "Cat"))

        responses = self.repo.get_responses(incident.id)
        self.assertEqual([r.id for r in responses], [second.id, first.id])
        self.assertEqual(self.repo.get_responses("missing"), [])

    def test_submit_response_does_not_check_incident(self):
        record = self.repo.submit_response(make_response("no-such-incident"))
        self.assertEqual(self.repo.get_responses("no-such-incident"), [record])

    def test_update_response_changes_only_that_field(self):
        incident = self.repo.create_incident("Fire", "d")
        record = self.repo.submit_response(make_response(incident.id))
        record.status = "resolved"
        self.repo.update_response(record)

        (stored,) = self.repo.get_responses(incident.id)
        self.assertEqual(stored.status, "resolved")
        self.assertEqual(stored.name, record.name)
        self.assertEqual(stored.needs, record.needs)
        self.assertEqual(stored.submitted_at, record.submitted_at)

    def test_update_response_keeps_classification(self):
        incident = self.repo.create_incident("Fire", "d")
        new = make_response(incident.id)
        new.ai_classification = UrgencyClassification("MODERATE", "elderly resident")
        record = self.repo.submit_response(new)
        record.assigned_to = "Team B"
        self.repo.update_response(record)

        (stored,) = self.repo.get_responses(incident.id)
        self.assertEqual(stored.assigned_to, "Team B")
        self.assertEqual(stored.ai_classification.urgency, "MODERATE")

    def test_update_unknown_response_raises_not_found(self):
        incident = self.repo.create_incident("Fire", "d")
        record = self.repo.submit_response(make_response(incident.id))
        record.id = "never-issued"
        with self.assertRaises(NotFoundError):
            self.repo.update_response(record)

    def test_state_is_a_single_json_blob(self):
        incident = self.repo.create_incident("Fire", "d")
        self.repo.submit_response(make_response(incident.id))
        blob = json.loads(self.store.get(STORAGE_KEY))
        self.assertEqual(set(blob), {"incidents", "responses"})
        self.assertEqual(len(blob["incidents"]), 1)
        self.assertEqual(len(blob["responses"]), 1)

    def test_repo_reads_existing_blob(self):
        incident = self.repo.create_incident("Fire", "d")
        reopened = LocalRepo(self.store)
        self.assertEqual(reopened.get_incidents(), [incident])


class LocalRepoConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.repo = LocalRepo(SlowStore())

    def _run_threads(self, target, count=8):
        threads = [threading.Thread(target=target, args=(i,)) for i in range(count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

    def test_concurrent_submissions_are_all_kept(self):
        self._run_threads(
            lambda i: self.repo.submit_response(make_response("inc-1", f"Person {i}"))
        )
        names = {r.name for r in self.repo.get_responses("inc-1")}
        self.assertEqual(names, {f"Person {i}" for i in range(8)})

    def test_concurrent_incident_creation_is_all_kept(self):
        self._run_threads(lambda i: self.repo.create_incident(f"Incident {i}", "d"))
        self.assertEqual(len(self.repo.get_incidents()), 8)

    def test_update_during_submissions_is_not_lost(self):
        record = self.repo.submit_response(make_response("inc-1", "Ann"))
        record.status = "resolved"

        def work(i):
            if i == 0:
                self.repo.update_response(record)
            else:
                self.repo.submit_response(make_response("inc-1", f"Person {i}"))

        self._run_threads(work, count=4)
        responses = self.repo.get_responses("inc-1")
        self.assertEqual(len(responses), 4)
        (updated,) = [r for r in responses if r.id == record.id]
        self.assertEqual(updated.status, "resolved")


if __name__ == "__main__":
    unittest.main()
