from unittest.mock import patch

from fastapi.testclient import TestClient

from conftest import fake_client
from connectors import apollo, crm_store, nyc_opendata, pdl
from pipeline.models import Contact, PdlPerson
import app as app_module


class TestApi:

    def setup_method(self):
        self.client = TestClient(app_module.app)

    def _patches(self, store):
        offline_apollo = fake_client("enrich_person", None, enabled=False)
        return (
            patch.object(crm_store, "store", store),
            patch.object(pdl, "pdl_client", fake_client("enrich_person", PdlPerson(likelihood=7, job_title="CEO"))),
            patch.object(apollo, "apollo_client", offline_apollo),
            patch.object(nyc_opendata, "pluto_client", fake_client("find_properties_by_owner", [])),
        )

    def test_health(self):
        response = self.client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["services"]["workflow"] == "ready"

    def test_enrich_missing_contact(self, memory_store):
        with patch.object(crm_store, "store", memory_store):
            response = self.client.post("/contacts/nope/enrich")

        assert response.status_code == 404
        assert response.json()["message"] == "Contact not found"

    def test_enrich_and_fetch_profile(self, memory_store):
        memory_store.save_contact(Contact(id="c1", first_name="John", last_name="Doe", email="john@acme.com"))
        p_store, p_pdl, p_apollo, p_pluto = self._patches(memory_store)

        with p_store, p_pdl, p_apollo, p_pluto:
            response = self.client.post("/contacts/c1/enrich")
            profile = self.client.get("/contacts/c1/profile")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        # Identity 15 + Email Available 7 + Decision Maker 10
        assert body["score"] == 32
        assert body["grade"] == "D"
        assert "processing_time" in body

        assert profile.status_code == 200
        assert profile.json()["job_title"] == "CEO"
        assert profile.json()["confidence_level"] == "medium"

    def test_missing_profile(self, memory_store):
        with patch.object(crm_store, "store", memory_store):
            response = self.client.get("/contacts/c1/profile")

        assert response.status_code == 404
