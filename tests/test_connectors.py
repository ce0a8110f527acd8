import asyncio
import json

import httpx
import pytest
from tenacity import wait_none

from connectors.apollo import ApolloClient, is_org_relevant, normalize_company_name
from connectors.errors import ApolloError, OpenDataError, PdlError
from connectors.nyc_opendata import PlutoClient, build_owner_query
from connectors.pdl import (
    PeopleDataLabsClient,
    build_name_params,
    build_primary_params,
    merge_identity,
    parse_person,
)
from pipeline.models import Contact, PdlPerson

PDL_BODY = {
    "likelihood": 8,
    "data": {
        "full_name": "john doe",
        "mobile_phone": "+12125550101",
        "phone_numbers": ["+12125550101", "+17185550199"],
        "work_email": "john@acme.com",
        "personal_emails": ["jd@gmail.com"],
        "job_title": "Principal",
        "job_company_name": "Acme Realty",
        "industry": "real estate",
        "linkedin_url": "linkedin.com/in/johndoe",
        "street_address": "1 Main St",
        "locality": "new york",
        "region": "new york",
        "postal_code": None,
        "birth_year": 1970,
    },
}


class TestPdlParams:

    def test_primary_uses_direct_identifiers(self, contact):
        params = build_primary_params(contact)

        assert params == {"email": "john@acme.com", "phone": "2125550101", "min_likelihood": "3"}

    def test_name_only_contact_goes_straight_to_relaxed_name_query(self):
        contact = Contact(id="c2", first_name="Jane", last_name="Roe", city="Brooklyn", zip="11201")

        params = build_primary_params(contact)

        assert params == {
            "first_name": "Jane",
            "last_name": "Roe",
            "locality": "Brooklyn",
            "postal_code": "11201",
            "min_likelihood": "2",
        }
        assert "email" not in params and "phone" not in params

    def test_name_params(self, contact):
        params = build_name_params(contact, 3)

        assert params["locality"] == "New York"
        assert params["region"] == "NY"
        assert params["min_likelihood"] == "3"
        assert "street_address" not in params


class TestPdlParsing:

    def test_parse_person(self):
        person = parse_person(PDL_BODY)

        assert person.likelihood == 8
        assert person.phones == ["+12125550101", "+12125550101", "+17185550199"]
        assert person.emails == ["john@acme.com", "jd@gmail.com"]
        assert person.address == "1 Main St, new york, new york"
        assert not person.is_thin()

    def test_thin_person(self):
        assert PdlPerson(likelihood=5, emails=["a@b.com"]).is_thin()


class TestMergeIdentity:

    def test_higher_likelihood_is_base_and_backfilled(self):
        low = PdlPerson(likelihood=3, job_title="Agent", phones=["2125550101"], twitter="tw")
        high = PdlPerson(likelihood=7, job_title="Broker", linkedin="li")

        merged = merge_identity(low, high)

        assert merged.likelihood == 7
        assert merged.job_title == "Broker"
        assert merged.linkedin == "li"
        assert merged.phones == ["2125550101"]
        assert merged.twitter == "tw"

    def test_order_does_not_matter(self):
        low = PdlPerson(likelihood=2, industry="real estate")
        high = PdlPerson(likelihood=9, job_company="Acme")

        assert merge_identity(low, high) == merge_identity(high, low)

    def test_tie_keeps_first(self):
        first = PdlPerson(likelihood=4, job_title="First")
        second = PdlPerson(likelihood=4, job_title="Second")

        assert merge_identity(first, second).job_title == "First"


class TestPdlClient:

    def test_match(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            seen["key"] = request.headers.get("X-Api-Key")
            return httpx.Response(200, json=PDL_BODY)

        client = PeopleDataLabsClient(api_key="pdl-key", transport=httpx.MockTransport(handler))
        person = asyncio.run(client.enrich_person({"email": "john@acme.com", "min_likelihood": "3"}))

        assert person.job_title == "Principal"
        assert seen["params"] == {"email": "john@acme.com", "min_likelihood": "3"}
        assert seen["key"] == "pdl-key"

    def test_no_match_is_none(self):
        client = PeopleDataLabsClient(api_key="k", transport=httpx.MockTransport(lambda r: httpx.Response(404)))

        assert asyncio.run(client.enrich_person({"email": "x@y.com"})) is None

    def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("boom")

        client = PeopleDataLabsClient(api_key="k", transport=httpx.MockTransport(handler))

        with pytest.raises(PdlError):
            asyncio.run(client.enrich_person({"email": "x@y.com"}))

    def test_disabled_without_key(self):
        assert not PeopleDataLabsClient(api_key="").enabled


class TestOrgRelevance:

    def test_normalize_company_name(self):
        assert normalize_company_name("The Acme Realty, LLC") == "ACME"

    def test_suffix_variants_match(self):
        assert is_org_relevant("Acme Realty LLC", "Acme Realty Group Inc.")

    def test_word_overlap(self):
        assert is_org_relevant("Greenpoint Harbor Partners", "Greenpoint Harbor Residential")

    def test_unrelated(self):
        assert not is_org_relevant("Acme Realty", "Zenith Biotech")


class TestApolloClient:

    def _client(self, handler, **kwargs):
        return ApolloClient(api_key="apollo-key", transport=httpx.MockTransport(handler), retry_wait=wait_none(), **kwargs)

    def test_enrich_person(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"person": {
                "first_name": "John",
                "last_name": "Doe",
                "title": "Owner",
                "email": "john@acme.com",
                "phone_numbers": [{"sanitized_number": "+12125550101"}],
                "organization": {"name": "Acme Realty", "industry": "real estate", "estimated_num_employees": 12},
            }})

        person = asyncio.run(self._client(handler).enrich_person("John Doe", None, "Acme Realty", "john@acme.com"))

        assert person.title == "Owner"
        assert person.phone == "+12125550101"
        assert person.company_size == 12
        assert seen["body"]["city"] == "New York"
        assert seen["body"]["organization_name"] == "Acme Realty"
        assert seen["body"]["email"] == "john@acme.com"

    def test_single_token_name_is_skipped(self):
        def handler(request):
            raise AssertionError("should not be called")

        assert asyncio.run(self._client(handler).enrich_person("Cher")) is None

    def test_retries_rate_limit(self):
        calls = []

        def handler(request):
            calls.append(1)
            if len(calls) < 3:
                return httpx.Response(429)
            return httpx.Response(200, json={"person": {"first_name": "John", "title": "VP"}})

        person = asyncio.run(self._client(handler).enrich_person("John Doe"))

        assert len(calls) == 3
        assert person.title == "VP"

    def test_gives_up_after_max_attempts(self):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(429)

        with pytest.raises(ApolloError):
            asyncio.run(self._client(handler).enrich_person("John Doe"))
        assert len(calls) == 3

    def test_org_discards_irrelevant_results(self):
        def handler(request):
            return httpx.Response(200, json={"organizations": [{"name": "Zenith Biotech"}], "accounts": []})

        assert asyncio.run(self._client(handler).enrich_organization("Acme Realty")) is None

    def test_org_picks_relevant_result(self):
        def handler(request):
            return httpx.Response(200, json={"organizations": [
                {"name": "Zenith Biotech"},
                {"name": "Acme Realty Group", "industry": "real estate", "primary_phone": {"sanitized_number": "+17185550000"}},
            ]})

        org = asyncio.run(self._client(handler).enrich_organization("Acme Realty LLC"))

        assert org.name == "Acme Realty Group"
        assert org.phone == "+17185550000"

    def test_short_company_name_is_skipped(self):
        def handler(request):
            raise AssertionError("should not be called")

        assert asyncio.run(self._client(handler).enrich_organization("AB")) is None


class TestPlutoClient:

    def test_owner_query(self):
        query = build_owner_query("Pat O'Brien")

        assert query["$where"] == "upper(ownername) LIKE '%PAT O''BRIEN%'"
        assert query["$limit"] == "10"
        assert query["$order"] == "unitsres DESC"
        assert "ownername" in query["$select"]

    def test_like_wildcards_are_not_passed_through(self):
        query = build_owner_query("Ann_Lee 100%")

        assert query["$where"] == "upper(ownername) LIKE '%ANN LEE 100%'"

    def test_wildcard_only_name_skips_query(self):
        def handler(request):
            raise AssertionError("should not be called")

        client = PlutoClient(app_token="", transport=httpx.MockTransport(handler))

        assert asyncio.run(client.find_properties_by_owner("%_%")) == []

    def test_maps_rows(self):
        seen = {}

        def handler(request):
            seen["where"] = request.url.params.get("$where")
            return httpx.Response(200, json=[
                {"address": "10 MAIN ST", "borough": "MN", "unitsres": "40", "assesstot": "1250000", "ownername": "JOHN DOE", "bbl": "1000010001"},
                {"address": "12 MAIN ST", "borough": "MN", "unitsres": None, "assesstot": "bad", "ownername": "JOHN DOE LLC", "bbl": "1000010002"},
            ])

        client = PlutoClient(app_token="", transport=httpx.MockTransport(handler))
        rows = asyncio.run(client.find_properties_by_owner("John Doe"))

        assert seen["where"] == "upper(ownername) LIKE '%JOHN DOE%'"
        assert [r.units for r in rows] == [40, 0]
        assert rows[0].value == 1250000.0
        assert rows[1].value == 0.0
        assert rows[0].bbl == "1000010001"

    def test_error_status_is_empty(self):
        client = PlutoClient(app_token="", transport=httpx.MockTransport(lambda r: httpx.Response(500)))

        assert asyncio.run(client.find_properties_by_owner("John Doe")) == []

    def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("down")

        client = PlutoClient(app_token="", transport=httpx.MockTransport(handler))

        with pytest.raises(OpenDataError):
            asyncio.run(client.find_properties_by_owner("John Doe"))

    def test_blank_name_skips_query(self):
        def handler(request):
            raise AssertionError("should not be called")

        client = PlutoClient(app_token="", transport=httpx.MockTransport(handler))

        assert asyncio.run(client.find_properties_by_owner("  ")) == []
