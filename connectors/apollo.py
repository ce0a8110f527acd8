import difflib
import httpx
import os
import re
from typing import Dict, Any, List, Optional
from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from connectors.errors import ApolloError, ApolloRateLimited
from pipeline.models import ApolloOrg, ApolloPerson

APOLLO_BASE = "https://api.apollo.io/api/v1"
NYC_LOCATION = "New York, New York, United States"
ORG_SIMILARITY_THRESHOLD = 0.75

ENTITY_SUFFIXES = re.compile(
    r"\b(LLC|L\.L\.C|INC|INCORPORATED|CORP|CORPORATION|LTD|LIMITED|L\.P\.|LP|TRUST|COMPANY|CO|ASSOC|"
    r"ASSOCIATES|HOLDINGS|PROPERTIES|REALTY|GROUP|ENTERPRISES|MGMT|MANAGEMENT|PARTNERS|PARTNERSHIP|"
    r"ESTATE|FUND|CAPITAL|DEVELOPMENT|DEV|INVESTMENTS|VENTURES)\b\.?",
    re.IGNORECASE,
)
LEADING_ARTICLE = re.compile(r"^(THE|A|AN)\s+", re.IGNORECASE)

def normalize_company_name(raw: Optional[str]) -> str:
    """Upper-case, strip entity suffixes and leading articles, collapse separators."""
    if not raw:
        return ""
    name = raw.upper().strip()
    name = ENTITY_SUFFIXES.sub("", name).strip()
    name = LEADING_ARTICLE.sub("", name).strip()
    name = re.sub(r"[,.\-_/\\]+", " ", name)
    name = re.sub(r"\s+", " ", name).strip()
    return re.sub(r"'S\b", "", name)

def is_org_relevant(query_name: str, result_name: str) -> bool:
    """Decide whether an org search hit is the company we asked about."""
    query = normalize_company_name(query_name)
    result = normalize_company_name(result_name)
    if not query or not result:
        return False

    if difflib.SequenceMatcher(None, query, result).ratio() >= ORG_SIMILARITY_THRESHOLD:
        return True

    query_words = {w for w in query.split() if len(w) > 2}
    result_words = {w for w in result.split() if len(w) > 2}
    if not query_words:
        return False
    if len(query_words & result_words) / len(query_words) >= 0.5:
        return True

    return query in result or result in query

def _sanitized(phone: Optional[Dict[str, Any]]) -> Optional[str]:
    return (phone or {}).get("sanitized_number") or None

def parse_person(person: Dict[str, Any], first_name: str, last_name: str) -> ApolloPerson:
    org = person.get("organization") or {}
    phone_numbers = person.get("phone_numbers") or []
    phones = [p.get("sanitized_number") for p in phone_numbers if p.get("sanitized_number")]

    return ApolloPerson(
        first_name=person.get("first_name") or first_name,
        last_name=person.get("last_name") or last_name,
        title=person.get("title") or None,
        email=person.get("email") or None,
        personal_emails=person.get("personal_emails") or [],
        phone=(phones[0] if phones else None) or _sanitized(org.get("primary_phone")),
        phones=phones,
        linkedin_url=person.get("linkedin_url") or None,
        photo_url=person.get("photo_url") or None,
        company=org.get("name") or None,
        company_website=org.get("website_url") or None,
        company_industry=org.get("industry") or None,
        company_size=org.get("estimated_num_employees") or None,
        company_revenue=org.get("annual_revenue_printed") or None,
        company_phone=_sanitized(org.get("primary_phone")),
        company_address=org.get("raw_address") or None,
        city=person.get("city") or None,
        state=person.get("state") or None,
        country=person.get("country") or None,
        seniority=person.get("seniority") or None,
        departments=person.get("departments") or [],
    )

def parse_org(org: Dict[str, Any], query_name: str) -> ApolloOrg:
    return ApolloOrg(
        name=org.get("name") or query_name,
        website=org.get("website_url") or None,
        industry=org.get("industry") or None,
        sub_industry=org.get("sub_industry") or None,
        employee_count=org.get("estimated_num_employees") or None,
        revenue=org.get("annual_revenue_printed") or None,
        phone=_sanitized(org.get("primary_phone")),
        address=org.get("raw_address") or None,
        city=org.get("city") or None,
        state=org.get("state") or None,
        linkedin_url=org.get("linkedin_url") or None,
        logo_url=org.get("logo_url") or None,
        founded_year=org.get("founded_year") or None,
        short_description=org.get("short_description") or None,
        seo_description=org.get("seo_description") or None,
    )

def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0
    logger.warning(f"[APOLLO] {exc}, retrying in {delay:.0f}s (attempt {retry_state.attempt_number})")

class ApolloClient:
    """Person/organization graph lookups against Apollo.io."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_wait=None,
        max_attempts: int = 3,
    ):
        self.api_key = api_key if api_key is not None else os.getenv("APOLLO_API_KEY")
        self.base_url = APOLLO_BASE
        self.timeout = float(os.getenv("HTTP_TIMEOUT", "20"))
        self.default_city = os.getenv("APOLLO_DEFAULT_CITY", "New York")
        self.transport = transport
        # 2s then 4s between attempts
        self.retry_wait = retry_wait or wait_exponential(multiplier=2, max=8)
        self.max_attempts = max_attempts

        if not self.api_key:
            logger.warning("No Apollo API key provided, graph lookups disabled")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Api-Key": self.api_key or "",
        }

    async def _post(self, path: str, body: Dict[str, Any]) -> httpx.Response:
        """POST with retries on 429 and network errors."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=self.retry_wait,
                retry=retry_if_exception_type((ApolloRateLimited, httpx.TransportError)),
                before_sleep=_log_retry,
                reraise=True,
            ):
                with attempt:
                    async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                        response = await client.post(
                            f"{self.base_url}{path}",
                            headers=self._get_headers(),
                            json=body
                        )
                    if response.status_code == 429:
                        raise ApolloRateLimited("Rate limited")
                    return response
        except httpx.HTTPError as e:
            raise ApolloError(f"Apollo request to {path} failed: {e}") from e
        raise ApolloError("Max retries exceeded")

    async def enrich_person(
        self,
        name: str,
        city: Optional[str] = None,
        company: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[ApolloPerson]:
        """People enrichment (people/match). Needs a first and last name."""
        if not self.api_key:
            return None

        first_name, _, last_name = name.strip().partition(" ")
        last_name = last_name.strip()
        if not first_name or not last_name:
            logger.info(f"[APOLLO] Skipping enrichment, need first + last name: {name}")
            return None

        body: Dict[str, Any] = {
            "first_name": first_name,
            "last_name": last_name,
            "city": city or self.default_city,
            "state": "New York",
            "country": "United States",
            "reveal_personal_emails": True,
            "reveal_phone_number": True,
        }
        if company:
            body["organization_name"] = company
        if email:
            body["email"] = email

        response = await self._post("/people/match", body)
        if not response.is_success:
            logger.error(f"[APOLLO] People enrichment failed: {response.status_code}")
            return None

        person = response.json().get("person")
        if not person:
            logger.info(f"[APOLLO] No person match for: {name}")
            return None

        result = parse_person(person, first_name, last_name)
        logger.info(
            f"[APOLLO] Enriched: {name} | Phone: {'found' if result.phone else 'none'} | "
            f"Email: {'found' if result.email else 'none'} | Title: {result.title or 'none'}"
        )
        return result

    async def enrich_organization(self, company_name: str) -> Optional[ApolloOrg]:
        """Organization search, keeping only a hit relevant to ``company_name``."""
        if not self.api_key:
            return None
        if not company_name or len(company_name.strip()) < 3:
            return None

        response = await self._post("/mixed_companies/search", {
            "organization_name": company_name,
            "organization_locations": [NYC_LOCATION],
            "per_page": 3,
        })
        if not response.is_success:
            logger.error(f"[APOLLO] Org search failed: {response.status_code}")
            return None

        data = response.json()
        orgs: List[Dict[str, Any]] = [*(data.get("organizations") or []), *(data.get("accounts") or [])]
        if not orgs:
            logger.info(f"[APOLLO] No org match for: {company_name}")
            return None

        match = next((o for o in orgs if is_org_relevant(company_name, o.get("name") or "")), None)
        if match is None:
            logger.info(
                f"[APOLLO] Org results not relevant to '{company_name}'. "
                f"Top result: '{orgs[0].get('name')}'. Discarding."
            )
            return None

        result = parse_org(match, company_name)
        logger.info(
            f"[APOLLO] Org enriched: {result.name} | Industry: {result.industry or 'none'} | "
            f"Employees: {result.employee_count or '?'}"
        )
        return result

# Global Apollo client instance
apollo_client = ApolloClient()
