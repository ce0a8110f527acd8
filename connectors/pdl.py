import httpx
import os
from typing import Dict, Any, Optional
from loguru import logger

from connectors.errors import PdlError
from pipeline.models import Contact, PdlPerson

PDL_BASE = "https://api.peopledatalabs.com/v5"
DEFAULT_MIN_LIKELIHOOD = 3
RELAXED_MIN_LIKELIHOOD = 2

def _clean_phone(phone: str) -> str:
    return "".join(ch for ch in phone if ch.isdigit() or ch == "+")

def build_primary_params(contact: Contact) -> Dict[str, str]:
    """
    Build the first PDL query from the strongest identifier on the contact.

    Email/phone when present; a contact without either has nothing stronger
    than its name, so it goes straight to the relaxed name query.
    """
    if not contact.has_direct_identifier:
        return build_name_params(contact, RELAXED_MIN_LIKELIHOOD)

    params: Dict[str, str] = {}
    if contact.email:
        params["email"] = contact.email
    if contact.phone:
        params["phone"] = _clean_phone(contact.phone)
    params["min_likelihood"] = str(DEFAULT_MIN_LIKELIHOOD)
    return params

def build_name_params(contact: Contact, min_likelihood: int) -> Dict[str, str]:
    """Build a name + locality query (no direct identifiers)."""
    params: Dict[str, str] = {
        "first_name": contact.first_name,
        "last_name": contact.last_name,
    }
    if contact.city:
        params["locality"] = contact.city
    if contact.state:
        params["region"] = contact.state
    if contact.address:
        params["street_address"] = contact.address
    if contact.zip:
        params["postal_code"] = contact.zip
    params["min_likelihood"] = str(min_likelihood)
    return params

def parse_person(payload: Dict[str, Any]) -> PdlPerson:
    """Map a PDL person/enrich 200 body onto PdlPerson."""
    d = payload.get("data") or {}
    phone_list = d.get("phone_numbers") if isinstance(d.get("phone_numbers"), list) else []
    email_list = d.get("personal_emails") if isinstance(d.get("personal_emails"), list) else []
    address_parts = [d.get("street_address"), d.get("locality"), d.get("region"), d.get("postal_code")]

    return PdlPerson(
        likelihood=payload.get("likelihood"),
        full_name=d.get("full_name"),
        phones=[p for p in [d.get("mobile_phone"), *phone_list] if p],
        emails=[e for e in [d.get("work_email"), *email_list] if e],
        job_title=d.get("job_title"),
        job_company=d.get("job_company_name"),
        industry=d.get("industry"),
        linkedin=d.get("linkedin_url"),
        facebook=d.get("facebook_url"),
        twitter=d.get("twitter_url"),
        address=", ".join(p for p in address_parts if p),
        sex=d.get("sex"),
        birth_year=d.get("birth_year"),
    )

def merge_identity(first: PdlPerson, second: PdlPerson) -> PdlPerson:
    """
    Merge two PDL answers for the same contact.

    The answer with the higher likelihood is the base (ties keep ``first``);
    every field empty on the base is backfilled from the other answer.
    """
    if (second.likelihood or 0) > (first.likelihood or 0):
        base, fill = second, first
    else:
        base, fill = first, second

    merged = base.model_dump()
    for field, value in fill.model_dump().items():
        if merged.get(field) in (None, "", []):
            merged[field] = value
    return PdlPerson(**merged)

class PeopleDataLabsClient:
    """Identity-enrichment provider (People Data Labs person/enrich)."""

    def __init__(self, api_key: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key if api_key is not None else os.getenv("PDL_API_KEY")
        self.base_url = PDL_BASE
        self.timeout = float(os.getenv("HTTP_TIMEOUT", "20"))
        self.transport = transport

        if not self.api_key:
            logger.warning("No PDL API key provided, identity resolution disabled")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def enrich_person(self, params: Dict[str, str]) -> Optional[PdlPerson]:
        """
        Query person/enrich.

        Returns:
            PdlPerson on a 200 match, None for any other status

        Raises:
            PdlError: transport failure or an unreadable body
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(
                    f"{self.base_url}/person/enrich",
                    params=params,
                    headers={"X-Api-Key": self.api_key or ""}
                )
        except httpx.HTTPError as e:
            raise PdlError(f"PDL request failed: {e}") from e

        if response.status_code != 200:
            logger.info(f"PDL: no match ({response.status_code})")
            return None

        try:
            person = parse_person(response.json())
        except ValueError as e:
            raise PdlError(f"PDL returned an unreadable body: {e}") from e

        logger.info(
            f"PDL match: {person.full_name} likelihood={person.likelihood} "
            f"title={person.job_title} company={person.job_company}"
        )
        return person

# Global PDL client instance
pdl_client = PeopleDataLabsClient()
