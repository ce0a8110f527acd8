"""Merge PDL and Apollo answers into one profile with provenance."""
from typing import Any, Dict, List, Optional, Tuple

from connectors.dedupe import dedupe_emails, dedupe_phones, normalize_email, normalize_phone
from pipeline.models import ApolloOrg, ApolloPerson, MergedProfile, PdlPerson

# Single-valued fields: (source, attribute) in precedence order, first non-empty wins.
# Sources follow Apollo person -> Apollo org -> PDL; a provider that does not
# carry a field is simply absent from its list.
FIELD_RESOLVERS: Dict[str, List[Tuple[str, str]]] = {
    "title": [("apollo", "title"), ("pdl", "job_title")],
    "company": [("apollo", "company"), ("pdl", "job_company")],
    "linkedin_url": [("apollo", "linkedin_url"), ("pdl", "linkedin")],
    "photo_url": [("apollo", "photo_url")],
    "seniority": [("apollo", "seniority")],
    "company_industry": [("apollo", "company_industry"), ("apollo_org", "industry"), ("pdl", "industry")],
    "company_size": [("apollo", "company_size"), ("apollo_org", "employee_count")],
    "company_revenue": [("apollo", "company_revenue"), ("apollo_org", "revenue")],
    "company_website": [("apollo", "company_website"), ("apollo_org", "website")],
    "company_phone": [("apollo", "company_phone"), ("apollo_org", "phone")],
    "company_logo": [("apollo_org", "logo_url")],
    "company_description": [("apollo_org", "short_description")],
    "company_founded_year": [("apollo_org", "founded_year")],
}

def resolve_field(sources: Dict[str, Any], resolvers: List[Tuple[str, str]]) -> Any:
    for source, attr in resolvers:
        record = sources.get(source)
        value = getattr(record, attr, None) if record is not None else None
        if value:
            return value
    return None

def _record(sources: Dict[str, List[str]], key: str, provider: str) -> None:
    if not key:
        return
    providers = sources.setdefault(key, [])
    if provider not in providers:
        providers.append(provider)

def build_provenance(
    pdl: Optional[PdlPerson],
    apollo: Optional[ApolloPerson],
) -> Tuple[Dict[str, List[str]], Dict[str, List[str]]]:
    """Map each normalized email/phone to the providers that returned it."""
    email_sources: Dict[str, List[str]] = {}
    phone_sources: Dict[str, List[str]] = {}

    for phone in (pdl.phones if pdl else []):
        _record(phone_sources, normalize_phone(phone), "PDL")
    for phone in (apollo.phones if apollo else []):
        _record(phone_sources, normalize_phone(phone), "Apollo")

    for email in (pdl.emails if pdl else []):
        _record(email_sources, normalize_email(email), "PDL")
    if apollo:
        for email in [apollo.email, *apollo.personal_emails]:
            if email:
                _record(email_sources, normalize_email(email), "Apollo")

    return email_sources, phone_sources

def is_multi_source(sources: Dict[str, List[str]]) -> bool:
    return any(len(providers) > 1 for providers in sources.values())

async def fuse(
    pdl: Optional[PdlPerson],
    pdl_retry: bool,
    apollo: Optional[ApolloPerson],
    apollo_org: Optional[ApolloOrg],
) -> MergedProfile:
    emails = await dedupe_emails([
        *(pdl.emails if pdl else []),
        apollo.email if apollo else None,
        *(apollo.personal_emails if apollo else []),
    ])
    phones = await dedupe_phones([
        *(pdl.phones if pdl else []),
        *(apollo.phones if apollo else []),
        apollo_org.phone if apollo_org else None,
    ])
    email_sources, phone_sources = build_provenance(pdl, apollo)

    sources = {"apollo": apollo, "apollo_org": apollo_org, "pdl": pdl}
    fields = {name: resolve_field(sources, resolvers) for name, resolvers in FIELD_RESOLVERS.items()}

    data_sources = [
        label for label, present in (
            ("PDL", pdl is not None),
            ("PDL_RETRY", pdl_retry),
            ("Apollo", apollo is not None),
            ("Apollo_Org", apollo_org is not None),
        ) if present
    ]

    return MergedProfile(
        emails=emails,
        phones=phones,
        email_sources=email_sources,
        phone_sources=phone_sources,
        data_sources=data_sources,
        **fields,
    )
