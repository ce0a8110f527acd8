import asyncio
import re
from typing import Optional
from pipeline.state import EnrichState
from pipeline.models import Contact
from connectors import apollo
from loguru import logger

NOTES_COMPANY = re.compile(r"company:\s*(.+)", re.IGNORECASE)

def company_from_notes(notes: Optional[str]) -> Optional[str]:
    match = NOTES_COMPANY.search(notes or "")
    return match.group(1).strip() if match else None

def _person_email(state: EnrichState, contact: Contact) -> Optional[str]:
    pdl_result = state.get("pdl")
    if pdl_result and pdl_result.emails:
        return pdl_result.emails[0]
    return contact.email or None

async def lookup_graph(state: EnrichState) -> EnrichState:
    """Apollo person and organization lookups, run concurrently."""
    contact = state["contact"]
    pdl_result = state.get("pdl")
    full_name = contact.full_name
    company = pdl_result.job_company if pdl_result and pdl_result.job_company else None
    org_name = company or company_from_notes(contact.notes)

    if not apollo.apollo_client.enabled:
        logger.warning("Apollo not configured, skipping graph lookup")
        return state

    tasks = {}
    if " " in full_name:
        logger.info(f"[APOLLO] Enriching person: {full_name}")
        tasks["apollo"] = apollo.apollo_client.enrich_person(
            full_name,
            contact.city or None,
            company,
            _person_email(state, contact),
        )
    if org_name:
        logger.info(f"[APOLLO] Enriching org: {org_name}")
        tasks["apollo_org"] = apollo.apollo_client.enrich_organization(org_name)

    if not tasks:
        return state

    results = await asyncio.gather(*tasks.values(), return_exceptions=True)
    for key, result in zip(tasks.keys(), results):
        if isinstance(result, Exception):
            error_msg = f"Graph lookup ({key}) failed: {str(result)}"
            logger.error(error_msg)
            state.setdefault("errors", []).append(error_msg)
            state[key] = None
        else:
            state[key] = result

    logger.info(f"[APOLLO] Complete. Person: {bool(state.get('apollo'))} Org: {bool(state.get('apollo_org'))}")
    return state
