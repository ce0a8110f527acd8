import os
from datetime import datetime, timezone
from typing import Any, Dict, List
from pipeline.state import EnrichState
from pipeline.models import Contact, EnrichmentProfile, MergedProfile, PropertyRecord
from pipeline.scoring import INSIGHT_LIMIT, confidence_level, total_units
from connectors import crm_store
from loguru import logger

LIMITED_DATA_SUMMARY = "Limited data. Add more contact details for better enrichment."

def profile_version() -> int:
    raw = os.getenv("ENRICHMENT_PROFILE_VERSION", "1")
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"ENRICHMENT_PROFILE_VERSION must be an integer, got {raw!r}")

def contact_updates(contact: Contact, merged: MergedProfile, score: int) -> Dict[str, Any]:
    """Fields to patch on the contact. Never overwrites a populated phone/email."""
    updates: Dict[str, Any] = {}
    best_phone = merged.phones[0] if merged.phones else None
    best_email = merged.emails[0] if merged.emails else None
    if not contact.phone and best_phone:
        updates["phone"] = best_phone
    if not contact.email and best_email:
        updates["email"] = best_email
    updates["qualification_score"] = score
    updates["score_updated_at"] = datetime.now(timezone.utc)
    updates["enrichment_status"] = "enriched"
    return updates

def build_summary(state: EnrichState) -> str:
    contact = state["contact"]
    merged = state.get("merged") or MergedProfile()
    org = state.get("apollo_org")
    properties: List[PropertyRecord] = state.get("nyc_properties", [])
    grade = state.get("grade", "F")

    parts = []
    if merged.title and merged.company:
        parts.append(f"{contact.full_name} works as {merged.title} at {merged.company}.")
    if org:
        facts = [org.industry, f"{org.employee_count} employees" if org.employee_count else None, org.revenue]
        parts.append(f"{org.name or merged.company}: {', '.join(f for f in facts if f)}.")
    if properties:
        parts.append(f"Owns {len(properties)} NYC properties with {total_units(properties)} total units.")
    if grade == "A":
        parts.append("High-value lead.")
    elif grade == "B":
        parts.append("Strong lead.")

    return " ".join(parts) or LIMITED_DATA_SUMMARY

def raw_data(state: EnrichState) -> Dict[str, Any]:
    """Provider payloads and derived results, as stored on the profile."""
    def dump(value):
        return value.model_dump(mode="json") if value is not None else None

    return {
        "pdl": dump(state.get("pdl")),
        "pdl_retry": state.get("pdl_retry", False),
        "apollo": dump(state.get("apollo")),
        "apollo_org": dump(state.get("apollo_org")),
        "nyc_properties": [p.model_dump(mode="json") for p in state.get("nyc_properties", [])],
        "merged": dump(state.get("merged")),
        "score": state.get("score", 0),
        "grade": state.get("grade", "F"),
        "signals": [s.model_dump(mode="json") for s in state.get("signals", [])],
    }

def build_profile(state: EnrichState) -> EnrichmentProfile:
    contact = state["contact"]
    merged = state.get("merged") or MergedProfile()
    pdl_result = state.get("pdl")
    properties: List[PropertyRecord] = state.get("nyc_properties", [])
    score = state.get("score", 0)
    version = profile_version()

    data_sources = list(merged.data_sources)
    if properties:
        data_sources.append("NYC_PLUTO")

    return EnrichmentProfile(
        id=crm_store.profile_id(contact.id, version),
        contact_id=contact.id,
        version=version,
        employer=merged.company,
        job_title=merged.title,
        industry=merged.company_industry,
        company_size=merged.company_size,
        linkedin_url=merged.linkedin_url,
        facebook_url=pdl_result.facebook if pdl_result else None,
        twitter_url=pdl_result.twitter if pdl_result else None,
        profile_photo_url=merged.photo_url,
        owns_property=bool(properties),
        property_value_est=sum(p.value for p in properties) or None,
        confidence_level=confidence_level(score),
        data_sources=data_sources,
        raw_data=raw_data(state),
        ai_summary=build_summary(state),
        ai_insights=state.get("signals", [])[:INSIGHT_LIMIT],
    )

def persist(state: EnrichState) -> EnrichState:
    """Patch the contact and upsert its enrichment profile."""
    contact = state["contact"]
    merged = state.get("merged") or MergedProfile()

    try:
        # Build the profile first so a bad version setting fails before any write
        profile = build_profile(state)
        updates = contact_updates(contact, merged, state.get("score", 0))
        crm_store.store.update_contact(contact.id, updates)
        state["contact_updates"] = updates

        profile = crm_store.store.upsert_profile(profile)
        state["profile_id"] = profile.id

        logger.info(
            f"Saved enrichment. Score: {state.get('score')} {state.get('grade')} "
            f"Sources: {', '.join(profile.data_sources)}"
        )
    except Exception as e:
        error_msg = f"Save failed: {str(e)}"
        logger.error(error_msg)
        state.setdefault("errors", []).append(error_msg)
        state["profile_id"] = None

    return state
