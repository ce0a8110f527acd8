from pipeline.state import EnrichState
from connectors import pdl
from loguru import logger

async def resolve_identity(state: EnrichState) -> EnrichState:
    """First PDL pass, using the strongest identifier the contact has."""
    contact = state["contact"]
    state["used_direct_id"] = contact.has_direct_identifier
    state["identity_queried"] = False

    if not pdl.pdl_client.enabled:
        logger.warning("PDL not configured, skipping identity resolution")
        return state

    params = pdl.build_primary_params(contact)
    state["identity_queried"] = True
    try:
        state["pdl"] = await pdl.pdl_client.enrich_person(params)
    except Exception as e:
        error_msg = f"Identity resolution failed: {str(e)}"
        logger.error(error_msg)
        state.setdefault("errors", []).append(error_msg)
        state["pdl"] = None

    return state

def needs_identity_retry(state: EnrichState) -> str:
    """Retry by name when the first pass came back empty or thin."""
    contact = state["contact"]
    if not state.get("identity_queried"):
        return "skip"
    if not (contact.first_name or contact.last_name):
        return "skip"

    first = state.get("pdl")
    if first is None:
        # A name-only first pass already ran the name query; nothing left to try
        return "retry" if state.get("used_direct_id") else "skip"
    if first.is_thin():
        return "retry"
    return "skip"

async def retry_identity(state: EnrichState) -> EnrichState:
    """Second PDL pass by name + locality, merged with the first answer."""
    contact = state["contact"]
    used_direct_id = state.get("used_direct_id", False)
    min_likelihood = pdl.DEFAULT_MIN_LIKELIHOOD if used_direct_id else pdl.RELAXED_MIN_LIKELIHOOD
    logger.info(f"PDL retry ({'name+address' if used_direct_id else 'lower likelihood'})...")

    try:
        retry = await pdl.pdl_client.enrich_person(pdl.build_name_params(contact, min_likelihood))
    except Exception as e:
        error_msg = f"Identity retry failed: {str(e)}"
        logger.error(error_msg)
        state.setdefault("errors", []).append(error_msg)
        return state

    if retry is None:
        return state

    first = state.get("pdl")
    state["pdl"] = pdl.merge_identity(first, retry) if first else retry
    state["pdl_retry"] = True
    return state
