from pipeline.state import EnrichState
from connectors import crm_store
from loguru import logger

def load_contact(state: EnrichState) -> EnrichState:
    """Fetch the contact and reset the per-run result fields."""
    contact_id = state.get("contact_id", "")
    logger.info(f"Starting enrichment for contact: {contact_id}")

    state.setdefault("errors", [])
    state["pdl"] = None
    state["pdl_retry"] = False
    state["apollo"] = None
    state["apollo_org"] = None
    state["merged"] = None
    state["nyc_properties"] = []
    state["score"] = 0
    state["grade"] = "F"
    state["signals"] = []

    contact = crm_store.store.get_contact(contact_id)
    state["contact"] = contact
    state["not_found"] = contact is None

    if contact is None:
        logger.warning(f"Contact not found: {contact_id}")
    else:
        logger.info(f"=== ENRICHING CONTACT === {contact.full_name}")
    return state

def contact_found(state: EnrichState) -> str:
    return "stop" if state.get("not_found") else "continue"
