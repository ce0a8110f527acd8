from pipeline.state import EnrichState
from connectors import nyc_opendata
from loguru import logger

async def cross_reference(state: EnrichState) -> EnrichState:
    """Look the contact up as an owner in NYC PLUTO."""
    contact = state["contact"]

    try:
        state["nyc_properties"] = await nyc_opendata.pluto_client.find_properties_by_owner(contact.full_name)
    except Exception as e:
        error_msg = f"Public records lookup failed: {str(e)}"
        logger.error(error_msg)
        state.setdefault("errors", []).append(error_msg)
        state["nyc_properties"] = []

    return state
