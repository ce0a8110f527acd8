from pipeline.state import EnrichState
from pipeline.scoring import score_contact
from pipeline.models import MergedProfile
from loguru import logger

def score(state: EnrichState) -> EnrichState:
    """Apply the scoring rubric to everything gathered so far."""
    logger.info(f"Starting scoring for contact: {state.get('contact_id', 'unknown')}")

    card = score_contact(
        state["contact"],
        state.get("pdl"),
        state.get("pdl_retry", False),
        state.get("apollo"),
        state.get("apollo_org"),
        state.get("merged") or MergedProfile(),
        state.get("nyc_properties", []),
    )
    state["score"] = card.score
    state["grade"] = card.grade
    state["signals"] = card.signals

    logger.info(f"Final score: {card.score} ({card.grade}) for {state.get('contact_id')}")
    return state
