from pipeline.state import EnrichState
from pipeline.fusion import fuse
from pipeline.models import MergedProfile
from loguru import logger

async def fuse_results(state: EnrichState) -> EnrichState:
    """Merge and dedupe everything the identity and graph stages found."""
    try:
        state["merged"] = await fuse(
            state.get("pdl"),
            state.get("pdl_retry", False),
            state.get("apollo"),
            state.get("apollo_org"),
        )
    except Exception as e:
        error_msg = f"Fusion failed: {str(e)}"
        logger.error(error_msg)
        state.setdefault("errors", []).append(error_msg)
        state["merged"] = MergedProfile()

    merged = state["merged"]
    logger.info(f"Merged {len(merged.emails)} emails, {len(merged.phones)} phones from {merged.data_sources}")
    return state
