from typing import Dict, Any
from langgraph.graph import StateGraph, START, END
from loguru import logger

from pipeline.state import EnrichState
from pipeline.models import EnrichmentResult
from pipeline.nodes.load import load_contact, contact_found
from pipeline.nodes.identity import resolve_identity, needs_identity_retry, retry_identity
from pipeline.nodes.graph_lookup import lookup_graph
from pipeline.nodes.fuse import fuse_results
from pipeline.nodes.records import cross_reference
from pipeline.nodes.score import score
from pipeline.nodes.persist import persist

CONTACT_NOT_FOUND = "Contact not found"

def build_workflow():
    """Build the contact enrichment workflow."""
    workflow = StateGraph(EnrichState)

    # Add nodes
    workflow.add_node("load_contact", load_contact)
    workflow.add_node("resolve_identity", resolve_identity)
    workflow.add_node("retry_identity", retry_identity)
    workflow.add_node("lookup_graph", lookup_graph)
    workflow.add_node("fuse_results", fuse_results)
    workflow.add_node("cross_reference", cross_reference)
    workflow.add_node("score_contact", score)
    workflow.add_node("persist", persist)

    # Add edges
    workflow.add_edge(START, "load_contact")
    workflow.add_conditional_edges(
        "load_contact",
        contact_found,
        {"continue": "resolve_identity", "stop": END}
    )

    # Second PDL pass only when the first one was empty or thin
    workflow.add_conditional_edges(
        "resolve_identity",
        needs_identity_retry,
        {"retry": "retry_identity", "skip": "lookup_graph"}
    )
    workflow.add_edge("retry_identity", "lookup_graph")

    workflow.add_edge("lookup_graph", "fuse_results")
    workflow.add_edge("fuse_results", "cross_reference")
    workflow.add_edge("cross_reference", "score_contact")
    workflow.add_edge("score_contact", "persist")
    workflow.add_edge("persist", END)

    return workflow.compile()

def to_result(state: EnrichState) -> EnrichmentResult:
    return EnrichmentResult(
        contact_id=state["contact_id"],
        pdl=state.get("pdl"),
        pdl_retry=state.get("pdl_retry", False),
        apollo=state.get("apollo"),
        apollo_org=state.get("apollo_org"),
        nyc_properties=state.get("nyc_properties", []),
        merged=state.get("merged"),
        score=state.get("score", 0),
        grade=state.get("grade", "F"),
        signals=state.get("signals", []),
        errors=state.get("errors", []),
    )

async def run_enrichment(contact_id: str, graph=None) -> Dict[str, Any]:
    """
    Run one "Verify & Enrich" pass for a contact.

    Returns:
        The enrichment result as a JSON-ready dict, or ``{"error": ...}`` when
        the contact does not exist
    """
    graph = graph or build_workflow()
    initial_state: EnrichState = {"contact_id": contact_id, "errors": []}

    state = await graph.ainvoke(initial_state)
    if state.get("not_found"):
        return {"error": CONTACT_NOT_FOUND}

    result = to_result(state)
    logger.info(f"Enrichment completed for {contact_id}: {result.score} ({result.grade})")
    return result.model_dump(mode="json")
