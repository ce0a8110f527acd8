import os
import time
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from dotenv import load_dotenv

# Load environment variables before the connectors read them
load_dotenv()

from pipeline.workflow import build_workflow, run_enrichment
from connectors import crm_store
from connectors.apollo import apollo_client
from connectors.nyc_opendata import pluto_client
from connectors.pdl import pdl_client

VERSION = "1.0.0"

# Configure logging
logger.add("logs/app.log", rotation="1 day", retention="7 days", level="INFO")

# Initialize FastAPI app
app = FastAPI(
    title="Contact Enrichment & Lead Scoring",
    description="Verify & Enrich pipeline: PDL + Apollo identity fusion, NYC property records, lead scoring",
    version=VERSION
)

# Compiled once, invoked per request
app_graph = build_workflow()

@app.post("/contacts/{contact_id}/enrich")
async def enrich_contact(contact_id: str):
    """
    Run the full enrichment pipeline for one contact.

    Provider failures never fail the request; they are reported in
    ``errors`` and the result is computed from whatever answered.
    """
    start_time = time.time()
    logger.info(f"Received enrichment request: {contact_id}")

    result = await run_enrichment(contact_id, graph=app_graph)
    processing_time = time.time() - start_time

    if "error" in result:
        return JSONResponse(
            status_code=404,
            content={"status": "error", "message": result["error"]}
        )

    logger.info(f"Contact enrichment completed in {processing_time:.2f}s: {contact_id}")
    return JSONResponse(
        status_code=200,
        content={"status": "success", "processing_time": processing_time, **result}
    )

@app.get("/contacts/{contact_id}/profile")
def get_profile(contact_id: str):
    """Latest enrichment profile for a contact."""
    profile = crm_store.store.latest_profile(contact_id)
    if profile is None:
        return JSONResponse(
            status_code=404,
            content={"status": "error", "message": "Enrichment profile not found"}
        )
    return profile.model_dump(mode="json")

@app.get("/health")
def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": VERSION,
        "services": {
            "store": crm_store.store.backend,
            "pdl": "configured" if pdl_client.enabled else "disabled",
            "apollo": "configured" if apollo_client.enabled else "disabled",
            "nyc_opendata": "token" if pluto_client.app_token else "anonymous",
            "workflow": "ready"
        }
    }

# Error handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"status": "error", "message": "Internal server error"}
    )

if __name__ == "__main__":
    import uvicorn

    # Create logs directory if it doesn't exist
    os.makedirs("logs", exist_ok=True)

    logger.info("Starting Contact Enrichment & Lead Scoring")

    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
