import httpx
import os
import re
from typing import Dict, Any, List, Optional
from loguru import logger

from connectors.errors import OpenDataError
from pipeline.models import PropertyRecord

NYC_OPENDATA_BASE = "https://data.cityofnewyork.us/resource"
PLUTO_DATASET = "64uk-42ks"
PLUTO_FIELDS = "address,borough,unitsres,numfloors,assesstot,ownername,bbl"
MAX_ROWS = 10
LIKE_WILDCARDS = re.compile(r"[%_]")

def _to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0

def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0

def owner_pattern(full_name: str) -> str:
    """Upper-cased owner name with SoQL LIKE wildcards removed and quotes doubled."""
    name = " ".join(LIKE_WILDCARDS.sub(" ", full_name).split())
    return name.upper().replace("'", "''")

def build_owner_query(full_name: str) -> Dict[str, str]:
    """SoQL query for lots whose owner name contains ``full_name``."""
    return {
        "$where": f"upper(ownername) LIKE '%{owner_pattern(full_name)}%'",
        "$select": PLUTO_FIELDS,
        "$limit": str(MAX_ROWS),
        "$order": "unitsres DESC",
    }

def parse_row(row: Dict[str, Any]) -> PropertyRecord:
    return PropertyRecord(
        address=row.get("address"),
        borough=row.get("borough"),
        units=_to_int(row.get("unitsres")),
        value=_to_float(row.get("assesstot")),
        owner_name=row.get("ownername"),
        bbl=row.get("bbl"),
    )

class PlutoClient:
    """NYC PLUTO (property/land-use) lookups over the Socrata API."""

    def __init__(self, app_token: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.app_token = app_token if app_token is not None else os.getenv("NYC_OPENDATA_APP_TOKEN")
        self.url = f"{NYC_OPENDATA_BASE}/{PLUTO_DATASET}.json"
        self.timeout = float(os.getenv("HTTP_TIMEOUT", "20"))
        self.transport = transport

    def _get_headers(self) -> Dict[str, str]:
        return {"X-App-Token": self.app_token} if self.app_token else {}

    async def find_properties_by_owner(self, full_name: str) -> List[PropertyRecord]:
        """
        Find up to ten lots owned by ``full_name``, most residential units first.

        Raises:
            OpenDataError: transport failure or an unreadable body
        """
        if not owner_pattern(full_name):
            return []

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(
                    self.url,
                    params=build_owner_query(full_name),
                    headers=self._get_headers()
                )
        except httpx.HTTPError as e:
            raise OpenDataError(f"PLUTO request failed: {e}") from e

        if not response.is_success:
            logger.warning(f"PLUTO query failed ({response.status_code})")
            return []

        try:
            rows = response.json()
        except ValueError as e:
            raise OpenDataError(f"PLUTO returned an unreadable body: {e}") from e

        properties = [parse_row(row) for row in rows]
        if properties:
            logger.info(f"NYC properties: {len(properties)}")
        return properties

# Global PLUTO client instance
pluto_client = PlutoClient()
