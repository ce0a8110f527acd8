import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Keep the module-level clients and store offline
for var in ("PDL_API_KEY", "APOLLO_API_KEY", "NYC_OPENDATA_APP_TOKEN", "REDIS_URL", "ENRICHMENT_PROFILE_VERSION"):
    os.environ.pop(var, None)

from connectors.crm_store import CrmStore
from pipeline.models import Contact


def fake_client(method: str, *responses, enabled: bool = True):
    """Stand-in connector whose ``method`` returns ``responses`` in order."""
    client = MagicMock()
    client.enabled = enabled
    setattr(client, method, AsyncMock(side_effect=list(responses)))
    return client


@pytest.fixture
def memory_store():
    return CrmStore()


@pytest.fixture
def contact():
    return Contact(
        id="c1",
        first_name="John",
        last_name="Doe",
        email="john@acme.com",
        phone="(212) 555-0101",
        city="New York",
        state="NY",
        total_activities=0,
    )
