from typing import TypedDict, Optional, List, Dict, Any
from pipeline.models import (
    ApolloOrg,
    ApolloPerson,
    Contact,
    MergedProfile,
    PdlPerson,
    PropertyRecord,
    Signal,
)

class EnrichState(TypedDict, total=False):
    """State shape for one "Verify & Enrich" run."""
    contact_id: str
    contact: Optional[Contact]
    not_found: bool
    identity_queried: bool           # PDL configured and primary query issued
    used_direct_id: bool             # primary query used email/phone
    pdl: Optional[PdlPerson]
    pdl_retry: bool                  # second PDL pass returned a match
    apollo: Optional[ApolloPerson]
    apollo_org: Optional[ApolloOrg]
    merged: Optional[MergedProfile]
    nyc_properties: List[PropertyRecord]
    score: int
    grade: str
    signals: List[Signal]
    profile_id: Optional[str]
    contact_updates: Dict[str, Any]
    errors: List[str]
