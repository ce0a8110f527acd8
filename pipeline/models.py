from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class Contact(BaseModel):
    """CRM contact as stored by the brokerage app."""
    id: str
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    notes: Optional[str] = None
    total_activities: int = 0
    qualification_score: Optional[int] = None
    score_updated_at: Optional[datetime] = None
    enrichment_status: str = "not_enriched"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def has_direct_identifier(self) -> bool:
        return bool(self.email or self.phone)


class PdlPerson(BaseModel):
    """People Data Labs person match."""
    likelihood: Optional[int] = None
    full_name: Optional[str] = None
    phones: List[str] = Field(default_factory=list)
    emails: List[str] = Field(default_factory=list)
    job_title: Optional[str] = None
    job_company: Optional[str] = None
    industry: Optional[str] = None
    linkedin: Optional[str] = None
    facebook: Optional[str] = None
    twitter: Optional[str] = None
    address: Optional[str] = None
    sex: Optional[str] = None
    birth_year: Optional[int] = None

    def is_thin(self) -> bool:
        # No phone, no title and no LinkedIn: worth a second pass
        return not self.phones and not self.job_title and not self.linkedin


class ApolloPerson(BaseModel):
    first_name: str = ""
    last_name: str = ""
    title: Optional[str] = None
    email: Optional[str] = None
    personal_emails: List[str] = Field(default_factory=list)
    phone: Optional[str] = None
    phones: List[str] = Field(default_factory=list)
    linkedin_url: Optional[str] = None
    photo_url: Optional[str] = None
    company: Optional[str] = None
    company_website: Optional[str] = None
    company_industry: Optional[str] = None
    company_size: Optional[int] = None
    company_revenue: Optional[str] = None
    company_phone: Optional[str] = None
    company_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    seniority: Optional[str] = None
    departments: List[str] = Field(default_factory=list)


class ApolloOrg(BaseModel):
    name: str
    website: Optional[str] = None
    industry: Optional[str] = None
    sub_industry: Optional[str] = None
    employee_count: Optional[int] = None
    revenue: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    linkedin_url: Optional[str] = None
    logo_url: Optional[str] = None
    founded_year: Optional[int] = None
    short_description: Optional[str] = None
    seo_description: Optional[str] = None


class PropertyRecord(BaseModel):
    """One NYC PLUTO tax lot whose owner name matched the contact."""
    address: Optional[str] = None
    borough: Optional[str] = None
    units: int = 0
    value: float = 0.0
    owner_name: Optional[str] = None
    bbl: Optional[str] = None


class Signal(BaseModel):
    label: str
    points: int
    detail: str


class MergedProfile(BaseModel):
    """Fused view over every provider that answered."""
    emails: List[str] = Field(default_factory=list)
    phones: List[str] = Field(default_factory=list)
    email_sources: Dict[str, List[str]] = Field(default_factory=dict)
    phone_sources: Dict[str, List[str]] = Field(default_factory=dict)
    title: Optional[str] = None
    company: Optional[str] = None
    linkedin_url: Optional[str] = None
    photo_url: Optional[str] = None
    seniority: Optional[str] = None
    company_industry: Optional[str] = None
    company_size: Optional[int] = None
    company_revenue: Optional[str] = None
    company_website: Optional[str] = None
    company_phone: Optional[str] = None
    company_logo: Optional[str] = None
    company_description: Optional[str] = None
    company_founded_year: Optional[int] = None
    data_sources: List[str] = Field(default_factory=list)


class EnrichmentProfile(BaseModel):
    id: str
    contact_id: str
    version: int = 1
    employer: Optional[str] = None
    job_title: Optional[str] = None
    industry: Optional[str] = None
    company_size: Optional[int] = None
    linkedin_url: Optional[str] = None
    facebook_url: Optional[str] = None
    twitter_url: Optional[str] = None
    profile_photo_url: Optional[str] = None
    owns_property: bool = False
    property_value_est: Optional[float] = None
    confidence_level: str = "low"
    data_sources: List[str] = Field(default_factory=list)
    raw_data: Dict[str, Any] = Field(default_factory=dict)
    ai_summary: str = ""
    ai_insights: List[Signal] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    enriched_at: Optional[datetime] = None


class EnrichmentResult(BaseModel):
    """What a "Verify & Enrich" run hands back to the caller."""
    contact_id: str
    pdl: Optional[PdlPerson] = None
    pdl_retry: bool = False
    apollo: Optional[ApolloPerson] = None
    apollo_org: Optional[ApolloOrg] = None
    nyc_properties: List[PropertyRecord] = Field(default_factory=list)
    merged: Optional[MergedProfile] = None
    score: int = 0
    grade: str = "F"
    signals: List[Signal] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
