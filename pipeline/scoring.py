"""Additive lead-scoring rubric.

Every rule appends a Signal; the score is the clamped sum of their points.
Nothing here talks to the network, so it can be exercised directly.
"""
import re
from typing import List, NamedTuple, Optional

from pipeline.fusion import is_multi_source
from pipeline.models import (
    ApolloOrg,
    ApolloPerson,
    Contact,
    MergedProfile,
    PdlPerson,
    PropertyRecord,
    Signal,
)

MAX_SCORE = 100
INSIGHT_LIMIT = 5
MAJOR_PORTFOLIO_UNITS = 50
HIGH_ENGAGEMENT_ACTIVITIES = 5

DECISION_MAKER = re.compile(r"owner|president|ceo|director|vp|partner|principal|founder", re.IGNORECASE)
SENIOR_ROLE = re.compile(r"manager|head|lead|senior|executive", re.IGNORECASE)

GRADE_THRESHOLDS = [(80, "A"), (60, "B"), (40, "C"), (20, "D")]


class ScoreCard(NamedTuple):
    score: int
    grade: str
    signals: List[Signal]


def grade_for(score: int) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def confidence_level(score: int) -> str:
    if score >= 60:
        return "high"
    if score >= 30:
        return "medium"
    return "low"


def total_units(properties: List[PropertyRecord]) -> int:
    return sum(p.units for p in properties)


def score_contact(
    contact: Contact,
    pdl: Optional[PdlPerson],
    pdl_retry: bool,
    apollo: Optional[ApolloPerson],
    apollo_org: Optional[ApolloOrg],
    merged: MergedProfile,
    properties: List[PropertyRecord],
) -> ScoreCard:
    signals: List[Signal] = []

    def add(label: str, points: int, detail: str) -> None:
        signals.append(Signal(label=label, points=points, detail=detail))

    if pdl:
        add("Identity Verified", 15, f"PDL match (likelihood: {pdl.likelihood if pdl.likelihood is not None else '?'})")
    if pdl_retry:
        add("Deep Search Match", 5, "PDL retry found more data")

    if apollo:
        add("Apollo Match", 10, "Person found in Apollo database")
    if apollo and apollo.email:
        add("Apollo Email", 5, "Verified email via Apollo")
    if apollo_org:
        add("Company Intel", 5, apollo_org.name + (f" ({apollo_org.industry})" if apollo_org.industry else ""))

    # Confirmed and available bonuses never stack within a category
    if is_multi_source(merged.phone_sources):
        add("Phone Verified", 8, "Confirmed across PDL + Apollo")
    elif merged.phones or contact.phone:
        add("Phone Available", 8, "Direct phone")

    if is_multi_source(merged.email_sources):
        add("Email Verified", 5, "Confirmed across PDL + Apollo")
    elif merged.emails or contact.email:
        add("Email Available", 7, "Email address")

    if merged.linkedin_url:
        add("LinkedIn Found", 5, "Professional profile")

    title = merged.title or ""
    if DECISION_MAKER.search(title):
        add("Decision Maker", 10, title)
    elif SENIOR_ROLE.search(title):
        add("Senior Role", 7, title)

    industry = merged.company_industry or (pdl.industry if pdl else None) or ""
    if "real estate" in industry.lower():
        add("RE Industry", 5, industry)

    if properties:
        units = total_units(properties)
        add("Property Owner", 15, f"{len(properties)} properties, {units} units")
        if units > MAJOR_PORTFOLIO_UNITS:
            add("Major Portfolio", 10, f"{units} units")

    if contact.total_activities > HIGH_ENGAGEMENT_ACTIVITIES:
        add("High Engagement", 8, f"{contact.total_activities} interactions")
    elif contact.total_activities > 0:
        add("Some Engagement", 3, f"{contact.total_activities} interactions")

    score = max(0, min(MAX_SCORE, sum(s.points for s in signals)))
    signals.sort(key=lambda s: s.points, reverse=True)
    return ScoreCard(score=score, grade=grade_for(score), signals=signals)
