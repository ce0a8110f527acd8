import re
from typing import Iterable, List, Optional

MIN_PHONE_DIGITS = 7

def normalize_email(email: str) -> str:
    return email.strip().lower()

def normalize_phone(phone: str) -> str:
    """Digits only, last ten (drops a leading country code)."""
    return re.sub(r"\D", "", phone)[-10:]

async def dedupe_emails(emails: Iterable[Optional[str]]) -> List[str]:
    """Drop blanks and non-addresses; keep the first spelling of each address."""
    seen = set()
    result = []
    for email in emails:
        if not email or "@" not in email:
            continue
        key = normalize_email(email)
        if key in seen:
            continue
        seen.add(key)
        result.append(email)
    return result

async def dedupe_phones(phones: Iterable[Optional[str]]) -> List[str]:
    """Drop blanks and too-short numbers; keep the first format of each number."""
    seen = set()
    result = []
    for phone in phones:
        if not phone:
            continue
        key = normalize_phone(phone)
        if len(key) < MIN_PHONE_DIGITS or key in seen:
            continue
        seen.add(key)
        result.append(phone)
    return result
