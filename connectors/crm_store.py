import os
import redis
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from loguru import logger

from connectors.errors import StoreError
from pipeline.models import Contact, EnrichmentProfile

def profile_id(contact_id: str, version: int = 1) -> str:
    """Deterministic enrichment-profile id for a contact and version."""
    return f"{contact_id}-v{version}"

class CrmStore:
    """Contact and enrichment-profile storage.

    Documents live in Redis as JSON when a Redis URL is configured and
    reachable, otherwise in process memory.
    """

    def __init__(self, redis_url: Optional[str] = None):
        self.r = None
        self._contacts: Dict[str, str] = {}
        self._profiles: Dict[str, str] = {}
        self._profile_index: Dict[str, set] = {}

        if redis_url:
            try:
                self.r = redis.from_url(redis_url)
                # Test connection
                self.r.ping()
                logger.info("Redis connection established successfully")
            except Exception as e:
                logger.error(f"Redis connection failed, using in-memory store: {e}")
                self.r = None

    @property
    def backend(self) -> str:
        return "redis" if self.r else "memory"

    def _get(self, bucket: Dict[str, str], key: str) -> Optional[str]:
        if not self.r:
            return bucket.get(key)
        try:
            raw = self.r.get(key)
        except redis.RedisError as e:
            raise StoreError(f"Redis read of {key} failed: {e}") from e
        return raw.decode() if isinstance(raw, bytes) else raw

    def _set(self, bucket: Dict[str, str], key: str, value: str) -> None:
        if not self.r:
            bucket[key] = value
            return
        try:
            self.r.set(key, value)
        except redis.RedisError as e:
            raise StoreError(f"Redis write of {key} failed: {e}") from e

    def save_contact(self, contact: Contact) -> Contact:
        self._set(self._contacts, f"contact:{contact.id}", contact.model_dump_json())
        return contact

    def get_contact(self, contact_id: str) -> Optional[Contact]:
        raw = self._get(self._contacts, f"contact:{contact_id}")
        return Contact.model_validate_json(raw) if raw else None

    def update_contact(self, contact_id: str, updates: Dict[str, Any]) -> Contact:
        """Patch fields on an existing contact."""
        contact = self.get_contact(contact_id)
        if contact is None:
            raise StoreError(f"Contact {contact_id} not found")
        updated = contact.model_copy(update=updates)
        return self.save_contact(updated)

    def get_profile(self, profile_id: str) -> Optional[EnrichmentProfile]:
        raw = self._get(self._profiles, f"enrichment_profile:{profile_id}")
        return EnrichmentProfile.model_validate_json(raw) if raw else None

    def upsert_profile(self, profile: EnrichmentProfile) -> EnrichmentProfile:
        """Create or replace a profile by id, keeping the original creation time."""
        now = datetime.now(timezone.utc)
        existing = self.get_profile(profile.id)
        profile = profile.model_copy(update={
            "created_at": existing.created_at if existing and existing.created_at else now,
            "enriched_at": now,
        })
        self._set(self._profiles, f"enrichment_profile:{profile.id}", profile.model_dump_json())

        index_key = f"contact_profiles:{profile.contact_id}"
        if self.r:
            try:
                self.r.sadd(index_key, profile.id)
            except redis.RedisError as e:
                raise StoreError(f"Redis write of {index_key} failed: {e}") from e
        else:
            self._profile_index.setdefault(index_key, set()).add(profile.id)
        return profile

    def latest_profile(self, contact_id: str) -> Optional[EnrichmentProfile]:
        """Highest-version profile for a contact."""
        index_key = f"contact_profiles:{contact_id}"
        if self.r:
            try:
                ids = {i.decode() if isinstance(i, bytes) else i for i in self.r.smembers(index_key)}
            except redis.RedisError as e:
                raise StoreError(f"Redis read of {index_key} failed: {e}") from e
        else:
            ids = self._profile_index.get(index_key, set())

        profiles = [p for p in (self.get_profile(i) for i in ids) if p]
        if not profiles:
            return None
        return max(profiles, key=lambda p: p.version)

# Global store instance
store = CrmStore(os.getenv("REDIS_URL"))
