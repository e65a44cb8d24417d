"""Profile store over the `profiles` table.

Reads never raise: failures are logged and degrade to an empty list / None.
`create_profile` is the one operation whose failure reaches the caller.
"""
from typing import Any, Dict, List, Optional
import logging
import time
import uuid

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from verifiedonchain.db.database import DatabaseConfig, ProfileRecord
from verifiedonchain.models import Blockchain, SOCIAL_KEYS, UserProfile

logger = logging.getLogger(__name__)


class ProfileStoreError(RuntimeError):
    """Raised when a profile cannot be written."""


def _clean_socials(socials: Optional[Dict[str, Any]]) -> Dict[str, str]:
    return {k: str(v) for k, v in (socials or {}).items() if k in SOCIAL_KEYS and v}


def _to_profile(row: ProfileRecord) -> UserProfile:
    return UserProfile(
        id=row.id,
        username=row.username,
        address=row.address,
        chain=Blockchain(row.chain),
        created_at=int(row.created_at),
        logo_url=row.logo_url,
        socials=dict(row.socials or {}),
    )


class ProfileStore:
    def __init__(self, db_config: DatabaseConfig):
        self.db_config = db_config

    def get_all_profiles(self) -> List[UserProfile]:
        """All profiles, newest first."""
        try:
            with self.db_config.get_session() as session:
                rows = session.query(ProfileRecord).order_by(ProfileRecord.created_at.desc()).all()
                return [_to_profile(r) for r in rows]
        except Exception as e:
            logger.error("Error loading profiles: %s", e)
            return []

    def get_profile_by_username(self, username: str) -> Optional[UserProfile]:
        """Case-insensitive exact lookup."""
        if not username:
            return None
        try:
            with self.db_config.get_session() as session:
                row = session.query(ProfileRecord).filter(
                    func.lower(ProfileRecord.username) == username.lower()
                ).one_or_none()
                return _to_profile(row) if row is not None else None
        except Exception as e:
            logger.error("Error loading profile %s: %s", username, e)
            return None

    def create_profile(self, username: str, address: str, chain: Blockchain,
                       logo_url: Optional[str] = None, socials: Optional[Dict[str, Any]] = None) -> UserProfile:
        if self.get_profile_by_username(username) is not None:
            raise ProfileStoreError("Username is already taken.")

        record = ProfileRecord(
            id=uuid.uuid4().hex,
            username=username,
            address=address,
            chain=Blockchain(chain).value,
            created_at=int(time.time() * 1000),
            logo_url=logo_url or None,
            socials=_clean_socials(socials),
        )
        try:
            with self.db_config.get_session() as session:
                session.add(record)
                session.flush()
                profile = _to_profile(record)
        except SQLAlchemyError as e:
            message = str(getattr(e, 'orig', None) or e)
            logger.error("Profile create failed for %s: %s", username, message)
            raise ProfileStoreError(message or 'Failed to create profile') from e

        logger.info("Created profile %s on %s", profile.username, profile.chain.value)
        return profile
