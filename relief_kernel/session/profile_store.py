"""
Profile Store: read-only source of the applicant's base Profile.

Queried by: CollectionSession (merge precedence) + the API facade
"""

from typing import Dict, Optional, Protocol, runtime_checkable

from relief_kernel.models.profile import Profile


@runtime_checkable
class ProfileStore(Protocol):
    def get_profile(self, applicant_id: str) -> Optional[Profile]:
        ...


class InMemoryProfileStore:
    """
    In-memory profile store for the prototype.
    Production would read from the applicant database.
    """

    def __init__(self, profiles: Optional[Dict[str, Profile]] = None):
        self._profiles: Dict[str, Profile] = dict(profiles or {})

    def get_profile(self, applicant_id: str) -> Optional[Profile]:
        return self._profiles.get(applicant_id)

    def put_profile(self, applicant_id: str, profile: Profile) -> None:
        """Seed or supersede a stored profile."""
        self._profiles[applicant_id] = profile
