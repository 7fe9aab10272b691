"""
Access Gate interface.

The aggregator never authenticates anyone. Callers consult an AccessGate
(implemented by the storage layer, see lobby_worker.repository) before asking
for brand-facing data.
"""

from enum import Enum
from typing import List, Optional, Protocol


class BrandRole(Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class AccessGate(Protocol):
    def brand_role(self, user_id: str, brand_id: str) -> Optional[str]:
        """Team role of the user within the brand, or None."""
        ...

    def brand_ids_for_user(self, user_id: str) -> List[str]:
        ...

    def campaign_ids_for_brands(self, brand_ids: List[str]) -> List[str]:
        ...
