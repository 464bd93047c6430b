"""HTTP client for the external badge award service."""

from dataclasses import dataclass
from uuid import UUID

import httpx

from instructor_portal.domain.badges import BadgeCandidate
from instructor_portal.services.badges import BadgeAwardClient


@dataclass
class HttpxBadgeAwardClient(BadgeAwardClient):
    """Badge award client implemented with httpx."""

    base_url: str
    token: str | None
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, token: str | None) -> "HttpxBadgeAwardClient":
        """Create a badge client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"), token=token, http_client=httpx.AsyncClient()
        )

    async def award(
        self, session_id: UUID, candidates: list[BadgeCandidate]
    ) -> None:
        """Post badge candidates for one session."""
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        response = await self.http_client.post(
            f"{self.base_url}/awards",
            json={
                "session_id": str(session_id),
                "awards": [
                    {"student_id": c.student_id, "badge_id": c.badge_id}
                    for c in candidates
                ],
            },
            headers=headers,
            timeout=10,
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()
