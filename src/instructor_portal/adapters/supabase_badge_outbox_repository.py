"""Supabase repository for queued badge candidates."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from instructor_portal.domain.badges import BadgeCandidate, OutboxBadge
from instructor_portal.services.badges import BadgeOutboxRepository


@dataclass
class SupabaseBadgeOutboxRepository(BadgeOutboxRepository):
    """Supabase-backed badge outbox."""

    client: Client

    def list_pending(self, limit: int) -> list[OutboxBadge]:
        """Return undelivered candidates, oldest first."""
        response = (
            self.client.table("badge_outbox")
            .select("id, session_id, student_id, badge_id")
            .is_("delivered_at", "null")
            .order("created_at")
            .limit(limit)
            .execute()
        )
        return [
            OutboxBadge(
                id=UUID(str(row["id"])),
                session_id=UUID(str(row["session_id"])),
                candidate=BadgeCandidate(
                    student_id=str(row["student_id"]), badge_id=str(row["badge_id"])
                ),
            )
            for row in response.data or []
        ]

    def mark_delivered(self, outbox_ids: list[UUID]) -> None:
        """Stamp candidates as delivered."""
        if not outbox_ids:
            return
        self.client.table("badge_outbox").update(
            {"delivered_at": datetime.now(tz=UTC).isoformat()}
        ).in_("id", [str(outbox_id) for outbox_id in outbox_ids]).execute()
