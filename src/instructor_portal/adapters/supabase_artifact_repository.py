"""Supabase repository for student artifacts."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from instructor_portal.adapters.supabase_rows import (
    parse_datetime,
    parse_optional_datetime,
)
from instructor_portal.domain.artifacts import Artifact, ArtifactFile, ArtifactStatus
from instructor_portal.services.wrap_up import ArtifactRepository

_COLUMNS = (
    "id, student_id, course_id, session_id, type, title, files_json, submitted_at, "
    "status, reviewed_by, reviewed_at, feedback, contributes_to_badges"
)


@dataclass
class SupabaseArtifactRepository(ArtifactRepository):
    """Supabase-backed artifact repository."""

    client: Client

    def list_submitted(self, student_ids: list[str]) -> list[Artifact]:
        """Return artifacts awaiting review for the given students."""
        if not student_ids:
            return []
        response = (
            self.client.table("artifacts")
            .select(_COLUMNS)
            .in_("student_id", student_ids)
            .eq("status", ArtifactStatus.SUBMITTED.value)
            .order("submitted_at")
            .execute()
        )
        return [_row_to_artifact(row) for row in response.data or []]


def _row_to_artifact(row: dict[str, object]) -> Artifact:
    return Artifact(
        id=UUID(str(row["id"])),
        student_id=str(row["student_id"]),
        course_id=str(row["course_id"]),
        session_id=UUID(str(row["session_id"])) if row.get("session_id") else None,
        type=str(row["type"]),
        title=str(row["title"]),
        files=tuple(
            ArtifactFile(
                filename=str(item["filename"]),
                url=str(item["url"]),
                mime_type=item.get("mime_type"),
                size_bytes=item.get("size_bytes"),
            )
            for item in row.get("files_json") or []
        ),
        submitted_at=parse_datetime(row["submitted_at"]),
        status=ArtifactStatus(row["status"]),
        reviewed_by=row.get("reviewed_by"),
        reviewed_at=parse_optional_datetime(row.get("reviewed_at")),
        feedback=row.get("feedback"),
        contributes_to_badges=tuple(row.get("contributes_to_badges") or []),
    )
