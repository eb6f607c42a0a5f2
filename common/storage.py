"""Supabase-backed history of speech analyses.

All calls are blocking; async callers run them in the threadpool.
"""

from __future__ import annotations

import logging
from typing import Any

from supabase import Client, create_client

from common.config import StorageSettings
from common.schemas import AnalysisResult

logger = logging.getLogger(__name__)

CATEGORY_KEYS = ("voiceModulation", "thoughtStructure", "vocabulary")


def build_record(result: AnalysisResult, user_id: str) -> dict[str, Any]:
    """Flatten an analysis into the speech_analyses row shape."""
    data = result.model_dump(by_alias=True, mode="json")
    categories = {key: data.pop(key) for key in CATEGORY_KEYS}
    full_transcript = data.pop("fullTranscript")
    mispronunciations = data.pop("mispronunciations")
    # scalar metadata rides along in the categories blob
    categories.update(data)
    return {
        "user_id": user_id,
        "overall_score": result.overall_score,
        "full_transcript": full_transcript,
        "mispronunciations": mispronunciations,
        "categories": categories,
    }


class AnalysisStore:
    def __init__(self, settings: StorageSettings | None = None) -> None:
        self.settings = settings or StorageSettings()
        self._client: Client | None = None

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    @property
    def client(self) -> Client:
        if self._client is None:
            if not self.enabled:
                raise RuntimeError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")
            self._client = create_client(self.settings.url, self.settings.service_role_key)
        return self._client

    def resolve_user(self, access_token: str) -> str | None:
        """Return the user id owning ``access_token``, or None if it is not valid."""
        try:
            resp = self.client.auth.get_user(access_token)
        except Exception as exc:
            logger.warning("Access token rejected: %s", exc)
            return None
        if resp is None or resp.user is None:
            return None
        return str(resp.user.id)

    def insert(self, record: dict[str, Any]) -> dict[str, Any] | None:
        resp = self.client.table(self.settings.table).insert(record).execute()
        rows = resp.data or []
        logger.info("Stored analysis for user %s", record.get("user_id"))
        return rows[0] if rows else None

    def list_for_user(self, user_id: str, limit: int = 10) -> list[dict[str, Any]]:
        resp = (
            self.client.table(self.settings.table)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return resp.data or []

    def delete_for_user(self, analysis_id: str, user_id: str) -> bool:
        resp = (
            self.client.table(self.settings.table)
            .delete()
            .eq("id", analysis_id)
            .eq("user_id", user_id)
            .execute()
        )
        deleted = bool(resp.data)
        logger.info("Delete analysis %s for user %s: %s", analysis_id, user_id, deleted)
        return deleted
