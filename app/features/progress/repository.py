from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from app.DB.repository import SupabaseRepository

logger = logging.getLogger("progress.repository")


class ProgressRepository(SupabaseRepository):
    """Reads over the curriculum tables and ``user_lesson_progress``."""

    # --- Curriculum --------------------------------------------------------

    async def get_lesson(self, lesson_id: Any) -> Optional[Dict[str, Any]]:
        resp = await self._exec(
            self.client.table("lessons").select("id, topic_id, sort_order, slug, title").eq("id", lesson_id).limit(1).execute(),
            op="lessons.single",
        )
        return self._first(resp)

    async def list_lessons_for_topics(self, topic_ids: Iterable[Any]) -> List[Dict[str, Any]]:
        ids = list(topic_ids)
        if not ids:
            return []
        resp = await self._exec(
            self.client.table("lessons").select("id, topic_id, sort_order").in_("topic_id", ids).execute(),
            op="lessons.by_topics",
        )
        return self._rows(resp)

    async def get_topic(self, topic_id: Any) -> Optional[Dict[str, Any]]:
        resp = await self._exec(
            self.client.table("topics").select("topic_id, zone_id, slug, title").eq("topic_id", topic_id).limit(1).execute(),
            op="topics.single",
        )
        return self._first(resp)

    async def list_topic_ids_in_zone(self, zone_id: Any) -> List[Any]:
        resp = await self._exec(
            self.client.table("topics").select("topic_id").eq("zone_id", zone_id).execute(),
            op="topics.by_zone",
        )
        return [row["topic_id"] for row in self._rows(resp) if row.get("topic_id") is not None]

    async def get_zone(self, zone_id: Any) -> Optional[Dict[str, Any]]:
        resp = await self._exec(
            self.client.table("zones").select("id, level, name").eq("id", zone_id).limit(1).execute(),
            op="zones.single",
        )
        return self._first(resp)

    async def get_zone_by_level(self, level: int) -> Optional[Dict[str, Any]]:
        resp = await self._exec(
            self.client.table("zones").select("id, level, name").eq("level", level).limit(1).execute(),
            op="zones.by_level",
        )
        return self._first(resp)

    # --- Progress ----------------------------------------------------------

    async def get_lesson_progress(self, user_id: str, lesson_id: Any) -> Optional[Dict[str, Any]]:
        resp = await self._exec(
            self.client.table("user_lesson_progress")
            .select("*")
            .eq("user_id", user_id)
            .eq("lesson_id", lesson_id)
            .limit(1)
            .execute(),
            op="user_lesson_progress.single",
        )
        return self._first(resp)

    async def list_progress_for_topics(self, user_id: str, topic_ids: Iterable[Any]) -> List[Dict[str, Any]]:
        ids = list(topic_ids)
        if not ids:
            return []
        resp = await self._exec(
            self.client.table("user_lesson_progress")
            .select("*")
            .eq("user_id", user_id)
            .in_("topic_id", ids)
            .order("topic_id")
            .execute(),
            op="user_lesson_progress.by_topics",
        )
        return self._rows(resp)

    async def list_passed_lessons(self, user_id: str, lesson_ids: Iterable[Any]) -> List[Dict[str, Any]]:
        ids = list(lesson_ids)
        if not ids:
            return []
        resp = await self._exec(
            self.client.table("user_lesson_progress")
            .select("lesson_id, topic_id, status")
            .eq("user_id", user_id)
            .in_("lesson_id", ids)
            .eq("status", "passed")
            .execute(),
            op="user_lesson_progress.passed",
        )
        return self._rows(resp)

    # --- Profiles ----------------------------------------------------------

    async def get_subscription_type(self, user_id: str) -> Optional[str]:
        resp = await self._exec(
            self.client.table("profiles").select("id, subscription_type").eq("id", user_id).limit(1).execute(),
            op="profiles.subscription",
        )
        row = self._first(resp)
        return row.get("subscription_type") if row else None
