from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from app.DB.repository import PersistenceError, SupabaseRepository

logger = logging.getLogger("exercise.repository")


class ExerciseRepository(SupabaseRepository):
    """Supabase access for practice sets, attempts and the reward RPC.

    ``practice_results`` rows carry the auth uuid in ``user_id``.
    """

    # --- Practice sets ---------------------------------------------------

    async def get_practice_set(self, practice_set_id: str) -> Optional[Dict[str, Any]]:
        query = (
            self.client.table("practice_sets")
            .select("id, lesson_id, topic_id, coin_reward, xp_reward, pass_threshold")
            .eq("id", practice_set_id)
            .limit(1)
        )
        resp = await self._exec(query.execute(), op="practice_sets.single")
        return self._first(resp)

    async def get_zone_level_for_topic(self, topic_id: Any) -> Optional[int]:
        if topic_id is None:
            return None
        topic_resp = await self._exec(
            self.client.table("topics").select("topic_id, zone_id").eq("topic_id", topic_id).limit(1).execute(),
            op="topics.single",
        )
        topic = self._first(topic_resp)
        if not topic or topic.get("zone_id") is None:
            return None
        zone_resp = await self._exec(
            self.client.table("zones").select("id, level").eq("id", topic["zone_id"]).limit(1).execute(),
            op="zones.single",
        )
        zone = self._first(zone_resp)
        if not zone or zone.get("level") is None:
            return None
        return int(zone["level"])

    # --- Practice results ------------------------------------------------

    async def get_practice_result(self, practice_result_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        query = (
            self.client.table("practice_results")
            .select("id, user_id, practice_set_id, status, attempt_no")
            .eq("id", practice_result_id)
            .eq("user_id", user_id)
            .limit(1)
        )
        resp = await self._exec(query.execute(), op="practice_results.single")
        return self._first(resp)

    async def find_open_result(self, user_id: str, practice_set_id: str) -> Optional[Dict[str, Any]]:
        query = (
            self.client.table("practice_results")
            .select("id, attempt_no, status, created_at")
            .eq("user_id", user_id)
            .eq("practice_set_id", practice_set_id)
            .eq("status", "in_progress")
            .order("created_at", desc=True)
            .limit(1)
        )
        resp = await self._exec(query.execute(), op="practice_results.open")
        return self._first(resp)

    async def count_results(self, user_id: str, practice_set_id: str) -> int:
        query = (
            self.client.table("practice_results")
            .select("id", count="exact")
            .eq("user_id", user_id)
            .eq("practice_set_id", practice_set_id)
        )
        resp = await self._exec(query.execute(), op="practice_results.count")
        count = getattr(resp, "count", None)
        if count is None:
            return len(self._rows(resp))
        return int(count)

    async def has_other_passed_result(self, user_id: str, practice_set_id: str, exclude_id: str) -> bool:
        query = (
            self.client.table("practice_results")
            .select("id")
            .eq("user_id", user_id)
            .eq("practice_set_id", practice_set_id)
            .eq("passed", True)
            .neq("id", exclude_id)
            .limit(1)
        )
        resp = await self._exec(query.execute(), op="practice_results.passed")
        return bool(self._rows(resp))

    async def insert_practice_result(self, record: Dict[str, Any]) -> Dict[str, Any]:
        resp = await self._exec(self.client.table("practice_results").insert(record).execute(), op="practice_results.insert")
        row = self._first(resp)
        if not row:
            raise PersistenceError("practice_results.insert", "no row returned")
        return row

    async def complete_practice_result(self, practice_result_id: str, values: Dict[str, Any]) -> bool:
        """Write the final values; only an ``in_progress`` row is touched.

        Returns False when no row changed (already completed by another request).
        """
        query = (
            self.client.table("practice_results")
            .update({**values, "status": "completed"})
            .eq("id", practice_result_id)
            .eq("status", "in_progress")
        )
        resp = await self._exec(query.execute(), op="practice_results.complete")
        return bool(self._rows(resp))

    # --- Details -----------------------------------------------------------

    async def insert_result_details(self, rows: List[Dict[str, Any]]) -> int:
        if not rows:
            return 0
        await self._exec(self.client.table("practice_result_details").insert(rows).execute(), op="practice_result_details.insert")
        return len(rows)

    async def list_result_details(self, practice_result_id: str) -> List[Dict[str, Any]]:
        query = (
            self.client.table("practice_result_details")
            .select("*")
            .eq("practice_result_id", practice_result_id)
            .order("created_at")
        )
        resp = await self._exec(query.execute(), op="practice_result_details.list")
        return self._rows(resp)

    # --- Lesson progress ---------------------------------------------------

    async def get_lesson_progress(self, user_id: str, lesson_id: Any) -> Optional[Dict[str, Any]]:
        query = (
            self.client.table("user_lesson_progress")
            .select("*")
            .eq("user_id", user_id)
            .eq("lesson_id", lesson_id)
            .limit(1)
        )
        resp = await self._exec(query.execute(), op="user_lesson_progress.single")
        return self._first(resp)

    async def insert_lesson_progress(self, record: Dict[str, Any]) -> None:
        await self._exec(self.client.table("user_lesson_progress").insert(record).execute(), op="user_lesson_progress.insert")

    async def update_lesson_progress(self, progress_id: Any, values: Dict[str, Any]) -> None:
        await self._exec(
            self.client.table("user_lesson_progress").update(values).eq("id", progress_id).execute(),
            op="user_lesson_progress.update",
        )

    # --- Rewards -----------------------------------------------------------

    async def award_rewards(self, user_id: str, coins: int, xp: int) -> None:
        params = {"p_user_id": user_id, "p_coins": int(coins), "p_xp": int(xp)}
        await self._exec(self.client.rpc("award_user_rewards", params).execute(), op="rpc.award_user_rewards")
