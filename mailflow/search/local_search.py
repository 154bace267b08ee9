import asyncio
from typing import Optional

from mailflow.database import MailDB
from mailflow.models import Email
from mailflow.settings import SearchSettings
from mailflow.text_normalizer import edit_distance, fold_accents


class LocalIndexSearch:
    def __init__(self, db: MailDB, settings: SearchSettings):
        self.db = db
        self.settings = settings

    async def search(self, owner_id: str, query: str) -> list[Email]:
        """Accent-insensitive regex match, newest first, capped at ``local_result_cap``."""
        return await asyncio.to_thread(
            self.db.search_local, owner_id, query, self.settings.local_result_cap
        )

    async def fuzzy_scan(
        self, owner_id: str, query: str, threshold: Optional[int] = None
    ) -> list[tuple[Email, int]]:
        """
        Full scan of the owner's mail comparing the folded query against the
        folded subject, then the folded summary when the subject misses.

        Returns ``(email, distance)`` for every email within ``threshold`` edits.
        """
        if threshold is None:
            threshold = self.settings.fuzzy_threshold
        needle = fold_accents(query.strip())
        if not needle:
            return []

        emails = await asyncio.to_thread(self.db.list_for_fuzzy_scan, owner_id)
        matches: list[tuple[Email, int]] = []
        for email in emails:
            distance = edit_distance(needle, fold_accents(email.subject))
            if distance > threshold and email.summary:
                distance = edit_distance(needle, fold_accents(email.summary))
            if distance <= threshold:
                matches.append((email, distance))
        return matches
