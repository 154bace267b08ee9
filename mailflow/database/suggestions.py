import re
import time
from typing import Dict, List

from rapidfuzz import fuzz, process

from mailflow.models import Email, Suggestion

_WORD_STRIP = ".,!?:;\"'()[]{}|"
_WORD_SPLIT = re.compile(r"\s+")


class SuggestionIndex:
    """In-memory autocomplete index over one owner's senders and subject words."""

    def __init__(self):
        self._senders: Dict[str, str] = {}  # lower-cased sender -> display text
        self._keywords: Dict[str, str] = {}  # lower-cased word -> first seen spelling
        self._last_update: float = 0.0

    def update(self, emails: List[Email]) -> None:
        for email in emails:
            if email.trashed:
                continue
            if email.sender:
                self._senders[email.sender.lower()] = email.sender
            if email.sender_address:
                self._senders.setdefault(
                    email.sender_address.lower(), email.sender
                )
            for word in _WORD_SPLIT.split(email.subject or ""):
                word = word.strip(_WORD_STRIP)
                if len(word) < 3:
                    continue
                self._keywords.setdefault(word.lower(), word)
        self._last_update = time.time()

    def search(
        self,
        query: str,
        sender_limit: int = 3,
        keyword_limit: int = 2,
        threshold: int = 80,
    ) -> List[Suggestion]:
        """
        Suggest completions for a partially typed search query.

        Senders are matched anywhere in the name or address, subject words by
        prefix. Both lists are ranked by rapidfuzz similarity.

        Args:
            query: what the user has typed so far
            sender_limit: maximum number of sender suggestions
            keyword_limit: maximum number of keyword suggestions
            threshold: minimum partial-ratio score (0-100) for a sender

        Returns:
            At most ``sender_limit + keyword_limit`` suggestions, senders first
        """
        query = query.strip().lower()
        if not query:
            return []

        suggestions: List[Suggestion] = []
        seen: set[str] = set()
        sender_hits = process.extract(
            query,
            self._senders,
            scorer=fuzz.partial_ratio,
            processor=str.lower,
            limit=None,
            score_cutoff=threshold,
        )
        for display, _score, _key in sender_hits:
            if display in seen:
                continue
            seen.add(display)
            suggestions.append(Suggestion(text=display, type="sender"))
            if len(suggestions) >= sender_limit:
                break

        candidates = {
            key: word for key, word in self._keywords.items() if key.startswith(query)
        }
        keyword_hits = process.extract(
            query,
            candidates,
            scorer=fuzz.ratio,
            processor=str.lower,
            limit=keyword_limit,
        )
        for word, _score, _key in keyword_hits:
            suggestions.append(Suggestion(text=word, type="keyword"))

        return suggestions[: sender_limit + keyword_limit]

    def clear(self) -> None:
        self._senders.clear()
        self._keywords.clear()
        self._last_update = 0.0

    @property
    def last_update(self) -> float:
        return self._last_update
