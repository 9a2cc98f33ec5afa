"""Substring intent matching over the ordered intent registry."""

import logging
from typing import Iterable, Optional

from practice_site.core.chat.intents import INTENTS, validate_intents
from practice_site.core.chat.types import ChatIntent
from practice_site.core.errors import UnknownIntentError

logger = logging.getLogger(__name__)


class IntentMatcher:
    """
    Maps free text to a ChatIntent.

    Matching is case-insensitive substring search; there is no scoring.
    The registry is validated once on construction.
    """

    def __init__(self, intents: Iterable[ChatIntent] = INTENTS):
        self._intents: tuple[ChatIntent, ...] = tuple(intents)
        validate_intents(self._intents)
        self._by_key = {intent.key: intent for intent in self._intents}

    @property
    def keys(self) -> list[str]:
        return [intent.key for intent in self._intents]

    def match(self, text: str) -> Optional[ChatIntent]:
        """First intent (declared order) with a pattern contained in `text`.

        Returns:
            The matched intent, or None if nothing matches
        """
        normalized = (text or "").lower().strip()
        if not normalized:
            return None

        for intent in self._intents:
            for pattern in intent.patterns:
                if pattern in normalized:
                    logger.debug(f"Matched intent {intent.key} on pattern {pattern!r}")
                    return intent

        return None

    def get(self, key: str) -> ChatIntent:
        """Look up an intent by key.

        Raises:
            UnknownIntentError: key is not registered
        """
        try:
            return self._by_key[key]
        except KeyError:
            raise UnknownIntentError(key) from None


# Singleton
_matcher: Optional[IntentMatcher] = None


def get_intent_matcher() -> IntentMatcher:
    """Get singleton IntentMatcher."""
    global _matcher
    if _matcher is None:
        _matcher = IntentMatcher()
    return _matcher
