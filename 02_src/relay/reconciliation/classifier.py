"""Authorship classifiers for inbound webhook messages."""

import re
from typing import Iterable, Protocol

from ..config import DEFAULT_BOT_KEYWORDS
from ..models import Authorship, InboundFragment, TrackedUserMessage, usable_text

_SENTENCE_PATTERN = re.compile(r"[A-Z].*[a-z].*[.!?]")


class IAuthorshipClassifier(Protocol):
    """Decides whether an inbound message is a bot reply."""

    def classify(
        self, inbound: InboundFragment, tracked: TrackedUserMessage | None
    ) -> Authorship:
        ...


class ExplicitFlagClassifier:
    """Trusts the ``isBot`` flag only; unflagged messages are unknown."""

    def classify(
        self, inbound: InboundFragment, tracked: TrackedUserMessage | None
    ) -> Authorship:
        if inbound.is_bot is True:
            return Authorship.BOT
        if inbound.is_bot is False:
            return Authorship.USER
        return Authorship.UNKNOWN


class HeuristicClassifier(ExplicitFlagClassifier):
    """Explicit flag first, then guesses from text shape.

    Unflagged text identical to the tracked user message is an echo. Images
    are always bot output. Otherwise text counts as a bot reply when it is
    long, asks or exclaims, contains a greeting keyword, or reads like a
    capitalised sentence. Short bot replies and long user messages can be
    misjudged.
    """

    def __init__(self, keywords: Iterable[str] = DEFAULT_BOT_KEYWORDS, min_length: int = 20):
        self._keywords = tuple(k.lower() for k in keywords)
        self._min_length = min_length

    def classify(
        self, inbound: InboundFragment, tracked: TrackedUserMessage | None
    ) -> Authorship:
        explicit = super().classify(inbound, tracked)
        if explicit is not Authorship.UNKNOWN:
            return explicit

        text = usable_text(inbound.text)
        if tracked is not None and text is not None and text == tracked.text:
            return Authorship.USER
        if inbound.image:
            return Authorship.BOT
        if text is not None and self.looks_like_bot(text):
            return Authorship.BOT
        return Authorship.USER

    def looks_like_bot(self, text: str) -> bool:
        if len(text) > self._min_length or "!" in text or "?" in text:
            return True
        lowered = text.lower()
        if any(keyword in lowered for keyword in self._keywords):
            return True
        return bool(_SENTENCE_PATTERN.search(text))


def build_classifier(
    heuristic: bool, keywords: Iterable[str] = DEFAULT_BOT_KEYWORDS
) -> IAuthorshipClassifier:
    """Pick the classifier variant for the configured policy."""
    if heuristic:
        return HeuristicClassifier(keywords=keywords)
    return ExplicitFlagClassifier()
