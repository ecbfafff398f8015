from __future__ import annotations

import logging
import random

import requests

from .models import Answer


logger = logging.getLogger(__name__)


DEFAULT_WORDS = [
    "cat",
    "house",
    "bicycle",
    "rocket",
    "umbrella",
    "lighthouse",
    "dragon",
    "guitar",
    "volcano",
    "penguin",
    "castle",
    "snowman",
]


ANIMES_QUERY = """
query($limit: Int, $order: OrderEnum) {
  animes(limit: $limit, order: $order) {
    id
    name
    russian
    poster { originalUrl }
  }
}
"""


class AnswerSource:
    """Supplies the target of a round.

    ``fetch_answer`` may block; rooms call it in the background. It returns
    ``None`` when no answer is available instead of raising.
    """

    def fetch_answer(self) -> Answer | None:
        raise NotImplementedError


class WordListAnswerSource(AnswerSource):
    def __init__(self, words: list[str] | None = None, rng: random.Random | None = None) -> None:
        self.words = [w for w in (words or DEFAULT_WORDS) if w]
        self._rng = rng or random.Random()

    def fetch_answer(self) -> Answer | None:
        if not self.words:
            return None
        word = self._rng.choice(self.words)
        return Answer(label=word, poster_url="", value=word)


class ShikimoriAnswerSource(AnswerSource):
    """Picks a random popular title from the Shikimori GraphQL catalog."""

    def __init__(
        self,
        url: str,
        limit: int = 50,
        order: str = "popularity",
        timeout: float = 10.0,
        session: requests.Session | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.url = url
        self.limit = limit
        self.order = order
        self.timeout = timeout
        self._session = session or requests.Session()
        self._rng = rng or random.Random()

    def fetch_answer(self) -> Answer | None:
        try:
            response = self._session.post(
                self.url,
                json={"query": ANIMES_QUERY, "variables": {"limit": self.limit, "order": self.order}},
                timeout=self.timeout,
            )
            response.raise_for_status()
            animes = (response.json().get("data") or {}).get("animes") or []
        except (requests.RequestException, ValueError, AttributeError) as exc:
            logger.warning("Answer catalog request to %s failed: %s", self.url, exc)
            return None

        if not animes:
            logger.warning("Answer catalog at %s returned no titles", self.url)
            return None

        anime = self._rng.choice(animes)
        try:
            return Answer(
                label=" | ".join(part for part in (anime.get("name"), anime.get("russian")) if part),
                poster_url=((anime.get("poster") or {}).get("originalUrl") or ""),
                value=str(anime["id"]),
            )
        except (KeyError, AttributeError, TypeError) as exc:
            logger.warning("Malformed title in answer catalog response: %s", exc)
            return None


def build_answer_source(config) -> AnswerSource:
    kind = getattr(config, "ANSWER_SOURCE", "shikimori")
    if kind == "words":
        return WordListAnswerSource(getattr(config, "ANSWER_WORDS", None))
    if kind == "shikimori":
        return ShikimoriAnswerSource(
            url=config.ANSWER_SOURCE_URL,
            limit=config.ANSWER_SOURCE_LIMIT,
            timeout=config.ANSWER_SOURCE_TIMEOUT_SEC,
        )
    raise ValueError(f"Unknown ANSWER_SOURCE {kind!r}")
