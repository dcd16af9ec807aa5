"""In-memory word bank for drawing rounds."""

from __future__ import annotations

import random
import threading

import structlog

from canvasclash.game.types import DifficultyLevel

logger = structlog.get_logger(__name__)

DEFAULT_WORD_LISTS: dict[DifficultyLevel, list[str]] = {
    DifficultyLevel.EASY: [
        "cat", "dog", "sun", "moon", "tree", "house", "car", "fish", "bird", "boat",
        "ball", "book", "cake", "door", "eye", "fire", "gift", "hand", "ice", "jump",
        "key", "lamp", "mouse", "nose", "orange", "pig", "queen", "rain", "star", "table",
    ],
    DifficultyLevel.MEDIUM: [
        "airplane", "basketball", "butterfly", "computer", "dinosaur", "elephant",
        "fireworks", "giraffe", "hamburger", "iceberg", "jellyfish", "kangaroo",
        "lightning", "mushroom", "newspaper", "octopus", "penguin", "rainbow",
        "sandwich", "telescope", "umbrella", "volcano", "waterfall", "xylophone",
    ],
    DifficultyLevel.HARD: [
        "astronaut", "bluetooth", "camouflage", "democracy", "ecosystem",
        "flashlight", "graduation", "hibernate", "infinity", "jigsaw",
        "kaleidoscope", "labyrinth", "metamorphosis", "nightmare", "orchestra",
        "parachute", "quicksand", "reflection", "silhouette", "trampoline",
    ],
}  # fmt: skip


class WordBank:
    """Selects word options while avoiding recently drawn words.

    Words are excluded once marked used. When fewer unused words remain than
    requested, the exclusion set is cleared and the whole pool is available
    again.

    Attributes:
        word_lists: Words organized by difficulty.
        difficulty: Difficulty to draw from, or None for every list.
        used_words: Words drawn since the last exhaustion reset.
    """

    def __init__(
        self,
        *,
        word_lists: dict[DifficultyLevel, list[str]] | None = None,
        words: list[str] | None = None,
        difficulty: DifficultyLevel | None = None,
    ) -> None:
        """Initialize the word bank.

        Args:
            word_lists: Custom word lists organized by difficulty. If None, uses
                the default lists.
            words: A flat custom list. Takes precedence over ``word_lists``.
            difficulty: Restrict selection to one difficulty.
        """
        if words is not None:
            self.word_lists = {DifficultyLevel.MEDIUM: list(words)}
            difficulty = None
        else:
            self.word_lists = {level: list(items) for level, items in (word_lists or DEFAULT_WORD_LISTS).items()}
        self.difficulty = difficulty
        self.used_words: set[str] = set()
        self._lock = threading.Lock()

    def _pool(self) -> list[str]:
        if self.difficulty is not None and self.difficulty in self.word_lists:
            return list(dict.fromkeys(self.word_lists[self.difficulty]))
        return list(dict.fromkeys(word for items in self.word_lists.values() for word in items))

    def get_word_options(self, count: int = 3) -> list[str]:
        """Get random distinct word options for a drawing round.

        Args:
            count: Number of word options to return.

        Returns:
            ``min(count, pool size)`` distinct words.
        """
        with self._lock:
            pool = self._pool()
            available = [word for word in pool if word not in self.used_words]
            if len(available) < count:
                logger.debug("Word pool exhausted, resetting used words", used=len(self.used_words))
                self.used_words.clear()
                available = pool
            return random.sample(available, min(count, len(available)))

    def mark_used(self, word: str) -> None:
        """Exclude a word from future options.

        Args:
            word: The word that was drawn.
        """
        with self._lock:
            self.used_words.add(word)

    def reset(self) -> None:
        """Make every word available again."""
        with self._lock:
            self.used_words.clear()

    def get_word_count(self) -> int:
        """Return the number of distinct words in the selection pool."""
        return len(self._pool())
