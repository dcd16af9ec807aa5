"""Guess validation: exact and near-miss matching of guesses against the word."""

from __future__ import annotations

import math

DEFAULT_MAX_LENGTH = 100


class GuessValidator:
    """Stateless guess text checks.

    Attributes:
        max_length: Longest accepted guess.
    """

    def __init__(self, max_length: int = DEFAULT_MAX_LENGTH) -> None:
        self.max_length = max_length

    def is_valid_guess(self, guess: str | None) -> bool:
        """Check that a guess is non-empty after trimming and not too long."""
        if guess is None:
            return False
        trimmed = guess.strip()
        return bool(trimmed) and len(trimmed) <= self.max_length

    @staticmethod
    def is_correct_guess(guess: str | None, word: str | None) -> bool:
        """Case-insensitive, whitespace-trimmed exact match."""
        if guess is None or word is None:
            return False
        return guess.strip().lower() == word.strip().lower()

    def is_close_guess(self, guess: str | None, word: str | None) -> bool:
        """Check whether a wrong guess is within a small edit distance.

        Exact matches are never close. Words of three letters or fewer require
        an exact match. Otherwise the allowed distance is 1 for words of up to
        five letters and 2 for longer words.

        Args:
            guess: The guessed text.
            word: The secret word.

        Returns:
            True if the guess deserves a private "close" notice.
        """
        if guess is None or word is None:
            return False
        if self.is_correct_guess(guess, word):
            return False
        target = word.strip()
        if len(target) <= 3:
            return False
        threshold = 1 if len(target) <= 5 else 2
        return self.levenshtein_distance(guess.strip(), target) <= threshold

    @staticmethod
    def levenshtein_distance(s1: str | None, s2: str | None) -> float:
        """Case-insensitive edit distance with unit insert/delete/substitute cost.

        Args:
            s1: First string.
            s2: Second string.

        Returns:
            The distance, or ``math.inf`` if either input is None.
        """
        if s1 is None or s2 is None:
            return math.inf
        a, b = s1.lower(), s2.lower()
        previous = list(range(len(b) + 1))
        for i, char_a in enumerate(a, start=1):
            current = [i]
            for j, char_b in enumerate(b, start=1):
                cost = 0 if char_a == char_b else 1
                current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
            previous = current
        return previous[-1]
