"""
Difficulty Adjustment for adaptive RIT assessments.

After every answer the target difficulty moves up (correct) or down
(incorrect) by a step drawn uniformly from {3, 4, 5}, clamped to the RIT
scale. The random source is injectable so callers can pin the draws.
"""

import random
from typing import Optional, Tuple

from rit_backend.common.logger import app_logger
from rit_backend.domain.items.model import MAX_DIFFICULTY, MIN_DIFFICULTY

logger = app_logger.getChild("rit.difficulty")

STEP_CHOICES: Tuple[int, ...] = (3, 4, 5)


def clamp(difficulty: int) -> int:
    """Clamp a difficulty onto the [100, 350] scale."""
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, difficulty))


class DifficultyAdjuster:
    """
    Maps (current difficulty, correctness) to the next target difficulty.

    Stateless apart from the random source.

    Args:
        rng: Random source; only its ``choice`` method is used
    """

    MIN_DIFFICULTY = MIN_DIFFICULTY
    MAX_DIFFICULTY = MAX_DIFFICULTY
    STEP_CHOICES = STEP_CHOICES

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def draw_step(self) -> int:
        return self._rng.choice(STEP_CHOICES)

    def next(self, current_difficulty: int, was_correct: bool) -> int:
        """
        Compute the next target difficulty.

        Args:
            current_difficulty: The current target difficulty
            was_correct: Whether the last answer was correct

        Returns:
            The next target, always within [100, 350]
        """
        step = self.draw_step()
        if was_correct:
            target = min(MAX_DIFFICULTY, current_difficulty + step)
        else:
            target = max(MIN_DIFFICULTY, current_difficulty - step)
        # Out-of-scale inputs are pulled back on the scale too
        target = clamp(target)
        logger.debug(
            f"Difficulty {current_difficulty} -> {target} "
            f"({'correct' if was_correct else 'incorrect'}, step {step})"
        )
        return target
