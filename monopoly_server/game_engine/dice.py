"""
Dice rolling mechanics.
"""
import random
from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class DiceResult:
    """Result of rolling two dice."""
    die1: int
    die2: int

    @property
    def total(self) -> int:
        """Sum of both dice."""
        return self.die1 + self.die2

    @property
    def is_double(self) -> bool:
        """Check if both dice show the same value."""
        return self.die1 == self.die2

    def to_list(self) -> list[int]:
        """Return dice as a list."""
        return [self.die1, self.die2]


class Dice:
    """Two independent six-sided dice for one room."""

    def __init__(self, seed: int | None = None):
        """
        Initialize dice roller.

        Args:
            seed: Optional seed for reproducible rolls (useful for testing)
        """
        self._random = random.Random(seed)

    def roll(self) -> DiceResult:
        """
        Roll two six-sided dice.

        Returns:
            DiceResult with values of both dice
        """
        die1 = self._random.randint(1, 6)
        die2 = self._random.randint(1, 6)
        return DiceResult(die1=die1, die2=die2)


class LoadedDice(Dice):
    """
    Dice that replay a fixed script of rolls.

    Used by tests and replays; once the script runs out it falls back to
    random rolls.
    """

    def __init__(self, rolls: Iterable[tuple[int, int]] = (), seed: int | None = None):
        super().__init__(seed)
        self._script = [DiceResult(die1=a, die2=b) for a, b in rolls]

    def queue(self, die1: int, die2: int) -> None:
        self._script.append(DiceResult(die1=die1, die2=die2))

    def roll(self) -> DiceResult:
        if self._script:
            return self._script.pop(0)
        return super().roll()
