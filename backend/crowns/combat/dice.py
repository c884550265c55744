"""
Dice system

Standard D&D dice notation parsing and rolling. A ``DiceRoller`` owns its own
``random.Random`` so engines can be handed a seeded or scripted roller.
"""
import random
import re
from typing import Iterable, List, Optional, Tuple

_NOTATION = re.compile(r"(\d+)d(\d+)([+-]\d+)?")


def parse_notation(dice_notation: str) -> Tuple[int, int, int]:
    """
    Parse dice notation.

    Args:
        dice_notation: notation such as "1d20", "2d6", "3d8+2"

    Returns:
        Tuple[int, int, int]: (dice count, die size, flat modifier)
    """
    match = _NOTATION.fullmatch(dice_notation.lower().replace(" ", ""))
    if not match:
        raise ValueError(f"Invalid dice notation: {dice_notation}")

    num_dice = int(match.group(1))
    die_size = int(match.group(2))
    modifier = int(match.group(3)) if match.group(3) else 0
    if die_size < 1:
        raise ValueError(f"Invalid die size in {dice_notation}")
    return num_dice, die_size, modifier


class DiceRoller:
    """Dice roller"""

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        self.rng = rng or random.Random(seed)

    def roll_single(self, die_size: int) -> int:
        """Roll one die, result in 1..die_size."""
        return self.rng.randint(1, die_size)

    def roll_many(self, count: int, die_size: int) -> List[int]:
        """Roll ``count`` dice of the same size."""
        return [self.roll_single(die_size) for _ in range(max(0, count))]

    def roll(self, dice_notation: str) -> Tuple[int, List[int]]:
        """
        Roll dice from notation.

        Returns:
            Tuple[int, List[int]]: (total, individual dice)

        Example:
            roll("2d6+3") -> (11, [4, 4])  # 4+4+3=11
        """
        num_dice, die_size, modifier = parse_notation(dice_notation)
        rolls = self.roll_many(num_dice, die_size)
        return sum(rolls) + modifier, rolls

    def d20(self) -> int:
        return self.roll_single(20)


class ScriptedDice(DiceRoller):
    """
    Replays a fixed sequence of die faces.

    Each call to ``roll_single`` consumes the next value regardless of die
    size; running out of values is an error so tests notice unplanned rolls.
    """

    def __init__(self, values: Iterable[int]):
        super().__init__(seed=0)
        self._values = list(values)
        self._position = 0

    @property
    def remaining(self) -> int:
        return len(self._values) - self._position

    def push(self, *values: int) -> None:
        self._values.extend(values)

    def roll_single(self, die_size: int) -> int:
        if self._position >= len(self._values):
            raise RuntimeError(f"ScriptedDice exhausted while rolling d{die_size}")
        value = self._values[self._position]
        self._position += 1
        if not 1 <= value <= die_size:
            raise ValueError(f"Scripted value {value} is not a face of d{die_size}")
        return value
