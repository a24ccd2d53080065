from .beatmap import (
    Beatmap,
    Circle,
    HitObject,
    HoldNote,
    Slider,
    Spinner,
    TimingPoint,
)
from .cache import DifficultyCache
from .calculator import Calculator
from .errors import (
    ComputationFailed,
    EmptyBeatmap,
    InvalidModifierCombination,
    ModifierMismatch,
    StarppError,
)
from .game_mode import GameMode
from .mod import Mod, ModifierSet
from .performance import ScoreParams
from .position import Position

__version__ = "0.1.0"


__all__ = [
    "Beatmap",
    "Calculator",
    "Circle",
    "ComputationFailed",
    "DifficultyCache",
    "EmptyBeatmap",
    "GameMode",
    "HitObject",
    "HoldNote",
    "InvalidModifierCombination",
    "Mod",
    "ModifierMismatch",
    "ModifierSet",
    "Position",
    "ScoreParams",
    "Slider",
    "Spinner",
    "StarppError",
    "TimingPoint",
]
