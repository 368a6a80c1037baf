"""Built-in mode families, in load order (basic first)."""

from . import (
    basic,
    chastity,
    denial_domina,
    evil_edging_mistress,
    frustration,
    hypno,
    milk_maid,
    pet_training,
    robotic,
)

BUILTIN_MODES = [
    basic.MODE,
    denial_domina.MODE,
    milk_maid.MODE,
    pet_training.MODE,
    robotic.MODE,
    evil_edging_mistress.MODE,
    frustration.MODE,
    hypno.MODE,
    chastity.MODE,
]

__all__ = ["BUILTIN_MODES"]
