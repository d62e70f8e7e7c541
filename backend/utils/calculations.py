import math

PROTEIN_KCAL_PER_G = 4
CARBS_KCAL_PER_G = 4
FAT_KCAL_PER_G = 9


def _finite(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def calories_from_macros(protein_g, carbs_g, fat_g) -> float:
    """Atwater estimate; must stay in step with the meal_entries.total_calories column."""
    return (
        _finite(protein_g) * PROTEIN_KCAL_PER_G
        + _finite(carbs_g) * CARBS_KCAL_PER_G
        + _finite(fat_g) * FAT_KCAL_PER_G
    )


def entry_calories(calories_override, protein_g, carbs_g, fat_g) -> float:
    if calories_override is not None:
        return _finite(calories_override)
    return calories_from_macros(protein_g, carbs_g, fat_g)
