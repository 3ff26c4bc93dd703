"""Lifestyle match between a user's preferences and a pet from the shop.

Each trait contributes a 0..1 fit, weighted; the final score is 0..100.
"""
from __future__ import annotations

WEIGHTS = {
    "energy": 0.25,
    "space": 0.20,
    "maintenance": 0.20,
    "children": 0.175,
    "allergies": 0.175,
}


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def desired_energy(daily_availability) -> int:
    # roughly one energy point per two free hours a day
    if daily_availability is None:
        return 3
    return int(_clamp(round(daily_availability / 2), 1, 5))


def trait_fits(prefs: dict, pet) -> dict:
    energy = 1 - abs(pet.energy_level - desired_energy(prefs.get("daily_availability"))) / 4

    if prefs.get("has_outdoor_space"):
        space = 1.0
    else:
        space = 1 - max(0, pet.space_required - 2) / 3

    experience = prefs.get("experience_level") or 1
    overshoot = pet.maintenance - (experience + 1)
    maintenance = 1.0 if overshoot <= 0 else _clamp(1 - overshoot / 3, 0, 1)

    children = 0.0 if prefs.get("has_children") and not pet.child_friendly else 1.0
    allergies = 0.0 if prefs.get("has_allergies") and not pet.allergy_safe else 1.0

    return {
        "energy": _clamp(energy, 0, 1),
        "space": _clamp(space, 0, 1),
        "maintenance": maintenance,
        "children": children,
        "allergies": allergies,
    }


def match_score(prefs: dict, pet) -> int:
    fits = trait_fits(prefs, pet)
    return int(round(100 * sum(WEIGHTS[k] * v for k, v in fits.items())))


def rank(prefs: dict, pets, limit: int | None = None) -> list:
    scored = sorted(
        ((match_score(prefs, p), p) for p in pets),
        key=lambda pair: (-pair[0], pair[1].price, pair[1].id),
    )
    if limit is not None:
        scored = scored[:limit]
    return scored
