"""
target_seed.py

Built-in demographic target set used when no target storage is configured,
when storage is unreachable, or when it holds no target sets.

Shares are national adult (18+) population proportions. Each variable's
shares sum to 1.0; this is checked at import time so a bad edit fails fast.
"""

from __future__ import annotations

from typing import List, Tuple

from services.weighting_types import TargetCategory, TargetSet, VariableDefinition

SEED_TARGET_SET_ID = "acs_all_adults_national"

_SEED_VARIABLES: List[Tuple[str, str, List[Tuple[str, str, float]]]] = [
    ("RACE", "Race / ethnicity", [
        ("WHITE", "White, non-Hispanic", 0.615),
        ("BLACK", "Black, non-Hispanic", 0.120),
        ("HISPANIC", "Hispanic", 0.170),
        ("ASIAN", "Asian, non-Hispanic", 0.060),
        ("OTHER", "Other / multiracial", 0.035),
    ]),
    ("GENDER", "Gender", [
        ("MALE", "Male", 0.485),
        ("FEMALE", "Female", 0.515),
    ]),
    ("AGE", "Age", [
        ("18_29", "18-29", 0.205),
        ("30_44", "30-44", 0.255),
        ("45_64", "45-64", 0.325),
        ("65_PLUS", "65+", 0.215),
    ]),
    ("INCOME", "Household income", [
        ("UNDER_50K", "Under $50k", 0.365),
        ("50K_100K", "$50k-$100k", 0.295),
        ("100K_PLUS", "$100k+", 0.340),
    ]),
    ("REGION", "Census region", [
        ("NORTHEAST", "Northeast", 0.175),
        ("MIDWEST", "Midwest", 0.205),
        ("SOUTH", "South", 0.385),
        ("WEST", "West", 0.235),
    ]),
    ("PARTY", "Party identification", [
        ("DEM", "Democrat", 0.33),
        ("REP", "Republican", 0.30),
        ("IND_OTHER", "Independent / other", 0.37),
    ]),
]


def _build_seed() -> TargetSet:
    variables = []
    for key, label, categories in _SEED_VARIABLES:
        total = sum(share for _, _, share in categories)
        # guardrail: misconfigured shares should never ship
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Seed shares for {key} must sum to 1.0 (got {total})")
        variables.append(
            VariableDefinition(
                key=key,
                label=label,
                categories=tuple(TargetCategory(key=c, label=l, share=s) for c, l, s in categories),
            )
        )
    return TargetSet(
        id=SEED_TARGET_SET_ID,
        name="ACS 5-year, all adults, national",
        universe="Adults 18+",
        geography="United States",
        variables=tuple(variables),
    )


SEED_TARGET_SET: TargetSet = _build_seed()

# Variables selected when a caller does not name any (party is added separately).
DEFAULT_SELECTED_VARIABLES: List[str] = ["RACE", "GENDER", "AGE", "INCOME", "REGION"]
