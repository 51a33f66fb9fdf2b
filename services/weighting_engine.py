# services/weighting_engine.py
"""
Cell-weighting engine.

Pure calculation shared by the HTTP service and the offline CLI:
no I/O, no logging, no state kept between calls. Each variable is
weighted independently in a single pass (this is not raking).

Pipeline:
  1. refusal adjustment of target shares
  2. observed sample shares from raw counts
  3. ratio weight per category, clipped into [caps.min, caps.max]
  4. party post-stratification override (one variable only)
  5. diagnostics (cap hits)
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from services.weighting_types import (
    CapHit,
    Caps,
    CategoryResult,
    ComputeResult,
    Diagnostics,
    PartyTargets,
    RefusalMap,
    SampleCount,
    TargetSet,
    VariableDefinition,
)

# Floor used when reporting the suggested weight of a zero-observed category.
SUGGESTED_WEIGHT_FLOOR = 1e-6

VariableState = Dict[str, CategoryResult]


# ---------------------------
# Step 1: Refusal adjustment
# ---------------------------
def adjust_for_refusals(
    variables: Sequence[VariableDefinition],
    refusals: RefusalMap,
) -> List[VariableDefinition]:
    """
    Rescales each variable's shares by (1 - refusal rate) and renormalizes
    them to sum to 1. Variables without a positive rate pass through.
    """
    adjusted: List[VariableDefinition] = []
    for variable in variables:
        rate = float(refusals.get(variable.key, 0) or 0)
        if rate <= 0:
            adjusted.append(variable)
            continue

        scaled = [category.share * (1 - rate) for category in variable.categories]
        total = sum(scaled)
        categories = tuple(
            replace(category, share=(value / total) if total != 0 else 0.0)
            for category, value in zip(variable.categories, scaled)
        )
        adjusted.append(replace(variable, categories=categories))
    return adjusted


# ---------------------------
# Step 2: Observed sample shares
# ---------------------------
def build_sample_shares(counts: Iterable[SampleCount]) -> Dict[str, Dict[str, float]]:
    """
    variable -> category -> observed share.

    Duplicate (variable, category) counts are summed. A variable whose
    total count is 0 gets an empty mapping (every share reads as 0).
    """
    grouped: Dict[str, Dict[str, float]] = {}
    totals: Dict[str, float] = {}

    for count in counts:
        by_category = grouped.setdefault(count.variable, {})
        by_category[count.category] = by_category.get(count.category, 0.0) + count.n
        totals[count.variable] = totals.get(count.variable, 0.0) + count.n

    shares: Dict[str, Dict[str, float]] = {}
    for variable, by_category in grouped.items():
        total = totals.get(variable, 0.0)
        if total == 0:
            shares[variable] = {}
            continue
        shares[variable] = {category: n / total for category, n in by_category.items()}
    return shares


# ---------------------------
# Step 3: Ratio weights
# ---------------------------
def clip_weight(value: float, caps: Caps) -> Tuple[float, bool]:
    if value < caps.min:
        return caps.min, True
    if value > caps.max:
        return caps.max, True
    return value, False


def _ratio_weight(target: float, observed: float, caps: Caps) -> Tuple[float, bool]:
    # A category nobody was sampled in cannot reach its target: pin it to
    # the ceiling and report it as capped.
    if observed == 0:
        return caps.max, True
    return clip_weight(target / observed, caps)


def weight_variable(
    variable: VariableDefinition,
    sample_shares: Dict[str, float],
    caps: Caps,
) -> VariableState:
    state: VariableState = {}
    for category in variable.categories:
        observed = sample_shares.get(category.key, 0.0)
        weight, capped = _ratio_weight(category.share, observed, caps)
        state[category.key] = CategoryResult(
            variable=variable.key,
            category=category.key,
            target=category.share,
            sample_share=observed,
            weight=weight,
            capped=capped,
        )
    return state


# ---------------------------
# Step 4: Party post-stratification
# ---------------------------
def post_stratify_party(
    party_state: VariableState,
    party_targets: PartyTargets,
    caps: Caps,
) -> VariableState:
    """
    Returns replacement entries for the party variable: each category is
    re-weighted against its caller-supplied party target, or against the
    target already on record when no party target is given.
    """
    replaced: VariableState = {}
    for category_key, state in party_state.items():
        desired = party_targets.get(category_key, state.target)
        weight, capped = _ratio_weight(desired, state.sample_share, caps)
        replaced[category_key] = replace(state, target=desired, weight=weight, capped=capped)
    return replaced


# ---------------------------
# Step 5: Diagnostics
# ---------------------------
def summarize_diagnostics(states: Dict[str, VariableState]) -> Diagnostics:
    cap_hits: List[CapHit] = []
    for variable_key, categories in states.items():
        for category_key, state in categories.items():
            if not state.capped:
                continue
            cap_hits.append(
                CapHit(
                    variable=variable_key,
                    category=category_key,
                    suggested_weight=state.target / max(state.sample_share, SUGGESTED_WEIGHT_FLOOR),
                    capped_to=state.weight,
                )
            )
    return Diagnostics(iterations=1, converged=True, cap_hits=tuple(cap_hits))


def _flatten(states: Dict[str, VariableState]) -> Tuple[CategoryResult, ...]:
    return tuple(result for categories in states.values() for result in categories.values())


# ---------------------------
# Entry points
# ---------------------------
def compute(
    target_variables: Sequence[VariableDefinition],
    sample_counts: Iterable[SampleCount],
    refusals: Optional[RefusalMap],
    party_variable: Optional[str],
    party_targets: Optional[PartyTargets],
    caps: Caps,
) -> Tuple[Tuple[CategoryResult, ...], Diagnostics]:
    adjusted = adjust_for_refusals(target_variables, refusals or {})
    sample_shares = build_sample_shares(sample_counts)

    states: Dict[str, VariableState] = {}
    for variable in adjusted:
        states[variable.key] = weight_variable(variable, sample_shares.get(variable.key, {}), caps)

    if party_variable and party_variable in states:
        states[party_variable] = post_stratify_party(states[party_variable], party_targets or {}, caps)

    return _flatten(states), summarize_diagnostics(states)


def compute_weights(
    run_id: str,
    target_set: TargetSet,
    counts: Iterable[SampleCount],
    refusals: Optional[RefusalMap],
    party_variable: Optional[str],
    party_targets: Optional[PartyTargets],
    caps: Caps,
) -> ComputeResult:
    table, diagnostics = compute(
        target_set.variables,
        counts,
        refusals,
        party_variable,
        party_targets,
        caps,
    )
    return ComputeResult(
        run_id=run_id,
        category_table=table,
        diagnostics=diagnostics,
        respondent_weights_available=False,
    )


def select_variables(
    target_set: TargetSet,
    variables: Sequence[str],
    party_variable: Optional[str],
) -> Tuple[TargetSet, bool]:
    """
    Narrows a target set to the selected variables, appending the party
    variable when it was not selected.

    Returns (narrowed set, party_found). party_found is False when the
    target set has no variable with the party key.
    """
    wanted = set(variables)
    kept = [variable for variable in target_set.variables if variable.key in wanted]

    party_found = True
    if party_variable and not any(variable.key == party_variable for variable in kept):
        party = target_set.find_variable(party_variable)
        if party is not None:
            kept.append(party)
        else:
            party_found = False

    return replace(target_set, variables=tuple(kept)), party_found
