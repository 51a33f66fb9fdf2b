# tools/compute_offline.py
"""
Offline weighting: runs the same engine as the API on a JSON input file,
without the run registry or any storage round-trip (the seed target set is
built in; a full target set can also be embedded in the input).

Usage (from backend root):
  python tools/compute_offline.py input.json
  python tools/compute_offline.py input.json --format csv --output weights.csv

Input shape (every key optional except counts):
  {
    "targetSetId": "acs_all_adults_national",
    "targetSet": {...},                      # overrides targetSetId
    "variables": ["RACE", "GENDER", ...],
    "partyVariable": "PARTY",
    "partyTargets": {"DEM": 0.33, ...},
    "refusals": {"INCOME": 0.13},
    "caps": {"min": 0.5, "max": 2.0},
    "counts": [{"variable": "AGE", "category": "18_29", "n": 120}, ...]
  }

counts may also be given as {"AGE": {"18_29": 120, ...}, ...}.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from pydantic import BaseModel, Field, ValidationError

from config.settings import load_settings
from config.target_seed import DEFAULT_SELECTED_VARIABLES, SEED_TARGET_SET
from schemas import CapsModel, NonNegativeFloat, Rate, SampleCountItem, TargetSetModel
from services import weighting_engine
from services.export_service import render_category_csv, result_payload
from services.target_service import TargetService
from services.weighting_types import (
    ComputeResult,
    SampleCount,
    TargetCategory,
    TargetSet,
    VariableDefinition,
)

OFFLINE_RUN_ID = "offline"


class OfflineInput(BaseModel):
    targetSetId: Optional[str] = None
    targetSet: Optional[TargetSetModel] = None
    variables: Optional[List[str]] = None
    partyVariable: Optional[str] = None
    partyTargets: Dict[str, NonNegativeFloat] = Field(default_factory=dict)
    refusals: Dict[str, Rate] = Field(default_factory=dict)
    caps: Optional[CapsModel] = None
    counts: Union[List[SampleCountItem], Dict[str, Dict[str, NonNegativeFloat]]]


def _target_set_from_model(model: TargetSetModel) -> TargetSet:
    return TargetSet(
        id=model.id,
        name=model.name,
        universe=model.universe,
        geography=model.geography,
        variables=tuple(
            VariableDefinition(
                key=v.key,
                label=v.label,
                categories=tuple(TargetCategory(key=c.key, label=c.label, share=c.share) for c in v.categories),
            )
            for v in model.variables
        ),
    )


def _sample_counts(counts) -> List[SampleCount]:
    if isinstance(counts, dict):
        return [
            SampleCount(variable=variable, category=category, n=n)
            for variable, by_category in counts.items()
            for category, n in by_category.items()
        ]
    return [c.to_sample_count() for c in counts]


def resolve_target_set(payload: OfflineInput, target_service: Optional[TargetService] = None) -> TargetSet:
    if payload.targetSet is not None:
        return _target_set_from_model(payload.targetSet)
    if not payload.targetSetId or payload.targetSetId == SEED_TARGET_SET.id:
        return SEED_TARGET_SET

    found = (target_service or TargetService()).get_target_set(payload.targetSetId)
    if found is None:
        raise LookupError(f"Target set {payload.targetSetId} not found")
    return found


def compute_offline(raw: Dict[str, Any], target_service: Optional[TargetService] = None) -> ComputeResult:
    settings = load_settings()
    payload = OfflineInput.model_validate(raw)

    target_set = resolve_target_set(payload, target_service)
    variables = payload.variables if payload.variables is not None else DEFAULT_SELECTED_VARIABLES
    party_variable = payload.partyVariable or settings.party_variable
    caps = payload.caps.to_caps() if payload.caps else CapsModel(min=settings.cap_min, max=settings.cap_max).to_caps()

    selected, _ = weighting_engine.select_variables(target_set, variables, party_variable)
    return weighting_engine.compute_weights(
        OFFLINE_RUN_ID,
        selected,
        _sample_counts(payload.counts),
        payload.refusals,
        party_variable,
        payload.partyTargets,
        caps,
    )


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(description="Compute category weights offline from a JSON input file.")
    p.add_argument("input", type=Path, help="Path to the JSON input file.")
    p.add_argument("--format", choices=["json", "csv"], default="json", help="Output format (default: json).")
    p.add_argument("--output", type=Path, default=None, help="Write to this file instead of stdout.")
    args = p.parse_args(argv)

    try:
        raw = json.loads(args.input.read_text(encoding="utf-8"))
        result = compute_offline(raw)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Could not read {args.input}: {e}", file=sys.stderr)
        return 2
    except ValidationError as e:
        print(f"Invalid payload:\n{e}", file=sys.stderr)
        return 2
    except LookupError as e:
        print(str(e), file=sys.stderr)
        return 1

    if args.format == "csv":
        text = render_category_csv(result.category_table)
    else:
        text = json.dumps(result_payload(result), indent=2)

    if args.output:
        args.output.write_text(text, encoding="utf-8")
        print(f"Wrote {args.output}")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
