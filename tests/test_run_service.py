# tests/test_run_service.py

from unittest.mock import patch

import pytest

from services.run_service import RunNotFoundError, RunService, TargetSetNotFoundError
from services.target_service import TargetService
from services.weighting_types import Caps, SampleCount


def _service(writer=None):
    return RunService(TargetService(client_factory=lambda: None), snapshot_writer=writer or (lambda run, result: None))


def _run(service, **overrides):
    kwargs = dict(
        target_set_id="acs_all_adults_national",
        variables=["GENDER"],
        party_variable="PARTY",
        party_targets={"DEM": 0.33},
        refusals={},
        caps=Caps(min=0.5, max=2.0),
    )
    kwargs.update(overrides)
    return service.create_run(**kwargs)


def test_counts_accumulate_and_result_is_stored():
    writes = []
    service = _service(writer=lambda run, result: writes.append((run.id, result)))
    run = _run(service)

    service.add_sample_counts(run.id, [SampleCount("GENDER", "MALE", 30)])
    service.add_sample_counts(run.id, [SampleCount("GENDER", "MALE", 20), SampleCount("GENDER", "FEMALE", 50)])
    assert len(service.get_run(run.id).sample_counts) == 3

    assert service.get_last_result(run.id) is None
    result = service.compute(run.id)

    rows = {(r.variable, r.category): r for r in result.category_table}
    assert rows[("GENDER", "MALE")].sample_share == pytest.approx(0.5)
    assert ("PARTY", "DEM") in rows
    assert service.get_last_result(run.id) is result
    assert writes == [(run.id, result)]


def test_compute_is_repeatable_for_same_run():
    service = _service()
    run = _run(service)
    service.add_sample_counts(run.id, [SampleCount("GENDER", "MALE", 10), SampleCount("GENDER", "FEMALE", 10)])
    assert service.compute(run.id) == service.compute(run.id)


def test_unknown_run_raises():
    service = _service()
    with pytest.raises(RunNotFoundError):
        service.add_sample_counts("nope", [])
    with pytest.raises(RunNotFoundError):
        service.compute("nope")
    assert service.get_run("nope") is None
    assert service.get_last_result("nope") is None


def test_unknown_target_set_raises():
    service = _service()
    run = _run(service, target_set_id="missing")
    with pytest.raises(TargetSetNotFoundError) as exc:
        service.compute(run.id)
    assert str(exc.value) == "Target set missing not found"


def test_missing_party_variable_logs_warning():
    service = _service()
    run = _run(service, party_variable="VOTE")
    with patch("services.run_service.logger") as mock_logger:
        result = service.compute(run.id)
    assert mock_logger.warning.called
    assert {r.variable for r in result.category_table} == {"GENDER"}
