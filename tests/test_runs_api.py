# tests/test_runs_api.py

import pytest

RUN_PAYLOAD = {
    "targetSetId": "acs_all_adults_national",
    "variables": ["AGE", "GENDER"],
    "partyVariable": "PARTY",
    "partyTargets": {"DEM": 0.33, "REP": 0.30, "IND_OTHER": 0.37},
    "refusals": {"AGE": 0.1},
    "caps": {"min": 0.5, "max": 2.0},
}


def _create_run(client, **overrides):
    payload = {**RUN_PAYLOAD, **overrides}
    r = client.post("/api/v1/runs", json=payload)
    assert r.status_code == 201
    return r.json()["runId"]


def test_create_and_fetch_run(client):
    run_id = _create_run(client)

    r = client.get(f"/api/v1/runs/{run_id}")
    assert r.status_code == 200
    body = r.json()
    assert body["targetSetId"] == "acs_all_adults_national"
    assert body["variables"] == ["AGE", "GENDER"]
    assert body["caps"] == {"min": 0.5, "max": 2.0}
    assert body["hasResult"] is False


def test_full_run_flow(client, party_counts):
    run_id = _create_run(client)

    r = client.post(f"/api/v1/runs/{run_id}/sample-counts", json={"counts": party_counts})
    assert r.status_code == 204

    r = client.post(
        f"/api/v1/runs/{run_id}/sample-counts",
        json={"counts": [{"variable": "GENDER", "category": "MALE", "n": 45},
                         {"variable": "GENDER", "category": "FEMALE", "n": 55}]},
    )
    assert r.status_code == 204

    r = client.post(f"/api/v1/runs/{run_id}/compute")
    assert r.status_code == 200
    body = r.json()

    assert body["runId"] == run_id
    assert body["respondentWeightsAvailable"] is False
    assert body["diagnostics"]["iterations"] == 1
    assert body["diagnostics"]["converged"] is True

    rows = {(row["variable"], row["category"]): row for row in body["categoryTable"]}
    # AGE (4) + GENDER (2) + PARTY appended (3)
    assert len(rows) == 9

    dem = rows[("PARTY", "DEM")]
    assert dem["target"] == 0.33
    assert dem["sampleShare"] == pytest.approx(0.40)
    assert dem["weight"] == pytest.approx(0.825)
    assert dem["capped"] is False
    assert rows[("PARTY", "IND_OTHER")]["weight"] == pytest.approx(1.48)

    # No AGE counts were uploaded: every age cell is pinned to the ceiling.
    age_rows = [row for key, row in rows.items() if key[0] == "AGE"]
    assert all(row["weight"] == 2.0 and row["capped"] for row in age_rows)
    age_hits = [h for h in body["diagnostics"]["capHits"] if h["variable"] == "AGE"]
    assert len(age_hits) == 4
    assert all(h["cappedTo"] == 2.0 for h in age_hits)

    r = client.get(f"/api/v1/runs/{run_id}")
    assert r.json()["hasResult"] is True
    assert r.json()["sampleCountEntries"] == 5


def test_export_category_weights_csv(client, party_counts):
    run_id = _create_run(client)

    r = client.get(f"/api/v1/runs/{run_id}/export/category-weights.csv")
    assert r.status_code == 404
    assert r.json()["message"] == "Run results not found. Compute the run first."

    client.post(f"/api/v1/runs/{run_id}/sample-counts", json={"counts": party_counts})
    client.post(f"/api/v1/runs/{run_id}/compute")

    r = client.get(f"/api/v1/runs/{run_id}/export/category-weights.csv")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert f'filename="{run_id}-category-weights.csv"' in r.headers["content-disposition"]

    lines = r.text.strip().splitlines()
    assert lines[0] == "variable,category,target,sampleShare,weight,capped"
    assert len(lines) == 1 + 9
    assert any(line.startswith("PARTY,DEM,0.33,0.4,") and line.endswith(",false") for line in lines)


def test_respondent_weights_not_available(client):
    run_id = _create_run(client)
    r = client.get(f"/api/v1/runs/{run_id}/export/respondent-weights.csv")
    assert r.status_code == 404
    assert "not available" in r.json()["message"]


def test_unknown_run(client):
    assert client.get("/api/v1/runs/does-not-exist").status_code == 404

    r = client.post("/api/v1/runs/does-not-exist/compute")
    assert r.status_code == 404
    assert r.json() == {"message": "Run not found"}

    r = client.post(
        "/api/v1/runs/does-not-exist/sample-counts",
        json={"counts": [{"variable": "AGE", "category": "18_29", "n": 1}]},
    )
    assert r.status_code == 404


def test_unknown_target_set(client):
    run_id = _create_run(client, targetSetId="missing-set")
    r = client.post(f"/api/v1/runs/{run_id}/compute")
    assert r.status_code == 404
    assert r.json()["message"] == "Target set missing-set not found"


def test_missing_party_variable_is_skipped(client):
    run_id = _create_run(client, partyVariable="VOTE", variables=["GENDER"])
    r = client.post(f"/api/v1/runs/{run_id}/compute")
    assert r.status_code == 200
    assert {row["variable"] for row in r.json()["categoryTable"]} == {"GENDER"}


@pytest.mark.parametrize(
    "overrides",
    [
        {"targetSetId": ""},
        {"variables": []},
        {"partyTargets": {"DEM": -0.1}},
        {"refusals": {"INCOME": 1.5}},
        {"caps": {"min": 0, "max": 2.0}},
        {"caps": {"min": 0.5}},
    ],
)
def test_invalid_run_payload(client, overrides):
    r = client.post("/api/v1/runs", json={**RUN_PAYLOAD, **overrides})
    assert r.status_code == 400
    body = r.json()
    assert body["message"] == "Invalid payload"
    assert body["issues"]


@pytest.mark.parametrize(
    "payload",
    [
        {"counts": []},
        {"counts": [{"variable": "AGE", "category": "18_29", "n": -1}]},
        {"counts": [{"variable": "", "category": "18_29", "n": 1}]},
    ],
)
def test_invalid_sample_counts(client, payload):
    run_id = _create_run(client)
    r = client.post(f"/api/v1/runs/{run_id}/sample-counts", json=payload)
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid payload"
