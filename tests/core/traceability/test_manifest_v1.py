# tests/core/traceability/test_manifest_v1.py
"""
Testes do Manifest v1 (criação, estado incremental de Steps, Event Log e round-trip).

Invariantes:
    - create_manifest não registra eventos implicitamente
    - a ordem do Event Log reflete a ordem de chamada
    - timestamps são normalizados para UTC
    - save/load preserva run, inputs, steps e events
"""
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

from metals_dataflow.core.traceability import (
    RunManifest,
    add_event,
    create_manifest,
    load_manifest,
    save_manifest,
    step_failed,
    step_finished,
    step_started,
)


T0 = datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc)


def _manifest() -> RunManifest:
    return create_manifest(
        run_id="run-001",
        started_at=T0,
        package_version="0.1.0",
        config_hash="c" * 64,
        reference_hash="r" * 64,
    )


def test_create_manifest_has_no_events():
    m = _manifest()

    assert m.run == {"run_id": "run-001", "started_at": T0.isoformat(), "package_version": "0.1.0"}
    assert m.inputs == {"config_hash": "c" * 64, "reference_hash": "r" * 64}
    assert m.steps == {}
    assert m.events == []


def test_naive_timestamps_are_treated_as_utc():
    m = create_manifest(
        run_id="r",
        started_at=datetime(2026, 1, 16, 12, 0, 0),
        package_version="0.1.0",
        config_hash="c",
        reference_hash=None,
    )

    assert m.run["started_at"] == "2026-01-16T12:00:00+00:00"


def test_step_lifecycle_updates_state_and_event_log():
    m = _manifest()

    step_started(m, step_id="water.ingest.load", kind="load", ts=T0)
    step_finished(
        m,
        step_id="water.ingest.load",
        ts=T0 + timedelta(milliseconds=250),
        result={"status": "success", "summary": "section source loaded", "metrics": {"cells": 18}},
    )
    step_started(m, step_id="water.transform.reshape_long", kind="transform", ts=T0 + timedelta(seconds=1))
    step_failed(
        m,
        step_id="water.transform.reshape_long",
        ts=T0 + timedelta(seconds=2),
        error={"type": "MALFORMED_TABLE", "message": "Malformed input table water.csv: no column"},
    )

    load = m.steps["water.ingest.load"]
    assert load["status"] == "success"
    assert load["duration_ms"] == 250
    assert load["metrics"] == {"cells": 18}

    reshape = m.steps["water.transform.reshape_long"]
    assert reshape["status"] == "failed"
    assert reshape["error"]["type"] == "MALFORMED_TABLE"

    assert [e["event_type"] for e in m.events] == ["step_started", "step_finished", "step_started", "step_failed"]


def test_dict_form_is_updated_in_place():
    m = _manifest().to_dict()

    add_event(m, event_type="run_started", ts=T0)
    step_started(m, step_id="reference.load", kind="load", ts=T0)

    assert m["events"][0]["event_type"] == "run_started"
    assert m["steps"]["reference.load"]["status"] == "running"


def test_round_trip(tmp_path: Path):
    m = _manifest()
    step_started(m, step_id="reference.load", kind="load", ts=T0)
    step_finished(m, step_id="reference.load", ts=T0, result={"status": "success", "summary": "ok"})
    path = tmp_path / "out" / "manifest.json"

    save_manifest(m, path)
    loaded = load_manifest(path)

    assert loaded.to_dict() == m.to_dict()
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert list(raw) == sorted(raw)
