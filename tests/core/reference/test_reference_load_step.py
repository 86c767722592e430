from __future__ import annotations

import copy
from datetime import datetime, timezone

import pytest

from metals_dataflow.core.config import DEFAULT_REFERENCE_PATH
from metals_dataflow.core.errors import REFERENCE_INVALID
from metals_dataflow.core.hashing import compute_reference_hash
from metals_dataflow.core.pipeline.context import REFERENCE_ARTIFACT_KEY, RunContext
from metals_dataflow.core.pipeline.types import StepKind, StepStatus
from metals_dataflow.steps.reference.load import ReferenceLoadStep


def _ctx(reference_cfg):
    return RunContext(
        run_id="test",
        created_at=datetime.now(timezone.utc),
        config={"reference": reference_cfg, "sections": {}},
        meta={},
    )


def test_reference_load_step_identity():
    step = ReferenceLoadStep()

    assert step.id == "reference.load"
    assert step.kind == StepKind.LOAD
    assert step.depends_on == []


def test_reference_load_from_packaged_path(reference_raw):
    ctx = _ctx({"path": str(DEFAULT_REFERENCE_PATH)})

    sr = ReferenceLoadStep().run(ctx)

    assert sr.status == StepStatus.SUCCESS
    tables = ctx.get_reference()
    assert ctx.get_artifact(REFERENCE_ARTIFACT_KEY) is tables
    assert "Total_Lead" in tables.parameters
    assert sr.metrics["parameters"] == len(tables.parameters)
    assert sr.metrics["no_guideline"] == 1

    ref = sr.payload["reference"]
    assert ref["source"] == str(DEFAULT_REFERENCE_PATH)
    assert ref["hash"] == compute_reference_hash(reference_raw)
    assert ctx.meta["reference_hash"] == ref["hash"]
    assert "soil" in ref["matrices_with_breakpoints"]


def test_inline_tables_take_precedence(minimal_reference_raw):
    ctx = _ctx({"path": "/does/not/exist.yaml", "tables": minimal_reference_raw})

    sr = ReferenceLoadStep().run(ctx)

    assert sr.status == StepStatus.SUCCESS
    assert sr.payload["reference"]["source"] == "inline"
    assert ctx.get_reference().version == "test"


@pytest.mark.parametrize(
    "mutate, location",
    [
        (lambda r: r["standards"][0].update(limit=-1), "standards[0].limit"),
        (lambda r: r["conversions"][0].update(factor=0), "conversions[0].factor"),
        (lambda r: r["breakpoints"].update(water={"safe": 2, "moderate": 1, "high": 5}), "breakpoints.water"),
    ],
)
def test_invalid_tables_fail_with_decision_required(minimal_reference_raw, mutate, location):
    raw = copy.deepcopy(minimal_reference_raw)
    mutate(raw)
    ctx = _ctx({"tables": raw})

    sr = ReferenceLoadStep().run(ctx)

    assert sr.status == StepStatus.FAILED
    err = sr.payload["error"]
    assert err["type"] == REFERENCE_INVALID
    assert err["decision_required"] is True
    assert err["details"]["location"] == location
    assert err["details"]["source"] == "inline"
    assert ctx.reference is None


def test_missing_reference_file_fails(tmp_path):
    path = tmp_path / "nope.yaml"
    ctx = _ctx({"path": str(path)})

    sr = ReferenceLoadStep().run(ctx)

    assert sr.status == StepStatus.FAILED
    err = sr.payload["error"]
    assert err["type"] == REFERENCE_INVALID
    assert err["details"]["exception_class"] == "ReferenceFileNotFoundError"
    assert str(path) in err["message"]


def test_missing_reference_config_fails():
    sr = ReferenceLoadStep().run(_ctx({}))

    assert sr.status == StepStatus.FAILED
    assert sr.payload["error"]["details"]["exception_class"] == "ReferencePathMissingError"
