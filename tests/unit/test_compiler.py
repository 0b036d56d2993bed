"""Tests for blueprint validation, compilation, and dry-run preview."""

from __future__ import annotations

import pytest

from indigoforge.core.compiler import (
    BlueprintValidationError,
    compile_dry_run,
    dry_run,
    validate_blueprint,
)
from indigoforge.core.hasher import compute_plan_hash
from indigoforge.models.build import ResourceKind


class TestCompileDryRun:
    def test_scenario_a_step_order(self, blueprint, tenant_id):
        steps = compile_dry_run(blueprint, tenant_id)

        assert [s.resource_kind for s in steps] == [
            ResourceKind.CUSTOM_FIELD,
            ResourceKind.CUSTOM_FIELD,
            ResourceKind.TAG,
            ResourceKind.PIPELINE,
        ]
        assert [s.resource_key for s in steps] == [
            "cf_lead_source", "cf_budget", "tag_hot-lead", "pipe_High Ticket",
        ]

    def test_endpoints_match_kind(self, blueprint, tenant_id):
        steps = compile_dry_run(blueprint, tenant_id)
        assert steps[0].endpoint == f"/v2/locations/{tenant_id}/customFields"
        assert steps[1].endpoint == f"/v2/locations/{tenant_id}/customFields"
        assert steps[2].endpoint == f"/v2/locations/{tenant_id}/tags"
        assert steps[3].endpoint == f"/v2/locations/{tenant_id}/pipelines"
        assert all(s.method == "POST" for s in steps)

    def test_step_count(self, make_blueprint, tenant_id):
        bp = make_blueprint(
            data_model={
                "custom_fields": [{"name": f"F{i}", "key": f"f{i}"} for i in range(5)],
                "tags": ["a", "b", "c"],
            },
            pipelines=[{"name": "P1", "stages": ["x"]}, {"name": "P2", "stages": ["y"]}],
        )
        assert len(compile_dry_run(bp, tenant_id)) == 5 + 3 + 2

    def test_step_numbers_contiguous(self, blueprint, tenant_id):
        steps = compile_dry_run(blueprint, tenant_id)
        assert [s.step_number for s in steps] == list(range(1, len(steps) + 1))

    def test_payloads(self, blueprint, tenant_id):
        steps = compile_dry_run(blueprint, tenant_id)
        assert steps[0].payload == {
            "name": "Lead Source", "dataType": "TEXT", "placeholder": "Lead Source",
        }
        assert steps[2].payload == {"name": "hot-lead"}
        assert steps[3].payload == {
            "name": "High Ticket",
            "stages": [
                {"name": "New", "position": 0},
                {"name": "Qualified", "position": 1},
                {"name": "Won", "position": 2},
            ],
        }

    def test_no_dependencies_and_expected_status(self, blueprint, tenant_id):
        for step in compile_dry_run(blueprint, tenant_id):
            assert step.depends_on == []
            assert step.expected_status == frozenset({200, 201})

    def test_idempotency_keys(self, blueprint, tenant_id):
        plan_hash = compute_plan_hash(blueprint)
        steps = compile_dry_run(blueprint, tenant_id)
        assert steps[1].idempotency_key == f"{tenant_id}:{plan_hash}:cf_budget"
        assert len({s.idempotency_key for s in steps}) == len(steps)

    def test_compilation_is_repeatable(self, blueprint, tenant_id):
        first = compile_dry_run(blueprint, tenant_id)
        second = compile_dry_run(blueprint, tenant_id)
        assert first == second
        assert [s.model_dump_json() for s in first] == [s.model_dump_json() for s in second]

    def test_scenario_b_two_tenants(self, blueprint):
        a = compile_dry_run(blueprint, "LOC_A")
        b = compile_dry_run(blueprint, "LOC_B")

        assert [s.idempotency_key for s in a] != [s.idempotency_key for s in b]
        assert not {s.idempotency_key for s in a} & {s.idempotency_key for s in b}
        assert [s.payload for s in a] == [s.payload for s in b]
        assert [s.step_number for s in a] == [s.step_number for s in b]
        assert [s.endpoint.replace("LOC_A", "T") for s in a] == [
            s.endpoint.replace("LOC_B", "T") for s in b
        ]

    def test_empty_blueprint(self, make_blueprint, tenant_id):
        bp = make_blueprint(data_model={}, pipelines=[])
        assert compile_dry_run(bp, tenant_id) == []

    def test_empty_tenant_rejected(self, blueprint):
        with pytest.raises(ValueError):
            compile_dry_run(blueprint, "")


class TestValidation:
    def test_valid_blueprint(self, blueprint):
        assert validate_blueprint(blueprint) == []

    def test_duplicate_field_keys(self, make_blueprint, tenant_id):
        bp = make_blueprint(data_model={
            "custom_fields": [
                {"name": "A", "key": "dup"},
                {"name": "B", "key": "dup"},
            ],
        })
        with pytest.raises(BlueprintValidationError) as exc_info:
            compile_dry_run(bp, tenant_id)
        assert any("duplicate custom field key 'dup'" in i for i in exc_info.value.issues)

    def test_empty_pipeline_stages(self, make_blueprint):
        bp = make_blueprint(pipelines=[{"name": "Empty", "stages": []}])
        assert "pipeline 'Empty' has no stages" in validate_blueprint(bp)

    def test_duplicate_tags_and_pipelines(self, make_blueprint):
        bp = make_blueprint(
            data_model={"tags": ["x", "x", ""]},
            pipelines=[{"name": "P", "stages": ["a", "a"]}, {"name": "P", "stages": ["b"]}],
        )
        issues = validate_blueprint(bp)
        assert "duplicate tag 'x'" in issues
        assert "tags[2] is empty" in issues
        assert "duplicate pipeline name 'P'" in issues
        assert "pipeline 'P' repeats stage 'a'" in issues

    def test_validation_can_be_skipped(self, make_blueprint, tenant_id):
        bp = make_blueprint(pipelines=[{"name": "Empty", "stages": []}])
        steps = compile_dry_run(bp, tenant_id, validate=False)
        assert steps[-1].payload["stages"] == []


class TestDryRunPreview:
    def test_one_line_per_step(self, blueprint, tenant_id):
        lines = dry_run(blueprint, tenant_id)
        assert len(lines) == 4
        assert lines[0] == (
            f"[PENDING] #001 POST /v2/locations/{tenant_id}/customFields (key …cf_lead_source)"
        )
        assert lines[3].endswith("(key …pipe_High Ticket)")

    def test_pure(self, blueprint, tenant_id):
        assert dry_run(blueprint, tenant_id) == dry_run(blueprint, tenant_id)
