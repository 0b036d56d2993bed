"""Blueprint compiler: expands a blueprint into ordered build steps.

Group order is fixed: custom fields, then tags, then pipelines, each in
the blueprint's declared order. Steps are independent (``depends_on`` is
empty); the group order alone guarantees tags exist before pipelines.

Compilation is pure: the same blueprint and location always yield an
equal step list, idempotency keys included, so a dry run can be repeated
safely before committing to a build.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from indigoforge.core.hasher import (
    compute_plan_hash,
    make_idempotency_key,
    resource_key_for,
    resource_key_suffix,
)
from indigoforge.models.blueprint import Blueprint
from indigoforge.models.build import BuildStep, ResourceKind

logger = logging.getLogger(__name__)

# Fixed per-kind REST templates.
_ENDPOINTS: dict[ResourceKind, str] = {
    ResourceKind.CUSTOM_FIELD: "/v2/locations/{tenant_id}/customFields",
    ResourceKind.TAG: "/v2/locations/{tenant_id}/tags",
    ResourceKind.PIPELINE: "/v2/locations/{tenant_id}/pipelines",
}


class BlueprintValidationError(ValueError):
    """Raised when a blueprint would compile to ambiguous or invalid steps."""

    def __init__(self, issues: list[str]) -> None:
        self.issues = list(issues)
        super().__init__(
            "Blueprint validation failed: " + "; ".join(self.issues)
        )


def _duplicates(values: list[str]) -> list[str]:
    counts = Counter(values)
    return [v for v, n in counts.items() if n > 1]


def validate_blueprint(blueprint: Blueprint) -> list[str]:
    """Return a list of structural problems (empty when valid)."""
    issues: list[str] = []
    fields = blueprint.data_model.custom_fields
    tags = blueprint.data_model.tags

    for i, field in enumerate(fields):
        if not field.key.strip():
            issues.append(f"custom_fields[{i}] has an empty key")
        if not field.name.strip():
            issues.append(f"custom_fields[{i}] has an empty name")
    for key in _duplicates([f.key for f in fields]):
        issues.append(f"duplicate custom field key {key!r}")

    for i, tag in enumerate(tags):
        if not tag.strip():
            issues.append(f"tags[{i}] is empty")
    for tag in _duplicates(list(tags)):
        issues.append(f"duplicate tag {tag!r}")

    for i, pipeline in enumerate(blueprint.pipelines):
        if not pipeline.name.strip():
            issues.append(f"pipelines[{i}] has an empty name")
        if not pipeline.stages:
            issues.append(f"pipeline {pipeline.name!r} has no stages")
        for stage in _duplicates(list(pipeline.stages)):
            issues.append(f"pipeline {pipeline.name!r} repeats stage {stage!r}")
    for name in _duplicates([p.name for p in blueprint.pipelines]):
        issues.append(f"duplicate pipeline name {name!r}")

    return issues


def compile_dry_run(
    blueprint: Blueprint,
    tenant_id: str,
    *,
    validate: bool = True,
) -> list[BuildStep]:
    """Compile a blueprint into its ordered list of build steps.

    Raises ``BlueprintValidationError`` if ``validate`` is set and the
    blueprint has duplicate keys, empty names, or stage-less pipelines.
    """
    if not tenant_id:
        raise ValueError("tenant_id must be a non-empty string")
    if validate:
        issues = validate_blueprint(blueprint)
        if issues:
            raise BlueprintValidationError(issues)

    plan_hash = compute_plan_hash(blueprint)

    # (kind, identifier, payload, description)
    resources: list[tuple[ResourceKind, str, dict[str, Any], str]] = []
    for field in blueprint.data_model.custom_fields:
        resources.append((
            ResourceKind.CUSTOM_FIELD,
            field.key,
            {"name": field.name, "dataType": field.data_type, "placeholder": field.name},
            f"Create custom field: {field.name}",
        ))
    for tag in blueprint.data_model.tags:
        resources.append((
            ResourceKind.TAG,
            tag,
            {"name": tag},
            f"Register tag: {tag}",
        ))
    for pipeline in blueprint.pipelines:
        resources.append((
            ResourceKind.PIPELINE,
            pipeline.name,
            {
                "name": pipeline.name,
                "stages": [
                    {"name": stage, "position": position}
                    for position, stage in enumerate(pipeline.stages)
                ],
            },
            f"Deploy pipeline: {pipeline.name} ({len(pipeline.stages)} stages)",
        ))

    steps: list[BuildStep] = []
    for number, (kind, identifier, payload, description) in enumerate(resources, start=1):
        resource_key = resource_key_for(kind, identifier)
        steps.append(
            BuildStep(
                step_number=number,
                method="POST",
                endpoint=_ENDPOINTS[kind].format(tenant_id=tenant_id),
                payload=payload,
                idempotency_key=make_idempotency_key(tenant_id, plan_hash, resource_key),
                description=description,
                resource_kind=kind,
                resource_key=resource_key,
            )
        )

    logger.debug(
        "Compiled %d steps for location %s (plan %s)", len(steps), tenant_id, plan_hash
    )
    return steps


def format_step_preview(step: BuildStep) -> str:
    """One human-readable preview line for a step."""
    return (
        f"[PENDING] #{step.step_number:03d} {step.method} {step.endpoint} "
        f"(key …{resource_key_suffix(step.idempotency_key)})"
    )


def dry_run(blueprint: Blueprint, tenant_id: str) -> list[str]:
    """Preview the calls a build would make, one line per step.

    Side-effect free; needs neither the rate limiter nor a client.
    """
    return [format_step_preview(step) for step in compile_dry_run(blueprint, tenant_id)]
