"""Build step and build status models.

A ``BuildStep`` is one atomic, idempotent create-resource call. Steps are
produced by the compiler, never mutated, and never persisted on their own.

A ``BuildStatus`` is the record of one ``execute_build`` run. It is the
only mutable model: the BuildRunner that created it owns it until the run
reaches a terminal state, at which point the status store owns it.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ResourceKind(str, Enum):
    """Resource kinds the engine can provision, in deployment order."""

    CUSTOM_FIELD = "custom_field"
    TAG = "tag"
    PIPELINE = "pipeline"


class BuildState(str, Enum):
    EXECUTING = "EXECUTING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


TERMINAL_STATES: frozenset[BuildState] = frozenset(
    {BuildState.SUCCESS, BuildState.FAILED, BuildState.CANCELLED}
)


class BuildStep(BaseModel):
    """One compiled provisioning call."""

    model_config = ConfigDict(frozen=True)

    step_number: int  # 1-based, contiguous
    method: str
    endpoint: str
    payload: dict[str, Any]
    idempotency_key: str
    description: str
    resource_kind: ResourceKind
    resource_key: str
    depends_on: list[int] = []
    expected_status: frozenset[int] = frozenset({200, 201})


class ProvisioningResult(BaseModel):
    """What the provisioning client returns for a successful call."""

    model_config = ConfigDict(frozen=True)

    resource_id: str
    status_code: int = 201


def new_run_id() -> str:
    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return f"ib-{ts}-{uuid.uuid4().hex[:6]}"


class BuildStatus(BaseModel):
    """Status of one build run for one location."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    run_id: str = Field(default_factory=new_run_id)
    tenant_id: str = Field(alias="tenantId")
    plan_hash: str
    status: BuildState = BuildState.EXECUTING
    deployed_resource_ids: dict[str, str] = Field(
        default_factory=dict, alias="deployedResourceIds"
    )
    logs: list[str] = []
    last_run_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="lastRunAt"
    )
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def record_deployment(self, idempotency_key: str, resource_id: str) -> None:
        self.deployed_resource_ids[idempotency_key] = resource_id

    def mark_success(self) -> None:
        self.status = BuildState.SUCCESS
        self.error = None

    def mark_failed(self, error: str) -> None:
        self.status = BuildState.FAILED
        self.error = error or "unknown error"

    def mark_cancelled(self, reason: str = "cancelled") -> None:
        self.status = BuildState.CANCELLED
        self.error = reason

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize using the external (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)
