"""Indigoforge data models: Pydantic v2; read-only records are frozen."""

from indigoforge.models.blueprint import (
    Blueprint,
    BlueprintMeta,
    CustomFieldSpec,
    DataModel,
    PipelineSpec,
    load_blueprint,
)
from indigoforge.models.build import (
    TERMINAL_STATES,
    BuildState,
    BuildStatus,
    BuildStep,
    ProvisioningResult,
    ResourceKind,
)
from indigoforge.models.credentials import LocationCredentials

__all__ = [
    # blueprint
    "Blueprint",
    "BlueprintMeta",
    "CustomFieldSpec",
    "DataModel",
    "PipelineSpec",
    "load_blueprint",
    # build
    "BuildState",
    "BuildStatus",
    "BuildStep",
    "ProvisioningResult",
    "ResourceKind",
    "TERMINAL_STATES",
    # credentials
    "LocationCredentials",
]
