"""Blueprint models: the declarative resource plan consumed read-only.

A blueprint is produced upstream (by the multi-agent architect pipeline)
and describes the custom fields, tags and pipelines to create in one
location. Workflow and QA sections are carried through untouched.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CustomFieldSpec(BaseModel):
    """One custom field to create. ``key`` must be unique per blueprint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    name: str
    data_type: str = Field(default="TEXT", alias="dataType")
    key: str


class PipelineSpec(BaseModel):
    """An opportunity pipeline and its ordered stage names."""

    model_config = ConfigDict(frozen=True, extra="allow")

    name: str
    stages: list[str] = []


class DataModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    custom_fields: list[CustomFieldSpec] = []
    tags: list[str] = []


class BlueprintMeta(BaseModel):
    """Informational metadata. ``plan_hash`` here is never trusted."""

    model_config = ConfigDict(frozen=True, extra="allow")

    plan_hash: str = ""
    target_business: str = ""


class Blueprint(BaseModel):
    """Top-level blueprint contract."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    schema_version: str = "1.0"
    meta: BlueprintMeta = BlueprintMeta()
    data_model: DataModel = DataModel()
    pipelines: list[PipelineSpec] = []
    workflows_manifest: list[Any] = []
    qa_requirements: list[Any] = []

    @classmethod
    def from_json(cls, raw: str | bytes) -> Blueprint:
        """Parse and validate a blueprint from its JSON text."""
        return cls.model_validate(json.loads(raw))

    def resource_count(self) -> int:
        """Number of resources the blueprint provisions."""
        return (
            len(self.data_model.custom_fields)
            + len(self.data_model.tags)
            + len(self.pipelines)
        )


def load_blueprint(path: Path | str) -> Blueprint:
    """Read a blueprint JSON file from disk."""
    return Blueprint.from_json(Path(path).read_bytes())
