"""Canonical hashing helpers for plan fingerprints and idempotency keys.

The plan hash covers only the resource-affecting parts of a blueprint
(``data_model`` and ``pipelines``). Serialization is canonical: keys are
sorted recursively, so semantically identical blueprints always hash the
same regardless of the key order they were written in.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any

from indigoforge.models.blueprint import Blueprint
from indigoforge.models.build import ResourceKind

PLAN_HASH_PREFIX = "indigo_hash_"
PLAN_HASH_HEX_LENGTH = 16

KEY_SEPARATOR = ":"

_RESOURCE_KEY_PREFIXES: dict[ResourceKind, str] = {
    ResourceKind.CUSTOM_FIELD: "cf_",
    ResourceKind.TAG: "tag_",
    ResourceKind.PIPELINE: "pipe_",
}


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes with sorted keys and compact separators.

    - sorted keys (recursively, json.dumps handles nesting)
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def plan_fingerprint_source(blueprint: Blueprint | Mapping[str, Any]) -> dict[str, Any]:
    """Extract exactly the hashed portion of a blueprint.

    Accepts either a parsed ``Blueprint`` or the raw JSON mapping. Raw
    mappings are normalized through the model so both forms hash the same.
    """
    if not isinstance(blueprint, Blueprint):
        blueprint = Blueprint.model_validate(dict(blueprint))
    dumped = blueprint.model_dump(mode="json", by_alias=True)
    return {"data_model": dumped["data_model"], "pipelines": dumped["pipelines"]}


def compute_plan_hash(blueprint: Blueprint | Mapping[str, Any]) -> str:
    """Deterministic fingerprint of a blueprint's resource set.

    Workflow, QA, meta and schema_version fields do not participate.
    """
    digest = sha256_hex(canonical_json_bytes(plan_fingerprint_source(blueprint)))
    return f"{PLAN_HASH_PREFIX}{digest[:PLAN_HASH_HEX_LENGTH]}"


def _escape_component(value: str) -> str:
    # '%' first so escapes introduced for ':' are not re-escaped
    return value.replace("%", "%25").replace(KEY_SEPARATOR, "%3A")


def make_idempotency_key(tenant_id: str, plan_hash: str, resource_key: str) -> str:
    """Build the retry-safe key ``{tenant}:{plan_hash}:{resource_key}``.

    Components are escaped so a literal ``:`` inside one of them can never
    collide with a different tuple.
    """
    for name, value in (
        ("tenant_id", tenant_id),
        ("plan_hash", plan_hash),
        ("resource_key", resource_key),
    ):
        if not value:
            raise ValueError(f"{name} must be a non-empty string")
    return KEY_SEPARATOR.join(
        _escape_component(v) for v in (tenant_id, plan_hash, resource_key)
    )


def resource_key_for(kind: ResourceKind, identifier: str) -> str:
    """Resource key scheme: ``cf_<key>``, ``tag_<name>``, ``pipe_<name>``."""
    return f"{_RESOURCE_KEY_PREFIXES[kind]}{identifier}"


def resource_key_suffix(idempotency_key: str) -> str:
    """Return the resource-key tail of an idempotency key (still escaped)."""
    return idempotency_key.rsplit(KEY_SEPARATOR, 1)[-1]
