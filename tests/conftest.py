"""Shared test fixtures for Indigoforge."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from indigoforge.core.activity_log import ActivityLog
from indigoforge.core.build_runner import BuildRunner
from indigoforge.core.credentials import InMemoryCredentialStore
from indigoforge.core.rate_limiter import TokenBucket
from indigoforge.core.status_store import InMemoryBuildStatusStore, SQLiteBuildStatusStore
from indigoforge.models.blueprint import Blueprint
from indigoforge.models.build import BuildStep, ProvisioningResult
from indigoforge.models.credentials import LocationCredentials
from indigoforge.providers.provisioning_client import ProvisioningAPIError


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced monotonic clock; ``sleep`` advances it."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeProvisioningClient:
    """Deterministic client: returns ``id-<resource_key>`` for every step.

    ``fail_on`` maps a step number to the exception raised for it;
    ``status_codes`` overrides the returned status per step number.
    """

    def __init__(
        self,
        fail_on: dict[int, Exception] | None = None,
        status_codes: dict[int, int] | None = None,
        on_call: Callable[[BuildStep], None] | None = None,
    ) -> None:
        self.fail_on = fail_on or {}
        self.status_codes = status_codes or {}
        self.on_call = on_call
        self.calls: list[BuildStep] = []

    def create(
        self, step: BuildStep, credentials: LocationCredentials
    ) -> ProvisioningResult:
        self.calls.append(step)
        if self.on_call is not None:
            self.on_call(step)
        if step.step_number in self.fail_on:
            raise self.fail_on[step.step_number]
        return ProvisioningResult(
            resource_id=f"id-{step.resource_key}",
            status_code=self.status_codes.get(step.step_number, 201),
        )


# ---------------------------------------------------------------------------
# Blueprint factories
# ---------------------------------------------------------------------------


def _scenario_a_dict() -> dict[str, Any]:
    return {
        "schema_version": "1.0",
        "meta": {"plan_hash": "upstream-hash", "target_business": "Acme Dental"},
        "data_model": {
            "custom_fields": [
                {"name": "Lead Source", "dataType": "TEXT", "key": "lead_source"},
                {"name": "Budget", "dataType": "NUMERICAL", "key": "budget"},
            ],
            "tags": ["hot-lead"],
        },
        "pipelines": [
            {"name": "High Ticket", "stages": ["New", "Qualified", "Won"]},
        ],
        "workflows_manifest": [{"name": "Speed to lead"}],
        "qa_requirements": ["Every form maps to a field"],
    }


@pytest.fixture
def blueprint_dict() -> dict[str, Any]:
    """Raw JSON-shaped blueprint: 2 fields, 1 tag, 1 pipeline (3 stages)."""
    return _scenario_a_dict()


@pytest.fixture
def make_blueprint() -> Callable[..., Blueprint]:
    """Factory fixture: build a Blueprint from the scenario defaults."""

    def _factory(**overrides: Any) -> Blueprint:
        data = _scenario_a_dict()
        data.update(overrides)
        return Blueprint.model_validate(data)

    return _factory


@pytest.fixture
def blueprint(make_blueprint: Callable[..., Blueprint]) -> Blueprint:
    return make_blueprint()


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tenant_id() -> str:
    return "LOC_TEST_001"


@pytest.fixture
def credentials(tenant_id: str) -> LocationCredentials:
    return LocationCredentials(
        access_token="at-test",
        refresh_token="rt-test",
        expires_at=0,
        location_id=tenant_id,
        scopes=["customFields.write"],
    )


@pytest.fixture
def credential_store(credentials: LocationCredentials) -> InMemoryCredentialStore:
    return InMemoryCredentialStore([credentials])


@pytest.fixture
def status_store() -> InMemoryBuildStatusStore:
    return InMemoryBuildStatusStore()


@pytest.fixture
def sqlite_status_store(tmp_path: Path) -> SQLiteBuildStatusStore:
    return SQLiteBuildStatusStore(tmp_path / "status.db")


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_bucket(fake_clock: FakeClock) -> Callable[..., TokenBucket]:
    """Factory fixture: a TokenBucket driven by the fake clock."""

    def _factory(**kwargs: Any) -> TokenBucket:
        return TokenBucket(clock=fake_clock, sleep=fake_clock.sleep, **kwargs)

    return _factory


@pytest.fixture
def fake_client() -> FakeProvisioningClient:
    return FakeProvisioningClient()


@pytest.fixture
def make_client() -> Callable[..., FakeProvisioningClient]:
    return FakeProvisioningClient


@pytest.fixture
def api_error() -> Callable[..., ProvisioningAPIError]:
    def _factory(status_code: int = 422, message: str = "Tag already exists") -> ProvisioningAPIError:
        return ProvisioningAPIError(status_code, message)

    return _factory


@pytest.fixture
def activity_log() -> ActivityLog:
    return ActivityLog()


@pytest.fixture
def make_runner(
    credential_store: InMemoryCredentialStore,
    status_store: InMemoryBuildStatusStore,
    make_bucket: Callable[..., TokenBucket],
    activity_log: ActivityLog,
) -> Callable[..., BuildRunner]:
    """Factory fixture: a BuildRunner over in-memory stores and a fake clock."""

    def _factory(client: Any, **overrides: Any) -> BuildRunner:
        kwargs: dict[str, Any] = {
            "rate_limiter": make_bucket(),
            "activity_log": activity_log,
        }
        kwargs.update(overrides)
        store = kwargs.pop("status_store", status_store)
        creds = kwargs.pop("credential_store", credential_store)
        return BuildRunner(client, store, creds, **kwargs)

    return _factory
