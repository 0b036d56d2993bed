"""Build runner: compiles a blueprint and deploys it step by step.

The BuildRunner wires together the compiler, the token bucket, the
provisioning client, the credential store, the status store, and the
activity log into a single sequential execution engine.

Lifecycle of ``execute_build``:
1. Check credentials (precondition; no status exists on failure)
2. Compute the plan hash and compile steps
3. Create and persist an EXECUTING status
4. For each step: acquire a permit, call the client, record the id,
   persist
5. SUCCESS on completion; FAILED (and raise) on the first step failure;
   CANCELLED (and raise) when the cancel event fires

Steps never run concurrently and are never retried automatically; a
re-run is safe because each step carries a stable idempotency key.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from indigoforge.core.activity_log import ActivityLog
from indigoforge.core.compiler import compile_dry_run, dry_run
from indigoforge.core.credentials import CredentialStore
from indigoforge.core.errors import (
    BuildCancelledError,
    BuildFailedError,
    MissingCredentialsError,
)
from indigoforge.core.hasher import compute_plan_hash
from indigoforge.core.rate_limiter import TokenBucket
from indigoforge.core.status_store import BuildStatusStore
from indigoforge.models.blueprint import Blueprint
from indigoforge.models.build import BuildStatus, BuildStep
from indigoforge.models.credentials import LocationCredentials
from indigoforge.providers.provisioning_client import (
    ProvisioningClient,
    StepExecutionError,
)

logger = logging.getLogger(__name__)

LogCallback = Callable[[str], None]

ACTIVITY_LOG_PREFIX = "GHL_BUILDER: "


class BuildRunner:
    """Sequential, idempotent blueprint executor.

    Parameters
    ----------
    client:
        Performs one create-resource call per step.
    status_store:
        Receives the status after every step and on terminal states.
    credential_store:
        Source of per-location credentials.
    rate_limiter:
        Shared permit source. A private bucket is created if not provided.
    activity_log:
        Process-wide activity sink. A private log is created if not provided.
    resume:
        When True, steps already deployed by the previous run of the same
        plan for the same location are skipped.
    """

    def __init__(
        self,
        client: ProvisioningClient,
        status_store: BuildStatusStore,
        credential_store: CredentialStore,
        *,
        rate_limiter: TokenBucket | None = None,
        activity_log: ActivityLog | None = None,
        resume: bool = True,
    ) -> None:
        self.client = client
        self.status_store = status_store
        self.credential_store = credential_store
        self.rate_limiter = rate_limiter or TokenBucket()
        self.activity_log = activity_log or ActivityLog()
        self.resume = resume

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def dry_run(self, blueprint: Blueprint, tenant_id: str) -> list[str]:
        """Human-readable preview of the calls ``execute_build`` would make."""
        return dry_run(blueprint, tenant_id)

    def last_status(self, tenant_id: str) -> BuildStatus | None:
        return self.status_store.load(tenant_id)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute_build(
        self,
        blueprint: Blueprint,
        tenant_id: str,
        on_log: LogCallback | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> BuildStatus:
        """Deploy every resource in ``blueprint`` to location ``tenant_id``.

        Returns the SUCCESS status. Raises ``MissingCredentialsError``
        before anything runs, ``BlueprintValidationError`` for malformed
        blueprints, ``BuildFailedError`` when a step fails, and
        ``BuildCancelledError`` when ``cancel`` fires.
        """
        self._emit(f"Verifying credentials for location {tenant_id}", on_log)
        credentials = self.credential_store.get(tenant_id)
        if credentials is None:
            raise MissingCredentialsError(tenant_id)

        plan_hash = compute_plan_hash(blueprint)
        steps = compile_dry_run(blueprint, tenant_id)

        status = BuildStatus(tenant_id=tenant_id, plan_hash=plan_hash)
        log = self._status_logger(status, on_log)

        log(f"Starting Idempotent Build: {plan_hash} ({len(steps)} steps)")
        if blueprint.meta.plan_hash and blueprint.meta.plan_hash != plan_hash:
            log(
                f"Blueprint meta.plan_hash {blueprint.meta.plan_hash} ignored; "
                f"recomputed {plan_hash}"
            )
        self._carry_over_deployments(status, log)
        self.status_store.save(status)

        for step in steps:
            if step.idempotency_key in status.deployed_resource_ids:
                log(f"[{step.step_number}/{len(steps)}] Already deployed, skipping: {step.description}")
                continue
            try:
                if cancel is not None and cancel.is_set():
                    raise BuildCancelledError("Build cancelled")
                self.rate_limiter.acquire(cancel=cancel)
                resource_id = self._run_step(step, credentials)
            except BuildCancelledError as exc:
                status.mark_cancelled(str(exc))
                log(f"BUILD CANCELLED before step {step.step_number}: {exc}")
                self.status_store.save(status)
                raise
            except Exception as exc:
                status.mark_failed(str(exc))
                log(f"FATAL ERROR: {status.error}")
                self.status_store.save(status)
                raise BuildFailedError(status.error, status=status, step=step) from exc

            status.record_deployment(step.idempotency_key, resource_id)
            log(f"[{step.step_number}/{len(steps)}] {step.description} -> {resource_id}")
            self.status_store.save(status)

        status.mark_success()
        log(
            f"BUILD SUCCESSFUL. {len(status.deployed_resource_ids)} Resources Sync'd."
        )
        self.status_store.save(status)
        return status

    def _run_step(self, step: BuildStep, credentials: LocationCredentials) -> str:
        result = self.client.create(step, credentials)
        if result.status_code not in step.expected_status:
            raise StepExecutionError(
                f"Step {step.step_number} ({step.endpoint}) returned unexpected "
                f"status {result.status_code}"
            )
        if not result.resource_id:
            raise StepExecutionError(
                f"Step {step.step_number} ({step.endpoint}) returned no resource id"
            )
        return result.resource_id

    def _carry_over_deployments(
        self, status: BuildStatus, log: LogCallback
    ) -> None:
        if not self.resume:
            return
        previous = self.status_store.load(status.tenant_id)
        if previous is None or previous.plan_hash != status.plan_hash:
            return
        if not previous.deployed_resource_ids:
            return
        status.deployed_resource_ids.update(previous.deployed_resource_ids)
        log(
            f"Resuming from run {previous.run_id}: "
            f"{len(previous.deployed_resource_ids)} resources already deployed"
        )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def _emit(self, message: str, on_log: LogCallback | None) -> None:
        if on_log is not None:
            on_log(message)
        self.activity_log.push_log(f"{ACTIVITY_LOG_PREFIX}{message}")

    def _status_logger(
        self, status: BuildStatus, on_log: LogCallback | None
    ) -> LogCallback:
        def _log(message: str) -> None:
            status.logs.append(message)
            self._emit(message, on_log)

        return _log
