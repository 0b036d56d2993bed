"""HTTP provisioning client for the CRM-automation platform API.

One call per build step. The client never retries: a failed step stops
the build, and a later re-run relies on the step's idempotency key.
Auth uses the location's bearer access token; refresh happens elsewhere.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import httpx

from indigoforge.core.errors import IndigoForgeError
from indigoforge.models.build import BuildStep, ProvisioningResult, ResourceKind
from indigoforge.models.credentials import LocationCredentials

logger = logging.getLogger(__name__)

# Response envelope key per resource kind, e.g. {"customField": {"id": ...}}
_RESPONSE_KEYS: dict[ResourceKind, str] = {
    ResourceKind.CUSTOM_FIELD: "customField",
    ResourceKind.TAG: "tag",
    ResourceKind.PIPELINE: "pipeline",
}


# ── Exception hierarchy ─────────────────────────────────────────


class ProvisioningError(IndigoForgeError):
    """Base exception for provisioning call failures."""


class ProvisioningAPIError(ProvisioningError):
    """The platform rejected the call with an error status."""

    def __init__(
        self,
        status_code: int,
        message: str = "",
        *,
        response_body: str = "",
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.response_body = response_body
        super().__init__(f"Provisioning API error {status_code}: {message}")


class ProvisioningTimeoutError(ProvisioningError):
    """The call timed out."""


class StepExecutionError(ProvisioningError):
    """The call completed but its result is unusable for the step."""


# ── Protocol ────────────────────────────────────────────────────


@runtime_checkable
class ProvisioningClient(Protocol):
    """Creates one resource for one build step.

    Implementations return a ``ProvisioningResult`` or raise a
    ``ProvisioningError``.
    """

    def create(
        self, step: BuildStep, credentials: LocationCredentials
    ) -> ProvisioningResult:
        ...


# ── HTTP implementation ─────────────────────────────────────────


def extract_resource_id(kind: ResourceKind, body: Any) -> str:
    """Pull the created resource id out of a response body."""
    if not isinstance(body, dict):
        return ""
    nested = body.get(_RESPONSE_KEYS[kind])
    if isinstance(nested, dict) and nested.get("id"):
        return str(nested["id"])
    if body.get("id"):
        return str(body["id"])
    return ""


class HttpProvisioningClient:
    """Synchronous httpx client for the provisioning endpoints.

    Parameters
    ----------
    base_url:
        API root, e.g. ``https://services.leadconnectorhq.com``.
    api_version:
        Sent as the ``Version`` header on every request.
    timeout_seconds:
        Per-request timeout.
    http_client:
        Optional pre-built ``httpx.Client`` (tests pass one with a
        ``MockTransport``). A client created here is closed by ``close()``.
    """

    def __init__(
        self,
        *,
        base_url: str = "https://services.leadconnectorhq.com",
        api_version: str = "2021-07-28",
        timeout_seconds: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_version = api_version
        self._timeout = float(timeout_seconds)
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client()

    def __enter__(self) -> HttpProvisioningClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _headers(self, step: BuildStep, credentials: LocationCredentials) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {credentials.access_token}",
            "Version": self._api_version,
            "Accept": "application/json",
            "Idempotency-Key": step.idempotency_key,
        }

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return

        body = resp.text
        message = body[:200] if body else f"HTTP {resp.status_code}"
        try:
            payload = resp.json()
            if isinstance(payload, dict):
                detail = payload.get("message", payload.get("error", message))
                message = ", ".join(detail) if isinstance(detail, list) else str(detail)
        except ValueError:
            pass

        raise ProvisioningAPIError(
            status_code=resp.status_code,
            message=message,
            response_body=body,
        )

    def create(
        self, step: BuildStep, credentials: LocationCredentials
    ) -> ProvisioningResult:
        """Issue the step's call and return the created resource id."""
        url = f"{self._base_url}{step.endpoint}"
        try:
            resp = self._client.request(
                step.method,
                url,
                headers=self._headers(step, credentials),
                json=step.payload,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise ProvisioningTimeoutError(
                f"{step.method} {step.endpoint} timed out after {self._timeout:.1f}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProvisioningError(
                f"{step.method} {step.endpoint} failed: {exc}"
            ) from exc

        self._raise_for_status(resp)

        try:
            body = resp.json()
        except ValueError:
            body = None
        resource_id = extract_resource_id(step.resource_kind, body)
        logger.debug(
            "%s %s -> %d (id=%s)", step.method, step.endpoint, resp.status_code, resource_id
        )
        return ProvisioningResult(resource_id=resource_id, status_code=resp.status_code)
