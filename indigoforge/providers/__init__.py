"""Provisioning clients: one create-resource call per build step."""

from indigoforge.providers.provisioning_client import (
    HttpProvisioningClient,
    ProvisioningAPIError,
    ProvisioningClient,
    ProvisioningError,
    ProvisioningTimeoutError,
    StepExecutionError,
)

__all__ = [
    "HttpProvisioningClient",
    "ProvisioningAPIError",
    "ProvisioningClient",
    "ProvisioningError",
    "ProvisioningTimeoutError",
    "StepExecutionError",
]
