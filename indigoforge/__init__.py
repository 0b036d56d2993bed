"""Indigoforge: idempotent, rate-limited blueprint provisioning.

Takes a declarative blueprint of CRM resources (custom fields, tags,
pipelines) and deploys it to one location exactly once per resource:
  - Canonical plan hashing of the resource-affecting blueprint content
  - Per-resource idempotency keys derived from (location, plan, resource)
  - Deterministic compilation into ordered build steps, with dry-run preview
  - Token-bucket rate limiting (100 burst, 10/sec) with cancellation
  - Sequential execution with incremental status persistence and resume
"""

__version__ = "0.1.0"
__description__ = "Idempotent, rate-limited blueprint provisioning engine"

from indigoforge.core.build_runner import BuildRunner
from indigoforge.core.compiler import compile_dry_run, dry_run
from indigoforge.core.hasher import compute_plan_hash, make_idempotency_key
from indigoforge.core.rate_limiter import TokenBucket

__all__ = [
    "BuildRunner",
    "TokenBucket",
    "compile_dry_run",
    "compute_plan_hash",
    "dry_run",
    "make_idempotency_key",
    "__version__",
]
