"""Advisory - Client boundary for the cloud synthesis collaborator."""

from kestrel.advisory.client import (
    AdvisoryClient,
    AdvisoryClientConfig,
    AdvisoryError,
    AdvisoryRequest,
    AdvisoryResult,
    HttpAdvisoryClient,
)

__all__ = [
    "AdvisoryClient",
    "AdvisoryClientConfig",
    "AdvisoryError",
    "AdvisoryRequest",
    "AdvisoryResult",
    "HttpAdvisoryClient",
]
