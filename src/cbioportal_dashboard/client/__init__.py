"""HTTP client for the cBioPortal public REST API."""

from cbioportal_dashboard.client.errors import CBioPortalError, ResponseShapeError, UpstreamError
from cbioportal_dashboard.client.rest_api import CBioPortalClient

__all__ = ["CBioPortalClient", "CBioPortalError", "ResponseShapeError", "UpstreamError"]
