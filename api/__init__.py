"""HTTP envelope shared by every router.

Error handlers (api.errors) and request middleware (api.middleware) are
imported from their modules; api.errors depends on auth.exceptions.
"""

from api.base import (
    APIError,
    APIMeta,
    APIResponse,
    ErrorCodes,
    error_response,
    success_response,
)

__all__ = [
    "APIError",
    "APIMeta",
    "APIResponse",
    "ErrorCodes",
    "error_response",
    "success_response",
]
