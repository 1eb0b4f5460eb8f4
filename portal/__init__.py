"""
Admissions Portal - admissions and academic-administration dashboard core.

Talks to the remote admissions REST API and exposes the view-model state
(applicant tables, application review, course assignment) to the dashboard.
"""

__version__ = "1.0.0"

from .api_client import PortalClient
from .errors import HttpError, NetworkError, NotFoundError, PortalError

__all__ = [
    "PortalClient",
    "PortalError",
    "NetworkError",
    "HttpError",
    "NotFoundError",
]
