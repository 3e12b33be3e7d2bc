"""
Core components for the Writer Studio service.
"""

from .aggregation import OverviewResolver, collapse_duplicate_dates, compute_summary
from .content import ContentService, filter_content, paginate, sort_content
from .credentials import CredentialVerifier, hash_password, verify_password
from .date_ranges import DateRange, resolve_date_range
from .fallback import Resolution, resolve_first
from .metrics_sources import MetricsScope, MetricsSourceChain
from .submission_store import InMemorySubmissionStore, SqlSubmissionStore
from .video_analytics import VideoAnalyticsService

__all__ = [
    "OverviewResolver",
    "collapse_duplicate_dates",
    "compute_summary",
    "ContentService",
    "filter_content",
    "paginate",
    "sort_content",
    "CredentialVerifier",
    "hash_password",
    "verify_password",
    "DateRange",
    "resolve_date_range",
    "Resolution",
    "resolve_first",
    "MetricsScope",
    "MetricsSourceChain",
    "InMemorySubmissionStore",
    "SqlSubmissionStore",
    "VideoAnalyticsService",
]
