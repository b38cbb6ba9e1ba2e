"""
Locate Application Layer
========================

Application layer for the locate tracking module.

Contains:
- Normalizer: upstream payload to LocateRecord
- Classifier: bucket partitioning, filters and ordering
- Services: dashboard state, bulk actions, engine composition
- Tagging: single and bulk tagging dialog workflow
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and collaborator interfaces,
but not on concrete infrastructure implementations.
"""

from locates.application.classifier import (
    BucketedRecords,
    LocateFilters,
    bucket_of,
    classify,
)
from locates.application.normalizer import RecordNormalizer, parse_address, parse_timestamp
from locates.application.selection import SelectionState
from locates.application.services import (
    BulkActionCoordinator,
    DashboardSnapshot,
    ILocateConfigProvider,
    ILocatesApi,
    LocateDashboardService,
    LocateTrackerEngine,
    LocateView,
    StaticConfigProvider,
    settle_all,
)
from locates.application.tagging import TagForm, TagMode, TaggingWorkflow, UserProfile

__all__ = [
    # Classification
    "BucketedRecords",
    "LocateFilters",
    "bucket_of",
    "classify",
    # Normalization
    "RecordNormalizer",
    "parse_address",
    "parse_timestamp",
    # Selection
    "SelectionState",
    # Services
    "BulkActionCoordinator",
    "DashboardSnapshot",
    "LocateDashboardService",
    "LocateTrackerEngine",
    "LocateView",
    "settle_all",
    # Collaborator Interfaces
    "ILocatesApi",
    "ILocateConfigProvider",
    "StaticConfigProvider",
    # Tagging
    "TagForm",
    "TagMode",
    "TaggingWorkflow",
    "UserProfile",
]
