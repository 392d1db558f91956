"""
REST API Infrastructure Package
"""
from leadsync.infrastructure.api.client import CRMApiClient

__all__ = ["CRMApiClient"]
