"""
Services Package
Caches, reconciler and action pipeline of the sync engine
"""
from leadsync.services.transport_session import TransportSession
from leadsync.services.query_cache import LeadListCache
from leadsync.services.detail_cache import LeadDetailCache, DetailState
from leadsync.services.aggregate_cache import DashboardCache
from leadsync.services.event_reconciler import EventReconciler
from leadsync.services.action_pipeline import ActionPipeline
from leadsync.services.auth_service import AuthService

__all__ = [
    "TransportSession",
    "LeadListCache",
    "LeadDetailCache",
    "DetailState",
    "DashboardCache",
    "EventReconciler",
    "ActionPipeline",
    "AuthService",
]
