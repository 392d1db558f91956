"""
LeadSync
Client-side synchronization engine for the CRM lead and activity API
"""
from leadsync.core.config import Settings, load_settings
from leadsync.services.sync_engine import SyncEngine

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "load_settings",
    "SyncEngine",
]
