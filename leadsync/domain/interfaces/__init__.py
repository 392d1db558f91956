"""Domain interfaces"""
from .crm_api import CRMApi
from .push_channel import PushChannel

__all__ = ["CRMApi", "PushChannel"]
