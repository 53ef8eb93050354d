"""
Panel sync client for proxy nodes.
Pulls node config, users and detection rules from the panel, reports status,
online users, traffic and rule violations back.
"""

from .client import PanelClient
from .config import ApiConfig
from .errors import (
    DecodeError,
    PanelError,
    RuleCompileError,
    ServerEnvelopeError,
    TransportError,
    UnsupportedNodeType,
)
from .models import (
    ClientInfo,
    DetectResult,
    DetectRule,
    NodeInfo,
    NodeStatus,
    OnlineUser,
    UserInfo,
    UserTraffic,
)
from .reconciler import LimitReconciler

__version__ = "0.1.0"

__all__ = [
    'PanelClient',
    'ApiConfig',
    'LimitReconciler',
    'PanelError',
    'TransportError',
    'ServerEnvelopeError',
    'DecodeError',
    'UnsupportedNodeType',
    'RuleCompileError',
    'ClientInfo',
    'DetectResult',
    'DetectRule',
    'NodeInfo',
    'NodeStatus',
    'OnlineUser',
    'UserInfo',
    'UserTraffic',
]
