"""
Infrastructure module exports.

Configuration and bootstrap for the sender, dispatcher, media client and STT.
"""

from .config import InfraConfig, get_config, STTBackendType
from .bootstrap import InfraBootstrap, bootstrap_infrastructure

__all__ = [
    "InfraConfig",
    "get_config",
    "STTBackendType",
    "InfraBootstrap",
    "bootstrap_infrastructure",
]
