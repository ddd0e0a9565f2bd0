"""
Infrastructure initialization and bootstrap.

Singleton pattern for creating all service backends from configuration.
"""

from typing import Optional

from services.stt import STTBackend
from transport.whatsapp.dispatcher import MessageDispatcher
from transport.whatsapp.media import WhatsAppMediaClient
from transport.whatsapp.sender import WhatsAppSender

from .config import InfraConfig, get_config


class InfraBootstrap:
    """
    Bootstrap infrastructure based on configuration.

    Singleton pattern - single instance per process.
    """

    _instance: Optional["InfraBootstrap"] = None

    def __init__(self, config: Optional[InfraConfig] = None):
        self.config = config or get_config()
        self.sender = self.config.create_sender()
        self.dispatcher = self.config.create_dispatcher(self.sender)
        self.media_client = self.config.create_media_client()
        self.stt_backend = self.config.create_stt_backend()

    @classmethod
    def get_instance(cls, config: Optional[InfraConfig] = None) -> "InfraBootstrap":
        """
        Get singleton instance.

        Args:
            config: Optional custom configuration (only used first time)
        """
        if cls._instance is None:
            cls._instance = cls(config)
        return cls._instance

    @classmethod
    def reset(cls):
        """Reset singleton (for testing)."""
        cls._instance = None

    def get_sender(self) -> WhatsAppSender:
        return self.sender

    def get_dispatcher(self) -> MessageDispatcher:
        return self.dispatcher

    def get_media_client(self) -> WhatsAppMediaClient:
        return self.media_client

    def get_stt_backend(self) -> STTBackend:
        return self.stt_backend

    def __repr__(self) -> str:
        return (
            f"InfraBootstrap(stt={self.config.stt_backend}, "
            f"api_version={self.config.whatsapp_api_version}, "
            f"chunk_delay={self.config.chunk_delay_seconds}s)"
        )


def bootstrap_infrastructure(config: Optional[InfraConfig] = None) -> InfraBootstrap:
    """Bootstrap all infrastructure backends."""
    return InfraBootstrap.get_instance(config)
