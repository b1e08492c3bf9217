from providers.base import ShutdownProvider, UpstreamError
from providers.hoe_provider import HoeProvider

__all__ = ["HoeProvider", "ShutdownProvider", "UpstreamError"]
