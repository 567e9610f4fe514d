"""Handler modules for CRD resources."""

from .peering import RemotePeeringConnectionHandler
from .provider import ProviderHandler

__all__ = ["ProviderHandler", "RemotePeeringConnectionHandler"]
