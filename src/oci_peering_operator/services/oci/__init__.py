"""OCI SDK backed remote service."""

from .client import OCIPeeringService

__all__ = ["OCIPeeringService"]
