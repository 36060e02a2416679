"""External integrations for payment processing."""
from .vandar_client import VandarClient

__all__ = ["VandarClient"]
