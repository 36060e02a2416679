"""Python SDK and HTTP endpoints for the Vandar payment gateway."""
__version__ = "1.0.0"

from .config import Settings, get_settings, load_settings
from .core import (
    STATUS_INIT,
    STATUS_PAID,
    GatewayAPIError,
    GatewayError,
    InvalidRequestError,
    NetworkError,
    Transaction,
    VandarError,
)
from .integrations import VandarClient
from .storage import MemoryTransactionStore, TransactionStore

__all__ = [
    "GatewayAPIError",
    "GatewayError",
    "InvalidRequestError",
    "MemoryTransactionStore",
    "NetworkError",
    "STATUS_INIT",
    "STATUS_PAID",
    "Settings",
    "Transaction",
    "TransactionStore",
    "VandarClient",
    "VandarError",
    "__version__",
    "get_settings",
    "load_settings",
]
