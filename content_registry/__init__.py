"""
Content Registry — a ledger of registered content keyed by id and by 32-byte
content hash, with creator-only updates and a registration fee paid to a
single configurable authority.
"""

from .clock import AlgodRoundClock, BlockClock
from .contract import ContentRecord, ContentRegistry, ContentUpdate
from .errors import ClockError, ErrorCode, FeeTransferError, RegistryError, Result
from .fees import AlgorandFeeTransfer, FeeLedger, FeeTransfer

__version__ = "0.1.0"

__all__ = [
    "AlgodRoundClock",
    "AlgorandFeeTransfer",
    "BlockClock",
    "ClockError",
    "ContentRecord",
    "ContentRegistry",
    "ContentUpdate",
    "ErrorCode",
    "FeeLedger",
    "FeeTransfer",
    "FeeTransferError",
    "RegistryError",
    "Result",
]
