"""Custody and value transfer for the gig ledger.

Models:
- Custody: Funds held by the ledger
- TransferResult: Outcome of a transfer out of custody

Gateways:
- TransferGateway: Protocol for moving value to an identity
- InMemoryTransferGateway: Records credits locally; supports injected failures
"""

from gigboard.commerce.wallet.custody import Custody, TransferResult
from gigboard.commerce.wallet.gateway import InMemoryTransferGateway, TransferGateway

__all__ = [
    "Custody",
    "TransferResult",
    "TransferGateway",
    "InMemoryTransferGateway",
]
