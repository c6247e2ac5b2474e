"""
Value transfer gateways.

A gateway moves an amount out of the ledger to an identity and reports
success as a boolean. The ledger treats an exception from a gateway the
same as a False return.
"""

import logging
from typing import Callable, Dict, List, Optional, Protocol, Set, Tuple

logger = logging.getLogger(__name__)


class TransferGateway(Protocol):
    """Protocol for moving value to an identity."""

    def transfer(self, to: str, amount: int) -> bool:
        """Send ``amount`` to ``to``. Returns True on success."""
        ...


class InMemoryTransferGateway:
    """Credits recipients in a local dict.

    Args:
        on_transfer: Called with (to, amount) before the credit is applied;
            lets tests run code at the point control leaves the ledger
    """

    def __init__(self, on_transfer: Optional[Callable[[str, int], None]] = None):
        self.balances: Dict[str, int] = {}
        self.transfers: List[Tuple[str, int]] = []
        self.failing_recipients: Set[str] = set()
        self.fail_all = False
        self.on_transfer = on_transfer

    def transfer(self, to: str, amount: int) -> bool:
        self.transfers.append((to, amount))
        if self.on_transfer is not None:
            self.on_transfer(to, amount)
        if self.fail_all or to in self.failing_recipients:
            logger.warning(f"Transfer rejected | to={to} | amount={amount}")
            return False
        self.balances[to] = self.balances.get(to, 0) + amount
        return True

    def balance_of(self, identity: str) -> int:
        return self.balances.get(identity, 0)
