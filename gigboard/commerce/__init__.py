"""Gigboard commerce: the gig ledger and the collaborators it consumes.

Subpackages:
- gigs: Gig and application models, storage backends and the GigLedger
- wallet: Custody of held funds and value transfer gateways

Modules:
- access: Role-based capability checks
- config: Ledger configuration
- events: Ledger notifications
"""

from gigboard.commerce.config import CommerceConfig

__all__ = ["CommerceConfig"]
