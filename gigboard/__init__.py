"""
Gigboard - a minimal marketplace ledger.

Owners post funded gigs, workers apply, a worker is selected and the
bounty is paid out minus a fixed commission.
"""

from .commerce.gigs.service import GigLedger

try:
    from importlib.metadata import version

    __version__ = version("gigboard")
except Exception:
    __version__ = "0.0.0"

__all__ = ["GigLedger"]
