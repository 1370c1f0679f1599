"""dexbridge: single-call asset-swap adapters.

Adapters in this package sit between a settlement ledger that custodies funds
and an external liquidity venue. Each adapter call is self-contained: funds
arrive, are swapped, and leave within the same call.
"""

__version__ = "0.3.1"
