"""Allowance management for the swap adapter.

The adapter grants unlimited pull-rights once per token: to the venue for
tokens it sells and to the settlement ledger for tokens it returns. This is
safe to share across calls only because the adapter never keeps a balance
between calls.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Sequence

from dexbridge.swap.chain import MAX_UINT256, FungibleToken
from dexbridge.swap.hardening import normalize_address

logger = logging.getLogger(__name__)


def reset_and_approve(token: FungibleToken, owner: str, spender: str) -> None:
    """Set ``spender``'s allowance to zero, then to the maximum."""
    token.approve(owner, spender, 0)
    token.approve(owner, spender, MAX_UINT256)


def pre_approve_tokens(
    token_lookup: Callable[[str], FungibleToken],
    owner: str,
    venue_address: str,
    ledger_address: str,
    tokens_in: Sequence[str],
    tokens_out: Sequence[str],
) -> Dict[str, List[str]]:
    """
    Grant maximal allowances for a batch of tokens.

    ``tokens_in`` are approved for the venue, ``tokens_out`` for the
    settlement ledger. Calling this again with the same lists is a no-op in
    effect: each allowance ends at the maximum either way.

    Returns:
        The normalised addresses approved per spender role.
    """
    venue_address = normalize_address(venue_address, "venue_address")
    ledger_address = normalize_address(ledger_address, "ledger_address")
    approved: Dict[str, List[str]] = {"venue": [], "ledger": []}

    for address in tokens_in:
        token = token_lookup(normalize_address(address, "tokens_in"))
        reset_and_approve(token, owner, venue_address)
        approved["venue"].append(token.address)

    for address in tokens_out:
        token = token_lookup(normalize_address(address, "tokens_out"))
        reset_and_approve(token, owner, ledger_address)
        approved["ledger"].append(token.address)

    logger.info(
        f"Pre-approved {len(approved['venue'])} input and "
        f"{len(approved['ledger'])} output token(s) for {owner}"
    )
    return approved
