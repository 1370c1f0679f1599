import os
import pathlib
import sys
from decimal import Decimal

import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import dexbridge`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from dexbridge.swap.assets import AssetDescriptor  # noqa: E402
from dexbridge.swap.chain import Chain, FungibleToken, WrappedNativeToken  # noqa: E402
from dexbridge.swap.codec import ScalingPolicy, ScalingRegistry  # noqa: E402
from dexbridge.swap.coordinator import SwapCoordinator  # noqa: E402
from dexbridge.swap.settlement import ReferenceSettlementLedger  # noqa: E402
from dexbridge.swap.subsidy import ReferenceSubsidy  # noqa: E402
from dexbridge.swap.venue import ReferenceVenue  # noqa: E402


NOW = 1_700_000_000

ADAPTER = "0x" + "ad" * 20
LEDGER = "0x" + "11" * 20
VENUE = "0x" + "22" * 20
WETH = "0x" + "33" * 20
USDC = "0x" + "44" * 20
DAI = "0x" + "55" * 20
USDT = "0x" + "66" * 20
BENEFICIARY = "0x" + "77" * 20
STRANGER = "0x" + "99" * 20


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: slow correctness tests (skipped unless DEXBRIDGE_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_slow = _env_flag('DEXBRIDGE_RUN_SLOW')

    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set DEXBRIDGE_RUN_SLOW=1 to enable'))


class World:
    """A chain with tokens, collaborators and a wired coordinator."""

    NOW = NOW
    ADAPTER = ADAPTER
    LEDGER = LEDGER
    VENUE = VENUE
    WETH = WETH
    USDC = USDC
    DAI = DAI
    USDT = USDT
    BENEFICIARY = BENEFICIARY
    STRANGER = STRANGER

    def __init__(self):
        self.chain = Chain(now=NOW)
        self.weth = WrappedNativeToken(self.chain, WETH)
        self.usdc = FungibleToken(self.chain, USDC, "USDC", decimals=6)
        self.dai = FungibleToken(self.chain, DAI, "DAI", decimals=18)
        self.usdt = FungibleToken(self.chain, USDT, "USDT", decimals=6, strict_approvals=True)

        self.venue = ReferenceVenue(self.chain, VENUE)
        self.subsidy = ReferenceSubsidy(self.chain)
        self.ledger = ReferenceSettlementLedger(self.chain, LEDGER)
        self.coordinator = SwapCoordinator(
            self.chain,
            ADAPTER,
            settlement=self.ledger,
            venue=self.venue,
            subsidy=self.subsidy,
            wrapped_native=self.weth,
            scaling=ScalingRegistry({USDC: ScalingPolicy.SIX_DECIMAL}),
        )

        # Venue reserves
        self.dai.mint(VENUE, 10 ** 30)
        self.usdc.mint(VENUE, 10 ** 18)
        self.weth.mint(VENUE, 10 ** 24)
        self.chain.mint_native(WETH, 10 ** 24)

        # Ledger custody
        self.usdc.mint(LEDGER, 10 ** 15)
        self.dai.mint(LEDGER, 10 ** 27)
        self.chain.mint_native(LEDGER, 10 ** 24)

        # One whole USDC (1e6) buys one whole DAI (1e18), and back.
        self.venue.set_rate(USDC, DAI, Decimal(10) ** 12)
        self.venue.set_rate(DAI, USDC, Decimal(10) ** -12)
        self.venue.set_rate(WETH, DAI, 2000)
        self.venue.set_rate(DAI, WETH, Decimal("0.0005"))

        self.coordinator.pre_approve_tokens([USDC, DAI, WETH], [USDC, DAI, WETH])

    def adapter_balances(self):
        return self.chain.balances_of(ADAPTER, [WETH, USDC, DAI, USDT])

    @staticmethod
    def usdc_asset() -> AssetDescriptor:
        return AssetDescriptor.token(1, USDC)

    @staticmethod
    def dai_asset() -> AssetDescriptor:
        return AssetDescriptor.token(2, DAI)


@pytest.fixture
def world() -> World:
    return World()
