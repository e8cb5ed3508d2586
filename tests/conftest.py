"""
conftest.py - Shared pytest fixtures for vault tests

Provides common fixtures used across unit, conformance and functional tests:
- Tokens of both variants (conforming and non-conforming)
- Gateways and vaults at a fixed start time
- Funding helpers (mint + approve)
"""

import pytest

from lockvault import (
    TimeLockedVault, SafeAssetGateway, StandardToken, NoReturnToken,
    VaultTerms, DEFAULT_TERMS,
)

from tests.helpers import START, VAULT, OWNER, TREASURY


# =============================================================================
# TOKENS AND GATEWAYS
# =============================================================================

@pytest.fixture
def token():
    return StandardToken("SAVE")


@pytest.fixture
def no_return_token():
    return NoReturnToken("USDT")


@pytest.fixture(params=["standard", "no_return"])
def any_token(request):
    """Runs the test once per asset variant."""
    if request.param == "standard":
        return StandardToken("SAVE")
    return NoReturnToken("USDT")


@pytest.fixture
def gateway(token):
    return SafeAssetGateway(token, VAULT)


# =============================================================================
# VAULTS
# =============================================================================

@pytest.fixture
def make_vault():
    """Factory: make_vault(token, terms=DEFAULT_TERMS) -> vault at START."""
    def _make(token, terms: VaultTerms = DEFAULT_TERMS) -> TimeLockedVault:
        return TimeLockedVault(
            SafeAssetGateway(token, VAULT),
            owner=OWNER,
            terms=terms,
            initial_time=START,
        )
    return _make


@pytest.fixture
def vault(token, make_vault):
    """Empty vault over a conforming token."""
    return make_vault(token)


@pytest.fixture
def fund():
    """fund(token, account, amount): mint and approve the vault to pull it."""
    def _fund(token, account: str, amount: int) -> None:
        token.mint(account, amount)
        token.approve(account, VAULT, token.allowance(account, VAULT) + amount)
    return _fund


@pytest.fixture
def funded_vault(vault, token, fund):
    """Vault with 10,000 units of reward collateral and alice holding 5,000."""
    fund(token, TREASURY, 10_000)
    vault.fund_rewards(TREASURY, 10_000)
    fund(token, "alice", 5_000)
    return vault
