"""Tests for the assets module."""

import pytest

from assets import (
    AssetAlreadyListedError,
    AssetNotActiveError,
    AssetNotFoundError,
    AssetNotListedError,
    InsufficientPaymentError,
    InvalidPriceError,
    InvalidTokenIdError,
    TransferPendingError
)
from conftest import ALICE, BOB, CONTRACT_ID
from transfers import DEFAULT_TRANSFER_GAS, TransferPhase, TransferRequest

TOKEN = "T1"

@pytest.mark.asyncio
async def test_list_asset(contract, registry_client):
    """Test listing takes custody and records the asset."""
    asset = await contract.place_new_asset(ALICE, TOKEN, 50, attached_payment=1)

    assert asset.token_id == TOKEN
    assert asset.price == 50
    assert asset.active
    assert asset.last_owner == ALICE
    assert asset.last_user == ALICE
    assert asset.init_time == asset.last_time
    assert asset.transfer_phase is None

    # Visible before the custody transfer resolved
    assert contract.runtime.pending == 1
    assert await contract.view_asset(TOKEN) == asset

    await contract.runtime.drain()
    assert registry_client.transfers == [{
        'receiver_id': CONTRACT_ID,
        'token_id': TOKEN,
        'approval_id': None,
        'memo': None,
        'deposit': '1',
        'gas': str(DEFAULT_TRANSFER_GAS)
    }]
    assert (await contract.stats())['asset_count'] == 1

@pytest.mark.asyncio
async def test_list_asset_with_approval(contract, registry_client):
    """Test approval id and memo are forwarded to the registry."""
    await contract.place_new_asset(ALICE, TOKEN, 50, approval_id=3, memo="listing")
    await contract.runtime.drain()

    assert registry_client.transfers[0]['approval_id'] == 3
    assert registry_client.transfers[0]['memo'] == "listing"

@pytest.mark.asyncio
async def test_list_asset_twice(contract, registry_client):
    """Test listing a present token id fails and keeps the record."""
    original = await contract.place_new_asset(ALICE, TOKEN, 50)

    with pytest.raises(AssetAlreadyListedError) as exc_info:
        await contract.place_new_asset(BOB, TOKEN, 10)
    assert exc_info.value.status_code == 409

    assert await contract.view_asset(TOKEN) == original
    await contract.runtime.drain()
    assert len(registry_client.transfers) == 1

@pytest.mark.asyncio
async def test_list_asset_invalid(contract):
    """Test listing with an empty token id or a bad price."""
    with pytest.raises(InvalidTokenIdError):
        await contract.place_new_asset(ALICE, "", 50)
    with pytest.raises(InvalidPriceError):
        await contract.place_new_asset(ALICE, TOKEN, -1)
    with pytest.raises(InvalidPriceError):
        await contract.place_new_asset(ALICE, TOKEN, 2 ** 128)

    assert await contract.view_assets() == []

@pytest.mark.asyncio
async def test_buy_asset(contract, registry_client, host_client):
    """Test a purchase moves custody to the buyer and pays the seller."""
    listed = await contract.place_new_asset(ALICE, TOKEN, 50)

    sold = await contract.buy_asset(BOB, TOKEN, 50)
    assert not sold.active
    assert sold.last_user == BOB
    assert sold.last_owner == ALICE
    assert sold.price == 50
    assert sold.init_time == listed.init_time
    assert sold.last_time > listed.last_time

    await contract.runtime.drain()
    assert registry_client.transfers[-1]['receiver_id'] == BOB
    assert registry_client.transfers[-1]['token_id'] == TOKEN
    assert registry_client.transfers[-1]['deposit'] == '50'
    assert host_client.payments == [{'receiver_id': ALICE, 'amount': '50'}]

@pytest.mark.asyncio
async def test_buy_unlisted(contract):
    """Test buying a token id that was never listed."""
    with pytest.raises(AssetNotListedError) as exc_info:
        await contract.buy_asset(BOB, TOKEN, 50)
    assert exc_info.value.status_code == 404

@pytest.mark.asyncio
async def test_buy_insufficient_payment(contract):
    """Test buying below the asking price."""
    await contract.place_new_asset(ALICE, TOKEN, 50)

    with pytest.raises(InsufficientPaymentError) as exc_info:
        await contract.buy_asset(BOB, TOKEN, 49)
    assert exc_info.value.price == 50
    assert exc_info.value.attached == 49
    assert exc_info.value.status_code == 402

    asset = await contract.view_asset(TOKEN)
    assert asset.active
    assert asset.last_user == ALICE

@pytest.mark.asyncio
async def test_buy_sold_asset(contract):
    """Test an asset can only be bought once."""
    await contract.place_new_asset(ALICE, TOKEN, 50)
    await contract.buy_asset(BOB, TOKEN, 50)

    with pytest.raises(AssetNotActiveError):
        await contract.buy_asset(ALICE, TOKEN, 100)

    asset = await contract.view_asset(TOKEN)
    assert asset.last_user == BOB

@pytest.mark.asyncio
async def test_overpayment_is_forwarded(contract, registry_client, host_client):
    """Test the seller receives the price and the registry the whole payment."""
    await contract.place_new_asset(ALICE, TOKEN, 50)
    await contract.buy_asset(BOB, TOKEN, 80)

    await contract.runtime.drain()
    assert registry_client.transfers[-1]['receiver_id'] == BOB
    assert registry_client.transfers[-1]['deposit'] == '80'
    assert host_client.payments == [{'receiver_id': ALICE, 'amount': '50'}]

@pytest.mark.asyncio
async def test_view_assets(contract):
    """Test listing order and unknown lookups."""
    await contract.place_new_asset(ALICE, "T2", 5)
    await contract.place_new_asset(BOB, "T1", 7)

    assert [token_id for token_id, _ in await contract.view_assets()] == ["T2", "T1"]
    with pytest.raises(AssetNotFoundError):
        await contract.view_asset("T3")

@pytest.mark.asyncio
async def test_marketplace_flow(contract, host_client):
    """Test listing and selling between two registered accounts."""
    await contract.new_user(ALICE, 100)
    await contract.place_new_asset(ALICE, TOKEN, 50)

    await contract.new_user(BOB)
    await contract.deposit(BOB, 200)
    sold = await contract.buy_asset(BOB, TOKEN, 60)

    assert not sold.active
    assert sold.last_user == BOB

    # Sale proceeds go straight to the seller, not into the ledger
    assert await contract.get_balance(ALICE) == 100
    assert await contract.get_balance(BOB) == 200

    await contract.runtime.drain()
    assert {'receiver_id': ALICE, 'amount': '50'} in host_client.payments
    assert all(receipt.ok for receipt in contract.runtime.receipts)

@pytest.mark.asyncio
async def test_tracked_listing_phases(tracked_contract):
    """Test purchases wait for the listing's custody transfer."""
    listed = await tracked_contract.place_new_asset(ALICE, TOKEN, 50)
    assert listed.transfer_phase == TransferPhase.PENDING

    with pytest.raises(TransferPendingError):
        await tracked_contract.buy_asset(BOB, TOKEN, 50)

    await tracked_contract.runtime.drain()
    asset = await tracked_contract.view_asset(TOKEN)
    assert asset.transfer_phase == TransferPhase.CONFIRMED

    sold = await tracked_contract.buy_asset(BOB, TOKEN, 50)
    assert sold.transfer_phase == TransferPhase.PENDING

    await tracked_contract.runtime.drain()
    asset = await tracked_contract.view_asset(TOKEN)
    assert asset.transfer_phase == TransferPhase.CONFIRMED
    assert not asset.active

@pytest.mark.asyncio
async def test_tracked_listing_failure(tracked_contract, registry_client):
    """Test a rejected custody transfer blocks the sale."""
    registry_client.fail = True
    await tracked_contract.place_new_asset(ALICE, TOKEN, 50)
    await tracked_contract.runtime.drain()

    asset = await tracked_contract.view_asset(TOKEN)
    assert asset.transfer_phase == TransferPhase.FAILED
    assert asset.active

    with pytest.raises(AssetNotActiveError):
        await tracked_contract.buy_asset(BOB, TOKEN, 50)

@pytest.mark.asyncio
async def test_outcome_from_before_reset_ignored(tracked_contract):
    """Test a transfer outcome issued before a reset leaves a relisted token alone."""
    await tracked_contract.place_new_asset(ALICE, TOKEN, 50)
    await tracked_contract.runtime.drain()
    assert await tracked_contract.reset_state(CONTRACT_ID) == (0, 0, 2)

    relisted = await tracked_contract.place_new_asset(BOB, TOKEN, 70)
    stale = TransferRequest(receiver_id=CONTRACT_ID, token_id=TOKEN, state_version=(0, 0, 1))
    await tracked_contract.runtime.call(
        tracked_contract.registry.record_transfer_outcome,
        CONTRACT_ID,
        request=stale,
        success=False
    )

    asset = await tracked_contract.view_asset(TOKEN)
    assert asset == relisted
    assert asset.transfer_phase == TransferPhase.PENDING

    await tracked_contract.runtime.drain()
    asset = await tracked_contract.view_asset(TOKEN)
    assert asset.transfer_phase == TransferPhase.CONFIRMED
    assert asset.last_owner == BOB

@pytest.mark.asyncio
async def test_outcome_for_unknown_asset(tracked_contract):
    """Test an outcome for a token that is not stored creates nothing."""
    request = TransferRequest(receiver_id=CONTRACT_ID, token_id=TOKEN, state_version=(0, 0, 1))
    await tracked_contract.runtime.call(
        tracked_contract.registry.record_transfer_outcome,
        CONTRACT_ID,
        request=request,
        success=True
    )

    assert await tracked_contract.view_assets() == []
