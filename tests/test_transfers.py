"""Tests for transfer coordination and the call runtime."""

import pytest

from assets import InsufficientPaymentError
from conftest import ALICE, BOB, CONTRACT_ID
from database.store import MemoryStore
from runtime import ContractError, Promise, Runtime, ViewMutationError
from transfers import ExternalCallFailed, TransferCoordinator, TransferRequest, send_payment

TOKEN = "T1"

def test_transfer_request_params():
    """Test amounts are rendered as decimal strings."""
    request = TransferRequest(receiver_id=BOB, token_id=TOKEN, deposit=2 ** 100, gas=7)
    params = request.to_params()

    assert params['deposit'] == str(2 ** 100)
    assert params['gas'] == '7'
    assert params['receiver_id'] == BOB
    assert params['approval_id'] is None
    assert 'state_version' not in params

def test_external_call_failed_message():
    """Test the failure names the token and receiver."""
    error = ExternalCallFailed(TOKEN, BOB, "not owner")
    assert str(error) == f"Transfer of {TOKEN} to {BOB} failed: not owner"

@pytest.mark.asyncio
async def test_failed_transfer_receipt(contract, registry_client):
    """Test a rejected transfer is recorded without touching the asset."""
    registry_client.fail = True
    listed = await contract.place_new_asset(ALICE, TOKEN, 50)
    await contract.runtime.drain()

    receipt = contract.runtime.receipts[-1]
    assert not receipt.ok
    assert "Sender is not the token owner" in receipt.error
    assert receipt.callback_result is False
    assert "nft_transfer" in receipt.description

    assert await contract.view_asset(TOKEN) == listed

@pytest.mark.asyncio
async def test_successful_transfer_receipt(contract):
    """Test an accepted transfer reports success from its continuation."""
    await contract.place_new_asset(ALICE, TOKEN, 50)
    await contract.runtime.drain()

    receipt = contract.runtime.receipts[-1]
    assert receipt.ok
    assert receipt.error is None
    assert receipt.callback_result is True

@pytest.mark.asyncio
async def test_failed_call_schedules_nothing(contract, registry_client, host_client):
    """Test a call that raises dispatches no external effects."""
    await contract.place_new_asset(ALICE, TOKEN, 50)
    await contract.runtime.drain()
    receipts = len(contract.runtime.receipts)

    with pytest.raises(InsufficientPaymentError):
        await contract.buy_asset(BOB, TOKEN, 10)

    assert contract.runtime.pending == 0
    await contract.runtime.drain()
    assert len(registry_client.transfers) == 1
    assert host_client.payments == []
    assert len(contract.runtime.receipts) == receipts

@pytest.mark.asyncio
async def test_failed_call_reverts_writes(contract, host_client):
    """Test writes and payments made before a failure are discarded."""
    async def register_then_fail(ctx):
        await contract.ledger.register(ctx)
        send_payment(ctx, host_client, ctx.caller, 10)
        raise ContractError("abort")

    with pytest.raises(ContractError):
        await contract.runtime.call(register_then_fail, ALICE, 10)

    assert await contract.view_users() == []
    assert (await contract.stats())['account_count'] == 0
    await contract.runtime.drain()
    assert host_client.payments == []

@pytest.mark.asyncio
async def test_continuation_runs_as_contract(make_contract, registry_client):
    """Test the outcome hook runs in a new call made by the contract."""
    contract = make_contract()
    seen = []

    async def on_outcome(ctx, request, success):
        seen.append((ctx.caller, request.token_id, success))

    contract.registry.coordinator.on_outcome = on_outcome
    await contract.place_new_asset(ALICE, TOKEN, 50)
    await contract.runtime.drain()

    assert seen == [(CONTRACT_ID, TOKEN, True)]

@pytest.mark.asyncio
async def test_continuation_failure_keeps_issuing_call(make_contract):
    """Test a raising continuation cannot undo the call that issued it."""
    contract = make_contract()

    async def on_outcome(ctx, request, success):
        raise ContractError("outcome rejected")

    contract.registry.coordinator.on_outcome = on_outcome
    listed = await contract.place_new_asset(ALICE, TOKEN, 50)
    await contract.runtime.drain()

    assert await contract.view_asset(TOKEN) == listed
    receipt = contract.runtime.receipts[-1]
    assert receipt.ok
    assert receipt.callback_result is None

@pytest.mark.asyncio
async def test_view_cannot_schedule(contract, registry_client):
    """Test view calls reject external effects."""
    async def sneaky(ctx):
        contract.registry.coordinator.transfer(ctx, receiver_id=BOB, token_id=TOKEN)

    with pytest.raises(ViewMutationError):
        await contract.runtime.view(sneaky)

@pytest.mark.asyncio
async def test_view_writes_are_discarded(contract):
    """Test writes made inside a view never reach the store."""
    async def write(ctx):
        await ctx.session.put_state({'version': [9, 9, 9]})

    await contract.runtime.view(write)
    assert await contract.get_current_ver() == (0, 0, 1)

@pytest.mark.asyncio
async def test_receipt_log_is_bounded(registry_client):
    """Test only the most recent receipts are kept."""
    runtime = Runtime(MemoryStore(), CONTRACT_ID, receipt_log_size=2)
    coordinator = TransferCoordinator(registry_client, "nft.test")

    async def transfer(ctx, token_id):
        coordinator.transfer(ctx, receiver_id=ctx.caller, token_id=token_id)

    for token_id in ("A", "B", "C"):
        await runtime.call(transfer, ALICE, token_id=token_id)
    await runtime.drain()

    assert len(runtime.receipts) == 2
    assert len(registry_client.transfers) == 3

@pytest.mark.asyncio
async def test_promise_without_callback(registry_client):
    """Test a fire-and-forget promise records its own receipt."""
    runtime = Runtime(MemoryStore(), CONTRACT_ID)

    async def ping(ctx):
        ctx.schedule(Promise(description="ping", action=lambda: "pong"))

    await runtime.call(ping, ALICE)
    await runtime.drain()

    receipt = runtime.receipts[0]
    assert receipt.ok
    assert receipt.description == "ping"
    assert receipt.callback_result is None
