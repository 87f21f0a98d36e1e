"""Shared fixtures: an in-memory contract wired to recording RPC doubles."""

import itertools
import threading
from typing import Any, Dict, List

import pytest
import pytest_asyncio

from config import load_config, validate_settings
from contract import create_contract
from database.store import MemoryStore
from rpc import NodeConnectionError, RegistryError

CONTRACT_ID = "escrow.test"
REGISTRY_ID = "nft.test"
ADMIN_ID = "admin.test"
ALICE = "alice.test"
BOB = "bob.test"

class FakeRegistry:
    """Registry client double recording every transfer request."""

    def __init__(self):
        self.transfers: List[Dict[str, Any]] = []
        self.fail = False
        self._lock = threading.Lock()

    def nft_transfer(self, **params):
        with self._lock:
            self.transfers.append(params)
        if self.fail:
            raise RegistryError("Sender is not the token owner", -32000, 'nft_transfer')
        return True

class FakeHost:
    """Host wallet client double recording every payment."""

    def __init__(self):
        self.payments: List[Dict[str, Any]] = []
        self.fail = False
        self._lock = threading.Lock()

    def send_payment(self, receiver_id, amount):
        with self._lock:
            self.payments.append({'receiver_id': receiver_id, 'amount': amount})
        if self.fail:
            raise NodeConnectionError("Failed to connect to node at http://127.0.0.1:3031")
        return {'receiver_id': receiver_id, 'amount': amount}

@pytest.fixture
def registry_client():
    return FakeRegistry()

@pytest.fixture
def host_client():
    return FakeHost()

@pytest.fixture
def clock():
    """Deterministic nanosecond clock advancing one second per call."""
    ticks = itertools.count(1)
    return lambda: next(ticks) * 1_000_000_000

@pytest.fixture
def settings(tmp_path):
    """Settings loaded from an empty directory, so defaults plus overrides."""
    return load_config(
        settings_path=str(tmp_path),
        contract_account_id=CONTRACT_ID,
        registry_account_id=REGISTRY_ID,
        admin_accounts=ADMIN_ID
    )

@pytest.fixture
def make_contract(settings, registry_client, host_client, clock):
    """Factory building a contract on a fresh MemoryStore."""
    def factory(**overrides):
        return create_contract(
            validate_settings(dict(settings, **overrides)),
            store=MemoryStore(),
            registry_client=registry_client,
            host_client=host_client,
            clock=clock
        )
    return factory

@pytest_asyncio.fixture
async def contract(make_contract):
    """Contract with optimistic commit."""
    contract = make_contract()
    await contract.runtime.store.open()
    yield contract
    await contract.runtime.drain()
    await contract.runtime.store.close()

@pytest_asyncio.fixture
async def tracked_contract(make_contract):
    """Contract recording transfer phases and gating purchases on them."""
    contract = make_contract(track_transfer_phase=True)
    await contract.runtime.store.open()
    yield contract
    await contract.runtime.drain()
    await contract.runtime.store.close()
