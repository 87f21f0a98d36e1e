"""Versioned storage for the escrow contract.

The contract keeps a (major, minor, patch) version triple in its state
document. The patch component salts the namespace of every collection, so
bumping it with ``reset()`` leaves all previous accounts and assets behind
under their old namespace and starts every collection empty. Nothing is
deleted from the backing store; a migration that wants to carry records
forward has to read the old namespace before the reset is issued.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from pydantic import BaseModel, Field

from .store import StorageSession

logger = logging.getLogger(__name__)

T = TypeVar('T')

ACCOUNTS = 'accounts'
ASSETS = 'assets'
COLLECTIONS = (ACCOUNTS, ASSETS)

@dataclass
class Version:
    """Schema version triple"""
    major: int
    minor: int
    patch: int

    def inc(self) -> None:
        """Bump the patch component, which drives namespace re-keying."""
        self.patch += 1

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

INITIAL_VERSION = (0, 0, 1)

class ContractState(BaseModel):
    """Contract-wide state document."""
    version: Tuple[int, int, int] = INITIAL_VERSION
    account_count: int = Field(default=0, ge=0)
    asset_count: int = Field(default=0, ge=0)

    def get_version(self) -> Version:
        return Version(*self.version)

def namespace_for(name: str, version: Version) -> bytes:
    """Derive the storage namespace of a collection under a version salt."""
    return hashlib.sha256(f"{name}_{version.patch}".encode()).digest()

class Collection(Generic[T]):
    """Keyed collection of records living under one namespace.

    Args:
        session: Storage session of the current call
        name: Collection name
        version: Version whose patch salts the namespace
        load: Converts a stored document into a record
        dump: Converts a record into a document
    """

    def __init__(
        self,
        session: StorageSession,
        name: str,
        version: Version,
        load: Callable[[Dict[str, Any]], T],
        dump: Callable[[T], Dict[str, Any]]
    ) -> None:
        self.session = session
        self.name = name
        self.namespace = namespace_for(name, version)
        self._load = load
        self._dump = dump

    async def get(self, key: str) -> Optional[T]:
        document = await self.session.get(self.namespace, key)
        return self._load(document) if document is not None else None

    async def contains(self, key: str) -> bool:
        return await self.session.get(self.namespace, key) is not None

    async def insert(self, key: str, record: T) -> None:
        await self.session.put(self.namespace, key, self._dump(record))

    async def items(self) -> List[Tuple[str, T]]:
        return [(key, self._load(doc)) for key, doc in await self.session.items(self.namespace)]

    async def keys(self) -> List[str]:
        return [key for key, _ in await self.session.items(self.namespace)]

class StorageView:
    """Per-call handle on the contract state and its collections."""

    def __init__(self, storage: 'VersionedStorage', session: StorageSession, state: ContractState):
        self.storage = storage
        self.session = session
        self.state = state

    @property
    def version(self) -> Version:
        return self.state.get_version()

    def collection(self, name: str) -> Collection:
        load, dump = self.storage.codec(name)
        return Collection(self.session, name, self.version, load, dump)

    @property
    def accounts(self) -> Collection:
        return self.collection(ACCOUNTS)

    @property
    def assets(self) -> Collection:
        return self.collection(ASSETS)

    async def save_state(self) -> None:
        await self.session.put_state(self.state.model_dump(mode='json'))

class VersionedStorage:
    """Schema version counter plus the collections it salts.

    Record codecs are registered per collection name by the components that
    own those records, so this layer never needs to know their shapes.
    """

    def __init__(self) -> None:
        self._codecs: Dict[str, Tuple[Callable, Callable]] = {}

    def register_codec(
        self,
        name: str,
        load: Callable[[Dict[str, Any]], Any],
        dump: Callable[[Any], Dict[str, Any]]
    ) -> None:
        if name not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {name}")
        self._codecs[name] = (load, dump)

    def codec(self, name: str) -> Tuple[Callable, Callable]:
        try:
            return self._codecs[name]
        except KeyError:
            raise ValueError(f"No codec registered for collection {name}") from None

    async def load_state(self, session: StorageSession) -> ContractState:
        document = await session.get_state()
        if document is None:
            return ContractState()
        return ContractState.model_validate(document)

    async def open(self, session: StorageSession) -> StorageView:
        """Open the collections of the current version for one call."""
        return StorageView(self, session, await self.load_state(session))

    async def current_version(self, session: StorageSession) -> Version:
        return (await self.load_state(session)).get_version()

    async def reset(self, session: StorageSession) -> Version:
        """Discard every account and asset by moving to a fresh namespace.

        Returns:
            The new version
        """
        state = await self.load_state(session)
        previous = state.get_version()
        version = state.get_version()
        version.inc()

        await session.put_state(
            ContractState(version=version.as_tuple()).model_dump(mode='json')
        )
        logger.warning(
            f"Contract state reset: version {previous} -> {version}, "
            f"dropped {state.account_count} accounts and {state.asset_count} assets"
        )
        return version
