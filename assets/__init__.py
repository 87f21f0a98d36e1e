"""Assets module for the listing and purchase state machine.

This module provides functionality for:
- Listing an asset: custody moves to the contract, the asset becomes purchasable
- Buying an asset: custody moves to the buyer, the seller is paid, the listing closes
- Looking up listed and sold assets

Local state is committed in the same call that schedules the custody
transfer, before the registry has answered. A listing is therefore visible
(and a sale final) while its transfer is still in flight. With
track_transfer_phase enabled the in-flight state is recorded on the asset
and purchases wait for the listing's custody transfer to be confirmed.
"""

import logging
from typing import List, Optional, Tuple

from database.versioning import ASSETS, Version, VersionedStorage
from rpc import HostRPC
from runtime import ContractError, CallContext, MAX_AMOUNT
from transfers import TransferCoordinator, TransferPhase, TransferRequest, send_payment
from .models import Asset, load_asset, dump_asset

logger = logging.getLogger(__name__)

class AssetError(ContractError):
    """Base exception for asset operations."""
    pass

class InvalidTokenIdError(AssetError):
    """Raised when a token id is empty."""
    status_code = 400

class InvalidPriceError(AssetError):
    """Raised when a listing price is not an unsigned 128-bit amount."""
    status_code = 400

class AssetAlreadyListedError(AssetError):
    """Raised when listing a token id that is already present."""
    status_code = 409

class AssetNotListedError(AssetError):
    """Raised when buying a token id that was never listed."""
    status_code = 404

class AssetNotActiveError(AssetError):
    """Raised when buying an asset that is no longer for sale."""
    status_code = 409

class AssetNotFoundError(AssetError):
    """Raised when looking up an unknown token id."""
    status_code = 404

class InsufficientPaymentError(AssetError):
    """Raised when the attached payment is below the asking price."""
    status_code = 402

    def __init__(self, token_id: str, price: int, attached: int):
        self.token_id = token_id
        self.price = price
        self.attached = attached
        super().__init__(
            f"Insufficient funds for {token_id}: "
            f"price {price}, attached {attached}"
        )

class TransferPendingError(AssetError):
    """Raised when buying an asset whose custody transfer is unconfirmed."""
    status_code = 409

class AssetRegistry:
    """Manager class for handling asset listings and purchases."""

    def __init__(
        self,
        storage: VersionedStorage,
        coordinator: TransferCoordinator,
        host: HostRPC,
        track_transfer_phase: bool = False
    ):
        """Initialize the registry.

        Args:
            storage: Versioned storage holding the assets collection
            coordinator: Transfer coordinator moving custody through the registry
            host: RPC client of the wallet paying sellers
            track_transfer_phase: Record transfer phases and gate purchases on them
        """
        self.storage = storage
        self.coordinator = coordinator
        self.host = host
        self.track_transfer_phase = track_transfer_phase
        storage.register_codec(ASSETS, load_asset, dump_asset)
        if track_transfer_phase:
            coordinator.on_outcome = self.record_transfer_outcome

    async def list_asset(
        self,
        ctx: CallContext,
        token_id: str,
        price: int,
        approval_id: Optional[int] = None,
        memo: Optional[str] = None
    ) -> Asset:
        """Take custody of token_id and list it at price.

        The attached payment is forwarded with the custody transfer.

        Raises:
            AssetAlreadyListedError: If token_id is already present
        """
        if not token_id:
            raise InvalidTokenIdError("token_id is empty")
        if isinstance(price, bool) or not isinstance(price, int) or not 0 <= price <= MAX_AMOUNT:
            raise InvalidPriceError(f"Invalid price for {token_id}: {price!r}")

        view = await self.storage.open(ctx.session)
        if await view.assets.contains(token_id):
            raise AssetAlreadyListedError(f"Asset {token_id} already placed")

        self.coordinator.transfer(
            ctx,
            receiver_id=ctx.contract_id,
            token_id=token_id,
            approval_id=approval_id,
            memo=memo,
            deposit=ctx.attached_payment,
            state_version=view.version.as_tuple()
        )

        asset = Asset(
            token_id=token_id,
            price=price,
            init_time=ctx.timestamp,
            last_time=ctx.timestamp,
            last_owner=ctx.caller,
            last_user=ctx.caller,
            active=True,
            transfer_phase=TransferPhase.PENDING if self.track_transfer_phase else None
        )
        await view.assets.insert(token_id, asset)
        view.state.asset_count += 1
        await view.save_state()

        logger.info(f"Listed {token_id} by {ctx.caller} at {price}")
        return asset

    async def buy_asset(self, ctx: CallContext, token_id: str) -> Asset:
        """Buy a listed asset with the attached payment.

        The whole attached payment is forwarded with the custody transfer;
        the seller is paid the price separately from the contract wallet.

        Raises:
            AssetNotListedError: If token_id was never listed
            AssetNotActiveError: If the asset was already sold
            TransferPendingError: If phase tracking is on and custody is unconfirmed
            InsufficientPaymentError: If the attached payment is below the price
        """
        view = await self.storage.open(ctx.session)
        asset = await view.assets.get(token_id)
        if asset is None:
            raise AssetNotListedError(f"Asset {token_id} is not placed")
        if not asset.active:
            raise AssetNotActiveError(f"Asset {token_id} already was sold")

        if self.track_transfer_phase:
            if asset.transfer_phase == TransferPhase.PENDING:
                raise TransferPendingError(f"Custody transfer of {token_id} is not confirmed yet")
            if asset.transfer_phase == TransferPhase.FAILED:
                raise AssetNotActiveError(f"Custody transfer of {token_id} failed")

        if ctx.attached_payment < asset.price:
            raise InsufficientPaymentError(token_id, asset.price, ctx.attached_payment)

        self.coordinator.transfer(
            ctx,
            receiver_id=ctx.caller,
            token_id=token_id,
            deposit=ctx.attached_payment,
            state_version=view.version.as_tuple()
        )
        send_payment(ctx, self.host, asset.last_owner, asset.price)

        asset.last_user = ctx.caller
        asset.last_time = ctx.timestamp
        asset.active = False
        if self.track_transfer_phase:
            asset.transfer_phase = TransferPhase.PENDING
        await view.assets.insert(token_id, asset)

        logger.info(f"Sold {token_id} to {ctx.caller} for {asset.price}, paying {asset.last_owner}")
        return asset

    async def view_asset(self, ctx: CallContext, token_id: str) -> Asset:
        """Return one asset.

        Raises:
            AssetNotFoundError: If token_id is unknown
        """
        view = await self.storage.open(ctx.session)
        asset = await view.assets.get(token_id)
        if asset is None:
            raise AssetNotFoundError(f"Asset {token_id} not found")
        return asset

    async def view_all_assets(self, ctx: CallContext) -> List[Tuple[str, Asset]]:
        """Return every asset in listing order."""
        view = await self.storage.open(ctx.session)
        return await view.assets.items()

    async def record_transfer_outcome(
        self,
        ctx: CallContext,
        request: TransferRequest,
        success: bool
    ) -> None:
        """Record the confirmed or failed phase of a custody transfer.

        Outcomes of transfers issued before a reset are ignored, even when the
        same token has been listed again since.
        """
        view = await self.storage.open(ctx.session)
        if request.state_version is not None and request.state_version != view.version.as_tuple():
            logger.warning(
                f"Ignoring transfer outcome for {request.token_id} issued under version "
                f"{Version(*request.state_version)}, now {view.version}"
            )
            return

        asset = await view.assets.get(request.token_id)
        if asset is None:
            logger.warning(f"Transfer outcome for unknown asset {request.token_id}")
            return

        asset.transfer_phase = TransferPhase.CONFIRMED if success else TransferPhase.FAILED
        await view.assets.insert(request.token_id, asset)
        logger.info(f"Asset {request.token_id} transfer phase is now {asset.transfer_phase.value}")

__all__ = [
    'Asset',
    'AssetRegistry',
    'AssetError',
    'InvalidTokenIdError',
    'InvalidPriceError',
    'AssetAlreadyListedError',
    'AssetNotListedError',
    'AssetNotActiveError',
    'AssetNotFoundError',
    'InsufficientPaymentError',
    'TransferPendingError',
]
