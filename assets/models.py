"""Asset record shape."""
from typing import Any, Dict, Optional

from pydantic import BaseModel

from runtime import U128
from transfers import TransferPhase

class Asset(BaseModel):
    """A listed asset and its provenance.

    last_owner receives the payment of the next sale; last_user is whoever
    most recently listed or bought it.
    """
    token_id: str
    price: U128
    init_time: int
    last_time: int
    last_owner: str
    last_user: str
    active: bool = True
    transfer_phase: Optional[TransferPhase] = None

def load_asset(document: Dict[str, Any]) -> Asset:
    return Asset.model_validate(document)

def dump_asset(asset: Asset) -> Dict[str, Any]:
    return asset.model_dump(mode='json')
