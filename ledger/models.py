"""Account record shapes.

Accounts are stored as a tagged union over every shape the ledger has ever
written. Reading a record always upgrades it to the latest shape; writing
always uses the latest shape.
"""
from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from runtime import U128

class AccountV1(BaseModel):
    """Legacy account: id and balance only."""
    version: Literal['v1'] = 'v1'
    account_id: str
    balance: U128 = 0

class AccountV2(BaseModel):
    """Current account shape."""
    version: Literal['v2'] = 'v2'
    account_id: str
    balance: U128 = 0
    asset_ids: List[str] = Field(default_factory=list)

Account = AccountV2

VersionedAccount = Annotated[Union[AccountV1, AccountV2], Field(discriminator='version')]

_versioned_account = TypeAdapter(VersionedAccount)

def upgrade(record: Union[AccountV1, AccountV2]) -> Account:
    """Convert any historical account shape to the latest one."""
    if isinstance(record, AccountV1):
        return AccountV2(account_id=record.account_id, balance=record.balance)
    return record

def load_account(document: Dict[str, Any]) -> Account:
    # Records written before versioning carry no tag
    if 'version' not in document:
        document = dict(document, version='v1')
    return upgrade(_versioned_account.validate_python(document))

def dump_account(account: Account) -> Dict[str, Any]:
    return upgrade(account).model_dump(mode='json')
