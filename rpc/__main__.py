"""Command line interface for checking RPC connectivity"""
import sys

from . import registry, host, NodeConnectionError, NodeAuthError, RegistryError

def check_rpc(token_id: str, account_id: str):
    """Query the registry for a token and the host wallet for a balance"""
    try:
        print("\nRegistry:")
        print("-" * 50)
        token = registry.nft_token(token_id=token_id)
        print(f"  Token {token_id}: {token}")

        print("\nHost wallet:")
        print("-" * 50)
        balance = host.get_balance(account_id=account_id)
        print(f"  Balance of {account_id}: {balance}")

    except NodeConnectionError as e:
        print("\nFailed to connect to node:")
        print(f"  {str(e)}")

    except NodeAuthError as e:
        print("\nAuthentication failed:")
        print(f"  {str(e)}")
        print("\nPlease check your rpc_user and rpc_password settings in settings.conf")

    except RegistryError as e:
        print(f"\nNode Error [{e.code}] in {e.method}:")
        print(f"  {str(e)}")

if __name__ == "__main__":
    if len(sys.argv) != 3:
        print("usage: python -m rpc <token_id> <account_id>")
        sys.exit(1)
    check_rpc(sys.argv[1], sys.argv[2])
