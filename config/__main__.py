"""Command line interface for testing configuration loading"""
from . import settings_conf
from pathlib import Path

def main():
    """Display loaded configuration"""
    print("\nSettings Configuration:")
    print("-" * 50)
    for key, value in settings_conf.items():
        if key == 'rpc_password' and value:
            value = '********'
        print(f"{key}: {value}")

    # Save example configuration file
    examples_dir = Path("examples")
    examples_dir.mkdir(exist_ok=True)

    with open(examples_dir / "settings.conf.example", "w") as f:
        f.write("""[DEFAULT]
# Account id of the escrow contract itself (custody destination)
contract_account_id = escrow.testnet
# Account id of the external asset registry
registry_account_id = nft.testnet
# JSON-RPC endpoints for ownership transfers and native payments
registry_rpc_url = http://127.0.0.1:3030
host_rpc_url = http://127.0.0.1:3031
rpc_user = user
rpc_password = password
rpc_timeout = 10
# Execution fee budget forwarded with each ownership transfer
transfer_gas = 5000000000000
# memory or postgres
storage_backend = postgres
db_url = postgresql://root@localhost:26257/escrow?sslmode=disable
# Accounts allowed to call reset_state (the contract account always is)
admin_accounts = admin.testnet
# Record pending/confirmed/failed transfer phases on assets
track_transfer_phase = false
receipt_log_size = 1000
api_host = 0.0.0.0
api_port = 8000
""")

if __name__ == "__main__":
    main()
