"""Command line interface for running the escrow API server."""
import argparse
import logging

import uvicorn

from config import settings_conf

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

def main():
    """Run the API server."""
    parser = argparse.ArgumentParser(description="Run the NFT escrow API server")
    parser.add_argument('--host', default=settings_conf['api_host'], help="Address to bind")
    parser.add_argument('--port', type=int, default=settings_conf['api_port'], help="Port to bind")
    parser.add_argument('--reload', action='store_true', help="Reload on code changes")
    args = parser.parse_args()

    logger.info(
        f"Starting API on {args.host}:{args.port} "
        f"with {settings_conf['storage_backend']} storage"
    )
    uvicorn.run(
        "api:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info"
    )

if __name__ == "__main__":
    main()
