"""RPC module for interacting with the asset registry and the host wallet"""
import threading

import requests
from typing import Any, Dict, Optional
from config import settings_conf

class RPCError(Exception):
    """Base exception for RPC errors"""
    def __init__(self, message: str, code: Optional[int] = None, method: Optional[str] = None):
        self.code = code
        self.method = method
        super().__init__(f"RPC Error [{code}] in {method}: {message}" if code else message)

class NodeConnectionError(RPCError):
    """Raised when connection to node fails"""
    pass

class NodeAuthError(RPCError):
    """Raised when authentication failed"""
    pass

class RegistryError(RPCError):
    """Error returned by the remote node

    Common error codes:
    -32600 - Invalid request
    -32601 - Method not found
    -32602 - Invalid params
    -32603 - Internal error
    -32000 - Handler error (e.g. token not owned by sender, approval mismatch)
    """
    # Map of known JSON-RPC error codes to human-readable messages
    ERROR_MESSAGES = {
        -32600: "Invalid request",
        -32601: "Method not found",
        -32602: "Invalid params",
        -32603: "Internal error",
        -32000: "Handler error",
    }

    def __init__(self, message: str, code: int, method: str):
        self.code = code
        self.method = method
        # Get standard message for known error codes
        standard_msg = self.ERROR_MESSAGES.get(code, "Unknown error")
        # Combine standard message with specific message if different
        full_msg = f"{standard_msg} - {message}" if message != standard_msg else message
        super().__init__(full_msg, code, method)

class RPCMethod:
    """Descriptor class for RPC methods"""
    def __init__(self, method_name: str):
        self.method_name = method_name

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self

        def caller(*args, **kwargs) -> Any:
            return obj._call_method(self.method_name, *args, **kwargs)

        return caller

class JSONRPCClient:
    """JSON-RPC 2.0 client over HTTP

    Safe to share between threads: each thread gets its own session and
    request ids are drawn from a lock-protected counter.
    """

    def __init__(
        self,
        url: str,
        rpc_user: Optional[str] = None,
        rpc_password: Optional[str] = None,
        timeout: float = 10.0
    ):
        """Initialize RPC client.

        Args:
            url: Endpoint URL of the node
            rpc_user: Optional basic auth user
            rpc_password: Optional basic auth password
            timeout: Seconds before a request is abandoned
        """
        self.url = url
        self.timeout = timeout
        self.auth = (rpc_user, rpc_password or '') if rpc_user else None

        self._local = threading.local()
        self._id_lock = threading.Lock()
        self._request_id = 0

    @property
    def session(self) -> requests.Session:
        """Session of the calling thread, created with auth on first use"""
        session = getattr(self._local, 'session', None)
        if session is None:
            session = requests.Session()
            session.auth = self.auth
            session.headers['content-type'] = 'application/json'
            self._local.session = session
        return session

    def _get_request_id(self) -> int:
        """Get unique request ID"""
        with self._id_lock:
            self._request_id += 1
            return self._request_id

    def _call_method(self, method: str, *args, **kwargs) -> Any:
        """Make RPC call to the node

        Positional arguments are sent as a params array, keyword arguments
        as a params object. Mixing both is not supported by JSON-RPC.

        Args:
            method: RPC method name
            *args: Positional method arguments
            **kwargs: Named method arguments

        Returns:
            Response from node

        Raises:
            NodeConnectionError: Connection to node failed
            NodeAuthError: Authentication failed
            RegistryError: Node returned an error object
        """
        if args and kwargs:
            raise ValueError("JSON-RPC params must be either positional or named")

        payload: Dict[str, Any] = {
            "jsonrpc": "2.0",
            "method": method,
            "params": kwargs if kwargs else list(args),
            "id": self._get_request_id()
        }

        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)

            # Check for auth error
            if response.status_code == 401:
                raise NodeAuthError("Authentication failed - check rpc_user/rpc_password")

            # Try to parse response even if status code is error
            result = response.json()

            # Check for RPC error
            if 'error' in result and result['error'] is not None:
                error = result['error']
                raise RegistryError(
                    error.get('message', 'Unknown error'),
                    error.get('code', -32603),
                    method
                )

            # Now check for HTTP errors after we've tried to parse potential error response
            response.raise_for_status()

            return result['result']

        except requests.exceptions.Timeout as e:
            raise NodeConnectionError(
                f"Request timed out after {self.timeout} seconds"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise NodeConnectionError(
                f"Failed to connect to node at {self.url}"
            ) from e
        except requests.exceptions.HTTPError as e:
            raise NodeConnectionError(
                f"HTTP error occurred: {str(e)}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise NodeConnectionError(
                f"Request failed: {str(e)}"
            ) from e
        except (KeyError, ValueError) as e:
            raise NodeConnectionError(
                f"Invalid response format: {str(e)}"
            ) from e

class RegistryRPC(JSONRPCClient):
    """Client for the external asset registry"""

    # Ownership methods
    nft_transfer = RPCMethod('nft_transfer')
    nft_token = RPCMethod('nft_token')

class HostRPC(JSONRPCClient):
    """Client for the host wallet holding the contract's native currency"""

    send_payment = RPCMethod('send_payment')
    get_balance = RPCMethod('get_balance')

def create_registry_client(settings: Optional[Dict[str, Any]] = None) -> RegistryRPC:
    """Create a registry client from settings"""
    settings = settings or settings_conf
    return RegistryRPC(
        settings['registry_rpc_url'],
        settings.get('rpc_user'),
        settings.get('rpc_password'),
        settings.get('rpc_timeout', 10.0)
    )

def create_host_client(settings: Optional[Dict[str, Any]] = None) -> HostRPC:
    """Create a host wallet client from settings"""
    settings = settings or settings_conf
    return HostRPC(
        settings['host_rpc_url'],
        settings.get('rpc_user'),
        settings.get('rpc_password'),
        settings.get('rpc_timeout', 10.0)
    )

# Create global instances
registry = create_registry_client()
host = create_host_client()

# Export clients and error types
__all__ = [
    # Error types
    'RPCError',
    'NodeConnectionError',
    'NodeAuthError',
    'RegistryError',

    # Clients
    'JSONRPCClient',
    'RegistryRPC',
    'HostRPC',
    'create_registry_client',
    'create_host_client',
    'registry',
    'host',
]
