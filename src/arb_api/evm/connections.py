"""Connection helpers for the Arbitrum EVM client."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

import requests
from web3 import HTTPProvider, Web3
from web3.exceptions import ProviderConnectionError, RequestTimedOut, Web3RPCError

from ..exceptions import InvalidResponseError, NetworkError, ValidationError
from .config import EVMClientConfig

T = TypeVar("T")

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    requests.RequestException,
    ProviderConnectionError,
    RequestTimedOut,
    ConnectionError,
    TimeoutError,
)


def rpc_error_reason(exc: BaseException) -> str:
    """Best-effort extraction of the node's message from a JSON-RPC error."""
    response = getattr(exc, "rpc_response", None)
    if isinstance(response, dict):
        error = response.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc)


def transport_status_code(exc: BaseException) -> int | None:
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None)


class NodeConnection:
    """Own the Web3 provider for one node endpoint.

    The connection is built once by ``connect()`` and only read afterwards,
    so it can be shared by the query and submission clients.
    """

    def __init__(self, config: EVMClientConfig, web3: Web3 | None = None):
        self.config = config
        self._provided_web3 = web3
        self._web3: Web3 | None = None
        self._chain_id: int | None = None
        self._connected = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def connect(self) -> None:
        """Initialise the provider and check the node serves the configured chain."""

        web3 = self._provided_web3 or self._build_web3(self.config.rpc_url)
        try:
            reachable = web3.is_connected()
        except TRANSPORT_ERRORS as exc:
            raise NetworkError(
                f"Unable to connect to {self.config.network.name} RPC",
                endpoint=self.config.rpc_url,
                status_code=transport_status_code(exc),
                details={"error": str(exc)},
            ) from exc
        if not reachable:
            raise NetworkError(
                f"Unable to connect to {self.config.network.name} RPC",
                endpoint=self.config.rpc_url,
            )

        self._web3 = web3
        self._connected = True
        chain_id = self.request("eth_chainId", lambda w3: w3.eth.chain_id)
        if chain_id != self.config.chain_id:
            self.disconnect()
            raise ValidationError(
                "Node chain ID does not match configured network",
                field="chain_id",
                value=chain_id,
                details={"expected": self.config.chain_id, "endpoint": self.config.rpc_url},
            )
        self._chain_id = chain_id
        logger.info(
            "Connected to %s RPC at %s (chain_id=%s)",
            self.config.network.name,
            self.config.rpc_url,
            chain_id,
        )

    def disconnect(self) -> None:
        self._web3 = None
        self._chain_id = None
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected and self._web3 is not None

    def ensure_connected(self) -> None:
        if not self.is_connected():
            raise NetworkError("EVM connector is not connected", endpoint=self.config.rpc_url)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def web3(self) -> Web3:
        if self._web3 is None:
            raise NetworkError(
                f"{self.config.network.name} RPC provider not connected",
                endpoint=self.config.rpc_url,
            )
        return self._web3

    @property
    def endpoint(self) -> str:
        return self.config.rpc_url

    @property
    def chain_id(self) -> int | None:
        return self._chain_id

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def request(self, method: str, fn: Callable[[Web3], T]) -> T:
        """Run a read against the node, translating web3 failures.

        Transport failures become ``NetworkError``; JSON-RPC error replies and
        results web3 cannot format become ``InvalidResponseError``.
        """
        web3 = self.web3
        try:
            return fn(web3)
        except TRANSPORT_ERRORS as exc:
            raise NetworkError(
                f"Transport failure during {method}",
                endpoint=self.endpoint,
                status_code=transport_status_code(exc),
                details={"method": method, "error": str(exc)},
            ) from exc
        except Web3RPCError as exc:
            raise InvalidResponseError(
                f"Node returned an error for {method}: {rpc_error_reason(exc)}",
                endpoint=self.endpoint,
                details={"method": method, "error": rpc_error_reason(exc)},
            ) from exc
        except (ValueError, TypeError) as exc:
            # web3 result formatters reject malformed quantities before we see them
            raise InvalidResponseError(
                f"Node returned a malformed result for {method}",
                endpoint=self.endpoint,
                details={"method": method, "error": str(exc)},
            ) from exc

    # ------------------------------------------------------------------
    # Internal wiring
    # ------------------------------------------------------------------
    def _build_web3(self, rpc_url: str) -> Web3:
        # Retries are driven by RetryConfig, not by the provider
        provider = HTTPProvider(
            rpc_url,
            request_kwargs={"timeout": self.config.request_timeout},
            exception_retry_configuration=None,
        )
        return Web3(provider)

