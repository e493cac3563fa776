import logging
from typing import Any, Optional

import requests
from web3 import LegacyWebSocketProvider, Web3
from web3.exceptions import TimeExhausted, Web3Exception

from avs_operator.errors import ChainConnectionError, NonceError, SubmissionError

logger = logging.getLogger(__name__)


class ForcePostHTTPProvider(Web3.HTTPProvider):
    """Force JSON POST for nodes that reject GETs. Also uses a monotonically
    increasing id to avoid some proxy caches mixing responses."""

    _req_id = 0

    def make_request(self, method, params):
        ForcePostHTTPProvider._req_id += 1
        response = requests.post(
            self.endpoint_uri,
            json={
                "jsonrpc": "2.0",
                "method": method,
                "params": params,
                "id": ForcePostHTTPProvider._req_id,
            },
            headers={"Content-Type": "application/json"},
            timeout=self._request_kwargs.get("timeout", 10),
        )
        response.raise_for_status()
        return response.json()


def normalize_rpc_url(rpc_url: str) -> str:
    """Bare ``host:port`` endpoints are websocket endpoints."""
    rpc_url = rpc_url.strip()
    if "://" not in rpc_url:
        return f"ws://{rpc_url}"
    return rpc_url


def to_hex(value: Any) -> str:
    if isinstance(value, str):
        return value if value.startswith("0x") else "0x" + value
    return "0x" + bytes(value).hex()


class ChainClient:
    """Thin handle to a ledger node: chain id, pending nonce, raw submission."""

    def __init__(self, w3: Web3):
        self.w3 = w3
        self._chain_id: Optional[int] = None

    @classmethod
    def connect(cls, rpc_url: str, timeout: float = 10) -> "ChainClient":
        url = normalize_rpc_url(rpc_url)
        if url.startswith(("ws://", "wss://")):
            provider = LegacyWebSocketProvider(url, websocket_timeout=timeout)
        else:
            provider = ForcePostHTTPProvider(url, request_kwargs={"timeout": timeout})
        w3 = Web3(provider)
        try:
            connected = w3.is_connected()
        except Exception as e:
            raise ChainConnectionError(f"Error while connecting to {url}: {e}") from e
        if not connected:
            raise ChainConnectionError(f"Ethereum node at {url} is not reachable")
        client = cls(w3)
        logger.info("Connected to %s (chain id %s)", url, client.network_id())
        return client

    def network_id(self) -> int:
        if self._chain_id is None:
            try:
                self._chain_id = int(self.w3.eth.chain_id)
            except (Web3Exception, requests.exceptions.RequestException, OSError) as e:
                raise ChainConnectionError(f"Error while getting network id: {e}") from e
        return self._chain_id

    def pending_nonce(self, address: str) -> int:
        try:
            return int(
                self.w3.eth.get_transaction_count(address, block_identifier="pending")
            )
        except (Web3Exception, requests.exceptions.RequestException, OSError) as e:
            raise NonceError(f"Error while getting nonce for {address}: {e}") from e

    def contract(self, address: str, abi):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def submit(self, signed_tx) -> str:
        """Send a signed transaction once. No retry happens here."""
        raw = getattr(signed_tx, "raw_transaction", signed_tx)
        try:
            tx_hash = self.w3.eth.send_raw_transaction(raw)
        except (Web3Exception, requests.exceptions.RequestException, OSError, ValueError) as e:
            raise SubmissionError(f"Error while sending transaction: {e}") from e
        return to_hex(tx_hash)

    def wait_for_receipt(self, tx_hash: str, timeout: float = 180):
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted as e:
            raise SubmissionError(f"tx {tx_hash} not mined within {timeout}s") from e
        except (Web3Exception, requests.exceptions.RequestException, OSError) as e:
            raise SubmissionError(f"Error while waiting for {tx_hash}: {e}") from e
        if receipt["status"] != 1:
            raise SubmissionError(f"tx {tx_hash} reverted on-chain")
        return receipt
