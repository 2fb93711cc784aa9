"""
Coinbase Oracle

Fetches signed prices from the Coinbase Exchange oracle endpoint, checks that
they were signed by the Coinbase reporter, caches them as JSON and encodes a
cached ticker as `(bytes message, bytes signature)` calldata.
"""

import base64
import hashlib
import hmac
import json
import logging
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import httpx
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_account import Account
from eth_account.messages import encode_defunct
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError
from web3 import Web3

from ..config import Settings, get_settings
from ..errors import (
    ConfigurationError,
    MalformedResponseError,
    SignatureError,
    SymbolNotFoundError,
    TransportError,
)

logger = logging.getLogger(__name__)

ORACLE_PATH = "/oracle"
COINBASE_REPORTER = "0xfCEAdAFab14d46e20144F48824d0C09B1a03F2BC"
MESSAGE_TYPES = ["string", "uint256", "string", "uint256"]


class CoinbaseCredentials(BaseModel):
    api_key: str
    api_secret: str
    passphrase: str

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CoinbaseCredentials":
        """
        Raises:
            ConfigurationError: if any credential is missing
        """
        settings = settings or get_settings()
        missing = [
            name
            for name, value in (
                ("COINBASE_API_KEY", settings.coinbase_api_key),
                ("COINBASE_API_SECRET", settings.coinbase_api_secret),
                ("COINBASE_API_PASSPHRASE", settings.coinbase_api_passphrase),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"missing {', '.join(missing)}")
        return cls(
            api_key=settings.coinbase_api_key,
            api_secret=settings.coinbase_api_secret,
            passphrase=settings.coinbase_api_passphrase,
        )


class OracleResponse(BaseModel):
    """Coinbase `/oracle` response"""
    messages: List[str]
    signatures: List[str]


class SignedPrice(BaseModel):
    """Cached signed price message"""
    message: str = Field(..., description="ABI-encoded price message")
    signature: str = Field(..., description="Reporter signature over the message")


def sign_request(secret: str, timestamp: str, method: str, path: str) -> str:
    """CB-ACCESS-SIGN header value"""
    message = (timestamp + method + path).encode()
    digest = hmac.new(base64.b64decode(secret), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def request_headers(credentials: CoinbaseCredentials, timestamp: Optional[str] = None) -> Dict[str, str]:
    timestamp = timestamp or f"{time.time():.3f}"
    return {
        "CB-ACCESS-SIGN": sign_request(credentials.api_secret, timestamp, "GET", ORACLE_PATH),
        "CB-ACCESS-TIMESTAMP": timestamp,
        "CB-ACCESS-KEY": credentials.api_key,
        "CB-ACCESS-PASSPHRASE": credentials.passphrase,
    }


def decode_message(message: str) -> Tuple[str, int, str, int]:
    """
    Decode a signed price message.

    Returns:
        (kind, timestamp, ticker, price)
    """
    return tuple(decode(MESSAGE_TYPES, Web3.to_bytes(hexstr=message)))


def recover_signer(message: str, signature: str) -> str:
    """Address that signed keccak256(message) as an Ethereum signed message"""
    digest = Web3.keccak(hexstr=message)
    return Account.recover_message(encode_defunct(primitive=digest), signature=signature)


def verify_prices(response: OracleResponse) -> Dict[str, SignedPrice]:
    """
    Check every message signature and key the messages by ticker.

    Raises:
        SignatureError: a message was not signed by the Coinbase reporter
        MalformedResponseError: message and signature counts differ
    """
    if len(response.messages) != len(response.signatures):
        raise MalformedResponseError(
            f"{len(response.messages)} messages but {len(response.signatures)} signatures",
            payload=response.model_dump(),
        )

    prices: Dict[str, SignedPrice] = {}
    for message, signature in zip(response.messages, response.signatures):
        try:
            _, _, ticker, _ = decode_message(message)
        except (DecodingError, ValueError) as e:
            raise MalformedResponseError(
                f"Undecodable price message {message}: {e}", payload=message
            ) from e
        signer = recover_signer(message, signature)
        if signer.lower() != COINBASE_REPORTER.lower():
            raise SignatureError(f"Invalid signature for {ticker}: signed by {signer}")
        prices[ticker] = SignedPrice(message=message, signature=signature)
    return prices


async def fetch_prices(
    credentials: CoinbaseCredentials,
    http_client: httpx.AsyncClient,
    api_url: Optional[str] = None,
) -> Dict[str, SignedPrice]:
    """
    Fetch and verify signed prices.

    Raises:
        TransportError: request failed
        MalformedResponseError: response is not `{messages, signatures}`
        SignatureError: a message has a foreign signature
    """
    url = (api_url or get_settings().coinbase_api_url).rstrip("/") + ORACLE_PATH
    try:
        response = await http_client.get(url, headers=request_headers(credentials))
    except httpx.HTTPError as e:
        raise TransportError(f"GET {url} failed: {e}", url=url) from e
    if not 200 <= response.status_code < 300:
        raise TransportError(
            f"GET {url} returned HTTP {response.status_code}",
            status_code=response.status_code,
            url=url,
        )

    try:
        data = response.json()
        oracle_response = OracleResponse.model_validate(data)
    except (ValueError, PydanticValidationError) as e:
        raise MalformedResponseError(
            f"Failed to parse Coinbase oracle response: {e}", payload=response.text
        ) from e

    prices = verify_prices(oracle_response)
    logger.info(f"Fetched {len(prices)} signed Coinbase prices")
    return prices


def write_cache(prices: Dict[str, SignedPrice], path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps({ticker: p.model_dump() for ticker, p in prices.items()}, indent=2)
    )


def read_cache(path: Path) -> Dict[str, SignedPrice]:
    data = json.loads(Path(path).read_text())
    return {ticker: SignedPrice.model_validate(record) for ticker, record in data.items()}


def encode_ticker(prices: Dict[str, SignedPrice], symbol: str) -> str:
    """
    ABI-encode the cached message and signature of one ticker.

    Raises:
        SymbolNotFoundError: ticker not cached
    """
    price = prices.get(symbol)
    if price is None:
        raise SymbolNotFoundError(f"Symbol not found: {symbol}")
    encoded = encode(
        ["bytes", "bytes"],
        [Web3.to_bytes(hexstr=price.message), Web3.to_bytes(hexstr=price.signature)],
    )
    return "0x" + encoded.hex()
