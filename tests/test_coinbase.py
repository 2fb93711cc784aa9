"""
Coinbase Oracle Tests
"""

import asyncio
import base64
import json

import httpx
import pytest
from eth_abi import decode, encode
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from oracle_gas_tools.config import Settings
from oracle_gas_tools.errors import (
    ConfigurationError,
    MalformedResponseError,
    SignatureError,
    SymbolNotFoundError,
    TransportError,
)
from oracle_gas_tools.oracles import coinbase


REPORTER_KEY = "0x" + "11" * 32
OTHER_KEY = "0x" + "22" * 32
SECRET = base64.b64encode(b"coinbase-secret").decode()


def price_message(ticker: str, price: int, timestamp: int = 1_700_000_000) -> str:
    return Web3.to_hex(
        encode(["string", "uint256", "string", "uint256"], ["prices", timestamp, ticker, price])
    )


def sign(message: str, key: str) -> str:
    digest = Web3.keccak(hexstr=message)
    signed = Account.sign_message(encode_defunct(primitive=digest), private_key=key)
    return Web3.to_hex(signed.signature)


@pytest.fixture
def reporter(monkeypatch) -> str:
    address = Account.from_key(REPORTER_KEY).address
    monkeypatch.setattr(coinbase, "COINBASE_REPORTER", address)
    return address


@pytest.fixture
def credentials() -> coinbase.CoinbaseCredentials:
    return coinbase.CoinbaseCredentials(api_key="key", api_secret=SECRET, passphrase="pass")


class TestCredentials:
    """Credential resolution"""

    def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            COINBASE_API_KEY="key",
            COINBASE_API_SECRET=SECRET,
            COINBASE_API_PASSPHRASE="pass",
        )
        credentials = coinbase.CoinbaseCredentials.from_settings(settings)
        assert credentials.passphrase == "pass"

    def test_missing(self):
        settings = Settings(
            _env_file=None,
            COINBASE_API_KEY="key",
            COINBASE_API_SECRET="",
            COINBASE_API_PASSPHRASE="",
        )
        with pytest.raises(ConfigurationError, match="COINBASE_API_SECRET, COINBASE_API_PASSPHRASE"):
            coinbase.CoinbaseCredentials.from_settings(settings)


class TestRequestSigning:
    """CB-ACCESS headers"""

    def test_headers(self, credentials):
        headers = coinbase.request_headers(credentials, timestamp="1700000000.000")
        assert headers["CB-ACCESS-TIMESTAMP"] == "1700000000.000"
        assert headers["CB-ACCESS-KEY"] == "key"
        assert headers["CB-ACCESS-PASSPHRASE"] == "pass"
        assert len(base64.b64decode(headers["CB-ACCESS-SIGN"])) == 32

    def test_signature_depends_on_timestamp(self):
        first = coinbase.sign_request(SECRET, "1", "GET", "/oracle")
        second = coinbase.sign_request(SECRET, "2", "GET", "/oracle")
        assert first != second
        assert first == coinbase.sign_request(SECRET, "1", "GET", "/oracle")


class TestVerification:
    """Message decoding and signer checks"""

    def test_decode_message(self):
        kind, timestamp, ticker, price = coinbase.decode_message(price_message("BTC", 42))
        assert (kind, timestamp, ticker, price) == ("prices", 1_700_000_000, "BTC", 42)

    def test_recover_signer(self, reporter):
        message = price_message("ETH", 2000)
        assert coinbase.recover_signer(message, sign(message, REPORTER_KEY)) == reporter

    def test_verify_keys_by_ticker(self, reporter):
        messages = [price_message("ETH", 2000), price_message("BTC", 30000)]
        response = coinbase.OracleResponse(
            messages=messages, signatures=[sign(m, REPORTER_KEY) for m in messages]
        )
        prices = coinbase.verify_prices(response)
        assert sorted(prices) == ["BTC", "ETH"]
        assert prices["ETH"].message == messages[0]

    def test_foreign_signer(self, reporter):
        message = price_message("ETH", 2000)
        response = coinbase.OracleResponse(messages=[message], signatures=[sign(message, OTHER_KEY)])
        with pytest.raises(SignatureError):
            coinbase.verify_prices(response)

    def test_count_mismatch(self, reporter):
        response = coinbase.OracleResponse(messages=[price_message("ETH", 1)], signatures=[])
        with pytest.raises(MalformedResponseError):
            coinbase.verify_prices(response)


class TestFetch:
    """Oracle endpoint"""

    def _client(self, handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    def test_fetch_prices(self, reporter, credentials):
        message = price_message("ETH", 2000)
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                200, json={"messages": [message], "signatures": [sign(message, REPORTER_KEY)]}
            )

        prices = asyncio.run(
            coinbase.fetch_prices(credentials, self._client(handler), "https://cb.test")
        )

        assert list(prices) == ["ETH"]
        assert seen[0].url.path == "/oracle"
        assert seen[0].headers["CB-ACCESS-KEY"] == "key"

    def test_http_error(self, credentials):
        client = self._client(lambda request: httpx.Response(401, json={}))
        with pytest.raises(TransportError):
            asyncio.run(coinbase.fetch_prices(credentials, client, "https://cb.test"))

    def test_malformed(self, credentials):
        client = self._client(lambda request: httpx.Response(200, json={"messages": []}))
        with pytest.raises(MalformedResponseError):
            asyncio.run(coinbase.fetch_prices(credentials, client, "https://cb.test"))


class TestCache:
    """JSON cache and calldata"""

    def test_round_trip_and_encode(self, tmp_path):
        message = price_message("ETH", 2000)
        signature = "0x" + "ab" * 65
        path = tmp_path / "cache" / "data.json"
        coinbase.write_cache({"ETH": coinbase.SignedPrice(message=message, signature=signature)}, path)

        assert json.loads(path.read_text())["ETH"]["signature"] == signature

        calldata = coinbase.encode_ticker(coinbase.read_cache(path), "ETH")
        decoded_message, decoded_signature = decode(
            ["bytes", "bytes"], Web3.to_bytes(hexstr=calldata)
        )
        assert Web3.to_hex(decoded_message) == message
        assert decoded_signature == bytes.fromhex("ab" * 65)

    def test_unknown_symbol(self):
        with pytest.raises(SymbolNotFoundError):
            coinbase.encode_ticker({}, "DOGE")
