"""JSON-RPC reader for Uniswap v3 pool state.

Reads go through plain `eth_call` with hand-encoded ABI selectors, so no web3
stack is needed. Historical reads pass a block tag and therefore need an
archive-capable node.
"""

from __future__ import annotations

from dataclasses import dataclass
import itertools
import logging
from threading import Lock
import time

import httpx

from position_apr.application.ports.chain_reader_port import ChainBlock
from position_apr.domain.entities.pool import Pool, TickSnapshot, Token
from position_apr.domain.services.univ3_fee_growth import parse_uint128, parse_uint160, parse_uint256


logger = logging.getLogger(__name__)


ABI_WORD_HEX = 64
ADDRESS_PAD_HEX = 24
SIGN_BIT = 1 << 255
Q256 = 2**256

SELECTORS = {
    "slot0": "0x3850c7bd",
    "liquidity": "0x1a686502",
    "feeGrowthGlobal0X128": "0xf3058399",
    "feeGrowthGlobal1X128": "0x46141319",
    "ticks": "0xf30dba93",
    "token0": "0x0dfe1681",
    "token1": "0xd21220a7",
    "fee": "0xddca3f43",
    "tickSpacing": "0xd0c93a7c",
    "symbol": "0x95d89b41",
    "decimals": "0x313ce567",
    "name": "0x06fdde03",
}


class ChainRpcError(RuntimeError):
    pass


@dataclass(frozen=True)
class ChainRpcClientSettings:
    rpc_urls: dict
    timeout_seconds: float
    max_retries: int


def encode_int24(value: int) -> str:
    """ABI word for an int24 argument, sign-extended to 256 bits."""
    if value < 0:
        value = Q256 + value
    return format(value, f"0{ABI_WORD_HEX}x")


def decode_uint(hex_data: str, slot: int = 0) -> int:
    start = slot * ABI_WORD_HEX
    word = hex_data[start:start + ABI_WORD_HEX]
    if len(word) != ABI_WORD_HEX:
        raise ChainRpcError(f"ABI response too short for slot {slot}.")
    return int(word, 16)


def decode_int(hex_data: str, slot: int = 0) -> int:
    value = decode_uint(hex_data, slot)
    if value >= SIGN_BIT:
        return value - Q256
    return value


def decode_address(hex_data: str, slot: int = 0) -> str:
    start = slot * ABI_WORD_HEX
    return "0x" + hex_data[start + ADDRESS_PAD_HEX:start + ABI_WORD_HEX]


def decode_string(hex_data: str) -> str:
    # Some tokens (MKR and friends) return bytes32 instead of a dynamic string.
    try:
        offset = decode_uint(hex_data, 0) // 32
        length = decode_uint(hex_data, offset)
        start = (offset + 1) * ABI_WORD_HEX
        raw = bytes.fromhex(hex_data[start:start + length * 2])
        if len(raw) == length:
            return raw.decode("utf-8").strip("\x00")
    except (ChainRpcError, ValueError, UnicodeDecodeError):
        pass
    try:
        return bytes.fromhex(hex_data[:ABI_WORD_HEX]).decode("utf-8").strip("\x00").strip()
    except (ValueError, UnicodeDecodeError):
        return "UNK"


def block_tag(block_number: int | None) -> str:
    return "latest" if block_number is None else hex(block_number)


class ChainRpcClient:
    def __init__(
        self,
        settings: ChainRpcClientSettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ):
        self._settings = settings
        self._transport = transport
        self._ids = itertools.count(1)
        self._lock = Lock()
        self._tokens: dict[tuple[int, str], Token] = {}
        self._immutables: dict[tuple[int, str], tuple[str, str, int, int]] = {}

    def latest_block(self, *, chain_id: int) -> ChainBlock:
        block = self._rpc(chain_id, "eth_getBlockByNumber", ["latest", False])
        if not block:
            raise ChainRpcError(f"No latest block returned for chain_id={chain_id}.")
        return ChainBlock(number=int(block["number"], 16), timestamp=int(block["timestamp"], 16))

    def read_pool_state(
        self,
        *,
        chain_id: int,
        pool_id: str,
        block_number: int | None = None,
    ) -> Pool:
        pool_address = pool_id.lower()
        token0_address, token1_address, fee_tier, tick_spacing = self._pool_immutables(chain_id, pool_address)

        slot0 = self._eth_call(chain_id, pool_address, SELECTORS["slot0"], block_number)
        liquidity = self._eth_call(chain_id, pool_address, SELECTORS["liquidity"], block_number)
        global0 = self._eth_call(chain_id, pool_address, SELECTORS["feeGrowthGlobal0X128"], block_number)
        global1 = self._eth_call(chain_id, pool_address, SELECTORS["feeGrowthGlobal1X128"], block_number)

        return Pool(
            pool_id=pool_address,
            chain_id=chain_id,
            token0=self.read_token(chain_id=chain_id, token_address=token0_address),
            token1=self.read_token(chain_id=chain_id, token_address=token1_address),
            fee_tier=fee_tier,
            sqrt_price_x96=parse_uint160(decode_uint(slot0, 0)),
            liquidity=parse_uint128(decode_uint(liquidity, 0)),
            tick=decode_int(slot0, 1),
            fee_growth_global0_x128=parse_uint256(decode_uint(global0, 0)),
            fee_growth_global1_x128=parse_uint256(decode_uint(global1, 0)),
            tick_spacing=tick_spacing,
        )

    def read_tick(
        self,
        *,
        chain_id: int,
        pool_id: str,
        tick: int,
        block_number: int | None = None,
    ) -> TickSnapshot:
        data = SELECTORS["ticks"] + encode_int24(tick)
        raw = self._eth_call(chain_id, pool_id.lower(), data, block_number)
        return TickSnapshot(
            tick_idx=tick,
            liquidity_gross=parse_uint128(decode_uint(raw, 0)),
            liquidity_net=decode_int(raw, 1),
            fee_growth_outside0_x128=parse_uint256(decode_uint(raw, 2)),
            fee_growth_outside1_x128=parse_uint256(decode_uint(raw, 3)),
        )

    def read_token(self, *, chain_id: int, token_address: str) -> Token:
        key = (chain_id, token_address.lower())
        with self._lock:
            cached = self._tokens.get(key)
        if cached is not None:
            return cached

        address = key[1]
        decimals = decode_uint(self._eth_call(chain_id, address, SELECTORS["decimals"], None), 0)
        symbol = decode_string(self._eth_call(chain_id, address, SELECTORS["symbol"], None))
        try:
            name = decode_string(self._eth_call(chain_id, address, SELECTORS["name"], None))
        except ChainRpcError:
            name = symbol
        token = Token(address=address, symbol=symbol, name=name, decimals=decimals, chain_id=chain_id)
        with self._lock:
            self._tokens[key] = token
        return token

    def _pool_immutables(self, chain_id: int, pool_address: str) -> tuple[str, str, int, int]:
        key = (chain_id, pool_address)
        with self._lock:
            cached = self._immutables.get(key)
        if cached is not None:
            return cached

        token0 = decode_address(self._eth_call(chain_id, pool_address, SELECTORS["token0"], None), 0)
        token1 = decode_address(self._eth_call(chain_id, pool_address, SELECTORS["token1"], None), 0)
        fee_tier = decode_uint(self._eth_call(chain_id, pool_address, SELECTORS["fee"], None), 0)
        tick_spacing = decode_int(self._eth_call(chain_id, pool_address, SELECTORS["tickSpacing"], None), 0)
        immutables = (token0, token1, fee_tier, tick_spacing)
        with self._lock:
            self._immutables[key] = immutables
        return immutables

    def _eth_call(self, chain_id: int, to: str, data: str, block_number: int | None) -> str:
        raw = self._rpc(chain_id, "eth_call", [{"to": to, "data": data}, block_tag(block_number)])
        if not isinstance(raw, str) or raw == "0x" or len(raw) < 4:
            raise ChainRpcError(f"Empty eth_call response from {to}; contract may not exist.")
        return raw[2:]

    def _rpc(self, chain_id: int, method: str, params: list):
        url = self._resolve_rpc_url(chain_id)
        attempts = max(1, self._settings.max_retries)
        delay = 0.25
        last_exc: Exception | None = None

        for attempt in range(1, attempts + 1):
            payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
            try:
                with httpx.Client(timeout=self._settings.timeout_seconds, transport=self._transport) as client:
                    response = client.post(url, json=payload)
                    response.raise_for_status()
                    body = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                last_exc = exc
                if attempt == attempts:
                    break
                logger.warning(
                    "chain_rpc_client: rpc_retry method=%s attempt=%s/%s error=%s",
                    method,
                    attempt,
                    attempts,
                    exc,
                )
                time.sleep(delay)
                delay *= 2
                continue

            # Node-side errors (reverts, pruned state) are deterministic; no retry.
            if "error" in body:
                error = body["error"]
                message = error.get("message", error) if isinstance(error, dict) else error
                raise ChainRpcError(f"RPC error on {method}: {message}")
            return body.get("result")

        raise ChainRpcError(f"RPC request {method} failed after retries: {last_exc}") from last_exc

    def _resolve_rpc_url(self, chain_id: int) -> str:
        url = str(self._settings.rpc_urls.get(chain_id) or "").strip()
        if not url:
            raise ChainRpcError(f"Missing RPC_URL for chain_id={chain_id}.")
        return url
