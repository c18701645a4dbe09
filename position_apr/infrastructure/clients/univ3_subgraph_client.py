from __future__ import annotations

from dataclasses import dataclass
import logging
from threading import Lock
import time

import httpx

from position_apr.application.ports.indexed_pool_source_port import IndexedMeta, IndexedPool
from position_apr.domain.entities.chain import CHAINS
from position_apr.domain.entities.pool import Pool, TickSnapshot, Token
from position_apr.domain.services.univ3_fee_growth import parse_uint128, parse_uint160, parse_uint256


logger = logging.getLogger(__name__)


POOL_FIELDS = """
    id
    feeTier
    sqrtPrice
    liquidity
    tick
    feeGrowthGlobal0X128
    feeGrowthGlobal1X128
    token0 { id symbol name decimals }
    token1 { id symbol name decimals }
"""

POOL_QUERY = (
    """
query Pool($id: ID!) {
  pool(id: $id) {"""
    + POOL_FIELDS
    + """  }
  _meta { block { number timestamp } }
}
"""
)

POOL_AT_BLOCK_QUERY = (
    """
query PoolAtBlock($id: ID!, $block: Int!) {
  pool(id: $id, block: { number: $block }) {"""
    + POOL_FIELDS
    + """  }
  _meta(block: { number: $block }) { block { number timestamp } }
}
"""
)

TICKS_QUERY = """
query Ticks($poolId: String!, $ticks: [BigInt!]!) {
  ticks(first: 10, where: { pool: $poolId, tickIdx_in: $ticks }) {
    tickIdx
    liquidityGross
    liquidityNet
    feeGrowthOutside0X128
    feeGrowthOutside1X128
  }
}
"""

TICKS_AT_BLOCK_QUERY = """
query TicksAtBlock($poolId: String!, $ticks: [BigInt!]!, $block: Int!) {
  ticks(first: 10, where: { pool: $poolId, tickIdx_in: $ticks }, block: { number: $block }) {
    tickIdx
    liquidityGross
    liquidityNet
    feeGrowthOutside0X128
    feeGrowthOutside1X128
  }
}
"""

META_QUERY = """
query Meta {
  _meta { block { number timestamp } }
}
"""


class SubgraphError(RuntimeError):
    pass


class SubgraphBlockNotSupportedError(SubgraphError):
    pass


class SubgraphResolutionError(SubgraphError):
    pass


@dataclass(frozen=True)
class Univ3SubgraphClientSettings:
    graph_gateway_base: str
    graph_api_key: str
    graph_subgraph_ids: dict
    timeout_seconds: float
    max_retries: int
    min_interval_ms: int


class Univ3SubgraphClient:
    def __init__(
        self,
        settings: Univ3SubgraphClientSettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ):
        self._settings = settings
        self._transport = transport
        self._lock = Lock()
        self._last_request_at = 0.0

    def fetch_pool(
        self,
        *,
        chain_id: int,
        pool_id: str,
        block_number: int | None = None,
    ) -> IndexedPool | None:
        subgraph_url = self._resolve_subgraph_url(chain_id)
        pool_key = pool_id.lower()
        if block_number is None:
            payload = self._post_graphql(url=subgraph_url, query=POOL_QUERY, variables={"id": pool_key})
        else:
            payload = self._post_graphql(
                url=subgraph_url,
                query=POOL_AT_BLOCK_QUERY,
                variables={"id": pool_key, "block": block_number},
            )

        data = payload.get("data") or {}
        raw_pool = data.get("pool")
        if not raw_pool:
            logger.info(
                "univ3_subgraph_client: pool_not_found chain_id=%s pool=%s block=%s",
                chain_id,
                pool_key,
                block_number,
            )
            return None

        meta = _parse_meta(data.get("_meta"))
        pool = _parse_pool(raw_pool, chain_id=chain_id)
        return IndexedPool(pool=pool, meta=meta)

    def fetch_ticks(
        self,
        *,
        chain_id: int,
        pool_id: str,
        tick_indices: list[int],
        block_number: int | None = None,
    ) -> dict[int, TickSnapshot]:
        if not tick_indices:
            return {}
        subgraph_url = self._resolve_subgraph_url(chain_id)
        variables = {
            "poolId": pool_id.lower(),
            "ticks": [str(tick) for tick in sorted(set(tick_indices))],
        }
        if block_number is None:
            payload = self._post_graphql(url=subgraph_url, query=TICKS_QUERY, variables=variables)
        else:
            variables["block"] = block_number
            payload = self._post_graphql(url=subgraph_url, query=TICKS_AT_BLOCK_QUERY, variables=variables)

        rows = (payload.get("data") or {}).get("ticks") or []
        snapshots = {}
        for row in rows:
            snapshot = _parse_tick(row)
            snapshots[snapshot.tick_idx] = snapshot
        return snapshots

    def fetch_meta(self, *, chain_id: int) -> IndexedMeta:
        subgraph_url = self._resolve_subgraph_url(chain_id)
        payload = self._post_graphql(url=subgraph_url, query=META_QUERY, variables={})
        return _parse_meta((payload.get("data") or {}).get("_meta"))

    def _post_graphql(self, *, url: str, query: str, variables: dict) -> dict:
        attempts = max(1, self._settings.max_retries)
        delay = 0.25
        last_exc: Exception | None = None

        for attempt in range(1, attempts + 1):
            self._respect_rate_limit()
            try:
                with httpx.Client(timeout=self._settings.timeout_seconds, transport=self._transport) as client:
                    response = client.post(
                        url,
                        json={"query": query, "variables": variables},
                    )
                    response.raise_for_status()
                    payload = response.json()

                errors = payload.get("errors") or []
                if errors:
                    message = " | ".join(str(err.get("message", err)) for err in errors)
                    lower_msg = message.lower()
                    if "unknown argument \"block\"" in lower_msg or "argument \"block\"" in lower_msg:
                        raise SubgraphBlockNotSupportedError(
                            "Subgraph nao suporta consultas com argumento block."
                        )
                    raise SubgraphError(message)

                return payload
            except SubgraphBlockNotSupportedError:
                raise
            except (httpx.HTTPError, RuntimeError, ValueError) as exc:
                last_exc = exc
                if attempt == attempts:
                    break
                logger.warning(
                    "univ3_subgraph_client: graphql_retry attempt=%s/%s error=%s",
                    attempt,
                    attempts,
                    exc,
                )
                time.sleep(delay)
                delay *= 2

        raise SubgraphError(f"GraphQL request failed after retries: {last_exc}") from last_exc

    def _respect_rate_limit(self) -> None:
        min_interval = max(0, self._settings.min_interval_ms) / 1000.0
        if min_interval <= 0:
            return

        with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request_at
            if elapsed < min_interval:
                time.sleep(min_interval - elapsed)
            self._last_request_at = time.monotonic()

    def _resolve_subgraph_url(self, chain_id: int) -> str:
        chain = CHAINS.get(chain_id)
        if chain is None:
            raise SubgraphResolutionError(f"Unsupported chain_id for subgraph resolution: {chain_id}")

        subgraph_id = str(self._settings.graph_subgraph_ids.get(chain.key) or "").strip()
        if not subgraph_id:
            raise SubgraphResolutionError(
                f"Missing GRAPH_SUBGRAPH_ID for chain '{chain.key}' (chain_id={chain_id})."
            )
        return self._build_gateway_url(subgraph_id)

    def _build_gateway_url(self, subgraph_id: str) -> str:
        if subgraph_id.startswith("http://") or subgraph_id.startswith("https://"):
            return subgraph_id.rstrip("/")
        base = self._settings.graph_gateway_base.rstrip("/")
        api_key = self._settings.graph_api_key.strip()
        if api_key:
            return f"{base}/{api_key}/subgraphs/id/{subgraph_id}"
        return f"{base}/subgraphs/id/{subgraph_id}"


def _parse_meta(raw: dict | None) -> IndexedMeta:
    block = (raw or {}).get("block") or {}
    if block.get("number") is None or block.get("timestamp") is None:
        raise SubgraphError("Subgraph _meta is missing block number or timestamp.")
    return IndexedMeta(block_number=int(block["number"]), block_timestamp=int(block["timestamp"]))


def _parse_token(raw: dict, *, chain_id: int) -> Token:
    return Token(
        address=str(raw["id"]).lower(),
        symbol=str(raw.get("symbol") or ""),
        name=str(raw.get("name") or ""),
        decimals=int(raw["decimals"]),
        chain_id=chain_id,
    )


def _parse_pool(raw: dict, *, chain_id: int) -> Pool:
    if raw.get("tick") is None:
        raise ValueError("Pool has no tick yet (not initialized).")
    return Pool(
        pool_id=str(raw["id"]).lower(),
        chain_id=chain_id,
        token0=_parse_token(raw["token0"], chain_id=chain_id),
        token1=_parse_token(raw["token1"], chain_id=chain_id),
        fee_tier=int(raw["feeTier"]),
        sqrt_price_x96=parse_uint160(raw["sqrtPrice"]),
        liquidity=parse_uint128(raw["liquidity"]),
        tick=int(raw["tick"]),
        fee_growth_global0_x128=parse_uint256(raw["feeGrowthGlobal0X128"]),
        fee_growth_global1_x128=parse_uint256(raw["feeGrowthGlobal1X128"]),
    )


def _parse_tick(raw: dict) -> TickSnapshot:
    return TickSnapshot(
        tick_idx=int(raw["tickIdx"]),
        fee_growth_outside0_x128=parse_uint256(raw["feeGrowthOutside0X128"]),
        fee_growth_outside1_x128=parse_uint256(raw["feeGrowthOutside1X128"]),
        liquidity_gross=parse_uint128(raw.get("liquidityGross") or 0),
        liquidity_net=int(raw.get("liquidityNet") or 0),
    )
