"""
Gauge registry feed.

The feed maps validator identities to staked-token mints. Each mint has a
quarry under the rewarder, and each quarry a gauge under the gaugemeister;
the gauge set is derived once per run and kept in feed order.
"""

from typing import Dict, List, Optional

import httpx
from solders.pubkey import Pubkey

from gauge_autovoter.chain.addresses import find_gauge_address, find_quarry_address
from gauge_autovoter.shared.exceptions import FeedException
from gauge_autovoter.shared.logging import get_logger
from gauge_autovoter.shared.retry import HTTP_RETRY_CONFIG
from gauge_autovoter.shared.services.http_client import get_async_client

_logger = get_logger(__name__)


def derive_gauge_keys(
    gaugemeister: Pubkey, rewarder: Pubkey, staked_mints: List[str]
) -> List[Pubkey]:
    """Gauge addresses for a list of staked mints, duplicates dropped."""
    gauges: List[Pubkey] = []
    seen = set()
    for mint in staked_mints:
        quarry, _ = find_quarry_address(rewarder, Pubkey.from_string(mint))
        gauge, _ = find_gauge_address(gaugemeister, quarry)
        if gauge in seen:
            continue
        seen.add(gauge)
        gauges.append(gauge)
    return gauges


class GaugeRegistry:
    """Reads the validator → staked mint list and derives gauges."""

    def __init__(
        self,
        url: str,
        gaugemeister: Pubkey,
        rewarder: Pubkey,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.gaugemeister = gaugemeister
        self.rewarder = rewarder
        self._client = client or get_async_client()

    async def _fetch_raw(self) -> Dict[str, str]:
        try:
            response = await self._client.get(self.url)
        except httpx.RequestError as e:
            raise FeedException(f"Failed to reach gauge list: {e}")

        if response.status_code != 200:
            raise FeedException(
                f"Gauge list returned {response.status_code}: {response.text[:200]}"
            )
        payload = response.json()
        if not isinstance(payload, dict):
            raise FeedException("Gauge list is not a JSON object")
        return payload

    async def fetch_gauge_keys(self) -> List[Pubkey]:
        mapping = await HTTP_RETRY_CONFIG.run(
            self._fetch_raw, operation_name="gauge_list"
        )
        gauges = derive_gauge_keys(
            self.gaugemeister, self.rewarder, list(mapping.values())
        )
        _logger.info(f"Gauges: {len(gauges)} from {len(mapping)} validators")
        return gauges
