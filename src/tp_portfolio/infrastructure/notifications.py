"""Balance change notifications over Redis Pub/Sub.

Channel: f"{BALANCE_CHANNEL_PREFIX}:{user_id}", payload is the camelCase
balance JSON the API returns. Delivery is best-effort: the balance row is
already committed when this runs, so a Redis failure is logged and dropped.
"""

import json
import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings
from src.tp_common.redis_client import get_redis
from src.tp_portfolio.application.schemas import PortfolioBalanceData
from src.tp_portfolio.domain.models import PortfolioBalance

logger = logging.getLogger(__name__)


def balance_channel(user_id: str) -> str:
    return f"{settings.BALANCE_CHANNEL_PREFIX}:{user_id}"


class BalanceChangePublisher:
    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
    ) -> None:
        self._redis_factory = redis_factory

    async def publish(self, balance: PortfolioBalance) -> None:
        channel = balance_channel(balance.user_id)
        message = json.dumps(
            {"event": "UPDATE", "new": PortfolioBalanceData.from_domain(balance).to_wire()}
        )
        try:
            client = await self._redis_factory()
            receivers = await client.publish(channel, message)
        except (RedisError, OSError) as exc:
            logger.warning("Balance notification failed: channel=%s error=%s", channel, exc)
            return
        logger.debug("Balance notification sent: channel=%s receivers=%s", channel, receivers)
