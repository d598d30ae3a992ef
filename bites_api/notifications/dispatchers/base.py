"""Base push dispatcher"""

from abc import ABC, abstractmethod
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from bites_api.orders.errors import DeliveryFailure
from bites_api.schemas.notification import DispatchReport, PushPayload

logger = structlog.get_logger()

R = TypeVar("R")

SessionFactory = Callable[[], AsyncSession]


class PushDispatcher(ABC, Generic[R]):
    """Delivers one payload to a batch of endpoints.

    Subclasses deliver to every endpoint independently and return one
    outcome per endpoint (``None`` for success, a DeliveryFailure
    otherwise). Permanent failures are pruned from the recipient store in a
    single delete once the whole batch has been attempted. ``dispatch``
    never raises.
    """

    channel: str = "push"

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory

    @abstractmethod
    def endpoint_of(self, recipient: R) -> str:
        """Identifier used for logging and pruning"""

    @abstractmethod
    async def deliver(self, recipients: Sequence[R], payload: PushPayload) -> List[Optional[Exception]]:
        """Attempt every recipient; return one outcome per recipient, in order"""

    @abstractmethod
    async def prune(self, db: AsyncSession, endpoints: List[str]) -> int:
        """Delete permanently invalid endpoints"""

    def close(self) -> None:
        """Release transport resources"""

    async def dispatch(self, recipients: Sequence[R], payload: PushPayload) -> DispatchReport:
        report = DispatchReport(channel=self.channel, attempted=len(recipients))
        if not recipients:
            return report

        try:
            outcomes = await self.deliver(recipients, payload)
        except Exception as e:
            logger.error("Push dispatch failed", channel=self.channel, error=str(e))
            report.transient = [self.endpoint_of(r) for r in recipients]
            return report

        for recipient, outcome in zip(recipients, outcomes):
            endpoint = self.endpoint_of(recipient)
            if outcome is None:
                report.delivered.append(endpoint)
            elif isinstance(outcome, DeliveryFailure) and outcome.permanent:
                logger.warning(
                    "Push endpoint expired",
                    channel=self.channel,
                    endpoint=endpoint,
                    reason=outcome.reason,
                )
                report.expired.append(endpoint)
            else:
                logger.warning(
                    "Push delivery failed",
                    channel=self.channel,
                    endpoint=endpoint,
                    reason=str(outcome),
                )
                report.transient.append(endpoint)

        if report.expired:
            try:
                async with self.session_factory() as db:
                    report.pruned = await self.prune(db, report.expired)
                logger.info("Removed expired push endpoints", channel=self.channel, count=report.pruned)
            except Exception as e:
                logger.error("Failed to prune expired endpoints", channel=self.channel, error=str(e))

        logger.info(
            "Push dispatch complete",
            channel=self.channel,
            attempted=report.attempted,
            delivered=len(report.delivered),
            transient=len(report.transient),
            expired=len(report.expired),
        )
        return report
