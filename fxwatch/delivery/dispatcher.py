"""Message dispatcher fanning one message out to many recipients.

Delivery failures are isolated per recipient: one blocked chat never stops
the others. A channel without credentials is reported once and skipped.
"""

import logging
from dataclasses import dataclass, field

from fxwatch.config.settings import ConfigError
from fxwatch.delivery.channels import DeliveryChannel, DeliveryError, OutboundMessage
from fxwatch.observability.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


@dataclass
class DispatchReport:
    """Per-recipient outcome of one dispatch."""

    channel: str
    delivered: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.delivered) + len(self.failed)


class Dispatcher:
    """Delivers a message over one channel to a set of recipients."""

    def __init__(
        self,
        channel: DeliveryChannel,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._channel = channel
        self._metrics = metrics or get_metrics()

    @property
    def channel(self) -> DeliveryChannel:
        return self._channel

    async def dispatch(self, recipients: set[str] | list[str], message: OutboundMessage) -> DispatchReport:
        """Send ``message`` to each recipient in a stable order.

        Returns:
            DispatchReport listing delivered and failed recipients.
        """
        report = DispatchReport(channel=self._channel.name)

        for recipient in sorted(recipients):
            try:
                await self._channel.send(recipient, message)
            except ConfigError as e:
                logger.warning("Channel %s not configured, skipping delivery: %s", self._channel.name, e)
                for remaining in sorted(recipients):
                    if remaining not in report.delivered:
                        report.failed[remaining] = str(e)
                break
            except DeliveryError as e:
                logger.warning("Delivery to %s via %s failed: %s", recipient, self._channel.name, e)
                report.failed[recipient] = str(e)
                self._metrics.record_delivery(self._channel.name, success=False)
            except Exception as e:
                logger.error(
                    "Unexpected error delivering to %s via %s: %s",
                    recipient, self._channel.name, e, exc_info=True,
                )
                report.failed[recipient] = str(e)
                self._metrics.record_delivery(self._channel.name, success=False)
            else:
                report.delivered.append(recipient)
                self._metrics.record_delivery(self._channel.name, success=True)

        if report.failed and not report.delivered:
            logger.error("Dispatch via %s failed for all %d recipients", self._channel.name, report.total)
        elif report.failed:
            logger.warning(
                "Partial dispatch via %s: ok=%d failed=%d",
                self._channel.name, len(report.delivered), len(report.failed),
            )
        else:
            logger.debug("Dispatched via %s to %d recipients", self._channel.name, len(report.delivered))
        return report
