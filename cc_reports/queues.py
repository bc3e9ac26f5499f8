"""Queue selector normalization.

Turns a user-facing queue selector (``all``, ``m10``, ``aml`` or any raw
queue name) into the raw queue identifiers of a store domain. Unknown
selectors are passed through verbatim rather than rejected.
"""

from dataclasses import dataclass

from .config import DEFAULT_QUEUE_TABLE, QueueTable, scope_key
from .constants import Channel, QueueDomain


@dataclass(frozen=True)
class QueueFilter:
    """Raw queue identifiers a query is restricted to.

    Attributes:
        selector: The selector the filter was built from.
        queues: Queue ids matched with OR semantics. Empty means the selector
            has no queues in this domain and the query yields no rows.
    """

    selector: str
    queues: tuple[str, ...]

    @property
    def is_empty(self) -> bool:
        return not self.queues

    def __contains__(self, queue: object) -> bool:
        return queue in self.queues


def normalize(
    selector: str,
    domain: QueueDomain | str,
    channel: Channel | str | None = None,
    *,
    table: QueueTable = DEFAULT_QUEUE_TABLE,
) -> QueueFilter:
    """Map a queue selector to the raw queue ids of a domain.

    Args:
        selector: ``all``, ``m10``, ``aml`` (any case) or a raw queue name.
        domain: KPI or classification.
        channel: Classification channel (call, chat or combined). Ignored for
            the KPI domain; defaults to combined for classification.
        table: Queue literal table to look the selector up in.

    Returns:
        QueueFilter: The queue ids to filter on.
    """
    domain = QueueDomain(domain)
    channel = Channel(channel) if channel is not None else None

    queues = table.lookup(scope_key(domain, channel), selector)
    if queues is None:
        queues = (selector,)

    return QueueFilter(selector=selector, queues=tuple(queues))
