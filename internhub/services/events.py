"""
Lifecycle Domain Events

Lifecycle operations record what happened on an Outbox while their
transaction is open. The outbox is dispatched only after commit: each event
becomes in-app notifications and an audit entry. Delivery is best-effort,
so a failing sink is logged and never fails the operation that produced it.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

# Event names
APPLICATION_SUBMITTED = "ApplicationSubmitted"
APPLICATION_APPROVED = "ApplicationApproved"
APPLICATION_REJECTED = "ApplicationRejected"
INTERNSHIP_EXPIRED = "InternshipExpired"
INTERNSHIP_EXPIRING = "InternshipExpiring"
EVALUATION_SUBMITTED = "EvaluationSubmitted"
INTERNSHIP_COMPLETED = "InternshipCompleted"
POSITION_CREATED = "PositionCreated"
POSITION_UPDATED = "PositionUpdated"
POSITION_DELETED = "PositionDeleted"


@dataclass
class RequestMeta:
    """Caller network details recorded in the audit trail"""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass
class NotificationMessage:
    user_id: int
    title: str
    content: str
    type: Optional[str] = None


@dataclass
class AuditEntry:
    user_id: Optional[int]
    operation_type: str
    description: Optional[str] = None
    meta: Optional[RequestMeta] = None


@dataclass
class DomainEvent:
    name: str
    notifications: List[NotificationMessage] = field(default_factory=list)
    audit: Optional[AuditEntry] = None


class Outbox:
    """Events produced by one lifecycle operation, released after commit"""

    def __init__(self):
        self.events: List[DomainEvent] = []

    def record(self, event: DomainEvent) -> DomainEvent:
        self.events.append(event)
        return event

    @property
    def notifications(self) -> List[NotificationMessage]:
        return [message for event in self.events for message in event.notifications]

    async def dispatch(self) -> int:
        """
        Deliver recorded events to the notification and audit sinks.

        Returns:
            Number of notifications delivered (0 if the sink failed)
        """
        from internhub.services.notification_service import get_notification_service
        from internhub.services.operation_log_service import get_operation_log_service

        if not self.events:
            return 0

        delivered = 0
        messages = self.notifications
        if messages:
            try:
                created = await get_notification_service().create_bulk(messages)
                delivered = len(created)
            except Exception as e:
                names = ", ".join(event.name for event in self.events)
                logger.error(f"Failed to deliver notifications for {names}: {e}", exc_info=True)

        audit_log = get_operation_log_service()
        for event in self.events:
            if event.audit is not None:
                await audit_log.log_operation(event.audit)

        logger.debug(f"Dispatched {len(self.events)} events, {delivered} notifications")
        self.events = []
        return delivered
