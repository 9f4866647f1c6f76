"""
Notification dispatch for delete requests.

Delivery (SMTP, chat, queue) is an outer-layer concern.  The kernel ships
a dispatcher that records the notification as a structured log line, which
is also what deployments without a mail relay use.
"""

from typing import Any, Mapping, Sequence

from allocation_kernel.logging_config import get_logger

logger = get_logger("services.notification")


class LoggingNotificationDispatcher:
    """NotificationDispatcher that emits ``notification_dispatched`` and succeeds."""

    def notify(self, recipients: Sequence[str], template_data: Mapping[str, Any]) -> bool:
        if not recipients:
            logger.info("notification_skipped_no_recipients")
            return True
        logger.info(
            "notification_dispatched",
            extra={
                "recipients": list(recipients),
                "template": template_data.get("template"),
                "allocation_id": template_data.get("allocation_id"),
            },
        )
        return True
