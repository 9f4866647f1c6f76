"""
SqlActivitySink -- persists activity events to ``activity_logs``.

Writes inside a SAVEPOINT so that a failed insert rolls back only the
activity row, never the allocation change that triggered it.  The
lifecycle service treats this sink as fire-and-forget: it logs any error
raised here and carries on.
"""

from typing import Any, Mapping, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from allocation_kernel.domain.allocation import ActivityType, ActorInfo
from allocation_kernel.domain.clock import Clock, SystemClock
from allocation_kernel.logging_config import get_logger
from allocation_kernel.models.activity_log import ActivityLogModel

logger = get_logger("services.activity_sink")


class SqlActivitySink:
    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def record(
        self,
        event_type: ActivityType,
        actor: ActorInfo,
        subject_ids: Sequence[UUID],
        details: Mapping[str, Any],
    ) -> None:
        with self._session.begin_nested():
            self._session.add(
                ActivityLogModel(
                    activity_type=ActivityType(event_type).value,
                    occurred_at=self._clock.now(),
                    actor_id=str(actor.actor_id),
                    actor_email=actor.normalized_email,
                    actor_name=actor.name,
                    actor_role=actor.role.value,
                    subject_ids=[str(s) for s in subject_ids],
                    details=dict(details),
                )
            )
            self._session.flush()
        logger.debug(
            "activity_recorded",
            extra={"activity_type": ActivityType(event_type).value},
        )
