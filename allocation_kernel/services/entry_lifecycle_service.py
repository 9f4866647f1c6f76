"""
EntryLifecycleService -- create, edit, delete-approve and lock allocations.

Responsibility:
    The single write path for allocation records.  Every mutation consults
    the temporal policy (lock), the duplicate guard (request id), the rate
    resolver (billing) and the serial allocator (numbering) before touching
    an AllocationRecord, and appends the matching audit material.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/ and sibling
    services.  Collaborators (directory, catalog, activity sink, notifier)
    arrive as ports through the constructor.

Invariants enforced:
    - A record is locked when its explicit lock is set or its month has
      closed; locked records reject edits and delete requests.
    - Every effective edit writes exactly one history entry listing only
      the changed fields.  A no-op edit writes nothing.
    - Billing after creation is derived from ``billing_rate_at_logging``.
    - At most one pending delete request per record; the denormalized
      ``has_pending_delete_request`` flag tracks it.
    - The service flushes; the caller commits.

Failure modes:
    - ValidationFailedError family for bad input (blank reason, future date).
    - ForbiddenError for ownership, role or assignment violations.
    - PeriodLockedError for closed months and explicit locks.
    - DuplicatePrimaryRequestError when a primary request id is taken.
    - SerialAllocationConflictError after the bounded serial retry.
    - OptimisticLockError when the record changed underneath the caller.
    - CollaboratorUnavailableError when a directory or catalog lookup fails.

Audit relevance:
    Activity sink and notifier failures are logged at WARNING and never
    roll back the business change.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from allocation_kernel.domain.allocation import (
    ActivityType,
    ActorInfo,
    AllocationRecordDTO,
    CreateAllocationInput,
    DeleteDecision,
    DeleteRequestStatus,
    DeleteType,
    EditableField,
    FieldChange,
    HardDeleteConfirmation,
    normalize_count,
    validate_delete_transition,
)
from allocation_kernel.domain.client_policy import AllocationPolicySet, ClientPolicy
from allocation_kernel.domain.clock import Clock, SystemClock
from allocation_kernel.domain.collaborators import (
    ActivitySink,
    LocationCatalog,
    LocationView,
    NotificationDispatcher,
    ResourceDirectory,
    ResourceView,
)
from allocation_kernel.domain.location_key import build_location_key
from allocation_kernel.domain.rates import compute_billing_amount, resolve_rate
from allocation_kernel.domain.temporal import TemporalPolicy
from allocation_kernel.exceptions import (
    AllocationNotFoundError,
    CollaboratorUnavailableError,
    DeleteAlreadyPendingError,
    DuplicatePrimaryRequestError,
    EntryDeletedError,
    ForbiddenError,
    FutureAllocationDateError,
    LocationNotFoundError,
    NoPendingDeleteRequestError,
    OptimisticLockError,
    PeriodLockedError,
    SerialAllocationConflictError,
    ValidationFailedError,
)
from allocation_kernel.logging_config import LogContext, get_logger
from allocation_kernel.models.allocation import (
    AllocationRecord,
    DeleteRequestModel,
    EditHistoryEntryModel,
)
from allocation_kernel.services.activity_sink import SqlActivitySink
from allocation_kernel.services.base import BaseService
from allocation_kernel.services.duplicate_guard import DuplicateGuard
from allocation_kernel.services.notification import LoggingNotificationDispatcher
from allocation_kernel.services.serial_allocator import SerialAllocator

logger = get_logger("services.entry_lifecycle")


class EntryLifecycleService(BaseService[AllocationRecord]):
    """
    Orchestrates the allocation entry lifecycle.

    Usage:
        with session_scope() as session:
            service = EntryLifecycleService(
                session,
                directory=SqlResourceDirectory(session),
                catalog=SqlLocationCatalog(session),
                policies=get_active_policy_set(),
            )
            record = service.create(actor, CreateAllocationInput(...))
    """

    def __init__(
        self,
        session: Session,
        directory: ResourceDirectory,
        catalog: LocationCatalog,
        policies: AllocationPolicySet,
        clock: Clock | None = None,
        activity_sink: ActivitySink | None = None,
        notifier: NotificationDispatcher | None = None,
        temporal: TemporalPolicy | None = None,
        serial_allocator: SerialAllocator | None = None,
        duplicate_guard: DuplicateGuard | None = None,
    ):
        super().__init__(session)
        self._directory = directory
        self._catalog = catalog
        self._policies = policies
        self._clock = clock or SystemClock()
        self._temporal = temporal or TemporalPolicy(self._clock, policies.business_timezone)
        self._activity_sink = activity_sink or SqlActivitySink(session, self._clock)
        self._notifier = notifier or LoggingNotificationDispatcher()
        self._serials = serial_allocator or SerialAllocator(session, self._temporal)
        self._duplicates = duplicate_guard or DuplicateGuard(session)

    # =====================================================================
    # Create
    # =====================================================================

    def create(self, actor: ActorInfo, data: CreateAllocationInput) -> AllocationRecordDTO:
        """
        Log a new allocation for ``actor``.

        The record is written only after every check passes; a failed
        collaborator lookup leaves no trace in the database.
        """
        with LogContext.bind(
            operation="create",
            actor_id=actor.actor_id,
            resource_email=actor.normalized_email,
        ):
            if data.location_id is None:
                raise ValidationFailedError("location_id", "is required")
            if data.allocation_date is None:
                raise ValidationFailedError("allocation_date", "is required")
            request_type = (data.request_type or "").strip()
            if not request_type:
                raise ValidationFailedError("request_type", "is required")
            count = normalize_count(data.count)
            allocation_date = self._temporal.normalize_to_date_only(data.allocation_date)

            resource = self._find_resource(actor.normalized_email)
            if resource is None:
                raise ForbiddenError(actor.normalized_email, "not a registered resource")
            assignment = resource.assignment_for(data.location_id)
            if assignment is None or not assignment.permits(data.location_id, allocation_date):
                raise ForbiddenError(
                    actor.normalized_email,
                    f"no active assignment to location {data.location_id} "
                    f"on {allocation_date.isoformat()}",
                )

            location = self._get_location(data.location_id)
            if location is None:
                raise LocationNotFoundError(str(data.location_id))

            policy = self._policies.for_client(location.client_name)
            values = {
                field_name: field_name.coerce(getattr(data, field_name.value))
                for field_name in EditableField
                if field_name is not EditableField.COUNT
            }
            values[EditableField.REQUEST_TYPE] = request_type
            values[EditableField.COUNT] = count
            self._check_categories(policy, values)

            today = self._temporal.today()
            if allocation_date > today:
                raise FutureAllocationDateError(allocation_date, today)
            if self._temporal.is_period_locked(allocation_date):
                raise PeriodLockedError(
                    allocation_date, self._temporal.lock_boundary(allocation_date)
                )

            self._guard_primary_request(
                location.client_name,
                values[EditableField.REQUEST_ID],
                request_type,
                exclude_id=None,
            )

            rule = policy.process_rule_for(location.project_name)
            rate = resolve_rate(
                rule.billing_basis,
                values[policy.rate_category_field],
                policy.rate_table_for(location.rate_table),
            )
            captured_at = self._clock.now()
            lateness = self._temporal.compute_lateness(allocation_date, captured_at)

            record = self._insert_with_serial(
                actor.normalized_email,
                allocation_date,
                lambda sr_no: AllocationRecord(
                    sr_no=sr_no,
                    resource_id=resource.resource_id,
                    resource_email=actor.normalized_email,
                    resource_name=resource.name,
                    allocation_date=allocation_date,
                    logged_date=data.logged_date or allocation_date,
                    system_captured_date=captured_at,
                    day=allocation_date.day,
                    month=allocation_date.month,
                    year=allocation_date.year,
                    client_name=location.client_name,
                    project_name=location.project_name,
                    location_id=location.location_id,
                    location_name=location.location_name,
                    subproject_key=build_location_key(
                        location.client_name, location.project_name, location.location_name
                    ),
                    process_type=rule.process_type,
                    billing_rate=rate,
                    billing_amount=compute_billing_amount(rate, count, policy.billing_mode),
                    billing_rate_at_logging=rate,
                    is_late_log=lateness.is_late,
                    days_late=lateness.days_late,
                    source=data.source.value,
                    assignment_ref=data.assignment_ref,
                    **{f.value: v for f, v in values.items()},
                ),
            )

            logger.info(
                "allocation_created",
                extra={
                    "allocation_id": str(record.id),
                    "sr_no": record.sr_no,
                    "subproject_key": record.subproject_key,
                    "request_type": record.request_type,
                    "billing_rate": record.billing_rate,
                    "billing_amount": record.billing_amount,
                    "is_late_log": record.is_late_log,
                    "days_late": record.days_late,
                },
            )
            self._emit_activity(
                ActivityType.CASE_LOGGED,
                actor,
                record,
                {
                    "sr_no": record.sr_no,
                    "allocation_date": record.allocation_date.isoformat(),
                    "subproject_key": record.subproject_key,
                    "request_id": record.request_id,
                    "request_type": record.request_type,
                    "billing_amount": str(record.billing_amount),
                },
            )
            return record.to_dto()

    def _insert_with_serial(self, email: str, allocation_date: date, build):
        """Insert with the suggested serial; retry in a savepoint on collision."""
        attempts = max(1, self._policies.serial_retry_attempts)
        for attempt in range(1, attempts + 1):
            sr_no = self._serials.next_serial(email, allocation_date)
            record = build(sr_no)
            try:
                with self.session.begin_nested():
                    self.session.add(record)
                    self.session.flush()
            except IntegrityError:
                logger.warning(
                    "serial_conflict_retry",
                    extra={
                        "resource_email": email,
                        "allocation_date": allocation_date,
                        "sr_no": sr_no,
                        "attempt": attempt,
                        "max_attempts": attempts,
                    },
                )
                continue
            return record
        raise SerialAllocationConflictError(email, allocation_date, attempts)

    # =====================================================================
    # Edit
    # =====================================================================

    def edit(
        self,
        allocation_id: UUID,
        updates: Mapping[EditableField | str, Any],
        actor: ActorInfo,
        reason: str,
        notes: str | None = None,
    ) -> AllocationRecordDTO:
        """
        Apply a resource's correction to their own record.

        Admins may also call this; they skip the ownership check.
        """
        return self._edit(allocation_id, updates, actor, reason, notes, operation="edit")

    def admin_direct_edit(
        self,
        allocation_id: UUID,
        updates: Mapping[EditableField | str, Any],
        admin: ActorInfo,
        reason: str,
        notes: str | None = None,
    ) -> AllocationRecordDTO:
        self._require_admin(admin, "direct edit")
        return self._edit(
            allocation_id, updates, admin, reason, notes, operation="admin_direct_edit"
        )

    def _edit(
        self,
        allocation_id: UUID,
        updates: Mapping[EditableField | str, Any],
        actor: ActorInfo,
        reason: str,
        notes: str | None,
        operation: str,
    ) -> AllocationRecordDTO:
        with LogContext.bind(
            operation=operation,
            actor_id=actor.actor_id,
            allocation_id=allocation_id,
        ):
            reason = self._require_reason(reason, "change_reason")
            record = self._load(allocation_id)
            self._require_owner(record, actor)
            if record.is_deleted:
                raise EntryDeletedError(str(record.id))
            self._require_unlocked(record)

            policy = self._policies.for_client(record.client_name)
            proposed: dict[EditableField, Any] = {}
            for key, value in updates.items():
                field_name = EditableField.parse(key)
                if not policy.allows_edit(field_name):
                    raise ValidationFailedError(
                        field_name.value,
                        f"not editable for client {policy.client_name}",
                    )
                proposed[field_name] = field_name.coerce(value)

            changes = [
                FieldChange(f.value, getattr(record, f.value), new_value)
                for f, new_value in proposed.items()
                if getattr(record, f.value) != new_value
            ]
            if not changes:
                logger.info("allocation_edit_noop", extra={"allocation_id": str(record.id)})
                return record.to_dto()

            final = {f: getattr(record, f.value) for f in EditableField}
            final.update(proposed)
            if not final[EditableField.REQUEST_TYPE]:
                raise ValidationFailedError("request_type", "is required")
            self._check_categories(policy, final)

            changed_names = {c.field for c in changes}
            if changed_names & {EditableField.REQUEST_ID.value, EditableField.REQUEST_TYPE.value}:
                self._guard_primary_request(
                    record.client_name,
                    final[EditableField.REQUEST_ID],
                    final[EditableField.REQUEST_TYPE],
                    exclude_id=record.id,
                )

            now = self._clock.now()
            for change in changes:
                setattr(record, change.field, change.new_value)
            record.billing_rate = record.billing_rate_at_logging
            record.billing_amount = compute_billing_amount(
                record.billing_rate_at_logging, record.count, policy.billing_mode
            )
            record.edit_history.append(
                EditHistoryEntryModel(
                    sequence=record.edit_count + 1,
                    edited_at=now,
                    edited_by_id=str(actor.actor_id),
                    edited_by_email=actor.normalized_email,
                    edited_by_name=actor.name,
                    editor_role=actor.role.value,
                    change_reason=reason,
                    change_notes=notes,
                    fields_changed=[c.to_dict() for c in changes],
                )
            )
            record.edit_count += 1
            record.last_edited_at = now
            self._flush(record.id)

            logger.info(
                "allocation_edited",
                extra={
                    "allocation_id": str(record.id),
                    "fields": sorted(changed_names),
                    "edit_count": record.edit_count,
                    "editor_role": actor.role.value,
                },
            )
            self._emit_activity(
                ActivityType.CASE_UPDATED,
                actor,
                record,
                {
                    "reason": reason,
                    "fields_changed": [c.to_dict() for c in changes],
                    "direct": operation == "admin_direct_edit",
                },
            )
            return record.to_dto()

    # =====================================================================
    # Delete workflow
    # =====================================================================

    def request_delete(
        self,
        allocation_id: UUID,
        requester: ActorInfo,
        reason: str,
    ) -> AllocationRecordDTO:
        """Open a pending delete request and notify the reviewers."""
        with LogContext.bind(
            operation="request_delete",
            actor_id=requester.actor_id,
            allocation_id=allocation_id,
        ):
            reason = self._require_reason(reason, "delete_reason")
            record = self._load(allocation_id)
            self._require_owner(record, requester)
            if record.is_deleted:
                raise EntryDeletedError(str(record.id))
            self._require_unlocked(record)
            if record.has_pending_delete_request or record.pending_delete_request is not None:
                raise DeleteAlreadyPendingError(str(record.id))

            record.delete_requests.append(
                DeleteRequestModel(
                    sequence=len(record.delete_requests) + 1,
                    status=DeleteRequestStatus.PENDING.value,
                    requested_at=self._clock.now(),
                    requested_by_id=str(requester.actor_id),
                    requested_by_email=requester.normalized_email,
                    requested_by_name=requester.name,
                    delete_reason=reason,
                )
            )
            record.has_pending_delete_request = True
            try:
                self._flush(record.id)
            except IntegrityError as exc:
                raise DeleteAlreadyPendingError(str(record.id)) from exc

            logger.info(
                "delete_requested",
                extra={"allocation_id": str(record.id), "requested_by": requester.normalized_email},
            )
            self._notify(
                {
                    "template": "delete_request",
                    "allocation_id": str(record.id),
                    "sr_no": record.sr_no,
                    "allocation_date": record.allocation_date.isoformat(),
                    "client_name": record.client_name,
                    "subproject_key": record.subproject_key,
                    "request_id": record.request_id,
                    "requested_by": requester.normalized_email,
                    "requested_by_name": requester.name,
                    "reason": reason,
                }
            )
            self._emit_activity(
                ActivityType.CASE_DELETE_REQUESTED,
                requester,
                record,
                {"reason": reason},
            )
            return record.to_dto()

    def review_delete(
        self,
        allocation_id: UUID,
        reviewer: ActorInfo,
        decision: DeleteDecision,
        comment: str = "",
        delete_type: DeleteType = DeleteType.SOFT,
    ) -> AllocationRecordDTO | HardDeleteConfirmation:
        """
        Approve or reject the pending delete request.

        The record row is locked for the decision; a concurrent reviewer
        either fails the version check or finds nothing left to review.
        """
        with LogContext.bind(
            operation="review_delete",
            actor_id=reviewer.actor_id,
            allocation_id=allocation_id,
        ):
            self._require_admin(reviewer, "review delete requests")
            decision = DeleteDecision(decision)
            delete_type = DeleteType(delete_type)
            record = self.session.execute(
                select(AllocationRecord)
                .where(AllocationRecord.id == allocation_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if record is None:
                raise AllocationNotFoundError(str(allocation_id))

            pending = record.pending_delete_request
            if pending is None:
                raise NoPendingDeleteRequestError(str(record.id))

            target = (
                DeleteRequestStatus.APPROVED
                if decision is DeleteDecision.APPROVE
                else DeleteRequestStatus.REJECTED
            )
            validate_delete_transition(DeleteRequestStatus(pending.status), target)

            now = self._clock.now()
            pending.status = target.value
            pending.reviewed_at = now
            pending.reviewed_by_id = str(reviewer.actor_id)
            pending.reviewed_by_email = reviewer.normalized_email
            pending.review_comment = comment or None
            record.has_pending_delete_request = False

            if target is DeleteRequestStatus.REJECTED:
                self._flush(record.id)
                logger.info(
                    "delete_reviewed",
                    extra={"allocation_id": str(record.id), "decision": decision.value},
                )
                self._emit_activity(
                    ActivityType.CASE_DELETE_REJECTED,
                    reviewer,
                    record,
                    {"comment": comment, "requested_by": pending.requested_by_email},
                )
                return record.to_dto()

            pending.delete_type = delete_type.value
            result = self._apply_delete(record, reviewer, delete_type, now)
            logger.info(
                "delete_reviewed",
                extra={
                    "allocation_id": str(allocation_id),
                    "decision": decision.value,
                    "delete_type": delete_type.value,
                },
            )
            self._emit_activity(
                ActivityType.CASE_DELETED,
                reviewer,
                allocation_id,
                {
                    "delete_type": delete_type.value,
                    "comment": comment,
                    "requested_by": pending.requested_by_email,
                    "reason": pending.delete_reason,
                },
            )
            return result

    def admin_direct_delete(
        self,
        allocation_id: UUID,
        admin: ActorInfo,
        reason: str,
        delete_type: DeleteType = DeleteType.SOFT,
    ) -> AllocationRecordDTO | HardDeleteConfirmation:
        """Delete without a resource request, recording an approved sub-record."""
        with LogContext.bind(
            operation="admin_direct_delete",
            actor_id=admin.actor_id,
            allocation_id=allocation_id,
        ):
            self._require_admin(admin, "delete entries directly")
            reason = self._require_reason(reason, "delete_reason")
            delete_type = DeleteType(delete_type)
            record = self._load(allocation_id)
            if record.is_deleted:
                raise EntryDeletedError(str(record.id))
            self._require_unlocked(record)
            if record.has_pending_delete_request:
                raise DeleteAlreadyPendingError(str(record.id))

            now = self._clock.now()
            record.delete_requests.append(
                DeleteRequestModel(
                    sequence=len(record.delete_requests) + 1,
                    status=DeleteRequestStatus.APPROVED.value,
                    requested_at=now,
                    requested_by_id=str(admin.actor_id),
                    requested_by_email=admin.normalized_email,
                    requested_by_name=admin.name,
                    delete_reason=reason,
                    reviewed_at=now,
                    reviewed_by_id=str(admin.actor_id),
                    reviewed_by_email=admin.normalized_email,
                    delete_type=delete_type.value,
                )
            )
            result = self._apply_delete(record, admin, delete_type, now)
            logger.info(
                "allocation_direct_deleted",
                extra={"allocation_id": str(allocation_id), "delete_type": delete_type.value},
            )
            self._emit_activity(
                ActivityType.CASE_DELETED,
                admin,
                allocation_id,
                {"delete_type": delete_type.value, "reason": reason, "direct": True},
            )
            return result

    def _apply_delete(
        self,
        record: AllocationRecord,
        actor: ActorInfo,
        delete_type: DeleteType,
        now: datetime,
    ) -> AllocationRecordDTO | HardDeleteConfirmation:
        if delete_type is DeleteType.HARD:
            record_id = record.id
            self.session.delete(record)
            self._flush(record_id)
            return HardDeleteConfirmation(
                allocation_id=record_id,
                deleted_at=now,
                deleted_by=actor.normalized_email,
            )
        record.is_deleted = True
        record.deleted_at = now
        record.deleted_by = actor.normalized_email
        self._flush(record.id)
        return record.to_dto()

    # =====================================================================
    # Explicit lock
    # =====================================================================

    def set_explicit_lock(
        self,
        allocation_id: UUID,
        admin: ActorInfo,
        locked: bool,
    ) -> AllocationRecordDTO:
        with LogContext.bind(
            operation="set_explicit_lock",
            actor_id=admin.actor_id,
            allocation_id=allocation_id,
        ):
            self._require_admin(admin, "change entry locks")
            record = self._load(allocation_id)
            if record.is_deleted:
                raise EntryDeletedError(str(record.id))
            if record.is_locked == locked:
                return record.to_dto()

            record.is_locked = locked
            record.locked_at = self._clock.now() if locked else None
            record.locked_by = admin.normalized_email if locked else None
            self._flush(record.id)

            logger.info(
                "allocation_lock_changed",
                extra={"allocation_id": str(record.id), "is_locked": locked},
            )
            self._emit_activity(
                ActivityType.CASE_LOCK_CHANGED,
                admin,
                record,
                {"is_locked": locked},
            )
            return record.to_dto()

    # =====================================================================
    # Helpers
    # =====================================================================

    def _load(self, allocation_id: UUID) -> AllocationRecord:
        record = self.session.get(AllocationRecord, allocation_id)
        if record is None:
            raise AllocationNotFoundError(str(allocation_id))
        return record

    def _flush(self, allocation_id: UUID) -> None:
        try:
            self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "optimistic_lock_conflict",
                extra={"allocation_id": str(allocation_id)},
            )
            raise OptimisticLockError("AllocationRecord", str(allocation_id)) from exc

    @staticmethod
    def _require_reason(reason: str | None, field_name: str) -> str:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailedError(field_name, "a reason is required")
        return reason

    @staticmethod
    def _require_admin(actor: ActorInfo, action: str) -> None:
        if not actor.is_admin:
            raise ForbiddenError(actor.normalized_email, f"only admins may {action}")

    @staticmethod
    def _require_owner(record: AllocationRecord, actor: ActorInfo) -> None:
        if actor.is_admin:
            return
        if record.resource_email != actor.normalized_email:
            raise ForbiddenError(actor.normalized_email, "entry belongs to another resource")

    def _require_unlocked(self, record: AllocationRecord) -> None:
        if record.is_locked or self._temporal.is_period_locked(record.allocation_date):
            raise PeriodLockedError(
                record.allocation_date,
                self._temporal.lock_boundary(record.allocation_date),
                explicit_lock=record.is_locked,
            )

    @staticmethod
    def _check_categories(policy: ClientPolicy, values: Mapping[EditableField, Any]) -> None:
        request_type = values[EditableField.REQUEST_TYPE]
        if not policy.allows_request_type(request_type):
            raise ValidationFailedError(
                "request_type",
                f"{request_type!r} is not a {policy.client_name} request type",
            )
        requestor_type = values[EditableField.REQUESTOR_TYPE]
        if not policy.allows_requestor_type(requestor_type):
            raise ValidationFailedError(
                "requestor_type",
                f"{requestor_type!r} is not a {policy.client_name} requestor type",
            )

    def _guard_primary_request(
        self,
        client_name: str,
        request_id: str,
        request_type: str,
        exclude_id: UUID | None,
    ) -> None:
        scope = self._policies.request_scope(client_name)
        if not request_id or not scope.is_primary(request_type):
            return
        result = self._duplicates.check_primary_request(request_id, scope, exclude_id=exclude_id)
        if result.exists:
            raise DuplicatePrimaryRequestError(
                request_id,
                result.suggested_category,
                str(result.conflicting_entry.id) if result.conflicting_entry else None,
            )

    def _find_resource(self, email: str) -> ResourceView | None:
        try:
            return self._directory.find_resource_by_email(email)
        except CollaboratorUnavailableError:
            raise
        except Exception as exc:
            raise CollaboratorUnavailableError(
                "ResourceDirectory", "find_resource_by_email", str(exc)
            ) from exc

    def _get_location(self, location_id: UUID) -> LocationView | None:
        try:
            return self._catalog.get_location(location_id)
        except CollaboratorUnavailableError:
            raise
        except Exception as exc:
            raise CollaboratorUnavailableError(
                "LocationCatalog", "get_location", str(exc)
            ) from exc

    def _emit_activity(
        self,
        event_type: ActivityType,
        actor: ActorInfo,
        subject: AllocationRecord | UUID,
        details: Mapping[str, Any],
    ) -> None:
        subject_id = subject if isinstance(subject, UUID) else subject.id
        try:
            self._activity_sink.record(event_type, actor, [subject_id], details)
        except Exception:
            logger.warning(
                "activity_sink_failed",
                extra={"activity_type": event_type.value, "allocation_id": str(subject_id)},
                exc_info=True,
            )

    def _notify(self, template_data: Mapping[str, Any]) -> None:
        recipients = self._policies.delete_request_recipients
        try:
            delivered = self._notifier.notify(recipients, template_data)
        except Exception:
            logger.warning(
                "notification_failed",
                extra={"allocation_id": template_data.get("allocation_id")},
                exc_info=True,
            )
            return
        if not delivered:
            logger.warning(
                "notification_failed",
                extra={"allocation_id": template_data.get("allocation_id")},
            )
