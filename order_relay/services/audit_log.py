"""Audit trail of relay attempts.

Entries are keyed by (external order id, event type). An attempt writes a
``pending`` entry when it starts and updates that same entry to ``success``
or ``error`` when it resolves. The retention sweep deletes old entries in bulk.

Orchestrators never call :class:`AuditLogService` directly: they go through
:func:`record` and :func:`record_update`, which log and discard any failure so
that audit persistence cannot change the outcome of a relay.
"""
import json
import logging
from datetime import timedelta

from sqlalchemy import func

from order_relay.errors import ValidationError
from order_relay.extensions import db
from order_relay.models.audit_log import AuditLog, AuditEventType, AuditStatus
from order_relay.utils import utcnow

logger = logging.getLogger(__name__)

# Fields `update` may overwrite on an existing entry
UPDATABLE_FIELDS = ('status', 'response_data', 'error_message', 'http_status', 'retry_count')


def _dumps(data):
    if data is None:
        return None
    return json.dumps(data, default=str)


def _coerce(enum_cls, value, field):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value!r}")


def _check_retry_count(value):
    if value is None:
        return 0
    if not isinstance(value, int) or value < 0:
        raise ValidationError(f"retry_count must be a non-negative integer, got {value!r}")
    return value


class AuditLogService:

    @staticmethod
    def save(external_order_id, shop, event_type, status, order_label=None,
             request_data=None, response_data=None, error_message=None,
             http_status=None, retry_count=0):
        missing = [
            name for name, value in (
                ('external_order_id', external_order_id),
                ('shop', shop),
                ('event_type', event_type),
                ('status', status),
            ) if not value
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        entry = AuditLog(
            external_order_id=str(external_order_id),
            order_label=order_label,
            shop=shop,
            event_type=_coerce(AuditEventType, event_type, 'event_type'),
            status=_coerce(AuditStatus, status, 'status'),
            request_data=_dumps(request_data),
            response_data=_dumps(response_data),
            error_message=error_message,
            http_status=http_status,
            retry_count=_check_retry_count(retry_count),
        )
        db.session.add(entry)
        db.session.commit()

        logger.debug(
            "Audit log %s saved: order=%s event=%s status=%s",
            entry.id, entry.external_order_id, entry.event_type.value, entry.status.value,
        )
        return entry

    @staticmethod
    def latest(external_order_id, event_type):
        return (
            AuditLog.query
            .filter_by(
                external_order_id=str(external_order_id),
                event_type=_coerce(AuditEventType, event_type, 'event_type'),
            )
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .first()
        )

    @staticmethod
    def update(external_order_id, event_type, shop=None, order_label=None,
               request_data=None, **fields):
        """Merge ``fields`` into the latest entry for the pair, or create one.

        Only keys present in ``fields`` are written. ``shop``, ``order_label``
        and ``request_data`` are used only when no entry exists yet.
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise TypeError(f"Unexpected audit fields: {', '.join(sorted(unknown))}")

        entry = AuditLogService.latest(external_order_id, event_type)
        if entry is None:
            return AuditLogService.save(
                external_order_id=external_order_id,
                shop=shop,
                event_type=event_type,
                status=fields.pop('status', None) or AuditStatus.PENDING,
                order_label=order_label,
                request_data=request_data,
                **fields,
            )

        if 'status' in fields and fields['status'] is not None:
            entry.status = _coerce(AuditStatus, fields['status'], 'status')
        if 'response_data' in fields:
            entry.response_data = _dumps(fields['response_data'])
        if 'error_message' in fields:
            entry.error_message = fields['error_message']
        if 'http_status' in fields:
            entry.http_status = fields['http_status']
        if 'retry_count' in fields and fields['retry_count'] is not None:
            entry.retry_count = _check_retry_count(fields['retry_count'])

        db.session.commit()
        return entry

    @staticmethod
    def list_for_order(external_order_id, limit=50, shop=None):
        query = AuditLog.query.filter_by(external_order_id=str(external_order_id))
        if shop is not None:
            query = query.filter_by(shop=shop)
        return (
            query
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def list_for_shop(shop, limit=100):
        return (
            AuditLog.query
            .filter_by(shop=shop)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def stats_for_shop(shop):
        by_status = (
            db.session.query(AuditLog.status, func.count(AuditLog.id))
            .filter(AuditLog.shop == shop)
            .group_by(AuditLog.status)
            .all()
        )
        by_event = (
            db.session.query(AuditLog.event_type, func.count(AuditLog.id))
            .filter(AuditLog.shop == shop)
            .group_by(AuditLog.event_type)
            .all()
        )
        return {
            'total': AuditLog.query.filter_by(shop=shop).count(),
            'by_status': {status.value: count for status, count in by_status},
            'by_event_type': {event.value: count for event, count in by_event},
        }

    @staticmethod
    def purge_older_than(threshold):
        if not isinstance(threshold, timedelta):
            threshold = timedelta(days=threshold)
        cutoff = utcnow() - threshold

        deleted = (
            AuditLog.query
            .filter(AuditLog.created_at < cutoff)
            .delete(synchronize_session=False)
        )
        db.session.commit()

        logger.info("Cleaned up %s audit logs older than %s", deleted, cutoff.isoformat())
        return deleted


# -------------------------------------------------
# Best-effort writes used by the relay flows
# -------------------------------------------------

def record(**kwargs):
    try:
        AuditLogService.save(**kwargs)
    except Exception:
        db.session.rollback()
        logger.exception(
            "Error saving audit log (order=%s event=%s)",
            kwargs.get('external_order_id'), kwargs.get('event_type'),
        )


def record_update(external_order_id, event_type, **kwargs):
    try:
        AuditLogService.update(external_order_id, event_type, **kwargs)
    except Exception:
        db.session.rollback()
        logger.exception(
            "Error updating audit log (order=%s event=%s)", external_order_id, event_type,
        )
