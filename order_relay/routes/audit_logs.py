from datetime import timedelta

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from order_relay.models.audit_log import AuditEventType, AuditStatus
from order_relay.models.logistic_center import LogisticCenter
from order_relay.services.audit_log import AuditLogService
from order_relay.utils import utcnow

bp = Blueprint('audit_logs', __name__, url_prefix='/api')


MAX_LIMIT = 500


def purge_expired_audit_logs():
    days = current_app.config['AUDIT_LOG_RETENTION_DAYS']
    return days, AuditLogService.purge_older_than(timedelta(days=days))


def _limit_arg(default):
    # SQLite reads a negative LIMIT as "no limit"
    limit = request.args.get('limit', default, type=int)
    return max(1, min(limit, MAX_LIMIT))


# ---------- Logs ----------

@bp.route('/audit-logs')
@login_required
def shop_logs():
    shop = current_user.shop
    logs = AuditLogService.list_for_shop(shop, limit=_limit_arg(100))
    return jsonify(
        shop=shop,
        logs=[log.to_dict() for log in logs],
        stats=AuditLogService.stats_for_shop(shop),
    )


@bp.route('/audit-logs/orders/<external_order_id>')
@login_required
def order_logs(external_order_id):
    logs = AuditLogService.list_for_order(external_order_id, limit=_limit_arg(50), shop=current_user.shop)
    return jsonify(external_order_id=external_order_id, logs=[log.to_dict() for log in logs])


@bp.route('/webhook-status', methods=['GET'])
@login_required
def webhook_status():
    """Whether this shop is ready to relay orders, with the latest attempts."""
    shop = current_user.shop
    center = LogisticCenter.query.filter_by(shop=shop).first()
    recent = AuditLogService.list_for_shop(shop, limit=5)

    return jsonify(
        success=True,
        shop=shop,
        has_logistic_center=center is not None,
        logistic_center={
            'name': center.name,
            'has_base_url': bool(center.base_url),
            'has_access_token': bool(center.access_token),
        } if center else None,
        audit_logs={
            'total': AuditLogService.stats_for_shop(shop)['total'],
            'recent': [log.to_dict() for log in recent],
        },
    )


@bp.route('/webhook-status', methods=['POST'])
@login_required
def webhook_status_check():
    """Write a test entry to confirm the audit trail is persisting."""
    shop = current_user.shop
    entry = AuditLogService.save(
        external_order_id=f"TEST-{int(utcnow().timestamp() * 1000)}",
        order_label='TEST ORDER',
        shop=shop,
        event_type=AuditEventType.ORDER_PAID,
        status=AuditStatus.SUCCESS,
        request_data={'test': True, 'timestamp': utcnow().isoformat()},
    )
    return jsonify(success=True, message='Test log created successfully', shop=shop, log=entry.to_dict())


# ---------- Retention ----------

@bp.route('/cleanup-audit-logs', methods=['GET'])
@login_required
def cleanup_info():
    return jsonify(
        message='Use POST method to execute cleanup',
        endpoint='/api/cleanup-audit-logs',
        method='POST',
    )


@bp.route('/cleanup-audit-logs', methods=['POST'])
@login_required
def cleanup():
    days, deleted = purge_expired_audit_logs()
    return jsonify(
        success=True,
        message=f"Cleaned up {deleted} audit logs older than {days} days",
        deleted_count=deleted,
    )
