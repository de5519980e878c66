import logging

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .config import DevelopmentConfig
from .extensions import db, migrate, login_manager

logger = logging.getLogger(__name__)

def create_app(config_class=DevelopmentConfig):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
    )
    logging.getLogger('order_relay').setLevel(app.config['LOG_LEVEL'])

    # Initialize Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # Import models
    from order_relay import models

    # Register Blueprints
    from order_relay.routes.orders_paid import bp as orders_paid_bp
    app.register_blueprint(orders_paid_bp)

    from order_relay.routes.logistics_webhook import bp as logistics_bp
    app.register_blueprint(logistics_bp)

    from order_relay.routes.audit_logs import bp as audit_logs_bp, purge_expired_audit_logs
    app.register_blueprint(audit_logs_bp)

    # Admin API: "Authorization: Bearer <shop access token>"
    @login_manager.request_loader
    def load_shop_session(request):
        auth = request.headers.get('Authorization', '')
        scheme, _, token = auth.partition(' ')
        if scheme.lower() != 'bearer' or not token:
            return None
        return models.ShopSession.active().filter_by(access_token=token).first()

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify(success=False, error='Unauthorized'), 401

    @app.errorhandler(Exception)
    def unhandled_exception(exc):
        if isinstance(exc, HTTPException):
            return jsonify(success=False, error=exc.description), exc.code
        logger.exception("Unhandled error: %s", exc)
        return jsonify(success=False, error='Internal server error'), 500

    # Retention sweep for cron: `flask --app run cleanup-audit-logs`
    @app.cli.command('cleanup-audit-logs')
    def cleanup_audit_logs_command():
        days, deleted = purge_expired_audit_logs()
        click.echo(f"Cleaned up {deleted} audit logs older than {days} days")

    return app
