import httpx
from flask import current_app
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()


def http_client():
    """httpx client configured from the current app (timeout, optional test transport)."""
    return httpx.Client(
        timeout=current_app.config['HTTP_TIMEOUT'],
        transport=current_app.config.get('HTTP_TRANSPORT'),
    )
