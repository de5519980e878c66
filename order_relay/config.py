import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-key-change-in-prod')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///relay.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Shopify
    SHOPIFY_API_SECRET = os.environ.get('SHOPIFY_API_SECRET', '')
    SHOPIFY_API_VERSION = os.environ.get('SHOPIFY_API_VERSION', '2024-10')
    SHOPIFY_ECOMMERCE_ID = int(os.environ.get('SHOPIFY_ECOMMERCE_ID', 1))

    # Recibelo (logistics backend)
    RECIBELO_TRACKING_URL = os.environ.get(
        'RECIBELO_TRACKING_URL', 'https://recibelo.cl/track/{tracking_number}'
    )
    RECIBELO_CARRIER_NAME = os.environ.get('RECIBELO_CARRIER_NAME', 'Recibelo')

    # Outbound HTTP
    HTTP_TIMEOUT = float(os.environ.get('HTTP_TIMEOUT', 30))
    HTTP_TRANSPORT = None

    # Audit trail retention
    AUDIT_LOG_RETENTION_DAYS = int(os.environ.get('AUDIT_LOG_RETENTION_DAYS', 15))

class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')

class ProductionConfig(Config):
    DEBUG = False

class TestingConfig(Config):
    TESTING = True
    LOG_LEVEL = 'INFO'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SHOPIFY_API_SECRET = 'test-shopify-secret'
