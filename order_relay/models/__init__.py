from order_relay.models.audit_log import AuditLog, AuditEventType, AuditStatus, UNKNOWN
from order_relay.models.logistic_center import LogisticCenter
from order_relay.models.shop_session import ShopSession
