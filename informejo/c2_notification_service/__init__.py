"""C2 Notification Service - outbound ticket emails."""
from informejo.c2_notification_service.notification_service import NotificationService, Recipient
__all__ = ["NotificationService", "Recipient"]
