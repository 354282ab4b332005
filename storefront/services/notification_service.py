# storefront/services/notification_service.py
from storefront.celery_worker import celery_app
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Customer notifications.
    Dispatched through Celery so checkout never waits on the mail provider.
    """

    @staticmethod
    def send_order_confirmation(order_id: int, order_number: str):
        send_order_confirmation_task.delay(order_id, order_number)


@celery_app.task(name="storefront.services.notification_service.send_order_confirmation_task")
def send_order_confirmation_task(order_id: int, order_number: str):
    """
    Email provider is stubbed, the task only logs.
    """
    logger.info(f"[NOTIFICATION] Order {order_number} (id {order_id}) received, confirmation queued for delivery")
    return {"order_id": order_id, "order_number": order_number, "status": "sent"}
