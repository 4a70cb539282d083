# app/services/notification_service.py
from app.celery_worker import celery_app
from app.services.sms_client import SmsClient
from app.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Outbound notices to customers.
    Every send is queued on Celery, callers never wait on a provider.
    """

    @staticmethod
    def send_order_notification(user_id: int, order_id: int):
        send_order_notification_task.delay(user_id, order_id)

    @staticmethod
    def send_otp(phone: str, otp: str, ttl_minutes: int):
        send_otp_sms_task.delay(phone, f"Your OTP is {otp}. It expires in {ttl_minutes} minutes.")

    @staticmethod
    def send_welcome_email(email: str, name: str):
        send_welcome_email_task.delay(email, name)


@celery_app.task(name="app.services.notification_service.send_order_notification_task")
def send_order_notification_task(user_id: int, order_id: int):
    """Order confirmation. Delivery channel is not wired yet, the notice is logged."""
    logger.info(f"[NOTIFICATION] User {user_id}: Order {order_id} is being processed")
    return {"user_id": user_id, "order_id": order_id, "status": "sent"}


@celery_app.task(name="app.services.notification_service.send_otp_sms_task")
def send_otp_sms_task(phone: str, message: str):
    SmsClient().send(phone, message)
    return {"phone": phone, "status": "sent"}


@celery_app.task(name="app.services.notification_service.send_welcome_email_task")
def send_welcome_email_task(email: str, name: str):
    logger.info(f"[NOTIFICATION] Welcome mail to {email} ({name})")
    return {"email": email, "status": "sent"}
