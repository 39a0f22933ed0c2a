"""
Celery configuration for background email delivery
"""

from celery import Celery

from config import Config

celery_app = Celery(
    "starter",
    broker=Config.CELERY_BROKER_URL,
    backend=Config.CELERY_RESULT_BACKEND,
    include=["tasks.email"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_always_eager=Config.CELERY_TASK_ALWAYS_EAGER,
    task_acks_late=True,
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
    task_routes={"tasks.email.*": {"queue": "mailers"}},
    task_default_retry_delay=30,
    # Mail delivery settings read by tasks.email; create_app overrides them.
    mail_from=Config.MAIL_FROM,
    smtp_host=Config.SMTP_HOST,
    smtp_port=Config.SMTP_PORT,
    smtp_username=Config.SMTP_USERNAME,
    smtp_password=Config.SMTP_PASSWORD,
    smtp_use_tls=Config.SMTP_USE_TLS,
)

MAIL_SETTINGS = ("MAIL_FROM", "SMTP_HOST", "SMTP_PORT", "SMTP_USERNAME", "SMTP_PASSWORD", "SMTP_USE_TLS")


def init_celery(app):
    """Copy the Flask app's mail settings into the Celery configuration."""
    celery_app.conf.update({key.lower(): app.config.get(key) for key in MAIL_SETTINGS})
    return celery_app


if __name__ == "__main__":
    celery_app.start()
