"""Background tasks executed by the Celery worker."""
