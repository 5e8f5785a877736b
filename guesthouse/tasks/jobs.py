from guesthouse.tasks.celery_app import celery
from guesthouse.tasks import worker_jobs

@celery.task(name="guesthouse.tasks.jobs.expire_pending_bookings")
def expire_pending_bookings():
    return worker_jobs.expire_pending_bookings()
