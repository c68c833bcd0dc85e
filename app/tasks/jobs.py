from app.tasks.celery_app import celery
from app.tasks import worker_jobs

@celery.task(name="app.tasks.jobs.reconcile_seat_counts")
def reconcile_seat_counts():
    return worker_jobs.reconcile_seat_counts()

@celery.task(name="app.tasks.jobs.reconcile_paid_tickets")
def reconcile_paid_tickets():
    return worker_jobs.reconcile_paid_tickets()
