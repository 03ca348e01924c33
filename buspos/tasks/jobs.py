from buspos.tasks.celery_app import celery
from buspos.tasks import worker_jobs

@celery.task(name="buspos.tasks.jobs.reconcile_available_seats")
def reconcile_available_seats():
    return worker_jobs.reconcile_available_seats()

@celery.task(name="buspos.tasks.jobs.complete_finished_trips")
def complete_finished_trips():
    return worker_jobs.complete_finished_trips()
