from app.tasks.celery_app import celery
from app.tasks import worker_jobs

@celery.task(name="app.tasks.jobs.expire_holds")
def expire_holds():
    return worker_jobs.expire_holds()

@celery.task(name="app.tasks.jobs.check_ledger")
def check_ledger():
    return worker_jobs.check_ledger()
