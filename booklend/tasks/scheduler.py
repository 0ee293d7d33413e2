# booklend/tasks/scheduler.py
from __future__ import annotations

import os

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger


def start_scheduler(app):
    """
    Schedule the integrity audit.
    - Off unless SCHEDULER_ENABLED is set.
    - Skips the debug reloader's watcher process so the job runs once.
    - Stops the scheduler when the process exits.
    """
    if not app.config.get("SCHEDULER_ENABLED"):
        app.logger.info("[scheduler] disabled (SCHEDULER_ENABLED=0).")
        return None

    # Werkzeug reloader: only the WERKZEUG_RUN_MAIN=true process is the real one
    if app.debug and os.environ.get("WERKZEUG_RUN_MAIN") != "true":
        app.logger.info("[scheduler] Debug reloader secondary process: scheduler skipped.")
        return None

    # imported here to keep create_app free of circular imports
    from booklend.tasks.integrity_check import run_integrity_check_job

    minutes = int(app.config.get("INTEGRITY_CHECK_MINUTES", 10))
    scheduler = BackgroundScheduler(timezone="UTC")

    def _job_wrapper():
        try:
            run_integrity_check_job(app)
        except Exception as ex:
            app.logger.exception(f"[scheduler] integrity_check_job error: {ex}")

    scheduler.add_job(
        func=_job_wrapper,
        trigger=IntervalTrigger(minutes=minutes),
        id="integrity_check_job",
        replace_existing=True,
        max_instances=1,        # no overlapping runs
        coalesce=True,          # fold missed runs into one
        misfire_grace_time=120,
    )

    scheduler.start()
    app.logger.info(f"[scheduler] Integrity check job started (every {minutes} minutes).")

    app.extensions["apscheduler"] = scheduler

    import atexit
    atexit.register(lambda: scheduler.shutdown(wait=False) if scheduler.running else None)
    return scheduler
