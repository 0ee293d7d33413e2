# booklend/tasks/integrity_check.py
from datetime import datetime

from flask import current_app

from booklend.extensions import db
from booklend.services.circulation_service import CirculationService
from booklend.services.integrity_service import IntegrityService


def run_integrity_check_job(app, now: datetime = None):
    """
    Periodic audit:
    - copies whose issued flag disagrees with the ledger (logged, not fixed)
    - open loans past their due date, with the fine accrued so far
    Returns a summary dict (handy for tests and manual runs).
    """
    with app.app_context():
        try:
            now = now or datetime.utcnow()
            findings = IntegrityService.find_inconsistencies()
            overdue = CirculationService.overdue_loans(now)
            total_fine = sum(v.fine for v in overdue)

            current_app.logger.info(
                f"[integrity_check] inconsistencies={len(findings)} overdue={len(overdue)} "
                f"fines_accrued={total_fine}"
            )
            return {
                "inconsistencies": [f.to_dict() for f in findings],
                "overdue": len(overdue),
                "fines_accrued": total_fine,
            }
        except Exception as e:
            db.session.rollback()
            current_app.logger.exception(f"[integrity_check] failed: {e}")
            raise
