from datetime import datetime

from sqlalchemy import func, update

from booklend.models.loan_record import LoanRecord
from booklend.extensions import db


class LoanRepo:
    @staticmethod
    def add(loan: LoanRecord):
        db.session.add(loan)
        db.session.flush()
        return loan

    @staticmethod
    def find_open(copy_id: str, borrower_id: str = None, borrower_kind=None):
        query = LoanRecord.query.filter_by(copy_id=copy_id, returned=False)
        if borrower_id is not None:
            query = query.filter_by(borrower_id=borrower_id)
        if borrower_kind is not None:
            query = query.filter_by(borrower_kind=borrower_kind)
        return query.first()

    @staticmethod
    def close(loan_id: int, when: datetime) -> bool:
        stmt = (
            update(LoanRecord)
            .where(LoanRecord.id == loan_id, LoanRecord.returned.is_(False))
            .values(returned=True, return_date=when)
            .execution_options(synchronize_session=False)
        )
        return db.session.execute(stmt).rowcount == 1

    @staticmethod
    def list_by_borrower(borrower_id: str, borrower_kind=None, open_only: bool = False):
        query = LoanRecord.query.filter_by(borrower_id=borrower_id)
        if borrower_kind is not None:
            query = query.filter_by(borrower_kind=borrower_kind)
        if open_only:
            query = query.filter_by(returned=False)
        return query.order_by(LoanRecord.issue_date.desc(), LoanRecord.id.desc()).all()

    @staticmethod
    def list_by_copy(copy_id: str):
        return (
            LoanRecord.query.filter_by(copy_id=copy_id)
            .order_by(LoanRecord.issue_date.desc(), LoanRecord.id.desc())
            .all()
        )

    @staticmethod
    def find_open_before(cutoff: datetime):
        return (
            LoanRecord.query.filter(LoanRecord.returned.is_(False), LoanRecord.issue_date < cutoff)
            .order_by(LoanRecord.issue_date)
            .all()
        )

    @staticmethod
    def count_open():
        return db.session.query(func.count(LoanRecord.id)).filter(LoanRecord.returned.is_(False)).scalar()

    @staticmethod
    def open_counts_by_copy():
        """{copy_id: number of open loans} for every copy with at least one."""
        rows = (
            db.session.query(LoanRecord.copy_id, func.count(LoanRecord.id))
            .filter(LoanRecord.returned.is_(False))
            .group_by(LoanRecord.copy_id)
            .all()
        )
        return {copy_id: n for copy_id, n in rows}
