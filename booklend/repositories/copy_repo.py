from sqlalchemy import func, update

from booklend.models.copy import Copy
from booklend.extensions import db


class CopyRepo:
    @staticmethod
    def get(copy_id: str):
        return db.session.get(Copy, copy_id)

    @staticmethod
    def find_by_ids(copy_ids):
        if not copy_ids:
            return []
        return Copy.query.filter(Copy.id.in_(list(copy_ids))).all()

    @staticmethod
    def flip_issued(copy_id: str, issued: bool, expect=None) -> bool:
        """Conditional UPDATE; with `expect` set it only matches rows in that state."""
        stmt = update(Copy).where(Copy.id == copy_id)
        if expect is not None:
            stmt = stmt.where(Copy.issued == expect)
        stmt = stmt.values(issued=issued).execution_options(synchronize_session=False)
        return db.session.execute(stmt).rowcount == 1

    @staticmethod
    def count(title_id: int = None, issued: bool = None):
        query = db.session.query(func.count(Copy.id))
        if title_id is not None:
            query = query.filter(Copy.title_id == title_id)
        if issued is not None:
            query = query.filter(Copy.issued == issued)
        return query.scalar()

    @staticmethod
    def commit():
        db.session.commit()
