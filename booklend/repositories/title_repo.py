from sqlalchemy import func, update

from booklend.models.title import Title
from booklend.models.copy import Copy
from booklend.extensions import db

LIKE_ESCAPE = "\\"


def contains_pattern(value: str) -> str:
    """ILIKE pattern matching `value` literally as a substring."""
    value = (
        str(value)
        .replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{value}%"


class TitleRepo:
    @staticmethod
    def get(title_id: int):
        return db.session.get(Title, title_id)

    @staticmethod
    def get_by_title(title: str):
        return Title.query.filter_by(title=title).first()

    @staticmethod
    def count():
        return db.session.query(func.count(Title.id)).scalar()

    @staticmethod
    def search_query(title=None, author=None, copy_id=None):
        query = Title.query
        if title:
            query = query.filter(Title.title.ilike(contains_pattern(title), escape=LIKE_ESCAPE))
        if author:
            query = query.filter(Title.author.ilike(contains_pattern(author), escape=LIKE_ESCAPE))
        if copy_id:
            query = query.filter(
                Title.copies.any(Copy.id.ilike(contains_pattern(copy_id), escape=LIKE_ESCAPE))
            )
        return query.order_by(Title.id.desc())

    @staticmethod
    def copy_count(title_id: int):
        return db.session.query(Title.copy_count).filter(Title.id == title_id).scalar()

    @staticmethod
    def claim_stock(title_id: int, expected: int, new_count: int) -> bool:
        """Move copy_count from `expected` to `new_count`; False if another writer got there first."""
        stmt = (
            update(Title)
            .where(Title.id == title_id, Title.copy_count == expected)
            .values(copy_count=new_count)
            .execution_options(synchronize_session=False)
        )
        return db.session.execute(stmt).rowcount == 1

    @staticmethod
    def create(title: Title, copies):
        db.session.add(title)
        db.session.add_all(copies)
        db.session.commit()
        return title

    @staticmethod
    def commit():
        db.session.commit()
