from sqlalchemy import insert, select, update
from booklend.models.sequence_counter import SequenceCounter

counters = SequenceCounter.__table__


class CounterRepo:
    """Single-statement operations on sequence_counters.

    Every method takes an explicit connection so each call is its own
    atomic statement, independent of the request session.
    """

    @staticmethod
    def increment(conn, name: str):
        stmt = (
            update(counters)
            .where(counters.c.name == name)
            .values(number=counters.c.number + 1)
            .returning(counters.c.prefix, counters.c.number)
        )
        return conn.execute(stmt).first()

    @staticmethod
    def create(conn, name: str, prefix: str = "AA", number: int = 0):
        conn.execute(insert(counters).values(name=name, prefix=prefix, number=number))

    @staticmethod
    def roll_over(conn, name: str, old_prefix: str, new_prefix: str) -> bool:
        """Compare-and-swap the prefix; only one caller per rollover wins."""
        stmt = (
            update(counters)
            .where(
                counters.c.name == name,
                counters.c.prefix == old_prefix,
                counters.c.number > 999999,
            )
            .values(prefix=new_prefix, number=0)
        )
        return conn.execute(stmt).rowcount == 1

    @staticmethod
    def get(conn, name: str):
        return conn.execute(
            select(counters.c.prefix, counters.c.number).where(counters.c.name == name)
        ).first()

    @staticmethod
    def set(conn, name: str, prefix: str, number: int):
        res = conn.execute(
            update(counters).where(counters.c.name == name).values(prefix=prefix, number=number)
        )
        if res.rowcount == 0:
            conn.execute(insert(counters).values(name=name, prefix=prefix, number=number))
