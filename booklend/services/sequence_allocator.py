from __future__ import annotations

from typing import List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError

from booklend.errors import SequenceExhaustedError, storage_guard
from booklend.extensions import db
from booklend.repositories.counter_repo import CounterRepo

MAX_NUMBER = 999999
FIRST_PREFIX = "AA"
LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _check_prefix(prefix: str):
    if len(prefix) != 2 or any(ch not in LETTERS for ch in prefix):
        raise ValueError(f"Invalid prefix: {prefix!r}")


def next_prefix(prefix: str) -> str:
    """Two-letter base-26 odometer: AA -> AB, AZ -> BA."""
    _check_prefix(prefix)
    hi, lo = LETTERS.index(prefix[0]), LETTERS.index(prefix[1])
    if lo == 25:
        if hi == 25:
            raise SequenceExhaustedError("Copy identifier space exhausted after ZZ-999999")
        return LETTERS[hi + 1] + "A"
    return prefix[0] + LETTERS[lo + 1]


def format_copy_id(prefix: str, number: int) -> str:
    return f"{prefix}-{number:06d}"


def parse_copy_id(copy_id: str) -> Tuple[str, int]:
    prefix, _, number = copy_id.partition("-")
    return prefix, int(number)


class SequenceAllocator:
    @staticmethod
    def _engine():
        return db.engine

    @staticmethod
    def allocate_next(counter_name: Optional[str] = None) -> str:
        """
        Mint the next copy identifier.

        Each step is one atomic statement on its own transaction, so two
        callers can never see the same (prefix, number):
        - increment-and-fetch via UPDATE ... RETURNING
        - counter created on first use (a lost insert race just retries)
        - on overflow a guarded compare-and-swap moves to the next prefix;
          the winner takes <next>-000000, everybody else retries
        """
        name = counter_name or current_app.config.get("COPY_COUNTER_NAME", "bookId")
        engine = SequenceAllocator._engine()

        with storage_guard("sequence counter"):
            while True:
                with engine.begin() as conn:
                    row = CounterRepo.increment(conn, name)

                if row is None:
                    try:
                        with engine.begin() as conn:
                            CounterRepo.create(conn, name, FIRST_PREFIX, 0)
                        current_app.logger.info(f"[sequence] counter '{name}' created")
                    except IntegrityError:
                        pass
                    continue

                prefix, number = row.prefix, row.number
                if number <= MAX_NUMBER:
                    return format_copy_id(prefix, number)

                new_prefix = next_prefix(prefix)
                with engine.begin() as conn:
                    won = CounterRepo.roll_over(conn, name, prefix, new_prefix)
                if won:
                    current_app.logger.warning(
                        f"[sequence] counter '{name}' rolled over {prefix} -> {new_prefix}"
                    )
                    return format_copy_id(new_prefix, 0)

    @staticmethod
    def allocate_many(count: int, counter_name: Optional[str] = None) -> List[str]:
        return [SequenceAllocator.allocate_next(counter_name) for _ in range(count)]

    @staticmethod
    def peek(counter_name: Optional[str] = None):
        name = counter_name or current_app.config.get("COPY_COUNTER_NAME", "bookId")
        with storage_guard("sequence counter"):
            with SequenceAllocator._engine().connect() as conn:
                row = CounterRepo.get(conn, name)
        return (row.prefix, row.number) if row else None

    @staticmethod
    def reset(prefix: str, number: int, counter_name: Optional[str] = None):
        """Force a counter position (migrations, tests)."""
        name = counter_name or current_app.config.get("COPY_COUNTER_NAME", "bookId")
        _check_prefix(prefix)
        with storage_guard("sequence counter"):
            with SequenceAllocator._engine().begin() as conn:
                CounterRepo.set(conn, name, prefix, number)
