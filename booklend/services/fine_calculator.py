from datetime import datetime, timedelta

DEFAULT_LOAN_PERIOD_DAYS = 14
DEFAULT_PER_DAY_RATE = 2


def due_date(issue_date: datetime, loan_period_days: int = DEFAULT_LOAN_PERIOD_DAYS) -> datetime:
    return issue_date + timedelta(days=loan_period_days)


def overdue_days(issue_date: datetime, now: datetime,
                 loan_period_days: int = DEFAULT_LOAN_PERIOD_DAYS) -> int:
    """Whole days past due, truncated; 0 up to and including the due instant."""
    due = due_date(issue_date, loan_period_days)
    if now <= due:
        return 0
    return (now - due) // timedelta(days=1)


def calculate_fine(issue_date: datetime, now: datetime,
                   loan_period_days: int = DEFAULT_LOAN_PERIOD_DAYS,
                   per_day_rate: int = DEFAULT_PER_DAY_RATE) -> int:
    """
    Fine for a loan as of `now`. Pure: derived on every read and never
    stored, since `now` keeps moving.
    """
    if issue_date is None or now is None:
        return 0
    return overdue_days(issue_date, now, loan_period_days) * per_day_rate


class FinePolicy:
    """Loan period and daily rate taken from app config."""

    def __init__(self, loan_period_days: int = DEFAULT_LOAN_PERIOD_DAYS,
                 per_day_rate: int = DEFAULT_PER_DAY_RATE):
        if loan_period_days < 0 or per_day_rate < 0:
            raise ValueError("loan period and daily rate must be non-negative")
        self.loan_period_days = loan_period_days
        self.per_day_rate = per_day_rate

    @classmethod
    def from_config(cls, config) -> "FinePolicy":
        return cls(
            loan_period_days=int(config.get("LOAN_PERIOD_DAYS", DEFAULT_LOAN_PERIOD_DAYS)),
            per_day_rate=int(config.get("FINE_PER_DAY", DEFAULT_PER_DAY_RATE)),
        )

    def due_date(self, issue_date: datetime) -> datetime:
        return due_date(issue_date, self.loan_period_days)

    def fine_for(self, loan, now: datetime) -> int:
        """
        Open loans accrue up to `now`; returned loans are frozen at their
        return date (recomputed, not stored).
        """
        end = loan.return_date if loan.returned else now
        return calculate_fine(loan.issue_date, end, self.loan_period_days, self.per_day_rate)
