from datetime import datetime

from sqlalchemy import text

from booklend.extensions import db
from booklend.models.borrower import BorrowerKind


class LoanRecord(db.Model):
    __tablename__ = "loan_records"

    id = db.Column(db.Integer, primary_key=True)

    borrower_id = db.Column(db.String(64), nullable=False, index=True)
    borrower_kind = db.Column(
        db.Enum(BorrowerKind, values_callable=lambda e: [k.value for k in e], name="borrower_kind"),
        nullable=False,
    )
    librarian_id = db.Column(db.String(64), nullable=False)

    copy_id = db.Column(db.String(16), db.ForeignKey("copies.id"), nullable=False, index=True)

    issue_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    return_date = db.Column(db.DateTime, nullable=True)
    returned = db.Column(db.Boolean, nullable=False, default=False)
    remarks = db.Column(db.String(500), nullable=True)

    copy = db.relationship("Copy", backref=db.backref("loans", order_by="LoanRecord.issue_date.desc()"))

    __table_args__ = (
        # at most one open loan per copy; partial indexes only where the dialect has them
        db.Index(
            "uq_loan_records_open_copy",
            "copy_id",
            unique=True,
            sqlite_where=text("returned = 0"),
            postgresql_where=text("returned = false"),
            mssql_where=text("returned = 0"),
        ).ddl_if(dialect=("sqlite", "postgresql", "mssql")),
    )

    @property
    def is_open(self) -> bool:
        return not self.returned
