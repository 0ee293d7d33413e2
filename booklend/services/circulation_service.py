from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from booklend.errors import NotFoundError, StorageUnavailableError, ValidationError, storage_guard
from booklend.extensions import db
from booklend.models.borrower import BorrowerKind, BorrowerRef
from booklend.models.loan_record import LoanRecord
from booklend.repositories.loan_repo import LoanRepo
from booklend.services.copy_catalog import CopyCatalog
from booklend.services.fine_calculator import FinePolicy

BOOK_NOT_FOUND = "Book not found"
ALREADY_ISSUED = "Already issued"


@dataclass
class IssueFailure:
    copy_id: str
    reason: str

    def to_dict(self):
        return {"copy_id": self.copy_id, "reason": self.reason}


@dataclass
class IssueResult:
    issued: List[str] = field(default_factory=list)
    failed: List[IssueFailure] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        return not self.issued

    def to_dict(self):
        return {"issued": list(self.issued), "failed": [f.to_dict() for f in self.failed]}


@dataclass
class ReturnResult:
    returned: List[str] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        return not self.returned

    def to_dict(self):
        return {"returned": list(self.returned), "not_found": list(self.not_found)}


@dataclass
class LoanView:
    loan: LoanRecord
    title: Optional[str]
    due_date: datetime
    fine: int

    @property
    def status(self) -> str:
        return "Returned" if self.loan.returned else "Issued"

    def to_dict(self):
        loan = self.loan
        return {
            "id": loan.id,
            "copy_id": loan.copy_id,
            "title": self.title,
            "borrower_id": loan.borrower_id,
            "borrower_kind": loan.borrower_kind.value,
            "librarian_id": loan.librarian_id,
            "issue_date": loan.issue_date.isoformat(),
            "due_date": self.due_date.isoformat(),
            "return_date": loan.return_date.isoformat() if loan.return_date else None,
            "returned": bool(loan.returned),
            "status": self.status,
            "fine": self.fine,
            "remarks": loan.remarks,
        }


@dataclass
class CopyTrack:
    title: dict
    copy: dict
    history: List[LoanView]
    current_loan: Optional[LoanView]

    def to_dict(self):
        return {
            "title": self.title,
            "copy": self.copy,
            "history": [v.to_dict() for v in self.history],
            "current_loan": self.current_loan.to_dict() if self.current_loan else None,
        }


def _policy() -> FinePolicy:
    return FinePolicy.from_config(current_app.config)


def _check_borrower(borrower) -> BorrowerRef:
    if not isinstance(borrower, BorrowerRef):
        raise ValidationError("borrower must be a resolved BorrowerRef")
    if not borrower.borrower_id or not str(borrower.borrower_id).strip():
        raise ValidationError("borrower id is required")
    return BorrowerRef(str(borrower.borrower_id), BorrowerKind.parse(borrower.kind))


def _check_copy_ids(copy_ids) -> List[str]:
    if not isinstance(copy_ids, (list, tuple)):
        raise ValidationError("Book copy ids must be a list")
    if not copy_ids:
        raise ValidationError("At least one book copy id is required")
    ids = list(copy_ids)
    if any(not isinstance(c, str) or not c.strip() for c in ids):
        raise ValidationError("Book copy ids must be non-empty strings")
    return ids


def _view(loan: LoanRecord, policy: FinePolicy, now: datetime) -> LoanView:
    copy = loan.copy
    title = copy.title.title if copy is not None and copy.title is not None else None
    return LoanView(
        loan=loan,
        title=title,
        due_date=policy.due_date(loan.issue_date),
        fine=policy.fine_for(loan, now),
    )


class CirculationService:
    @staticmethod
    def issue_batch(borrower: BorrowerRef, librarian_id: str, copy_ids, now: datetime = None,
                    remarks: str = None) -> IssueResult:
        """
        Issue copies to one borrower, one transaction per copy.

        The copy flip is a conditional update (issued false -> true), so two
        librarians racing for the same copy cannot both open a loan. Copies
        that were committed stay committed whatever happens later in the batch.
        """
        borrower = _check_borrower(borrower)
        ids = _check_copy_ids(copy_ids)
        if not librarian_id or not str(librarian_id).strip():
            raise ValidationError("librarian id is required")
        now = now or datetime.utcnow()

        result = IssueResult()
        try:
            found = CopyCatalog.find_by_ids(ids)
        except StorageUnavailableError as e:
            e.partial = result
            raise

        for copy_id in ids:
            if copy_id not in found:
                result.failed.append(IssueFailure(copy_id, BOOK_NOT_FOUND))
                continue
            try:
                with storage_guard("circulation ledger"):
                    if not CopyCatalog.set_issued(copy_id, True, expect=False):
                        db.session.rollback()
                        result.failed.append(IssueFailure(copy_id, ALREADY_ISSUED))
                        continue
                    # the ledger wins over a flag that drifted to available
                    if LoanRepo.find_open(copy_id) is not None:
                        db.session.rollback()
                        current_app.logger.error(
                            f"[circulation] {copy_id} flagged available but has an open loan; not issued"
                        )
                        result.failed.append(IssueFailure(copy_id, ALREADY_ISSUED))
                        continue
                    LoanRepo.add(LoanRecord(
                        borrower_id=borrower.borrower_id,
                        borrower_kind=borrower.kind,
                        librarian_id=str(librarian_id),
                        copy_id=copy_id,
                        issue_date=now,
                        returned=False,
                        remarks=remarks,
                    ))
                    db.session.commit()
            except IntegrityError:
                # open-loan index caught a second loan the flag did not
                db.session.rollback()
                current_app.logger.error(f"[circulation] open loan already exists for {copy_id}")
                result.failed.append(IssueFailure(copy_id, ALREADY_ISSUED))
                continue
            except StorageUnavailableError as e:
                db.session.rollback()
                current_app.logger.error(
                    f"[circulation] issue aborted at {copy_id}; committed so far={result.issued}"
                )
                e.partial = result
                raise
            result.issued.append(copy_id)

        current_app.logger.info(
            f"[circulation] issue borrower={borrower.kind.value}:{borrower.borrower_id} "
            f"librarian={librarian_id} issued={len(result.issued)} failed={len(result.failed)}"
        )
        return result

    @staticmethod
    def return_batch(borrower: BorrowerRef, copy_ids, now: datetime = None) -> ReturnResult:
        """
        Close this borrower's open loans on the given copies. A copy on loan
        to somebody else is reported not found and its loan is left alone.
        """
        borrower = _check_borrower(borrower)
        ids = _check_copy_ids(copy_ids)
        now = now or datetime.utcnow()

        result = ReturnResult()
        try:
            found = CopyCatalog.find_by_ids(ids)
        except StorageUnavailableError as e:
            e.partial = result
            raise

        for copy_id in ids:
            if copy_id not in found:
                result.not_found.append(copy_id)
                continue
            try:
                with storage_guard("circulation ledger"):
                    loan = LoanRepo.find_open(copy_id, borrower.borrower_id, borrower.kind)
                    if loan is None or not LoanRepo.close(loan.id, now):
                        db.session.rollback()
                        result.not_found.append(copy_id)
                        continue
                    if not CopyCatalog.set_issued(copy_id, False, expect=True):
                        current_app.logger.warning(
                            f"[circulation] {copy_id} had an open loan but was flagged available"
                        )
                    db.session.commit()
            except StorageUnavailableError as e:
                db.session.rollback()
                current_app.logger.error(
                    f"[circulation] return aborted at {copy_id}; committed so far={result.returned}"
                )
                e.partial = result
                raise
            result.returned.append(copy_id)

        current_app.logger.info(
            f"[circulation] return borrower={borrower.kind.value}:{borrower.borrower_id} "
            f"returned={len(result.returned)} not_found={len(result.not_found)}"
        )
        return result

    @staticmethod
    def history(borrower_id: str, kind: BorrowerKind = None, now: datetime = None) -> List[LoanView]:
        """Every loan of a borrower, newest issue first."""
        policy, now = _policy(), now or datetime.utcnow()
        with storage_guard("circulation ledger"):
            loans = LoanRepo.list_by_borrower(borrower_id, kind)
            return [_view(loan, policy, now) for loan in loans]

    @staticmethod
    def active_loans(borrower_id: str, kind: BorrowerKind = None, now: datetime = None) -> List[LoanView]:
        policy, now = _policy(), now or datetime.utcnow()
        with storage_guard("circulation ledger"):
            loans = LoanRepo.list_by_borrower(borrower_id, kind, open_only=True)
            return [_view(loan, policy, now) for loan in loans]

    @staticmethod
    def track_copy(copy_id: str, now: datetime = None) -> CopyTrack:
        policy, now = _policy(), now or datetime.utcnow()
        copy = CopyCatalog.get(copy_id)
        with storage_guard("circulation ledger"):
            views = [_view(loan, policy, now) for loan in LoanRepo.list_by_copy(copy_id)]
            title = copy.title.to_dict() if copy.title else None
        if title is None:
            raise NotFoundError(f"Book not found for copy {copy_id}")
        current = next((v for v in views if not v.loan.returned), None)
        return CopyTrack(title=title, copy=copy.to_dict(), history=views, current_loan=current)

    @staticmethod
    def overdue_loans(now: datetime = None) -> List[LoanView]:
        policy, now = _policy(), now or datetime.utcnow()
        cutoff = now - timedelta(days=policy.loan_period_days)
        with storage_guard("circulation ledger"):
            return [_view(loan, policy, now) for loan in LoanRepo.find_open_before(cutoff)]
