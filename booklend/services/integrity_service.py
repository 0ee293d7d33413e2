from dataclasses import dataclass
from typing import List

from flask import current_app

from booklend.errors import storage_guard
from booklend.extensions import db
from booklend.models.copy import Copy
from booklend.repositories.copy_repo import CopyRepo
from booklend.repositories.loan_repo import LoanRepo


@dataclass
class Inconsistency:
    copy_id: str
    issued_flag: bool
    open_loans: int

    @property
    def kind(self) -> str:
        if self.open_loans > 1:
            return "multiple_open_loans"
        if self.issued_flag:
            return "issued_without_loan"
        return "open_loan_on_available_copy"

    def to_dict(self):
        return {
            "copy_id": self.copy_id,
            "issued_flag": self.issued_flag,
            "open_loans": self.open_loans,
            "kind": self.kind,
        }


class IntegrityService:
    """
    Cross-checks the copy `issued` flag against the ledger. The ledger is
    the truth; findings are logged and only repaired on request.
    """

    @staticmethod
    def find_inconsistencies() -> List[Inconsistency]:
        with storage_guard("integrity audit"):
            open_counts = LoanRepo.open_counts_by_copy()
            rows = db.session.query(Copy.id, Copy.issued).all()

        findings = []
        for copy_id, issued in rows:
            n = open_counts.get(copy_id, 0)
            if n > 1 or bool(issued) != (n == 1):
                findings.append(Inconsistency(copy_id, bool(issued), n))

        for f in findings:
            current_app.logger.error(
                f"[integrity] {f.kind}: copy={f.copy_id} issued={f.issued_flag} open_loans={f.open_loans}"
            )
        return findings

    @staticmethod
    def reconcile(copy_ids) -> List[str]:
        """
        Recompute `issued` from the ledger for the named copies only.
        Copies with more than one open loan are left for a human.
        """
        repaired = []
        with storage_guard("integrity audit"):
            open_counts = LoanRepo.open_counts_by_copy()
            for copy in CopyRepo.find_by_ids(set(copy_ids)):
                n = open_counts.get(copy.id, 0)
                if n > 1:
                    current_app.logger.error(f"[integrity] {copy.id} has {n} open loans; not repaired")
                    continue
                should_be_issued = n == 1
                if bool(copy.issued) != should_be_issued:
                    copy.issued = should_be_issued
                    repaired.append(copy.id)
            db.session.commit()

        for copy_id in repaired:
            current_app.logger.warning(f"[integrity] reconciled issued flag for {copy_id}")
        return sorted(repaired)
