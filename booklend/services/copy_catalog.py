from booklend.errors import NotFoundError, storage_guard
from booklend.repositories.copy_repo import CopyRepo
from booklend.repositories.loan_repo import LoanRepo
from booklend.repositories.title_repo import TitleRepo


class CopyCatalog:
    @staticmethod
    def find_by_ids(copy_ids):
        """Batch lookup keyed by copy id; unknown ids are simply absent."""
        with storage_guard("copy catalog"):
            return {c.id: c for c in CopyRepo.find_by_ids(set(copy_ids))}

    @staticmethod
    def get(copy_id: str):
        with storage_guard("copy catalog"):
            copy = CopyRepo.get(copy_id)
        if not copy:
            raise NotFoundError(f"Book copy not found: {copy_id}")
        return copy

    @staticmethod
    def set_issued(copy_id: str, issued: bool, expect=None) -> bool:
        # caller owns the transaction (the ledger commits copy + loan together)
        return CopyRepo.flip_issued(copy_id, issued, expect=expect)

    @staticmethod
    def set_tampered(copy_id: str, tampered: bool = True):
        copy = CopyCatalog.get(copy_id)
        copy.tampered = bool(tampered)
        with storage_guard("copy catalog"):
            CopyRepo.commit()
        return copy

    @staticmethod
    def count_by_title(title_id: int) -> int:
        with storage_guard("copy catalog"):
            return CopyRepo.count(title_id=title_id)

    @staticmethod
    def count_issued() -> int:
        with storage_guard("copy catalog"):
            return CopyRepo.count(issued=True)

    @staticmethod
    def count_available() -> int:
        with storage_guard("copy catalog"):
            return CopyRepo.count(issued=False)

    @staticmethod
    def count_total() -> int:
        with storage_guard("copy catalog"):
            return CopyRepo.count()

    @staticmethod
    def availability(title_id: int):
        with storage_guard("copy catalog"):
            if not TitleRepo.get(title_id):
                raise NotFoundError(f"Title not found: {title_id}")
            total = CopyRepo.count(title_id=title_id)
            issued = CopyRepo.count(title_id=title_id, issued=True)
        return {"total": total, "issued": issued, "available": total - issued}

    @staticmethod
    def dashboard_counts():
        with storage_guard("copy catalog"):
            total = CopyRepo.count()
            issued = CopyRepo.count(issued=True)
            return {
                "total_titles": TitleRepo.count(),
                "total_copies": total,
                "issued_copies": issued,
                "available_copies": total - issued,
                "open_loans": LoanRepo.count_open(),
            }
