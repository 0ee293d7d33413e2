from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy.exc import IntegrityError

from booklend.errors import ConflictError, DuplicateError, NotFoundError, ValidationError, storage_guard
from booklend.extensions import db
from booklend.models.copy import Copy
from booklend.models.title import Title
from booklend.repositories.copy_repo import CopyRepo
from booklend.repositories.title_repo import TitleRepo
from booklend.services.sequence_allocator import SequenceAllocator

TEXT_FIELDS = ("title", "author", "details", "course", "branch")
DEFAULT_MAX_STOCK = 200
UPDATE_ATTEMPTS = 3


def _max_stock() -> int:
    return int(current_app.config.get("MAX_STOCK", DEFAULT_MAX_STOCK))


def _clean_text(name: str, value) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{name} is required")
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")
    return value.strip()


def _clean_price(value) -> Decimal:
    if value is None or isinstance(value, bool) or str(value).strip() == "":
        raise ValidationError("price is required")
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("Price must be a number")
    if not price.is_finite() or price < 0:
        raise ValidationError("Price must be a positive number")
    return price.quantize(Decimal("0.01"))


def _clean_stock(value) -> int:
    if value is None or isinstance(value, bool):
        raise ValidationError("stock is required")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError("Stock must be a positive integer")
        value = int(value)
    try:
        stock = int(str(value).strip())
    except ValueError:
        raise ValidationError("Stock must be a positive integer")
    if stock <= 0:
        raise ValidationError("Stock must be a positive integer")
    limit = _max_stock()
    if stock > limit:
        raise ValidationError(f"Stock cannot exceed {limit} copies")
    return stock


def _clean_page(page, per_page):
    try:
        page, per_page = int(page), int(per_page)
    except (TypeError, ValueError):
        raise ValidationError("page and per_page must be integers")
    if page < 1 or per_page < 1 or per_page > 100:
        raise ValidationError("page must be >= 1 and per_page between 1 and 100")
    return page, per_page


class TitleService:
    @staticmethod
    def get_title(title_id: int) -> Title:
        with storage_guard("title catalog"):
            title = TitleRepo.get(title_id)
        if not title:
            raise NotFoundError(f"Title not found: {title_id}")
        return title

    @staticmethod
    def register_title(title, author, details, price, course, branch, stock):
        """Create a title and mint `stock` available copies for it."""
        data = {
            "title": _clean_text("title", title),
            "author": _clean_text("author", author),
            "details": _clean_text("details", details),
            "course": _clean_text("course", course),
            "branch": _clean_text("branch", branch),
            "price": _clean_price(price),
        }
        stock = _clean_stock(stock)

        with storage_guard("title catalog"):
            if TitleRepo.get_by_title(data["title"]):
                raise DuplicateError(f"Duplicate book title: {data['title']}")

            # ids first: the allocator commits on its own connection
            copy_ids = SequenceAllocator.allocate_many(stock)

            book = Title(copy_count=stock, **data)
            copies = [Copy(id=copy_id, title=book, issued=False) for copy_id in copy_ids]
            try:
                TitleRepo.create(book, copies)
            except IntegrityError:
                db.session.rollback()
                raise DuplicateError(f"Duplicate book title: {data['title']}")

        current_app.logger.info(
            f"[titles] registered title_id={book.id} '{book.title}' copies={copy_ids[0]}..{copy_ids[-1]}"
        )
        return book, copies

    @staticmethod
    def update_title(copy_id: str, fields: dict, new_stock):
        """
        Update a title found through any of its copies.
        Stock only grows: copies are never deleted.

        `copy_count` is claimed with a compare-and-swap, so two concurrent
        updates to the same target add the delta once. The loser re-reads
        the count and retries.
        """
        fields = fields or {}
        unknown = set(fields) - set(TEXT_FIELDS) - {"price"}
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        changes = {k: _clean_text(k, v) for k, v in fields.items() if k in TEXT_FIELDS}
        if "price" in fields:
            changes["price"] = _clean_price(fields["price"])
        new_stock = _clean_stock(new_stock)

        with storage_guard("title catalog"):
            copy = CopyRepo.get(copy_id)
            if not copy:
                raise NotFoundError(f"Book copy not found: {copy_id}")
            book = copy.title
            if not book:
                raise NotFoundError(f"Book not found for copy {copy_id}")
            title_id, name = book.id, book.title

            new_name = changes.get("title")
            renaming = bool(new_name) and new_name != name
            if renaming:
                other = TitleRepo.get_by_title(new_name)
                if other and other.id != title_id:
                    raise DuplicateError(f"Duplicate book title: {new_name}")

            for attempt in range(1, UPDATE_ATTEMPTS + 1):
                # token before count: a writer that bumped the count also bumped the token
                token = TitleRepo.copy_count(title_id)
                current = CopyRepo.count(title_id=title_id)
                if new_stock < current:
                    raise ConflictError(f"Cannot reduce stock. Currently registered copies: {current}")

                # ids first: the allocator commits on its own connection
                copy_ids = SequenceAllocator.allocate_many(new_stock - current)

                if not TitleRepo.claim_stock(title_id, token, new_stock):
                    db.session.rollback()
                    current_app.logger.info(
                        f"[titles] stock of title_id={title_id} changed underneath update (attempt {attempt})"
                    )
                    continue

                book = TitleRepo.get(title_id)
                for key, value in changes.items():
                    setattr(book, key, value)
                added = [Copy(id=cid, title_id=title_id, issued=False) for cid in copy_ids]
                db.session.add_all(added)
                try:
                    TitleRepo.commit()
                except IntegrityError:
                    db.session.rollback()
                    if renaming:
                        raise DuplicateError(f"Duplicate book title: {new_name}")
                    raise ConflictError(f"Could not update '{name}': conflicting write, retry")
                break
            else:
                raise ConflictError(f"Title '{name}' is being updated concurrently, retry")

        current_app.logger.info(
            f"[titles] updated title_id={title_id} via {copy_id} added_copies={len(added)}"
        )
        return book, added

    @staticmethod
    def search(title=None, author=None, copy_id=None, page=1, per_page=10):
        page, per_page = _clean_page(page, per_page)
        with storage_guard("title catalog"):
            query = TitleRepo.search_query(title=title, author=author, copy_id=copy_id)
            result = query.paginate(page=page, per_page=per_page, error_out=False)
            # touch copies while the session is live
            for book in result.items:
                book.copies
        return result

    @staticmethod
    def get_by_copy_id(copy_id: str):
        with storage_guard("title catalog"):
            copy = CopyRepo.get(copy_id)
            if not copy:
                raise NotFoundError(f"Book copy not found: {copy_id}")
            stock = CopyRepo.count(title_id=copy.title_id)
        return copy.title, copy, stock
