import pytest

from booklend.errors import NotFoundError
from booklend.services.circulation_service import CirculationService
from booklend.services.copy_catalog import CopyCatalog


def test_find_by_ids_skips_unknown(register):
    register(stock=2)
    found = CopyCatalog.find_by_ids(["AA-000002", "XX-000001", "AA-000001"])
    assert sorted(found) == ["AA-000001", "AA-000002"]


def test_counts_follow_circulation(register, student):
    book, copies = register(stock=4)
    register(title="Another", stock=1)
    CirculationService.issue_batch(student, "lib-1", [copies[0].id, copies[1].id])

    assert CopyCatalog.count_by_title(book.id) == 4
    assert CopyCatalog.count_total() == 5
    assert CopyCatalog.count_issued() == 2
    assert CopyCatalog.count_available() == 3
    assert CopyCatalog.availability(book.id) == {"total": 4, "issued": 2, "available": 2}


def test_availability_unknown_title(app):
    with pytest.raises(NotFoundError):
        CopyCatalog.availability(999)


def test_dashboard_counts(register, student):
    _, copies = register(stock=3)
    CirculationService.issue_batch(student, "lib-1", [copies[0].id])
    assert CopyCatalog.dashboard_counts() == {
        "total_titles": 1,
        "total_copies": 3,
        "issued_copies": 1,
        "available_copies": 2,
        "open_loans": 1,
    }


def test_tampered_is_orthogonal_to_circulation(register, student):
    _, copies = register(stock=1)
    cid = copies[0].id
    assert CopyCatalog.set_tampered(cid).tampered is True

    result = CirculationService.issue_batch(student, "lib-1", [cid])

    assert result.issued == [cid]
    copy = CopyCatalog.get(cid)
    assert copy.tampered is True and copy.issued is True
    assert CopyCatalog.set_tampered(cid, False).tampered is False


def test_get_unknown_copy(app):
    with pytest.raises(NotFoundError):
        CopyCatalog.get("AA-123456")
