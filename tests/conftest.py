import re
import sys
from io import BytesIO
from pathlib import Path
from types import SimpleNamespace

import pytest
from openpyxl import Workbook

# Ensure project root is on sys.path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from app import create_app  # noqa: E402
from repositories.attendee_repository import MemoryAttendeeRepository  # noqa: E402

ARABIC_HEADER_ROW = [
    "حضر",
    "اسم المستخدم",
    "الاسم الأول",
    "اسم العائلة",
    "البريد الإلكتروني",
    "وقت التسجيل",
    "حالة الموافقة",
    "وقت الانضمام",
    "وقت المغادرة",
    "مدة الجلسة (بالدقائق)",
    "ضيف",
    "رقم الهاتف",
    "البلد/المنطقة",
]

PREAMBLE = [
    ["Report Generated:", "01/05/2022 10:00"],
    ["Topic", "Quarterly webinar"],
]


class DummyCollection:
    def __init__(self, docs=()):
        self.docs = [dict(d) for d in docs]
        self.indexes = []

    @staticmethod
    def _matches_value(value, expected):
        if isinstance(expected, dict) and "$regex" in expected:
            flags = re.IGNORECASE if "i" in expected.get("$options", "") else 0
            return isinstance(value, str) and re.search(expected["$regex"], value, flags) is not None
        return value == expected

    def _matches(self, doc, query):
        for key, expected in query.items():
            if key == "$or":
                if not any(self._matches(doc, sub) for sub in expected):
                    return False
            elif not self._matches_value(doc.get(key), expected):
                return False
        return True

    def find(self, query):
        return [dict(doc) for doc in self.docs if self._matches(doc, query)]

    def find_one(self, query):
        return next(iter(self.find(query)), None)

    def insert_one(self, doc):
        self.docs.append(dict(doc))

    def insert_many(self, docs, ordered=True):  # noqa: ARG002
        for doc in docs:
            self.insert_one(doc)

    def find_one_and_update(self, query, update, return_document=None):  # noqa: ARG002
        for doc in self.docs:
            if self._matches(doc, query):
                doc.update(update["$set"])
                return dict(doc)
        return None

    def delete_one(self, query):
        for i, doc in enumerate(self.docs):
            if self._matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    def delete_many(self, query):
        kept = [d for d in self.docs if not self._matches(d, query)]
        deleted = len(self.docs) - len(kept)
        self.docs = kept
        return SimpleNamespace(deleted_count=deleted)

    def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))


def _attendee_cells(
    attended="نعم",
    user_name="alice42",
    first_name="Alice",
    last_name="Hill",
    email="alice@x.io",
    registration="44562",
    approval="approved",
    join="44562.5",
    leave="44562.55",
    duration="45",
    guest="لا",
    phone="",
    country="Egypt",
):
    return [
        attended, user_name, first_name, last_name, email, registration,
        approval, join, leave, duration, guest, phone, country,
    ]


def _report_matrix(data_rows, preamble=None, header=None):
    rows = [list(r) for r in (PREAMBLE if preamble is None else preamble)]
    rows.append(["Attendee Details"])
    rows.append(list(header or ARABIC_HEADER_ROW))
    rows.extend(list(r) for r in data_rows)
    return rows


def _report_xlsx(data_rows, preamble=None, header=None) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Attendees"
    for row in _report_matrix(data_rows, preamble, header):
        ws.append(row)
    stream = BytesIO()
    wb.save(stream)
    return stream.getvalue()


@pytest.fixture
def attendee_cells():
    return _attendee_cells


@pytest.fixture
def report_matrix():
    return _report_matrix


@pytest.fixture
def report_xlsx():
    return _report_xlsx


@pytest.fixture
def repo():
    return MemoryAttendeeRepository()


@pytest.fixture
def app(repo):
    app = create_app(repository=repo)
    app.config.update(TESTING=True, STORE_BATCH_DELAY=0)
    return app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def dummy_collection():
    """In-memory stand-in for a pymongo collection."""
    return DummyCollection
