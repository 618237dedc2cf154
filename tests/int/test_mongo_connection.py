import os

import pytest

from config.database import MongoConnection
from repositories.mongo_attendee_repository import MongoAttendeeRepository

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not os.getenv("TEST_MONGODB_URI"), reason="TEST_MONGODB_URI not set"),
]


@pytest.fixture
def mongo_repo():
    conn = MongoConnection()
    attendees = conn.collection("attendees_it")
    files = conn.collection("files_it")
    repo = MongoAttendeeRepository(collection=attendees, files_collection=files)
    repo.ensure_indexes()
    yield repo
    attendees.drop()
    files.drop()
    conn.close()


def test_can_ping_test_mongo(mongo_repo):
    assert mongo_repo.ping() == "mongo"


def test_insert_search_and_update_round_trip(mongo_repo):
    record = mongo_repo.insert(
        {
            "attended": "Yes",
            "userName": "it-user",
            "firstName": "Integration",
            "lastName": "Test",
            "email": "it@x.io",
            "registrationTime": "01/01/2022 00:00",
        }
    )

    assert [r.id for r in mongo_repo.search("INTEGR")] == [record.id]
    updated = mongo_repo.update(record.id, {"country": "Egypt"})
    assert updated.country == "Egypt"
    assert updated.id == record.id
