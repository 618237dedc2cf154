import csv
import io
from io import BytesIO

from openpyxl import load_workbook

from services.row_validator import MSG_PHONE_DIGITS
from utils.excel import EXPORT_SHEET


def _upload(client, payload: bytes, name="report.xlsx"):
    return client.post(
        "/api/upload-csv",
        data={"file": (BytesIO(payload), name)},
        content_type="multipart/form-data",
    )


def _record(**overrides):
    data = {
        "attended": "نعم",
        "userName": "alice42",
        "firstName": "Alice",
        "lastName": "Hill",
        "email": "alice@x.io",
        "registrationTime": "01/01/2022 00:00",
    }
    data.update(overrides)
    return data


def test_upload_ingests_report(client, repo, report_xlsx, attendee_cells):
    payload = report_xlsx([
        attendee_cells(email="ALICE@x.io", registration="44562"),
        attendee_cells(attended="Yes", user_name="bob", first_name="Bob", last_name="Ng",
                       email="bob@y.io", registration="44563"),
        attendee_cells(email="alice@x.io", registration="44565"),
    ])

    resp = _upload(client, payload)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["statistics"] == {
        "totalRecords": 3,
        "validRecords": 1,
        "duplicateRecords": 2,
        "errorRecords": 0,
    }
    assert body["errors"] == []
    assert body["message"] == "تم معالجة 3 سجل بنجاح"

    listed = client.get("/api/attendees").get_json()
    assert [a["email"] for a in listed] == ["alice@x.io", "alice@x.io", "bob@y.io"]
    assert listed[0]["duplicateGroup"] == "duplicate-group-1"
    assert listed[0]["registrationTime"] == "01/01/2022 00:00"


def test_upload_csv_report(client, repo, report_matrix, attendee_cells):
    buffer = io.StringIO()
    csv.writer(buffer).writerows(report_matrix([attendee_cells(first_name="--", email="bad")]))

    resp = _upload(client, buffer.getvalue().encode("utf-8"), name="report.csv")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["statistics"]["errorRecords"] == 1
    assert body["errors"][0]["rowIndex"] == 5
    assert len(body["errors"][0]["messages"]) == 2
    assert len(repo.all()) == 1


def test_upload_without_file_is_rejected(client):
    resp = client.post("/api/upload-csv", data={}, content_type="multipart/form-data")

    assert resp.status_code == 400
    assert resp.get_json()["message"] == "لم يتم رفع أي ملف"


def test_upload_missing_section_keeps_repository(client, repo):
    repo.insert(_record())

    resp = _upload(client, b"Topic,Webinar\nHost,Someone\n", name="report.csv")

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["message"] == "لم يتم العثور على قسم 'Attendee Details' في الملف"
    assert len(repo.all()) == 1
    assert repo.list_files() == []


def test_upload_too_large(client, app):
    app.config["MAX_UPLOAD_BYTES"] = 10

    resp = _upload(client, b"0123456789A", name="report.csv")

    assert resp.status_code == 413
    assert resp.get_json()["details"] == {"fileSize": 11, "maxSize": 10}


def test_update_revalidates_and_rejects(client, repo):
    record = repo.insert(_record())

    resp = client.put(f"/api/attendees/{record.id}", json={"phoneNumber": "abc"})

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["errors"] == [MSG_PHONE_DIGITS]
    assert repo.get(record.id) == record


def test_update_accepts_valid_changes(client, repo):
    record = repo.insert(_record(firstName="--", errorMessages=["الاسم الأول لا يمكن أن يكون فارغاً أو '--'"]))

    resp = client.put(
        f"/api/attendees/{record.id}",
        json={"firstName": "Alicia", "email": "ALICIA@X.IO", "phoneNumber": "+20 100 200"},
    )

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["firstName"] == "Alicia"
    assert body["email"] == "alicia@x.io"
    assert body["hasErrors"] is False
    assert body["errorMessages"] == []
    assert body["id"] == record.id
    assert repo.get(record.id).first_name == "Alicia"


def test_update_requires_json_object(client, repo):
    record = repo.insert(_record())
    resp = client.put(f"/api/attendees/{record.id}", json=["not", "an", "object"])
    assert resp.status_code == 400


def test_unknown_attendee_is_404(client):
    assert client.get("/api/attendees/nope").status_code == 404
    assert client.put("/api/attendees/nope", json={"firstName": "X"}).status_code == 404
    resp = client.delete("/api/attendees/nope")
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "السجل غير موجود"


def test_get_and_delete_attendee(client, repo):
    record = repo.insert(_record())

    assert client.get(f"/api/attendees/{record.id}").get_json()["userName"] == "alice42"

    resp = client.delete(f"/api/attendees/{record.id}")
    assert resp.status_code == 200
    assert resp.get_json()["message"] == "تم حذف السجل بنجاح"
    assert repo.get(record.id) is None


def test_list_filters_by_status_and_search(client, repo):
    repo.insert(_record(email="v@x.io", firstName="Valid"))
    repo.insert(_record(email="e@x.io", firstName="Broken", errorMessages=["bad"]))

    errors = client.get("/api/attendees?status=error").get_json()
    assert [a["firstName"] for a in errors] == ["Broken"]

    found = client.get("/api/attendees?search=VALID&status=error").get_json()
    assert [a["firstName"] for a in found] == ["Valid"]

    resp = client.get("/api/attendees?status=weird")
    assert resp.status_code == 400


def test_statistics_overlapping_and_exclusive(client, repo):
    repo.insert(_record(email="v@x.io"))
    repo.insert(_record(email="d@x.io", duplicateGroup="duplicate-group-1"))
    repo.insert(_record(email="d@x.io", duplicateGroup="duplicate-group-1", errorMessages=["bad"]))

    overlapping = client.get("/api/statistics").get_json()
    assert overlapping == {
        "totalRecords": 3,
        "validRecords": 1,
        "duplicateRecords": 2,
        "errorRecords": 1,
    }

    exclusive = client.get("/api/statistics?mode=exclusive").get_json()
    assert exclusive == {
        "totalRecords": 3,
        "validRecords": 1,
        "duplicateRecords": 1,
        "errorRecords": 1,
    }


def test_export_contains_only_valid_rows(client, repo):
    repo.insert(_record(email="one@x.io", country="Egypt"))
    repo.insert(_record(email="two@x.io"))
    repo.insert(_record(email="bad", errorMessages=["البريد الإلكتروني غير صحيح"]))

    resp = client.get("/api/export-excel")

    assert resp.status_code == 200
    assert "webinar_attendees_cleaned.xlsx" in resp.headers["Content-Disposition"]
    workbook = load_workbook(BytesIO(resp.data))
    sheet = workbook[EXPORT_SHEET]
    rows = list(sheet.iter_rows(values_only=True))
    assert len(rows) == 3
    assert rows[0][0] == "حضر"
    assert {row[4] for row in rows[1:]} == {"one@x.io", "two@x.io"}


def test_files_endpoints(client, repo, report_xlsx, attendee_cells):
    file_id = _upload(client, report_xlsx([attendee_cells()])).get_json()["fileId"]

    files = client.get("/api/files").get_json()
    assert [f["id"] for f in files] == [file_id]
    assert files[0]["fileName"] == "report.xlsx"
    assert files[0]["totalRecords"] == 1

    assert client.get(f"/api/files/{file_id}").get_json()["validRecords"] == 1
    assert client.get("/api/files/missing").status_code == 404

    resp = client.delete(f"/api/files/{file_id}")
    assert resp.status_code == 200
    assert repo.all() == []


def test_health_and_unknown_route(client):
    assert client.get("/health").get_json() == {"status": "ok", "storage": "ok (memory)"}

    resp = client.get("/api/does-not-exist")
    assert resp.status_code == 404
    assert resp.get_json()["status"] == "error"


def test_email_edit_leaves_duplicate_group(client, repo):
    first = repo.insert(_record(duplicateGroup="duplicate-group-1"))
    second = repo.insert(_record(duplicateGroup="duplicate-group-1"))

    resp = client.put(f"/api/attendees/{first.id}", json={"email": "alice.new@x.io"})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["isDuplicate"] is False
    assert body["duplicateGroup"] is None
    # a group needs two members sharing an email
    assert repo.get(second.id).duplicate_group is None
    assert repo.by_status("duplicate") == []


def test_edit_keeping_email_keeps_duplicate_group(client, repo):
    first = repo.insert(_record(duplicateGroup="duplicate-group-1"))
    repo.insert(_record(duplicateGroup="duplicate-group-1"))

    body = client.put(
        f"/api/attendees/{first.id}", json={"firstName": "Ali", "email": "ALICE@X.IO"}
    ).get_json()

    assert body["duplicateGroup"] == "duplicate-group-1"
    assert len(repo.by_status("duplicate")) == 2


def test_larger_group_survives_one_member_leaving(client, repo):
    records = [repo.insert(_record(duplicateGroup="duplicate-group-1")) for _ in range(3)]

    resp = client.put(f"/api/attendees/{records[0].id}", json={"email": "other@x.io"})

    assert resp.status_code == 200
    assert {r.id for r in repo.by_status("duplicate")} == {records[1].id, records[2].id}


def test_deleting_a_pair_member_dissolves_the_group(client, repo):
    first = repo.insert(_record(duplicateGroup="duplicate-group-1"))
    second = repo.insert(_record(duplicateGroup="duplicate-group-1"))

    assert client.delete(f"/api/attendees/{first.id}").status_code == 200

    remaining = repo.get(second.id)
    assert remaining.is_duplicate is False
    assert remaining.duplicate_group is None
