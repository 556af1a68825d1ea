"""
HTTP contract tests for the audit API
"""
import pytest

OTHER_USER = {"X-User-Id": "99"}


async def create_audit(client, **fields):
    body = {"customerFirstName": "Marie", "customerLastName": "Belanger", "customerCity": "Moncton", **fields}
    response = await client.post("/api/audits", json=body)
    assert response.status_code == 201
    return response.json()


def assert_error(response, status_code, error_type):
    assert response.status_code == status_code
    data = response.json()
    assert data["error"]["type"] == error_type
    assert data["error"]["message"]


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_missing_user_header_is_unauthorized(client):
    response = await client.get("/api/audits", headers={"X-User-Id": ""})
    assert response.status_code == 401


async def test_create_and_get_audit(client):
    created = await create_audit(client)
    assert created["status"] == "draft"
    assert created["customerFirstName"] == "Marie"
    assert [floor["id"] for floor in created["wallsInfo"]["floors"]] == ["basement", "main"]

    response = await client.get(f"/api/audits/{created['id']}")
    assert response.status_code == 200
    assert response.json()["customerLastName"] == "Belanger"


async def test_other_users_audit_is_not_found(client):
    created = await create_audit(client)
    response = await client.get(f"/api/audits/{created['id']}", headers=OTHER_USER)
    assert_error(response, 404, "NotFoundError")


async def test_list_search_and_status_filter(client):
    first = await create_audit(client)
    await create_audit(client, customerFirstName="Paul", customerLastName="Leblanc", customerCity="Dieppe")
    await client.put(f"/api/audits/{first['id']}/sections/houseInfo", json={"yearBuilt": "1970"})

    response = await client.get("/api/audits", params={"search": "dieppe"})
    data = response.json()
    assert data["total"] == 1
    assert data["audits"][0]["customerFirstName"] == "Paul"

    response = await client.get("/api/audits", params={"status": "in_progress"})
    assert [audit["id"] for audit in response.json()["audits"]] == [first["id"]]

    response = await client.get("/api/audits", params={"status": "all"})
    assert response.json()["total"] == 2

    assert_error(await client.get("/api/audits", params={"status": "archived"}), 400, "ValidationError")


async def test_save_section_reconciles_floor_heights(client):
    audit = await create_audit(client)
    floors = [
        {"id": "basement", "name": "Basement", "wallHeightUnit": "ft", "wallHeightFeet": "8", "wallHeightInches": "6"},
        {"id": "main", "name": "Main Floor", "wallHeightUnit": "m"},
    ]

    response = await client.put(f"/api/audits/{audit['id']}/sections/wallsInfo", json={"floors": floors})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "in_progress"
    assert data["data"]["floors"][0]["wallHeight"] == "8.500"


async def test_unknown_section_is_rejected(client):
    audit = await create_audit(client)
    response = await client.put(f"/api/audits/{audit['id']}/sections/garage", json={})
    assert_error(response, 400, "ValidationError")


async def test_patch_scalars(client):
    audit = await create_audit(client)
    response = await client.patch(f"/api/audits/{audit['id']}", json={"customerPhone": "506-555-0101"})
    assert response.status_code == 200
    assert response.json()["customerPhone"] == "506-555-0101"

    response = await client.patch(f"/api/audits/{audit['id']}", json={"status": "completed"})
    assert_error(response, 400, "ValidationError")


async def test_floors(client):
    audit = await create_audit(client)

    response = await client.post(f"/api/audits/{audit['id']}/floors", json={})
    assert response.status_code == 201
    floor = response.json()
    assert floor["name"] == "Second Floor"

    response = await client.delete(f"/api/audits/{audit['id']}/floors/main")
    assert_error(response, 400, "ValidationError")

    response = await client.delete(f"/api/audits/{audit['id']}/floors/{floor['id']}")
    assert response.status_code == 200
    assert [f["id"] for f in response.json()["floors"]] == ["basement", "main"]


async def test_complete_autosave_and_reopen(client):
    audit = await create_audit(client)
    audit_id = audit["id"]

    assert_error(await client.post(f"/api/audits/{audit_id}/complete"), 409, "PreconditionError")

    response = await client.post(f"/api/audits/{audit_id}/complete", json={"depressurizationTest": {"windowLeakage": "no"}})
    assert response.status_code == 200
    assert response.json() == {"id": audit_id, "status": "completed"}

    # Stale client still thinks the audit is in progress
    response = await client.post(
        f"/api/audits/{audit_id}/autosave",
        json={"status": "in_progress", "sections": {"doorsInfo": {"skin": "Steel"}}},
    )
    assert response.json()["status"] == "completed"
    assert (await client.get(f"/api/audits/{audit_id}")).json()["status"] == "completed"

    response = await client.post(f"/api/audits/{audit_id}/reopen")
    assert response.json()["status"] == "in_progress"
    assert_error(await client.post(f"/api/audits/{audit_id}/reopen"), 409, "PreconditionError")


async def test_photo_upload_list_fetch_delete(client, sample_jpeg):
    audit = await create_audit(client)

    response = await client.post(
        f"/api/audits/{audit['id']}/photos",
        data={"category": "exterior"},
        files={"photo": ("front.jpg", sample_jpeg, "image/jpeg")},
    )
    assert response.status_code == 201
    photo = response.json()
    assert photo["category"] == "exterior"
    assert photo["originalName"] == "front.jpg"
    assert photo["url"] == f"/api/photos/{photo['id']}"

    response = await client.get(f"/api/audits/{audit['id']}/photos", params={"category": "exterior"})
    assert [p["id"] for p in response.json()] == [photo["id"]]
    response = await client.get(f"/api/audits/{audit['id']}/photos", params={"category": "hot_water"})
    assert response.json() == []

    response = await client.get(f"/api/photos/{photo['id']}")
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert response.content == sample_jpeg

    assert (await client.get(f"/api/photos/{photo['id']}", headers=OTHER_USER)).status_code == 404

    response = await client.delete(f"/api/photos/{photo['id']}")
    assert response.status_code == 204
    assert_error(await client.get(f"/api/photos/{photo['id']}"), 404, "NotFoundError")


@pytest.mark.parametrize("filename,content_type,status_code,error_type", [
    ("notes.txt", "text/plain", 400, "ValidationError"),
    ("huge.jpg", "image/jpeg", 413, "PayloadTooLargeError"),
])
async def test_rejected_single_upload(client, photos, filename, content_type, status_code, error_type):
    audit = await create_audit(client)
    content = b"x" * (photos.max_bytes + 10) if error_type == "PayloadTooLargeError" else b"hello"

    response = await client.post(
        f"/api/audits/{audit['id']}/photos",
        data={"category": "exterior"},
        files={"photo": (filename, content, content_type)},
    )
    assert_error(response, status_code, error_type)


async def test_batch_upload_reports_per_file_errors(client, sample_jpeg):
    audit = await create_audit(client)

    response = await client.post(
        f"/api/audits/{audit['id']}/photos",
        data={"category": "renewables"},
        files=[
            ("photo", ("panels.jpg", sample_jpeg, "image/jpeg")),
            ("photo", ("notes.txt", b"hello", "text/plain")),
        ],
    )

    assert response.status_code == 201
    data = response.json()
    assert [p["originalName"] for p in data["uploaded"]] == ["panels.jpg"]
    assert [e["originalName"] for e in data["errors"]] == ["notes.txt"]


async def test_hot2000_export(client):
    audit = await create_audit(client)
    await client.put(f"/api/audits/{audit['id']}/sections/wallsInfo", json={"cavityInsulation": ["R22", "R24"]})

    response = await client.get(f"/api/audits/{audit['id']}/export/hot2000")

    assert response.status_code == 200
    assert response.headers["content-disposition"] == f'attachment; filename="Belanger_{audit["id"]}.h2k"'
    lines = response.text.split("\n")
    assert "[IDENTIFICATION]" in lines
    assert "HouseName=Marie Belanger Residence" in lines
    assert "CavityInsulation=R22,R24" in lines


async def test_pdf_export(client, sample_jpeg):
    audit = await create_audit(client)
    await client.post(
        f"/api/audits/{audit['id']}/photos",
        data={"category": "exterior"},
        files={"photo": ("front.jpg", sample_jpeg, "image/jpeg")},
    )

    response = await client.get(f"/api/audits/{audit['id']}/export/pdf")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
    assert f"energy_audit_report_{audit['id']}_" in response.headers["content-disposition"]


async def test_export_of_missing_audit(client):
    assert_error(await client.get("/api/audits/missing/export/hot2000"), 404, "NotFoundError")


async def test_delete_audit(client, sample_jpeg):
    audit = await create_audit(client)
    await client.post(
        f"/api/audits/{audit['id']}/photos",
        data={"category": "exterior"},
        files={"photo": ("front.jpg", sample_jpeg, "image/jpeg")},
    )

    assert (await client.delete(f"/api/audits/{audit['id']}", headers=OTHER_USER)).status_code == 404
    assert (await client.delete(f"/api/audits/{audit['id']}")).status_code == 204
    assert (await client.get(f"/api/audits/{audit['id']}")).status_code == 404


async def test_program_summary(client):
    audit = await create_audit(client, auditType="before_upgrade")
    await create_audit(client)
    await client.post(f"/api/audits/{audit['id']}/complete", json={"depressurizationTest": {"otherLeakage": "Attic hatch"}})

    response = await client.get("/api/reports/program-summary")

    assert response.status_code == 200
    data = response.json()
    assert data["totalAudits"] == 2
    assert data["byStatus"] == {"draft": 1, "in_progress": 0, "completed": 1}
    assert data["completionRate"] == 50.0
    assert data["byAuditType"] == {"Before Upgrade": 1}
