# =============================================================================
# CLINICS API TESTS
# =============================================================================

import pytest
from sqlalchemy import select

from core.models.users import Role
from core.models.clinics import UserClinic
from modules.routes import clinic as clinic_routes


def clinic_payload(name: str = "Central", phone: str = "+1 555 0100", **extra):
    payload = {"name": name, "phone": phone, "address": f"{name} street 1", "email": f"{name.lower()}@clinic.com"}
    payload.update(extra)
    return payload


async def member_ids(session_factory, clinic_id: int):
    async with session_factory() as session:
        result = await session.execute(
            select(UserClinic.user_id).where(UserClinic.clinic_id == clinic_id).order_by(UserClinic.user_id)
        )
        return list(result.scalars().all())


class TestCreateClinic:

    @pytest.mark.asyncio
    async def test_create_returns_clinic(self, client, superadmin_headers):
        response = await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Central"
        assert body["isActive"] is True
        assert body["deletedAt"] is None
        assert body["email"] == "central@clinic.com"

    @pytest.mark.asyncio
    async def test_create_links_every_superadmin(
        self, client, superadmin, superadmin_headers, make_user, doctor, session_factory
    ):
        other = await make_user("second-root@example.com", Role.SUPERADMIN)

        response = await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())

        assert await member_ids(session_factory, response.json()["id"]) == sorted([superadmin.id, other.id])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field,value,message", [
        ("name", "Central", "Clinic name already exists"),
        ("address", "Central street 1", "Clinic address already exists"),
        ("phone", "+1 555 0100", "Clinic phone number already exists"),
        ("email", "central@clinic.com", "Clinic email already exists"),
    ])
    async def test_duplicate_fields(self, client, superadmin_headers, field, value, message):
        await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())

        duplicate = clinic_payload("Other", "+1 555 0199")
        duplicate[field] = value
        response = await client.post("/clinics", headers=superadmin_headers, json=duplicate)

        assert response.status_code == 400
        assert response.json()["detail"] == message

    @pytest.mark.asyncio
    async def test_name_is_reported_before_phone(self, client, superadmin_headers):
        await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())

        response = await client.post(
            "/clinics", headers=superadmin_headers,
            json={"name": "Central", "phone": "+1 555 0100"},
        )
        assert response.json()["detail"] == "Clinic name already exists"

    @pytest.mark.asyncio
    async def test_manager_cannot_create(self, client, manager_headers):
        response = await client.post("/clinics", headers=manager_headers, json=clinic_payload())
        assert response.status_code == 403
        assert response.json()["detail"] == "Forbidden resource"

    @pytest.mark.asyncio
    async def test_missing_phone_is_422(self, client, superadmin_headers):
        response = await client.post("/clinics", headers=superadmin_headers, json={"name": "No phone"})
        assert response.status_code == 422


class TestReadClinics:

    @pytest.mark.asyncio
    async def test_list_is_paged(self, client, superadmin_headers, make_clinic):
        for index in range(3):
            await make_clinic(f"Clinic {index}", f"10{index}")

        response = await client.get("/clinics", headers=superadmin_headers, params={"limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 3
        assert [c["name"] for c in body["clinics"]] == ["Clinic 0", "Clinic 1"]

    @pytest.mark.asyncio
    async def test_any_role_can_read_one(self, client, user_headers, make_clinic):
        clinic = await make_clinic("Visible", "100")

        response = await client.get(f"/clinics/{clinic.id}", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["name"] == "Visible"

    @pytest.mark.asyncio
    async def test_read_requires_token(self, client, make_clinic):
        clinic = await make_clinic("Hidden", "100")
        response = await client.get(f"/clinics/{clinic.id}")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_read_missing(self, client, superadmin_headers):
        response = await client.get("/clinics/999", headers=superadmin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Clinic not found"


class TestUpdateClinic:

    @pytest.mark.asyncio
    async def test_update_keeps_own_values(self, client, superadmin_headers):
        created = (await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())).json()

        response = await client.patch(
            f"/clinics/{created['id']}",
            headers=superadmin_headers,
            json={"name": "Central", "manager": "Dr. House"},
        )
        assert response.status_code == 200
        assert response.json()["manager"] == "Dr. House"

    @pytest.mark.asyncio
    async def test_update_to_taken_name(self, client, superadmin_headers, make_clinic):
        await make_clinic("Taken", "100")
        created = (await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())).json()

        response = await client.patch(
            f"/clinics/{created['id']}", headers=superadmin_headers, json={"name": "Taken"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Clinic name already exists"

    @pytest.mark.asyncio
    async def test_reactivation_clears_deletion_and_relinks_superadmins(
        self, client, superadmin, superadmin_headers, make_user, session_factory
    ):
        created = (await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())).json()
        await client.put(f"/clinics/{created['id']}", headers=superadmin_headers)
        second = await make_user("second-root@example.com", Role.SUPERADMIN)

        response = await client.patch(
            f"/clinics/{created['id']}", headers=superadmin_headers, json={"isActive": True}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["isActive"] is True
        assert body["deletedAt"] is None
        assert await member_ids(session_factory, created["id"]) == sorted([superadmin.id, second.id])

    @pytest.mark.asyncio
    async def test_update_race_reports_taken_email(self, client, superadmin_headers, skip_first_check):
        await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())
        other = (await client.post(
            "/clinics", headers=superadmin_headers, json=clinic_payload("Other", "+1 555 0199")
        )).json()
        skip_first_check(clinic_routes, "ensure_clinic_unique")

        response = await client.patch(
            f"/clinics/{other['id']}", headers=superadmin_headers, json={"email": "central@clinic.com"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Clinic email already exists"


class TestDeleteClinic:

    @pytest.mark.asyncio
    async def test_soft_delete(self, client, superadmin_headers, superadmin):
        created = (await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())).json()

        response = await client.put(f"/clinics/{created['id']}", headers=superadmin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Clinic deactivated successfully"

        clinic = (await client.get(f"/clinics/{created['id']}", headers=superadmin_headers)).json()
        assert clinic["isActive"] is False
        assert clinic["deletedAt"] is not None

        payload = (await client.get("/auth/current-user-payload", headers=superadmin_headers)).json()
        assert payload["userClinics"] == []

    @pytest.mark.asyncio
    async def test_hard_delete_removes_links(self, client, superadmin_headers, session_factory):
        created = (await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())).json()

        response = await client.delete(f"/clinics/{created['id']}", headers=superadmin_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Clinic deleted successfully"
        assert await member_ids(session_factory, created["id"]) == []

        missing = await client.get(f"/clinics/{created['id']}", headers=superadmin_headers)
        assert missing.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_missing(self, client, superadmin_headers):
        response = await client.delete("/clinics/999", headers=superadmin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Clinic not found"


class TestClinicMembers:

    @pytest.mark.asyncio
    async def test_add_list_and_remove_member(self, client, superadmin, superadmin_headers, doctor):
        clinic = (await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())).json()

        added = await client.post(
            f"/clinics/{clinic['id']}/users", headers=superadmin_headers, json={"userId": doctor.id}
        )
        assert added.status_code == 201
        assert added.json()["message"] == "User associated with clinic"

        again = await client.post(
            f"/clinics/{clinic['id']}/users", headers=superadmin_headers, json={"userId": doctor.id}
        )
        assert again.json()["message"] == "User already associated with clinic"

        members = await client.get(f"/clinics/{clinic['id']}/users", headers=superadmin_headers)
        assert [m["id"] for m in members.json()] == [superadmin.id, doctor.id]

        removed = await client.delete(f"/clinics/{clinic['id']}/users/{doctor.id}", headers=superadmin_headers)
        assert removed.status_code == 200

        members = await client.get(f"/clinics/{clinic['id']}/users", headers=superadmin_headers)
        assert [m["id"] for m in members.json()] == [superadmin.id]

    @pytest.mark.asyncio
    async def test_superadmin_cannot_be_unlinked(self, client, superadmin, superadmin_headers):
        clinic = (await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())).json()

        response = await client.delete(
            f"/clinics/{clinic['id']}/users/{superadmin.id}", headers=superadmin_headers
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Superadmins cannot be removed from clinics"

    @pytest.mark.asyncio
    async def test_remove_non_member(self, client, superadmin_headers, doctor):
        clinic = (await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())).json()

        response = await client.delete(f"/clinics/{clinic['id']}/users/{doctor.id}", headers=superadmin_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "User is not associated with this clinic"

    @pytest.mark.asyncio
    async def test_add_unknown_user(self, client, superadmin_headers):
        clinic = (await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())).json()

        response = await client.post(
            f"/clinics/{clinic['id']}/users", headers=superadmin_headers, json={"userId": 999}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "User not found"

    @pytest.mark.asyncio
    async def test_manager_can_list_members(self, client, manager_headers, make_clinic):
        clinic = await make_clinic("Listed", "100")
        response = await client.get(f"/clinics/{clinic.id}/users", headers=manager_headers)
        assert response.status_code == 200
        assert response.json() == []


class TestClinicWriteFailures:

    @pytest.mark.asyncio
    async def test_create_race_reports_taken_email(self, client, superadmin_headers, skip_first_check):
        await client.post("/clinics", headers=superadmin_headers, json=clinic_payload())
        skip_first_check(clinic_routes, "ensure_clinic_unique")

        response = await client.post(
            "/clinics", headers=superadmin_headers,
            json=clinic_payload("Other", "+1 555 0199", email="central@clinic.com"),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Clinic email already exists"

    @pytest.mark.asyncio
    async def test_soft_delete_commit_failure_is_500(self, client, superadmin_headers, make_clinic, break_commits):
        clinic = await make_clinic("Fragile", "100")
        break_commits()

        response = await client.put(f"/clinics/{clinic.id}", headers=superadmin_headers)
        assert response.status_code == 500
        assert response.json()["detail"] == "Database error"

    @pytest.mark.asyncio
    async def test_add_member_commit_failure_is_500(
        self, client, superadmin_headers, doctor, make_clinic, break_commits, session_factory
    ):
        clinic = await make_clinic("Fragile", "100")
        break_commits()

        response = await client.post(
            f"/clinics/{clinic.id}/users", headers=superadmin_headers, json={"userId": doctor.id}
        )
        assert response.status_code == 500
        assert await member_ids(session_factory, clinic.id) == []

    @pytest.mark.asyncio
    async def test_remove_member_commit_failure_is_500(
        self, client, superadmin_headers, doctor, make_clinic, break_commits, session_factory
    ):
        clinic = await make_clinic("Fragile", "100")
        await client.post(f"/clinics/{clinic.id}/users", headers=superadmin_headers, json={"userId": doctor.id})
        break_commits()

        response = await client.delete(f"/clinics/{clinic.id}/users/{doctor.id}", headers=superadmin_headers)
        assert response.status_code == 500
        assert await member_ids(session_factory, clinic.id) == [doctor.id]
