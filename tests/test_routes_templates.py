"""Tests for time template and closure routes."""

import pytest

from conftest import ADMIN, GUARDIAN, OTHER_ADMIN, SUPER_ADMIN

TUESDAY = "2030-01-08"
WEDNESDAY = "2030-01-09"


def tuesday_template(**overrides):
    body = {"hospitalId": "hosp-1", "dayOfWeek": 2, "startTime": "10:00", "endTime": "11:00"}
    body.update(overrides)
    return body


def slots_on(client, day):
    return client.get(
        "/appointments/available-slots",
        params={"hospitalId": "hosp-1", "date": day},
        headers=GUARDIAN,
    ).json()


class TestTimeTemplates:
    """/appointments/time-slots"""

    def test_create_opens_the_day(self, client):
        assert slots_on(client, TUESDAY)["slots"] == []

        response = client.post("/appointments/time-slots", json=tuesday_template(), headers=ADMIN)

        assert response.status_code == 201
        data = response.json()
        assert data["slotDuration"] == 30
        assert data["maxConcurrent"] == 1
        assert data["isActive"] is True
        assert [s["startTime"] for s in slots_on(client, TUESDAY)["slots"]] == ["10:00", "10:30"]

    def test_duplicate_start_is_rejected(self, client):
        client.post("/appointments/time-slots", json=tuesday_template(), headers=ADMIN)

        response = client.post(
            "/appointments/time-slots", json=tuesday_template(endTime="12:00"), headers=ADMIN
        )

        assert response.status_code == 400

    @pytest.mark.parametrize(
        "overrides",
        [
            {"startTime": "11:00", "endTime": "10:00"},
            {"startTime": "10:00", "endTime": "10:00"},
            {"dayOfWeek": 7},
            {"slotDuration": 5},
            {"maxConcurrent": 11},
            {"startTime": "10am"},
        ],
    )
    def test_invalid_template(self, client, overrides):
        response = client.post("/appointments/time-slots", json=tuesday_template(**overrides), headers=ADMIN)
        assert response.status_code == 422

    @pytest.mark.parametrize("headers", [GUARDIAN, OTHER_ADMIN])
    def test_only_hospital_admins_manage(self, client, headers):
        response = client.post("/appointments/time-slots", json=tuesday_template(), headers=headers)
        assert response.status_code == 403

    def test_super_admin_manages_any_hospital(self, client):
        response = client.post("/appointments/time-slots", json=tuesday_template(), headers=SUPER_ADMIN)
        assert response.status_code == 201

    def test_list_is_ordered(self, client):
        response = client.get("/appointments/time-slots/hosp-1", headers=GUARDIAN)

        assert response.status_code == 200
        assert [(t["dayOfWeek"], t["startTime"]) for t in response.json()] == [
            (1, "09:00"), (1, "13:00"), (3, "09:00"),
        ]

    def test_update_capacity(self, client):
        template_id = client.post("/appointments/time-slots", json=tuesday_template(), headers=ADMIN).json()["id"]

        response = client.put(f"/appointments/time-slots/{template_id}", json={"maxConcurrent": 3}, headers=ADMIN)

        assert response.status_code == 200
        assert response.json()["maxConcurrent"] == 3
        assert slots_on(client, TUESDAY)["slots"][0]["remainingSlots"] == 3

    def test_update_rejects_inverted_range(self, client):
        template_id = client.post("/appointments/time-slots", json=tuesday_template(), headers=ADMIN).json()["id"]

        response = client.put(f"/appointments/time-slots/{template_id}", json={"endTime": "09:00"}, headers=ADMIN)

        assert response.status_code == 400

    def test_delete_disables(self, client):
        template_id = client.post("/appointments/time-slots", json=tuesday_template(), headers=ADMIN).json()["id"]

        response = client.delete(f"/appointments/time-slots/{template_id}", headers=ADMIN)

        assert response.status_code == 200
        listed = {t["id"]: t for t in client.get("/appointments/time-slots/hosp-1", headers=ADMIN).json()}
        assert listed[template_id]["isActive"] is False
        assert slots_on(client, TUESDAY)["slots"] == []

    def test_disabled_template_frees_start_time(self, client):
        template_id = client.post("/appointments/time-slots", json=tuesday_template(), headers=ADMIN).json()["id"]
        client.delete(f"/appointments/time-slots/{template_id}", headers=ADMIN)

        response = client.post("/appointments/time-slots", json=tuesday_template(), headers=ADMIN)

        assert response.status_code == 201

    def test_unknown_template(self, client):
        assert client.delete("/appointments/time-slots/missing", headers=ADMIN).status_code == 404


class TestClosures:
    """/appointments/holidays"""

    def test_closure_blocks_bookings(self, client):
        response = client.post(
            "/appointments/holidays",
            json={"hospitalId": "hosp-1", "date": WEDNESDAY, "reason": "Inventory day"},
            headers=ADMIN,
        )
        assert response.status_code == 201

        availability = slots_on(client, WEDNESDAY)
        assert availability["isHoliday"] is True
        assert availability["holidayReason"] == "Inventory day"
        assert availability["slots"] == []

        booking = client.post(
            "/appointments",
            json={"hospitalId": "hosp-1", "animalId": "animal-1",
                  "appointmentDate": WEDNESDAY, "startTime": "09:00"},
            headers=GUARDIAN,
        )
        assert booking.status_code == 400

    def test_list_by_year_keeps_recurring(self, client):
        client.post("/appointments/holidays",
                    json={"hospitalId": "hosp-1", "date": "2020-01-01", "isRecurring": True}, headers=ADMIN)
        client.post("/appointments/holidays",
                    json={"hospitalId": "hosp-1", "date": "2030-05-05"}, headers=ADMIN)
        client.post("/appointments/holidays",
                    json={"hospitalId": "hosp-1", "date": "2031-05-05"}, headers=ADMIN)

        response = client.get("/appointments/holidays/hosp-1", params={"year": 2030}, headers=GUARDIAN)

        assert response.status_code == 200
        assert [(c["date"], c["isRecurring"]) for c in response.json()] == [
            ("2020-01-01", True), ("2030-05-05", False),
        ]

    def test_delete_reopens_day(self, client):
        closure_id = client.post(
            "/appointments/holidays", json={"hospitalId": "hosp-1", "date": WEDNESDAY}, headers=ADMIN
        ).json()["id"]

        response = client.delete(f"/appointments/holidays/{closure_id}", headers=ADMIN)

        assert response.status_code == 200
        assert slots_on(client, WEDNESDAY)["isHoliday"] is False
        assert client.delete(f"/appointments/holidays/{closure_id}", headers=ADMIN).status_code == 404

    def test_guardian_cannot_create(self, client):
        response = client.post(
            "/appointments/holidays", json={"hospitalId": "hosp-1", "date": WEDNESDAY}, headers=GUARDIAN
        )
        assert response.status_code == 403
