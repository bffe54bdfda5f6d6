"""HTTP tests for complaint intake, listings, transitions, and deletion."""

from __future__ import annotations

import io
import os


class TestAccessControl:
    def test_create_requires_token(self, client, complaint_payload):
        response = client.post("/api/complaints", json=complaint_payload)
        assert response.status_code == 401
        body = response.get_json()
        assert body["success"] is False
        assert body["message"] == "Access denied. Token not provided."

    def test_malformed_header(self, client, complaint_payload):
        response = client.post(
            "/api/complaints", json=complaint_payload, headers={"Authorization": "Token abc"}
        )
        assert response.status_code == 401
        assert "Bearer" in response.get_json()["message"]

    def test_invalid_token(self, client, complaint_payload):
        response = client.post(
            "/api/complaints", json=complaint_payload, headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.get_json()["message"] == "Invalid or expired token"

    def test_authority_cannot_create(self, client, authority, complaint_payload):
        response = client.post("/api/complaints", json=complaint_payload, headers=authority["headers"])
        assert response.status_code == 403
        assert response.get_json()["message"] == "Access denied. Citizens only."

    def test_citizen_cannot_change_state(self, client, citizen, create_complaint):
        complaint = create_complaint(citizen)
        response = client.put(
            f"/api/complaints/{complaint['id']}/estado",
            json={"estado": "resolved"},
            headers=citizen["headers"],
        )
        assert response.status_code == 403
        assert response.get_json()["message"] == "Access denied. Authorities only."

    def test_public_reads_need_no_token(self, client, citizen, create_complaint):
        create_complaint(citizen)
        response = client.get("/api/complaints")
        assert response.status_code == 200
        assert response.get_json()["count"] == 1


class TestCreate:
    def test_create_without_coordinates(self, client, citizen, complaint_payload):
        response = client.post("/api/complaints", json=complaint_payload, headers=citizen["headers"])

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["state"] == "pending"
        assert data["submitter_id"] == citizen["id"]
        assert data["latitude"] is None and data["longitude"] is None

    def test_create_with_coordinates(self, client, citizen, complaint_payload):
        payload = {**complaint_payload, "latitude": "4.6097", "longitude": "-74.0817"}
        response = client.post("/api/complaints", json=payload, headers=citizen["headers"])

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["latitude"] == 4.6097
        assert data["longitude"] == -74.0817

    def test_single_coordinate_is_rejected(self, client, citizen, complaint_payload):
        payload = {**complaint_payload, "latitude": "4.6097"}
        response = client.post("/api/complaints", json=payload, headers=citizen["headers"])

        assert response.status_code == 400
        body = response.get_json()
        assert body["errors"][0]["field"] == "coordinates"
        assert client.get("/api/complaints").get_json()["count"] == 0

    def test_missing_fields(self, client, citizen):
        response = client.post("/api/complaints", json={"title": "Hole"}, headers=citizen["headers"])

        assert response.status_code == 400
        fields = {e["field"] for e in response.get_json()["errors"]}
        assert {"description", "category", "address"} <= fields

    def test_unknown_category(self, client, citizen, complaint_payload):
        payload = {**complaint_payload, "category": "graffiti"}
        response = client.post("/api/complaints", json=payload, headers=citizen["headers"])
        assert response.status_code == 400
        assert response.get_json()["errors"][0]["field"] == "category"

    def test_photo_upload(self, app, client, citizen, complaint_payload, png_bytes):
        data = {**complaint_payload, "photo": (io.BytesIO(png_bytes), "street.png")}
        response = client.post(
            "/api/complaints",
            data=data,
            headers=citizen["headers"],
            content_type="multipart/form-data",
        )

        assert response.status_code == 201
        photo_url = response.get_json()["data"]["photo_url"]
        assert photo_url.startswith("/uploads/denuncia-") and photo_url.endswith(".png")
        stored = os.path.join(app.config["UPLOAD_FOLDER"], os.path.basename(photo_url))
        assert os.path.exists(stored)

        served = client.get(photo_url)
        assert served.status_code == 200
        assert served.data == png_bytes

    def test_fake_photo_is_rejected(self, client, citizen, complaint_payload):
        data = {**complaint_payload, "photo": (io.BytesIO(b"not an image"), "street.png")}
        response = client.post(
            "/api/complaints",
            data=data,
            headers=citizen["headers"],
            content_type="multipart/form-data",
        )

        assert response.status_code == 400
        assert response.get_json()["errors"][0]["field"] == "photo"
        assert client.get("/api/complaints").get_json()["count"] == 0

    def test_disallowed_extension(self, client, citizen, complaint_payload, png_bytes):
        data = {**complaint_payload, "photo": (io.BytesIO(png_bytes), "street.exe")}
        response = client.post(
            "/api/complaints",
            data=data,
            headers=citizen["headers"],
            content_type="multipart/form-data",
        )
        assert response.status_code == 400


class TestListings:
    def test_get_by_id_includes_follow_ups(self, client, citizen, authority, create_complaint):
        complaint = create_complaint(citizen)
        client.put(
            f"/api/complaints/{complaint['id']}/estado",
            json={"estado": "in_progress", "comentario": "Crew dispatched"},
            headers=authority["headers"],
        )

        response = client.get(f"/api/complaints/{complaint['id']}")

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["state"] == "in_progress"
        assert data["seguimiento"][0]["comment"] == "Crew dispatched"

    def test_unknown_id(self, client):
        response = client.get("/api/complaints/does-not-exist")
        assert response.status_code == 404
        assert response.get_json()["message"] == "Complaint not found"

    def test_filters(self, client, citizen, create_complaint):
        create_complaint(citizen, category="water")
        create_complaint(citizen, category="trash")

        by_category = client.get("/api/complaints/categoria/water").get_json()
        assert by_category["count"] == 1
        assert by_category["data"][0]["category"] == "water"

        by_state = client.get("/api/complaints/estado/pending").get_json()
        assert by_state["count"] == 2

        assert client.get("/api/complaints/estado/closed").status_code == 400
        assert client.get("/api/complaints/categoria/graffiti").status_code == 400

    def test_search_minimum_length(self, client, citizen, create_complaint):
        create_complaint(citizen)

        assert client.get("/api/complaints/search?q=po").status_code == 400
        response = client.get("/api/complaints/search?q=pot")
        assert response.status_code == 200
        assert response.get_json()["count"] == 1

    def test_my_complaints_only_lists_own(self, client, citizen, other_citizen, create_complaint):
        create_complaint(citizen)
        create_complaint(other_citizen)

        response = client.get("/api/complaints/usuario/mis-denuncias", headers=citizen["headers"])

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert [c["submitter_id"] for c in data] == [citizen["id"]]


class TestStateChange:
    def test_transition_records_follow_up(self, client, citizen, authority, create_complaint):
        complaint = create_complaint(citizen)

        response = client.put(
            f"/api/complaints/{complaint['id']}/estado",
            json={"estado": "resolved", "comentario": "Fixed"},
            headers=authority["headers"],
        )

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["state"] == "resolved"
        assert len(data["follow_ups"]) == 1
        entry = data["follow_ups"][0]
        assert (entry["state_before"], entry["state_after"]) == ("pending", "resolved")
        assert entry["authority_id"] == authority["id"]

        history = client.get(f"/api/complaints/{complaint['id']}/seguimiento").get_json()
        assert history["count"] == 1

    def test_patch_is_accepted(self, client, citizen, authority, create_complaint):
        complaint = create_complaint(citizen)
        response = client.patch(
            f"/api/complaints/{complaint['id']}/estado",
            json={"estado": "in_progress"},
            headers=authority["headers"],
        )
        assert response.status_code == 200

    def test_invalid_state(self, client, citizen, authority, create_complaint):
        complaint = create_complaint(citizen)
        response = client.put(
            f"/api/complaints/{complaint['id']}/estado",
            json={"estado": "closed"},
            headers=authority["headers"],
        )

        assert response.status_code == 400
        assert client.get(f"/api/complaints/{complaint['id']}/seguimiento").get_json()["count"] == 0

    def test_overlong_comment(self, client, citizen, authority, create_complaint):
        complaint = create_complaint(citizen)
        response = client.put(
            f"/api/complaints/{complaint['id']}/estado",
            json={"estado": "resolved", "comentario": "x" * 501},
            headers=authority["headers"],
        )
        assert response.status_code == 400

    def test_unknown_complaint(self, client, authority):
        response = client.put(
            "/api/complaints/does-not-exist/estado",
            json={"estado": "resolved"},
            headers=authority["headers"],
        )
        assert response.status_code == 404


class TestDelete:
    def test_other_citizen_cannot_delete(self, client, citizen, other_citizen, create_complaint):
        complaint = create_complaint(citizen)

        response = client.delete(f"/api/complaints/{complaint['id']}", headers=other_citizen["headers"])

        assert response.status_code == 404
        assert response.get_json()["message"] == (
            "Complaint not found or you do not have permission to delete it"
        )
        assert client.get(f"/api/complaints/{complaint['id']}").status_code == 200

    def test_owner_delete_cascades(self, client, citizen, authority, create_complaint):
        complaint = create_complaint(citizen)
        client.put(
            f"/api/complaints/{complaint['id']}/estado",
            json={"estado": "in_progress"},
            headers=authority["headers"],
        )

        response = client.delete(f"/api/complaints/{complaint['id']}", headers=citizen["headers"])

        assert response.status_code == 200
        assert client.get(f"/api/complaints/{complaint['id']}").status_code == 404
        assert client.get(f"/api/complaints/{complaint['id']}/seguimiento").status_code == 404
        history = client.get("/api/statistics/historial", headers=authority["headers"]).get_json()
        assert history["count"] == 0

    def test_delete_removes_photo(self, app, client, citizen, complaint_payload, png_bytes):
        data = {**complaint_payload, "photo": (io.BytesIO(png_bytes), "street.png")}
        created = client.post(
            "/api/complaints",
            data=data,
            headers=citizen["headers"],
            content_type="multipart/form-data",
        ).get_json()["data"]
        stored = os.path.join(app.config["UPLOAD_FOLDER"], os.path.basename(created["photo_url"]))

        client.delete(f"/api/complaints/{created['id']}", headers=citizen["headers"])

        assert not os.path.exists(stored)


class TestMalformedInput:
    def test_numeric_title_is_a_field_error(self, client, citizen, complaint_payload):
        response = client.post(
            "/api/complaints", json={**complaint_payload, "title": 12345}, headers=citizen["headers"]
        )

        assert response.status_code == 400
        errors = response.get_json()["errors"]
        assert errors == [{"field": "title", "message": "Must be a string"}]

    def test_object_description_is_a_field_error(self, client, citizen, complaint_payload):
        response = client.post(
            "/api/complaints",
            json={**complaint_payload, "description": {"text": "nested"}},
            headers=citizen["headers"],
        )

        assert response.status_code == 400
        assert response.get_json()["errors"][0]["field"] == "description"

    def test_array_body_is_rejected(self, client, citizen):
        response = client.post("/api/complaints", json=[1, 2], headers=citizen["headers"])

        assert response.status_code == 400
        assert response.get_json()["message"] == "Request body must be a JSON object"

    def test_numeric_state_is_a_field_error(self, client, citizen, authority, create_complaint):
        complaint = create_complaint(citizen)

        response = client.put(
            f"/api/complaints/{complaint['id']}/estado", json={"estado": 3}, headers=authority["headers"]
        )

        assert response.status_code == 400
        assert response.get_json()["errors"][0]["field"] == "estado"

    def test_numeric_coordinates_are_accepted(self, client, citizen, complaint_payload):
        response = client.post(
            "/api/complaints",
            json={**complaint_payload, "latitude": 4.6, "longitude": -74.08},
            headers=citizen["headers"],
        )

        assert response.status_code == 201
