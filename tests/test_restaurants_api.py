import io

import pytest
from fastapi import HTTPException, UploadFile

from redrice_platform.api.routes.restaurants import _upload_image
from redrice_platform.db import connect


FORM = {
    "name": "Jay Fai",
    "address": "327 Maha Chai Rd, Bangkok",
    "telephone": "022239384",
    "description": "Crab omelette",
    "facebook": "fb.com/jayfai",
    "instagram": "@jayfai",
    "openTime": "09:00",
    "closeTime": "19:30",
}


def _count_restaurants(cfg):
    with connect(cfg.DB_DSN) as conn:
        return conn.execute("SELECT COUNT(*) AS n FROM restaurants").fetchone()["n"]


class TestCreate:
    def test_image_part_becomes_image_url(self, client, admin_headers, uploader):
        resp = client.post(
            "/restaurants",
            data=FORM,
            files={"image": ("front.jpg", b"\xff\xd8jpegbytes", "image/jpeg")},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["imageUrl"] == "https://images.redrice.test/restaurants/1-front.jpg"
        assert uploader.calls == [(b"\xff\xd8jpegbytes", "front.jpg", "image/jpeg")]
        assert body["openTime"] == "09:00"
        assert body["closeTime"] == "19:30"
        assert body["rating"] is None

        fetched = client.get(f"/restaurants/{body['id']}", headers=admin_headers).json()
        assert fetched["imageUrl"] == body["imageUrl"]

    def test_image_is_optional(self, client, admin_headers, uploader):
        resp = client.post("/restaurants", data=FORM, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json()["imageUrl"] == ""
        assert uploader.calls == []

    def test_numeric_fields(self, client, admin_headers):
        resp = client.post(
            "/restaurants",
            data={**FORM, "rating": "4.5", "commentCount": "12"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["rating"] == 4.5
        assert resp.json()["commentCount"] == 12.0

    def test_invalid_rating(self, client, admin_headers, cfg):
        resp = client.post("/restaurants", data={**FORM, "rating": "great"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid_rating"}
        assert _count_restaurants(cfg) == 0

    @pytest.mark.parametrize("raw", ["inf", "-Infinity", "nan", "1e999"])
    def test_non_finite_rating_is_rejected(self, client, admin_headers, cfg, raw):
        resp = client.post("/restaurants", data={**FORM, "rating": raw}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid_rating"}
        assert _count_restaurants(cfg) == 0

    def test_name_required(self, client, admin_headers, uploader):
        form = {k: v for k, v in FORM.items() if k != "name"}
        resp = client.post(
            "/restaurants",
            data=form,
            files={"image": ("front.jpg", b"jpeg", "image/jpeg")},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "name_blank"}
        # Nothing uploaded for a form we reject.
        assert uploader.calls == []

    def test_disallowed_image_type(self, client, admin_headers):
        resp = client.post(
            "/restaurants",
            data=FORM,
            files={"image": ("payload.exe", b"MZ", "application/octet-stream")},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "image_type_not_allowed"}

    def test_image_too_large(self, client, admin_headers):
        resp = client.post(
            "/restaurants",
            data=FORM,
            files={"image": ("big.png", b"x" * 2048, "image/png")},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "image_too_large"}

    def test_oversized_image_is_read_only_past_the_cap(self, cfg):
        upload = UploadFile(file=io.BytesIO(b"x" * (cfg.MAX_IMAGE_BYTES * 8)), filename="huge.png")
        with pytest.raises(HTTPException) as exc:
            _upload_image(None, cfg, upload)
        assert exc.value.detail == "image_too_large"
        assert upload.file.tell() == cfg.MAX_IMAGE_BYTES + 1

    def test_upload_failure_is_internal_error(self, client, admin_headers, uploader, cfg):
        uploader.fail = True
        resp = client.post(
            "/restaurants",
            data=FORM,
            files={"image": ("front.jpg", b"jpeg", "image/jpeg")},
            headers=admin_headers,
        )
        assert resp.status_code == 500
        assert resp.json() == {"error": "image_upload_failed"}
        assert _count_restaurants(cfg) == 0

    def test_diner_cannot_create(self, client, diner_headers):
        resp = client.post("/restaurants", data=FORM, headers=diner_headers)
        assert resp.status_code == 403


class TestRead:
    def test_list_for_any_signed_in_user(self, client, diner_headers, restaurant):
        resp = client.get("/restaurants", headers=diner_headers)
        assert resp.status_code == 200
        assert [r["id"] for r in resp.json()] == [restaurant["id"]]

    def test_requires_token(self, client, restaurant):
        assert client.get("/restaurants").status_code == 401

    def test_bad_id(self, client, diner_headers):
        resp = client.get("/restaurants/one", headers=diner_headers)
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid_restaurant_id"}


class TestUpdate:
    def test_partial_update_keeps_existing_values(self, client, admin_headers, restaurant):
        resp = client.put(
            f"/restaurants/{restaurant['id']}",
            data={"description": "Isan food", "rating": "4"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["description"] == "Isan food"
        assert body["rating"] == 4.0
        assert body["name"] == restaurant["name"]
        assert body["openTime"] == restaurant["openTime"]

    def test_update_without_image_keeps_url(self, client, admin_headers, uploader):
        created = client.post(
            "/restaurants",
            data=FORM,
            files={"image": ("a.png", b"png", "image/png")},
            headers=admin_headers,
        ).json()
        resp = client.put(f"/restaurants/{created['id']}", data={"name": "Jay Fai 2"}, headers=admin_headers)
        assert resp.json()["imageUrl"] == created["imageUrl"]

    def test_update_with_image_replaces_url(self, client, admin_headers, restaurant, uploader):
        resp = client.put(
            f"/restaurants/{restaurant['id']}",
            files={"image": ("new.webp", b"webp", "image/webp")},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["imageUrl"].endswith("new.webp")

    def test_invalid_comment_count(self, client, admin_headers, restaurant):
        resp = client.put(
            f"/restaurants/{restaurant['id']}",
            data={"commentCount": "many"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid_comment_count"}

    def test_update_missing_restaurant(self, client, admin_headers, uploader):
        resp = client.put(
            "/restaurants/999",
            data={"name": "Ghost"},
            files={"image": ("g.png", b"png", "image/png")},
            headers=admin_headers,
        )
        assert resp.status_code == 404
        assert uploader.calls == []


class TestDelete:
    def test_delete_then_get_is_not_found(self, client, admin_headers, restaurant):
        resp = client.delete(f"/restaurants/{restaurant['id']}", headers=admin_headers)
        assert resp.status_code == 204
        assert resp.content == b""

        resp = client.get(f"/restaurants/{restaurant['id']}", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json() == {"error": "restaurant_not_found"}

    def test_delete_missing(self, client, admin_headers):
        assert client.delete("/restaurants/404", headers=admin_headers).status_code == 404

    def test_diner_cannot_delete(self, client, diner_headers, restaurant):
        assert client.delete(f"/restaurants/{restaurant['id']}", headers=diner_headers).status_code == 403
