"""
PotTogether Backend: Route Integration Tests
=============================================

End-to-end through the ASGI app with HTTPX: routing, identity, envelope
shape, status codes, multipart uploads and the stored-file route. The app
is bound to the seeded SQLite database and a temporary object store.
"""

from pathlib import Path

import pytest


async def create_room(client, headers, **overrides):
    body = {"name": "Kitchen A", "memberLimit": 3, "privacy": "public", "category": ["soup"]}
    body.update(overrides)
    return await client.post("/api/rooms", json=body, headers=headers)


def stored_files(temp_storage, prefix):
    return sorted(p for p in Path(temp_storage, prefix).rglob("*") if p.is_file())


class TestHealthAndIdentity:
    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["isSuccess"] is True
        assert body["data"]["status"] == "healthy"
        assert body["data"]["database"] == "connected"
        assert body["data"]["storage"] == "writable"
        assert "uptimeSeconds" in body["data"]

    @pytest.mark.asyncio
    async def test_missing_token(self, test_client):
        response = await test_client.get("/api/rooms")

        assert response.status_code == 401
        assert response.json() == {
            "isSuccess": False,
            "data": None,
            "message": "Missing or invalid credentials",
        }

    @pytest.mark.asyncio
    async def test_bad_token(self, test_client):
        response = await test_client.get(
            "/api/rooms", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401
        assert response.json()["isSuccess"] is False

    @pytest.mark.asyncio
    async def test_request_id_header(self, test_client):
        generated = await test_client.get("/health")
        assert len(generated.headers["X-Request-ID"]) == 8

        echoed = await test_client.get("/health", headers={"X-Request-ID": "trace-42"})
        assert echoed.headers["X-Request-ID"] == "trace-42"


class TestRoomRoutes:
    @pytest.mark.asyncio
    async def test_create_and_join(self, test_client, auth_headers):
        created = await create_room(test_client, auth_headers(7))

        assert created.status_code == 201
        data = created.json()["data"]
        room_id = data["roomID"]
        assert data["potID"]

        joined = await test_client.post(f"/api/rooms/{room_id}/join", headers=auth_headers(8))
        assert joined.status_code == 200
        assert joined.json()["data"] == {"roomID": room_id, "userID": 8, "memberCnt": 2}

        again = await test_client.post(f"/api/rooms/{room_id}/join", headers=auth_headers(8))
        assert again.status_code == 409
        assert again.json()["message"] == f"User 8 is already a member of room {room_id}"

    @pytest.mark.asyncio
    async def test_full_room(self, test_client, auth_headers):
        room_id = (await create_room(test_client, auth_headers(7), memberLimit=1)).json()["data"]["roomID"]

        response = await test_client.post(f"/api/rooms/{room_id}/join", headers=auth_headers(8))
        assert response.status_code == 409
        assert response.json()["message"] == f"Room {room_id} is full"

    @pytest.mark.asyncio
    async def test_leave(self, test_client, auth_headers):
        room_id = (await create_room(test_client, auth_headers(7))).json()["data"]["roomID"]

        left = await test_client.post(f"/api/rooms/{room_id}/leave", headers=auth_headers(7))
        assert left.status_code == 200
        assert left.json()["data"]["memberCnt"] == 0

        again = await test_client.post(f"/api/rooms/{room_id}/leave", headers=auth_headers(7))
        assert again.status_code == 409

    @pytest.mark.asyncio
    async def test_missing_room(self, test_client, auth_headers):
        response = await test_client.post("/api/rooms/9999/join", headers=auth_headers(8))

        assert response.status_code == 404
        assert response.json()["isSuccess"] is False

    @pytest.mark.asyncio
    async def test_invalid_limit(self, test_client, auth_headers):
        response = await create_room(test_client, auth_headers(7), memberLimit=0)

        assert response.status_code == 400
        assert response.json()["isSuccess"] is False

    @pytest.mark.asyncio
    async def test_missing_field(self, test_client, auth_headers):
        response = await test_client.post(
            "/api/rooms", json={"memberLimit": 3}, headers=auth_headers(7)
        )

        assert response.status_code == 400
        body = response.json()
        assert body["isSuccess"] is False
        assert body["message"].startswith("Invalid request: ")
        assert "name" in body["message"]

    @pytest.mark.asyncio
    async def test_listings(self, test_client, auth_headers):
        await create_room(test_client, auth_headers(7), name="Open Kitchen")
        await create_room(test_client, auth_headers(7), name="Secret Kitchen", privacy="private")
        await create_room(test_client, auth_headers(9), name="Other Kitchen")

        mine = (await test_client.get("/api/rooms", headers=auth_headers(7))).json()["data"]
        public = (await test_client.get("/api/rooms/public", headers=auth_headers(8))).json()["data"]

        assert sorted(r["name"] for r in mine) == ["Open Kitchen", "Secret Kitchen"]
        assert sorted(r["name"] for r in public) == ["Open Kitchen", "Other Kitchen"]
        assert set(mine[0]) == {"roomID", "name", "memberCnt", "memberLimit", "privacy", "category"}

    @pytest.mark.asyncio
    async def test_overview(self, test_client, auth_headers):
        created = (await create_room(test_client, auth_headers(7))).json()["data"]
        await test_client.post(f"/api/rooms/{created['roomID']}/join", headers=auth_headers(8))

        response = await test_client.get(f"/api/rooms/{created['roomID']}", headers=auth_headers(8))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["roomID"] == created["roomID"]
        assert data["currentPot"] == created["potID"]
        assert data["name"] == "Kitchen A"
        assert [m["userID"] for m in data["members"]] == [7, 8]
        assert data["level"] == {"level": 1, "totalTime": 0, "next": "http://test/files/garlic.png"}
        assert data["week"] == []
        assert data["cooking"] == []
        assert data["done"] == []


class TestRecordRoutes:
    @pytest.mark.asyncio
    async def test_record_lifecycle_with_photo(
        self, test_client, auth_headers, sample_image_bytes, temp_storage
    ):
        headers = auth_headers(7)
        room = (await create_room(test_client, headers)).json()["data"]

        created = await test_client.post(
            "/api/records",
            json={"roomID": room["roomID"], "potID": room["potID"], "ingredientID": 1},
            headers=headers,
        )
        assert created.status_code == 201
        record_id = created.json()["data"]["recordID"]
        assert created.json()["data"]["status"] == 0

        finished = await test_client.patch(
            f"/api/records/{record_id}",
            data={"status": "1", "interval": "1800", "caption": "done"},
            files={"image": ("dish.jpg", sample_image_bytes, "image/jpeg")},
            headers=headers,
        )
        assert finished.status_code == 200
        detail = finished.json()["data"]
        assert detail["status"] == 1
        assert detail["interval"] == 1800
        assert detail["caption"] == "done"
        assert detail["ingredientName"] == "tomato"
        assert detail["finishTime"] is not None
        assert detail["image"].startswith("http://test/files/records/user-7/")
        assert detail["image"].endswith(".jpg")

        served = await test_client.get(detail["image"].removeprefix("http://test"))
        assert served.status_code == 200
        assert served.content == sample_image_bytes

        again = await test_client.patch(
            f"/api/records/{record_id}",
            data={"status": "2", "interval": "60"},
            files={"image": ("second.jpg", sample_image_bytes, "image/jpeg")},
            headers=headers,
        )
        assert again.status_code == 409
        assert len(stored_files(temp_storage, "records")) == 1

        fetched = (await test_client.get(f"/api/records/{record_id}", headers=headers)).json()["data"]
        assert fetched["status"] == 1
        assert fetched["interval"] == 1800

    @pytest.mark.asyncio
    async def test_finish_without_photo(self, test_client, auth_headers):
        headers = auth_headers(7)
        room = (await create_room(test_client, headers)).json()["data"]
        record_id = (await test_client.post(
            "/api/records",
            json={"roomID": room["roomID"], "potID": room["potID"], "ingredientID": 2},
            headers=headers,
        )).json()["data"]["recordID"]

        response = await test_client.patch(
            f"/api/records/{record_id}", data={"status": "2", "interval": "120", "interrupt": "1"},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["image"] is None
        assert response.json()["data"]["interrupt"] == 1

    @pytest.mark.asyncio
    async def test_invalid_status_deletes_upload(
        self, test_client, auth_headers, sample_image_bytes, temp_storage
    ):
        headers = auth_headers(7)
        room = (await create_room(test_client, headers)).json()["data"]
        record_id = (await test_client.post(
            "/api/records",
            json={"roomID": room["roomID"], "potID": room["potID"], "ingredientID": 1},
            headers=headers,
        )).json()["data"]["recordID"]

        response = await test_client.patch(
            f"/api/records/{record_id}",
            data={"status": "7", "interval": "60"},
            files={"image": ("dish.jpg", sample_image_bytes, "image/jpeg")},
            headers=headers,
        )

        assert response.status_code == 400
        assert stored_files(temp_storage, "records") == []

    @pytest.mark.asyncio
    async def test_renamed_non_image_is_rejected(self, test_client, auth_headers, temp_storage):
        headers = auth_headers(7)
        room = (await create_room(test_client, headers)).json()["data"]
        record_id = (await test_client.post(
            "/api/records",
            json={"roomID": room["roomID"], "potID": room["potID"], "ingredientID": 1},
            headers=headers,
        )).json()["data"]["recordID"]

        response = await test_client.patch(
            f"/api/records/{record_id}",
            data={"status": "1", "interval": "60"},
            files={"image": ("dish.jpg", b"<html><script>alert(1)</script></html>", "image/jpeg")},
            headers=headers,
        )

        assert response.status_code == 400
        assert "text/html" in response.json()["message"]
        assert stored_files(temp_storage, "records") == []

        # the record is still open
        fetched = (await test_client.get(f"/api/records/{record_id}", headers=headers)).json()["data"]
        assert fetched["status"] == 0

    @pytest.mark.asyncio
    async def test_missing_record(self, test_client, auth_headers):
        patched = await test_client.patch(
            "/api/records/777", data={"status": "1", "interval": "60"}, headers=auth_headers(7)
        )
        fetched = await test_client.get("/api/records/777", headers=auth_headers(7))

        assert patched.status_code == 404
        assert fetched.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_pot(self, test_client, auth_headers):
        headers = auth_headers(7)
        room = (await create_room(test_client, headers)).json()["data"]

        response = await test_client.post(
            "/api/records",
            json={"roomID": room["roomID"], "potID": "nope", "ingredientID": 1},
            headers=headers,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_listings(self, test_client, auth_headers):
        headers = auth_headers(7)
        room = (await create_room(test_client, headers)).json()["data"]
        body = {"roomID": room["roomID"], "potID": room["potID"], "ingredientID": 1}
        first = (await test_client.post("/api/records", json=body, headers=headers)).json()["data"]["recordID"]
        second = (await test_client.post("/api/records", json=body, headers=headers)).json()["data"]["recordID"]
        await test_client.patch(
            f"/api/records/{first}", data={"status": "1", "interval": "60"}, headers=headers
        )

        mine = (await test_client.get("/api/records", headers=headers)).json()["data"]
        in_room = (
            await test_client.get(f"/api/rooms/{room['roomID']}/records", headers=headers)
        ).json()["data"]

        assert [r["recordID"] for r in mine] == [second, first]
        assert [r["recordID"] for r in in_room] == [second, first]


class TestUserRoutes:
    @pytest.mark.asyncio
    async def test_profile_and_overview(self, test_client, auth_headers):
        headers = auth_headers(7)
        room = (await create_room(test_client, headers)).json()["data"]
        record_id = (await test_client.post(
            "/api/records",
            json={"roomID": room["roomID"], "potID": room["potID"], "ingredientID": 2},
            headers=headers,
        )).json()["data"]["recordID"]
        await test_client.patch(
            f"/api/records/{record_id}", data={"status": "1", "interval": "3600"}, headers=headers
        )

        profile = (await test_client.get("/api/users/me/profile", headers=headers)).json()["data"]
        assert profile["userID"] == 7
        assert profile["name"] == "cook7"
        assert profile["cookingTime"] == 0
        assert profile["status"] == {"code": 1, "ingredient": "onion"}
        assert profile["done"] == ["onion"]

        overview = (await test_client.get("/api/users/me/overview", headers=headers)).json()["data"]
        assert overview["userID"] == 7
        assert overview["level"]["level"] == 2
        assert overview["level"]["totalTime"] == 3600
        assert overview["level"]["next"] == "http://test/files/basil.png"
        assert [t["recordID"] for t in overview["today"]] == [record_id]
        assert [d["length"] for d in overview["week"]] == [3600]

    @pytest.mark.asyncio
    async def test_unknown_user(self, test_client, auth_headers):
        response = await test_client.get("/api/users/me/profile", headers=auth_headers(500))
        assert response.status_code == 404


class TestIngredientRoutes:
    @pytest.mark.asyncio
    async def test_list(self, test_client, auth_headers):
        response = await test_client.get("/api/ingredients", headers=auth_headers(1))

        assert response.status_code == 200
        data = response.json()["data"]
        assert [i["name"] for i in data] == ["tomato", "onion", "garlic", "basil"]
        assert data[2] == {
            "ingredientID": 3,
            "name": "garlic",
            "image": "http://test/files/garlic.png",
            "interval": 1200,
            "requirement": "level2",
        }

    @pytest.mark.asyncio
    async def test_add(self, test_client, auth_headers, sample_image_bytes):
        headers = auth_headers(1)
        response = await test_client.post(
            "/api/ingredients",
            data={"name": "leek", "interval": "300", "requirement": "level5"},
            files={"image": ("leek.png", sample_image_bytes, "image/png")},
            headers=headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["ingredientID"] == 5
        assert data["image"].startswith("http://test/files/ingredients/leek/")

        listed = (await test_client.get("/api/ingredients", headers=headers)).json()["data"]
        assert listed[-1]["name"] == "leek"

    @pytest.mark.asyncio
    async def test_add_rejects_bad_extension(self, test_client, auth_headers, temp_storage):
        response = await test_client.post(
            "/api/ingredients",
            data={"name": "leek", "interval": "300"},
            files={"image": ("leek.gif", b"GIF89a", "image/gif")},
            headers=auth_headers(1),
        )

        assert response.status_code == 400
        assert stored_files(temp_storage, "ingredients") == []
