"""
API tests for the voice order router.
"""

import pytest


class TestRoot:

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestParseAndSearch:

    @pytest.mark.asyncio
    async def test_parse(self, client):
        response = await client.post(
            "/voice-orders/parse",
            json={"text": "2 pacotes de manteiga de 400 kz cada"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["quantity"] == 2
        assert data["name"] == "manteiga"
        assert data["price"] == 400

    @pytest.mark.asyncio
    async def test_search(self, client, user_id):
        response = await client.post(
            "/voice-orders/search",
            json={"user_id": user_id, "query": "tibana"},
        )
        assert response.status_code == 200
        results = response.json()
        assert results[0]["product_name"] == "Bolacha Tibone"
        assert results[0]["score"] >= 0.95

    @pytest.mark.asyncio
    async def test_search_threshold_validated(self, client, user_id):
        response = await client.post(
            "/voice-orders/search",
            json={"user_id": user_id, "query": "arroz", "threshold": 1.5},
        )
        assert response.status_code == 422


class TestResolution:

    @pytest.mark.asyncio
    async def test_resolve_and_confirm(self, client, user_id):
        response = await client.post(
            "/voice-orders/resolve",
            json={"user_id": user_id, "transcript": "quero 2 pacotes de manteiga"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "matched"
        assert data["match"]["product_name"] == "Manteiga"
        assert data["parsed"]["quantity"] == 2

        response = await client.post("/voice-orders/confirm", json={"user_id": user_id})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_confirm_without_resolution(self, client, user_id):
        response = await client.post("/voice-orders/confirm", json={"user_id": user_id})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_reject_naming_product(self, client, user_id):
        await client.post(
            "/voice-orders/resolve",
            json={"user_id": user_id, "transcript": "biscoito doce"},
        )
        response = await client.post(
            "/voice-orders/reject",
            json={"user_id": user_id, "correct_product_name": "Bolacha Tibone"},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "correction_stored": True}

        response = await client.get(f"/voice-orders/corrections/{user_id}")
        assert [c["corrected_text"] for c in response.json()] == ["Bolacha Tibone"]

    @pytest.mark.asyncio
    async def test_reject_without_resolution(self, client, user_id):
        response = await client.post("/voice-orders/reject", json={"user_id": user_id})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_listen(self, client, user_id):
        response = await client.post("/voice-orders/listen", json={"user_id": user_id})
        assert response.json()["state"] == "listening"


class TestCorrections:

    @pytest.mark.asyncio
    async def test_add_and_list(self, client, user_id):
        response = await client.post(
            "/voice-orders/corrections",
            json={"user_id": user_id, "original_text": " tibana ", "corrected_text": "tibone"},
        )
        assert response.status_code == 201
        assert response.json()["original_text"] == "tibana"

        response = await client.get(f"/voice-orders/corrections/{user_id}")
        assert response.status_code == 200
        corrections = response.json()
        assert len(corrections) == 1
        assert corrections[0]["original_text"] == "tibana"
        assert corrections[0]["active"] is True

    @pytest.mark.asyncio
    async def test_invalid_correction(self, client, user_id):
        response = await client.post(
            "/voice-orders/corrections",
            json={"user_id": user_id, "original_text": "", "corrected_text": "tibone"},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "CorrectionValidationError"

    @pytest.mark.asyncio
    async def test_no_op_correction(self, client, user_id):
        response = await client.post(
            "/voice-orders/corrections",
            json={"user_id": user_id, "original_text": "Arroz", "corrected_text": "arroz"},
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_deactivate(self, client, user_id):
        await client.post(
            "/voice-orders/corrections",
            json={"user_id": user_id, "original_text": "tibana", "corrected_text": "tibone"},
        )
        correction_id = (await client.get(f"/voice-orders/corrections/{user_id}")).json()[0]["id"]

        response = await client.delete(
            f"/voice-orders/corrections/{correction_id}", params={"user_id": user_id}
        )
        assert response.status_code == 200
        assert (await client.get(f"/voice-orders/corrections/{user_id}")).json() == []

    @pytest.mark.asyncio
    async def test_deactivate_missing(self, client, user_id):
        response = await client.delete("/voice-orders/corrections/999", params={"user_id": user_id})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_cannot_deactivate_another_users_correction(self, client):
        await client.post(
            "/voice-orders/corrections",
            json={"user_id": "alice", "original_text": "tibana", "corrected_text": "tibone"},
        )
        correction_id = (await client.get("/voice-orders/corrections/alice")).json()[0]["id"]

        response = await client.delete(
            f"/voice-orders/corrections/{correction_id}", params={"user_id": "mallory"}
        )
        assert response.status_code == 404

        corrections = (await client.get("/voice-orders/corrections/alice")).json()
        assert [c["id"] for c in corrections] == [correction_id]
        assert corrections[0]["active"] is True

    @pytest.mark.asyncio
    async def test_apply(self, client, user_id):
        response = await client.post(
            "/voice-orders/corrections/apply",
            json={"user_id": user_id, "transcript": "quero tibana"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["corrected"] == "quero tibone"
        assert data["source"] == "product_inference"
        assert "tibone" in data["alternatives"]
