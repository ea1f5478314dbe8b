"""Tests for the preview viewer routes — open, navigate, download, delete, close."""

import pytest

from conftest import PDF_BYTES, PNG_BYTES

AUTH = {"Authorization": "Bearer user-token"}
OTHER = {"Authorization": "Bearer someone-else"}
FILES = "/training-centers/center1/documents/doc9/files"


@pytest.fixture
def two_files(upstream):
    upstream.json("GET", FILES, [{"id": "a.png"}, {"id": "b.pdf"}])
    upstream.content(f"{FILES}/a.png", PNG_BYTES)
    upstream.content(f"{FILES}/b.pdf", PDF_BYTES)


async def _open(client, **body):
    payload = {"training_center_id": "center1", "document_id": "doc9", **body}
    resp = await client.post("/api/viewers", json=payload, headers=AUTH)
    assert resp.status_code == 201
    return resp.json()


class TestOpen:
    @pytest.mark.asyncio
    async def test_open_loads_active_tab(self, client, two_files):
        snap = await _open(client)
        assert snap["id"]
        assert snap["active_index"] == 0
        assert snap["active"]["kind"] == "image"
        assert snap["files"][0]["load_state"] == "loaded"
        assert snap["files"][1]["load_state"] == "idle"

    @pytest.mark.asyncio
    async def test_open_empty_document(self, client, upstream):
        upstream.json("GET", FILES, [])
        snap = await _open(client)
        assert snap["empty"] is True
        assert snap["message"] == "No files attached"

    @pytest.mark.asyncio
    async def test_open_clamps_index(self, client, two_files):
        snap = await _open(client, active_index=10)
        assert snap["active_index"] == 1
        assert snap["active"]["kind"] == "pdf"

    @pytest.mark.asyncio
    async def test_notices_are_delivered_once(self, client, upstream):
        upstream.json("GET", FILES, [{"id": "gone.pdf"}])
        upstream.status("GET", f"{FILES}/gone.pdf", 404)
        snap = await _open(client)
        assert [n["message"] for n in snap["notices"]] == ["File not found on the server"]

        again = (await client.get(f"/api/viewers/{snap['id']}", headers=AUTH)).json()
        assert again["notices"] == []
        assert again["active"]["kind"] == "error"


class TestNavigate:
    @pytest.mark.asyncio
    async def test_select_loads_other_tab(self, client, two_files):
        snap = await _open(client)
        resp = await client.post(f"/api/viewers/{snap['id']}/select", json={"index": 1}, headers=AUTH)
        assert resp.status_code == 200
        assert resp.json()["active"]["kind"] == "pdf"

    @pytest.mark.asyncio
    async def test_load_unknown_file(self, client, two_files):
        snap = await _open(client)
        resp = await client.post(f"/api/viewers/{snap['id']}/files/zzz/load", headers=AUTH)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_foreign_token_is_rejected(self, client, two_files):
        snap = await _open(client)
        resp = await client.get(f"/api/viewers/{snap['id']}", headers=OTHER)
        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_viewer(self, client):
        resp = await client.get("/api/viewers/nope", headers=AUTH)
        assert resp.status_code == 404


class TestDownload:
    @pytest.mark.asyncio
    async def test_download(self, client, two_files):
        snap = await _open(client)
        resp = await client.get(f"/api/viewers/{snap['id']}/files/a.png/download", headers=AUTH)
        assert resp.status_code == 200
        assert resp.content == PNG_BYTES
        assert resp.headers["content-disposition"] == 'attachment; filename="a.png"'


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_last_file(self, client, upstream, app_cache):
        upstream.json("GET", FILES, [{"id": "only.pdf"}])
        upstream.content(f"{FILES}/only.pdf", PDF_BYTES)
        snap = await _open(client)
        viewer = f"/api/viewers/{snap['id']}"
        assert "center1_doc9_only.pdf" in app_cache

        pending = await client.post(f"{viewer}/delete-request", json={"file_id": "only.pdf"}, headers=AUTH)
        assert pending.json()["pending_delete"]["id"] == "only.pdf"

        done = (await client.post(f"{viewer}/delete-confirm", headers=AUTH)).json()
        assert done["empty"] is True
        assert done["message"] == "No files attached"
        assert done["pending_delete"] is None
        assert [n["message"] for n in done["notices"]] == ["File deleted successfully"]
        assert "center1_doc9_only.pdf" not in app_cache

    @pytest.mark.asyncio
    async def test_confirm_without_request(self, client, two_files):
        snap = await _open(client)
        resp = await client.post(f"/api/viewers/{snap['id']}/delete-confirm", headers=AUTH)
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_cancel(self, client, two_files, upstream):
        snap = await _open(client)
        viewer = f"/api/viewers/{snap['id']}"
        await client.post(f"{viewer}/delete-request", json={"file_id": "a.png"}, headers=AUTH)
        resp = await client.post(f"{viewer}/delete-cancel", headers=AUTH)
        assert resp.json()["pending_delete"] is None
        assert upstream.calls("DELETE", f"{FILES}/a.png") == 0


class TestClose:
    @pytest.mark.asyncio
    async def test_close(self, client, two_files):
        snap = await _open(client)
        resp = await client.delete(f"/api/viewers/{snap['id']}", headers=AUTH)
        assert resp.status_code == 204
        assert (await client.get(f"/api/viewers/{snap['id']}", headers=AUTH)).status_code == 404
