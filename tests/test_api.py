"""
Antakshari Round Shuffler - HTTP API Tests

Exercises antakshari/routes through the FastAPI TestClient. Validates:
- Registration, login and /me
- Shuffle as host (shared rotation) and as player (private draw)
- Lock toggling and the locked game state
- Adding songs by URL, rejected uploads, deletion
- Health check
"""

from antakshari.config import ADMIN_EMAIL
from antakshari.database import get_user_by_email
from antakshari.rotation import FIXED_ROTATION
from antakshari.routes import api as api_routes
from antakshari.services.seeding import ensure_admin_user
from tests.conftest import codes_of, run, selected_codes


# ===========================================================================
# Auth
# ===========================================================================


class TestAuthRoutes:
    def test_register_and_me(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"username": "Asha", "email": "Asha@Example.com", "password": "pw123"},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["email"] == "asha@example.com"
        assert body["data"]["isAdmin"] is False

        me = client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {body['data']['token']}"},
        )
        assert me.status_code == 200
        assert me.json()["data"]["username"] == "Asha"

    def test_register_with_host_email_is_refused(self, client, full_catalog):
        resp = client.post(
            "/api/auth/register",
            json={"username": "DJ", "email": f" {ADMIN_EMAIL.upper()} ", "password": "pw123"},
        )
        assert resp.status_code == 403
        assert "token" not in resp.json()
        assert run(get_user_by_email(ADMIN_EMAIL)) is None

        # No session was handed out, so the host-only routes stay closed
        assert client.post("/api/songs/lock").status_code == 401
        assert client.post("/api/songs/shuffle").status_code == 401
        assert selected_codes() == set()

    def test_seeded_host_logs_in_as_admin(self, client):
        run(ensure_admin_user(ADMIN_EMAIL, "DJ", "pw123"))
        resp = client.post(
            "/api/auth/login", json={"email": ADMIN_EMAIL, "password": "pw123"}
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["isAdmin"] is True
        assert resp.json()["data"]["role"] == "privileged"

        lock = client.post(
            "/api/songs/lock",
            headers={"Authorization": f"Bearer {resp.json()['data']['token']}"},
        )
        assert lock.status_code == 200

    def test_register_missing_fields(self, client):
        resp = client.post("/api/auth/register", json={"username": "x"})
        assert resp.status_code == 400

    def test_register_invalid_email(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"username": "x", "email": "nope", "password": "pw"},
        )
        assert resp.status_code == 400

    def test_register_duplicate(self, client):
        payload = {"username": "x", "email": "x@example.com", "password": "pw"}
        client.post("/api/auth/register", json=payload)
        resp = client.post("/api/auth/register", json=payload)
        assert resp.status_code == 409

    def test_login(self, client):
        client.post(
            "/api/auth/register",
            json={"username": "x", "email": "x@example.com", "password": "pw"},
        )
        ok = client.post("/api/auth/login", json={"email": "x@example.com", "password": "pw"})
        assert ok.status_code == 200
        assert ok.json()["data"]["token"]

        bad = client.post("/api/auth/login", json={"email": "x@example.com", "password": "no"})
        assert bad.status_code == 401

    def test_me_anonymous(self, client):
        assert client.get("/api/auth/me").status_code == 401


# ===========================================================================
# Rounds
# ===========================================================================


class TestShuffleRoutes:
    def test_shuffle_requires_login(self, client, full_catalog):
        assert client.post("/api/songs/shuffle").status_code == 401

    def test_host_shuffle_persists(self, client, host_headers, full_catalog):
        resp = client.post("/api/songs/shuffle", headers=host_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["mode"] == "rigged"
        assert body["persisted"] is True
        assert codes_of(body["data"]) == set(FIXED_ROTATION[0])

        selected = client.get("/api/songs/selected").json()["data"]
        assert codes_of(selected) == set(FIXED_ROTATION[0])

    def test_player_shuffle_is_private(self, client, player_headers, full_catalog):
        resp = client.post("/api/songs/shuffle", headers=player_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["mode"] == "random"
        assert body["persisted"] is False
        assert len(body["data"]) == 15
        assert selected_codes() == set()

    def test_player_refused_while_locked(
        self, client, host_headers, player_headers, full_catalog
    ):
        client.post("/api/songs/shuffle", headers=host_headers)
        client.post("/api/songs/lock", headers=host_headers)

        resp = client.post("/api/songs/shuffle", headers=player_headers)
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Shuffle is locked by the host"
        assert selected_codes() == set(FIXED_ROTATION[0])


class TestLockRoutes:
    def test_state_defaults_unlocked(self, client):
        body = client.get("/api/songs/state").json()
        assert body["data"] == {"isLocked": False, "lockedSongs": []}

    def test_host_toggles(self, client, host_headers, full_catalog):
        client.post("/api/songs/shuffle", headers=host_headers)

        resp = client.post("/api/songs/lock", headers=host_headers)
        assert resp.json()["data"] == {"isLocked": True}

        state = client.get("/api/songs/state").json()["data"]
        assert state["isLocked"] is True
        assert codes_of(state["lockedSongs"]) == set(FIXED_ROTATION[0])

        resp = client.post("/api/songs/lock", headers=host_headers)
        assert resp.json()["data"] == {"isLocked": False}

    def test_player_forbidden(self, client, player_headers):
        resp = client.post("/api/songs/lock", headers=player_headers)
        assert resp.status_code == 403
        assert client.get("/api/songs/state").json()["data"]["isLocked"] is False


# ===========================================================================
# Catalog
# ===========================================================================


class TestCatalogRoutes:
    def _add(self, client, headers, **fields):
        form = {"name": "Tum Hi Ho", "artist": "Arijit Singh", "language": "Hindi"}
        form.update(fields)
        return client.post("/api/songs", data=form, headers=headers)

    def test_add_by_url(self, client, player_headers):
        resp = self._add(client, player_headers, url="https://media.example.com/a.mp3")
        assert resp.status_code == 201
        song = resp.json()["data"]
        assert song["short_code"] == "H1"
        assert song["added_by"] == "player"

        listing = client.get("/api/songs").json()["data"]
        assert [s["short_code"] for s in listing] == ["H1"]

    def test_add_requires_login(self, client):
        resp = client.post(
            "/api/songs",
            data={"name": "a", "artist": "b", "language": "Hindi", "url": "https://x/a.mp3"},
        )
        assert resp.status_code == 401

    def test_add_without_audio(self, client, player_headers):
        assert self._add(client, player_headers).status_code == 400

    def test_add_unsupported_language(self, client, player_headers):
        resp = self._add(client, player_headers, language="Tamil", url="https://x/a.mp3")
        assert resp.status_code == 400

    def test_add_duplicate_name(self, client, player_headers):
        self._add(client, player_headers, url="https://x/a.mp3")
        resp = self._add(client, player_headers, name="TUM HI HO", url="https://x/b.mp3")
        assert resp.status_code == 409

    def test_upload_without_media_host(self, client, player_headers, monkeypatch):
        monkeypatch.setattr(api_routes, "is_configured", lambda: False)
        resp = client.post(
            "/api/songs",
            data={"name": "a", "artist": "b", "language": "Hindi"},
            files={"song_file": ("intro.mp3", b"ID3", "audio/mpeg")},
            headers=player_headers,
        )
        assert resp.status_code == 503

    def test_upload_bad_extension(self, client, player_headers, monkeypatch):
        monkeypatch.setattr(api_routes, "is_configured", lambda: True)
        resp = client.post(
            "/api/songs",
            data={"name": "a", "artist": "b", "language": "Hindi"},
            files={"song_file": ("intro.exe", b"MZ", "application/octet-stream")},
            headers=player_headers,
        )
        assert resp.status_code == 400

    def test_delete(self, client, player_headers):
        song = self._add(client, player_headers, url="https://x/a.mp3").json()["data"]
        resp = client.delete(f"/api/songs/{song['id']}", headers=player_headers)
        assert resp.status_code == 200
        assert client.get("/api/songs").json()["data"] == []

        again = client.delete(f"/api/songs/{song['id']}", headers=player_headers)
        assert again.status_code == 404


# ===========================================================================
# Health
# ===========================================================================


class TestHealth:
    def test_health(self, client, host_headers, full_catalog):
        client.post("/api/songs/shuffle", headers=host_headers)
        body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert body["rotation_slots"] == len(FIXED_ROTATION)
        assert body["total_songs"] == len(full_catalog)
        assert body["state"] == {"current_shuffle_index": 1}
