import json

import httpx
import pytest

from gasbora.backends import BackendMisconfiguredError, LocalBackend, SupabaseBackend, build_backend
from gasbora.config import Settings
from gasbora.errors import Conflict, InvalidCredentials, NotFound, PermissionDenied, TransportError

from conftest import run

URL = "https://proj.supabase.co"

ROW = {
    "id": "l-1", "seller_id": "u-1", "title": "6kg Hashi", "cylinder_size": "6kg",
    "price": 1100, "quantity": 1, "is_refill": True, "status": "available",
    "images": None, "image_url": f"{URL}/storage/v1/object/public/listing-images/u-1/1.jpg",
    "created_at": "2024-03-01T10:00:00+00:00",
}


def _backend(handler, token=None):
    seen = []

    def recording(request):
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(recording), base_url=URL)
    backend = SupabaseBackend(URL, "anon-key", client=client, access_token=token)
    return backend, seen


def test_list_listings_filters_on_status():
    backend, seen = _backend(lambda r: httpx.Response(200, json=[ROW]))
    rows = run(backend.list_listings())
    assert rows[0].id == "l-1"
    assert rows[0].images == []
    assert rows[0].gallery == [ROW["image_url"]]
    request = seen[0]
    assert request.url.path == "/rest/v1/listings"
    assert request.url.params["status"] == "eq.available"
    assert request.url.params["order"] == "created_at.desc"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer anon-key"


def test_with_token_sends_user_token_and_shares_client():
    backend, seen = _backend(lambda r: httpx.Response(200, json=[]))
    user_view = backend.with_token("user-jwt")
    assert run(user_view.get_listing("x")) is None
    assert seen[0].headers["Authorization"] == "Bearer user-jwt"
    assert user_view._client is backend._client


def test_insert_sets_owner_and_asks_for_representation():
    backend, seen = _backend(lambda r: httpx.Response(201, json=[ROW]))
    created = run(backend.insert_listing("u-1", {"title": "6kg Hashi", "id": "forged", "seller_id": "forged"}))
    body = json.loads(seen[0].content)
    assert body["seller_id"] == "u-1"
    assert "id" not in body
    assert seen[0].headers["Prefer"] == "return=representation"
    assert created.seller_id == "u-1"


def test_update_hidden_by_row_security_is_not_found():
    backend, seen = _backend(lambda r: httpx.Response(200, json=[]))
    with pytest.raises(NotFound):
        run(backend.update_listing("l-1", "u-2", {"price": 10}))
    assert seen[0].method == "PATCH"
    assert seen[0].url.params["seller_id"] == "eq.u-2"


def test_delete_object_sends_prefixes():
    backend, seen = _backend(lambda r: httpx.Response(200, json=[]))
    run(backend.delete_object("u-1/1.jpg"))
    assert seen[0].method == "DELETE"
    assert seen[0].url.path == "/storage/v1/object/listing-images"
    assert json.loads(seen[0].content) == {"prefixes": ["u-1/1.jpg"]}


def test_upload_returns_public_url():
    backend, seen = _backend(lambda r: httpx.Response(200, json={"Key": "listing-images/u-1/2.png"}))
    url = run(backend.upload_object("u-1/2.png", b"png", "image/png"))
    assert url == f"{URL}/storage/v1/object/public/listing-images/u-1/2.png"
    assert seen[0].headers["Content-Type"] == "image/png"
    assert backend.object_path(url) == "u-1/2.png"


def test_object_path_ignores_foreign_urls():
    backend, _ = _backend(lambda r: httpx.Response(200))
    assert backend.object_path("https://cdn.example.com/photo.jpg") is None
    assert backend.object_path(f"{URL}/storage/v1/object/public/listing-images/a/b.png?t=1") == "a/b.png"


@pytest.mark.parametrize("status, body, exc", [
    (401, {"message": "JWT expired"}, PermissionDenied),
    (403, {"message": "new row violates row-level security policy"}, PermissionDenied),
    (404, {"message": "Object not found"}, NotFound),
    (409, {"message": "The resource already exists"}, Conflict),
    (400, {"error_description": "Invalid login credentials"}, InvalidCredentials),
    (500, {"message": "boom"}, TransportError),
])
def test_error_classification(status, body, exc):
    backend, _ = _backend(lambda r: httpx.Response(status, json=body))
    with pytest.raises(exc):
        run(backend.list_roles("u-1"))


def test_network_failure_is_transport_error():
    def boom(request):
        raise httpx.ConnectError("unreachable", request=request)

    backend, _ = _backend(boom)
    with pytest.raises(TransportError):
        run(backend.list_listings())


def test_sign_in_builds_session():
    body = {"access_token": "jwt", "expires_at": 1893456000, "user": {"id": "u-1", "email": "a@b.co"}}
    backend, seen = _backend(lambda r: httpx.Response(200, json=body))
    session = run(backend.sign_in("a@b.co", "secret123"))
    assert session.user_id == "u-1"
    assert session.access_token == "jwt"
    assert seen[0].url.params["grant_type"] == "password"


def test_sign_up_without_session_needs_confirmation():
    backend, _ = _backend(lambda r: httpx.Response(200, json={"id": "u-1", "email": "a@b.co"}))
    with pytest.raises(PermissionDenied):
        run(backend.sign_up("a@b.co", "secret123", {"role": "buyer"}))


def test_sign_up_existing_user_is_conflict():
    backend, _ = _backend(lambda r: httpx.Response(422, json={"msg": "User already registered"}))
    with pytest.raises(Conflict):
        run(backend.sign_up("a@b.co", "secret123", {}))


def test_expired_token_has_no_session():
    backend, _ = _backend(lambda r: httpx.Response(401, json={"message": "invalid JWT"}))
    assert run(backend.get_session("stale")) is None


def test_roles_ignore_unknown_values():
    backend, _ = _backend(lambda r: httpx.Response(200, json=[{"role": "seller"}, {"role": "moderator"}]))
    assert {r.value for r in run(backend.list_roles("u-1"))} == {"seller"}


# ---------- factory ----------

def test_build_backend_local(tmp_path):
    settings = Settings(BACKEND="local", DATABASE_URL="sqlite://", MEDIA_DIR=str(tmp_path))
    assert isinstance(build_backend(settings), LocalBackend)


def test_build_backend_supabase():
    settings = Settings(BACKEND="supabase", SUPABASE_URL=URL, SUPABASE_ANON_KEY="anon")
    backend = build_backend(settings)
    assert isinstance(backend, SupabaseBackend)
    run(backend.aclose())


def test_build_backend_requires_credentials():
    with pytest.raises(BackendMisconfiguredError):
        build_backend(Settings(BACKEND="supabase", SUPABASE_URL="", SUPABASE_ANON_KEY=""))


def test_build_backend_unknown_kind():
    with pytest.raises(BackendMisconfiguredError):
        build_backend(Settings(BACKEND="firebase"))
