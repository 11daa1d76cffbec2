import asyncio
import datetime as dt
import inspect
import os
import tempfile

# keep the module-level app away from the working directory
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MEDIA_DIR", tempfile.mkdtemp(prefix="gasbora-media-"))
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest

from gasbora.backends.local import LocalBackend
from gasbora.db import make_engine
from gasbora.schemas.listing import Listing


def run(coro):
    return asyncio.run(coro)


class SpyBackend:
    """Wraps a backend, records every async call and can inject failures."""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []
        self._failures = {}

    def fail(self, method, exc, when=None):
        self._failures[method] = (exc, when)

    def count(self, method):
        return sum(1 for name, _, _ in self.calls if name == method)

    def with_token(self, access_token):
        return self

    def __getattr__(self, name):
        attr = getattr(self.inner, name)
        if not inspect.iscoroutinefunction(attr):
            return attr

        async def wrapper(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            failure = self._failures.get(name)
            if failure:
                exc, when = failure
                if when is None or when(*args, **kwargs):
                    raise exc
            return await attr(*args, **kwargs)

        return wrapper


@pytest.fixture
def backend(tmp_path):
    return LocalBackend(
        make_engine("sqlite://"),
        media_dir=tmp_path / "media",
        public_base_url="http://testserver",
    )


@pytest.fixture
def spy(backend):
    return SpyBackend(backend)


def register(backend, email, role="seller", name="Test User", phone="0712345678"):
    return run(backend.sign_up(email, "secret123", {"full_name": name, "phone": phone, "role": role}))


@pytest.fixture
def seller(backend):
    return register(backend, "seller@example.com", role="seller", name="Wanjiku Seller")


@pytest.fixture
def buyer(backend):
    return register(backend, "buyer@example.com", role="buyer", name="Otieno Buyer")


@pytest.fixture
def other_seller(backend):
    return register(backend, "station@example.com", role="station", name="Shell Station")


_BASE_TIME = dt.datetime(2024, 1, 1, 12, 0, tzinfo=dt.timezone.utc)


def make_listing(n=0, **overrides):
    data = {
        "id": f"L{n}",
        "seller_id": "seller-1",
        "title": f"Cylinder {n}",
        "brand": None,
        "cylinder_size": "6kg",
        "price": 1000.0,
        "quantity": 1,
        "is_refill": False,
        "location": None,
        "images": [],
        "status": "available",
        "created_at": _BASE_TIME + dt.timedelta(minutes=n),
    }
    data.update(overrides)
    return Listing.model_validate(data)


VALID_INPUT = {
    "title": "6kg K-Gas Cylinder",
    "description": "Full cylinder, sealed",
    "brand": "K-Gas",
    "cylinder_size": "6kg",
    "price": "1200",
    "quantity": "2",
    "is_refill": False,
    "location": "Westlands, Nairobi",
}
