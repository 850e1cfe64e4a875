import pytest
from django.core.cache import cache

from .factories import make_books


@pytest.fixture(autouse=True)
def clear_cache():
    # recurring batch locks live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def books(db):
    """(company, fiscal year) with the default chart seeded."""
    return make_books()


@pytest.fixture
def other_books(db):
    return make_books(name="Other Co")


@pytest.fixture
def user(db, django_user_model, books):
    company, _fy = books
    return django_user_model.objects.create_user(
        username="alice", password="pw", default_company=company
    )


@pytest.fixture
def api(client, user):
    """Logged-in test client; the middleware picks the user's default company."""
    client.force_login(user)
    return client
