import pytest

from apps.fleet.engine import FleetStateEngine

from factories import new_car


@pytest.fixture
def engine():
    return FleetStateEngine()


@pytest.fixture
def make_car(db):
    return new_car


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(username="admin", password="pw", is_staff=True)


@pytest.fixture
def clerk_user(django_user_model):
    return django_user_model.objects.create_user(username="clerk", password="pw")


@pytest.fixture
def staff_client(client, staff_user):
    client.force_login(staff_user)
    return client


@pytest.fixture
def clerk_client(client, clerk_user):
    client.force_login(clerk_user)
    return client
