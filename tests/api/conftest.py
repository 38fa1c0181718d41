from __future__ import annotations

from datetime import date

import pytest

from fakes import FixedClock, InMemoryAttendance, InMemoryWorksites, utc
from siteclock.container import container_from_repositories
from siteclock.main import create_app
from siteclock.worksites.model import Worksite


@pytest.fixture()
def clock():
    return FixedClock(utc(2024, 3, 4, 9, 0))


@pytest.fixture()
def worksites():
    repo = InMemoryWorksites()
    repo.add(Worksite(1, "Obra Centro", "Gran Via 1", 40.4168, -3.7038, 150, city="Madrid"))
    repo.assign(worker_id=7, worksite_id=1, start_date=date(2024, 1, 1))
    return repo


@pytest.fixture()
def attendance(worksites):
    return InMemoryAttendance(worksites)


@pytest.fixture()
def app(worksites, attendance, clock):
    container = container_from_repositories(worksites_repo=worksites, attendance_repo=attendance, clock=clock)
    return create_app(container, settings_module="config.testing")


def login(client, user_id: int = 7, role: str = "WORKER"):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role
    return client


@pytest.fixture()
def worker(app):
    return login(app.test_client())


@pytest.fixture()
def admin(app):
    return login(app.test_client(), user_id=1, role="ADMIN")


@pytest.fixture()
def supervisor(app):
    return login(app.test_client(), user_id=2, role="SUPERVISOR")
