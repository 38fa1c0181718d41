from __future__ import annotations

from datetime import date

import pytest

from fakes import FixedClock, InMemoryWorksites, utc
from siteclock.core.enums import Role
from siteclock.core.exceptions import AuthorizationError, ValidationError
from siteclock.worksites.model import Worksite
from siteclock.worksites.service import WorksiteService


@pytest.fixture()
def repo():
    return InMemoryWorksites()


@pytest.fixture()
def service(repo):
    return WorksiteService(repo, clock=FixedClock(utc(2024, 3, 4, 9)))


def _create(service, **overrides):
    data = dict(
        current_role=Role.ADMIN,
        name="Obra Centro",
        address="Gran Via 1",
        latitude=40.4168,
        longitude=-3.7038,
        city="Madrid",
    )
    data.update(overrides)
    return service.create(**data)


def test_create_uses_default_radius(service, repo):
    site = _create(service)

    assert site.radius_meters == 100
    assert repo.get_by_id(site.worksite_id) == site


@pytest.mark.parametrize("radius", [9, 1001, "150", True])
def test_create_rejects_radius_out_of_bounds(service, radius):
    with pytest.raises(ValidationError):
        _create(service, radius_meters=radius)


def test_create_requires_admin(service):
    with pytest.raises(AuthorizationError):
        _create(service, current_role=Role.SUPERVISOR)


@pytest.mark.parametrize("lat,lng", [(91, 0), (0, 181), ("40", -3)])
def test_create_validates_coordinates(service, lat, lng):
    with pytest.raises(ValidationError):
        _create(service, latitude=lat, longitude=lng)


def test_create_requires_name(service):
    with pytest.raises(ValidationError):
        _create(service, name="  ")


def test_update_changes_only_given_fields(service):
    site = _create(service)

    updated = service.update(
        current_role=Role.ADMIN,
        worksite_id=site.worksite_id,
        changes={"radius_meters": 250, "name": "Obra Centro II"},
    )

    assert updated.radius_meters == 250
    assert updated.name == "Obra Centro II"
    assert updated.address == "Gran Via 1"


def test_update_unknown_worksite(service):
    with pytest.raises(ValidationError):
        service.update(current_role=Role.ADMIN, worksite_id=99, changes={"name": "x"})


def test_deactivate_is_a_soft_delete(service, repo):
    site = _create(service)

    service.deactivate(current_role=Role.SUPERVISOR, worksite_id=site.worksite_id)

    assert repo.get_by_id(site.worksite_id).is_active is False
    assert service.list_worksites() == []
    assert len(service.list_worksites(include_inactive=True)) == 1


def test_worker_cannot_deactivate(service):
    site = _create(service)
    with pytest.raises(AuthorizationError):
        service.deactivate(current_role=Role.WORKER, worksite_id=site.worksite_id)


def test_assign_and_unassign(service, repo):
    site = _create(service)

    service.assign_worker(current_role=Role.SUPERVISOR, worker_id=7, worksite_id=site.worksite_id)
    assert [w.worksite_id for w in service.candidate_worksites(7)] == [site.worksite_id]
    assert repo.assignments[0].start_date == date(2024, 3, 4)

    service.unassign_worker(current_role=Role.SUPERVISOR, worker_id=7, worksite_id=site.worksite_id)
    assert service.candidate_worksites(7) == []
    assert repo.assignments[0].end_date == date(2024, 3, 4)


def test_unassign_without_assignment(service):
    site = _create(service)
    with pytest.raises(ValidationError):
        service.unassign_worker(current_role=Role.ADMIN, worker_id=7, worksite_id=site.worksite_id)


def test_assign_to_inactive_worksite_is_rejected(service, repo):
    repo.add(Worksite(5, "Cerrada", "Calle 5", 40.0, -3.0, 100, is_active=False))
    with pytest.raises(ValidationError):
        service.assign_worker(current_role=Role.ADMIN, worker_id=7, worksite_id=5)


def test_assign_rejects_inverted_window(service):
    site = _create(service)
    with pytest.raises(ValidationError):
        service.assign_worker(
            current_role=Role.ADMIN,
            worker_id=7,
            worksite_id=site.worksite_id,
            start_date=date(2024, 3, 10),
            end_date=date(2024, 3, 1),
        )


def test_future_assignment_is_not_yet_a_candidate(service):
    site = _create(service)
    service.assign_worker(
        current_role=Role.ADMIN, worker_id=7, worksite_id=site.worksite_id, start_date=date(2024, 4, 1)
    )

    assert service.candidate_worksites(7) == []
    assert len(service.candidate_worksites(7, on_date=date(2024, 4, 2))) == 1


def test_candidates_for_supervisor_are_all_active_sites(service):
    _create(service)
    _create(service, name="Obra Norte")

    assert len(service.candidate_worksites(1, role=Role.SUPERVISOR)) == 2
    assert service.candidate_worksites(1, role=Role.WORKER) == []


def test_offline_cache(service):
    site = _create(service)
    service.assign_worker(current_role=Role.ADMIN, worker_id=7, worksite_id=site.worksite_id)

    cache = service.offline_cache(7)

    assert cache["worksites"] == [site]
    assert cache["synced_at"] == utc(2024, 3, 4, 9)
