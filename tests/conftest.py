from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

import pytest

from famgraph.config import FamGraphConfig
from famgraph.models import EdgeType, Gender, Profile
from famgraph.service import FamilyGraphService
from famgraph.storage import Database


@pytest.fixture()
def env_tmp():
    d = Path(tempfile.mkdtemp(prefix="famgraph-"))
    try:
        yield d
    finally:
        shutil.rmtree(d, ignore_errors=True)


@pytest.fixture()
def db(env_tmp: Path) -> Database:
    return Database(env_tmp / "famgraph.db")


@pytest.fixture()
def svc(db: Database) -> FamilyGraphService:
    return FamilyGraphService(db, config=FamGraphConfig(db_path=db.db_path))


@pytest.fixture()
def person(svc: FamilyGraphService):
    """Create a profile: person("Anna", "Ivanova", gender="female")."""

    def _make(first: str, last: str | None = None, **fields) -> Profile:
        return svc.create_profile(first_name=first, last_name=last, **fields)

    return _make


@pytest.fixture()
def parent(svc: FamilyGraphService):
    """Link parent -> child."""

    def _link(p: Profile, child: Profile):
        return svc.add_relationship(p.id, child.id, EdgeType.PARENT)

    return _link


@pytest.fixture()
def family(svc: FamilyGraphService, person, parent):
    """Alexander + Elena (spouses) with son Filip; Alexander also fathers Anna."""
    alexander = person("Alexander", "Ivanov", gender=Gender.MALE, birth_date="1960-02-11")
    elena = person("Elena", "Ivanova", gender=Gender.FEMALE, birth_date="1962-07-30")
    filip = person("Filip", "Ivanov", gender=Gender.MALE, birth_date="1990-05-01")
    anna = person("Anna", "Ivanova", gender=Gender.FEMALE, birth_date="1985-03-14", birth_city="Kazan")
    parent(alexander, filip)
    parent(elena, filip)
    svc.add_relationship(alexander.id, elena.id, EdgeType.SPOUSE)
    parent(alexander, anna)
    return {"alexander": alexander, "elena": elena, "filip": filip, "anna": anna}


@pytest.fixture()
def maternal(svc: FamilyGraphService, person, parent, family):
    """Elena's mother Vera with Elena's siblings Maria and Pavel."""
    vera = person("Vera", "Smirnova", gender=Gender.FEMALE)
    maria = person("Maria", "Smirnova", gender=Gender.FEMALE)
    pavel = person("Pavel", "Smirnov", gender=Gender.MALE)
    for child in (family["elena"], maria, pavel):
        parent(vera, child)
    return {**family, "vera": vera, "maria": maria, "pavel": pavel}
