from datetime import date

import pytest

from enrollment.models import Participant, Workshop
from enrollment.registry import Registry


REFERENCE_DATE = date(2024, 6, 1)


def make_participant(national_id: str, *, name: str | None = None, sex: str = "Feminino",
                     birth_date: date = date(1990, 3, 15)) -> Participant:
    return Participant(
        name=name or f"Participante {national_id}",
        national_id=national_id,
        sex=sex,
        birth_date=birth_date,
    )


@pytest.fixture
def reference_date() -> date:
    return REFERENCE_DATE


@pytest.fixture
def registry() -> Registry:
    """A registry holding only the default workshops."""
    return Registry()


@pytest.fixture
def small_registry() -> Registry:
    """Two small workshops, handy for capacity scenarios."""
    return Registry([Workshop(title="Python", max_seats=2), Workshop(title="Robótica", max_seats=1)])


@pytest.fixture
def participant():
    """Factory for participants that are not yet registered."""
    return make_participant
