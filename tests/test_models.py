"""Tests for the participant and workshop records."""

from datetime import date

import pytest

from enrollment.models import (
    ADULT,
    DEFAULT_MAX_SEATS,
    DEFAULT_WORKSHOP_TITLES,
    MINOR,
    Participant,
    Workshop,
    age_on,
    default_workshops,
)


REFERENCE_DATE = date(2024, 6, 1)


def test_seventeen_year_old_is_minor() -> None:
    person = Participant("Ana", "111", "Feminino", date(2006, 6, 2))

    assert person.age(REFERENCE_DATE) == 17
    assert person.age_bracket(REFERENCE_DATE) == MINOR
    assert person.is_minor(REFERENCE_DATE)


def test_eighteenth_birthday_is_adult() -> None:
    person = Participant("Bruno", "222", "Masculino", date(2006, 6, 1))

    assert person.age(REFERENCE_DATE) == 18
    assert person.age_bracket(REFERENCE_DATE) == ADULT
    assert not person.is_minor(REFERENCE_DATE)


def test_age_for_leap_day_birth() -> None:
    birth = date(2000, 2, 29)

    assert age_on(birth, date(2018, 2, 28)) == 17
    assert age_on(birth, date(2018, 3, 1)) == 18


def test_from_line_with_workshops() -> None:
    person = Participant.from_line("Carla;333;Feminino;05/11/2009;jQuery,Arduino\n")

    assert person.name == "Carla"
    assert person.national_id == "333"
    assert person.sex == "Feminino"
    assert person.birth_date == date(2009, 11, 5)
    assert person.enrolled_workshop_titles == ["jQuery", "Arduino"]


@pytest.mark.parametrize(
    "line",
    ["Davi;444;Masculino;01/01/2000", "Davi;444;Masculino;01/01/2000;", "Davi ; 444 ; Masculino ; 01/01/2000 ;  "],
)
def test_from_line_without_workshops(line: str) -> None:
    person = Participant.from_line(line)

    assert person.name == "Davi"
    assert person.national_id == "444"
    assert person.enrolled_workshop_titles == []


@pytest.mark.parametrize(
    "line",
    [
        "Eva;555;Feminino",
        "Eva;555;Feminino;2000-01-01;jQuery",
        "Eva;555;Feminino;31/02/2000;jQuery",
        ";555;Feminino;01/01/2000;jQuery",
        "Eva;;Feminino;01/01/2000;jQuery",
    ],
)
def test_from_line_rejects_malformed_records(line: str) -> None:
    with pytest.raises(ValueError):
        Participant.from_line(line)


def test_to_line_uses_day_month_year() -> None:
    person = Participant("Fábio", "666", "Masculino", date(2001, 2, 3), ["Google Apps", "Arduino"])

    assert person.to_line() == "Fábio;666;Masculino;03/02/2001;Google Apps,Arduino"


def test_line_round_trip_keeps_enrollment_order() -> None:
    person = Participant("Gil", "777", "Outro", date(1999, 12, 31), ["Arduino", "jQuery", "Google Apps"])

    assert Participant.from_line(person.to_line()) == person


def test_workshop_seat_counts() -> None:
    workshop = Workshop(title="Arduino", max_seats=2, enrolled_ids=["1"])

    assert workshop.occupied_seats == 1
    assert workshop.available_seats == 1
    assert not workshop.is_full

    workshop.enrolled_ids.append("2")
    assert workshop.is_full


def test_zero_capacity_workshop_is_full() -> None:
    assert Workshop(title="Fechada", max_seats=0).is_full


def test_negative_capacity_is_rejected() -> None:
    with pytest.raises(ValueError):
        Workshop(title="Inválida", max_seats=-1)


def test_workshop_copy_is_independent() -> None:
    original = Workshop(title="jQuery", max_seats=3, enrolled_ids=["1"])
    clone = original.copy()
    clone.enrolled_ids.append("2")

    assert original.enrolled_ids == ["1"]


def test_default_workshops() -> None:
    workshops = default_workshops()

    assert list(workshops) == list(DEFAULT_WORKSHOP_TITLES)
    assert all(workshop.max_seats == DEFAULT_MAX_SEATS for workshop in workshops.values())
    assert all(workshop.enrolled_ids == [] for workshop in workshops.values())
