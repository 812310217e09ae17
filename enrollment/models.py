from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal


AgeBracket = Literal["Menor de Idade", "Maior de Idade"]

MINOR: AgeBracket = "Menor de Idade"
ADULT: AgeBracket = "Maior de Idade"
ADULT_AGE = 18

SEX_CATEGORIES: tuple[str, ...] = ("Masculino", "Feminino")

DATE_FORMAT = "%d/%m/%Y"
MAX_CHOICES = 3
DEFAULT_MAX_SEATS = 3
DEFAULT_WORKSHOP_TITLES: tuple[str, ...] = (
    "jQuery",
    "Arduino",
    "Desenvolvimento para Android",
    "Layout Responsivo com HTML5 e CSS3",
    "C++: Desenvolvimento para iOS",
    "Google Apps",
)


def age_on(birth_date: date, reference_date: date) -> int:
    """Whole years elapsed between ``birth_date`` and ``reference_date``."""
    years = reference_date.year - birth_date.year
    if (reference_date.month, reference_date.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


@dataclass
class Participant:
    name: str
    national_id: str
    sex: str
    birth_date: date
    enrolled_workshop_titles: list[str] = field(default_factory=list)

    def age(self, reference_date: date) -> int:
        return age_on(self.birth_date, reference_date)

    def age_bracket(self, reference_date: date) -> AgeBracket:
        return MINOR if self.age(reference_date) < ADULT_AGE else ADULT

    def is_minor(self, reference_date: date) -> bool:
        return self.age_bracket(reference_date) == MINOR

    def to_line(self) -> str:
        return ";".join(
            [
                self.name,
                self.national_id,
                self.sex,
                self.birth_date.strftime(DATE_FORMAT),
                ",".join(self.enrolled_workshop_titles),
            ]
        )

    @classmethod
    def from_line(cls, line: str) -> Participant:
        """Parse ``name;id;sex;dd/mm/yyyy[;title,title]``.

        Raises ``ValueError`` when the line has fewer than four fields, an
        empty name or id, or a date that does not match ``DATE_FORMAT``.
        """
        parts = [part.strip() for part in line.rstrip("\r\n").split(";")]
        if len(parts) < 4:
            raise ValueError(f"expected at least 4 fields, got {len(parts)}")
        name, national_id, sex, raw_date = parts[:4]
        if not name or not national_id:
            raise ValueError("name and national id are required")
        birth_date = datetime.strptime(raw_date, DATE_FORMAT).date()
        titles: list[str] = []
        if len(parts) > 4 and parts[4]:
            titles = [title.strip() for title in parts[4].split(",") if title.strip()]
        return cls(
            name=name,
            national_id=national_id,
            sex=sex,
            birth_date=birth_date,
            enrolled_workshop_titles=titles,
        )


@dataclass
class Workshop:
    title: str
    max_seats: int = DEFAULT_MAX_SEATS
    enrolled_ids: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.max_seats < 0:
            raise ValueError(f"A oficina '{self.title}' não pode ter capacidade negativa.")

    @property
    def occupied_seats(self) -> int:
        return len(self.enrolled_ids)

    @property
    def available_seats(self) -> int:
        return self.max_seats - self.occupied_seats

    @property
    def is_full(self) -> bool:
        return self.occupied_seats >= self.max_seats

    def copy(self) -> Workshop:
        return Workshop(title=self.title, max_seats=self.max_seats, enrolled_ids=list(self.enrolled_ids))


def default_workshops(max_seats: int = DEFAULT_MAX_SEATS) -> dict[str, Workshop]:
    return {title: Workshop(title=title, max_seats=max_seats) for title in DEFAULT_WORKSHOP_TITLES}
