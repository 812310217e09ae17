"""Registration logic and statistics for the workshop enrollment manager."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, Iterable, Mapping, Sequence

from .models import (
    ADULT,
    MAX_CHOICES,
    MINOR,
    SEX_CATEGORIES,
    AgeBracket,
    Participant,
    Workshop,
    default_workshops,
)

logger = logging.getLogger(__name__)


def _detached(participant: Participant) -> Participant:
    return replace(participant, enrolled_workshop_titles=list(participant.enrolled_workshop_titles))


class RegistrationError(ValueError):
    """Base class for every reason a registration can be refused."""


class DuplicateIdentity(RegistrationError):
    def __init__(self, national_id: str):
        self.national_id = national_id
        super().__init__(f"O CPF '{national_id}' já está inscrito.")


class InvalidSelectionSize(RegistrationError):
    def __init__(self, count: int):
        self.count = count
        super().__init__(f"Selecione entre 1 e {MAX_CHOICES} oficinas (foram selecionadas {count}).")


class RepeatedWorkshop(RegistrationError):
    def __init__(self, title: str):
        self.title = title
        super().__init__(f"A oficina '{title}' foi selecionada mais de uma vez.")


class UnknownWorkshop(RegistrationError):
    def __init__(self, title: str):
        self.title = title
        super().__init__(f"A oficina '{title}' não existe.")


class WorkshopFull(RegistrationError):
    def __init__(self, title: str, max_seats: int):
        self.title = title
        self.max_seats = max_seats
        super().__init__(
            f"A oficina '{title}' está lotada (máx.: {max_seats}). Inscrição cancelada."
        )


class RegistryStateError(ValueError):
    """Raised when restored workshops and participants do not agree with each other."""

    def __init__(self, problems: Sequence[str]):
        self.problems = list(problems)
        super().__init__("Dados inconsistentes: " + "; ".join(self.problems))


@dataclass(frozen=True)
class ParticipantSummary:
    name: str
    sex: str
    age_bracket: AgeBracket
    workshops: tuple[str, ...]

    def describe(self) -> str:
        return (
            f"Nome: {self.name} | Sexo: {self.sex} | Faixa Etária: {self.age_bracket}"
            f" | Oficinas: {', '.join(self.workshops)}"
        )


class Registry:
    """In-memory store of workshops and the participants enrolled in them.

    ``participants`` are kept in registration order and indexed by national id.
    Restoring from existing collections checks that both sides agree; a
    ``RegistryStateError`` lists every mismatch found.
    Participants handed back to callers are copies, so changes to them
    never reach the registry.
    """

    def __init__(
        self,
        workshops: Iterable[Workshop] | None = None,
        participants: Iterable[Participant] = (),
    ):
        if workshops is None:
            workshops = default_workshops().values()
        self._lock = threading.Lock()
        self._workshops: Dict[str, Workshop] = {}
        self._participants: Dict[str, Participant] = {}

        problems: list[str] = []
        for workshop in workshops:
            if workshop.title in self._workshops:
                problems.append(f"oficina '{workshop.title}' repetida")
                continue
            self._workshops[workshop.title] = workshop
        for participant in participants:
            if participant.national_id in self._participants:
                problems.append(f"CPF '{participant.national_id}' repetido")
                continue
            self._participants[participant.national_id] = _detached(participant)
        problems.extend(self.invariant_violations())
        if problems:
            raise RegistryStateError(problems)

    @property
    def workshops(self) -> Mapping[str, Workshop]:
        return self._workshops

    @property
    def participants(self) -> list[Participant]:
        return [_detached(participant) for participant in self._participants.values()]

    @property
    def total_participants(self) -> int:
        return len(self._participants)

    def get_participant(self, national_id: str) -> Participant | None:
        participant = self._participants.get(national_id)
        return None if participant is None else _detached(participant)

    def participants_in(self, title: str) -> list[Participant]:
        workshop = self._workshops.get(title)
        if workshop is None:
            return []
        return [
            _detached(self._participants[national_id])
            for national_id in workshop.enrolled_ids
            if national_id in self._participants
        ]

    def invariant_violations(self) -> list[str]:
        problems: list[str] = []
        for workshop in self._workshops.values():
            if workshop.occupied_seats > workshop.max_seats:
                problems.append(
                    f"oficina '{workshop.title}' com {workshop.occupied_seats} inscritos"
                    f" para {workshop.max_seats} vagas"
                )
            if len(set(workshop.enrolled_ids)) != len(workshop.enrolled_ids):
                problems.append(f"oficina '{workshop.title}' com inscrições repetidas")
            for national_id in workshop.enrolled_ids:
                participant = self._participants.get(national_id)
                if participant is None:
                    problems.append(f"oficina '{workshop.title}' refere o CPF desconhecido '{national_id}'")
                elif workshop.title not in participant.enrolled_workshop_titles:
                    problems.append(
                        f"CPF '{national_id}' inscrito em '{workshop.title}' sem constar no participante"
                    )

        for participant in self._participants.values():
            titles = participant.enrolled_workshop_titles
            if not 1 <= len(titles) <= MAX_CHOICES:
                problems.append(f"CPF '{participant.national_id}' com {len(titles)} oficinas")
            if len(set(titles)) != len(titles):
                problems.append(f"CPF '{participant.national_id}' com oficinas repetidas")
            for title in titles:
                workshop = self._workshops.get(title)
                if workshop is None:
                    problems.append(f"CPF '{participant.national_id}' inscrito na oficina desconhecida '{title}'")
                elif participant.national_id not in workshop.enrolled_ids:
                    problems.append(
                        f"CPF '{participant.national_id}' não consta na lista da oficina '{title}'"
                    )
        return problems

    def _check_registration(self, candidate: Participant, titles: Sequence[str]) -> None:
        if candidate.national_id in self._participants:
            raise DuplicateIdentity(candidate.national_id)
        if not 1 <= len(titles) <= MAX_CHOICES:
            raise InvalidSelectionSize(len(titles))
        seen: set[str] = set()
        for title in titles:
            if title in seen:
                raise RepeatedWorkshop(title)
            seen.add(title)
            workshop = self._workshops.get(title)
            if workshop is None:
                raise UnknownWorkshop(title)
            if workshop.is_full:
                raise WorkshopFull(title, workshop.max_seats)

    def register(
        self,
        candidate: Participant,
        chosen_titles: Sequence[str],
        reference_date: date,
    ) -> Participant:
        """Enroll ``candidate`` in every chosen workshop, or in none of them.

        All checks run before anything is written, so a refused registration
        leaves the registry exactly as it was. Raises a ``RegistrationError``
        subclass describing the first problem found.
        """
        titles = list(chosen_titles)
        with self._lock:
            try:
                self._check_registration(candidate, titles)
            except RegistrationError as exc:
                logger.debug("Registration of %s refused: %s", candidate.national_id, exc)
                raise
            for title in titles:
                self._workshops[title].enrolled_ids.append(candidate.national_id)
            registered = replace(candidate, enrolled_workshop_titles=titles)
            self._participants[registered.national_id] = registered
        logger.info(
            "Registered %s (%s) in %s",
            candidate.national_id,
            registered.age_bracket(reference_date),
            ", ".join(titles),
        )
        return _detached(registered)

    def available_seats(self) -> dict[str, int]:
        return {title: workshop.available_seats for title, workshop in self._workshops.items()}

    def find_by_identity(self, national_id: str, reference_date: date) -> ParticipantSummary | None:
        participant = self._participants.get(national_id)
        if participant is None:
            return None
        return ParticipantSummary(
            name=participant.name,
            sex=participant.sex,
            age_bracket=participant.age_bracket(reference_date),
            workshops=tuple(participant.enrolled_workshop_titles),
        )

    def minors_in(self, title: str, reference_date: date) -> list[str]:
        return [
            participant.name
            for participant in self.participants_in(title)
            if participant.is_minor(reference_date)
        ]

    def stats_by_sex(self) -> dict[str, float]:
        total = len(self._participants)
        if total == 0:
            return {}
        counts = dict.fromkeys(SEX_CATEGORIES, 0)
        for participant in self._participants.values():
            sex = (participant.sex or "").casefold()
            for category in SEX_CATEGORIES:
                if sex == category.casefold():
                    counts[category] += 1
        return {category: count / total * 100 for category, count in counts.items()}

    def stats_by_workshop(self) -> dict[str, int]:
        return {title: workshop.occupied_seats for title, workshop in self._workshops.items()}

    def stats_by_age_bracket_per_workshop(self, reference_date: date) -> dict[str, dict[str, float]]:
        stats: dict[str, dict[str, float]] = {}
        for title, workshop in self._workshops.items():
            total = workshop.occupied_seats
            if total == 0:
                stats[title] = {MINOR: 0.0, ADULT: 0.0}
                continue
            minors = len(self.minors_in(title, reference_date))
            minor_pct = minors / total * 100
            stats[title] = {MINOR: minor_pct, ADULT: 100.0 - minor_pct}
        return stats

    def dump_workshops(self) -> dict[str, Workshop]:
        return {title: workshop.copy() for title, workshop in self._workshops.items()}

    def dump_participants(self) -> list[str]:
        return [participant.to_line() for participant in self._participants.values()]
