"""Utilities to load and save the enrollment data files."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Callable, Iterable, Mapping, Sequence, TextIO

from .models import MAX_CHOICES, Participant, Workshop, default_workshops
from .registry import Registry

logger = logging.getLogger(__name__)


class DataLoaderError(RuntimeError):
    """Raised when a data file cannot be parsed correctly."""


DataSource = str | Path | TextIO

WORKSHOP_COLUMNS = ["title", "max_seats", "enrolled_ids"]


def _check_workshop_columns(fieldnames: Sequence[str] | None, *, file_label: str) -> None:
    absent = sorted(set(WORKSHOP_COLUMNS).difference(fieldnames or ()))
    if absent:
        raise DataLoaderError(f"Faltam colunas em '{file_label}': {', '.join(absent)}")


def _is_missing(source: DataSource) -> bool:
    return isinstance(source, (str, Path)) and not Path(source).exists()


def _open_source(source: DataSource) -> tuple[TextIO, Callable[[], None], str]:
    if isinstance(source, (str, Path)):
        path = Path(source)
        fh = path.open(newline="", encoding="utf-8-sig")
        file_label = str(path)

        def closer() -> None:
            fh.close()

    else:
        fh = source
        if hasattr(fh, "seek"):
            fh.seek(0)
        file_label = getattr(fh, "name", "<arquivo carregado>")

        def closer() -> None:  # pragma: no cover - simple passthrough
            return None

    return fh, closer, file_label


def _write_staged(path: Path, write: Callable[[TextIO], None]) -> Path:
    """Write into a sibling ``.tmp`` file and return it; the caller swaps it in."""
    path.parent.mkdir(parents=True, exist_ok=True)
    staged = path.with_name(path.name + ".tmp")
    try:
        with staged.open("w", newline="", encoding="utf-8") as fh:
            write(fh)
    except Exception:
        staged.unlink(missing_ok=True)
        raise
    return staged


def _save(target: DataSource, write: Callable[[TextIO], None]) -> None:
    if isinstance(target, (str, Path)):
        _write_staged(Path(target), write).replace(target)
    else:
        write(target)


def load_workshops(source: DataSource) -> dict[str, Workshop] | None:
    """Read the workshops CSV. Returns ``None`` when the file does not exist."""
    if _is_missing(source):
        logger.info("Workshops file %s not found", source)
        return None

    fh, closer, label = _open_source(source)
    try:
        reader = csv.DictReader(fh)
        _check_workshop_columns(reader.fieldnames, file_label=label)
        workshops: dict[str, Workshop] = {}
        for row in reader:
            title = (row.get("title") or "").strip()
            if not title:
                continue
            try:
                max_seats = int(row["max_seats"])
            except (TypeError, ValueError) as exc:
                raise DataLoaderError(
                    f"A capacidade da oficina '{title}' tem de ser numérica"
                ) from exc
            enrolled_ids = [
                national_id.strip()
                for national_id in (row.get("enrolled_ids") or "").split(",")
                if national_id.strip()
            ]
            try:
                workshops[title] = Workshop(title=title, max_seats=max_seats, enrolled_ids=enrolled_ids)
            except ValueError as exc:
                raise DataLoaderError(str(exc)) from exc
    finally:
        closer()
    logger.info("Loaded %d workshops from %s", len(workshops), label)
    return workshops


def load_participants(source: DataSource) -> list[Participant]:
    """Read the participants text file, one ``;``-separated record per line.

    Malformed lines and repeated national ids are skipped with a warning so
    the rest of the file still loads. A missing file yields an empty list.
    """
    if _is_missing(source):
        logger.info("Participants file %s not found", source)
        return []

    fh, closer, label = _open_source(source)
    participants: list[Participant] = []
    seen: set[str] = set()
    try:
        for line_number, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                participant = Participant.from_line(line)
            except ValueError as exc:
                logger.warning("Skipping %s line %d: %s", label, line_number, exc)
                continue
            if participant.national_id in seen:
                logger.warning(
                    "Skipping %s line %d: national id %s already loaded",
                    label,
                    line_number,
                    participant.national_id,
                )
                continue
            seen.add(participant.national_id)
            participants.append(participant)
    finally:
        closer()
    logger.info("Loaded %d participants from %s", len(participants), label)
    return participants


def reconcile(
    workshops: Mapping[str, Workshop], participants: Sequence[Participant]
) -> tuple[dict[str, Workshop], list[Participant]]:
    """Drop loaded records that disagree with each other.

    A participant survives only when it has 1 to ``MAX_CHOICES`` distinct,
    known titles and every one of those workshops lists its id. Workshop
    lists then lose ids of dropped or unknown participants and are cut to
    capacity; anyone cut that way is dropped as well.
    """
    workshops = {title: workshop.copy() for title, workshop in workshops.items()}
    kept: dict[str, Participant] = {}
    for participant in participants:
        titles = participant.enrolled_workshop_titles
        if not 1 <= len(titles) <= MAX_CHOICES or len(set(titles)) != len(titles):
            reason = f"{len(titles)} workshops"
        elif any(title not in workshops for title in titles):
            reason = "unknown workshop"
        elif any(participant.national_id not in workshops[title].enrolled_ids for title in titles):
            reason = "missing from a workshop list"
        else:
            kept[participant.national_id] = participant
            continue
        logger.warning("Dropping participant %s: %s", participant.national_id, reason)

    for title, workshop in workshops.items():
        ids = [
            national_id
            for national_id in dict.fromkeys(workshop.enrolled_ids)
            if national_id in kept and title in kept[national_id].enrolled_workshop_titles
        ]
        if len(ids) > workshop.max_seats:
            for national_id in ids[workshop.max_seats:]:
                logger.warning("Dropping participant %s: over capacity in %s", national_id, title)
                del kept[national_id]
            ids = ids[: workshop.max_seats]
        workshop.enrolled_ids = ids

    for workshop in workshops.values():
        workshop.enrolled_ids = [national_id for national_id in workshop.enrolled_ids if national_id in kept]
    return workshops, list(kept.values())


def load_registry(workshops_source: DataSource, participants_source: DataSource) -> Registry:
    try:
        workshops = load_workshops(workshops_source)
    except DataLoaderError as exc:
        logger.warning("Could not read workshops, using defaults: %s", exc)
        workshops = None
    if workshops is None:
        workshops = default_workshops()
    workshops, participants = reconcile(workshops, load_participants(participants_source))
    return Registry(workshops.values(), participants)


def _write_workshop_rows(fh: TextIO, workshops: Mapping[str, Workshop]) -> None:
    writer = csv.DictWriter(fh, fieldnames=WORKSHOP_COLUMNS)
    writer.writeheader()
    for workshop in workshops.values():
        writer.writerow(
            {
                "title": workshop.title,
                "max_seats": workshop.max_seats,
                "enrolled_ids": ",".join(workshop.enrolled_ids),
            }
        )


def _write_participant_lines(fh: TextIO, lines: Iterable[str]) -> None:
    for line in lines:
        fh.write(line + "\n")


def save_workshops(workshops: Mapping[str, Workshop], target: DataSource) -> None:
    _save(target, lambda fh: _write_workshop_rows(fh, workshops))


def save_participants(lines: Iterable[str], target: DataSource) -> None:
    _save(target, lambda fh: _write_participant_lines(fh, lines))


def save_registry(registry: Registry, workshops_path: str | Path, participants_path: str | Path) -> None:
    """Write both files, replacing the old pair only once both are complete."""
    workshops = registry.dump_workshops()
    lines = registry.dump_participants()
    staged_participants = _write_staged(Path(participants_path), lambda fh: _write_participant_lines(fh, lines))
    try:
        staged_workshops = _write_staged(Path(workshops_path), lambda fh: _write_workshop_rows(fh, workshops))
    except Exception:
        staged_participants.unlink(missing_ok=True)
        raise
    staged_participants.replace(participants_path)
    staged_workshops.replace(workshops_path)
    logger.info("Saved %d workshops and %d participants", len(workshops), len(lines))
