"""Workshop enrollment package: participants, workshops and their registry."""

from . import data_loader
from .models import Participant, Workshop
from .registry import ParticipantSummary, RegistrationError, Registry

__all__ = [
    "data_loader",
    "Participant",
    "Workshop",
    "ParticipantSummary",
    "RegistrationError",
    "Registry",
]
