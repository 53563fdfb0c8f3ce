"""Core data structures for TagWatch."""

from tagwatch.models.config import TagWatchConfig
from tagwatch.models.events import ImageArtifact, ImageChangeEvent
from tagwatch.models.images import RegistryAccount, TaggedImage
from tagwatch.models.results import (
    AccountPollResult,
    ImageDecision,
    ImageOutcome,
    PollResult,
)

__all__ = [
    "AccountPollResult",
    "ImageArtifact",
    "ImageChangeEvent",
    "ImageDecision",
    "ImageOutcome",
    "PollResult",
    "RegistryAccount",
    "TagWatchConfig",
    "TaggedImage",
]
