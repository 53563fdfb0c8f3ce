"""Change event data structures delivered to downstream consumers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from tagwatch.models.images import TaggedImage

EVENT_SOURCE = "tagwatch"
ARTIFACT_TYPE = "docker"


@dataclass(frozen=True)
class ImageArtifact:
    """Normalized artifact descriptor for a tagged image.

    ``reference`` is ``<repository>:<tag>``; ``location`` is the fully
    qualified ``<registry>/<repository>:<tag>``.
    """

    name: str
    version: str
    reference: str
    location: str
    type: str = ARTIFACT_TYPE
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ImageChangeEvent:
    """Emitted when a tag is first observed or its digest changes."""

    account: str
    registry: str
    repository: str
    tag: str
    digest: str | None
    artifact: ImageArtifact
    previous_digest: str | None = None
    event_id: str = field(default_factory=lambda: str(uuid4()))
    detected_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @classmethod
    def from_image(cls, image: TaggedImage, previous_digest: str | None = None) -> ImageChangeEvent:
        artifact = ImageArtifact(
            name=image.repository,
            version=image.tag,
            reference=image.reference,
            location=image.location,
            metadata={"registry": image.registry},
        )
        return cls(
            account=image.account,
            registry=image.registry,
            repository=image.repository,
            tag=image.tag,
            digest=image.digest,
            artifact=artifact,
            previous_digest=previous_digest,
        )

    def to_payload(self) -> dict[str, object]:
        """Serialise to the JSON body posted to event consumers."""
        return {
            "details": {
                "type": ARTIFACT_TYPE,
                "source": EVENT_SOURCE,
                "event_id": self.event_id,
                "detected_at": self.detected_at.isoformat(),
            },
            "content": {
                "account": self.account,
                "registry": self.registry,
                "repository": self.repository,
                "tag": self.tag,
                "digest": self.digest,
                "previous_digest": self.previous_digest,
            },
            "artifact": {
                "type": self.artifact.type,
                "name": self.artifact.name,
                "version": self.artifact.version,
                "reference": self.artifact.reference,
                "location": self.artifact.location,
                "metadata": dict(self.artifact.metadata),
            },
        }
