import threading
import uuid

import structlog

from .errors import NotFoundError, ValidationError
from .logic import validate_source_type, validate_text
from .models import PERSONAL_SOURCE_ID, UNKNOWN_SOURCE_LABEL, Source


logger = structlog.get_logger(__name__)

PERSONAL_SOURCE = Source(
    id=PERSONAL_SOURCE_ID,
    name="Personal",
    type="PERSONAL",
    description="Primary personal income and expenses",
)


class SourceRegistry:
    """Income sources transactions are attributed to, kept per owner.

    Every owner starts with the personal source, which survives every delete.
    One owner never sees or removes another owner's sources.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._by_owner: dict[str, dict[str, Source]] = {}

    def _owned(self, owner_id: str) -> dict[str, Source]:
        # caller holds the lock
        sources = self._by_owner.get(owner_id)
        if sources is None:
            sources = {PERSONAL_SOURCE.id: PERSONAL_SOURCE}
            self._by_owner[owner_id] = sources
        return sources

    def list_sources(self, owner_id: str) -> list[Source]:
        with self._lock:
            return list(self._owned(owner_id).values())

    def get_source(self, owner_id: str, source_id: str) -> Source | None:
        with self._lock:
            return self._owned(owner_id).get(source_id)

    def add_source(
        self,
        owner_id: str,
        name,
        *,
        type="SIDE_HUSTLE",
        platform=None,
        description=None,
    ) -> Source:
        errors = {}
        try:
            name = validate_text(name, "name", required=True).strip()
        except ValueError as exc:
            errors["name"] = str(exc)
        try:
            validate_source_type(type)
        except ValueError as exc:
            errors["type"] = str(exc)
        for field, value in (("platform", platform), ("description", description)):
            if value is not None and not isinstance(value, str):
                errors[field] = f"{field} must be a string"
        if errors:
            raise ValidationError(errors)

        with self._lock:
            sources = self._owned(owner_id)
            source_id = uuid.uuid4().hex[:12]
            while source_id in sources:
                source_id = uuid.uuid4().hex[:12]
            source = Source(
                id=source_id,
                name=name,
                type=type,
                platform=platform or None,
                description=description or None,
            )
            sources[source_id] = source

        logger.info("source_added", owner_id=owner_id, source_id=source_id, name=name)
        return source

    def delete_source(self, owner_id: str, source_id: str) -> bool:
        """Remove one of the owner's sources, leaving its transactions in place.

        Returns False when asked to remove the personal source, which is
        kept.
        """
        if source_id == PERSONAL_SOURCE_ID:
            logger.info("personal_source_delete_ignored", owner_id=owner_id)
            return False
        with self._lock:
            sources = self._owned(owner_id)
            if source_id not in sources:
                raise NotFoundError("Source not found")
            del sources[source_id]
        logger.info("source_deleted", owner_id=owner_id, source_id=source_id)
        return True

    def source_label(self, owner_id: str, source_id: str) -> str:
        source = self.get_source(owner_id, source_id)
        return source.name if source else UNKNOWN_SOURCE_LABEL
