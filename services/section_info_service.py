"""Section info - field configuration of a section for building forms in clients"""

from copy import deepcopy
from typing import Any, Optional

from core.logging_config import get_logger
from models.entry import CommonSection
from schemas.section import SectionRead
from services.entity_registry import EntityRegistry
from services.field_projector import FieldProjector
from services.relationship_hydrator import (
    EntryReader,
    RelationshipErrorPolicy,
    RelationshipHydrator,
    parse_relationship_options,
)

logger = get_logger(__name__)


class SectionInfo:
    """An info payload under construction together with its projector"""

    def __init__(self, data: dict[str, Any], projector: FieldProjector):
        self.data = data
        self.projector = projector

    def map_entry(self, entry: CommonSection) -> dict[str, Any]:
        self.projector.map_entry(self.data.get("fields", []), entry)
        return self.data


class SectionInfoService:
    def __init__(
        self,
        storage: EntryReader,
        entities: EntityRegistry,
        policy: RelationshipErrorPolicy = RelationshipErrorPolicy.EMPTY
    ):
        self.storage = storage
        self.entities = entities
        self.policy = RelationshipErrorPolicy(policy)

    def build(
        self,
        section: SectionRead,
        allow_list: Optional[list[str]] = None,
        options: Optional[str] = None,
        entry_id: Optional[int] = None
    ) -> SectionInfo:
        """
        Build ``{name, handle, fields, ...section config}``.

        ``fields`` holds one ``{property: config}`` pair per field in declared
        order, relationship fields carry their related entries.
        """
        entity_class = self.entities.get_entity_class(section.entity_class)
        projector = FieldProjector(section, entity_class)
        hydrator = RelationshipHydrator(self.storage, self.policy, parse_relationship_options(options))

        def hydrate(property_name, field, blob):
            return hydrator.hydrate(property_name, blob, section.handle, entry_id)

        data: dict[str, Any] = {"name": section.name, "handle": section.handle}
        projected = projector.project(allow_list, hydrate=hydrate)

        data.update(deepcopy(section.config))
        data["fields"] = projector.clean(projector.order(projected, allow_list))
        data.pop("section", None)

        logger.debug(f"Built info for section {section.handle} with {len(data['fields'])} fields")
        return SectionInfo(data, projector)
