"""Form service - binds submitted data to entries of a section"""

from datetime import datetime
from typing import Annotated, Any, Mapping, Optional, Type, Union

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, ValidationError, create_model

from core.logging_config import get_logger
from models.entry import CommonSection
from repositories.entry_repository import EntryRepository
from repositories.section_repository import SectionRepository
from schemas.section import FieldRead, SectionRead
from services.entity_registry import EntityRegistry
from services.exceptions import EntryNotFoundError
from services.field_projector import PLURAL_KINDS, handle_to_property_name
from services.read_options import ReadOptions
from utils.slug import slugify

logger = get_logger(__name__)


def _split_ids(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


IdList = Annotated[list[int], BeforeValidator(_split_ids)]

FIELD_TYPES: dict[str, Any] = {
    "TextInput": str,
    "TextArea": str,
    "Slug": str,
    "Number": Union[int, float],
    "Checkbox": bool,
    "DateTimeField": datetime,
    "Email": EmailStr,
}


class BoundForm:
    """
    A section form bound to one entry.

    ``submit`` validates the data and applies it to the entry; with
    ``clear_missing`` fields absent from the data are cleared and required
    fields must be present.
    """

    def __init__(self, section: SectionRead, entity_class: Type[CommonSection], entry: CommonSection, storage: EntryRepository):
        self.section = section
        self.entity_class = entity_class
        self.entry = entry
        self.storage = storage
        self.name = section.handle
        self._errors: dict[str, list[str]] = {}
        self._submitted = False
        self._properties = {
            field.handle: handle_to_property_name(field, entity_class.FIELDS) for field in section.fields
        }

    def _model(self, partial: bool) -> Type[BaseModel]:
        definitions = {}
        for field in self.section.fields:
            property_name = self._properties[field.handle]
            annotation = self._annotation(field)
            required = bool(field.config.get("required")) and not partial
            aliases = AliasChoices(property_name, field.handle)
            definitions[property_name] = (
                annotation if required else Optional[annotation],
                Field(... if required else None, validation_alias=aliases)
            )
        return create_model(
            f"{self.entity_class.__name__}Form",
            __config__=ConfigDict(extra="ignore"),
            **definitions
        )

    @staticmethod
    def _annotation(field: FieldRead) -> Any:
        if field.is_relationship:
            return IdList if field.config.get("kind") in PLURAL_KINDS else int
        annotation = FIELD_TYPES.get(field.field_type, Any)
        if annotation is str:
            return annotation
        return Annotated[annotation, BeforeValidator(_blank_to_none)]

    def submit(self, data: Optional[Mapping[str, Any]], clear_missing: bool = True) -> None:
        self._submitted = True
        self._errors = {}
        data = dict(data or {})

        try:
            validated = self._model(partial=not clear_missing).model_validate(data)
        except ValidationError as e:
            for error in e.errors():
                name = str(error["loc"][0]) if error["loc"] else self.name
                name = self._properties.get(name, name)
                self._errors.setdefault(name, []).append(error["msg"])
            return

        values = validated.model_dump()
        submitted = validated.model_fields_set

        for field in self.section.fields:
            property_name = self._properties[field.handle]
            if property_name not in submitted:
                if clear_missing and self.entry.get_field(property_name) not in (None, []):
                    setattr(self.entry, property_name, [] if field.config.get("kind") in PLURAL_KINDS else None)
                continue

            value = values[property_name]
            if field.is_relationship:
                value = self._related(field, property_name, value)
                if property_name in self._errors:
                    continue
            setattr(self.entry, property_name, value)

        self._generate_slugs()

    def _related(self, field: FieldRead, property_name: str, value: Any) -> Any:
        plural = field.config.get("kind") in PLURAL_KINDS
        if value in (None, []):
            return [] if plural else None

        ids = value if plural else [value]
        try:
            related = self.storage.read(ReadOptions.from_array({
                ReadOptions.SECTION: field.config.get("to"),
                ReadOptions.FIELD: {"id": ids},
                ReadOptions.LIMIT: len(ids),
            }))
        except EntryNotFoundError:
            related = []

        missing = set(ids) - {entry.id for entry in related}
        if missing:
            self._errors.setdefault(property_name, []).append(
                f"Related entry not found: {', '.join(str(entry_id) for entry_id in sorted(missing))}"
            )
            return None
        return related if plural else related[0]

    def _generate_slugs(self) -> None:
        for field in self.section.fields:
            generator = field.config.get("generator")
            if field.field_type != "Slug" or not generator:
                continue
            property_name = self._properties[field.handle]
            if self.entry.get_field(property_name):
                continue
            sources = [generator] if isinstance(generator, str) else list(generator)
            slug = slugify(*(
                self.entry.get_field(self.entity_class.property_for_handle(handle) or handle) for handle in sources
            ))
            if slug:
                setattr(self.entry, property_name, slug)

    def is_submitted(self) -> bool:
        return self._submitted

    def is_valid(self) -> bool:
        return self._submitted and not self._errors

    def get_data(self) -> CommonSection:
        return self.entry

    def get_errors(self) -> dict[str, list[str]]:
        return dict(self._errors)


class FormService:
    def __init__(self, sections: SectionRepository, storage: EntryRepository, entities: EntityRegistry):
        self.sections = sections
        self.storage = storage
        self.entities = entities

    def build_form_for_section(
        self,
        section_handle: str,
        request: Any = None,
        prefill: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None
    ) -> BoundForm:
        """
        Build the form for a new entry, or for the entry selected by
        ``prefill`` (``{"id": ...}`` or ``{"slug": ...}``).
        """
        section = self.sections.read_by_handle(section_handle)
        entity_class = self.entities.get_entity_class(section.entity_class)

        if prefill:
            entry = self.storage.read(ReadOptions.from_array({
                ReadOptions.SECTION: section_handle,
                **dict(prefill),
            }))[0]
        else:
            entry = entity_class()

        return BoundForm(section, entity_class, entry, self.storage)


def get_form_service(storage: EntryRepository) -> FormService:
    """Form service over the same sections and entities as the storage"""
    return FormService(storage.sections, storage, storage.entities)
