"""Entity Registry - Runtime resolution of entity classes backing sections"""

from typing import Dict, Optional, Type
import importlib
import inspect

from core.logging_config import get_logger
from core.settings import settings
from models.entry import CommonSection
from services.exceptions import EntityNotRegisteredError

logger = get_logger(__name__)


class EntityRegistry:
    """
    Resolves the dotted ``module.ClassName`` stored on a section to the
    entity class.

    Entity modules are:
    - Listed in ENTITY_MODULES
    - Imported once, so their tables are known to ``EntryBase.metadata``
    - Scanned for CommonSection subclasses
    """
    _instance: Optional['EntityRegistry'] = None
    _entities: Dict[str, Type[CommonSection]] = {}
    _loaded: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load_entity_modules(self, modules: Optional[list[str]] = None) -> None:
        """Import the configured entity modules and register their classes"""
        if self._loaded and modules is None:
            return

        for module_name in (settings.entity_modules if modules is None else modules):
            module = importlib.import_module(module_name)
            for attr_name in dir(module):
                attr = getattr(module, attr_name)
                if (
                    inspect.isclass(attr) and
                    issubclass(attr, CommonSection) and
                    attr.__module__ == module.__name__
                ):
                    self.register(attr)

        self._loaded = True
        logger.info(f"Loaded {len(self._entities)} entity classes")

    def register(self, entity_class: Type[CommonSection]) -> None:
        name = entity_class.qualified_name()
        self._entities[name] = entity_class
        logger.debug(f"Registered entity class: {name}")

    def get_entity_class(self, class_name: str) -> Type[CommonSection]:
        """Get an entity class by its dotted name, importing it when needed"""
        if class_name in self._entities:
            return self._entities[class_name]

        module_name, _, attr_name = class_name.rpartition(".")
        if not module_name:
            raise EntityNotRegisteredError(class_name)
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise EntityNotRegisteredError(class_name) from e

        entity_class = getattr(module, attr_name, None)
        if not (inspect.isclass(entity_class) and issubclass(entity_class, CommonSection)):
            raise EntityNotRegisteredError(class_name)

        self.register(entity_class)
        return entity_class


# Singleton instance
_entity_registry: Optional[EntityRegistry] = None


def get_entity_registry() -> EntityRegistry:
    """Get the singleton EntityRegistry instance"""
    global _entity_registry
    if _entity_registry is None:
        _entity_registry = EntityRegistry()
        _entity_registry.load_entity_modules()
    return _entity_registry
