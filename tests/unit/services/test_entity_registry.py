import pytest

from entities.blog import Author, Post, Tag
from services.entity_registry import EntityRegistry
from services.exceptions import EntityNotRegisteredError


@pytest.mark.unit
class TestEntityRegistry:

    def setup_method(self):
        self.registry = EntityRegistry()

    def test_singleton(self):
        """Test the registry is a singleton."""
        assert EntityRegistry() is self.registry

    def test_load_entity_modules(self):
        """Test loading entity modules registers their classes."""
        self.registry.load_entity_modules(["entities.blog"])

        assert self.registry.get_entity_class("entities.blog.Author") is Author
        assert self.registry.get_entity_class("entities.blog.Tag") is Tag

    def test_imports_on_demand(self):
        """Test resolving a class from a module that wasn't loaded yet."""
        assert self.registry.get_entity_class("entities.blog.Post") is Post

    def test_unknown_module(self):
        """Test resolving a class from a module that doesn't exist."""
        with pytest.raises(EntityNotRegisteredError):
            self.registry.get_entity_class("entities.shop.Product")

    def test_not_an_entity(self):
        """Test resolving a name that isn't an entity class."""
        with pytest.raises(EntityNotRegisteredError):
            self.registry.get_entity_class("entities.blog.post_tags")

    def test_undotted_name(self):
        """Test resolving a name without a module."""
        with pytest.raises(EntityNotRegisteredError) as exc_info:
            self.registry.get_entity_class("Post")

        assert exc_info.value.class_name == "Post"
