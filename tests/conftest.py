from types import SimpleNamespace
from typing import Generator
from datetime import datetime
import pytest
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from fastapi.testclient import TestClient
from faker import Faker

from main import app
from models.base import Base
from models import EntryBase
from entities.blog import Author, Post, Tag
from db.session import get_db
from repositories.section_repository import SectionRepository
from schemas.section import FieldCreate, SectionCreate
from services.cache_service import reset_cache_store
from core.auth.factory import reset_auth_provider
from api.v1.section.dependencies import reset_hook_registry

fake = Faker()

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={
        "check_same_thread": False,
    },
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


AUTHOR_SECTION = SectionCreate(
    handle="author",
    name="Author",
    entity_class="entities.blog.Author",
    default="name",
    fields=[
        FieldCreate(handle="name", name="Name", field_type="TextInput", config={"required": True}),
        FieldCreate(handle="slug", name="Slug", field_type="Slug", config={"generator": "name"}),
        FieldCreate(handle="email", name="Email", field_type="Email"),
    ],
)

TAG_SECTION = SectionCreate(
    handle="tag",
    name="Tag",
    entity_class="entities.blog.Tag",
    default="title",
    fields=[
        FieldCreate(handle="title", name="Title", field_type="TextInput", config={"required": True}),
        FieldCreate(handle="slug", name="Slug", field_type="Slug", config={"generator": "title"}),
    ],
)

# Fields are resolved in this order, responses follow field_order
POST_SECTION = SectionCreate(
    handle="post",
    name="Blog post",
    entity_class="entities.blog.Post",
    default="title",
    fields=[
        FieldCreate(handle="title", name="Title", field_type="TextInput", config={"required": True}),
        FieldCreate(handle="slug", name="Slug", field_type="Slug", config={"generator": "title"}),
        FieldCreate(
            handle="author",
            name="Author",
            field_type="Relationship",
            config={
                "to": "author",
                "kind": "many-to-one",
                "form": {"instructions": {"relationship": {"name-expression": "name", "limit": 10}}},
            },
        ),
        FieldCreate(
            handle="tags",
            name="Tags",
            field_type="Relationship",
            config={"to": "tag", "kind": "many-to-many"},
        ),
        FieldCreate(handle="body", name="Body", field_type="TextArea"),
        FieldCreate(handle="published", name="Published", field_type="DateTimeField"),
        FieldCreate(handle="views", name="Views", field_type="Number"),
        FieldCreate(handle="featured", name="Featured", field_type="Checkbox"),
    ],
    field_order=["title", "slug", "body", "published", "views", "featured", "author", "tags"],
    extra_config={"icon": "pencil"},
)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Every test starts with an empty cache and no registered listeners."""
    reset_cache_store()
    reset_auth_provider()
    reset_hook_registry()
    yield
    reset_cache_store()
    reset_auth_provider()
    reset_hook_registry()


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a test database session."""
    Base.metadata.create_all(bind=engine)
    EntryBase.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        EntryBase.metadata.drop_all(bind=engine)
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database session override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def blog_sections(db_session: Session) -> SectionRepository:
    """Register the author, tag and post sections."""
    repository = SectionRepository(db_session)
    for section_data in (AUTHOR_SECTION, TAG_SECTION, POST_SECTION):
        repository.create(section_data)
    return repository


@pytest.fixture
def blog_entries(db_session: Session, blog_sections: SectionRepository) -> SimpleNamespace:
    """One author, two tags and three posts."""
    author = Author(name="Jane Doe", slug="jane-doe", email=fake.email())
    python = Tag(title="Python", slug="python")
    web = Tag(title="Web", slug="web")

    first = Post(
        title="First post",
        slug="first-post",
        body=fake.paragraph(),
        views=10,
        published=datetime(2024, 1, 1, 10, 0),
        author=author,
        tags=[python],
    )
    second = Post(title="Second post", slug="second-post", views=3, author=author, tags=[python, web])
    third = Post(title="Third post", slug="third-post", views=0)

    db_session.add_all([author, python, web, first, second, third])
    db_session.commit()

    return SimpleNamespace(author=author, python=python, web=web, first=first, second=second, third=third)
