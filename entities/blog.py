"""Blog entities: posts written by authors and grouped by tags"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.entry import CommonSection, EntryBase


post_tags = Table(
    "blog_post_tags",
    EntryBase.metadata,
    Column("post_id", Integer, ForeignKey("blog_posts.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("blog_tags.id", ondelete="CASCADE"), primary_key=True),
)


class Author(CommonSection, EntryBase):
    __tablename__ = "blog_authors"

    FIELDS = {
        "name": {"handle": "name", "type": "TextInput"},
        "slug": {"handle": "slug", "type": "Slug"},
        "email": {"handle": "email", "type": "Email"},
    }
    DEFAULT_FIELD = "name"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    posts: Mapped[list["Post"]] = relationship("Post", back_populates="author")


class Tag(CommonSection, EntryBase):
    __tablename__ = "blog_tags"

    FIELDS = {
        "title": {"handle": "title", "type": "TextInput"},
        "slug": {"handle": "slug", "type": "Slug"},
    }
    DEFAULT_FIELD = "title"

    title: Mapped[str] = mapped_column(String(200), nullable=False)


class Post(CommonSection, EntryBase):
    __tablename__ = "blog_posts"

    FIELDS = {
        "title": {"handle": "title", "type": "TextInput"},
        "slug": {"handle": "slug", "type": "Slug"},
        "body": {"handle": "body", "type": "TextArea"},
        "published": {"handle": "published", "type": "DateTimeField"},
        "views": {"handle": "views", "type": "Number"},
        "featured": {"handle": "featured", "type": "Checkbox"},
        "author": {"handle": "author", "type": "Relationship", "kind": "many-to-one", "to": "author"},
        "tags": {"handle": "tags", "type": "Relationship", "kind": "many-to-many", "to": "tag"},
    }
    DEFAULT_FIELD = "title"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    published: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    views: Mapped[int] = mapped_column(Integer, default=0)
    featured: Mapped[bool] = mapped_column(Boolean, default=False)

    author_id: Mapped[Optional[int]] = mapped_column(ForeignKey("blog_authors.id"), nullable=True)
    author: Mapped[Optional[Author]] = relationship(Author, back_populates="posts")
    tags: Mapped[list[Tag]] = relationship(Tag, secondary=post_tags)

    def get_excerpt(self) -> str:
        return (self.body or "")[:120]
