import json
from pathlib import Path

import typer

from fastapi import HTTPException
from typer import Option

from core.logging_config import setup_logging
from schemas.section import SectionCreate

app = typer.Typer()


@app.command()
def init_db():
    """Create the section registry tables and the tables of all entity modules"""
    from db.session import create_tables
    from services.entity_registry import get_entity_registry

    get_entity_registry().load_entity_modules()
    create_tables()
    typer.echo("Tables created")


@app.command()
def create_section(path: Path = typer.Argument(..., exists=True, dir_okay=False)):
    """Register a section from a JSON file (see schemas.section.SectionCreate)"""
    from db.session import db_context
    from repositories.section_repository import SectionRepository

    section_data = SectionCreate.model_validate_json(path.read_text(encoding="utf-8"))
    with db_context() as db:
        try:
            section = SectionRepository(db).create(section_data)
        except HTTPException as e:
            typer.echo(e.detail, err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Created section {section.handle} ({section.entity_class})")


@app.command()
def sections():
    """List the registered sections"""
    from db.session import db_context
    from repositories.section_repository import SectionRepository

    with db_context() as db:
        for section in SectionRepository(db).list_sections():
            typer.echo(f"{section.handle}\t{section.entity_class}\t{', '.join(section.declared_fields)}")


@app.command()
def info(
    handle: str,
    entry_id: int = Option(None, "--id"),
    options: str = Option(None, "--options"),
):
    """Print the section info payload"""
    from db.session import db_context
    from repositories.entry_repository import EntryRepository
    from repositories.section_repository import SectionRepository
    from services.entity_registry import get_entity_registry
    from services.entry_resolver import EntryResolver
    from services.rest_orchestrator import RestOrchestrator
    from services.section_info_service import SectionInfoService
    from services.serializer import Serializer
    from services.cache_service import MemoryCacheStore
    from services.api_request import ApiRequest
    from api.v1.section.dependencies import info_variant

    variant = info_variant()
    with db_context() as db:
        entities = get_entity_registry()
        sections = SectionRepository(db)
        storage = EntryRepository(db, sections, entities)
        orchestrator = RestOrchestrator(
            sections=sections,
            resolver=EntryResolver(storage),
            info=SectionInfoService(storage, entities, variant.relationship_error_policy),
            serializer=Serializer(),
            cache_store=MemoryCacheStore(),
            variant=variant,
        )
        request = ApiRequest(params={"options": options} if options else {})
        response = orchestrator.get_info(request, handle, entry_id)

    typer.echo(json.dumps(response.data, indent=2, default=str))
    if response.status_code >= 400:
        raise typer.Exit(code=1)


@app.command()
def cache_clear():
    """Drop every cached response"""
    from services.cache_service import get_cache_store

    get_cache_store().clear()
    typer.echo("Cache cleared")


if __name__ == "__main__":
    setup_logging()
    app()
