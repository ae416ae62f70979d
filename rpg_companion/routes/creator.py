"""Character creator endpoints: field templates, prompt preview, generation, export."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from rpg_companion.export import content_disposition, export_as_json, export_as_text, export_filename
from rpg_companion.field_templates import (
    delete_template,
    get_template,
    list_templates,
    parse_template,
    save_template,
)
from rpg_companion.generation import (
    GenerationConfigError,
    GenerationServices,
    ResponseFormatError,
    create_character,
    generate_field,
    options_from_settings,
    select_route,
)
from rpg_companion.llm import LLMError
from rpg_companion.models import CreatorTemplate, FieldDefinition, GenerationOptions
from rpg_companion.prompts import build_creation_prompt, parse_creation_response
from rpg_companion.storage import SettingsStore

from .deps import get_services, get_store
from .models import CreateCharacterBody, CreatorOptions, ExportBody, GenerateFieldBody, SaveTemplateBody

router = APIRouter()


def _options(store: SettingsStore, overrides: CreatorOptions) -> GenerationOptions:
    return options_from_settings(store.settings, **overrides.model_dump())


def _fields(store: SettingsStore, body: CreateCharacterBody) -> list[FieldDefinition]:
    if body.fields:
        return body.fields
    name = body.template or store.settings.character_creator.default_template
    template = get_template(store, name)
    if template is None:
        raise HTTPException(404, f"Template not found: {name}")
    return template.fields


# ── Field templates ──────────────────────────────────────


@router.get("/creator/templates")
async def list_field_templates(store: SettingsStore = Depends(get_store)):
    return [t.model_dump() for t in list_templates(store)]


@router.get("/creator/templates/{name}")
async def get_field_template(name: str, store: SettingsStore = Depends(get_store)):
    template = get_template(store, name)
    if template is None:
        raise HTTPException(404, "Template not found")
    return template.model_dump()


@router.put("/creator/templates/{name}")
async def save_field_template(name: str, body: SaveTemplateBody, store: SettingsStore = Depends(get_store)):
    """Save a template from a field list or from "**Field:**" text."""
    fields = body.fields if body.fields is not None else parse_template(body.text or "")
    try:
        template = save_template(store, CreatorTemplate(name=name, fields=fields))
    except ValueError as e:
        raise HTTPException(400, str(e))
    return template.model_dump()


@router.delete("/creator/templates/{name}")
async def delete_field_template(name: str, store: SettingsStore = Depends(get_store)):
    if not delete_template(store, name):
        raise HTTPException(404, "Template not found")
    return {"ok": True}


# ── Generation ───────────────────────────────────────────


@router.post("/creator/prompt")
async def preview_prompt(
    body: CreateCharacterBody,
    store: SettingsStore = Depends(get_store),
    services: GenerationServices = Depends(get_services),
):
    """The prompt that /creator/generate would send, and the route it would take."""
    fields = _fields(store, body)
    prompt = await build_creation_prompt(
        body.concept, fields, body.context.to_host(), _options(store, body.options)
    )
    route = select_route(store.settings, services)
    return {"prompt": prompt, "route": type(route).__name__}


@router.post("/creator/generate")
async def generate_character(
    body: CreateCharacterBody,
    store: SettingsStore = Depends(get_store),
    services: GenerationServices = Depends(get_services),
):
    """Generate a full character; returns the raw reply and the parsed fields."""
    fields = _fields(store, body)
    try:
        text = await create_character(
            body.concept,
            fields,
            host=body.context.to_host(),
            settings=store.settings,
            services=services,
            options=_options(store, body.options),
        )
    except GenerationConfigError as e:
        raise HTTPException(400, str(e))
    except (LLMError, ResponseFormatError) as e:
        raise HTTPException(502, str(e))
    return {"text": text, "data": parse_creation_response(text, fields)}


@router.post("/creator/field")
async def regenerate_field(
    body: GenerateFieldBody,
    store: SettingsStore = Depends(get_store),
    services: GenerationServices = Depends(get_services),
):
    try:
        value = await generate_field(
            body.concept,
            body.field_name,
            field=FieldDefinition(name=body.field_name, description=body.description),
            current_data=body.current_data,
            host=body.context.to_host(),
            settings=store.settings,
            services=services,
            options=_options(store, body.options),
        )
    except GenerationConfigError as e:
        raise HTTPException(400, str(e))
    except (LLMError, ResponseFormatError) as e:
        raise HTTPException(502, str(e))
    return {"field": body.field_name, "value": value}


@router.post("/creator/export", response_class=PlainTextResponse)
async def export_character(body: ExportBody):
    """Download character data as text or JSON."""
    if body.format not in ("text", "json"):
        raise HTTPException(400, f"Unknown export format: {body.format}")
    if body.format == "json":
        content, media_type = export_as_json(body.data), "application/json"
    else:
        content, media_type = export_as_text(body.data), "text/plain"
    filename = export_filename(body.data, body.format)
    return PlainTextResponse(
        content,
        media_type=media_type,
        headers={"Content-Disposition": content_disposition(filename)},
    )
