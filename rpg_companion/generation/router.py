"""Generation routing: managed connection profile or legacy backend.

Route selection is resolved once per request into one of:

    ManagedRoute(profile_id)  a connection profile is configured, the
                              connection manager and its registry are
                              present, and the id resolves
    LegacyExternalRoute       otherwise, when generation_mode == "external"
    LegacyInternalRoute       otherwise

An unresolved profile id is not an error: the request degrades to the
legacy path. Only a profile that disappears between selection and dispatch
raises ConnectionProfileNotFoundError.

Managed path: chat-style messages (system + recent history + prompt),
max tokens = override > character_creator.max_tokens > 2048. Presets are not
consulted; the connection profile governs sampling, so temperature
overrides are logged and ignored.

Legacy path: flat prompt, max tokens through the full resolver chain in
params.py.

Collaborator errors are logged and re-raised unchanged; there are no retries.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from rpg_companion.generation.params import DEFAULT_MAX_TOKENS, resolve_max_tokens
from rpg_companion.llm import ConnectionManager, ExternalGenerator, PresetManager, RawGenerator
from rpg_companion.models import ChatEntry, ExtensionSettings, GenerationOptions, Message
from rpg_companion.prompts import SYSTEM_PROMPT, build_messages

logger = logging.getLogger(__name__)


class GenerationConfigError(RuntimeError):
    """The selected generation path cannot be used with the current configuration."""


class ConnectionProfileNotFoundError(GenerationConfigError):
    """The managed connection profile vanished between route selection and dispatch."""


class ResponseFormatError(RuntimeError):
    """The managed backend returned something that is neither text nor {content: text}."""


@dataclass
class GenerationServices:
    """Collaborators available for this request. Any of them may be missing."""

    connection_manager: ConnectionManager | None = None
    external: ExternalGenerator | None = None
    raw: RawGenerator | None = None
    preset_manager: PresetManager | None = None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ManagedRoute:
    profile_id: str
    profile_name: str = ""


@dataclass(frozen=True)
class LegacyExternalRoute:
    reason: str = ""


@dataclass(frozen=True)
class LegacyInternalRoute:
    reason: str = ""


Route = ManagedRoute | LegacyExternalRoute | LegacyInternalRoute


def _registry_entry(registry: Sequence[Any] | None, profile_id: str) -> Any:
    for entry in registry or []:
        entry_id = entry.get("id") if isinstance(entry, Mapping) else getattr(entry, "id", None)
        if entry_id == profile_id:
            return entry
    return None


def _entry_name(entry: Any) -> str:
    name = entry.get("name") if isinstance(entry, Mapping) else getattr(entry, "name", "")
    return name or ""


def _legacy(settings: ExtensionSettings, reason: str) -> Route:
    if settings.generation_mode == "external":
        return LegacyExternalRoute(reason)
    return LegacyInternalRoute(reason)


def select_route(settings: ExtensionSettings, services: GenerationServices) -> Route:
    """Decide which path a request takes. Pure apart from logging."""
    profile_id = settings.character_creator.profile_id
    if not profile_id:
        return _legacy(settings, "no connection profile selected")

    manager = services.connection_manager
    registry = getattr(manager, "profiles", None) if manager is not None else None
    if manager is None or registry is None:
        logger.warning("Connection manager not available, using legacy generation")
        return _legacy(settings, "connection manager not available")

    entry = _registry_entry(registry, profile_id)
    if entry is None:
        # TODO: decide whether an unresolved profile id should fail loudly instead
        logger.warning("Connection profile %r not found, using legacy generation", profile_id)
        return _legacy(settings, f"connection profile {profile_id!r} not found")

    return ManagedRoute(profile_id=profile_id, profile_name=_entry_name(entry))


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def extract_content(response: Any) -> str:
    """Text of a managed response: a bare string or anything exposing `content`."""
    if isinstance(response, str):
        return response
    if isinstance(response, Mapping):
        content = response.get("content")
    else:
        content = getattr(response, "content", None)
    if not isinstance(content, str):
        raise ResponseFormatError("Invalid response format from connection manager")
    return content


async def _dispatch_managed(
    route: ManagedRoute,
    prompt: str,
    settings: ExtensionSettings,
    services: GenerationServices,
    options: GenerationOptions,
    history: Sequence[ChatEntry],
) -> str:
    manager = services.connection_manager
    registry = getattr(manager, "profiles", None) if manager is not None else None
    if manager is None or _registry_entry(registry, route.profile_id) is None:
        raise ConnectionProfileNotFoundError(
            f'Connection profile with ID "{route.profile_id}" not found. '
            "Please select a valid profile in Character Creator settings."
        )

    creator = settings.character_creator
    depth = creator.chat_context_depth
    messages = build_messages(SYSTEM_PROMPT, prompt, history, depth)
    max_tokens = options.max_tokens or creator.max_tokens or DEFAULT_MAX_TOKENS

    if options.temperature is not None:
        logger.warning(
            "Temperature override %s ignored: connection profiles control temperature "
            "through their own preset",
            options.temperature,
        )

    logger.info(
        "managed generation profile=%s (%s) max_tokens=%d depth=%d messages=%d stop=%d",
        route.profile_id, route.profile_name, max_tokens, depth, len(messages),
        len(options.stop_sequences or []),
    )
    try:
        response = await manager.send_request(route.profile_id, messages, max_tokens)
    except Exception:
        logger.exception("Managed generation failed")
        raise
    return extract_content(response)


async def _dispatch_legacy(
    route: LegacyExternalRoute | LegacyInternalRoute,
    prompt: str,
    settings: ExtensionSettings,
    services: GenerationServices,
    options: GenerationOptions,
) -> str:
    max_tokens = resolve_max_tokens(
        options.max_tokens,
        preset_manager=services.preset_manager,
        global_settings=settings.global_generation,
        external_api=settings.external_api,
    )
    external = isinstance(route, LegacyExternalRoute)
    logger.info(
        "legacy generation mode=%s max_tokens=%d stop=%d (%s)",
        "external" if external else "internal", max_tokens,
        len(options.stop_sequences or []), route.reason,
    )

    if external:
        if services.external is None:
            raise GenerationConfigError("External generation mode selected but no external API is configured")
        messages = [
            Message(role="system", content=SYSTEM_PROMPT),
            Message(role="user", content=prompt),
        ]
        try:
            return await services.external(
                messages,
                max_tokens=max_tokens,
                stop=options.stop_sequences,
                temperature=options.temperature,
            )
        except Exception:
            logger.exception("External generation failed")
            raise

    if services.raw is None:
        raise GenerationConfigError("No internal generation backend is configured")
    try:
        return await services.raw(
            prompt=prompt,
            response_length=max_tokens,
            stop_sequence=options.stop_sequences,
            use_separate_preset=settings.use_separate_preset,
            quiet_to_loud=False,
        )
    except Exception:
        logger.exception("Internal generation failed")
        raise


async def dispatch(
    route: Route,
    prompt: str,
    *,
    settings: ExtensionSettings,
    services: GenerationServices,
    options: GenerationOptions | None = None,
    history: Sequence[ChatEntry] = (),
) -> str:
    options = options or GenerationOptions()
    if isinstance(route, ManagedRoute):
        return await _dispatch_managed(route, prompt, settings, services, options, history)
    return await _dispatch_legacy(route, prompt, settings, services, options)


async def generate(
    prompt: str,
    *,
    settings: ExtensionSettings,
    services: GenerationServices,
    options: GenerationOptions | None = None,
    history: Sequence[ChatEntry] = (),
) -> str:
    """Select a route for this request and dispatch the prompt along it."""
    route = select_route(settings, services)
    return await dispatch(
        route, prompt, settings=settings, services=services, options=options, history=history
    )
