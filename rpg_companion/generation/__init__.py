"""Generation: parameter resolution, routing, and character creation.

Routing (router.py):
  select_route() picks ManagedRoute / LegacyExternalRoute / LegacyInternalRoute
  from settings + available collaborators; dispatch() sends the prompt.

Parameters (params.py):
  resolve_max_tokens()  override → preset → global setting → external API setting → 2048
  resolve_max_context() override → preset → global setting → 8192

Creation (creator.py):
  create_character(), create_character_data(), generate_field()
"""

from .creator import (  # noqa: F401
    create_character,
    create_character_data,
    generate_field,
    options_from_settings,
)
from .params import (  # noqa: F401
    DEFAULT_MAX_CONTEXT,
    DEFAULT_MAX_TOKENS,
    resolve_max_context,
    resolve_max_tokens,
)
from .router import (  # noqa: F401
    ConnectionProfileNotFoundError,
    GenerationConfigError,
    GenerationServices,
    LegacyExternalRoute,
    LegacyInternalRoute,
    ManagedRoute,
    ResponseFormatError,
    Route,
    dispatch,
    generate,
    select_route,
)
