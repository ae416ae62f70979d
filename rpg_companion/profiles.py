"""Encounter profiles: presets, sanitisation, validation, and the profile store.

Presets are built in, read-only, never hidden, and never deletable. Custom
profiles live in the settings document under encounter.profiles. A preset
always wins over a custom profile stored under its id; cleanup_duplicates()
removes such leftovers at startup.

Every value that reaches a prompt goes through sanitize_profile_value():
JSON punctuation and prompt-injection phrases are stripped, whitespace is
collapsed, and the value is capped at MAX_FIELD_LENGTH characters.

Active profile resolution: current_encounter_profile_id (per-encounter
override) → active_profile_id → default combat. A custom profile that fails
validation also falls back to default combat.
"""

import logging
import re
import uuid

from pydantic import ValidationError

from rpg_companion.export import profile_from_json, profile_to_json
from rpg_companion.models import EncounterProfile
from rpg_companion.storage import SettingsStore

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_ID = "default-combat"

MAX_FIELD_LENGTH = 200

VALID_STAKES = ("low", "medium", "high")

FORBIDDEN_KEYWORDS = [
    "return only", "output only", "ignore previous", "disregard",
    "instead of", "however", "but actually", "forget", "override",
    "system:", "assistant:", "user:", "<|", "|>", "json", "{", "}", "[", "]",
]

# Upper-case key names, as used in templates and exported files
REQUIRED_FIELDS = [
    "ENCOUNTER_TYPE",
    "ENCOUNTER_GOAL",
    "ENCOUNTER_STAKES",
    "RESOURCE_INTERPRETATION",
    "ACTION_INTERPRETATION",
    "STATUS_INTERPRETATION",
    "SUMMARY_FRAMING",
    "ENEMY_LABEL_SINGULAR",
    "ENEMY_LABEL_PLURAL",
    "PARTY_LABEL_SINGULAR",
    "PARTY_LABEL_PLURAL",
    "RESOURCE_LABEL",
    "ACTION_SECTION_LABEL",
    "VICTORY_TERM",
    "DEFEAT_TERM",
    "FLED_TERM",
]


def _preset(**fields: str) -> EncounterProfile:
    return EncounterProfile.model_validate({**fields, "isPreset": True})


DEFAULT_COMBAT_PROFILE = _preset(
    id=DEFAULT_PROFILE_ID,
    name="Combat",
    description="Traditional combat encounter with HP representing physical health",
    ENCOUNTER_TYPE="Combat",
    ENCOUNTER_GOAL="defeat opposing forces",
    ENCOUNTER_STAKES="medium",
    RESOURCE_INTERPRETATION="physical health and endurance",
    ACTION_INTERPRETATION="attacks, skills, and combat maneuvers",
    STATUS_INTERPRETATION="physical or magical conditions",
    SUMMARY_FRAMING="a complete battle recap",
    ENEMY_LABEL_SINGULAR="Enemy",
    ENEMY_LABEL_PLURAL="Enemies",
    PARTY_LABEL_SINGULAR="Ally",
    PARTY_LABEL_PLURAL="Party",
    RESOURCE_LABEL="HP",
    ACTION_SECTION_LABEL="Attacks",
    VICTORY_TERM="Victory",
    DEFEAT_TERM="Defeat",
    FLED_TERM="Fled",
)

PRESET_PROFILES: list[EncounterProfile] = [
    DEFAULT_COMBAT_PROFILE,
    _preset(
        id="preset-social",
        name="Social Confrontation",
        description="Social encounter where HP represents composure and attacks are rhetorical arguments",
        ENCOUNTER_TYPE="Social",
        ENCOUNTER_GOAL="persuade or manipulate the opposition",
        ENCOUNTER_STAKES="high",
        RESOURCE_INTERPRETATION="composure, leverage, and social standing",
        ACTION_INTERPRETATION="arguments, appeals, and social maneuvers",
        STATUS_INTERPRETATION="emotional states and social conditions",
        SUMMARY_FRAMING="a diplomatic exchange recap",
        ENEMY_LABEL_SINGULAR="Opponent",
        ENEMY_LABEL_PLURAL="Opposition",
        PARTY_LABEL_SINGULAR="Ally",
        PARTY_LABEL_PLURAL="Allies",
        RESOURCE_LABEL="Composure",
        ACTION_SECTION_LABEL="Arguments",
        VICTORY_TERM="Persuaded",
        DEFEAT_TERM="Discredited",
        FLED_TERM="Withdrew",
    ),
    _preset(
        id="preset-stealth",
        name="Stealth Infiltration",
        description="Stealth encounter where HP represents alertness and attacks are distractions",
        ENCOUNTER_TYPE="Stealth",
        ENCOUNTER_GOAL="reach the objective undetected",
        ENCOUNTER_STAKES="high",
        RESOURCE_INTERPRETATION="alertness level of guards and exposure margin",
        ACTION_INTERPRETATION="distraction attempts, stealth maneuvers, and evasion tactics",
        STATUS_INTERPRETATION="detection states and environmental conditions",
        SUMMARY_FRAMING="an infiltration attempt recap",
        ENEMY_LABEL_SINGULAR="Guard",
        ENEMY_LABEL_PLURAL="Guards",
        PARTY_LABEL_SINGULAR="Agent",
        PARTY_LABEL_PLURAL="Team",
        RESOURCE_LABEL="Cover",
        ACTION_SECTION_LABEL="Maneuvers",
        VICTORY_TERM="Infiltrated",
        DEFEAT_TERM="Exposed",
        FLED_TERM="Aborted",
    ),
    _preset(
        id="preset-investigation",
        name="Investigation",
        description="Investigation encounter where HP represents remaining leads and attacks are deductions",
        ENCOUNTER_TYPE="Investigation",
        ENCOUNTER_GOAL="solve the mystery before time runs out",
        ENCOUNTER_STAKES="medium",
        RESOURCE_INTERPRETATION="remaining leads, time pressure, and certainty level",
        ACTION_INTERPRETATION="deduction attempts, evidence gathering, and interrogation",
        STATUS_INTERPRETATION="mental states and investigative progress",
        SUMMARY_FRAMING="a detective work recap",
        ENEMY_LABEL_SINGULAR="Red Herring",
        ENEMY_LABEL_PLURAL="Obstacles",
        PARTY_LABEL_SINGULAR="Investigator",
        PARTY_LABEL_PLURAL="Team",
        RESOURCE_LABEL="Leads",
        ACTION_SECTION_LABEL="Deductions",
        VICTORY_TERM="Solved",
        DEFEAT_TERM="Stumped",
        FLED_TERM="Gave Up",
    ),
    _preset(
        id="preset-chase",
        name="Chase Sequence",
        description="Chase encounter where HP represents distance/stamina and attacks are evasive actions",
        ENCOUNTER_TYPE="Chase",
        ENCOUNTER_GOAL="escape pursuers or catch the target",
        ENCOUNTER_STAKES="high",
        RESOURCE_INTERPRETATION="distance advantage and stamina remaining",
        ACTION_INTERPRETATION="sprint bursts, obstacles thrown, and evasive maneuvers",
        STATUS_INTERPRETATION="physical conditions and tactical advantages",
        SUMMARY_FRAMING="a pursuit sequence recap",
        ENEMY_LABEL_SINGULAR="Pursuer",
        ENEMY_LABEL_PLURAL="Pursuers",
        PARTY_LABEL_SINGULAR="Runner",
        PARTY_LABEL_PLURAL="Team",
        RESOURCE_LABEL="Stamina",
        ACTION_SECTION_LABEL="Maneuvers",
        VICTORY_TERM="Escaped",
        DEFEAT_TERM="Caught",
        FLED_TERM="Surrendered",
    ),
    _preset(
        id="preset-negotiation",
        name="Negotiation",
        description="Negotiation encounter where HP represents bargaining power and attacks are offers",
        ENCOUNTER_TYPE="Negotiation",
        ENCOUNTER_GOAL="reach a favorable agreement",
        ENCOUNTER_STAKES="medium",
        RESOURCE_INTERPRETATION="bargaining power and credibility",
        ACTION_INTERPRETATION="offers, concessions, and leverage plays",
        STATUS_INTERPRETATION="negotiation positions and emotional states",
        SUMMARY_FRAMING="a deal-making session recap",
        ENEMY_LABEL_SINGULAR="Negotiator",
        ENEMY_LABEL_PLURAL="Opposition",
        PARTY_LABEL_SINGULAR="Negotiator",
        PARTY_LABEL_PLURAL="Team",
        RESOURCE_LABEL="Leverage",
        ACTION_SECTION_LABEL="Offers",
        VICTORY_TERM="Deal Reached",
        DEFEAT_TERM="Deal Failed",
        FLED_TERM="Walked Away",
    ),
    _preset(
        id="preset-survival",
        name="Survival Ordeal",
        description="Survival encounter where HP represents supplies/morale and attacks are survival actions",
        ENCOUNTER_TYPE="Survival",
        ENCOUNTER_GOAL="endure until rescue or escape",
        ENCOUNTER_STAKES="high",
        RESOURCE_INTERPRETATION="supplies, morale, and physical condition",
        ACTION_INTERPRETATION="resource management, shelter building, and foraging",
        STATUS_INTERPRETATION="environmental hazards and survival conditions",
        SUMMARY_FRAMING="a survival ordeal recap",
        ENEMY_LABEL_SINGULAR="Hazard",
        ENEMY_LABEL_PLURAL="Hazards",
        PARTY_LABEL_SINGULAR="Survivor",
        PARTY_LABEL_PLURAL="Group",
        RESOURCE_LABEL="Supplies",
        ACTION_SECTION_LABEL="Actions",
        VICTORY_TERM="Survived",
        DEFEAT_TERM="Perished",
        FLED_TERM="Abandoned",
    ),
]

_PRESETS_BY_ID = {p.id: p for p in PRESET_PROFILES}


class ProfileValidationError(ValueError):
    """Raised when a profile fails validation. `errors` lists every problem found."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__(", ".join(errors) or "Invalid profile")
        self.errors = errors


class PresetProfileError(ValueError):
    """Raised when deleting or hiding a built-in preset."""


class DuplicateProfileNameError(ValueError):
    """Raised when a profile name collides (case-insensitively) with another profile."""


def new_profile_id() -> str:
    return f"custom-{uuid.uuid4().hex[:12]}"


def is_preset_id(profile_id: str) -> bool:
    return profile_id in _PRESETS_BY_ID


# ── Sanitisation & validation ────────────────────────────


_FORBIDDEN_RES = [re.compile(re.escape(k), re.IGNORECASE) for k in FORBIDDEN_KEYWORDS]


def sanitize_profile_value(value: object) -> str:
    """Strip JSON punctuation and injection phrases, collapse whitespace, cap length."""
    if not isinstance(value, str):
        return ""
    value = re.sub(r'[{}\[\]":]', "", value)
    for pattern in _FORBIDDEN_RES:
        value = pattern.sub("", value)
    value = re.sub(r"\s+", " ", value.replace("\n", " "))
    return value[:MAX_FIELD_LENGTH].strip()


def sanitize_profile(profile: EncounterProfile) -> EncounterProfile:
    """Return a sanitised copy; stakes are lower-cased."""
    data = profile.dump()
    for field in REQUIRED_FIELDS:
        if data.get(field):
            data[field] = sanitize_profile_value(data[field])
    for field in ("name", "description"):
        if data.get(field):
            data[field] = sanitize_profile_value(data[field])
    if data.get("ENCOUNTER_STAKES"):
        data["ENCOUNTER_STAKES"] = data["ENCOUNTER_STAKES"].lower()
    return EncounterProfile.model_validate(data)


def validate_profile(profile: EncounterProfile | dict | None) -> list[str]:
    """Return a list of validation errors (empty when the profile is valid)."""
    if profile is None:
        return ["Profile must be an object"]
    data = profile.dump() if isinstance(profile, EncounterProfile) else dict(profile)

    errors: list[str] = []
    for field in REQUIRED_FIELDS:
        value = data.get(field)
        if not value:
            errors.append(f"Missing required field: {field}")
        elif not isinstance(value, str):
            errors.append(f"Field {field} must be a string")
        elif not value.strip():
            errors.append(f"Field {field} cannot be empty")

    stakes = data.get("ENCOUNTER_STAKES")
    if isinstance(stakes, str) and stakes and stakes.lower() not in VALID_STAKES:
        errors.append('ENCOUNTER_STAKES must be "low", "medium", or "high"')

    for field in REQUIRED_FIELDS:
        value = data.get(field)
        if isinstance(value, str) and value:
            lowered = value.lower()
            if any(k in lowered for k in FORBIDDEN_KEYWORDS):
                errors.append(f"Field {field} contains forbidden keywords")
            if len(value) > MAX_FIELD_LENGTH:
                errors.append(
                    f"Field {field} exceeds maximum length of {MAX_FIELD_LENGTH} characters"
                )
    return errors


# ── Store ────────────────────────────────────────────────


class ProfileStore:
    """CRUD over presets + custom profiles kept in the settings document.

    Mutations are applied to copies and committed through the settings store.
    """

    def __init__(self, store: SettingsStore) -> None:
        self._store = store

    @property
    def _custom(self) -> list[EncounterProfile]:
        return self._store.settings.encounter.profiles

    def all_profiles(self) -> list[EncounterProfile]:
        """Presets first, custom profiles after. Ids resolve the same way as in get()."""
        by_id: dict[str, EncounterProfile] = {
            p.id: p.model_copy(update={"hidden": False}) for p in PRESET_PROFILES
        }
        for profile in self._custom:
            by_id.setdefault(profile.id, profile.model_copy())
        return list(by_id.values())

    def visible_profiles(self) -> list[EncounterProfile]:
        """Profiles offered for selection (hidden ones excluded)."""
        return [p for p in self.all_profiles() if not p.hidden]

    def get(self, profile_id: str) -> EncounterProfile | None:
        preset = _PRESETS_BY_ID.get(profile_id)
        if preset is not None:
            return preset.model_copy()
        for profile in self._custom:
            if profile.id == profile_id:
                return profile.model_copy()
        return None

    def active_profile(self) -> EncounterProfile:
        """Resolve the profile for the current encounter, falling back to default combat."""
        encounter = self._store.settings.encounter
        profile_id = encounter.current_encounter_profile_id or encounter.active_profile_id
        if not profile_id:
            return DEFAULT_COMBAT_PROFILE.model_copy()

        preset = _PRESETS_BY_ID.get(profile_id)
        if preset is not None:
            return preset.model_copy()

        for custom in self._custom:
            if custom.id == profile_id:
                sanitized = sanitize_profile(custom)
                errors = validate_profile(sanitized)
                if errors:
                    logger.warning("Profile %s is invalid, using default combat: %s", profile_id, errors)
                    return DEFAULT_COMBAT_PROFILE.model_copy()
                return sanitized

        logger.warning("Profile %s not found, using default combat", profile_id)
        return DEFAULT_COMBAT_PROFILE.model_copy()

    def _check_name(self, name: str, own_id: str) -> None:
        lowered = name.lower()
        for other in self.all_profiles():
            if other.id != own_id and other.name.lower() == lowered:
                raise DuplicateProfileNameError(
                    f'A profile named "{name}" already exists. Please choose a different name.'
                )

    def _save(self, profile: EncounterProfile) -> EncounterProfile:
        sanitized = sanitize_profile(profile)
        errors = validate_profile(sanitized)
        if not sanitized.name:
            errors.insert(0, "Missing required field: name")
        if errors:
            raise ProfileValidationError(errors)
        if not sanitized.id:
            sanitized.id = new_profile_id()
        sanitized.is_preset = False

        profiles = list(self._custom)
        for i, existing in enumerate(profiles):
            if existing.id == sanitized.id:
                profiles[i] = sanitized
                break
        else:
            profiles.append(sanitized)
        self._store.settings.encounter.profiles = profiles
        self._store.commit()
        logger.info("Saved profile %s (%s)", sanitized.name, sanitized.id)
        return sanitized.model_copy()

    def create(self, data: EncounterProfile | dict) -> EncounterProfile:
        """Create a custom profile with a fresh id, from a blank form or a preset copy."""
        profile = _coerce(data).model_copy(update={"id": new_profile_id(), "hidden": False})
        self._check_name(sanitize_profile_value(profile.name), profile.id)
        return self._save(profile)

    def update(self, profile_id: str, data: EncounterProfile | dict) -> EncounterProfile:
        """Replace a custom profile's fields."""
        if is_preset_id(profile_id):
            raise PresetProfileError("Cannot edit preset profiles. Duplicate it first.")
        if self.get(profile_id) is None:
            raise KeyError(profile_id)
        profile = _coerce(data).model_copy(update={"id": profile_id})
        self._check_name(sanitize_profile_value(profile.name), profile_id)
        return self._save(profile)

    def delete(self, profile_id: str) -> bool:
        """Hard-delete a custom profile. Presets cannot be deleted."""
        if is_preset_id(profile_id):
            raise PresetProfileError("Cannot delete preset profile")
        profiles = [p for p in self._custom if p.id != profile_id]
        if len(profiles) == len(self._custom):
            return False
        encounter = self._store.settings.encounter
        encounter.profiles = profiles
        if encounter.active_profile_id == profile_id:
            encounter.active_profile_id = DEFAULT_PROFILE_ID
        self._store.commit()
        logger.info("Deleted profile %s", profile_id)
        return True

    def duplicate(self, profile_id: str) -> EncounterProfile:
        original = self.get(profile_id)
        if original is None:
            raise KeyError(profile_id)
        taken = {p.name.lower() for p in self.all_profiles()}
        name = f"{original.name} (Copy)"
        n = 2
        while name.lower() in taken:
            name = f"{original.name} (Copy {n})"
            n += 1
        copy = original.model_copy(update={"name": name, "is_preset": False, "hidden": False})
        return self.create(copy)

    def toggle_hidden(self, profile_id: str) -> EncounterProfile:
        """Flip the soft-hidden flag of a custom profile."""
        if is_preset_id(profile_id):
            raise PresetProfileError(
                "Cannot hide preset profiles. Duplicate it first to create a custom version."
            )
        for profile in self._custom:
            if profile.id == profile_id:
                profile.hidden = not profile.hidden
                self._store.commit()
                return profile.model_copy()
        raise KeyError(profile_id)

    def set_active(self, profile_id: str) -> EncounterProfile:
        profile = self.get(profile_id)
        if profile is None:
            raise KeyError(profile_id)
        self._store.settings.encounter.active_profile_id = profile_id
        self._store.commit()
        return profile

    def export_profile(self, profile_id: str) -> str | None:
        profile = self.get(profile_id)
        if profile is None:
            return None
        return profile_to_json(profile)

    def import_profile(self, text: str) -> EncounterProfile:
        """Import an exported profile as a new custom profile (fresh id)."""
        try:
            profile = profile_from_json(text)
        except (ValueError, ValidationError) as e:
            raise ProfileValidationError(["Invalid JSON or profile format"]) from e
        if not profile.name:
            profile.name = "Imported Profile"
        return self.create(profile)

    def cleanup_duplicates(self) -> int:
        """Drop custom profiles that shadow a preset (by id or name) or repeat an id."""
        preset_names = {p.name for p in PRESET_PROFILES}
        seen: set[str] = set()
        kept: list[EncounterProfile] = []
        for profile in self._custom:
            if is_preset_id(profile.id) or profile.name in preset_names:
                logger.warning("Removing custom profile that duplicates a preset: %s", profile.name)
                continue
            if profile.id in seen:
                logger.warning("Removing duplicate custom profile id: %s", profile.id)
                continue
            seen.add(profile.id)
            kept.append(profile)

        removed = len(self._custom) - len(kept)
        if removed:
            self._store.settings.encounter.profiles = kept
            self._store.commit()
        return removed


# Keys of the profile's text fields, by attribute name and by alias
_TEXT_KEYS = frozenset(
    key
    for name, field in EncounterProfile.model_fields.items()
    if field.annotation is str
    for key in (name, field.alias)
    if key
)


def _coerce(data: EncounterProfile | dict) -> EncounterProfile:
    """Build a profile from form data. Non-string text values become empty."""
    if isinstance(data, EncounterProfile):
        return data.model_copy()
    cleaned = {
        key: "" if key in _TEXT_KEYS and not isinstance(value, str) else value
        for key, value in data.items()
    }
    try:
        return EncounterProfile.model_validate(cleaned)
    except ValidationError as e:
        raise ProfileValidationError(["Invalid profile format"]) from e
