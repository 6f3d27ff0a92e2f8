"""Filter/view options for the transformation engine."""

from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

_TRUE_STRINGS = {"true", "1", "yes", "on"}


class FilterOptions(BaseModel):
    """Toggles controlling how a block tree is rendered.

    Every toggle defaults to disabled except hide_logbook. Options are
    validated once, at the boundary, via FilterOptions.coerce(); the engine
    never inspects loose dictionaries itself.
    """

    hide_properties: bool = Field(default=False, description="Drop any line containing a 'key:: ' property")
    hide_references: bool = Field(default=False, description="Drop block references and embeds")
    always_hide_keys: tuple[str, ...] = Field(default=(), description="Property keys always hidden (case-insensitive)")
    hide_page_refs: bool = Field(default=False, description="Render [[Page]] links as plain text, not links")
    hide_queries: bool = Field(default=False, description="Drop lines with {{query ...}}")
    hide_renderers: bool = Field(default=False, description="Drop lines with {{renderer ...}}")
    hide_embeds: bool = Field(default=False, description="Strip inline {{embed ...}} macros in content view")
    remove_macros: bool = Field(default=False, description="Remove {{...}} macro tokens")
    strip_page_brackets: bool = Field(default=False, description="Render [[Page]] as Page")
    normalize_tasks: bool = Field(default=False, description="TODO/DONE/CANCELED markers become checkboxes")
    remove_strings: tuple[str, ...] = Field(default=(), description="Literal substrings deleted from every line")
    hide_logbook: bool = Field(default=True, description="Exclude :LOGBOOK: ... :END: ranges")
    folder_mode: bool = Field(default=False, description="Folder policy: refs/embeds cannot be resolved, strip them")

    @field_validator(
        "hide_properties",
        "hide_references",
        "hide_page_refs",
        "hide_queries",
        "hide_renderers",
        "hide_embeds",
        "remove_macros",
        "strip_page_brackets",
        "normalize_tasks",
        "hide_logbook",
        "folder_mode",
        mode="before",
    )
    @classmethod
    def lenient_bool(cls, v: Any) -> bool:
        """Malformed toggle values count as disabled."""
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.strip().lower() in _TRUE_STRINGS
        if isinstance(v, int):
            return v == 1
        return False

    @field_validator("always_hide_keys", "remove_strings", mode="before")
    @classmethod
    def lenient_strings(cls, v: Any) -> tuple[str, ...]:
        """Accept lists, tuples, sets or comma-separated strings; drop blanks."""
        if v is None:
            return ()
        if isinstance(v, str):
            items = v.split(",")
        elif isinstance(v, (list, tuple, set, frozenset)):
            items = [item for item in v if isinstance(item, str)]
        else:
            return ()
        return tuple(item.strip() for item in items if item and item.strip())

    @classmethod
    def coerce(cls, value: Optional[Any]) -> "FilterOptions":
        """Build options from None, an existing instance, or a loose mapping.

        Mapping keys may be snake_case or camelCase; unknown keys are ignored.
        """
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            return cls()
        try:
            return cls.model_validate(dict(value))
        except ValidationError:
            return cls()

    model_config = {
        "frozen": True,
        "extra": "ignore",
        "alias_generator": to_camel,
        "populate_by_name": True,
    }
