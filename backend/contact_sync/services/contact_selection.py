"""Field selection state and CRM update payload reconciliation.

Pure functions over plain dicts, so the UI layer can keep selection state
wherever it likes. ``SelectionState`` bundles them for callers that want
an object.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from contact_sync.models.contact_fields import CATEGORY_FIELDS, hubspot_property_for
from contact_sync.services.contact_extraction import is_placeholder_value

Categories = dict[str, list[str]]
Selection = dict[str, bool]

UNKNOWN_CONTACT = "Unknown contact"
NO_EXISTING_VALUE = "No existing value"


def organize_by_category(contact_info: Mapping[str, Any] | None) -> Categories:
    """Group the extracted fields by category in canonical order.

    Only fields present as keys in ``contact_info`` are kept; categories
    left empty are omitted.
    """
    if not contact_info:
        return {}

    categories: Categories = {}
    for category, fields in CATEGORY_FIELDS:
        available = [f for f in fields if f in contact_info]
        if available:
            categories[category] = available
    return categories


def initial_selection(categories: Mapping[str, list[str]]) -> Selection:
    """Select every field of every category."""
    return {f: True for fields in categories.values() for f in fields}


def derive_category_selection(
    categories: Mapping[str, list[str]], selection: Mapping[str, bool]
) -> Selection:
    """A category is selected only when all of its fields are."""
    return {
        category: all(selection.get(f, False) for f in fields)
        for category, fields in categories.items()
    }


def toggle_field(selection: Mapping[str, bool], field_name: str) -> Selection:
    """Return a new selection with ``field_name`` flipped."""
    updated = dict(selection)
    updated[field_name] = not selection.get(field_name, False)
    return updated


def toggle_category(
    categories: Mapping[str, list[str]],
    selection: Mapping[str, bool],
    category: str,
) -> Selection:
    """Set all of a category's fields to the opposite of its fully-selected state.

    A partially selected category is therefore turned fully on.
    """
    fields = categories.get(category, [])
    turn_on = not derive_category_selection({category: fields}, selection).get(category, False)
    updated = dict(selection)
    for f in fields:
        updated[f] = turn_on
    return updated


def count_selected_fields(selection: Mapping[str, bool]) -> int:
    return sum(1 for selected in selection.values() if selected)


def count_categories_with_selected_fields(
    categories: Mapping[str, list[str]], selection: Mapping[str, bool]
) -> int:
    """Number of categories with at least one selected field."""
    return sum(
        1 for fields in categories.values() if any(selection.get(f, False) for f in fields)
    )


def updates_selected_label(fields: list[str], selection: Mapping[str, bool]) -> str:
    """Label such as ``"1 update selected"`` or ``"3 updates selected"``."""
    count = sum(1 for f in fields if selection.get(f, False))
    suffix = "update" if count == 1 else "updates"
    return f"{count} {suffix} selected"


def _normalize_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed or is_placeholder_value(trimmed):
            return None
        return trimmed
    return value


def build_update_payload(
    selection: Mapping[str, bool], contact_info: Mapping[str, Any] | None
) -> dict[str, Any]:
    """Build the HubSpot property map for the selected fields.

    Selected fields without a usable extracted value are left out. An
    empty result is not an error here; the caller reports it.
    """
    contact_info = contact_info or {}
    payload: dict[str, Any] = {}
    for field_name, selected in selection.items():
        if not selected:
            continue
        value = _normalize_value(contact_info.get(field_name))
        if value is None:
            continue
        payload[hubspot_property_for(field_name)] = value
    return payload


def humanize_category(category: str) -> str:
    """``"contact_information"`` -> ``"Contact Information"``."""
    return " ".join(word.capitalize() for word in category.replace("_", " ").split())


def humanize_field(field_name: str) -> str:
    """``"phone_number"`` -> ``"Phone number"``."""
    return field_name.replace("_", " ").capitalize()


def _properties(contact: Any) -> Mapping[str, Any] | None:
    if isinstance(contact, Mapping):
        properties = contact.get("properties")
        if isinstance(properties, Mapping):
            return properties
    return None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def contact_display_name(contact: Any) -> str:
    """Name for a HubSpot contact: full name, first name, email, or a fallback."""
    properties = _properties(contact)
    if properties is None:
        return UNKNOWN_CONTACT

    first = _text(properties.get("firstname"))
    last = _text(properties.get("lastname"))
    email = properties.get("email")

    if first and last:
        return f"{first} {last}"
    if first:
        return first
    if email:
        return str(email)
    return UNKNOWN_CONTACT


def contact_initials(contact: Any) -> str:
    """Up to two uppercase initials, or ``"?"``."""
    properties = _properties(contact)
    if properties is None:
        return "?"

    first = _text(properties.get("firstname"))[:1]
    last = _text(properties.get("lastname"))[:1]
    initials = (first + last).upper()[:2]
    return initials or "?"


def crm_field_value(contact: Any, field_name: str) -> Any:
    """Current HubSpot value for an internal field name, if any."""
    properties = _properties(contact)
    if properties is None:
        return None
    return properties.get(hubspot_property_for(field_name))


def format_field_value(value: Any) -> str:
    if value is None or value == "":
        return NO_EXISTING_VALUE
    return str(value)


@dataclass
class SelectionState:
    """Selection for one review session over one extraction result.

    Attributes:
        categories: Category -> present fields, in canonical order.
        selected_fields: Field -> selected flag.
    """

    categories: Categories = field(default_factory=dict)
    selected_fields: Selection = field(default_factory=dict)

    @classmethod
    def from_contact_info(cls, contact_info: Mapping[str, Any] | None) -> "SelectionState":
        """Start a session with every extracted field selected."""
        categories = organize_by_category(contact_info)
        return cls(categories=categories, selected_fields=initial_selection(categories))

    @property
    def selected_categories(self) -> Selection:
        return derive_category_selection(self.categories, self.selected_fields)

    @property
    def selected_field_count(self) -> int:
        return count_selected_fields(self.selected_fields)

    @property
    def selected_category_count(self) -> int:
        return count_categories_with_selected_fields(self.categories, self.selected_fields)

    def toggle_field(self, field_name: str) -> None:
        self.selected_fields = toggle_field(self.selected_fields, field_name)

    def toggle_category(self, category: str) -> None:
        self.selected_fields = toggle_category(self.categories, self.selected_fields, category)

    def select_all(self) -> None:
        """Reselect every field, as when the review dialog is reopened."""
        self.selected_fields = initial_selection(self.categories)

    def label_for(self, category: str) -> str:
        return updates_selected_label(self.categories.get(category, []), self.selected_fields)

    def build_payload(self, contact_info: Mapping[str, Any] | None) -> dict[str, Any]:
        return build_update_payload(self.selected_fields, contact_info)
