"""Records exchanged with the Formaloo API."""
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

FIELD_REFERENCE_SEPARATOR = " - "

# Structural field types that cannot be submitted as plain values
EXCLUDED_FIELD_TYPES = frozenset(
    {
        "success_page",
        "matrix",
        "table",
        "lookup",
        "user",
        "profile",
        "linked_rows",
        "repeating_section",
    }
)

CHOICE_FIELD_TYPES = frozenset({"dropdown", "choice"})
MULTI_SELECT_FIELD_TYPE = "multiple_select"
GEOGRAPHY_FIELD_TYPES = frozenset({"city", "country"})


@dataclass(frozen=True)
class FieldReference:
    """
    Structured pointer to a form field: its slug and declared type.

    `type` is None for references that carry no type, which are submitted
    as plain values.
    """
    slug: str
    type: Optional[str] = None

    @classmethod
    def parse(cls, value: Union["FieldReference", Mapping[str, Any], str, None]) -> "FieldReference":
        """
        Build a reference from a structured pair or a legacy "slug - type" string.

        The string form is split on the last separator, so a slug that itself
        contains " - " still resolves to the right type.
        """
        if isinstance(value, FieldReference):
            return value
        if isinstance(value, Mapping):
            field_type = str(value.get("type") or "").strip()
            return cls(slug=str(value.get("slug") or "").strip(), type=field_type or None)

        text = str(value or "")
        if FIELD_REFERENCE_SEPARATOR not in text:
            return cls(slug=text.strip())

        slug, field_type = text.rsplit(FIELD_REFERENCE_SEPARATOR, 1)
        return cls(slug=slug.strip(), type=field_type.strip() or None)

    @property
    def value(self) -> str:
        """Composite string shown to users as the option value."""
        if not self.type:
            return self.slug
        return f"{self.slug}{FIELD_REFERENCE_SEPARATOR}{self.type}"


@dataclass(frozen=True)
class FormSummary:
    slug: str
    title: str
    description: str = ""

    def option(self) -> Dict[str, str]:
        return {"name": f"{self.title} - {self.slug}", "value": self.slug}


@dataclass(frozen=True)
class FieldDescriptor:
    slug: str
    title: str
    type: str

    @property
    def reference(self) -> FieldReference:
        return FieldReference(slug=self.slug, type=self.type)

    def option(self) -> Dict[str, str]:
        return {
            "name": f"{self.title} - {self.type}",
            "value": self.reference.value,
            "slug": self.slug,
            "type": self.type,
        }


@dataclass(frozen=True)
class ChoiceOption:
    title: str
    slug: str

    def matches(self, label: str) -> bool:
        return (self.title or "").lower() == label.lower()
