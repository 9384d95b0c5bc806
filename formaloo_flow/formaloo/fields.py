"""
Field Resolver

Turns a user-chosen field and a raw value into the key/value pair Formaloo
expects, looking up choice slugs for dropdown, choice, multi-select, city
and country fields.
"""
import logging
from typing import Any, List, Optional, Tuple

from formaloo_flow.formaloo.catalog import CatalogClient
from formaloo_flow.formaloo.errors import FieldOptionNotFoundError
from formaloo_flow.formaloo.models import (
    CHOICE_FIELD_TYPES,
    GEOGRAPHY_FIELD_TYPES,
    MULTI_SELECT_FIELD_TYPE,
    ChoiceOption,
    FieldReference,
)

logger = logging.getLogger(__name__)

ResolvedField = Tuple[str, Any]


def _find_option(options: List[ChoiceOption], label: str) -> Optional[ChoiceOption]:
    for option in options:
        if option.matches(label) and option.slug:
            return option
    return None


class FieldResolver:
    def __init__(self, catalog: CatalogClient):
        self.catalog = catalog

    async def resolve(self, reference: Any, raw_value: Any) -> Optional[ResolvedField]:
        """
        Resolve one field row.

        Args:
            reference: FieldReference, {slug, type} mapping or "slug - type" string
            raw_value: Value entered by the user

        Returns:
            (field slug, submission value), or None when the row contributes
            nothing (no field chosen, or a plain field without a value)

        Raises:
            FieldOptionNotFoundError: No choice option matches
            NotFoundError, AmbiguousMatchError: City/country search failed
        """
        ref = FieldReference.parse(reference)
        if not ref.slug:
            return None

        if ref.type in CHOICE_FIELD_TYPES:
            return ref.slug, await self._resolve_choice(ref, raw_value)
        if ref.type == MULTI_SELECT_FIELD_TYPE:
            return ref.slug, await self._resolve_multi_select(ref, raw_value)
        if ref.type in GEOGRAPHY_FIELD_TYPES:
            match = await self.catalog.search_city_country(ref.slug, str(raw_value or ""))
            return ref.slug, match.slug

        if raw_value is None:
            return None
        return ref.slug, raw_value

    async def _resolve_choice(self, ref: FieldReference, raw_value: Any) -> str:
        label = str(raw_value if raw_value is not None else "")
        options = await self.catalog.get_field_options(ref.slug)
        option = _find_option(options, label)
        if option is None:
            raise FieldOptionNotFoundError(label)
        return option.slug

    async def _resolve_multi_select(self, ref: FieldReference, raw_value: Any) -> List[str]:
        if isinstance(raw_value, (list, tuple)):
            tokens = [str(token) for token in raw_value if token is not None]
            label = ", ".join(tokens)
        else:
            label = str(raw_value if raw_value is not None else "")
            tokens = label.split(",")
        options = await self.catalog.get_field_options(ref.slug)

        slugs: List[str] = []
        dropped: List[str] = []
        for token in tokens:
            token = token.strip()
            option = _find_option(options, token)
            if option is None:
                dropped.append(token)
                continue
            slugs.append(option.slug)

        if not slugs:
            raise FieldOptionNotFoundError(label)
        if dropped:
            logger.warning(
                f"Ignored unmatched options for field {ref.slug}: {', '.join(dropped)}"
            )
        return slugs
