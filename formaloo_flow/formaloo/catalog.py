"""
Catalog Client

Read-only lookups against Formaloo: forms, form fields, choice options and
city/country choices.
"""
import logging
from typing import Any, Dict, List, Optional

from formaloo_flow.config import settings
from formaloo_flow.formaloo.client import FormalooClient
from formaloo_flow.formaloo.errors import (
    AmbiguousMatchError,
    InvalidResponseError,
    NotFoundError,
)
from formaloo_flow.formaloo.models import (
    EXCLUDED_FIELD_TYPES,
    ChoiceOption,
    FieldDescriptor,
    FormSummary,
)

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 10


def _data(response: Any) -> Dict[str, Any]:
    if not isinstance(response, dict) or not isinstance(response.get("data"), dict):
        raise InvalidResponseError("Invalid response from Formaloo API")
    return response["data"]


class CatalogClient:
    """Fetches forms, fields and choices through an open FormalooClient."""

    def __init__(self, client: FormalooClient, page_size: Optional[int] = None):
        self.client = client
        self.page_size = page_size or settings.FORMALOO_FORMS_PAGE_SIZE

    def form_url(self, form_slug: str) -> str:
        return f"{self.client.base_url}/v3.0/forms/{form_slug}/"

    async def _fetch_forms_page(self, page: int, search: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page_size": self.page_size}
        if search:
            params["search"] = search
        if page > 1:
            params["page"] = page

        data = _data(await self.client.request("GET", "/v3.0/forms/", params=params))
        if not isinstance(data.get("forms"), list):
            raise InvalidResponseError("Invalid response from Formaloo API")
        return data

    @staticmethod
    def _to_forms(raw_forms: List[Any]) -> List[FormSummary]:
        forms = []
        for form in raw_forms:
            if not isinstance(form, dict) or not form.get("slug"):
                continue
            forms.append(
                FormSummary(
                    slug=form["slug"],
                    title=form.get("title") or "",
                    description=form.get("description") or "",
                )
            )
        return forms

    async def list_forms(self, paginate: bool = True) -> List[FormSummary]:
        """
        List the account's forms, skipping any without a slug.

        Pages are followed while the response names a next page, up to
        FORMALOO_MAX_FORM_PAGES.
        """
        forms: List[FormSummary] = []
        page = 1
        while True:
            data = await self._fetch_forms_page(page)
            forms.extend(self._to_forms(data["forms"]))
            if not paginate or not data.get("next"):
                break
            if page >= settings.FORMALOO_MAX_FORM_PAGES:
                logger.warning(
                    f"Stopped listing forms after {page} pages; more are available"
                )
                break
            page += 1

        logger.info(f"Loaded {len(forms)} Formaloo forms")
        return forms

    async def search_forms(
        self, filter: Optional[str] = None, pagination_token: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        One page of forms for a searchable picker.

        Returns:
            Dict with 'results' ({name, value, url}) and 'pagination_token'
            (next page number, or None on the last page)
        """
        search = (filter or "").strip()
        try:
            page = int(pagination_token) if pagination_token else 1
        except ValueError:
            page = 1

        data = await self._fetch_forms_page(page, search=search or None)
        forms = self._to_forms(data["forms"])

        # Refine client-side in case the server ignored the search term
        if search:
            needle = search.lower()
            forms = [
                form for form in forms
                if needle in form.title.lower() or needle in form.slug.lower()
            ]

        results = [
            {**form.option(), "url": self.form_url(form.slug)} for form in forms
        ]
        return {
            "results": results,
            "pagination_token": str(page + 1) if data.get("next") else None,
        }

    async def get_form_fields(self, form_slug: str) -> List[FieldDescriptor]:
        """Submittable fields of a form; structural types and untitled fields are skipped."""
        if not form_slug:
            return []

        data = _data(await self.client.request("GET", f"/v3.0/forms/{form_slug}/"))
        form = data.get("form")
        if not isinstance(form, dict) or not isinstance(form.get("fields_list"), list):
            raise InvalidResponseError("Invalid response from Formaloo API")

        fields = [
            FieldDescriptor(slug=field["slug"], title=field["title"], type=field.get("type") or "")
            for field in form["fields_list"]
            if isinstance(field, dict)
            and field.get("type") not in EXCLUDED_FIELD_TYPES
            and field.get("title")
            and field.get("slug")
        ]
        logger.info(f"Form {form_slug} has {len(fields)} submittable fields")
        return fields

    async def get_field_options(self, field_slug: str) -> List[ChoiceOption]:
        """Choice items of a dropdown, choice or multi-select field."""
        if not field_slug:
            return []

        data = _data(await self.client.request("GET", f"/v3.0/fields/{field_slug}/"))
        field = data.get("field")
        if not isinstance(field, dict) or not field.get("choice_items"):
            raise InvalidResponseError(
                "Invalid response from Formaloo API or no options found"
            )

        return [
            ChoiceOption(title=item.get("title") or "", slug=item.get("slug") or "")
            for item in field["choice_items"]
            if isinstance(item, dict)
        ]

    async def search_city_country(self, field_slug: str, search_value: str) -> ChoiceOption:
        """
        Find exactly one city/country choice for a search term.

        One result is taken as-is. With several, a single case-insensitive
        exact title match wins; two or more exact matches are ambiguous and
        none at all is reported with up to ten suggestions.
        """
        term = (search_value or "").strip()
        if not field_slug or not term:
            raise NotFoundError(
                f'No city/country found for search term: "{search_value}"', search_value or ""
            )

        data = _data(
            await self.client.request(
                "GET", f"/v4/fields/{field_slug}/choices/", params={"search": term}
            )
        )
        objects = data.get("objects")
        if not isinstance(objects, list):
            raise InvalidResponseError("Invalid response from Formaloo API")

        count = data.get("count")
        if not isinstance(count, int):
            count = len(objects)

        if count == 0 or not objects:
            raise NotFoundError(f'No city/country found for search term: "{term}"', term)

        if count == 1:
            match = objects[0]
            if not isinstance(match, dict):
                raise InvalidResponseError("Invalid response from Formaloo API")
            logger.debug(f"City/country search '{term}' matched {match.get('title')}")
            return ChoiceOption(title=match.get("title") or "", slug=match.get("slug") or "")

        candidates = [
            ChoiceOption(title=item.get("title") or "", slug=item.get("slug") or "")
            for item in objects
            if isinstance(item, dict)
        ]
        exact = [option for option in candidates if option.matches(term)]

        if len(exact) == 1:
            logger.debug(f"City/country search '{term}' resolved to exact match {exact[0].title}")
            return exact[0]
        if len(exact) > 1:
            raise AmbiguousMatchError(term, [option.title for option in exact])

        suggestions = [option.title for option in candidates[:MAX_SUGGESTIONS]]
        more = "..." if count > MAX_SUGGESTIONS else ""
        raise NotFoundError(
            f'No exact match found for "{term}". '
            f"Available options include: {', '.join(suggestions)}{more}",
            term,
            suggestions,
        )
