"""Category import: the category tree and product/category assignments."""

import logging
from typing import Any, Dict, Optional

from ..loaders.base import ImportKind
from ..models.mapping import MappingType, compose, decompose, is_composite, language_prefix
from ..models.migration import StepName
from ..models.progress import Progress
from .base import AbstractResource

logger = logging.getLogger(__name__)

# Source fields that only steer the import and are not written to the target
_KEY_FIELDS = ("category_id", "parent_id", "language_id")


class Category(AbstractResource):
    """
    Imports categories and assigns products to them.

    `import_categories` rebuilds the category key spaces from scratch at
    offset 0 and, once finished, enables `import_article_categories`.
    A category that exists once per language gets a composite key
    (`<id>_LANG_<language>`), so its parent and product lookups fall back to
    any language version of the raw id.
    """

    steps = (StepName.CATEGORIES, StepName.ARTICLE_CATEGORIES)

    default_error_message = "An error occurred while importing categories"

    @property
    def done_message(self) -> str:
        if self.step == StepName.ARTICLE_CATEGORIES:
            return "Article categories successfully imported!"
        return "Categories successfully imported!"

    @property
    def progress_label(self) -> str:
        if self.step == StepName.ARTICLE_CATEGORIES:
            return "article categories"
        return "categories"

    def run(self) -> Progress:
        runners = {
            StepName.CATEGORIES: self.import_categories,
            StepName.ARTICLE_CATEGORIES: self.import_article_categories,
        }
        return runners[self.step]()

    def import_categories(self) -> Progress:
        if self.progress.offset == 0:
            self.mappings.reset(MappingType.CATEGORY_TARGET, MappingType.CATEGORY)

        cursor = self.open_cursor(self.source.query_categories)
        for category in cursor:
            self._import_category(category)
            self.advance()
            if self.needs_new_request():
                return self.progress

        return self.progress.with_param(StepName.ARTICLE_CATEGORIES.value, True).done()

    def _import_category(self, category: Dict[str, Any]) -> None:
        category_id = category.get("category_id")
        parent_id = category.get("parent_id")
        language_id = category.get("language_id")

        if language_id and not is_composite(category_id):
            category_id = compose(category_id, language_id)
            if parent_id:
                parent_id = compose(parent_id, language_id)

        # Never create empty categories
        if not category.get("description"):
            logger.debug(f"Skipping category {category_id} without description")
            return

        record = {k: v for k, v in category.items() if k not in _KEY_FIELDS}

        if parent_id:
            parent = self._find_parent(parent_id)
            if not parent:
                self.add_warning(
                    f"Parent category not found: {parent_id}. Will not create '{category['description']}'"
                )
                return
            record["parent"] = parent
        elif language_id and self.config.language_map.get(str(language_id)):
            record["parent"] = self.target.root_category_for_locale(
                self.config.language_map[str(language_id)]
            )

        result = self.target.import_record(ImportKind.CATEGORY, record)
        target_id = result["category_id"]

        self.mappings.put(MappingType.CATEGORY_TARGET, category_id, target_id)
        if category.get("meta_title"):
            self.target.update_category(target_id, {"meta_title": category["meta_title"]})

        self.mappings.put(MappingType.CATEGORY, category_id, target_id)

    def _find_parent(self, parent_id: str) -> Optional[str]:
        """Exact parent match, else any mapping of the raw parent id."""
        parent = self.mappings.get(MappingType.CATEGORY_TARGET, parent_id)
        if parent:
            return parent

        raw_id, _ = decompose(parent_id)
        candidates = self.mappings.find_all(
            MappingType.CATEGORY_TARGET, raw_id, prefix=language_prefix(raw_id)
        )
        return candidates[0] if candidates else None

    def import_article_categories(self) -> Progress:
        cursor = self.open_cursor(self.source.query_product_categories)
        for assignment in cursor:
            self._assign_categories(assignment)
            self.advance()
            if self.needs_new_request():
                return self.progress

        return self.progress.done()

    def _assign_categories(self, assignment: Dict[str, Any]) -> None:
        product_id = assignment.get("product_id")
        detail_id = self.mappings.get(MappingType.ARTICLE, product_id)
        article_id = self.target.article_id_for_detail(detail_id) if detail_id else None
        if not article_id:
            logger.debug(f"No migrated article for product {product_id}")
            return

        # Also take the language versions of the category into account
        category_id = assignment.get("category_id")
        categories = self.mappings.find_all(
            MappingType.CATEGORY, category_id, prefix=language_prefix(category_id)
        )
        if not categories:
            logger.debug(f"No migrated category for {category_id}")
            return

        for target_category in categories:
            self.target.import_record(
                ImportKind.ARTICLE_CATEGORY,
                {"article_id": article_id, "category_id": target_category},
            )
