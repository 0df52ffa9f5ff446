"""Product (article) import."""

import logging
import re
import string
from typing import Any, Dict, Optional

from ..loaders.base import ImportKind
from ..models.config import NumberValidationMode
from ..models.mapping import MappingType
from ..models.migration import StepName
from ..models.progress import Progress
from ..services.numbers import MAX_NUMBER_LENGTH, is_valid_number, make_valid_number
from .base import AbstractResource, StepError

logger = logging.getLogger(__name__)

_HTML_TAG = re.compile(r"<[^>]*>")

NUMBER_NOT_VALID = (
    "The product number '{number}' is not valid. A valid product number must "
    "not be longer than {max_length} chars and must not contain other chars than "
    "'a-zA-Z0-9-_.' and space. You can force the migration to continue with the "
    "number validation mode 'make_valid', which rewrites invalid numbers and "
    "does not record them as stable product links."
)


def strip_tags(text: Any) -> str:
    return _HTML_TAG.sub("", str(text))


class Product(AbstractResource):
    """
    Imports products as articles and their variants as article details.

    A child product references its parent through the article mapping. If
    the parent's main detail carries no configurator options it was only a
    placeholder master in the source system: the child replaces it as main
    detail and every mapping pointing at the placeholder is moved to the
    child in the same transaction.
    """

    steps = (StepName.PRODUCTS,)

    default_error_message = "An error occurred while importing products"
    done_message = "Products successfully imported!"
    progress_label = "products"

    def run(self) -> Progress:
        cursor = self.open_cursor(self.source.query_products)
        for product in cursor:
            self._import_product(product)
            self.advance()
            if self.needs_new_request():
                return self.progress

        return self.progress.done()

    def _import_product(self, product: Dict[str, Any]) -> None:
        product_id = product.get("product_id")

        # Select additional data for the article if needed
        info = self.source.get_additional_product_info(product_id)
        if info:
            product.update(info)

        # Group names of the variant options from the configurator mapping
        additional_text = product.get("additional_text")
        if additional_text and not product.get("variant_group_names"):
            key = string.capwords(str(additional_text).lower())
            if key in self.config.configurator_mapping:
                product["variant_group_names"] = self.config.configurator_mapping[key]

        synthetic_number = self._check_number(product)

        self._map_fields(product)

        parent_id = product.get("parent_id")
        if parent_id:
            product["maindetails_id"] = self.mappings.get(MappingType.ARTICLE, parent_id)

        description_long = product.pop("description_long", None)
        if product.get("description") is not None:
            product["description"] = strip_tags(product["description"])

        result = self.target.import_record(ImportKind.ARTICLE, product)
        product.update(result)

        main_detail_id = product.get("maindetails_id")
        if (main_detail_id
                and str(main_detail_id) != str(product["articledetails_id"])
                and not self.target.detail_has_configurator_options(main_detail_id)):
            self._replace_placeholder(main_detail_id, product["articledetails_id"], product["article_id"])
            product["kind"] = 1

        # Master articles of master/child sources get their configurator here
        if str(product.get("master_with_attributes")) in ("1", "True") and product.get("additional_text"):
            product["maindetails_id"] = product["articledetails_id"]
            self.target.set_article_configuration(product)

        if product.get("kind") == 1 and description_long is not None:
            fields = {"description_long": description_long}
            if product.get("meta_title"):
                fields["meta_title"] = product["meta_title"]
            self.target.update_article(product["article_id"], fields)

        self._import_price(product)
        self._import_link(product)

        # A rewritten number is no stable key for later runs
        if synthetic_number:
            logger.debug(f"Not mapping product {product_id} with rewritten number {product['order_number']}")
        else:
            self.mappings.put(MappingType.ARTICLE, product_id, product["articledetails_id"])

    def _check_number(self, product: Dict[str, Any]) -> bool:
        """
        Validate the order number according to the validation mode.

        Returns:
            True if the number was rewritten

        Raises:
            StepError: In `complain` mode, for the first invalid number
        """
        mode = self.config.number_validation_mode
        number = product.get("order_number")

        if mode == NumberValidationMode.IGNORE or is_valid_number(number):
            return False

        if mode == NumberValidationMode.COMPLAIN:
            raise StepError(NUMBER_NOT_VALID.format(
                number="" if number is None else number,
                max_length=MAX_NUMBER_LENGTH,
            ))

        product["order_number"] = make_valid_number(number, product.get("product_id"))
        logger.info(f"Rewrote order number '{number}' to '{product['order_number']}'")
        return True

    def _map_fields(self, product: Dict[str, Any]) -> None:
        """Apply the attribute, tax and supplier translations."""
        for source_field, target_field in self.config.attribute_map.items():
            if source_field in product:
                product[str(target_field)] = product.pop(source_field)

        tax_map = self.config.tax_rate_map
        if tax_map and "tax_id" in product:
            mapped = tax_map.get(str(product["tax_id"]))
            if mapped is None:
                del product["tax_id"]
            else:
                product["tax_id"] = mapped

        if not product.get("supplier_id") and not product.get("supplier"):
            product["supplier"] = self.config.default_supplier

    def _replace_placeholder(self, old_detail_id, new_detail_id, article_id) -> None:
        """
        Replace a placeholder main detail by the newly imported one.

        The mapping rewrite and the target update happen in one mapping
        transaction: if the target rejects the promotion, the rewrite is
        rolled back and the error stops the step at this row.
        """
        logger.info(f"Replacing placeholder detail {old_detail_id} of article {article_id} by {new_detail_id}")
        self.mappings.retarget(
            MappingType.ARTICLE,
            old_detail_id,
            new_detail_id,
            apply=lambda: self.target.promote_detail(old_detail_id, new_detail_id, article_id),
        )

    def _import_price(self, product: Dict[str, Any]) -> Optional[str]:
        self.convert_net_price(product, "net_price", "price")
        if product.get("price") is None:
            return None

        price = {
            "articledetails_id": product["articledetails_id"],
            "article_id": product["article_id"],
            "price_group": product.get("price_group") or "EK",
            "from_quantity": 1,
            "price": product["price"],
        }
        for key in ("pseudo_price", "tax"):
            if product.get(key) is not None:
                price[key] = product[key]

        result = self.target.import_record(ImportKind.ARTICLE_PRICE, price)
        return result.get("articleprices_id")

    def _import_link(self, product: Dict[str, Any]) -> None:
        if "link" not in product:
            return

        self.target.delete_article_links(product["article_id"])
        if product["link"]:
            self.target.import_record(ImportKind.ARTICLE_LINK, {
                "article_id": product["article_id"],
                "link": product["link"],
                "description": product.get("link_description") or product["link"],
            })
