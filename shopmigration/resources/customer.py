"""Customer import."""

import logging
from typing import Any, Dict

from ..loaders.base import ImportKind
from ..models.mapping import MappingType
from ..models.migration import StepName
from ..models.progress import Progress
from .base import AbstractResource

logger = logging.getLogger(__name__)

# Every one of these is needed, otherwise the debit data is discarded
DEBIT_FIELDS = ("account", "bank_code", "bank_holder", "bank_name", "user_id")

SHIPPING_FIELDS = (
    "company",
    "department",
    "salutation",
    "firstname",
    "lastname",
    "street",
    "zipcode",
    "city",
)


class Customer(AbstractResource):
    """Imports customers with their shipping address and debit data."""

    steps = (StepName.CUSTOMERS,)

    default_error_message = "An error occurred while importing customers"
    done_message = "Customers successfully imported!"
    progress_label = "customers"

    def run(self) -> Progress:
        cursor = self.open_cursor(self.source.query_customers)
        for customer in cursor:
            self._import_customer(customer)
            self.advance()
            if self.needs_new_request():
                return self.progress

        return self.progress.done()

    def _import_customer(self, customer: Dict[str, Any]) -> None:
        self._map_ids(customer)

        if customer.get("billing_country_iso"):
            customer["billing_country_id"] = self.target.country_id(customer["billing_country_iso"])
        if "shipping_country_iso" in customer:
            customer["shipping_country_id"] = self.target.country_id(customer["shipping_country_iso"] or "")

        if customer.get("payment_id") is None:
            customer["payment_id"] = self.target.default_payment_id()

        if customer.get("md5_password") and self.config.password_salt:
            customer["md5_password"] = f"{customer['md5_password']}:{self.config.password_salt}"

        # If language is not set, read it from the shop
        if not customer.get("language") and customer.get("shop_id"):
            locale_id = self.target.shop_locale(customer["shop_id"])
            if locale_id:
                customer["language"] = locale_id

        if customer.get("billing_street") and customer.get("billing_street_number"):
            customer["billing_street"] = f"{customer['billing_street']} {customer['billing_street_number']}"

        shipping = self._split_shipping_address(customer)

        result = self.target.import_record(ImportKind.CUSTOMER, customer)
        customer.update(result)

        if shipping:
            shipping["user_id"] = customer["user_id"]
            self.target.import_record(ImportKind.SHIPPING_ADDRESS, shipping)

        if customer.get("account"):
            self._import_debit(customer)

        self.mappings.put(MappingType.CUSTOMER, customer.get("customer_id"), customer["user_id"])

    def _map_ids(self, customer: Dict[str, Any]) -> None:
        """Translate group, shop and language ids; unmapped ones are dropped."""
        group_id = customer.pop("customer_group_id", None)
        if group_id is not None and str(group_id) in self.config.customer_group_map:
            customer["customer_group"] = self.config.customer_group_map[str(group_id)]

        shop_id = customer.pop("shop_id", None)
        if shop_id is not None and str(shop_id) in self.config.shop_map:
            customer["shop_id"] = self.config.shop_map[str(shop_id)]

        language = customer.pop("language", None)
        if language is not None and str(language) in self.config.language_map:
            customer["language"] = self.config.language_map[str(language)]

    def _split_shipping_address(self, customer: Dict[str, Any]) -> Dict[str, Any]:
        """
        Build the separate shipping address record, if there is one.

        The main record's duplicated name fields are cleared afterwards.
        """
        if not any(customer.get(f"shipping_{key}") for key in ("company", "firstname", "lastname")):
            return {}

        shipping = {key: customer.get(f"shipping_{key}") or "" for key in SHIPPING_FIELDS}
        shipping["country_id"] = customer.get("shipping_country_id") or 0

        for key in ("company", "firstname", "lastname"):
            customer[f"shipping_{key}"] = ""
        return shipping

    def _import_debit(self, customer: Dict[str, Any]) -> bool:
        """Write the debit data if it is complete, otherwise discard it."""
        debit = {key: customer.get(key) for key in DEBIT_FIELDS}
        missing = [key for key, value in debit.items() if value in (None, "")]
        if missing:
            self.add_warning(
                f"Incomplete debit data of customer {customer.get('customer_id')} discarded, "
                f"missing: {', '.join(missing)}"
            )
            return False

        self.target.import_record(ImportKind.CUSTOMER_DEBIT, debit)
        return True
