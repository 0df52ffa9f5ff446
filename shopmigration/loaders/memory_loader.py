"""In-memory target shop, used for dry runs and tests."""

import itertools
import logging
from typing import Any, Dict, List, Optional, Tuple

from .base import ImportKind, TargetError, TargetProfile

logger = logging.getLogger(__name__)


class MemoryTarget(TargetProfile):
    """
    Target profile keeping the migrated shop in dictionaries.

    Handles:
    - Categories (upsert by parent + description)
    - Articles and article details (upsert by order number)
    - Prices (upsert by detail + price group + first quantity)
    - Article/category assignments and links
    - Customers (upsert by email), shipping addresses and debit data
    """

    name = "memory"

    def __init__(
        self,
        countries: Optional[Dict[str, int]] = None,
        shops: Optional[Dict[str, Dict[str, Any]]] = None,
        customer_groups: Optional[Dict[str, Dict[str, Any]]] = None,
        taxes: Optional[Dict[str, float]] = None,
        default_payment_id: Optional[int] = 5
    ):
        """
        Initialize the in-memory shop.

        Args:
            countries: ISO code -> country id
            shops: shop id -> {"locale_id", "category_id"}
            customer_groups: group key -> {"tax_input": bool}
            taxes: tax id -> rate
            default_payment_id: Configured default payment method
        """
        self.countries = countries if countries is not None else {"DE": 2, "AT": 23, "CH": 26, "GB": 11}
        self.shops = {str(k): v for k, v in (shops or {}).items()}
        self.customer_groups = customer_groups if customer_groups is not None else {
            "EK": {"tax_input": True},
            "H": {"tax_input": False},
        }
        self.taxes = {str(k): v for k, v in (taxes or {"1": 19.0, "4": 7.0}).items()}
        self._default_payment_id = default_payment_id

        self.categories: Dict[str, Dict[str, Any]] = {}
        self.articles: Dict[str, Dict[str, Any]] = {}
        self.details: Dict[str, Dict[str, Any]] = {}
        self.prices: Dict[str, Dict[str, Any]] = {}
        self.article_categories: List[Tuple[str, str]] = []
        self.links: Dict[str, Dict[str, Any]] = {}
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.shipping_addresses: Dict[str, Dict[str, Any]] = {}
        self.debits: Dict[str, Dict[str, Any]] = {}

        self._sequences: Dict[str, itertools.count] = {}

        # Every shop brings its root category
        for shop_id, shop in self.shops.items():
            if shop.get("category_id") is not None:
                self.categories[str(shop["category_id"])] = {"description": f"Shop {shop_id}", "parent": None}

    def _next_id(self, table: str, existing: Dict[str, Any]) -> str:
        if table not in self._sequences:
            self._sequences[table] = itertools.count(1)
        while True:
            candidate = str(next(self._sequences[table]))
            if candidate not in existing:
                return candidate

    def import_record(self, kind: ImportKind, record: Dict[str, Any]) -> Dict[str, Any]:
        """Write a record to the in-memory shop."""
        importers = {
            ImportKind.CATEGORY: self._import_category,
            ImportKind.ARTICLE: self._import_article,
            ImportKind.ARTICLE_PRICE: self._import_price,
            ImportKind.ARTICLE_CATEGORY: self._import_article_category,
            ImportKind.ARTICLE_LINK: self._import_link,
            ImportKind.CUSTOMER: self._import_customer,
            ImportKind.SHIPPING_ADDRESS: self._import_shipping_address,
            ImportKind.CUSTOMER_DEBIT: self._import_debit,
        }

        importer = importers.get(ImportKind(kind))
        if not importer:
            raise TargetError(f"Unknown import kind: {kind}")
        return importer(dict(record))

    def _import_category(self, record: Dict[str, Any]) -> Dict[str, Any]:
        if not record.get("description"):
            raise TargetError("Category description is required")

        parent = str(record["parent"]) if record.get("parent") is not None else None
        if parent is not None and parent not in self.categories:
            raise TargetError(f"Parent category {parent} does not exist")

        for category_id, existing in self.categories.items():
            if existing["parent"] == parent and existing["description"] == record["description"]:
                existing.update(record, parent=parent)
                return {"category_id": category_id}

        category_id = self._next_id("categories", self.categories)
        self.categories[category_id] = dict(record, parent=parent)
        return {"category_id": category_id}

    def _import_article(self, record: Dict[str, Any]) -> Dict[str, Any]:
        number = record.get("order_number")
        if not number:
            raise TargetError("Article order number is required")

        # Re-imported rows update the detail with the same order number
        for detail_id, detail in self.details.items():
            if detail["order_number"] == number:
                detail.update(self._detail_fields(record))
                self.articles[detail["article_id"]].update(self._article_fields(record))
                return {
                    "article_id": detail["article_id"],
                    "articledetails_id": detail_id,
                    "kind": detail["kind"],
                }

        main_detail_id = record.get("maindetails_id")
        if main_detail_id and str(main_detail_id) in self.details:
            # Variant of an existing article
            article_id = self.details[str(main_detail_id)]["article_id"]
            kind = 2
        else:
            article_id = self._next_id("articles", self.articles)
            self.articles[article_id] = self._article_fields(record)
            kind = 1

        detail_id = self._next_id("details", self.details)
        self.details[detail_id] = dict(self._detail_fields(record), article_id=article_id, kind=kind)
        if kind == 1:
            self.articles[article_id]["main_detail_id"] = detail_id

        return {"article_id": article_id, "articledetails_id": detail_id, "kind": kind}

    def _article_fields(self, record: Dict[str, Any]) -> Dict[str, Any]:
        fields = {
            key: value for key, value in record.items()
            if key not in ("order_number", "maindetails_id", "configurator_options", "additional_text")
        }
        return fields

    def _detail_fields(self, record: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "order_number": record.get("order_number"),
            "additional_text": record.get("additional_text"),
            "configurator_options": list(record.get("configurator_options") or []),
        }

    def _import_price(self, record: Dict[str, Any]) -> Dict[str, Any]:
        detail_id = str(record.get("articledetails_id"))
        if detail_id not in self.details:
            raise TargetError(f"Article detail {detail_id} does not exist")

        from_quantity = int(record.get("from_quantity") or 1)
        record["from_quantity"] = from_quantity
        record.setdefault("price_group", "EK")

        for price_id, price in self.prices.items():
            if (price["articledetails_id"] == detail_id
                    and price["price_group"] == record["price_group"]
                    and price["from_quantity"] == from_quantity):
                price.update(record, articledetails_id=detail_id)
                return {"articleprices_id": price_id}

        price_id = self._next_id("prices", self.prices)
        self.prices[price_id] = dict(record, articledetails_id=detail_id)
        return {"articleprices_id": price_id}

    def _import_article_category(self, record: Dict[str, Any]) -> Dict[str, Any]:
        pair = (str(record["article_id"]), str(record["category_id"]))
        if pair[1] not in self.categories:
            raise TargetError(f"Category {pair[1]} does not exist")
        if pair not in self.article_categories:
            self.article_categories.append(pair)
        return {}

    def _import_link(self, record: Dict[str, Any]) -> Dict[str, Any]:
        link_id = self._next_id("links", self.links)
        self.links[link_id] = record
        return {"articlelink_id": link_id}

    def _import_customer(self, record: Dict[str, Any]) -> Dict[str, Any]:
        email = record.get("email")
        if not email:
            raise TargetError("Customer email is required")

        for user_id, customer in self.customers.items():
            if customer.get("email") == email:
                customer.update(record)
                return {"user_id": user_id}

        user_id = self._next_id("customers", self.customers)
        self.customers[user_id] = record
        return {"user_id": user_id}

    def _import_shipping_address(self, record: Dict[str, Any]) -> Dict[str, Any]:
        user_id = str(record["user_id"])
        self.shipping_addresses[user_id] = record
        return {"id": user_id}

    def _import_debit(self, record: Dict[str, Any]) -> Dict[str, Any]:
        user_id = str(record["user_id"])
        self.debits[user_id] = record
        return {"id": user_id}

    def root_category_for_locale(self, locale_id) -> Optional[str]:
        for shop in self.shops.values():
            if str(shop.get("locale_id")) == str(locale_id):
                category_id = shop.get("category_id")
                return str(category_id) if category_id is not None else None
        return None

    def update_category(self, category_id, fields: Dict[str, Any]) -> None:
        category = self.categories.get(str(category_id))
        if category is None:
            raise TargetError(f"Category {category_id} does not exist")
        category.update(fields)

    def article_id_for_detail(self, detail_id) -> Optional[str]:
        detail = self.details.get(str(detail_id))
        return detail["article_id"] if detail else None

    def detail_has_configurator_options(self, detail_id) -> bool:
        detail = self.details.get(str(detail_id))
        return bool(detail and detail["configurator_options"])

    def promote_detail(self, old_detail_id, new_detail_id, article_id) -> None:
        old_detail_id, new_detail_id, article_id = str(old_detail_id), str(new_detail_id), str(article_id)

        # Validate everything before touching anything
        if old_detail_id not in self.details:
            raise TargetError(f"Placeholder detail {old_detail_id} does not exist")
        if new_detail_id not in self.details:
            raise TargetError(f"Detail {new_detail_id} does not exist")
        if article_id not in self.articles:
            raise TargetError(f"Article {article_id} does not exist")

        del self.details[old_detail_id]
        self.articles[article_id]["main_detail_id"] = new_detail_id
        self.details[new_detail_id]["kind"] = 1
        self.details[new_detail_id]["article_id"] = article_id

    def set_article_configuration(self, record: Dict[str, Any]) -> None:
        detail_id = str(record.get("maindetails_id"))
        detail = self.details.get(detail_id)
        if detail is None:
            raise TargetError(f"Detail {detail_id} does not exist")

        groups = _split_names(record.get("variant_group_names"))
        options = _split_names(record.get("additional_text"))
        detail["configurator_options"] = [
            {"group": groups[i] if i < len(groups) else f"Group {i + 1}", "option": option}
            for i, option in enumerate(options)
        ]

        article = self.articles[detail["article_id"]]
        article["main_detail_id"] = detail_id
        article["configurator_set"] = [o["group"] for o in detail["configurator_options"]]

    def update_article(self, article_id, fields: Dict[str, Any]) -> None:
        article = self.articles.get(str(article_id))
        if article is None:
            raise TargetError(f"Article {article_id} does not exist")
        article.update(fields)

    def delete_article_links(self, article_id) -> None:
        for link_id in [k for k, v in self.links.items() if str(v.get("article_id")) == str(article_id)]:
            del self.links[link_id]

    def price_context(self, detail_id, price_group: str) -> Optional[Dict[str, Any]]:
        detail = self.details.get(str(detail_id))
        group = self.customer_groups.get(price_group)
        if detail is None or group is None:
            return None

        article = self.articles.get(detail["article_id"], {})
        rate = self.taxes.get(str(article.get("tax_id")), 0)
        return {
            "articledetails_id": str(detail_id),
            "article_id": detail["article_id"],
            "tax": rate if group.get("tax_input") else 0,
        }

    def reset_block_prices(self) -> None:
        for price_id in [k for k, v in self.prices.items() if v["from_quantity"] > 1]:
            del self.prices[price_id]
        for price in self.prices.values():
            price["to_quantity"] = None

    def country_id(self, iso: str) -> int:
        return int(self.countries.get(str(iso).upper(), 0))

    def shop_locale(self, shop_id) -> Optional[int]:
        shop = self.shops.get(str(shop_id))
        return shop.get("locale_id") if shop else None

    def default_payment_id(self) -> Optional[int]:
        return self._default_payment_id


def _split_names(value) -> List[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [part.strip() for part in str(value).split("|") if part.strip()]
