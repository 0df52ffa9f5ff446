"""Tests for the customer adapter."""

import pytest

from shopmigration.models.config import StepConfig
from shopmigration.models.mapping import MappingType
from shopmigration.models.migration import StepName


@pytest.fixture
def customer_config():
    return StepConfig(
        max_execution=None,
        customer_group_map={"1": "EK"},
        shop_map={"1": "1"},
        language_map={"de": "2"},
        password_salt="pepper",
    )


def customer_row(**fields):
    row = {
        "customer_id": "C1",
        "email": "jane@example.com",
        "md5_password": "5f4dcc3b5aa765d61d8327deb882cf99",
        "customer_group_id": "1",
        "shop_id": "1",
        "billing_firstname": "Jane",
        "billing_lastname": "Doe",
        "billing_street": "Main Street",
        "billing_street_number": "5",
        "billing_country_iso": "de",
    }
    row.update(fields)
    return row


def only_customer(target):
    [(user_id, customer)] = target.customers.items()
    return user_id, customer


class TestImportCustomers:
    """Tests for the customer record itself."""

    def test_customer_imported_and_mapped(self, run_resource, mappings, target, customer_config):
        progress, resource = run_resource(
            StepName.CUSTOMERS, {"customers": [customer_row()]}, step_config=customer_config
        )

        assert progress.is_done
        user_id, customer = only_customer(target)
        assert mappings.get(MappingType.CUSTOMER, "C1") == user_id
        assert customer["md5_password"] == "5f4dcc3b5aa765d61d8327deb882cf99:pepper"
        assert customer["billing_country_id"] == 2
        assert customer["billing_street"] == "Main Street 5"
        assert customer["customer_group"] == "EK"
        assert customer["shop_id"] == "1"
        assert customer["payment_id"] == 5
        assert resource.done_message == "Customers successfully imported!"

    def test_language_from_shop(self, run_resource, target, customer_config):
        run_resource(StepName.CUSTOMERS, {"customers": [customer_row()]}, step_config=customer_config)

        _, customer = only_customer(target)
        assert customer["language"] == 2

    def test_language_translated(self, run_resource, target, customer_config):
        run_resource(
            StepName.CUSTOMERS, {"customers": [customer_row(language="de")]}, step_config=customer_config
        )

        _, customer = only_customer(target)
        assert customer["language"] == "2"

    def test_unmapped_ids_dropped(self, run_resource, target, customer_config):
        row = customer_row(customer_group_id="9", shop_id="7", language="fr")

        run_resource(StepName.CUSTOMERS, {"customers": [row]}, step_config=customer_config)

        _, customer = only_customer(target)
        for key in ("customer_group", "customer_group_id", "shop_id", "language"):
            assert key not in customer

    def test_no_salt_keeps_password(self, run_resource, target, config):
        run_resource(StepName.CUSTOMERS, {"customers": [customer_row()]}, step_config=config)

        _, customer = only_customer(target)
        assert customer["md5_password"] == "5f4dcc3b5aa765d61d8327deb882cf99"

    def test_explicit_payment_kept(self, run_resource, target, customer_config):
        run_resource(StepName.CUSTOMERS, {"customers": [customer_row(payment_id=3)]}, step_config=customer_config)

        _, customer = only_customer(target)
        assert customer["payment_id"] == 3

    def test_missing_email_stops_step(self, run_resource, mappings, customer_config):
        rows = {"customers": [customer_row(), customer_row(customer_id="C2", email="")]}

        progress, _ = run_resource(StepName.CUSTOMERS, rows, step_config=customer_config)

        assert progress.is_error
        assert progress.offset == 1
        assert mappings.count(MappingType.CUSTOMER) == 1


class TestShippingAddress:
    """Tests for splitting off the shipping address."""

    def test_shipping_address_split(self, run_resource, target, customer_config):
        row = customer_row(
            shipping_firstname="John",
            shipping_lastname="Doe",
            shipping_street="Side Road 1",
            shipping_city="Vienna",
            shipping_country_iso="at",
        )

        run_resource(StepName.CUSTOMERS, {"customers": [row]}, step_config=customer_config)

        user_id, customer = only_customer(target)
        address = target.shipping_addresses[user_id]
        assert address["firstname"] == "John"
        assert address["city"] == "Vienna"
        assert address["company"] == ""
        assert address["country_id"] == 23
        assert address["user_id"] == user_id
        assert customer["shipping_firstname"] == ""
        assert customer["shipping_lastname"] == ""

    def test_no_shipping_name_no_address(self, run_resource, target, customer_config):
        row = customer_row(shipping_street="Side Road 1")

        run_resource(StepName.CUSTOMERS, {"customers": [row]}, step_config=customer_config)

        assert target.shipping_addresses == {}


class TestDebit:
    """Tests for the all-or-nothing debit data."""

    def test_complete_debit_imported(self, run_resource, target, customer_config):
        row = customer_row(account="123456", bank_code="37040044", bank_holder="Jane Doe", bank_name="Bank")

        run_resource(StepName.CUSTOMERS, {"customers": [row]}, step_config=customer_config)

        user_id, _ = only_customer(target)
        assert target.debits[user_id] == {
            "account": "123456",
            "bank_code": "37040044",
            "bank_holder": "Jane Doe",
            "bank_name": "Bank",
            "user_id": user_id,
        }

    def test_incomplete_debit_discarded(self, run_resource, mappings, target, customer_config):
        """Test the customer is kept even though the debit data is dropped."""
        row = customer_row(account="123456", bank_code="37040044", bank_holder="Jane Doe")

        progress, resource = run_resource(StepName.CUSTOMERS, {"customers": [row]}, step_config=customer_config)

        assert progress.is_done
        assert target.debits == {}
        assert mappings.get(MappingType.CUSTOMER, "C1") is not None
        assert "bank_name" in resource.warnings[0]

    def test_no_account_no_debit(self, run_resource, target, customer_config):
        run_resource(StepName.CUSTOMERS, {"customers": [customer_row()]}, step_config=customer_config)

        assert target.debits == {}
