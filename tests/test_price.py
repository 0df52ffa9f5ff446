"""Tests for the price adapter."""

import pytest

from shopmigration.loaders.base import ImportKind
from shopmigration.models.config import StepConfig
from shopmigration.models.mapping import MappingType
from shopmigration.models.migration import StepName
from shopmigration.models.progress import Progress
from shopmigration.resources.base import AbstractResource, net_to_gross


@pytest.fixture
def detail_id(target, mappings):
    """A migrated product P1 with tax id 1 (19%)."""
    result = target.import_record(ImportKind.ARTICLE, {"order_number": "SW1", "tax_id": "1"})
    mappings.put(MappingType.ARTICLE, "P1", result["articledetails_id"])
    return result["articledetails_id"]


def prices_of(target, detail_id):
    return [p for p in target.prices.values() if p["articledetails_id"] == detail_id]


class TestNetToGross:
    """Tests for the gross price rounding."""

    @pytest.mark.parametrize("net,tax,gross", [
        (100, 19, 119.0),
        ("10.00", "7", 10.7),
        (0.125, 0, 0.13),
        (8.4, 19, 10.0),
    ])
    def test_rounding(self, net, tax, gross):
        assert net_to_gross(net, tax) == gross

    def test_convert_net_price(self):
        record = AbstractResource.convert_net_price({"net_price": 100, "tax": 19}, "net_price", "price")

        assert record == {"price": 119.0, "tax": 19}

    @pytest.mark.parametrize("net", [None, ""])
    def test_unset_net_figure_left_alone(self, net):
        record = AbstractResource.convert_net_price({"net_price": net, "tax": 19}, "net_price", "price")

        assert record == {"net_price": net, "tax": 19}


class TestImportPrices:
    """Tests for the price step."""

    def test_gross_price_for_tax_input_group(self, run_resource, target, detail_id):
        rows = {"product_prices": [{"product_id": "P1", "price_group": "EK", "net_price": 100}]}

        progress, _ = run_resource(StepName.PRICES, rows)

        assert progress.is_done
        [price] = prices_of(target, detail_id)
        assert price["price"] == 119.0
        assert price["tax"] == 19.0
        assert "net_price" not in price

    def test_net_group_drops_tax(self, run_resource, target, detail_id):
        """Test a group without tax input takes the net figure as is."""
        rows = {"product_prices": [{"product_id": "P1", "price_group": "H", "net_price": 100}]}

        run_resource(StepName.PRICES, rows)

        [price] = prices_of(target, detail_id)
        assert price["price"] == 100
        assert "tax" not in price

    def test_pseudo_price_converted(self, run_resource, target, detail_id):
        rows = {"product_prices": [
            {"product_id": "P1", "net_price": 100, "net_pseudo_price": 200},
        ]}

        run_resource(StepName.PRICES, rows)

        [price] = prices_of(target, detail_id)
        assert price["pseudo_price"] == 238.0

    def test_empty_group_defaults_to_ek(self, run_resource, target, detail_id):
        rows = {"product_prices": [{"product_id": "P1", "price_group": "", "net_price": 10}]}

        run_resource(StepName.PRICES, rows)

        [price] = prices_of(target, detail_id)
        assert price["price_group"] == "EK"

    def test_group_translated(self, run_resource, target, detail_id):
        config = StepConfig(max_execution=None, price_group_map={"dealer": "H"})
        rows = {"product_prices": [{"product_id": "P1", "price_group": "dealer", "net_price": 10}]}

        run_resource(StepName.PRICES, rows, step_config=config)

        [price] = prices_of(target, detail_id)
        assert price["price_group"] == "H"

    def test_unmapped_group_skipped(self, run_resource, target, detail_id):
        """Test the skipped row still moves the offset forward."""
        config = StepConfig(max_execution=None, price_group_map={"dealer": "H"})
        rows = {"product_prices": [
            {"product_id": "P1", "price_group": "vip", "net_price": 10},
            {"product_id": "P1", "price_group": "dealer", "net_price": 20},
        ]}

        progress, resource = run_resource(StepName.PRICES, rows, step_config=config)

        assert progress.is_done
        assert progress.offset == 2
        assert len(prices_of(target, detail_id)) == 1
        assert "vip" in resource.warnings[0]

    def test_unknown_product_skipped(self, run_resource, target, detail_id):
        rows = {"product_prices": [{"product_id": "P9", "net_price": 10}]}

        progress, resource = run_resource(StepName.PRICES, rows)

        assert progress.offset == 1
        assert target.prices == {}
        assert len(resource.warnings) == 1

    def test_unknown_customer_group_skipped(self, run_resource, target, detail_id):
        rows = {"product_prices": [{"product_id": "P1", "price_group": "B2B", "net_price": 10}]}

        _, resource = run_resource(StepName.PRICES, rows)

        assert target.prices == {}
        assert "B2B" in resource.warnings[0]

    def test_block_prices_reset_on_first_invocation(self, run_resource, target, detail_id):
        target.import_record(ImportKind.ARTICLE_PRICE, {
            "articledetails_id": detail_id, "from_quantity": 1, "to_quantity": 10, "price": 5,
        })
        target.import_record(ImportKind.ARTICLE_PRICE, {
            "articledetails_id": detail_id, "from_quantity": 11, "price": 4,
        })

        run_resource(StepName.PRICES, {"product_prices": []}, progress=Progress(offset=1))
        assert len(prices_of(target, detail_id)) == 2

        run_resource(StepName.PRICES, {"product_prices": []})
        [price] = prices_of(target, detail_id)
        assert price["from_quantity"] == 1
        assert price["to_quantity"] is None
