"""
Unit tests for the Airtable record store adapter.

WHAT: Request shapes, pagination, field decoding and error mapping
WHY: The store is the only durable state; its contract must hold exactly
HOW: Mock HTTP with respx, inspect the requests the adapter sends
"""

import json
from decimal import Decimal

import httpx
import pytest
import respx

from consignment_bot.core.schema import StoreSchema
from consignment_bot.integrations.airtable import AirtableRecordStore, field_equals, formula_literal
from consignment_bot.integrations.types import (
    UpstreamResponseError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from consignment_bot.models.domain import InventoryUnit, OutboundMessage, SaleRecord
from consignment_bot.utils.exceptions import FieldShapeError

HOST = "api.airtable.com"
BASE = "/v0/appTEST"


@pytest.fixture
def schema(test_settings):
    settings = test_settings.model_copy(update={
        "AIRTABLE_TABLE_ORDERS": "Orders",
        "AIRTABLE_TABLE_OFFER_MSGS": "OfferMessages",
        "FIELD_ORDER_MATCHED_INVENTORY": "Matched Inventory",
    })
    return StoreSchema.from_settings(settings)


@pytest.fixture
def airtable(schema):
    """Store client; the HTTP client opens lazily on the first request."""
    return AirtableRecordStore(api_key="key", base_id="appTEST", schema=schema)


def sent_json(route) -> dict:
    return json.loads(route.calls.last.request.content)


@pytest.mark.unit
class TestFormula:

    def test_literal_escapes_quotes(self):
        assert formula_literal("O'Neil") == "'O\\'Neil'"

    def test_field_equals(self, schema):
        assert field_equals(schema.sale.order_record_id, "recO1") == "{Order Record ID}='recO1'"


@pytest.mark.unit
class TestInventory:

    @pytest.mark.asyncio
    @respx.mock
    async def test_read_inventory_unit_decodes_fields(self, airtable):
        respx.get(host=HOST, path=f"{BASE}/Inventory/recI1").mock(return_value=httpx.Response(200, json={
            "id": "recI1",
            "fields": {
                "Quantity": 3,
                "Master Product Name": "Dunk Low Panda",
                "Size EU": "42",
                "Brand": "Nike",
                "VAT Type (Margin / VAT0 / VAT21)": {"id": "sel1", "name": "VAT0"},
                "SKU Master": ["recSKU"],
                "Linked Seller": ["recSELLER"],
            },
        }))

        unit = await airtable.read_inventory_unit("recI1")

        assert unit == InventoryUnit(
            id="recI1", quantity=3, product_name="Dunk Low Panda", size="42", brand="Nike",
            vat_label="VAT0", sku_link_id="recSKU", seller_link_id="recSELLER",
        )

    @pytest.mark.asyncio
    @respx.mock
    async def test_lookup_arrays_decode_to_joined_text(self, airtable):
        respx.get(host=HOST, path=f"{BASE}/Inventory/recI1").mock(return_value=httpx.Response(200, json={
            "id": "recI1",
            "fields": {
                "Quantity": 1,
                "Master Product Name": ["Jordan 1 Retro High OG"],
                "Size EU": [42],
                "Brand": ["Nike", "Jordan"],
                "VAT Type (Margin / VAT0 / VAT21)": "Margin",
            },
        }))

        unit = await airtable.read_inventory_unit("recI1")

        assert unit.product_name == "Jordan 1 Retro High OG"
        assert unit.size == "42"
        assert unit.brand == "Nike, Jordan"

    @pytest.mark.asyncio
    @respx.mock
    async def test_missing_fields_decode_to_defaults(self, airtable):
        respx.get(host=HOST, path=f"{BASE}/Inventory/recI1").mock(
            return_value=httpx.Response(200, json={"id": "recI1", "fields": {}})
        )

        unit = await airtable.read_inventory_unit("recI1")

        assert unit.quantity == 0
        assert unit.sku_link_id is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_wrong_field_shape_raises(self, airtable):
        respx.get(host=HOST, path=f"{BASE}/Inventory/recI1").mock(
            return_value=httpx.Response(200, json={"id": "recI1", "fields": {"Quantity": "three"}})
        )

        with pytest.raises(FieldShapeError):
            await airtable.read_inventory_unit("recI1")

    @pytest.mark.asyncio
    @respx.mock
    async def test_set_quantity_patches_number(self, airtable):
        route = respx.patch(host=HOST, path=f"{BASE}/Inventory/recI1").mock(
            return_value=httpx.Response(200, json={"id": "recI1", "fields": {"Quantity": 0}})
        )

        await airtable.set_inventory_quantity("recI1", 0)

        assert sent_json(route) == {"fields": {"Quantity": 0}}


@pytest.mark.unit
class TestSalesAndOrders:

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_sale_fields(self, airtable):
        route = respx.post(host=HOST, path=f"{BASE}/Sales").mock(
            return_value=httpx.Response(200, json={"id": "recSALE", "fields": {}})
        )
        unit = InventoryUnit(
            id="recI1", quantity=1, product_name="Dunk Low", size="42", brand="",
            vat_label="Margin", sku_link_id="recSKU", seller_link_id=None,
        )

        sale = await airtable.create_sale(
            SaleRecord(order_id="recO1", inventory_unit_id="recI1", seller_id="S1", final_price=Decimal("96.80")),
            unit
        )

        assert sale.record_id == "recSALE"
        assert sent_json(route) == {"fields": {
            "Product Name": "Dunk Low",
            "Size": "42",
            "Final Selling Price": 96.8,
            "VAT Type": "Margin",
            "SKU": ["recSKU"],
            "Order Number": ["recO1"],
            "Order Record ID": "recO1",
        }}

    @pytest.mark.asyncio
    @respx.mock
    async def test_sale_exists_queries_order_record_id(self, airtable):
        route = respx.get(host=HOST, path=f"{BASE}/Sales").mock(
            return_value=httpx.Response(200, json={"records": [{"id": "recSALE", "fields": {}}]})
        )

        assert await airtable.sale_exists_for_order("recO1") is True

        params = route.calls.last.request.url.params
        assert params["filterByFormula"] == "{Order Record ID}='recO1'"
        assert params["maxRecords"] == "1"

    @pytest.mark.asyncio
    @respx.mock
    async def test_no_sale(self, airtable):
        respx.get(host=HOST, path=f"{BASE}/Sales").mock(
            return_value=httpx.Response(200, json={"records": []})
        )

        assert await airtable.sale_exists_for_order("recO1") is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_mark_order_matched_sets_status_and_link(self, airtable):
        route = respx.patch(host=HOST, path=f"{BASE}/Orders/recO1").mock(
            return_value=httpx.Response(200, json={"id": "recO1", "fields": {}})
        )

        await airtable.mark_order_matched("recO1", "recI1")

        assert sent_json(route) == {"fields": {"Status": "Matched", "Matched Inventory": ["recI1"]}}


@pytest.mark.unit
class TestOfferMessages:

    @pytest.mark.asyncio
    @respx.mock
    async def test_create_offer_message(self, airtable):
        route = respx.post(host=HOST, path=f"{BASE}/OfferMessages").mock(
            return_value=httpx.Response(200, json={"id": "recMSG", "fields": {}})
        )

        await airtable.create_offer_message(OutboundMessage(
            order_id="recO1", seller_id="S1", inventory_unit_id="recI1",
            channel_id="c1", message_id="m1", decided_price=Decimal("90.00"),
        ))

        assert sent_json(route) == {"fields": {
            "Order Record ID": "recO1",
            "Channel ID": "c1",
            "Message ID": "m1",
            "Seller ID": "S1",
            "Inventory Record ID": "recI1",
            "Offer Price": 90.0,
        }}

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_follows_offset_and_skips_rows_without_location(self, airtable):
        route = respx.get(host=HOST, path=f"{BASE}/OfferMessages").mock(side_effect=[
            httpx.Response(200, json={
                "records": [
                    {"id": "r1", "fields": {"Channel ID": "c1", "Message ID": "m1", "Seller ID": "S1", "Offer Price": 90}},
                    {"id": "r2", "fields": {"Channel ID": "c2"}},
                ],
                "offset": "page2",
            }),
            httpx.Response(200, json={
                "records": [{"id": "r3", "fields": {"Channel ID": "c3", "Message ID": "m3"}}],
            }),
        ])

        entries = await airtable.list_offer_messages("recO1")

        assert [(e.channel_id, e.message_id) for e in entries] == [("c1", "m1"), ("c3", "m3")]
        assert entries[0].decided_price == Decimal("90")
        assert entries[1].seller_id is None
        assert route.call_count == 2
        assert route.calls[1].request.url.params["offset"] == "page2"
        assert route.calls[1].request.url.params["filterByFormula"] == "{Order Record ID}='recO1'"


@pytest.mark.unit
class TestErrors:

    @pytest.mark.asyncio
    @respx.mock
    async def test_non_success_status(self, airtable):
        respx.get(host=HOST, path=f"{BASE}/Inventory/recX").mock(
            return_value=httpx.Response(404, json={"error": "NOT_FOUND"})
        )

        with pytest.raises(UpstreamResponseError) as exc_info:
            await airtable.read_inventory_unit("recX")

        assert exc_info.value.status_code == 404
        assert exc_info.value.service == "airtable"

    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout(self, airtable):
        respx.get(host=HOST, path=f"{BASE}/Sales").mock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(UpstreamTimeoutError):
            await airtable.sale_exists_for_order("recO1")

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_refused(self, airtable):
        respx.get(host=HOST, path=f"{BASE}/Sales").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(UpstreamUnavailableError):
            await airtable.sale_exists_for_order("recO1")

    @pytest.mark.asyncio
    @respx.mock
    async def test_invalid_json(self, airtable):
        respx.get(host=HOST, path=f"{BASE}/Sales").mock(return_value=httpx.Response(200, content=b"<html>"))

        with pytest.raises(UpstreamResponseError):
            await airtable.sale_exists_for_order("recO1")
