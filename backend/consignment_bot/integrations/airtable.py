"""
Airtable record store adapter.

WHAT: Role-level record store operations over the Airtable REST API (v0)
WHY: Airtable is the source of truth for orders, inventory, sales and the offer message log
HOW: httpx.AsyncClient, explicit StoreSchema, values decoded once via decode_field
"""

from typing import Any, Optional
from urllib.parse import quote

import httpx

from .types import (
    StoreRecord,
    UpstreamResponseError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from ..core.schema import FieldSpec, StoreSchema
from ..models.domain import InventoryUnit, OutboundMessage, SaleRecord
from ..models.fields import (
    FieldValue,
    decode_field,
    first_link_of,
    number_of,
    text_of,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

SERVICE = "airtable"


def formula_literal(value: str) -> str:
    """Quote a string for use inside an Airtable formula."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def field_equals(spec: FieldSpec, value: str) -> str:
    """Formula matching records whose field equals value."""
    return f"{{{spec.name}}}={formula_literal(value)}"


class AirtableRecordStore:
    """Record store backed by one Airtable base."""

    def __init__(
        self,
        api_key: str,
        base_id: str,
        schema: StoreSchema,
        base_url: str = "https://api.airtable.com/v0",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.base_id = base_id
        self.schema = schema
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def open(self) -> None:
        """Create the HTTP client."""
        if self.client is not None:
            return
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self._timeout),
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            transport=self._transport,
        )
        logger.info(f"Airtable client initialized (base: {self.base_id})")

    async def close(self) -> None:
        """Close the HTTP client."""
        if self.client is not None:
            await self.client.aclose()
            self.client = None

    # ---------- raw REST ----------

    def _table_path(self, table: str, record_id: Optional[str] = None) -> str:
        path = f"/{self.base_id}/{quote(table, safe='')}"
        if record_id:
            path += f"/{quote(record_id, safe='')}"
        return path

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[dict[str, Any]] = None
    ) -> dict:
        """
        Send one request and return the decoded JSON body.

        Raises:
            UpstreamTimeoutError: Request timed out
            UpstreamUnavailableError: Airtable not reachable
            UpstreamResponseError: Non-success status or invalid body
        """
        if self.client is None:
            await self.open()
        try:
            response = await self.client.request(method, path, json=json, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(SERVICE, f"{method} {path} timed out") from e
        except httpx.ConnectError as e:
            raise UpstreamUnavailableError(SERVICE, f"{method} {path}: connection failed") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamResponseError(
                SERVICE,
                f"{method} {path} → {e.response.status_code} {e.response.text}",
                status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(SERVICE, f"{method} {path}: {e}") from e
        except ValueError as e:
            raise UpstreamResponseError(SERVICE, f"{method} {path}: invalid JSON body") from e

        if not isinstance(data, dict):
            raise UpstreamResponseError(SERVICE, f"{method} {path}: expected a JSON object")
        return data

    @staticmethod
    def _record(data: dict) -> StoreRecord:
        if not isinstance(data.get("id"), str):
            raise UpstreamResponseError(SERVICE, "record has no id")
        return StoreRecord(id=data["id"], fields=data.get("fields") or {})

    async def get_record(self, table: str, record_id: str) -> StoreRecord:
        return self._record(await self._request("GET", self._table_path(table, record_id)))

    async def create_record(self, table: str, fields: dict[str, Any]) -> StoreRecord:
        data = await self._request("POST", self._table_path(table), json={"fields": fields})
        return self._record(data)

    async def patch_record(self, table: str, record_id: str, fields: dict[str, Any]) -> StoreRecord:
        data = await self._request(
            "PATCH", self._table_path(table, record_id), json={"fields": fields}
        )
        return self._record(data)

    async def list_records(
        self,
        table: str,
        formula: str,
        max_records: Optional[int] = None
    ) -> list[StoreRecord]:
        """List records matching a formula, following offset pagination."""
        records: list[StoreRecord] = []
        params: dict[str, Any] = {"filterByFormula": formula}
        if max_records is not None:
            params["maxRecords"] = max_records

        while True:
            data = await self._request("GET", self._table_path(table), params=params)
            records.extend(self._record(r) for r in data.get("records") or [])
            offset = data.get("offset")
            if not offset:
                break
            params = {**params, "offset": offset}
        return records

    # ---------- decoding ----------

    @staticmethod
    def _value(record: StoreRecord, spec: Optional[FieldSpec]) -> Optional[FieldValue]:
        if spec is None:
            return None
        return decode_field(spec.name, spec.kind, record.fields.get(spec.name))

    @staticmethod
    def _put(fields: dict[str, Any], spec: Optional[FieldSpec], value: Any) -> None:
        """Set a field unless it is unmapped or the value is empty."""
        if spec is None or value is None or value == "":
            return
        fields[spec.name] = value

    # ---------- inventory / sales / orders ----------

    async def read_inventory_unit(self, unit_id: str) -> InventoryUnit:
        record = await self.get_record(self.schema.inventory_table, unit_id)
        inv = self.schema.inventory
        quantity = number_of(self._value(record, inv.quantity))
        return InventoryUnit(
            id=record.id,
            quantity=int(quantity),
            product_name=text_of(self._value(record, inv.product_name)),
            size=text_of(self._value(record, inv.size)),
            brand=text_of(self._value(record, inv.brand)),
            vat_label=text_of(self._value(record, inv.vat_type)),
            sku_link_id=first_link_of(self._value(record, inv.sku_link)),
            seller_link_id=first_link_of(self._value(record, inv.seller_link)),
        )

    async def create_sale(self, sale: SaleRecord, unit: InventoryUnit) -> SaleRecord:
        spec = self.schema.sale
        fields: dict[str, Any] = {}
        self._put(fields, spec.product_name, unit.product_name)
        self._put(fields, spec.size, unit.size)
        self._put(fields, spec.brand, unit.brand)
        self._put(fields, spec.final_price, float(sale.final_price))
        self._put(fields, spec.vat_type, unit.vat_label)
        self._put(fields, spec.sku_link, [unit.sku_link_id] if unit.sku_link_id else None)
        self._put(fields, spec.seller_link, [unit.seller_link_id] if unit.seller_link_id else None)
        self._put(fields, spec.order_link, [sale.order_id])
        self._put(fields, spec.order_record_id, sale.order_id)

        logger.info(f"Creating sale for order {sale.order_id}: {fields}")
        record = await self.create_record(self.schema.sales_table, fields)
        sale.record_id = record.id
        return sale

    async def set_inventory_quantity(self, unit_id: str, quantity: int) -> None:
        await self.patch_record(
            self.schema.inventory_table,
            unit_id,
            {self.schema.inventory.quantity.name: quantity}
        )

    async def mark_order_matched(self, order_id: str, inventory_unit_id: str) -> None:
        fields: dict[str, Any] = {self.schema.order.status.name: self.schema.order_matched_status}
        self._put(fields, self.schema.order.matched_inventory, [inventory_unit_id])
        await self.patch_record(self.schema.orders_table, order_id, fields)

    async def sale_exists_for_order(self, order_id: str) -> bool:
        records = await self.list_records(
            self.schema.sales_table,
            field_equals(self.schema.sale.order_record_id, order_id),
            max_records=1
        )
        return bool(records)

    # ---------- offer message registry ----------

    async def create_offer_message(self, entry: OutboundMessage) -> None:
        spec = self.schema.offer_message
        fields: dict[str, Any] = {
            spec.order_id.name: entry.order_id,
            spec.channel_id.name: entry.channel_id,
            spec.message_id.name: entry.message_id,
        }
        self._put(fields, spec.seller_id, entry.seller_id)
        self._put(fields, spec.inventory_id, entry.inventory_unit_id)
        self._put(
            fields,
            spec.offer_price,
            float(entry.decided_price) if entry.decided_price is not None else None
        )
        await self.create_record(self.schema.offer_messages_table, fields)

    async def list_offer_messages(self, order_id: str) -> list[OutboundMessage]:
        spec = self.schema.offer_message
        records = await self.list_records(
            self.schema.offer_messages_table,
            field_equals(spec.order_id, order_id)
        )

        entries = []
        for record in records:
            channel_id = text_of(self._value(record, spec.channel_id))
            message_id = text_of(self._value(record, spec.message_id))
            if not channel_id or not message_id:
                logger.debug(f"Skipping offer message row {record.id} without a location")
                continue
            price = self._value(record, spec.offer_price)
            entries.append(OutboundMessage(
                order_id=order_id,
                seller_id=text_of(self._value(record, spec.seller_id)) or None,
                inventory_unit_id=text_of(self._value(record, spec.inventory_id)) or None,
                channel_id=channel_id,
                message_id=message_id,
                decided_price=number_of(price) if price is not None else None,
            ))
        return entries
