from slotengine.database import decode_items, get_table
from slotengine.storefronts.models import Service, Storefront


class StorefrontRepository:
    """Read access to storefront and service profiles."""

    def __init__(self, table=None) -> None:
        self.table = table if table is not None else get_table()

    def get_storefront(self, storefront_id: int) -> Storefront | None:
        resp = self.table.get_item(Key={"PK": f"STOREFRONT#{storefront_id}", "SK": "PROFILE"})
        item = resp.get("Item")
        return decode_items([item], Storefront.from_dynamo_item, "storefront")[0] if item else None

    def get_service(self, service_id: int) -> Service | None:
        resp = self.table.get_item(Key={"PK": f"SERVICE#{service_id}", "SK": "PROFILE"})
        item = resp.get("Item")
        return decode_items([item], Service.from_dynamo_item, "service")[0] if item else None
