from datetime import date

from boto3.dynamodb.conditions import Key

from slotengine.database import decode_items, get_table, query_all
from slotengine.schedule.models import Drop, ScheduleRule, rule_from_dynamo_item


class ScheduleRepository:
    """DynamoDB access for schedule rules and drops, both kept under the storefront PK."""

    def __init__(self, table=None) -> None:
        self.table = table if table is not None else get_table()

    def _pk(self, storefront_id: int) -> str:
        return f"STOREFRONT#{storefront_id}"

    # --- Rules ---

    def get_active_rules(self, storefront_id: int, service_id: int) -> list[ScheduleRule]:
        """Live rules of the storefront that apply to the service (or to every service)."""
        items = query_all(
            self.table,
            KeyConditionExpression=Key("PK").eq(self._pk(storefront_id)) & Key("SK").begins_with("RULE#"),
        )
        rules = decode_items(items, rule_from_dynamo_item, "schedule rule")
        return [r for r in rules if r.is_live and r.applies_to_service(service_id)]

    # --- Drops ---

    def get_active_drops(
        self,
        storefront_id: int,
        service_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Drop]:
        """Published, active drops for the service, optionally limited to a date range."""
        if start_date is not None and end_date is not None:
            # "~" sorts after every "#<id>" suffix, so end_date's drops are included
            sk = Key("SK").between(
                f"DROP#{start_date.isoformat()}",
                f"DROP#{end_date.isoformat()}~",
            )
        else:
            sk = Key("SK").begins_with("DROP#")
        items = query_all(
            self.table,
            KeyConditionExpression=Key("PK").eq(self._pk(storefront_id)) & sk,
        )
        drops = decode_items(items, Drop.from_dynamo_item, "drop")
        return [d for d in drops if d.is_live and d.applies_to_service(service_id)]
