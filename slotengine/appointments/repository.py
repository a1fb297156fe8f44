from datetime import datetime

from boto3.dynamodb.conditions import Attr, Key

from slotengine.appointments.models import CAPACITY_STATUSES, Appointment
from slotengine.clock import format_instant
from slotengine.database import decode_items, get_table, query_all


class AppointmentRepository:
    """Read access to appointments, keyed by their UTC start under the storefront PK."""

    def __init__(self, table=None) -> None:
        self.table = table if table is not None else get_table()

    def _pk(self, storefront_id: int) -> str:
        return f"STOREFRONT#{storefront_id}"

    def get_overlapping_appointments(
        self,
        storefront_id: int,
        service_id: int | None,
        utc_start: datetime,
        utc_end: datetime,
    ) -> list[Appointment]:
        """Pending/confirmed appointments overlapping [utc_start, utc_end).

        service_id=None returns every service's appointments at the storefront.
        """
        # SK sorts by start instant: everything starting before utc_end is a candidate,
        # the end filter drops the ones already finished by utc_start.
        key = Key("PK").eq(self._pk(storefront_id)) & Key("SK").between(
            "APPOINTMENT#",
            f"APPOINTMENT#{format_instant(utc_end)}",
        )
        flt = Attr("end_datetime").gt(format_instant(utc_start)) & Attr("status").is_in(
            list(CAPACITY_STATUSES)
        )
        if service_id is not None:
            flt = flt & Attr("service_id").eq(service_id)
        items = query_all(self.table, KeyConditionExpression=key, FilterExpression=flt)
        appointments = decode_items(items, Appointment.from_dynamo_item, "appointment")
        return [
            a for a in appointments
            if a.consumes_capacity and a.overlaps(utc_start, utc_end)
        ]
