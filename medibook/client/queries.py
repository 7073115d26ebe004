"""Cached reads over ``MediBookClient`` with interval refetch and
invalidation after mutations."""
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from .api import MediBookClient
from .dashboard import DashboardSummary, summarize_appointments

APPOINTMENTS_REFETCH_SECONDS = 30
MEDICAL_RECORDS_REFETCH_SECONDS = 60

QueryKey = Tuple[Hashable, ...]


@dataclass
class _Entry:
    data: Any
    fetched_at: float
    stale: bool = False


class QueryCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[QueryKey, _Entry] = {}

    def fetch(self, key: QueryKey, fetcher: Callable[[], Any], refetch_interval: Optional[float] = None):
        """Cached result for ``key``, refetched when invalidated or older than the interval."""
        entry = self._entries.get(key)
        now = self._clock()
        if entry is not None and not entry.stale:
            if refetch_interval is None or now - entry.fetched_at < refetch_interval:
                return entry.data

        data = fetcher()
        self._entries[key] = _Entry(data=data, fetched_at=now)
        return data

    def invalidate(self, *prefix: Hashable) -> int:
        """Mark every entry whose key starts with ``prefix`` as stale."""
        count = 0
        for key, entry in self._entries.items():
            if key[:len(prefix)] == prefix:
                entry.stale = True
                count += 1
        return count

    def clear(self):
        self._entries.clear()


class BookingData:
    """Data layer behind the dashboard, appointment, records and vitals views."""

    def __init__(self, client: MediBookClient, cache: Optional[QueryCache] = None):
        self.client = client
        self.cache = cache or QueryCache()

    # Reads
    def appointments(self) -> list:
        data = self.cache.fetch(
            ("appointments",), self.client.list_appointments, APPOINTMENTS_REFETCH_SECONDS
        )
        return data["appointments"]

    def medical_records(self, page: int = 1, limit: int = 10) -> dict:
        return self.cache.fetch(
            ("medical-records", page, limit),
            lambda: self.client.list_medical_records(page, limit),
            MEDICAL_RECORDS_REFETCH_SECONDS,
        )

    def patient_medical_records(self, patient_id: int, page: int = 1, limit: int = 10) -> dict:
        return self.cache.fetch(
            ("medical-records", "patient", patient_id, page, limit),
            lambda: self.client.patient_medical_records(patient_id, page, limit),
            MEDICAL_RECORDS_REFETCH_SECONDS,
        )

    def vitals_history(self, patient_id: int, measurement: str = "weight") -> list:
        return self.cache.fetch(
            ("vitals-history", patient_id, measurement),
            lambda: self.client.vitals_history(patient_id, measurement),
        )

    def dashboard(self) -> DashboardSummary:
        return summarize_appointments(self.appointments())

    # Mutations
    def book_appointment(self, *args, **kwargs) -> dict:
        result = self.client.book_appointment(*args, **kwargs)
        self.cache.invalidate("appointments")
        return result

    def update_appointment_status(self, *args, **kwargs) -> dict:
        result = self.client.update_appointment_status(*args, **kwargs)
        self.cache.invalidate("appointments")
        return result

    def cancel_appointment(self, appointment_id: int) -> dict:
        result = self.client.cancel_appointment(appointment_id)
        self.cache.invalidate("appointments")
        return result

    def create_medical_record(self, *args, **kwargs) -> dict:
        result = self.client.create_medical_record(*args, **kwargs)
        self.cache.invalidate("medical-records")
        return result

    def update_medical_record(self, *args, **kwargs) -> dict:
        result = self.client.update_medical_record(*args, **kwargs)
        self.cache.invalidate("medical-records")
        return result

    def delete_medical_record(self, record_id: int) -> dict:
        result = self.client.delete_medical_record(record_id)
        self.cache.invalidate("medical-records")
        return result

    def record_vitals(self, *args, **kwargs) -> dict:
        result = self.client.record_vitals(*args, **kwargs)
        # Vitals readings are records too
        self.cache.invalidate("vitals-history")
        self.cache.invalidate("medical-records")
        return result
