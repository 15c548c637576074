"""Client for the charging-station directory (Opendatasoft records API)."""

from __future__ import annotations

import logging

import httpx

from ...config import settings
from ...models.domain import Corridor, StationRecord
from ..http_client import BaseHttpClient
from .normalizer import parse_station_record

logger = logging.getLogger(__name__)


class StationDirectoryClient(BaseHttpClient):
    service_name = "Station directory"

    def __init__(
        self,
        base_url: str | None = None,
        *,
        dataset: str | None = None,
        max_rows: int | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__(base_url or settings.station_directory_url, client=client)
        self.dataset = dataset or settings.station_dataset
        self.max_rows = max_rows or settings.station_max_rows

    def search(self, corridor: Corridor) -> list[StationRecord]:
        """Return the raw station records that fall inside the corridor."""
        params = {"dataset": self.dataset, "rows": self.max_rows, **corridor.to_geofilter()}
        data = self.get_json(self.base_url, params=params)
        raw_records = data.get("records") if isinstance(data, dict) else None
        if not isinstance(raw_records, list):
            logger.warning("Station directory response has no 'records' list")
            return []
        records = [parse_station_record(raw) for raw in raw_records if isinstance(raw, dict)]
        logger.info(f"Station directory returned {len(records)} records (nhits={data.get('nhits', 'n/a')})")
        return records
