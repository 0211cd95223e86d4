"""PocketBase client wrapper.

Routes record listing through ``client.send`` so filter strings reach the
server with %20-encoded spaces, and adds the batch endpoint used for
all-or-nothing inserts, which the Python SDK does not expose.
"""

from __future__ import annotations

import logging
from typing import Any

from pocketbase import PocketBase
from pocketbase.models.utils.list_result import ListResult
from pocketbase.services.record_service import RecordService

from ...logging_config import TRACE

logger = logging.getLogger(__name__)

BATCH_PATH = "/api/batch"


class WrappedRecordService(RecordService):
    """RecordService with listing sent through the raw client"""

    def __init__(self, original_service: RecordService) -> None:
        # Shares the original service's client
        self.client = original_service.client
        self.collection_id_or_name: str = getattr(original_service, "collection_id_or_name", "") or ""
        self._original_service = original_service

    def base_crud_path(self) -> str:
        return self._original_service.base_crud_path()

    def decode(self, data: dict[str, Any]) -> Any:
        return self._original_service.decode(data)

    def get_list(
        self,
        page: int = 1,
        per_page: int = 30,
        query_params: dict[str, Any] | None = None,
    ) -> Any:
        params = query_params.copy() if query_params else {}
        params.update({"page": page, "perPage": per_page})
        logger.log(TRACE, f"get_list {self.collection_id_or_name} params: {params}")

        response_data = self.client.send(self.base_crud_path(), {"method": "GET", "params": params})
        items = [self.decode(item) for item in response_data.get("items") or []]
        return ListResult(
            response_data.get("page", 1),
            response_data.get("perPage", 0),
            response_data.get("totalItems", 0),
            response_data.get("totalPages", 0),
            items,
        )

    def get_full_list(
        self,
        batch: int = 200,
        query_params: dict[str, Any] | None = None,
    ) -> list[Any]:
        result: list[Any] = []
        page = 1
        while True:
            list_result = self.get_list(page, batch, query_params)
            result += list_result.items
            if not list_result.items or list_result.total_items <= len(result):
                return result
            page += 1

    def __getattr__(self, name: str) -> Any:
        return getattr(self._original_service, name)


class PocketBaseWrapper:
    """Wrapper for a PocketBase client.

    Usage:
        pb = PocketBaseWrapper(PocketBase("http://localhost:8090"))
        rows = pb.collection("pld_sdv_requests").get_full_list(
            query_params={"filter": "calendar_id = 'abc'"}
        )
        pb.batch([{"method": "POST", "url": "/api/collections/x/records", "body": {...}}])
    """

    def __init__(self, pb_client: PocketBase):
        self._client = pb_client
        self._wrapped_services: dict[str, WrappedRecordService] = {}

    def collection(self, id_or_name: str) -> WrappedRecordService:
        if id_or_name not in self._wrapped_services:
            self._wrapped_services[id_or_name] = WrappedRecordService(self._client.collection(id_or_name))
        return self._wrapped_services[id_or_name]

    def batch(self, requests: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Run several record requests in one server-side transaction.

        Returns:
            One response entry per request, in order

        Raises:
            ClientResponseError: If any request fails; nothing is written
        """
        logger.log(TRACE, f"Sending batch of {len(requests)} requests")
        response = self._client.send(BATCH_PATH, {"method": "POST", "body": {"requests": requests}})
        return list(response or [])

    def __getattr__(self, name: str) -> Any:
        return getattr(self._client, name)
