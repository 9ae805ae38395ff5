"""
Analysis record sources: local exports and the Firestore REST API.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd
import requests
from tqdm import tqdm

from .exceptions import MalformedTimestamp
from .interfaces import AnalysisSource
from .models import AnalysisRecord
from .time_utils import extract_time


logger = logging.getLogger(__name__)

DEFAULT_FETCH_LIMIT = 10
FIRESTORE_URL = "https://firestore.googleapis.com/v1"


def _records_from_rows(rows: Iterable[Dict[str, Any]], origin: str) -> List[AnalysisRecord]:
    records = []
    for index, row in enumerate(rows):
        try:
            records.append(AnalysisRecord.from_mapping(row))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning("Ignoring row %d of %s: %s", index, origin, e)
    return records


def load_records_file(path: Union[str, Path]) -> List[AnalysisRecord]:
    """Load analysis records from a .json, .jsonl or .csv export.

    Args:
        path: Export file path

    Returns:
        Records in file order
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("analyses", [])
        if not isinstance(data, list):
            raise ValueError(f"Expected a list of analyses in {path}")
        rows = data
    elif suffix == ".jsonl":
        df = pd.read_json(path, lines=True, dtype=False, convert_dates=False)
        rows = df.to_dict(orient="records")
    elif suffix == ".csv":
        df = pd.read_csv(path, dtype=str)
        rows = df.to_dict(orient="records")
    else:
        raise ValueError(f"Unsupported export format: {path.suffix or path.name}")

    records = _records_from_rows(rows, str(path))
    logger.info("Loaded %d analyses from %s", len(records), path)
    return records


def newest_first(records: Iterable[AnalysisRecord]) -> List[AnalysisRecord]:
    """Order records by analysis date, newest first, like the Firestore query.

    Records with unreadable dates go last, in their original order.
    """
    dated = []
    undated = []
    for record in records:
        try:
            dated.append((extract_time(record.analysis_date), record))
        except MalformedTimestamp:
            undated.append(record)
    dated.sort(key=lambda item: item[0], reverse=True)
    return [record for _, record in dated] + undated


class FileAnalysisSource(AnalysisSource):
    """Serve analyses from one or more exported files."""

    def __init__(self, paths: Sequence[Union[str, Path]]) -> None:
        self.paths = [Path(p) for p in paths]

    def fetch_analyses(
        self,
        customer_id: Optional[str] = None,
        study_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[AnalysisRecord]:
        paths = self.paths
        if len(paths) > 1:
            paths = tqdm(paths, desc="Loading exports")

        records: List[AnalysisRecord] = []
        for path in paths:
            records.extend(load_records_file(path))

        if customer_id:
            records = [r for r in records if r.customer_id == customer_id]
        if study_id:
            records = [r for r in records if r.study_id == study_id]
        if limit:
            records = newest_first(records)[:limit]
        return records

    def list_customers(self) -> Optional[List[Dict]]:
        return None


def decode_firestore_value(value: Dict[str, Any]) -> Any:
    """Decode one Firestore REST typed value into a plain Python value.

    Timestamps stay RFC 3339 strings.
    """
    if "stringValue" in value:
        return value["stringValue"]
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "timestampValue" in value:
        return value["timestampValue"]
    if "nullValue" in value:
        return None
    if "mapValue" in value:
        return decode_firestore_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_firestore_value(v) for v in value["arrayValue"].get("values", [])]
    for key in ("referenceValue", "bytesValue", "geoPointValue"):
        if key in value:
            return value[key]
    raise ValueError(f"Unknown Firestore value: {value}")


def decode_firestore_fields(fields: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    return {name: decode_firestore_value(v) for name, v in fields.items()}


def decode_firestore_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a Firestore REST document, adding its id from the resource name."""
    data = decode_firestore_fields(document.get("fields", {}))
    name = document.get("name", "")
    if name:
        data.setdefault("id", name.rsplit("/", 1)[-1])
    return data


class FirestoreAnalysisSource(AnalysisSource):
    """Query survey analyses through the Firestore REST API."""

    def __init__(
        self,
        project_id: str,
        api_key: Optional[str] = None,
        database: str = "(default)",
        collection: str = "survey-analyses",
        customers_collection: str = "customers",
        session: Optional[requests.Session] = None,
    ) -> None:
        self.project_id = project_id
        self.api_key = api_key
        self.database = database
        self.collection = collection
        self.customers_collection = customers_collection
        self.session = session or requests.Session()

    @property
    def documents_url(self) -> str:
        return f"{FIRESTORE_URL}/projects/{self.project_id}/databases/{self.database}/documents"

    def _params(self) -> Dict[str, str]:
        return {"key": self.api_key} if self.api_key else {}

    def build_query(
        self,
        customer_id: Optional[str] = None,
        study_id: Optional[str] = None,
        limit: Optional[int] = DEFAULT_FETCH_LIMIT,
    ) -> Dict[str, Any]:
        """Build the structured query: equality filters, newest first, limited."""
        filters = []
        for field_path, wanted in (("customerId", customer_id), ("studyId", study_id)):
            if wanted:
                filters.append({
                    "fieldFilter": {
                        "field": {"fieldPath": field_path},
                        "op": "EQUAL",
                        "value": {"stringValue": wanted},
                    }
                })

        query: Dict[str, Any] = {
            "from": [{"collectionId": self.collection}],
            "orderBy": [{"field": {"fieldPath": "analysisDate"}, "direction": "DESCENDING"}],
        }
        if len(filters) == 1:
            query["where"] = filters[0]
        elif filters:
            query["where"] = {"compositeFilter": {"op": "AND", "filters": filters}}
        if limit:
            query["limit"] = limit
        return {"structuredQuery": query}

    def fetch_analyses(
        self,
        customer_id: Optional[str] = None,
        study_id: Optional[str] = None,
        limit: Optional[int] = DEFAULT_FETCH_LIMIT,
    ) -> List[AnalysisRecord]:
        url = f"{self.documents_url}:runQuery"
        body = self.build_query(customer_id, study_id, limit)
        logger.info("Querying %s for analyses (customer=%s, study=%s, limit=%s)",
                    self.collection, customer_id, study_id, limit)
        with self.session.post(url, params=self._params(), json=body) as response:
            response.raise_for_status()
            results = response.json()

        rows = [decode_firestore_document(item["document"]) for item in results if "document" in item]
        logger.debug("Firestore returned %d analyses", len(rows))
        return _records_from_rows(rows, self.collection)

    def list_customers(self) -> Optional[List[Dict]]:
        url = f"{self.documents_url}/{self.customers_collection}"
        customers: List[Dict] = []
        page_token = None
        while True:
            params = self._params()
            if page_token:
                params["pageToken"] = page_token
            with self.session.get(url, params=params) as response:
                response.raise_for_status()
                data = response.json()
            customers.extend(decode_firestore_document(doc) for doc in data.get("documents", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                break
        logger.info("Loaded %d customers", len(customers))
        return customers
