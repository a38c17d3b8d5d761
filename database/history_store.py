"""
Analysis history persistence.

Two back ends share one interface (save / list / get / delete):
- InMemoryHistoryStore: process-local, used when no MongoDB URI is configured
- MongoHistoryStore: pymongo collection keyed by the report ``_id``
"""

import copy
import logging
import os
from typing import Dict, List, Optional

import pandas as pd
from dotenv import load_dotenv
from pymongo import ASCENDING, DESCENDING
from pymongo.mongo_client import MongoClient
from pymongo.server_api import ServerApi

logger = logging.getLogger(__name__)

DEFAULT_DB_NAME = "trafo_diagnostics"
DEFAULT_COLLECTION = "history"

# Sort options -> document field
SORT_FIELDS = {
    "date": "createdAt",
    "idTrafo": "header.idTrafo",
    "result": "result.result",
    "voltage": "result.average",
}


def sort_field(sort_by: str) -> str:
    try:
        return SORT_FIELDS[sort_by]
    except KeyError:
        raise ValueError(f"Unknown sort option {sort_by!r} (expected one of {', '.join(SORT_FIELDS)})")


def _lookup(entry: Dict, dotted: str):
    value = entry
    for part in dotted.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _verdict(entry: Dict):
    """BDV result (good / fair / poor) or DGA severity of an entry."""
    result = entry.get("result") or {}
    return result.get("result") if entry.get("kind") == "bdv" else result.get("severity")


class InMemoryHistoryStore:
    """History kept in a dict, newest first on listing by default."""

    def __init__(self):
        self._entries: Dict[str, Dict] = {}

    def save(self, entry: Dict) -> str:
        entry_id = entry["_id"]
        self._entries[entry_id] = copy.deepcopy(entry)
        logger.debug("Saved history entry %s", entry_id)
        return entry_id

    def list(self, kind: Optional[str] = None, limit: int = 100, result: Optional[str] = None,
             sort_by: str = "date", descending: bool = True) -> List[Dict]:
        field = sort_field(sort_by)
        entries = [
            e for e in self._entries.values()
            if (not kind or e.get("kind") == kind) and (not result or _verdict(e) == result)
        ]
        # Entries without the sort field go last in either direction
        present = sorted((e for e in entries if _lookup(e, field) is not None),
                         key=lambda e: _lookup(e, field), reverse=descending)
        missing = [e for e in entries if _lookup(e, field) is None]
        return [copy.deepcopy(e) for e in (present + missing)[:limit]]

    def get(self, entry_id: str) -> Optional[Dict]:
        entry = self._entries.get(entry_id)
        return copy.deepcopy(entry) if entry is not None else None

    def delete(self, entry_id: str) -> bool:
        return self._entries.pop(entry_id, None) is not None

    def clear(self):
        self._entries.clear()


class MongoHistoryStore:
    """History kept in a MongoDB collection."""

    def __init__(self, collection):
        self.collection = collection

    @classmethod
    def from_uri(cls, uri: str, db_name: str = DEFAULT_DB_NAME,
                 collection_name: str = DEFAULT_COLLECTION) -> "MongoHistoryStore":
        client = MongoClient(uri, server_api=ServerApi('1'))
        return cls(client[db_name][collection_name])

    def ping(self) -> bool:
        self.collection.database.client.admin.command('ping')
        return True

    def save(self, entry: Dict) -> str:
        self.collection.replace_one({"_id": entry["_id"]}, entry, upsert=True)
        logger.debug("Saved history entry %s to MongoDB", entry["_id"])
        return entry["_id"]

    def list(self, kind: Optional[str] = None, limit: int = 100, result: Optional[str] = None,
             sort_by: str = "date", descending: bool = True) -> List[Dict]:
        field = sort_field(sort_by)
        query = {"kind": kind} if kind else {}
        if result:
            query["$or"] = [{"kind": "bdv", "result.result": result},
                            {"kind": "dga", "result.severity": result}]
        direction = DESCENDING if descending else ASCENDING
        cursor = self.collection.find(query).sort(field, direction).limit(limit)
        return list(cursor)

    def get(self, entry_id: str) -> Optional[Dict]:
        return self.collection.find_one({"_id": entry_id})

    def delete(self, entry_id: str) -> bool:
        return self.collection.delete_one({"_id": entry_id}).deleted_count > 0


def get_history_store():
    """
    Store selected from the environment: MongoDB when MONGODB_URI is set,
    in memory otherwise.
    """
    load_dotenv()
    uri = os.getenv("MONGODB_URI")
    if not uri:
        logger.info("MONGODB_URI not set, using in-memory history")
        return InMemoryHistoryStore()

    db_name = os.getenv("MONGODB_DB", DEFAULT_DB_NAME)
    collection = os.getenv("MONGODB_COLLECTION", DEFAULT_COLLECTION)
    logger.info("Using MongoDB history (%s.%s)", db_name, collection)
    return MongoHistoryStore.from_uri(uri, db_name, collection)


def history_to_dataframe(entries: List[Dict]) -> pd.DataFrame:
    """Flat table of history entries for display and export."""
    rows = []
    for entry in entries:
        header = entry.get("header", {})
        result = entry.get("result", {})
        if entry.get("kind") == "bdv":
            verdict = result.get("result", "")
            detail = f"{result.get('average', 0):.2f} kV (class {result.get('transformerType', '')})"
        else:
            verdict = result.get("severity", "")
            detail = ", ".join(entry.get("faultTypes", [])) or "NORMAL"
        rows.append({
            "id": entry.get("_id"),
            "kind": entry.get("kind", ""),
            "created_at": entry.get("createdAt", ""),
            "id_trafo": header.get("idTrafo", ""),
            "sampling_date": header.get("samplingDate", ""),
            "result": verdict,
            "detail": detail,
        })
    columns = ["id", "kind", "created_at", "id_trafo", "sampling_date", "result", "detail"]
    return pd.DataFrame(rows, columns=columns)
