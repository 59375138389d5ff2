import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from supabase import create_client, Client

from domain.errors import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = "data"
DEFAULT_KV_TABLE = "kv_store"


class KeyValueStore:
    """
    Durable string -> string store.
    Values are JSON documents; the store itself never parses them.
    """

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    """
    One file per key under `root` (e.g. data/psi_orders_v2.json).
    Writes go to a temp file first and are moved into place,
    so a crash mid-write never leaves half a document behind.
    """

    def __init__(self, root: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            logger.warning("Could not decode %s: %s", path, e)
            return ""
        except OSError as e:
            raise PersistenceError(f"Could not read '{key}': {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise PersistenceError(f"Could not save '{key}': {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not delete '{key}': {e}") from e


class SupabaseKeyValueStore(KeyValueStore):
    """
    Key-value rows in a Supabase table:

      create table <schema>.kv_store (key text primary key, value text);
    """

    def __init__(self, client: Client, schema: str, table: str = DEFAULT_KV_TABLE):
        self.client = client
        self.schema = schema
        self.table = table

    def _table(self):
        return self.client.schema(self.schema).table(self.table)

    def get(self, key: str) -> Optional[str]:
        try:
            resp = (
                self._table()
                .select("value")
                .eq("key", key)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Could not read '{key}': {e}") from e

        if getattr(resp, "error", None):
            raise PersistenceError(f"Could not read '{key}': {resp.error}")

        if not resp.data:
            return None
        return resp.data[0]["value"]

    def set(self, key: str, value: str) -> None:
        try:
            resp = (
                self._table()
                .upsert({"key": key, "value": value}, on_conflict="key")
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Could not save '{key}': {e}") from e

        if getattr(resp, "error", None):
            raise PersistenceError(f"Could not save '{key}': {resp.error}")

    def delete(self, key: str) -> None:
        try:
            resp = self._table().delete().eq("key", key).execute()
        except Exception as e:
            raise PersistenceError(f"Could not delete '{key}': {e}") from e

        if getattr(resp, "error", None):
            raise PersistenceError(f"Could not delete '{key}': {resp.error}")


def load_json(store: KeyValueStore, key: str, fallback: Any) -> Any:
    """
    Read and parse the JSON document under `key`.
    Missing, empty (null) or corrupt documents give `fallback`;
    a backend that cannot be read at all raises PersistenceError.
    """
    raw = store.get(key)
    if raw is None:
        return fallback

    try:
        value = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning("Ignoring corrupt data under '%s': %s", key, e)
        return fallback

    return fallback if value is None else value


def save_json(store: KeyValueStore, key: str, value: Any) -> None:
    """
    Serialize `value` and write it under `key`.
    Any backend failure surfaces as PersistenceError.
    """
    try:
        payload = json.dumps(value)
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"Could not serialize '{key}': {e}") from e

    try:
        store.set(key, payload)
    except PersistenceError:
        raise
    except Exception as e:
        raise PersistenceError(f"Could not save '{key}': {e}") from e


def create_store_from_env() -> KeyValueStore:
    """
    Build the store configured in the environment (.env is honoured):

      STORE_BACKEND = file (default) | supabase
      STORE_PATH    = directory for the file backend
      SUPABASE_URL, SUPABASE_KEY, SCHEMA, KV_TABLE for the supabase backend
    """
    load_dotenv()
    backend = (os.getenv("STORE_BACKEND") or "file").strip().lower()

    if backend == "supabase":
        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_KEY")
        if not url or not key:
            raise RuntimeError("Set SUPABASE_URL and SUPABASE_KEY in .env or environment variables")

        client = create_client(url, key)
        schema = os.getenv("SCHEMA") or "public"
        table = os.getenv("KV_TABLE") or DEFAULT_KV_TABLE
        logger.info("Using supabase store %s.%s", schema, table)
        return SupabaseKeyValueStore(client, schema, table)

    if backend != "file":
        raise RuntimeError(f"Unknown STORE_BACKEND: {backend}")

    path = os.getenv("STORE_PATH") or DEFAULT_STORE_PATH
    logger.info("Using file store at %s", path)
    return JsonFileKeyValueStore(path)
