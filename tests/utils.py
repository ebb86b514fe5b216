# tests/utils.py
import datetime
from typing import Any, Dict

# --- Record factories ---
# asyncpg.Record behaves like a read-only mapping; plain dicts are enough for
# both the CRUD layer (`rec["id"]`) and the endpoints (`dict(rec)`).

_NOW = datetime.datetime(2025, 7, 1, 12, 0, tzinfo=datetime.timezone.utc)


def make_list_record(list_id: int = 10, owner_id: int = 1, **overrides: Any) -> Dict[str, Any]:
    record = {
        "id": list_id,
        "owner_id": owner_id,
        "name": f"List {list_id}",
        "is_public": False,
        "created_at": _NOW,
        "updated_at": _NOW,
    }
    record.update(overrides)
    return record


def make_relationship_record(relationship_id: int, list_id: int = 10, contributor_id: int = 2) -> Dict[str, Any]:
    return {
        "id": relationship_id,
        "list_id": list_id,
        "contributor_id": contributor_id,
        "created_at": _NOW,
    }


def make_identity_record(user_id: int, username: str, **overrides: Any) -> Dict[str, Any]:
    record = {
        "id": user_id,
        "username": username,
        "display_name": username.title(),
        "profile_picture": None,
        "location": None,
        "timezone": None,
    }
    record.update(overrides)
    return record
