# src/taskclock/sync/firestore_sync.py

"""
Remote authoritative logged-time store backed by Firestore (REST API).

Tasks are not addressed by document id: the app looks them up the way the
task views do, by collection (selfTasks vs tasks), title, project id and the
signed-in user. Every matching document is updated on write; the first match
is read on fetch.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..tasks.task_models import TaskIdentity

logger = logging.getLogger(__name__)

TOTAL_TIME_FIELD = "totalTimeLogged"

UID_KEYS = ("assigneeId", "assignedId", "assignedUID", "assignedUid", "employeeId", "createdByUid", "userUid")
EMAIL_KEYS = ("assignedEmail", "assigneeEmail", "createdByEmail", "userEmail")


class RemoteSyncError(RuntimeError):
    """Remote store answered with an error (HTTP status >= 300 or unusable body)."""


def _string_value(fields: dict[str, Any], key: str) -> str | None:
    raw = fields.get(key)
    if isinstance(raw, dict):
        v = raw.get("stringValue")
        return v if isinstance(v, str) else None
    return None


def _number_value(raw: Any) -> float | None:
    if not isinstance(raw, dict):
        return None
    if "doubleValue" in raw:
        try:
            return float(raw["doubleValue"])
        except (TypeError, ValueError):
            return None
    if "integerValue" in raw:
        # Firestore serializes int64 as a string.
        try:
            return float(int(raw["integerValue"]))
        except (TypeError, ValueError):
            return None
    return None


def matches_user(fields: dict[str, Any], uid: str | None, email: str | None) -> bool:
    """
    Is this document assigned to / owned by the current user?

    - uid and email both known: either may match,
    - only one known: that one must match,
    - neither known: every document matches.
    """
    uid_matched = bool(uid) and any(_string_value(fields, k) == uid for k in UID_KEYS)
    email_matched = bool(email) and any(_string_value(fields, k) == email for k in EMAIL_KEYS)

    if uid and email:
        return uid_matched or email_matched
    if uid:
        return uid_matched
    if email:
        return email_matched
    return True


def _field_filter(field: str, value: str) -> dict[str, Any]:
    return {
        "fieldFilter": {
            "field": {"fieldPath": field},
            "op": "EQUAL",
            "value": {"stringValue": value},
        }
    }


def build_structured_query(identity: TaskIdentity) -> dict[str, Any]:
    filters = [_field_filter("title", identity.title)]
    if identity.project_id:
        filters.append(_field_filter("projectId", identity.project_id))

    where = filters[0] if len(filters) == 1 else {"compositeFilter": {"op": "AND", "filters": filters}}
    return {
        "structuredQuery": {
            "from": [{"collectionId": identity.collection}],
            "where": where,
        }
    }


class FirestoreTimeSync:
    """
    RemoteTimeSync over the Firestore REST API.

    The httpx client can be injected (tests use httpx.MockTransport); otherwise
    one is created on first use and closed by aclose().
    """

    def __init__(
        self,
        *,
        project_id: str,
        base_url: str = "https://firestore.googleapis.com/v1",
        id_token: str | None = None,
        user_uid: str | None = None,
        user_email: str | None = None,
        timeout_seconds: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not project_id:
            raise ValueError("project_id is required")
        self._project_id = project_id
        self._base_url = base_url.rstrip("/")
        self._id_token = id_token
        self._user_uid = user_uid
        self._user_email = user_email
        self._timeout = timeout_seconds
        self._client = client
        self._owns_client = client is None

    @property
    def documents_root(self) -> str:
        return f"projects/{self._project_id}/databases/(default)/documents"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._id_token:
            headers["Authorization"] = f"Bearer {self._id_token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _extract_error(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, list) and body:
            body = body[0]
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            msg = body["error"].get("message")
            if msg:
                return f"HTTP {response.status_code}: {msg}"
        text = (response.text or "").strip()
        if text:
            return f"HTTP {response.status_code}: {text[:300]}"
        return f"HTTP {response.status_code}: request failed"

    async def _find_documents(self, identity: TaskIdentity) -> list[dict[str, Any]]:
        url = f"{self._base_url}/{self.documents_root}:runQuery"
        response = await self._get_client().post(
            url,
            headers=self._headers(),
            json=build_structured_query(identity),
        )
        if response.status_code >= 300:
            raise RemoteSyncError(self._extract_error(response))

        try:
            rows = response.json()
        except ValueError as e:
            raise RemoteSyncError("runQuery returned a non-JSON body") from e
        if not isinstance(rows, list):
            raise RemoteSyncError("runQuery returned an unexpected body")

        docs: list[dict[str, Any]] = []
        for row in rows:
            doc = row.get("document") if isinstance(row, dict) else None
            if not isinstance(doc, dict) or not doc.get("name"):
                continue
            fields = doc.get("fields") or {}
            if matches_user(fields, self._user_uid, self._user_email):
                docs.append(doc)

        logger.debug(
            "runQuery %s title=%r project=%s -> %d of %d document(s)",
            identity.collection,
            identity.title,
            identity.project_id,
            len(docs),
            len(rows),
        )
        return docs

    async def fetch_task_total_time(self, identity: TaskIdentity) -> float | None:
        docs = await self._find_documents(identity)
        if not docs:
            return None
        fields = docs[0].get("fields") or {}
        return _number_value(fields.get(TOTAL_TIME_FIELD))

    async def update_task_total_time(self, identity: TaskIdentity, seconds: float) -> int:
        docs = await self._find_documents(identity)
        client = self._get_client()
        body = {"fields": {TOTAL_TIME_FIELD: {"doubleValue": float(seconds)}}}

        updated = 0
        for doc in docs:
            response = await client.patch(
                f"{self._base_url}/{doc['name']}",
                params={"updateMask.fieldPaths": TOTAL_TIME_FIELD},
                headers=self._headers(),
                json=body,
            )
            if response.status_code >= 300:
                logger.warning("Failed to update %s: %s", doc["name"], self._extract_error(response))
                continue
            updated += 1

        if docs and not updated:
            raise RemoteSyncError(f"none of {len(docs)} matching document(s) could be updated")
        return updated
