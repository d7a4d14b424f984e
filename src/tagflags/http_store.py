"""Couchbase Query Service を使ったフラグストア実装"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from .config import CouchbaseSection
from .exceptions import AlreadyExistsError, DependencyError, FlagError, NotFoundError, StoreError
from .models import Record
from .query import Update, Where, build_update, fully_qualified_name
from .store import FLAG_SCOPE_COLLECTION, UPDATE_LIMIT, FlagReader, FlagWriter

logger = structlog.stdlib.get_logger(__name__)

QUERY_SERVICE_PATH = "/query/service"
# Query Service のエラーコード: Duplicate Key
DUPLICATE_KEY_CODE = 12009


class CouchbaseQueryStore(FlagReader, FlagWriter):
    """httpx で N1QL を実行するフラグストア。"""

    def __init__(self, config: CouchbaseSection) -> None:
        missing: list[str] = []
        if not config.base_url:
            missing.append("base_url")
        if not config.bucket:
            missing.append("bucket")
        if missing:
            raise DependencyError("flag store", missing)

        self._config = config
        self._fqn = fully_qualified_name(config.bucket, FLAG_SCOPE_COLLECTION)
        self._auth = (config.username, config.password) if config.username else None

    @property
    def fqn(self) -> str:
        return self._fqn

    def _make_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._config.base_url,
            auth=self._auth,
            headers={"Content-Type": "application/json"},
            timeout=self._config.timeout_seconds,
        )

    def _body(self, statement: str, params: dict[str, Any]) -> dict[str, Any]:
        body: dict[str, Any] = {
            "statement": statement,
            "scan_consistency": "request_plus",
            "timeout": f"{int(self._config.timeout_seconds * 1000)}ms",
        }
        body.update({f"${name}": value for name, value in params.items()})
        return body

    async def _execute(
        self,
        statement: str,
        params: dict[str, Any],
        context: str,
        flag_id: str,
    ) -> list[Any]:
        try:
            async with self._make_client() as client:
                resp = await client.post(QUERY_SERVICE_PATH, json=self._body(statement, params))
            try:
                data: dict[str, Any] = resp.json()
            except ValueError:
                data = {}

            errors: list[dict[str, Any]] = data.get("errors") or []
            for err in errors:
                if err.get("code") == DUPLICATE_KEY_CODE or "duplicate key" in str(
                    err.get("msg", "")
                ).lower():
                    raise AlreadyExistsError(flag_id)
            if resp.status_code >= 400 or errors or data.get("status") != "success":
                raise StoreError(f"{context}: HTTP {resp.status_code}: {errors or resp.text}")
            return data.get("results") or []
        except FlagError:
            raise
        except Exception as e:
            raise StoreError(f"{context}: {e}", cause=e) from e

    async def get(self, flag_id: str) -> Record:
        statement = f"SELECT f.* FROM {self._fqn} AS f USE KEYS $id"
        try:
            results = await self._execute(statement, {"id": flag_id}, f"get({flag_id})", flag_id)
        except StoreError as e:
            logger.error("unable to get record", flag_id=flag_id, error=str(e))
            raise
        if not results:
            raise NotFoundError(flag_id)
        return Record.from_dict(results[0])

    async def create(self, record: Record) -> None:
        statement = f"INSERT INTO {self._fqn} (KEY, VALUE) VALUES ($id, $record)"
        try:
            await self._execute(
                statement,
                {"id": record.id, "record": record.to_dict()},
                f"create({record.id})",
                record.id,
            )
        except StoreError as e:
            logger.error("unable to create record", flag_id=record.id, error=str(e))
            raise

    async def delete(self, flag_id: str) -> None:
        # USE KEYS で該当がなくても成功する
        statement = f"DELETE FROM {self._fqn} USE KEYS $id"
        try:
            await self._execute(statement, {"id": flag_id}, f"delete({flag_id})", flag_id)
        except StoreError as e:
            logger.error("unable to delete record", flag_id=flag_id, error=str(e))
            raise

    async def update_fields(self, flag_id: str, updates: list[Update]) -> None:
        statement, params = build_update(
            self._fqn,
            updates,
            [Where(field="id", value=flag_id)],
            UPDATE_LIMIT,
        )
        logger.debug("executing update", statement=statement, params=sorted(params))
        try:
            await self._execute(statement, params, f"update_fields({flag_id})", flag_id)
        except StoreError as e:
            logger.error("unable to update record", flag_id=flag_id, error=str(e))
            raise
