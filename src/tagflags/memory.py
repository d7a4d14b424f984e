"""InMemoryFlagStore 実装"""

from __future__ import annotations

import copy
from typing import Any

import structlog

from .exceptions import AlreadyExistsError, NotFoundError
from .models import Record
from .query import ParamContext, Update, Where, build_update, fully_qualified_name, query_param_name
from .store import FLAG_SCOPE_COLLECTION, UPDATE_LIMIT, FlagReader, FlagWriter

logger = structlog.stdlib.get_logger(__name__)


def _set_path(document: dict[str, Any], path: str, value: Any) -> None:
    node = document
    *parents, leaf = path.split(".")
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[leaf] = value


class InMemoryFlagStore(FlagReader, FlagWriter):
    """テスト用インメモリフラグストア。

    ドキュメントは辞書として保持し、取得時は複製を返す。
    """

    def __init__(self, bucket: str = "default") -> None:
        self._fqn = fully_qualified_name(bucket, FLAG_SCOPE_COLLECTION)
        self._documents: dict[str, dict[str, Any]] = {}

    @property
    def fqn(self) -> str:
        return self._fqn

    async def get(self, flag_id: str) -> Record:
        document = self._documents.get(flag_id)
        if document is None:
            raise NotFoundError(flag_id)
        return Record.from_dict(copy.deepcopy(document))

    async def create(self, record: Record) -> None:
        if record.id in self._documents:
            raise AlreadyExistsError(record.id)
        self._documents[record.id] = record.to_dict()

    async def delete(self, flag_id: str) -> None:
        self._documents.pop(flag_id, None)

    async def update_fields(self, flag_id: str, updates: list[Update]) -> None:
        statement, params = build_update(
            self._fqn,
            updates,
            [Where(field="id", value=flag_id)],
            UPDATE_LIMIT,
        )
        logger.debug("executing update", statement=statement, params=sorted(params))

        document = self._documents.get(flag_id)
        if document is None:
            # N1QL の UPDATE と同じく、該当行がなければ何もしない
            return
        for u in updates:
            name = query_param_name(u.field, ParamContext.SET)[1:]
            _set_path(document, u.field, copy.deepcopy(params[name]))
