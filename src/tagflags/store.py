"""フラグレコードの永続化インターフェース"""

from __future__ import annotations

from abc import ABC, abstractmethod

from .models import Record
from .query import ScopeCollection, Update

# フラグレコードを保存するスコープとコレクション
FLAG_SCOPE = "users"
FLAG_COLLECTION = "flags"
FLAG_SCOPE_COLLECTION = ScopeCollection(scope=FLAG_SCOPE, collection=FLAG_COLLECTION)

# 更新は ID で 1 行に絞る
UPDATE_LIMIT = 1


class FlagReader(ABC):
    """フラグレコード読み取りの抽象基底クラス。"""

    @abstractmethod
    async def get(self, flag_id: str) -> Record:
        """ID でレコードを取得する。存在しない場合は NotFoundError。"""
        ...


class FlagWriter(ABC):
    """フラグレコード書き込みの抽象基底クラス。"""

    @abstractmethod
    async def create(self, record: Record) -> None:
        """レコードを作成する。ID が重複する場合は AlreadyExistsError。"""
        ...

    @abstractmethod
    async def delete(self, flag_id: str) -> None:
        """レコードを削除する。存在しなくてもエラーにしない。"""
        ...

    @abstractmethod
    async def update_fields(self, flag_id: str, updates: list[Update]) -> None:
        """指定フィールドのみを更新する。"""
        ...
