"""フラグサービス

ルールチェーンエンジンとクエリビルダーを永続化層と組み合わせる。
"""

from __future__ import annotations

import uuid

import structlog

from . import rules
from .exceptions import DependencyError, FlagError
from .models import Record, RuleChain, Tag, rule_blocks_to_dict
from .mutex import KeyedMutex
from .query import Update
from .store import FlagReader, FlagWriter

logger = structlog.stdlib.get_logger(__name__)


class FlagService:
    """フィーチャーフラグの作成・ルール追加・評価を行うサービス。

    Args:
        reader: フラグレコードの読み取り
        writer: フラグレコードの書き込み
        mutex: 同一フラグへの読み取り-更新-書き込みを直列化する排他制御。
            省略時はプロセス内の KeyedMutex を使う。
    """

    def __init__(
        self,
        reader: FlagReader | None,
        writer: FlagWriter | None,
        *,
        mutex: KeyedMutex | None = None,
    ) -> None:
        missing = [
            dep
            for dep, present in (
                ("flags reader", reader is not None),
                ("flags writer", writer is not None),
            )
            if not present
        ]
        if missing:
            raise DependencyError("flags service", missing)

        self.reader: FlagReader = reader  # type: ignore[assignment]
        self.writer: FlagWriter = writer  # type: ignore[assignment]
        self._mutex = mutex or KeyedMutex()

    async def new_flag(self, name: str, default_value: bool) -> Record:
        """ルールなしのフラグレコードを新しい ID で作成する。"""
        record = Record(id=str(uuid.uuid4()), name=name, default_value=default_value)
        try:
            await self.writer.create(record)
        except Exception as e:
            logger.error("unable to create flag", flag_id=record.id, error=str(e))
            raise
        logger.info("created new flag", flag_id=record.id, name=name)
        return record

    async def add_rule_chain(self, flag_id: str, chain: RuleChain) -> None:
        """ルールチェーンを既存のルールブロックに追加する。なければブロックを作る。

        Raises:
            NotFoundError: フラグが存在しない場合
            ValidationError: チェーンが不正、または上限に達している場合
            DuplicateChainError: 同じチェーンが既にある場合
        """
        async with self._mutex.hold(flag_id):
            try:
                record = await self.reader.get(flag_id)
            except Exception as e:
                logger.error("unable to find flag", flag_id=flag_id, error=str(e))
                raise

            blocks = record.rule_blocks if record.rule_blocks is not None else {}
            try:
                key = rules.process_new_rule_chain(blocks, chain)
            except FlagError as e:
                logger.error("unable to process new rule chain", flag_id=flag_id, error=str(e))
                raise

            try:
                await self.writer.update_fields(
                    record.id,
                    [Update(field="ruleBlocks", value=rule_blocks_to_dict(blocks))],
                )
            except Exception as e:
                logger.error(
                    "unable to update flag with new rule chain", flag_id=flag_id, error=str(e)
                )
                raise
        logger.info("added rule chain", flag_id=flag_id, block=key)

    async def set_default_flag_value(self, flag_id: str, default_value: bool) -> None:
        """フラグのデフォルト値のみを更新する。"""
        async with self._mutex.hold(flag_id):
            try:
                await self.writer.update_fields(
                    flag_id, [Update(field="defaultValue", value=default_value)]
                )
            except Exception as e:
                logger.error("unable to update record", flag_id=flag_id, error=str(e))
                raise
        logger.info("updated flag", flag_id=flag_id, default_value=default_value)

    async def check_flag_rule(self, flag_id: str, tags: list[Tag]) -> bool:
        """タグに対してフラグが有効かを返す。"""
        try:
            record = await self.reader.get(flag_id)
        except Exception as e:
            logger.error("unable to get flag record", flag_id=flag_id, error=str(e))
            raise
        return rules.evaluate(record, tags)
