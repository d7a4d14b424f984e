"""N1QL の部分更新ステートメントビルダー

値はステートメントに埋め込まず、名前付きパラメータとして別に返す。
対応するのは WHERE で絞り込んだ UPDATE ... SET ... のみ。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import structlog

from .exceptions import ValidationError

logger = structlog.stdlib.get_logger(__name__)


@dataclass(frozen=True)
class ScopeCollection:
    """スコープとコレクション名の組。"""

    scope: str
    collection: str


def fully_qualified_name(bucket: str, sc: ScopeCollection) -> str:
    """ステートメントで使う `bucket`.`scope`.`collection` 形式の名前を返す。"""
    return f"`{bucket}`.`{sc.scope}`.`{sc.collection}`"


class ConditionOp(StrEnum):
    """WHERE 条件の比較演算子。"""

    EQ = "="
    NEQ = "!="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="
    IS = "IS"
    IS_NOT = "IS NOT"


class Direction(StrEnum):
    """ORDER BY の並び順。"""

    ASC = "ASC"
    DESC = "DESC"


class ParamContext(StrEnum):
    """パラメータ名の名前空間。SET と WHERE で衝突しないよう分ける。"""

    SET = "s"
    WHERE = "w"


@dataclass
class Update:
    """単一フィールドへの代入。"""

    field: str
    value: Any


@dataclass
class Where:
    """WHERE 条件。"""

    field: str
    value: Any
    operation: ConditionOp = ConditionOp.EQ


@dataclass
class Order:
    """ORDER BY 指定。"""

    by: str
    direction: Direction | None = None


def query_param_name(name: str, context: ParamContext) -> str:
    """フィールド名から `$q<context>__<name>` 形式のパラメータ名を返す。"""
    return f"$q{context}__{name.replace('.', '_')}"


def build_update(
    fqn: str,
    updates: list[Update],
    wheres: list[Where] | None = None,
    limit: int | None = None,
) -> tuple[str, dict[str, Any]]:
    """UPDATE ステートメントとバインドパラメータを組み立てる。

    Args:
        fqn: 対象コレクションの完全修飾名
        updates: SET するフィールド（入力順に出力される）
        wheres: AND で連結される WHERE 条件。None なら WHERE 句なし
        limit: 正の整数。None なら LIMIT 句なし

    Returns:
        (ステートメント, 先頭の `$` を除いたパラメータ名 -> 値)

    Raises:
        ValidationError: updates が空、wheres が空リスト、limit が正でない場合、
            または同じパラメータ名になるフィールドが重複する場合
    """
    if not updates:
        raise ValidationError("no updates given")

    assignments: list[str] = []
    params: dict[str, Any] = {}
    for u in updates:
        param = query_param_name(u.field, ParamContext.SET)
        if param[1:] in params:
            raise ValidationError(f"conflicting update parameter {param} for field: {u.field}")
        assignments.append(f"`{u.field}` = {param}")
        params[param[1:]] = u.value
    statement = f"UPDATE {fqn} SET " + ",".join(assignments)

    if wheres is not None:
        try:
            where_clause, where_params = build_where_clause(wheres)
        except ValidationError as e:
            logger.error("unable to build where clause", error=str(e))
            raise
        statement += where_clause
        params.update(where_params)

    if limit is not None:
        try:
            statement += build_limit_clause(limit)
        except ValidationError as e:
            logger.error("unable to build limit clause", error=str(e))
            raise

    return statement, params


def build_where_clause(wheres: list[Where]) -> tuple[str, dict[str, Any]]:
    """` WHERE a = $qw__a AND ...` 形式の句とパラメータを返す。OR は未対応。"""
    if not wheres:
        raise ValidationError("no wheres given")

    conditions: list[str] = []
    params: dict[str, Any] = {}
    for w in wheres:
        param = query_param_name(w.field, ParamContext.WHERE)
        if param[1:] in params:
            raise ValidationError(f"conflicting where parameter {param} for field: {w.field}")
        conditions.append(f"`{w.field}` {w.operation} {param}")
        params[param[1:]] = w.value

    return " WHERE " + " AND ".join(conditions), params


def build_order_clause(order: Order | None) -> str:
    """ORDER BY 句を返す。build_update からは使われない。"""
    if order is None:
        return ""
    clause = f" ORDER BY `{order.by}`"
    if order.direction is not None:
        clause += f" {order.direction}"
    return clause


def build_limit_clause(limit: int) -> str:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValidationError(f"limit must be a positive integer, got {limit!r}")
    return f" LIMIT {limit}"
