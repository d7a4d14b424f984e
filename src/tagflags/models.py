"""フラグレコードのデータモデル"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from .exceptions import ValidationError


class RuleOp(StrEnum):
    """タグ値に対する比較演算。"""

    EQUALS = "EQUALS"
    STARTS_WITH = "STARTS_WITH"
    ENDS_WITH = "ENDS_WITH"
    CONTAINS = "CONTAINS"


class ChainOp(StrEnum):
    """ルールチェーン内の 2 つのルールの結合演算。"""

    AND = "AND"
    OR = "OR"


def _require(data: Any, kind: type, what: str) -> None:
    if not isinstance(data, kind):
        raise ValidationError(
            f"unable to unmarshal {what}: expected {kind.__name__}, got {type(data).__name__}"
        )


def _parse_enum(enum_cls: type[StrEnum], raw: Any) -> Any:
    # 不明な値はそのまま残し、検証側で弾く
    try:
        return enum_cls(raw)
    except ValueError:
        return raw


@dataclass
class Tag:
    """呼び出し側が指定するタグ（名前と値の組）。"""

    name: str
    value: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Tag:
        _require(data, dict, "tag")
        return cls(name=data.get("name", ""), value=data.get("value", ""))


@dataclass
class Rule:
    """1 つのタグに対する述語。negate が真の場合は結果を反転する。"""

    tag: Tag
    rule_op: RuleOp
    negate: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"tag": self.tag.to_dict(), "ruleOp": str(self.rule_op), "not": self.negate}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Rule:
        _require(data, dict, "rule")
        return cls(
            tag=Tag.from_dict(data.get("tag") or {}),
            rule_op=_parse_enum(RuleOp, data.get("ruleOp")),
            negate=bool(data.get("not", False)),
        )


@dataclass
class RuleChain:
    """1 つまたは 2 つのルールを AND/OR で結合したターゲティング条件。"""

    primary: Rule
    secondary: Rule | None = None
    chain_op: ChainOp | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"PrimaryRule": self.primary.to_dict()}
        if self.secondary is not None:
            data["SecondaryRule"] = self.secondary.to_dict()
        if self.chain_op is not None:
            data["ChainOp"] = str(self.chain_op)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RuleChain:
        _require(data, dict, "rule chain")
        secondary = data.get("SecondaryRule")
        chain_op = data.get("ChainOp")
        return cls(
            primary=Rule.from_dict(data.get("PrimaryRule") or {}),
            secondary=Rule.from_dict(secondary) if secondary is not None else None,
            chain_op=_parse_enum(ChainOp, chain_op) if chain_op is not None else None,
        )


@dataclass
class FlagCheck:
    """評価用に正規化（名前順ソート）された呼び出し側のタグ。"""

    primary_tag: Tag
    secondary_tag: Tag | None = None


RuleBlocks = dict[str, list[RuleChain]]


@dataclass
class Record:
    """ドキュメントストアに保存されるフラグレコード。

    default_value が真の場合はルールブロックを評価せずに真となる。
    rule_blocks のキーはルールチェーンに含まれるタグ名から導出される。
    """

    id: str
    name: str
    default_value: bool
    rule_blocks: RuleBlocks | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "defaultValue": self.default_value,
        }
        if self.rule_blocks is not None:
            data["ruleBlocks"] = rule_blocks_to_dict(self.rule_blocks)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Record:
        """ストアのドキュメントから Record を生成する。型が不正なフィールドがあれば ValidationError。"""
        if not isinstance(data, dict):
            raise ValidationError("unable to unmarshal flag document")

        errors: list[str] = []
        if not isinstance(data.get("id"), str):
            errors.append("id")
        if not isinstance(data.get("name"), str):
            errors.append("name")
        if not isinstance(data.get("defaultValue"), bool):
            errors.append("defaultValue")
        blocks = data.get("ruleBlocks")
        if blocks is not None and not isinstance(blocks, dict):
            errors.append("ruleBlocks")
        if errors:
            raise ValidationError(
                f"unable to form flag record due to the following errors: {','.join(errors)}"
            )

        return cls(
            id=data["id"],
            name=data["name"],
            default_value=data["defaultValue"],
            rule_blocks=rule_blocks_from_dict(blocks) if blocks is not None else None,
        )


def rule_blocks_to_dict(blocks: RuleBlocks) -> dict[str, list[dict[str, Any]]]:
    """ルールブロックをドキュメント形式に変換する。"""
    return {key: [chain.to_dict() for chain in chains] for key, chains in blocks.items()}


def rule_blocks_from_dict(data: dict[str, Any]) -> RuleBlocks:
    """ドキュメント形式のルールブロックを読み込む。形が不正なら ValidationError。"""
    blocks: RuleBlocks = {}
    for key, chains in data.items():
        _require(chains, list, f"rule block {key}")
        blocks[key] = [RuleChain.from_dict(c) for c in chains]
    return blocks
