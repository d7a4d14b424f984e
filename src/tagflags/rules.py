"""ルールチェーンの検証・マージ・評価"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from .exceptions import DuplicateChainError, FlagError, FlagErrorCodes, ValidationError
from .models import ChainOp, FlagCheck, Record, Rule, RuleBlocks, RuleChain, RuleOp, Tag

MAX_TAGS_IN_CHECK = 2
# ルールブロックはタグ名の組ごとに 1 つ
MAX_RULE_BLOCKS = 10
MAX_RULES_IN_BLOCK = 10

KEY_SEPARATOR = "+"


def _is_member(enum_cls: type[StrEnum], value: Any) -> bool:
    try:
        enum_cls(value)
    except ValueError:
        return False
    return True


def _join_names(a: str, b: str) -> str:
    a, b = a.lower(), b.lower()
    if b < a:
        a, b = b, a
    return a + KEY_SEPARATOR + b


def rule_block_key(chain: RuleChain) -> str:
    """ルールチェーンのタグ名からルールブロックのキーを導出する。

    プライマリ/セカンダリの順序に依存せず、同じタグ名の組は同じキーになる。
    """
    name = chain.primary.tag.name
    if name == "":
        return ""
    if chain.secondary is None:
        return name.lower()
    return _join_names(name, chain.secondary.tag.name)


def flag_check_key(check: FlagCheck) -> str:
    """FlagCheck のタグ名からルールブロックのキーを導出する。"""
    if check.secondary_tag is None or check.secondary_tag.name == "":
        return check.primary_tag.name.lower()
    return _join_names(check.primary_tag.name, check.secondary_tag.name)


def form_flag_check(tags: list[Tag]) -> FlagCheck:
    """呼び出し側のタグを名前順に並べて FlagCheck を作る。引数のリストは変更しない。"""
    if not tags:
        raise ValidationError("unable to check flag rule, no tags given")
    if len(tags) > MAX_TAGS_IN_CHECK:
        raise ValidationError(
            f"unable to check flag rule, too many tags: {len(tags)} > {MAX_TAGS_IN_CHECK}"
        )

    ordered = sorted(tags, key=lambda t: t.name.lower())
    if len(ordered) < MAX_TAGS_IN_CHECK:
        return FlagCheck(primary_tag=ordered[0])
    return FlagCheck(primary_tag=ordered[0], secondary_tag=ordered[1])


def validate_new_rule_chain(blocks: RuleBlocks, chain: RuleChain) -> None:
    """ルールチェーンが blocks に追加可能か検証する。

    Raises:
        ValidationError: タグ名・値が空、演算子が不正、チェーン演算子がない、
            またはブロック数・ブロック内チェーン数が上限に達している場合
    """
    primary, secondary = chain.primary, chain.secondary

    if primary.tag.name == "" or (secondary is not None and secondary.tag.name == ""):
        raise ValidationError("unable to process new rule chain due to empty tag(s)")

    if primary.tag.value == "" or (secondary is not None and secondary.tag.value == ""):
        raise ValidationError("unable to process new rule chain due to empty tag value(s)")

    if not _is_member(RuleOp, primary.rule_op) or (
        secondary is not None and not _is_member(RuleOp, secondary.rule_op)
    ):
        raise ValidationError("unable to process new rule chain due to invalid rule op(s)")

    if secondary is not None and (chain.chain_op is None or not _is_member(ChainOp, chain.chain_op)):
        raise ValidationError("unable to process new rule chain due to missing chain op")

    key = rule_block_key(chain)
    chains = blocks.get(key)
    if chains is None:
        if len(blocks) >= MAX_RULE_BLOCKS:
            raise ValidationError(
                f"unable to process new rule chain due to too many rule blocks: {MAX_RULE_BLOCKS}"
            )
        return

    if len(chains) >= MAX_RULES_IN_BLOCK:
        raise ValidationError(
            f"unable to process new rule chain due to too many rules in block: {len(chains)}"
        )


def process_new_rule_chain(blocks: RuleBlocks, chain: RuleChain) -> str:
    """検証後、ルールチェーンを blocks に追加し、追加先のキーを返す。

    Raises:
        ValidationError: validate_new_rule_chain を参照
        DuplicateChainError: 値として等しいチェーンが同じブロックに既にある場合
    """
    validate_new_rule_chain(blocks, chain)

    key = rule_block_key(chain)
    chains = blocks.get(key, [])
    if any(existing == chain for existing in chains):
        raise DuplicateChainError(key)

    chains.append(chain)
    blocks[key] = chains
    return key


def check_blocks(blocks: RuleBlocks, tags: list[Tag]) -> bool:
    """タグに対応するルールブロックを評価する。ブロックがなければ False。"""
    check = form_flag_check(tags)
    block = blocks.get(flag_check_key(check))
    if block is None:
        return False
    return check_rule_block(block, check)


def check_rule_block(chains: list[RuleChain], check: FlagCheck) -> bool:
    return any(check_rule_chain(chain, check) for chain in chains)


def _pair_tags(chain: RuleChain, check: FlagCheck) -> tuple[Tag, Tag | None]:
    # チェーンのプライマリが FlagCheck の 2 番目のタグに対応する場合は入れ替える
    first, second = check.primary_tag, check.secondary_tag
    name = chain.primary.tag.name.lower()
    if second is not None and name != first.name.lower() and name == second.name.lower():
        return second, first
    return first, second


def check_rule_chain(chain: RuleChain, check: FlagCheck) -> bool:
    primary_tag, secondary_tag = _pair_tags(chain, check)
    left = check_rule(chain.primary, primary_tag)

    if (
        chain.secondary is None
        or secondary_tag is None
        or (left and chain.chain_op == ChainOp.OR)
        or (not left and chain.chain_op == ChainOp.AND)
    ):
        return left

    right = check_rule(chain.secondary, secondary_tag)
    if chain.chain_op == ChainOp.AND:
        return left and right
    if chain.chain_op == ChainOp.OR:
        return left or right
    raise FlagError(
        FlagErrorCodes.INVALID_RULE,
        f"unable to check rule chain, invalid chain op: {chain.chain_op!r}",
    )


def check_rule(rule: Rule, tag: Tag) -> bool:
    """単一ルールを呼び出し側のタグ値で評価する。"""
    if rule.rule_op == RuleOp.EQUALS:
        result = tag.value == rule.tag.value
    elif rule.rule_op == RuleOp.STARTS_WITH:
        result = tag.value.startswith(rule.tag.value)
    elif rule.rule_op == RuleOp.ENDS_WITH:
        result = tag.value.endswith(rule.tag.value)
    elif rule.rule_op == RuleOp.CONTAINS:
        result = rule.tag.value in tag.value
    else:
        raise FlagError(
            FlagErrorCodes.INVALID_RULE,
            f"unable to form rule check, invalid rule op: {rule.rule_op!r}",
        )
    return not result if rule.negate else result


def evaluate(record: Record, tags: list[Tag]) -> bool:
    """フラグを評価する。デフォルト値が真ならルールより優先される。"""
    if record.default_value:
        return True
    check = form_flag_check(tags)
    if record.rule_blocks is None:
        return False
    block = record.rule_blocks.get(flag_check_key(check))
    if block is None:
        return False
    return check_rule_block(block, check)
