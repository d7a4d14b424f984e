"""ログ出力設定のユニットテスト"""

import io
import json
import logging
from collections.abc import Iterator

import pytest
import structlog
from tagflags.config import LogSection
from tagflags.exceptions import NotFoundError
from tagflags.logger import ROOT_LOGGER_NAME, configure_logging
from tagflags.memory import InMemoryFlagStore
from tagflags.models import Rule, RuleChain, RuleOp, Tag
from tagflags.service import FlagService


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    yield
    structlog.reset_defaults()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.propagate = True
    root.setLevel(logging.NOTSET)


def json_lines(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def make_service() -> FlagService:
    store = InMemoryFlagStore()
    return FlagService(store, store)


async def test_service_event_is_json_with_flag_id() -> None:
    """サービスのイベントが flag_id とモジュール名付きの JSON 行で出力されること。"""
    stream = io.StringIO()
    configure_logging(LogSection(level="INFO", format="json"), stream=stream)

    record = await make_service().new_flag("dark-mode", False)

    entry = next(e for e in json_lines(stream) if e["event"] == "created new flag")
    assert entry["flag_id"] == record.id
    assert entry["name"] == "dark-mode"
    assert entry["logger"] == "tagflags.service"
    assert entry["level"] == "info"
    assert "timestamp" in entry


async def test_service_failure_is_logged_as_error() -> None:
    stream = io.StringIO()
    configure_logging(LogSection(format="json"), stream=stream)
    chain = RuleChain(primary=Rule(tag=Tag("env", "dev"), rule_op=RuleOp.EQUALS))

    with pytest.raises(NotFoundError):
        await make_service().add_rule_chain("missing", chain)

    entry = next(e for e in json_lines(stream) if e["event"] == "unable to find flag")
    assert entry["level"] == "error"
    assert entry["flag_id"] == "missing"
    assert "FLAG_NOT_FOUND" in entry["error"]


async def test_level_filters_lower_events() -> None:
    """WARNING 設定では info イベントが出力されないこと。"""
    stream = io.StringIO()
    configure_logging(LogSection(level="WARNING", format="json"), stream=stream)

    await make_service().new_flag("quiet", False)

    assert json_lines(stream) == []


async def test_text_format() -> None:
    stream = io.StringIO()
    configure_logging(LogSection(level="DEBUG", format="text"), stream=stream)

    record = await make_service().new_flag("dark-mode", True)

    output = stream.getvalue()
    assert "created new flag" in output
    assert record.id in output


async def test_store_update_statement_logged_at_debug() -> None:
    """DEBUG ではストアの UPDATE ステートメントとパラメータ名が出力されること。"""
    stream = io.StringIO()
    configure_logging(LogSection(level="DEBUG", format="json"), stream=stream)
    service = make_service()
    record = await service.new_flag("f", False)

    await service.set_default_flag_value(record.id, True)

    entry = next(e for e in json_lines(stream) if e["event"] == "executing update")
    assert entry["logger"] == "tagflags.memory"
    assert entry["statement"] == (
        "UPDATE `default`.`users`.`flags` SET `defaultValue` = $qs__defaultValue"
        " WHERE `id` = $qw__id LIMIT 1"
    )
    assert entry["params"] == ["qs__defaultValue", "qw__id"]


def test_does_not_propagate_to_root() -> None:
    configure_logging(stream=io.StringIO())
    assert logging.getLogger(ROOT_LOGGER_NAME).propagate is False
