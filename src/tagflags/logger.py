"""tagflags のログ出力設定"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

from .config import LogSection

# 各モジュールのロガーは tagflags.<module> としてこの配下に入る
ROOT_LOGGER_NAME = "tagflags"


def configure_logging(
    section: LogSection | None = None,
    stream: TextIO | None = None,
) -> structlog.stdlib.BoundLogger:
    """tagflags 配下のロガーを設定する。

    出力先のハンドラは tagflags ロガーにのみ付け、ルートロガーには伝播させない。
    json 形式では 1 イベント 1 行で、logger にはモジュール名
    (例: tagflags.service)、flag_id などのキーはそのまま出力される。

    Args:
        section: ログ設定。省略時は LogSection の既定値
        stream: 出力先。省略時は標準出力

    Returns:
        tagflags ロガーに束縛された BoundLogger
    """
    section = section or LogSection()
    level = getattr(logging, section.level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if section.format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    # 再設定時に出力形式が切り替わるようキャッシュしない
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    return structlog.stdlib.get_logger(ROOT_LOGGER_NAME)
