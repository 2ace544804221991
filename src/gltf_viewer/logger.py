"""richによるログ出力の共通設定。

Usage:
    from gltf_viewer.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Validating %s", root_file)
"""

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

# stdoutはMCPトランスポートが使うため、ログはstderrに出す
console = Console(stderr=True)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """モジュール用のロガーを取得する。

    ハンドラはルートロガーに集約し（setup_logging）、ここでは追加しない。
    pytestのcaplogで捕捉できるよう伝播は有効のまま。

    Args:
        name: ロガー名（通常はモジュールの __name__）。
        level: ログレベル。Noneの場合はルートロガーの設定に従う。
    """
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level.upper())
    return logger


def setup_logging(level: str = "INFO") -> None:
    """アプリケーション全体のログ設定を行う。エントリポイントで一度だけ呼ぶ。

    環境変数 LOG_LEVEL が設定されていればそちらを優先する。
    """
    level = os.getenv("LOG_LEVEL", level).upper()

    handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
