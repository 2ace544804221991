"""バリデーションレポートの表示（トグルと全文レポート）。"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from gltf_viewer.models.report import (
    SEVERITY_BUCKETS,
    NormalizedReport,
    ReportException,
    ValidationOutcome,
)

TEMPLATES_DIRNAME = "report-templates"
TOGGLE_TEMPLATE = "report-toggle.html.j2"
REPORT_TEMPLATE = "report.html.j2"

# 重大度インデックス → 表示ラベル
SEVERITY_LABELS = ("Errors", "Warnings", "Infos", "Hints")


def create_template_environment(config_dir: Path) -> Environment:
    """レポートテンプレート用のJinja2環境を作成する。"""
    env = Environment(
        loader=FileSystemLoader(config_dir / TEMPLATES_DIRNAME),
        autoescape=select_autoescape(["html", "j2"], default_for_string=True),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.globals["severity_labels"] = SEVERITY_LABELS
    env.globals["severity_buckets"] = SEVERITY_BUCKETS
    return env


class ReportPresenter:
    """トグル表示と全文レポートの状態を保持する。

    トグルは hidden / shown の2状態。present() は常に shown に遷移し、
    dismiss() で hidden に戻る。全文レポートの表示はトグルの状態を変えない。
    保持するレポートは新しい結果で丸ごと置き換え、内容を書き換えない。
    """

    def __init__(self, env: Environment) -> None:
        self._toggle_template = env.get_template(TOGGLE_TEMPLATE)
        self._report_template = env.get_template(REPORT_TEMPLATE)
        self._report: NormalizedReport | None = None
        self._outcome: ValidationOutcome | None = None
        self._toggle_html = ""
        self._toggle_visible = False

    @property
    def report(self) -> NormalizedReport | None:
        return self._report

    @property
    def outcome(self) -> ValidationOutcome | None:
        return self._outcome

    @property
    def toggle_visible(self) -> bool:
        return self._toggle_visible

    @property
    def toggle_html(self) -> str:
        return self._toggle_html

    def present(self, outcome: ValidationOutcome) -> str:
        """結果をトグルに描画して表示する。

        例外の場合はレポートを保持せず、エラー状態のトグルを描画する。

        Returns:
            描画したトグルのHTML。
        """
        if isinstance(outcome, ReportException):
            self._report = None
            context: dict[str, Any] = {"report_error": outcome, "level": outcome.level}
        else:
            self._report = outcome
            context = {"report": outcome, "level": outcome.max_severity}
        self._outcome = outcome
        self._toggle_html = self._toggle_template.render(context)
        self._toggle_visible = True
        return self._toggle_html

    def dismiss(self) -> None:
        """トグルを非表示にする。"""
        self._toggle_visible = False

    def show_full(self, location: Mapping[str, str] | None = None) -> str | None:
        """保持中のレポート全文を描画する。レポートが無ければ何もしない。

        Args:
            location: 表示先の位置情報（href、hostなど）。

        Returns:
            全文レポートのHTML。レポートが無い場合はNone。
        """
        if self._report is None:
            return None
        return self._report_template.render(report=self._report, location=dict(location or {}))
