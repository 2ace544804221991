"""バリデーション関連のMCPツール定義。"""

import base64
import binascii
from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from gltf_viewer.models.errors import ReportNotAvailableError, ViewerError
from gltf_viewer.models.report import SEVERITY_BUCKETS, ReportException, SeverityBucket, ValidationOutcome
from gltf_viewer.services.validation import ValidationService
from gltf_viewer.storage.assets import build_asset_map, load_dropped_directory


def summarize_outcome(outcome: ValidationOutcome | None) -> dict[str, Any]:
    """バリデーション結果をツール応答用の要約に変換する。"""
    if outcome is None:
        return {"status": "none"}
    if isinstance(outcome, ReportException):
        return {
            "status": "exception",
            "level": outcome.level,
            "report_error": {"error": outcome.error, "message": outcome.message},
        }
    return {
        "status": "report",
        "max_severity": outcome.max_severity,
        "generator": outcome.generator.display_name if outcome.generator else outcome.info.generator,
        "counts": {
            "errors": outcome.issues.num_errors,
            "warnings": outcome.issues.num_warnings,
            "infos": outcome.issues.num_infos,
            "hints": outcome.issues.num_hints,
        },
        "aggregated_errors": len(outcome.errors),
        "truncated": outcome.issues.truncated,
    }


def register_validation_tools(mcp: FastMCP, validation_service: ValidationService) -> None:
    """バリデーション関連のMCPツールを登録する。"""

    @mcp.tool()
    async def validate_model(
        root_file: str,
        root_path: str = "",
        assets: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """glTFモデルをglTF-Validatorで検証する。

        ルートファイルをURLから取得して検証し、結果をレポートとして保持します。
        複数ファイルのモデルは、関連ファイルをassetsで渡すとネットワークより優先して使われます。

        Args:
            root_file: ルートファイル（.gltf / .glb）のURL。
            root_path: 相対URIの正規化時に先頭へ付けるパス（例: "models/duck/"）。
            assets: 関連ファイル。{相対パス: Base64エンコードした内容} 形式（任意）。
        """
        try:
            files = {name: base64.b64decode(content, validate=True) for name, content in (assets or {}).items()}
        except binascii.Error as e:
            return {"error": "InvalidAssetError", "message": f"Asset content must be base64: {e}"}

        outcome = await validation_service.validate(root_file, root_path, build_asset_map(files))
        return summarize_outcome(outcome)

    @mcp.tool()
    async def validate_directory(directory: str) -> dict[str, Any]:
        """ローカルディレクトリ内のglTFモデルを検証する。

        ディレクトリを複数ファイルのドロップとして扱い、最初に見つかった
        .gltf / .glb をルートファイルとして検証します。

        Args:
            directory: モデルファイルを含むディレクトリの絶対パス。
        """
        path = Path(directory)
        if not path.is_dir():
            return {"error": "NotADirectoryError", "message": f"Not a directory: {directory}"}
        try:
            request = load_dropped_directory(path)
        except ViewerError as e:
            return {"error": type(e).__name__, "message": str(e)}

        outcome = await validation_service.validate_request(request)
        return {"root_file": request.root_file, **summarize_outcome(outcome)}

    @mcp.tool()
    async def get_report_status() -> dict[str, Any]:
        """現在保持しているバリデーション結果の要約とトグルの表示状態を取得する。"""
        presenter = validation_service.presenter
        return {"toggle_visible": presenter.toggle_visible, **summarize_outcome(presenter.outcome)}

    @mcp.tool()
    async def get_report_messages(severity: SeverityBucket = "errors") -> dict[str, Any]:
        """保持しているレポートから指定した重大度のメッセージを取得する。

        errorsでは大量に出力される診断コードがポインタ単位で集約済みです。

        Args:
            severity: "errors"、"warnings"、"infos"、"hints" のいずれか。
        """
        try:
            report = validation_service.presenter.report
            if report is None:
                raise ReportNotAvailableError()
            messages = report.bucket(severity)
            return {
                "severity": severity,
                "level": SEVERITY_BUCKETS.index(severity),
                "messages": [m.model_dump(by_alias=True, exclude_none=True) for m in messages],
            }
        except ViewerError as e:
            return {"error": type(e).__name__, "message": str(e)}

    @mcp.tool()
    async def dismiss_report_toggle() -> dict[str, Any]:
        """レポートのトグル表示を閉じる。保持しているレポートはそのまま残ります。"""
        validation_service.presenter.dismiss()
        return {"toggle_visible": False}
