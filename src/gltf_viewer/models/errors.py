"""glTF Viewerのカスタム例外クラス。"""


class ViewerError(Exception):
    """glTF Viewerの基底例外クラス。"""


class FetchError(ViewerError):
    """URLからのデータ取得に失敗した場合の例外。"""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code


class RootFetchError(FetchError):
    """ルートファイル自体が取得できない場合の例外。"""


class ResourceResolutionError(FetchError):
    """外部リソースがアセットマップにもネットワーク上にも見つからない場合の例外。"""

    def __init__(self, uri: str, url: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(url, reason, status_code)
        self.uri = uri


class ValidatorInvocationError(ViewerError):
    """バリデータが異常終了した、または解析不能な出力を返した場合の例外。"""

    def __init__(self, message: str, stderr: str = "", exit_code: int | None = None) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.exit_code = exit_code


class RegistryError(ViewerError):
    """ジェネレータレジストリの読み込みエラー。"""


class RootFileNotFoundError(ViewerError):
    """ドロップされたディレクトリにルートファイルが無い場合の例外。"""

    def __init__(self, directory: str) -> None:
        super().__init__(f"No .gltf or .glb file found in: {directory}")
        self.directory = directory


class ReportNotAvailableError(ViewerError):
    """表示可能なバリデーションレポートが無い場合の例外。"""

    def __init__(self) -> None:
        super().__init__("No validation report is available. Run validate_model first.")
