"""glTF Viewerサーバーの設定管理。"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

_PACKAGE_ROOT = Path(__file__).parent
_REPO_ROOT = _PACKAGE_ROOT.parent.parent

# 大量に出力されやすい診断コードと集約メッセージのテンプレート
DEFAULT_AGGREGATED_CODES: dict[str, str] = {
    "ACCESSOR_NON_UNIT": "{count} accessor elements not of unit length: 0. [AGGREGATED]",
    "ACCESSOR_ANIMATION_INPUT_NON_INCREASING": (
        "{count} animation input accessor elements not in ascending order. [AGGREGATED]"
    ),
}


class ViewerConfig(BaseSettings):
    """サーバー設定。環境変数から読み込み可能。"""

    model_config = {"env_prefix": "GLTF_VIEWER_"}

    config_dir: Path = _REPO_ROOT / "config"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # Khronos glTF-Validator CLI
    validator_executable: str = "gltf_validator"
    validator_timeout: float = 60.0

    # ネットワーク取得のタイムアウト（秒）
    fetch_timeout: float = 30.0

    aggregated_codes: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_AGGREGATED_CODES))
