"""バリデーション要求のデータモデル。"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

# アセットマップの値。メモリ上のバイト列か、ローカルファイルのパス。
AssetBlob = bytes | Path

# 正規化済み相対パス → アセット
AssetMap = dict[str, AssetBlob]


class ValidationRequest(BaseModel):
    """ユーザーの読み込み操作ごとに1回だけ作られるバリデーション要求。"""

    model_config = ConfigDict(frozen=True)

    root_file: str
    root_path: str = ""
    asset_map: AssetMap = Field(default_factory=dict)
