"""ジェネレータレジストリの読み込み。"""

from pathlib import Path

import yaml
from pydantic import ValidationError

from gltf_viewer.models.errors import RegistryError
from gltf_viewer.models.report import GeneratorEntry

REGISTRY_FILENAME = "generator-registry.yaml"


def load_generator_registry(config_dir: Path) -> tuple[GeneratorEntry, ...]:
    """ジェネレータレジストリをYAMLファイルから読み込む。

    登録順は照合順序としてそのまま保持する（先にマッチしたものが優先）。

    Args:
        config_dir: 設定ファイルディレクトリ。

    Returns:
        変更不可のエントリ列。

    Raises:
        RegistryError: ファイルが存在しない、または形式が不正な場合。
    """
    registry_file = config_dir / REGISTRY_FILENAME
    try:
        with open(registry_file, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise RegistryError(f"Generator registry not found: {registry_file}") from None

    if not data or "generators" not in data:
        raise RegistryError(f"Generator registry has no 'generators' list: {registry_file}")

    try:
        return tuple(GeneratorEntry.model_validate(entry) for entry in data["generators"])
    except ValidationError as e:
        raise RegistryError(f"Invalid generator registry entry in {registry_file}: {e}") from e
