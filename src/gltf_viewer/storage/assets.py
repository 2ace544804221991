"""ドラッグ＆ドロップされたファイル群からアセットマップを組み立てる。"""

from collections.abc import Mapping
from pathlib import Path, PurePosixPath

from gltf_viewer.models.errors import RootFileNotFoundError
from gltf_viewer.models.request import AssetMap, ValidationRequest

ROOT_FILE_SUFFIXES = (".gltf", ".glb")


def normalize_asset_key(relative_path: str) -> str:
    """アセットマップのキー形式（POSIX区切り、先頭の「./」「/」無し）に揃える。"""
    key = relative_path.replace("\\", "/")
    while key.startswith("./"):
        key = key[2:]
    return key.lstrip("/")


def build_asset_map(files: Mapping[str, bytes]) -> AssetMap:
    """メモリ上のファイル群（相対パス → 内容）からアセットマップを作る。"""
    return {normalize_asset_key(name): content for name, content in files.items()}


def find_root_key(asset_map: AssetMap) -> str:
    """アセットマップからルートファイルのキーを探す。

    階層が浅いものを優先し、同じ深さでは名前順で最初のものを選ぶ。

    Raises:
        RootFileNotFoundError: .gltf / .glb が含まれない場合。
    """
    candidates = [key for key in asset_map if PurePosixPath(key).suffix.lower() in ROOT_FILE_SUFFIXES]
    if not candidates:
        raise RootFileNotFoundError("<asset map>")
    return min(candidates, key=lambda key: (key.count("/"), key))


def root_path_for(root_key: str) -> str:
    """ルートファイルのキーからルートパス（末尾「/」付きのディレクトリ部）を求める。"""
    parent = PurePosixPath(root_key).parent.as_posix()
    return "" if parent == "." else f"{parent}/"


def load_dropped_directory(directory: Path) -> ValidationRequest:
    """ローカルディレクトリを複数ファイルのドロップとして読み込む。

    ファイルの中身はここでは読まず、パスのままアセットマップに載せる。

    Args:
        directory: ドロップされたディレクトリ。

    Returns:
        ルートファイルのfile:// URL、ルートパス、アセットマップを持つ要求。

    Raises:
        RootFileNotFoundError: ディレクトリに .gltf / .glb が無い場合。
    """
    directory = directory.resolve()
    asset_map: AssetMap = {
        path.relative_to(directory).as_posix(): path for path in sorted(directory.rglob("*")) if path.is_file()
    }
    try:
        root_key = find_root_key(asset_map)
    except RootFileNotFoundError:
        raise RootFileNotFoundError(str(directory)) from None

    return ValidationRequest(
        root_file=(directory / root_key).as_uri(),
        root_path=root_path_for(root_key),
        asset_map=asset_map,
    )
