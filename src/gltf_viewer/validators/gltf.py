"""glTF-Validatorの呼び出し境界。"""

import asyncio
import json
import struct
import tempfile
from collections.abc import Awaitable, Callable
from pathlib import Path, PurePosixPath
from typing import Any, Protocol
from urllib.parse import unquote, urlsplit

from gltf_viewer.logger import get_logger
from gltf_viewer.models.errors import ValidatorInvocationError

logger = get_logger(__name__)

ExternalResourceFunction = Callable[[str], Awaitable[bytes]]

_GLB_MAGIC = b"glTF"
_GLB_HEADER = struct.Struct("<4sII")
_GLB_CHUNK_HEADER = struct.Struct("<II")
_GLB_CHUNK_JSON = 0x4E4F534A

# 外部リソースを参照しうるトップレベル配列
_RESOURCE_ARRAYS = ("buffers", "images")


class Validator(Protocol):
    """バイト列を検証し、生レポート（JSON相当のdict）を返すバリデータ。"""

    async def validate_bytes(
        self,
        data: bytes,
        external_resource_function: ExternalResourceFunction,
    ) -> dict[str, Any]: ...


def is_glb(data: bytes) -> bool:
    return data[:4] == _GLB_MAGIC


def extract_json_document(data: bytes) -> dict[str, Any]:
    """glTF / GLBのバイト列からJSONドキュメントを取り出す。

    Raises:
        ValueError: JSONとして解釈できない、またはGLBの構造が不正な場合。
    """
    if is_glb(data):
        if len(data) < _GLB_HEADER.size + _GLB_CHUNK_HEADER.size:
            raise ValueError("GLB header is truncated")
        chunk_length, chunk_type = _GLB_CHUNK_HEADER.unpack_from(data, _GLB_HEADER.size)
        if chunk_type != _GLB_CHUNK_JSON:
            raise ValueError("first GLB chunk is not JSON")
        start = _GLB_HEADER.size + _GLB_CHUNK_HEADER.size
        data = data[start : start + chunk_length]
    document = json.loads(data.decode("utf-8"))
    if not isinstance(document, dict):
        raise ValueError("glTF root is not a JSON object")
    return document


def collect_external_uris(document: dict[str, Any]) -> list[str]:
    """バッファ・画像が参照する相対URIを文書順・重複なしで列挙する。

    data: URIと絶対URLは対象外。
    """
    uris: list[str] = []
    for array_name in _RESOURCE_ARRAYS:
        entries = document.get(array_name)
        if not isinstance(entries, list):
            continue
        for entry in entries:
            uri = entry.get("uri") if isinstance(entry, dict) else None
            if not isinstance(uri, str) or not uri:
                continue
            if urlsplit(uri).scheme:
                continue
            if uri not in uris:
                uris.append(uri)
    return uris


def staging_path(uri: str) -> PurePosixPath:
    """URIをルートファイルからの相対パスに変換する。

    先頭の「./」または「/」を1つだけ取り除く（AssetResolver.normalizeと同じ規則）。
    """
    path = unquote(uri)
    if path.startswith("./"):
        path = path[2:]
    elif path.startswith("/"):
        path = path[1:]
    return PurePosixPath(path)


def escape_depth(path: PurePosixPath) -> int:
    """パスがルートファイルのディレクトリから何階層上まで遡るかを返す。"""
    depth = level = 0
    for part in path.parts:
        if part == "..":
            level -= 1
            depth = max(depth, -level)
        elif part != ".":
            level += 1
    return depth


class GltfValidatorCli:
    """Khronos glTF-Validator CLIを Validator プロトコルに適合させる。

    CLIは外部リソースをファイルシステムから読むため、ルートファイルと
    解決済みリソースを一時ディレクトリに配置してから実行する。
    """

    def __init__(self, executable: str = "gltf_validator", timeout: float = 60.0) -> None:
        self._executable = executable
        self._timeout = timeout

    async def validate_bytes(
        self,
        data: bytes,
        external_resource_function: ExternalResourceFunction,
    ) -> dict[str, Any]:
        """バイト列を検証する。

        Args:
            data: ルートファイルの内容。
            external_resource_function: 外部リソースのURIを受け取りバイト列を返す関数。

        Returns:
            バリデータのJSONレポート。

        Raises:
            ValidatorInvocationError: CLIの実行・出力解析に失敗した場合。
            ResourceResolutionError: 外部リソースの解決に失敗した場合。
        """
        try:
            uris = collect_external_uris(extract_json_document(data))
        except (ValueError, UnicodeDecodeError) as e:
            # 壊れた入力の診断はCLI自身に任せる
            logger.debug("Could not pre-parse glTF document: %s", e)
            uris = []

        # 外部リソースはすべて並行に解決する
        contents = await asyncio.gather(*(external_resource_function(uri) for uri in uris))

        paths = [staging_path(uri) for uri in uris]
        # 「../」で参照されるリソースも配置できるよう、ルートファイルを入れ子の階層に置く
        depth = max((escape_depth(path) for path in paths), default=0)

        with tempfile.TemporaryDirectory(prefix="gltf-viewer-") as tmp:
            work_dir = Path(tmp).resolve()
            root_dir = work_dir.joinpath(*["model"] * depth)
            root_dir.mkdir(parents=True, exist_ok=True)
            root_file = root_dir / ("model.glb" if is_glb(data) else "model.gltf")
            root_file.write_bytes(data)
            for uri, path, content in zip(uris, paths, contents, strict=True):
                self._stage_resource(work_dir, root_dir, uri, path, content)

            report = await self._run(root_file)

        return report

    @staticmethod
    def _stage_resource(work_dir: Path, root_dir: Path, uri: str, path: PurePosixPath, content: bytes) -> None:
        """解決済みリソースをルートファイルからの相対位置に書き出す。一時ディレクトリの外には書かない。"""
        target = (root_dir / path).resolve()
        if not target.is_relative_to(work_dir):
            logger.warning("Skipping external resource outside the staging directory: %s", uri)
            return
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

    async def _run(self, root_file: Path) -> dict[str, Any]:
        """CLIを実行し、標準出力のJSONレポートを返す。"""
        try:
            proc = await asyncio.create_subprocess_exec(
                self._executable,
                "--stdout",
                str(root_file),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(root_file.parent),
            )
        except FileNotFoundError:
            raise ValidatorInvocationError(f"Validator executable not found: {self._executable}") from None

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            raise ValidatorInvocationError(f"Validator timed out after {self._timeout} seconds") from None

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        try:
            report = json.loads(stdout)
        except json.JSONDecodeError:
            logger.warning("Validator exited with %s: %s", proc.returncode, stderr.strip())
            raise ValidatorInvocationError(
                "Validator did not produce a JSON report",
                stderr=stderr,
                exit_code=proc.returncode,
            ) from None
        if not isinstance(report, dict):
            raise ValidatorInvocationError("Validator report is not a JSON object", stderr, proc.returncode)
        return report
