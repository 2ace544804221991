"""外部リソースの解決（アセットマップ優先、ネットワークへフォールバック）。"""

import asyncio
import re
from collections.abc import Iterator
from contextlib import contextmanager
from io import BytesIO
from pathlib import Path
from typing import BinaryIO
from urllib.parse import unquote, urlsplit
from urllib.request import url2pathname

import httpx

from gltf_viewer.logger import get_logger
from gltf_viewer.models.errors import FetchError, ResourceResolutionError
from gltf_viewer.models.request import AssetBlob, AssetMap

logger = get_logger(__name__)

# 予約文字（; / ? : @ & = + $ , #）のエスケープはデコードしない
_RESERVED_ESCAPE_RE = re.compile(r"(%(?:2[346BbCcFf]|3[AaBbDdFf]|40))")


def decode_uri(uri: str) -> str:
    """予約文字のエスケープを残したまま、URIのパーセントエンコードをデコードする。"""
    parts = _RESERVED_ESCAPE_RE.split(uri)
    # splitの結果は奇数番目が予約文字のエスケープ
    return "".join(part if i % 2 else unquote(part) for i, part in enumerate(parts))


def extract_url_base(url: str) -> str:
    """URLのディレクトリ部（末尾「/」付き）を返す。区切りが無ければ「./」。"""
    index = url.rfind("/")
    if index == -1:
        return "./"
    return url[: index + 1]


class Fetcher:
    """URLからバイト列を取得する。

    http(s) はhttpxで取得し、ローカルのディレクトリドロップで使う file:// は
    ディスクから直接読む。
    """

    def __init__(self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """HTTPクライアントを遅延初期化して返す。"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def fetch(self, url: str) -> bytes:
        """URLの内容を取得する。

        Raises:
            FetchError: 取得に失敗した場合。
        """
        scheme = urlsplit(url).scheme
        if scheme == "file":
            return await self._read_file(url)
        if scheme not in ("http", "https"):
            raise FetchError(url, f"unsupported URL scheme: {scheme or '(none)'}")

        try:
            response = await self._get_client().get(url)
        except httpx.HTTPError as e:
            raise FetchError(url, str(e) or type(e).__name__) from e
        if not response.is_success:
            raise FetchError(url, f"HTTP {response.status_code}", status_code=response.status_code)
        return response.content

    @staticmethod
    async def _read_file(url: str) -> bytes:
        path = Path(url2pathname(urlsplit(url).path))
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise FetchError(url, e.strerror or str(e)) from e

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


@contextmanager
def open_blob(blob: AssetBlob) -> Iterator[BinaryIO]:
    """アセットの一時ハンドルを開き、抜けるときに必ず解放する。"""
    handle: BinaryIO = BytesIO(blob) if isinstance(blob, bytes) else open(blob, "rb")
    try:
        yield handle
    finally:
        handle.close()


class AssetResolver:
    """バリデータが要求する外部リソースをバイト列に解決する。

    1回の読み込み操作（ルートファイル、ルートパス、アセットマップ）に束縛される。
    アセットマップは解決中に変更されない前提。
    """

    def __init__(self, root_file: str, root_path: str, asset_map: AssetMap, fetcher: Fetcher) -> None:
        self._root_file = root_file
        self._root_path = root_path
        self._asset_map = asset_map
        self._fetcher = fetcher
        self._base_url = extract_url_base(root_file)

    def normalize(self, uri: str) -> str:
        """要求URIをアセットマップのキーに正規化する。

        バリデータはURIエンコードを施すため、まずデコードする。
        """
        normalized = decode_uri(uri)
        if normalized.startswith(self._base_url):
            normalized = normalized[len(self._base_url) :]
        if normalized.startswith("./"):
            normalized = normalized[2:]
        elif normalized.startswith("/"):
            normalized = normalized[1:]
        return self._root_path + normalized

    async def resolve(self, uri: str) -> bytes:
        """外部リソースを取得する。

        Args:
            uri: バリデータが要求したURI（エンコード済み）。

        Returns:
            リソースのバイト列。

        Raises:
            ResourceResolutionError: ローカルにもネットワーク上にも見つからない場合。
        """
        key = self.normalize(uri)
        blob = self._asset_map.get(key)
        if blob is not None:
            logger.debug("Resolved %s from asset map (%s)", uri, key)
            try:
                return await asyncio.to_thread(self._read_blob, blob)
            except OSError as e:
                raise ResourceResolutionError(uri, key, e.strerror or str(e)) from e

        url = self._base_url + uri
        logger.debug("Resolving %s over the network: %s", uri, url)
        try:
            return await self._fetcher.fetch(url)
        except FetchError as e:
            raise ResourceResolutionError(uri, url, e.reason, e.status_code) from e

    @staticmethod
    def _read_blob(blob: AssetBlob) -> bytes:
        with open_blob(blob) as handle:
            return handle.read()
