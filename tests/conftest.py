"""テスト共通フィクスチャ。"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from gltf_viewer.config import ViewerConfig
from gltf_viewer.models.report import GeneratorEntry
from gltf_viewer.services.normalizer import ReportNormalizer
from gltf_viewer.services.presenter import ReportPresenter, create_template_environment
from gltf_viewer.services.resolver import Fetcher
from gltf_viewer.services.validation import ValidationService
from gltf_viewer.storage.registry import load_generator_registry
from gltf_viewer.validators.gltf import ExternalResourceFunction

ROOT_URL = "https://models.example.com/duck/Duck.gltf"
ROOT_BYTES = b'{"asset": {"version": "2.0"}, "buffers": [{"uri": "Duck0.bin"}]}'


def make_raw_report(
    messages: list[dict[str, Any]] | None = None,
    generator: str | None = None,
) -> dict[str, Any]:
    """glTF-Validator形式の生レポートを作る。件数はメッセージから数える。"""
    messages = messages or []
    counts = [sum(1 for m in messages if m["severity"] == s) for s in range(4)]
    info: dict[str, Any] = {"version": "2.0"}
    if generator is not None:
        info["generator"] = generator
    return {
        "uri": "Duck.gltf",
        "mimeType": "model/gltf+json",
        "validatorVersion": "2.0.0-dev.3.8",
        "issues": {
            "numErrors": counts[0],
            "numWarnings": counts[1],
            "numInfos": counts[2],
            "numHints": counts[3],
            "messages": messages,
            "truncated": False,
        },
        "info": info,
    }


class FakeValidator:
    """テスト用バリデータ。指定URIを外部リソース関数で解決してから固定レポートを返す。"""

    def __init__(
        self,
        report: dict[str, Any] | None = None,
        uris: list[str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.report = report if report is not None else make_raw_report()
        self.uris = uris or []
        self.error = error
        self.received: list[bytes] = []
        self.resources: dict[str, bytes] = {}

    async def validate_bytes(self, data: bytes, external_resource_function: ExternalResourceFunction) -> dict[str, Any]:
        self.received.append(data)
        for uri in self.uris:
            self.resources[uri] = await external_resource_function(uri)
        if self.error is not None:
            raise self.error
        return self.report


class RecordingTransport(httpx.MockTransport):
    """URLごとの応答を返し、受け取ったリクエストを記録するモックトランスポート。"""

    def __init__(self, responses: dict[str, bytes] | None = None) -> None:
        self.responses = responses if responses is not None else {ROOT_URL: ROOT_BYTES}
        self.requests: list[httpx.Request] = []
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        content = self.responses.get(str(request.url))
        if content is None:
            return httpx.Response(404)
        return httpx.Response(200, content=content)

    @property
    def requested_urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]


@pytest.fixture
def config_dir() -> Path:
    """設定ファイルディレクトリ。"""
    return Path(__file__).parent.parent / "config"


@pytest.fixture
def registry(config_dir: Path) -> tuple[GeneratorEntry, ...]:
    """リポジトリ同梱のジェネレータレジストリ。"""
    return load_generator_registry(config_dir)


@pytest.fixture
def normalizer(registry: tuple[GeneratorEntry, ...]) -> ReportNormalizer:
    """テスト用ReportNormalizer。"""
    return ReportNormalizer(registry)


@pytest.fixture
def presenter(config_dir: Path) -> ReportPresenter:
    """テスト用ReportPresenter。"""
    return ReportPresenter(create_template_environment(config_dir))


@pytest.fixture
def transport() -> RecordingTransport:
    """ルートファイルだけを返すモックトランスポート。"""
    return RecordingTransport()


@pytest.fixture
def fetcher(transport: RecordingTransport) -> Fetcher:
    """モックトランスポートを使うFetcher。"""
    return Fetcher(transport=transport)


@pytest.fixture
def fake_validator() -> FakeValidator:
    """問題の無いレポートを返すバリデータ。"""
    return FakeValidator()


@pytest.fixture
def make_service(
    fetcher: Fetcher,
    normalizer: ReportNormalizer,
    presenter: ReportPresenter,
) -> Callable[[FakeValidator], ValidationService]:
    """任意のバリデータでValidationServiceを作るファクトリ。"""

    def _make(validator: FakeValidator) -> ValidationService:
        return ValidationService(validator, fetcher, normalizer, presenter)

    return _make


@pytest.fixture
def server_config(config_dir: Path) -> ViewerConfig:
    """テスト用ViewerConfig。"""
    return ViewerConfig(config_dir=config_dir)
