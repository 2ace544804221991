"""バリデーションフローのMCPプロトコル経由統合テスト。"""

import base64
import json
from pathlib import Path

import pytest
from fastmcp import Client

from gltf_viewer.config import ViewerConfig
from gltf_viewer.server import create_server
from gltf_viewer.services.resolver import Fetcher
from tests.conftest import ROOT_URL, FakeValidator, RecordingTransport, make_raw_report

NOISY_REPORT = make_raw_report(
    [
        {"code": "ACCESSOR_NON_UNIT", "message": "not unit", "severity": 0, "pointer": "/accessors/2"},
        {"code": "ACCESSOR_NON_UNIT", "message": "not unit", "severity": 0, "pointer": "/accessors/2"},
        {"code": "ACCESSOR_NON_UNIT", "message": "not unit", "severity": 0, "pointer": "/accessors/2"},
        {"code": "UNUSED_OBJECT", "message": "This object may be unused.", "severity": 2, "pointer": "/meshes/1"},
    ],
    generator="Khronos glTF Blender I/O v3.6.27",
)


def parse_tool_result(result: object) -> dict:
    """CallToolResultからJSONデータを抽出する。"""
    content = result.content  # type: ignore[union-attr]
    assert len(content) > 0
    return json.loads(content[0].text)  # type: ignore[union-attr]


@pytest.fixture
def validator() -> FakeValidator:
    """外部リソースを1つ要求し、集約対象のエラーを含むレポートを返すバリデータ。"""
    return FakeValidator(report=NOISY_REPORT, uris=["Duck0.bin"])


@pytest.fixture
def mcp_server(server_config: ViewerConfig, validator: FakeValidator) -> object:
    """テスト用MCPサーバー。"""
    fetcher = Fetcher(transport=RecordingTransport())
    return create_server(server_config, validator=validator, fetcher=fetcher)


class TestValidationFlowViaMCP:
    async def test_status_before_validation(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            data = parse_tool_result(await client.call_tool("get_report_status", {}))
            assert data == {"toggle_visible": False, "status": "none"}

    async def test_full_validation_flow_via_mcp(self, mcp_server: object, validator: FakeValidator) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            # 1. 関連ファイル付きで検証
            result = await client.call_tool(
                "validate_model",
                {
                    "root_file": ROOT_URL,
                    "root_path": "duck/",
                    "assets": {"duck/Duck0.bin": base64.b64encode(b"\x01\x02").decode()},
                },
            )
            data = parse_tool_result(result)
            assert data["status"] == "report"
            assert data["max_severity"] == 0
            assert data["generator"] == "glTF-Blender-IO by Khronos Group"
            assert data["counts"] == {"errors": 3, "warnings": 0, "infos": 1, "hints": 0}
            assert data["aggregated_errors"] == 1
            assert validator.resources == {"Duck0.bin": b"\x01\x02"}

            # 2. 集約済みエラーの取得
            data = parse_tool_result(await client.call_tool("get_report_messages", {"severity": "errors"}))
            assert data["level"] == 0
            assert len(data["messages"]) == 1
            assert data["messages"][0]["count"] == 3
            assert data["messages"][0]["aggregated"] is True

            # 3. トグルを閉じる
            data = parse_tool_result(await client.call_tool("dismiss_report_toggle", {}))
            assert data["toggle_visible"] is False
            data = parse_tool_result(await client.call_tool("get_report_status", {}))
            assert data["toggle_visible"] is False
            assert data["status"] == "report"

    async def test_root_fetch_failure_via_mcp(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.call_tool("validate_model", {"root_file": "https://models.example.com/missing.gltf"})
            data = parse_tool_result(result)
            assert data["status"] == "exception"
            assert data["level"] == 0
            assert data["report_error"]["error"] == "RootFetchError"

            data = parse_tool_result(await client.call_tool("get_report_messages", {"severity": "errors"}))
            assert data["error"] == "ReportNotAvailableError"

    async def test_invalid_base64_asset(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            result = await client.call_tool("validate_model", {"root_file": ROOT_URL, "assets": {"a.bin": "!!!"}})
            data = parse_tool_result(result)
            assert data["error"] == "InvalidAssetError"

    async def test_validate_directory_via_mcp(
        self, mcp_server: object, validator: FakeValidator, tmp_path: Path
    ) -> None:
        (tmp_path / "Duck.gltf").write_text('{"asset": {"version": "2.0"}}', encoding="utf-8")
        (tmp_path / "Duck0.bin").write_bytes(b"local")

        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            data = parse_tool_result(await client.call_tool("validate_directory", {"directory": str(tmp_path)}))

        assert data["status"] == "report"
        assert data["root_file"].endswith("/Duck.gltf")
        assert validator.received == [b'{"asset": {"version": "2.0"}}']
        assert validator.resources == {"Duck0.bin": b"local"}

    async def test_validate_directory_without_model(self, mcp_server: object, tmp_path: Path) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            data = parse_tool_result(await client.call_tool("validate_directory", {"directory": str(tmp_path)}))
            assert data["error"] == "RootFileNotFoundError"

            data = parse_tool_result(
                await client.call_tool("validate_directory", {"directory": str(tmp_path / "missing")})
            )
            assert data["error"] == "NotADirectoryError"

    async def test_generator_registry_resource(self, mcp_server: object) -> None:
        async with Client(mcp_server) as client:  # type: ignore[arg-type]
            contents = await client.read_resource("gltf-viewer://validation/generators")
            text = contents[0].text  # type: ignore[union-attr]
            assert "COLLADA2GLTF*" in text
