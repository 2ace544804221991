"""ジェネレータレジストリのMCPリソース定義。"""

from collections.abc import Sequence

import yaml
from fastmcp import FastMCP

from gltf_viewer.models.report import GeneratorEntry


def register_registry_resources(mcp: FastMCP, registry: Sequence[GeneratorEntry]) -> None:
    """ジェネレータレジストリ関連のMCPリソースを登録する。"""

    @mcp.resource("gltf-viewer://validation/generators")
    async def generators() -> str:
        """既知のglTF生成ツールの一覧を取得する。

        レポートのasset.generatorとの照合に使われるレジストリを返します。
        generatorに「*」を含むエントリはワイルドカードとして照合されます。
        """
        data = {"generators": [entry.model_dump(exclude_none=True) for entry in registry]}
        return yaml.dump(data, allow_unicode=True, default_flow_style=False, sort_keys=False)
