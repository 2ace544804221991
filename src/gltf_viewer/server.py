"""FastMCPベースのMCPサーバーエントリポイント。"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastmcp import FastMCP
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, Response

from gltf_viewer.config import ViewerConfig
from gltf_viewer.logger import get_logger
from gltf_viewer.resources.registry import register_registry_resources
from gltf_viewer.services.normalizer import ReportNormalizer
from gltf_viewer.services.presenter import ReportPresenter, create_template_environment
from gltf_viewer.services.resolver import Fetcher
from gltf_viewer.services.validation import ValidationService
from gltf_viewer.storage.registry import load_generator_registry
from gltf_viewer.tools.validation import register_validation_tools
from gltf_viewer.validators.gltf import GltfValidatorCli, Validator

logger = get_logger(__name__)


def create_server(
    config: ViewerConfig | None = None,
    validator: Validator | None = None,
    fetcher: Fetcher | None = None,
) -> FastMCP:
    """glTF Viewer MCPサーバーを作成し、ツール・リソース・HTTPルートを登録する。

    Args:
        config: サーバー設定。Noneの場合はデフォルト設定を使用。
        validator: バリデータ。Noneの場合はglTF-Validator CLIを使用。
        fetcher: URL取得。Noneの場合は設定のタイムアウトで作成。

    Returns:
        設定済みのFastMCPインスタンス。
    """
    if config is None:
        config = ViewerConfig()
    if validator is None:
        validator = GltfValidatorCli(executable=config.validator_executable, timeout=config.validator_timeout)
    if fetcher is None:
        fetcher = Fetcher(timeout=config.fetch_timeout)

    mcp = FastMCP("gltf-viewer")

    # 参照データ
    registry = load_generator_registry(config.config_dir)

    # サービス層（ビューア1つにつき1インスタンス）
    normalizer = ReportNormalizer(registry, aggregated_codes=config.aggregated_codes)
    presenter = ReportPresenter(create_template_environment(config.config_dir))
    validation_service = ValidationService(validator, fetcher, normalizer, presenter)

    # MCPインターフェース登録
    register_validation_tools(mcp, validation_service)
    register_registry_resources(mcp, registry)

    # ヘルスチェックエンドポイント
    @mcp.custom_route("/health", methods=["GET"])
    async def health_check(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok"})

    @mcp.custom_route("/report/toggle", methods=["GET"])
    async def report_toggle(request: Request) -> Response:
        if not presenter.toggle_visible:
            return Response(status_code=204)
        return HTMLResponse(presenter.toggle_html)

    @mcp.custom_route("/report/toggle/dismiss", methods=["POST"])
    async def dismiss_report_toggle(request: Request) -> Response:
        presenter.dismiss()
        return Response(status_code=204)

    @mcp.custom_route("/report", methods=["GET"])
    async def full_report(request: Request) -> Response:
        location = {
            "href": str(request.url),
            "host": request.url.netloc,
            "origin": f"{request.url.scheme}://{request.url.netloc}",
        }
        html = presenter.show_full(location)
        if html is None:
            return JSONResponse(
                {"error": "ReportNotAvailableError", "message": "No validation report is available."},
                status_code=404,
            )
        return HTMLResponse(html)

    return mcp


def create_http_app(
    config: ViewerConfig | None = None,
    validator: Validator | None = None,
    fetcher: Fetcher | None = None,
) -> Starlette:
    """MCPサーバーのHTTPアプリを作成する。

    アプリの終了時にFetcherのHTTPクライアントを閉じる。
    """
    if config is None:
        config = ViewerConfig()
    if fetcher is None:
        fetcher = Fetcher(timeout=config.fetch_timeout)

    mcp = create_server(config, validator=validator, fetcher=fetcher)
    app = mcp.http_app(transport="streamable-http")
    mcp_lifespan = app.router.lifespan_context

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with mcp_lifespan(app):
            try:
                yield
            finally:
                await fetcher.aclose()
                logger.info("HTTP client closed")

    app.router.lifespan_context = lifespan
    return app
