"""glTF Viewer MCPサーバーのコマンドラインエントリポイント。"""

if __name__ == "__main__":
    import uvicorn

    from gltf_viewer.config import ViewerConfig
    from gltf_viewer.logger import setup_logging
    from gltf_viewer.server import create_http_app

    config = ViewerConfig()
    setup_logging(config.log_level)
    app = create_http_app(config)
    uvicorn.run(app, host=config.host, port=config.port)
