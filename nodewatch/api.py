"""HTTP surface for the dashboard: report document, stored headers and metrics."""
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST

from .monitor import Monitor

logger = structlog.get_logger()


def create_app(monitor: Monitor, store=None, metrics=None) -> FastAPI:
    """Create the FastAPI app serving monitor's latest report."""
    app = FastAPI(
        title="nodewatch",
        description="Cross-node chain head comparison",
        version="0.1.0"
    )

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "cycles": monitor.cycles,
            "nodes": {node.name: node.status.name for node in monitor.nodes},
        }

    @app.get("/data.json")
    async def report_document():
        report = monitor.latest_report
        if report is None:
            raise HTTPException(status_code=503, detail="No report yet")
        return JSONResponse(content=report.to_document())

    @app.get("/hashes/{block_hash}.json")
    def header_document(block_hash: str):
        if store is None:
            raise HTTPException(status_code=404, detail="No header store configured")
        header: Optional[dict] = store.get(block_hash)
        if header is None:
            raise HTTPException(status_code=404, detail="Unknown hash")
        return JSONResponse(content=header)

    @app.get("/metrics")
    async def metrics_exposition():
        if metrics is None:
            raise HTTPException(status_code=404, detail="Metrics disabled")
        return Response(content=metrics.exposition(), media_type=CONTENT_TYPE_LATEST)

    return app


def start_api_server(app: FastAPI, host: str, port: int) -> None:
    """Serve app with uvicorn; blocks until the server exits."""
    logger.info("api_server_starting", host=host, port=port)
    uvicorn.run(app, host=host, port=port, log_config=None)
