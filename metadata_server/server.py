from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Dict, List, Optional

import uvicorn
import yaml
from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from common.errors import ConstructionFailure, InvalidTokenId, ResolutionError
from common.logging_setup import get_logger, setup_logging
from common.utils import parse_token_id
from metadata_server.generator import MetadataGenerator
from metadata_server.local_json import LocalJson
from metadata_server.remote_json import RemoteJson


log = get_logger(__name__)

DEFAULT_CONFIG_PATH = "config/params.yaml"

# Both metadata routes, found and not-found alike.
CACHE_HEADERS = {"Cache-Control": "max-age=300, must-revalidate"}

_ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _load_config(path: Optional[str] = None, root: Optional[str] = None) -> Dict:
    """
    Read the YAML config. `path` falls back to env METADATA_CONFIG, then
    config/params.yaml; a missing file yields the built-in defaults.
    `root` (else env METADATA_ROOT) overrides metadata.root.

    Raises ValueError when the file is not a YAML mapping.
    """
    path = path or os.environ.get("METADATA_CONFIG") or DEFAULT_CONFIG_PATH
    if not Path(path).exists():
        P: Dict = {
            "server": {"host": "0.0.0.0", "port": 8080, "workers": 1},
            "metadata": {"provider": "local_json", "root": "data/metadata"},
            "logging": {"level": "INFO"},
        }
    else:
        with open(path, "r") as f:
            P = yaml.safe_load(f) or {}
        if not isinstance(P, dict):
            raise ValueError(f"{path}: top level must be a mapping, got {type(P).__name__}")
    root = root or os.environ.get("METADATA_ROOT")
    if root:
        P.setdefault("metadata", {})["root"] = root
    return P


def build_generator(P: Dict) -> MetadataGenerator:
    """
    Wire the configured producer. Raises ConstructionFailure for a bad
    LocalJson root and ValueError for an unknown provider.
    """
    meta_cfg = P.get("metadata", {}) or {}
    provider = str(meta_cfg.get("provider", "local_json"))
    if provider == "local_json":
        return LocalJson(meta_cfg.get("root", "data/metadata"))
    if provider == "remote_json":
        remote = meta_cfg.get("remote", {}) or {}
        return RemoteJson(
            str(remote.get("base_url", "")),
            timeout=float(remote.get("timeout_s", 10.0)),
        )
    raise ValueError(f"unknown metadata provider: {provider!r}")


def _internal_error() -> Response:
    # never echo paths or parser output to the caller
    return PlainTextResponse("internal server error", status_code=500)


def create_app(generator: MetadataGenerator) -> FastAPI:
    """
    Build the HTTP app around one generator instance.

    Routes:
        GET|HEAD /healthcheck   200, empty
        GET /favicon.ico   404, empty
        GET /              collection metadata, or 404 "no contract metadata"
        GET /{token_id}    token metadata, or 404 "unknown token id"
        *   anything else  404 "unknown route"
    """
    app = FastAPI(title="NFT Metadata API", version="0.1.0", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.generator = generator

    @app.api_route("/healthcheck", methods=["GET", "HEAD"])
    async def healthcheck() -> Response:
        return Response(status_code=200)

    @app.get("/favicon.ico")
    async def favicon() -> Response:
        return Response(status_code=404)

    @app.get("/")
    async def collection() -> Response:
        try:
            metadata = await generator.collection_metadata()
        except Exception:
            log.exception("generator raised while loading collection metadata")
            return _internal_error()
        if metadata is None:
            return PlainTextResponse("no contract metadata", status_code=404, headers=CACHE_HEADERS)
        return JSONResponse(metadata.model_dump(mode="json"), headers=CACHE_HEADERS)

    @app.get("/{token_id}")
    async def token(token_id: str) -> Response:
        try:
            tid = parse_token_id(token_id)
        except InvalidTokenId as e:
            log.info("rejected request: %s", e)
            return PlainTextResponse("invalid token id", status_code=400)

        try:
            metadata = await generator.metadata_for(tid)
        except ResolutionError as e:
            log.error(
                "metadata resolution failed for token %s: %s",
                tid,
                e,
                extra={"extra": {"token_id": str(tid), "kind": type(e).__name__, "key": e.key}},
            )
            return _internal_error()
        except Exception:
            log.exception("generator raised for token %s", tid)
            return _internal_error()

        if metadata is None:
            return PlainTextResponse("unknown token id", status_code=404, headers=CACHE_HEADERS)
        return JSONResponse(metadata.model_dump(mode="json"), headers=CACHE_HEADERS)

    @app.api_route("/{path:path}", methods=_ALL_METHODS, include_in_schema=False)
    async def unknown_route(path: str) -> Response:
        return PlainTextResponse("unknown route", status_code=404)

    return app


def app_from_config() -> FastAPI:
    """uvicorn factory (`--factory metadata_server.server:app_from_config`)."""
    P = _load_config()
    setup_logging((P.get("logging", {}) or {}).get("level"))
    return create_app(build_generator(P))


def serve_generator(generator: MetadataGenerator, host: str = "0.0.0.0", port: int = 8080) -> None:
    """
    Serve any generator with the stock routes. Blocks until shutdown.
    For extra routes, call create_app() and add them before running uvicorn.
    """
    setup_logging()
    uvicorn.run(create_app(generator), host=host, port=port, log_config=None)


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Serve ERC-721 / OpenSea JSON metadata over HTTP")
    ap.add_argument("--config", default=None, help="YAML config (default: $METADATA_CONFIG or config/params.yaml)")
    ap.add_argument("--host", default=None, help="Bind address")
    ap.add_argument("--port", type=int, default=None, help="Bind port")
    ap.add_argument("--workers", type=int, default=None, help="uvicorn worker processes")
    ap.add_argument("--root", default=None, help="Metadata directory for the local_json provider")
    ap.add_argument("--log-level", default=None, help="DEBUG/INFO/WARNING/ERROR")
    args = ap.parse_args(argv)

    setup_logging(args.log_level)
    try:
        P = _load_config(args.config, root=args.root)
    except (OSError, ValueError, yaml.YAMLError) as e:
        log.error("cannot read config: %s", e)
        raise SystemExit(1) from e

    srv = P.get("server", {}) or {}
    host = args.host or str(srv.get("host", "0.0.0.0"))
    port = args.port or int(srv.get("port", 8080))
    workers = args.workers or int(srv.get("workers", 1))
    setup_logging(args.log_level or (P.get("logging", {}) or {}).get("level"))

    try:
        generator = build_generator(P)
    except (ConstructionFailure, ValueError) as e:
        log.error("cannot start metadata server: %s", e)
        raise SystemExit(1) from e

    log.info("serving metadata on %s:%s (%d worker(s))", host, port, workers)
    if workers > 1:
        # worker processes rebuild the app via app_from_config, which reads env
        if args.config:
            os.environ["METADATA_CONFIG"] = args.config
        if args.root:
            os.environ["METADATA_ROOT"] = args.root
        if args.log_level:
            os.environ["LOG_LEVEL"] = args.log_level
        uvicorn.run(
            "metadata_server.server:app_from_config",
            factory=True,
            host=host,
            port=port,
            workers=workers,
            log_config=None,
        )
    else:
        uvicorn.run(create_app(generator), host=host, port=port, log_config=None)


# -------- local dev entrypoint --------
if __name__ == "__main__":
    main()
