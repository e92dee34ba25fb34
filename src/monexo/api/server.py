import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from monexo.api.routes import router
from monexo.core.errors import MonexoError
from monexo.mint.config import MintConfig
from monexo.mint.mint import Mint
from monexo.mint.settlement import HttpSettlementOracle, InMemorySettlementOracle

logger = logging.getLogger("monexo.api")


def mint_from_env() -> Mint:
    """Build a Mint from MINT_* environment variables."""
    config = MintConfig.from_env()

    settlement_url = os.getenv("MINT_SETTLEMENT_URL")
    if settlement_url:
        oracle = HttpSettlementOracle(
            settlement_url,
            api_key=os.getenv("MINT_SETTLEMENT_API_KEY"),
            min_confirmations=config.onchain.min_confirmations,
        )
    else:
        logger.warning("MINT_SETTLEMENT_URL not set; using in-memory settlement (development only)")
        oracle = InMemorySettlementOracle()

    return Mint(config, oracle=oracle)


def create_app(mint: Mint | None = None) -> FastAPI:
    """
    Build the mint HTTP API.

    Args:
        mint: Pre-built mint (tests, embedding). Built from the environment
              at startup when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.getLogger("monexo").setLevel(os.getenv("MINT_LOG_LEVEL", "INFO").upper())
        if getattr(app.state, "mint", None) is None:
            app.state.mint = mint_from_env()
        logger.info(f"Mint ready with keysets {list(app.state.mint.keysets)}")
        yield

    app = FastAPI(
        title="monexo mint",
        description="Chaumian e-cash mint with on-chain settlement",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.mint = mint

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.exception_handler(MonexoError)
    async def monexo_error_handler(request: Request, exc: MonexoError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.detail}")
        return JSONResponse(status_code=400, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # Raw inputs are left out: they may not be encodable as UTF-8.
        errors = [{"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]} for e in exc.errors()]
        return JSONResponse(status_code=422, content={"detail": errors})

    @app.get("/health")
    async def health_check():
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


app = create_app()
