import logging
import time
from typing import Literal, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from sitefacts.config import Settings, setup_logging
from sitefacts.errors import ExtractionError, QueryError, SiteFactsError, ValidationError
from sitefacts.service import ExtractionService

logger = logging.getLogger(__name__)

Mode = Literal["strict", "open"]


class ExtractionRequest(BaseModel):
    url: Optional[str] = None
    mode: Optional[Mode] = None


class QueryRequest(BaseModel):
    question: Optional[str] = None
    context: Optional[str] = None
    mode: Optional[Mode] = None
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0)


def _error_response(error: SiteFactsError) -> JSONResponse:
    return JSONResponse(status_code=500, content=error.to_payload())


def create_app(service: Optional[ExtractionService] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or (service.settings if service else Settings.from_env())
    setup_logging(settings.log_level)
    app = FastAPI(title="SiteFacts API", version=settings.api.version)
    app.state.service = service or ExtractionService(settings)

    @app.middleware("http")
    async def request_logger(request: Request, call_next):
        start = time.perf_counter()
        status = "NA"
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            dur_ms = (time.perf_counter() - start) * 1000.0
            logger.info(f"{request.method} {request.url.path} -> {status} in {dur_ms:.1f}ms")

    @app.exception_handler(SiteFactsError)
    async def handle_sitefacts_error(request: Request, exc: SiteFactsError):
        logger.error(f"{exc.code} on {request.url.path}: {str(exc)}")
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        )
        return _error_response(ValidationError("Invalid request", problems))

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.post("/api/extract")
    async def extract(payload: ExtractionRequest, request: Request):
        try:
            result = await request.app.state.service.extract(payload.url, payload.mode)
        except SiteFactsError:
            raise
        except Exception as e:
            logger.exception("Extraction error")
            raise ExtractionError("Failed to extract information", e.__class__.__name__) from e
        return result.to_dict()

    @app.post("/api/query")
    async def query(payload: QueryRequest, request: Request):
        try:
            result = await request.app.state.service.query(
                payload.question,
                payload.context,
                payload.mode,
                temperature=payload.temperature,
            )
        except SiteFactsError:
            raise
        except Exception as e:
            logger.exception("Query error")
            raise QueryError("Failed to get an answer", e.__class__.__name__) from e
        return result.to_dict()

    return app
