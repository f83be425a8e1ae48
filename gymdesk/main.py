import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException
from strawberry.fastapi import GraphQLRouter

from gymdesk.api.envelope import error
from gymdesk.api.v1 import api_router
from gymdesk.core.config import API_V1_PREFIX, CORS_ORIGINS, ENVIRONMENT
from gymdesk.core.errors import GymDeskError
from gymdesk.core.logging_config import get_logger, setup_logging
from gymdesk.db.postgresql import engine
from gymdesk.graphql.context import build_context
from gymdesk.graphql.schema import schema

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(f"GymDesk API starting ({ENVIRONMENT})")
    yield
    await engine.dispose()


app = FastAPI(title="GymDesk API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Propagate or generate X-Request-ID"""
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    return response


@app.exception_handler(GymDeskError)
async def gymdesk_exception_handler(request: Request, exc: GymDeskError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error(exc.code, exc.message))


@app.exception_handler(StaleDataError)
async def stale_data_handler(request: Request, exc: StaleDataError):
    logger.warning(f"Concurrent update rejected on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=409,
        content=error("conflict", "Record was modified by someone else; reload and try again"),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=error("http_error", detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errs = exc.errors()
    message = "Invalid request"
    if errs:
        loc = ".".join(str(part) for part in errs[0].get("loc", ()) if part != "body")
        message = f"{loc}: {errs[0].get('msg')}" if loc else errs[0].get("msg", message)
    return JSONResponse(status_code=422, content=error("validation_error", message))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = getattr(request.state, "request_id", None)
    logger.error(f"Unhandled error on {request.method} {request.url.path} (request {rid})", exc_info=exc)
    return JSONResponse(status_code=500, content=error("internal_error", "Internal server error"))


app.include_router(api_router, prefix=API_V1_PREFIX)

graphql_app = GraphQLRouter(
    schema=schema,
    context_getter=build_context,
    graphql_ide="graphiql" if ENVIRONMENT != "production" else None,
)
app.include_router(graphql_app, prefix="/graphql")


@app.get("/health")
async def health_check():
    return {"status": "ok"}
