import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tribal_knowledge.api.routes.query import router as query_router
from tribal_knowledge.api.routes.sops import router as sops_router
from tribal_knowledge.api.routes.tasks import router as tasks_router
from tribal_knowledge.errors import ExtractionError, ServiceError, excerpt

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Tribal Knowledge API",
    description="Procedural knowledge from expert task videos",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_origin_regex=r"https://.*\.vercel\.app|http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(query_router)
app.include_router(sops_router)
app.include_router(tasks_router)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    # Backing AI service unavailable; distinct from "could not understand the response"
    logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": f"AI service unavailable: {exc}", "error": type(exc).__name__},
    )


@app.exception_handler(ExtractionError)
async def extraction_error_handler(request: Request, exc: ExtractionError) -> JSONResponse:
    logger.error(
        "%s on %s: %s; raw response: %s",
        type(exc).__name__,
        request.url.path,
        exc,
        excerpt(exc.raw_text),
    )
    return JSONResponse(
        status_code=502,
        content={
            "detail": f"Could not understand the model response: {exc}",
            "error": type(exc).__name__,
            "raw_response": excerpt(exc.raw_text),
        },
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
