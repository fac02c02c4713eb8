import logging

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .client import AnalysisClient
from .config import ArkConfig
from .models import AnalysisResult, AnalysisSettings, DetailLevel, Personality

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)

app = FastAPI(
    title="Paper Analyzer",
    description="Turns an uploaded PDF paper into a visual-novel dialogue script",
)

ARK_CONFIG = ArkConfig.from_env()
analysis_client = AnalysisClient(ARK_CONFIG)

if not ARK_CONFIG.has_credential:
    log.warning("ARK_API_KEY is not set -- every analysis will return the fallback script")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    log.error("422 validation error on %s %s", request.method, request.url.path)
    log.error("Validation errors: %s", exc.errors())
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without the raw input, which may be file bytes."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


@app.post("/analyze", response_model=AnalysisResult)
async def analyze_paper(
    file: UploadFile = File(...),
    detail_level: DetailLevel = Form("brief"),
    personality: Personality = Form("tsundere"),
):
    settings = AnalysisSettings(detail_level=detail_level, personality=personality)
    log.info("POST /analyze -- filename=%r detail=%s personality=%s",
             file.filename, settings.detail_level, settings.personality)

    result = await analysis_client.analyze(file.file, settings, filename=file.filename)

    log.info("Returning %r with %d lines", result.title, len(result.script))
    return result


@app.get("/health")
async def health():
    return {"status": "ok", "model": ARK_CONFIG.model}
