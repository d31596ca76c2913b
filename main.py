import logging
from datetime import datetime, timezone
from pathlib import Path

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import load_settings
from providers import CompletionProvider, ErrorKind, ProviderError, build_provider
from translate_core import ValidationError, translate_core


SETTINGS = load_settings()

logging.basicConfig(
    level=SETTINGS.log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

PROVIDER = build_provider(SETTINGS)

BASE_DIR = Path(__file__).resolve().parent
STATIC_DIR = BASE_DIR / "static"
INDEX_HTML_PATH = STATIC_DIR / "index.html"
SCRIPT_JS_PATH = STATIC_DIR / "script.js"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

GENERIC_ERROR = "Falha na tradução devido a um erro interno do servidor."

app = FastAPI()


def get_provider() -> CompletionProvider:
    return PROVIDER


def _json(status_code: int, content: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=CORS_HEADERS)


def provider_error_message(error: ProviderError, provider: CompletionProvider) -> str:
    if error.kind is ErrorKind.UNCONFIGURED:
        return "Serviço de tradução não configurado. Contate o administrador."
    if error.kind is ErrorKind.AUTH_FAILED:
        return f"Chave da API inválida. Verifique a {provider.credential_env}."
    if error.kind is ErrorKind.QUOTA_EXCEEDED:
        return "Cota da API excedida. Verifique o plano do provedor."
    if error.kind is ErrorKind.MODEL_NOT_FOUND:
        return f'Modelo "{provider.config.model}" não encontrado no provedor.'
    return f"Erro na tradução: {error.message or 'falha no provedor'}"


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _json(400, {"error": "O corpo da requisição deve ser um objeto JSON."})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.get("/health")
def health(provider: CompletionProvider = Depends(get_provider)) -> dict:
    return {
        "status": "OK",
        "provider": provider.name,
        f"{provider.name}_configured": provider.configured,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.options("/api/translate")
def translate_preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


@app.api_route("/api/translate", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "TRACE"])
def translate_method_not_allowed() -> JSONResponse:
    response = _json(405, {"error": "Método não permitido. Use POST."})
    response.headers["Allow"] = "POST, OPTIONS"
    return response


@app.post("/api/translate")
def translate(
    payload: dict,
    provider: CompletionProvider = Depends(get_provider),
) -> JSONResponse:
    try:
        translated = translate_core(payload, provider, SETTINGS.max_text_length)
    except ValidationError as exc:
        return _json(400, {"error": str(exc)})
    except ProviderError as exc:
        logger.error("provider_used=%s error_kind=%s", provider.name, exc.kind.value)
        return _json(500, {"error": provider_error_message(exc, provider)})
    except Exception:
        logger.exception("provider_used=%s unexpected dispatch failure", provider.name)
        return _json(500, {"error": GENERIC_ERROR})

    return _json(200, {"translatedText": translated})


@app.get("/", response_class=HTMLResponse)
def index_page() -> HTMLResponse:
    html = INDEX_HTML_PATH.read_text(encoding="utf-8")
    return HTMLResponse(content=html)


@app.get("/script.js", response_class=Response)
def index_script() -> Response:
    script = SCRIPT_JS_PATH.read_text(encoding="utf-8")
    return Response(content=script, media_type="application/javascript")


if __name__ == "__main__":
    logger.info(
        "port=%s provider=%s configured=%s",
        SETTINGS.port,
        PROVIDER.name,
        PROVIDER.configured,
    )
    uvicorn.run(app, host="0.0.0.0", port=SETTINGS.port)
