from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from gallery_billing.core.config import settings
from gallery_billing.core.cors import cors_headers
from gallery_billing.core.log_config import configure_logging
from gallery_billing.api.router import router

configure_logging()

app = FastAPI(
    title="HiveMind AR billing",
    version="0.1.0",
)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    response: Response = await call_next(request)
    if settings.SECURITY_HEADERS_ENABLED:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.ENV != "dev":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


@app.middleware("http")
async def cors_middleware(request: Request, call_next):
    headers = cors_headers(request.headers.get("origin"), request.url.path)
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=headers)
    response: Response = await call_next(request)
    response.headers.update(headers)
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


app.include_router(router)


@app.get("/health")
def health():
    return {"ok": True}
