from fastapi import Request
from fastapi.responses import JSONResponse
from jose import JWTError

from gatepass.core.config.config import settings
from gatepass.core.security.auth import decode_token

PUBLIC_PREFIXES = ("/api/v1/auth/login", "/api/v1/public/", "/api/v1/health")
DOC_PATHS = ("/api/openapi.json", "/docs", "/redoc")


def _cors_headers_for(request: Request) -> dict:
    origin = request.headers.get("origin")
    if origin and origin in settings.ALLOWED_ORIGINS:
        # echo back the origin so the browser accepts credentials
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
            "Vary": "Origin",
        }
    return {}


def is_public_path(path: str) -> bool:
    return path.startswith(PUBLIC_PREFIXES) or path in DOC_PATHS


async def jwt_middleware(request: Request, call_next):
    if request.method == "OPTIONS":
        return await call_next(request)

    if is_public_path(request.url.path):
        return await call_next(request)

    auth = request.headers.get("Authorization")
    if not auth or not auth.startswith("Bearer "):
        return JSONResponse(
            status_code=401,
            content={"detail": "Missing auth header"},
            headers=_cors_headers_for(request),
        )

    token = auth.split(" ", 1)[1]
    try:
        payload = decode_token(token)
        request.state.user = payload
    except JWTError:
        return JSONResponse(
            status_code=401,
            content={"detail": "Invalid token"},
            headers=_cors_headers_for(request),
        )

    return await call_next(request)
