import os

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded


def _get_client_ip(request: Request) -> str:
  forwarded = request.headers.get("X-Forwarded-For")
  if forwarded:
    parts = [ip.strip() for ip in forwarded.split(",") if ip.strip()]
    if parts:
      return parts[-1]
  real_ip = request.headers.get("X-Real-IP")
  if real_ip:
    return real_ip
  return request.client.host if request.client else ""


def _rate_limits_enabled() -> bool:
  return (os.getenv("DISABLE_RATE_LIMITS") or "").lower() != "true"


limiter = Limiter(key_func=_get_client_ip, enabled=_rate_limits_enabled())


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
  detail = exc.detail if isinstance(exc.detail, str) else ""
  if detail:
    message = f"rate limit exceeded: {detail}"
  else:
    message = "rate limit exceeded: please wait before recording another event."
  return JSONResponse(
      status_code=429,
      content={
          "title": "Too Many Requests",
          "detail": message,
          "status": 429,
          "code": "rate_limit_exceeded",
      },
      media_type="application/problem+json",
  )
