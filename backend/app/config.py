import os

def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val


def _parse_origins(raw):
    """Split a comma-separated ALLOWED_ORIGINS value, rejecting wildcards."""
    origins = [o.strip() for o in (raw or "").split(",") if o.strip()]
    if "*" in origins:
        raise ValueError(
            "ALLOWED_ORIGINS cannot include '*' (wildcard). Specify explicit, trusted origins."
        )
    return origins


API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

ALLOWED_ORIGINS = _parse_origins(os.getenv("ALLOWED_ORIGINS"))
ALLOW_CREDENTIALS = os.getenv("ALLOW_CREDENTIALS", "true").lower() == "true"

# slowapi limit string applied per client to the scoring endpoints
EVENT_RATE_LIMIT = (os.getenv("EVENT_RATE_LIMIT") or "120/minute").strip()
