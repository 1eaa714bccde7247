import hashlib
import re
from typing import Iterable, Optional
from urllib.parse import parse_qs, urlsplit, urlunsplit

LINKEDIN_JOB_PATH = re.compile(r"/jobs/view/(?:[^/?#]*?-)?(\d{6,})(?:[/?#]|$)")
LINKEDIN_JOB_ID = re.compile(r"^\d{6,}$")

def is_http_url(url) -> bool:
    """True for absolute http/https URLs with a host."""
    if not isinstance(url, str):
        return False
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)

def host_of(url: str) -> str:
    """Lowercased hostname, or an empty string when the URL has none."""
    try:
        return (urlsplit(url.strip()).hostname or "").lower()
    except ValueError:
        return ""

def domain_matches(host: str, domains: Iterable[str]) -> bool:
    """
    Check whether host belongs to one of the domain families.
    'www.linkedin.com' matches 'linkedin.com', 'notlinkedin.com' does not.
    """
    host = host.lower().rstrip(".")
    for domain in domains:
        domain = domain.lower().lstrip(".")
        if host == domain or host.endswith("." + domain):
            return True
    return False

def normalize_url(url: str) -> str:
    """
    Normalize a URL for identity hashing.
    Scheme and host are lowercased and the fragment is dropped; path and query
    are case-sensitive and kept. Non-URL strings are only trimmed.
    """
    url = url.strip()
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, ""))

def identity_key(url: str) -> str:
    """Stable cache/persistence key for a source URL."""
    return hashlib.sha256(normalize_url(url).encode("utf-8")).hexdigest()

def extract_linkedin_job_id(url: str) -> Optional[str]:
    """
    Pull the numeric job id out of a LinkedIn job URL.
    Handles /jobs/view/<id>, /jobs/view/<slug>-<id> and ?currentJobId=<id>.
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None

    match = LINKEDIN_JOB_PATH.search(parts.path)
    if match:
        return match.group(1)

    for value in parse_qs(parts.query).get("currentJobId", []):
        if LINKEDIN_JOB_ID.match(value):
            return value

    return None
