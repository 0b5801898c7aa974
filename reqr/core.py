"""reqr core - config loading, pair lists, body encoding, request resolution."""

import json
import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import urlencode

import requests
import yaml
from dotenv import dotenv_values

logger = logging.getLogger(__name__)

GLOBAL_DIR = Path.home() / ".reqr"
GLOBAL_CONFIG = GLOBAL_DIR / "config.yaml"

CWD_CONFIG_CANDIDATES = [
    ".reqr.yaml",
    ".reqr.yml",
    "reqr.yaml",
    "reqr.yml",
]

DEFAULT_TIMEOUT = 30
DEFAULT_STYLE = "monokai"

# RFC 7230 token characters
_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


# ── Errors ───────────────────────────────────────────────────────────────


class ReqrError(Exception):
    """Base class for every failure that aborts an invocation."""


class MalformedPairList(ReqrError):
    pass


class ConflictingMethodAndBody(ReqrError):
    pass


class InvalidURL(ReqrError):
    pass


class InvalidHeader(ReqrError):
    def __init__(self, name: str, value: str, reason: str):
        self.name = name
        self.value = value
        super().__init__(f"Invalid header {name!r}: {value!r} ({reason})")


class TransportError(ReqrError):
    pass


class FileWriteError(ReqrError):
    def __init__(self, path: str | Path, cause: Exception):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Cannot write to {path}: {cause}")


# ── Types ────────────────────────────────────────────────────────────────


class Method(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class BodyFormat(str, Enum):
    JSON = "json"
    FORM = "form"


Pair = tuple[str, str]


@dataclass(frozen=True)
class RequestSpec:
    """Fully resolved request, handed as-is to the executor."""

    method: Method
    url: str
    headers: tuple[Pair, ...] = ()
    body: bytes | None = None

    def header(self, name: str) -> str | None:
        """Case-insensitive lookup of the last header named *name*."""
        found = None
        for key, value in self.headers:
            if key.lower() == name.lower():
                found = value
        return found


# ── Config ───────────────────────────────────────────────────────────────


def resolve_path(
    candidates: list[Path],
    default: Path | None = None,
) -> Path | None:
    """Return the first existing path from candidates, else default."""
    for p in candidates:
        if p.exists():
            return p.resolve()
    return default


def resolve_config_path(config_file: str | None) -> Path | None:
    """Find the config file to use.

    Resolution order:
      1. Explicit -c flag (hard — no fallthrough if missing)
      2. .reqr.yaml (variants) in CWD
      3. ~/.reqr/config.yaml
    """
    if config_file:
        return resolve_path([Path(config_file)])
    return resolve_path([Path(c) for c in CWD_CONFIG_CANDIDATES] + [GLOBAL_CONFIG])


def load_config(config_path: str | Path | None) -> dict:
    """Load YAML config file. Returns an empty defaults section if not found."""
    if config_path is None:
        return {"defaults": {}, "_config_dir": None}
    path = Path(config_path)
    if not path.exists():
        return {"defaults": {}, "_config_dir": None}
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ReqrError(f"Invalid config {path}: {e}") from e
    if not isinstance(data, dict):
        raise ReqrError(f"Invalid config {path}: expected a mapping")
    defaults = data.get("defaults") or {}
    if not isinstance(defaults, dict):
        raise ReqrError(f"Invalid config {path}: defaults must be a mapping")
    return {
        "defaults": defaults,
        "_config_dir": path.resolve().parent,
    }


def load_env(env_file: str | None, base_dir: str | Path = ".") -> dict[str, str]:
    """Load a .env file and merge it over os.environ."""
    env = dict(os.environ)
    if env_file:
        dotenv_path = Path(base_dir) / env_file
        if dotenv_path.exists():
            dotenv_vars = dotenv_values(str(dotenv_path))
            env.update({k: v for k, v in dotenv_vars.items() if v is not None})
    return env


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ("0", "false", "no", "off", "")


def resolve_settings(
    config: dict,
    env: dict[str, str],
    timeout: int | None = None,
    style: str | None = None,
) -> dict:
    """Merge transport/presentation settings.

    Priority: CLI value > REQR_* environment variable > config defaults > built-in.
    """
    defaults = config.get("defaults", {})

    if timeout is None:
        raw = env.get("REQR_TIMEOUT") or defaults.get("timeout")
        try:
            timeout = int(raw) if raw else DEFAULT_TIMEOUT
        except ValueError:
            raise ReqrError(f"Invalid timeout: {raw!r}") from None

    if style is None:
        style = env.get("REQR_STYLE") or defaults.get("style") or DEFAULT_STYLE

    verify = env.get("REQR_VERIFY")
    if verify is None:
        verify = defaults.get("verify", True)

    return {"timeout": timeout, "style": style, "verify": _as_bool(verify)}


# ── Pair lists ───────────────────────────────────────────────────────────


def pairs_from_flat(values) -> list[Pair]:
    """Turn an alternating [k1, v1, k2, v2, ...] sequence into pairs.

    None or an empty sequence gives an empty list. An odd number of
    elements raises MalformedPairList instead of dropping the last one.
    """
    if not values:
        return []
    values = list(values)
    if len(values) % 2:
        raise MalformedPairList(
            f"Expected name/value pairs but got {len(values)} values "
            f"(dangling {values[-1]!r})",
        )
    return list(zip(values[0::2], values[1::2], strict=True))


# ── Body encoding ────────────────────────────────────────────────────────


def encode_body(pairs: list[Pair], body_format: BodyFormat) -> bytes:
    """Encode body pairs.

    JSON collapses duplicate keys (last value wins) into a compact object of
    strings. FORM keeps every pair in order, duplicates included.
    """
    if body_format is BodyFormat.JSON:
        return json.dumps(
            dict(pairs),
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")
    return urlencode(pairs).encode("utf-8")


CONTENT_TYPES = {
    BodyFormat.JSON: "application/json",
    BodyFormat.FORM: "application/x-www-form-urlencoded",
}


def body_format_from_flags(json_flag: bool, form_flag: bool) -> BodyFormat | None:
    """--json wins over --form; neither means undecided."""
    if json_flag:
        return BodyFormat.JSON
    if form_flag:
        return BodyFormat.FORM
    return None


# ── Request resolution ───────────────────────────────────────────────────


def normalize_scheme(target: str) -> str:
    if not target.startswith(("http://", "https://")):
        return "http://" + target
    return target


def build_url(target: str, query: list[Pair] | None = None) -> str:
    """Default the scheme and append query pairs to any existing query."""
    url = normalize_scheme(target)
    prepared = requests.models.PreparedRequest()
    try:
        prepared.prepare_url(url, list(query or []))
    except requests.exceptions.RequestException as e:
        raise InvalidURL(f"Invalid URL {target!r}: {e}") from e
    return prepared.url


def resolve_method(
    method: str | Method | None,
    body: list[Pair] | None,
    body_format: BodyFormat | None,
) -> Method:
    """Pick the request method.

    Explicit method wins; otherwise body fields or a body format mean POST,
    and anything else is GET. GET or DELETE with body fields is rejected.
    """
    if method is not None:
        try:
            resolved = Method(method.upper())
        except ValueError:
            raise ReqrError(f"Unsupported method: {method}") from None
        if body and resolved in (Method.GET, Method.DELETE):
            raise ConflictingMethodAndBody(
                f"{resolved.value} requests cannot carry body fields "
                f"({len(body)} given)",
            )
        return resolved
    if body or body_format is not None:
        return Method.POST
    return Method.GET


def validate_headers(headers: list[Pair] | None) -> tuple[Pair, ...]:
    """Check every header before any is attached."""
    checked = []
    for name, value in headers or []:
        if not _TOKEN_RE.match(name):
            raise InvalidHeader(name, value, "name must be a token")
        try:
            requests.utils.check_header_validity((name, value))
        except requests.exceptions.InvalidHeader as e:
            raise InvalidHeader(name, value, str(e)) from e
        try:
            value.encode("latin-1")
        except UnicodeEncodeError:
            raise InvalidHeader(name, value, "value must be latin-1") from None
        checked.append((name, value))
    return tuple(checked)


def resolve_request(
    target: str,
    query: list[Pair] | None = None,
    headers: list[Pair] | None = None,
    body: list[Pair] | None = None,
    method: str | Method | None = None,
    body_format: BodyFormat | None = None,
) -> RequestSpec:
    """Build an immutable RequestSpec. No network I/O happens here."""
    url = build_url(target, query)
    resolved_method = resolve_method(method, body, body_format)
    header_list = validate_headers(headers)

    encoded = None
    if body:
        body_format = body_format or BodyFormat.JSON
        encoded = encode_body(body, body_format)
        if not any(name.lower() == "content-type" for name, _ in header_list):
            header_list += (("Content-Type", CONTENT_TYPES[body_format]),)

    spec = RequestSpec(
        method=resolved_method,
        url=url,
        headers=header_list,
        body=encoded,
    )
    logger.debug(
        "Resolved %s %s (%d headers, %d body bytes)",
        spec.method.value,
        spec.url,
        len(spec.headers),
        len(spec.body or b""),
    )
    return spec
