"""
Share-link codec.

A payload ``{content, version}`` becomes a token in three reversible steps:
canonical JSON -> gzip -> URL-safe base64, followed by URL-component escaping.
decode() undoes the steps in reverse order. Neither direction raises: callers
get either a value or a ShareFailure.
"""
import base64
import binascii
import gzip
import json
import zlib
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union
from urllib.parse import parse_qs, quote, unquote, urlencode, urlsplit, urlunsplit

from pydantic import BaseModel, ValidationError

from boardide.errors import DecodingFailure, EncodingFailure, WorkspaceError
from boardide.logging import logger

# Decompressed payloads larger than this are rejected as malformed
MAX_DECODED_BYTES = 4 * 1024 * 1024


class SharePayload(BaseModel):
    content: str
    version: str


@dataclass(frozen=True)
class ShareFailure:
    """Explicit failure value returned instead of raising."""
    error: WorkspaceError

    @property
    def message(self) -> str:
        return str(self.error)

    def __bool__(self) -> bool:
        return False


def _serialize(payload: Union[SharePayload, Mapping[str, Any]]) -> str:
    if isinstance(payload, SharePayload):
        data = payload.model_dump()
    elif isinstance(payload, Mapping):
        data = dict(payload)
    else:
        raise EncodingFailure(f"cannot share object of type {type(payload).__name__}")
    try:
        return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise EncodingFailure(f"payload is not serializable: {exc}") from exc


def encode(payload: Union[SharePayload, Mapping[str, Any]]) -> Union[str, ShareFailure]:
    """Turn a payload into a URL-safe token."""
    try:
        text = _serialize(payload)
        try:
            compressed = gzip.compress(text.encode("utf-8"), mtime=0)
        except (UnicodeEncodeError, ValueError) as exc:
            raise EncodingFailure(f"payload text cannot be encoded: {exc}") from exc
        transport = base64.urlsafe_b64encode(compressed).decode("ascii")
        return quote(transport, safe="")
    except EncodingFailure as exc:
        logger.warning(f"Error compiling share data: {exc}")
        return ShareFailure(exc)


def _gunzip(data: bytes) -> bytes:
    inflater = zlib.decompressobj(wbits=16 + zlib.MAX_WBITS)
    out = inflater.decompress(data, MAX_DECODED_BYTES)
    if inflater.unconsumed_tail:
        raise DecodingFailure("decompressed payload too large")
    if not inflater.eof:
        raise DecodingFailure("truncated compressed stream")
    if inflater.unused_data:
        raise DecodingFailure("trailing bytes after compressed stream")
    return out


def decode(token: str) -> Union[SharePayload, ShareFailure]:
    """Rebuild the payload carried by a token."""
    try:
        if not isinstance(token, str) or not token:
            raise DecodingFailure("empty token")
        transport = unquote(token, errors="strict")
        try:
            compressed = base64.urlsafe_b64decode(transport.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError, ValueError) as exc:
            raise DecodingFailure(f"invalid transport encoding: {exc}") from exc
        try:
            text = _gunzip(compressed).decode("utf-8")
        except (zlib.error, UnicodeDecodeError) as exc:
            raise DecodingFailure(f"decompression failed: {exc}") from exc
        try:
            return SharePayload.model_validate_json(text)
        except ValidationError as exc:
            raise DecodingFailure(f"malformed payload: {exc.error_count()} error(s)") from exc
    except UnicodeDecodeError as exc:
        # raised by unquote() on invalid percent-escapes
        logger.warning(f"Error decompiling share data: {exc}")
        return ShareFailure(DecodingFailure(f"invalid escaping: {exc}"))
    except DecodingFailure as exc:
        logger.warning(f"Error decompiling share data: {exc}")
        return ShareFailure(exc)


def build_share_url(base_url: str, token: str, param: str = "data") -> str:
    """Attach the token to base_url as the share query parameter."""
    parts = urlsplit(base_url)
    query = {k: v for k, v in parse_qs(parts.query).items() if k != param}
    pairs = [(k, v) for k, values in query.items() for v in values]
    # The token is already escaped; keep it verbatim
    query_string = urlencode(pairs)
    query_string = f"{query_string}&{param}={token}" if query_string else f"{param}={token}"
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query_string, parts.fragment))


def extract_share_token(query: Union[str, Mapping[str, Any]], param: str = "data") -> Optional[str]:
    """
    Pull the raw (still escaped) share token out of a query string or a
    parsed query mapping such as Streamlit's ``st.query_params``.
    """
    if isinstance(query, str):
        query = query.split("?", 1)[-1]
        for pair in query.split("&"):
            key, _, value = pair.partition("=")
            if key == param and value:
                return value
        return None
    value = query.get(param)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if not value:
        return None
    # Mappings hold already-unescaped values; re-escape to the token form
    return quote(value, safe="")
