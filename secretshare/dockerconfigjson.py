"""Merging of several docker config JSON secrets into one."""

from __future__ import annotations

import json
from typing import Any, Iterable

from secretshare.secret_exports import Secret

DOCKER_CONFIG_JSON_KEY = ".dockerconfigjson"

_AUTH_FIELDS = ("username", "password", "auth")

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class DockerConfigError(ValueError):
    """A docker config JSON secret could not be read."""


def _parse_auths(raw: bytes) -> dict[str, dict[str, str]]:
    doc = json.loads(raw)
    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise ValueError("cannot unmarshal into an object")
    auths = doc.get("auths")
    if auths is None:
        return {}
    if not isinstance(auths, dict):
        raise ValueError("cannot unmarshal auths into a map")

    result: dict[str, dict[str, str]] = {}
    for server, entry in auths.items():
        if entry is None:
            entry = {}
        if not isinstance(entry, dict):
            raise ValueError(f"cannot unmarshal auth for {server!r} into an object")
        conf = {}
        for name in _AUTH_FIELDS:
            value = entry.get(name)
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise ValueError(f"cannot unmarshal {name} of {server!r} into a string")
            conf[name] = value
        result[server] = conf
    return result


def _encode(document: Any) -> bytes:
    text = json.dumps(document, ensure_ascii=False, separators=(",", ":"))
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text.encode("utf-8")


def combine_docker_config_json(secrets: Iterable[Secret]) -> dict[str, bytes]:
    """Combine docker config JSON secrets into the data of a single secret.

    Secrets are ordered least to most specific, so later ones win for the
    same registry server.
    """
    combined: dict[str, dict[str, str]] = {}
    for secret in secrets:
        raw = secret.data.get(DOCKER_CONFIG_JSON_KEY, b"")
        try:
            combined.update(_parse_auths(raw))
        except (ValueError, UnicodeDecodeError) as err:
            raise DockerConfigError(
                f"Unmarshaling secret '{secret.namespace}/{secret.name}': {err}"
            ) from err

    document = {"auths": {server: combined[server] for server in sorted(combined)}}
    return {DOCKER_CONFIG_JSON_KEY: _encode(document)}