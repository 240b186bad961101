"""Check whether a newer procshell release is published on GitHub."""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from pydantic import BaseModel, ValidationError

from procshell.config import CONFIG_DIR, ProcshellConfig, load_config, write_json_atomic

log = logging.getLogger(__name__)

GITHUB_LATEST_RELEASE_URL = "https://api.github.com/repos/{repo}/releases/latest"
NETWORK_TIMEOUT_SECONDS = 1.5
UPDATE_CHECK_CACHE_TTL_SECONDS = 24 * 60 * 60
UPDATE_CHECK_CACHE_FILE = CONFIG_DIR / "update-check.json"

_VERSION_PART_RE = re.compile(r"\d+")


@dataclass(frozen=True)
class UpdateInfo:
    current_version: str
    latest_version: str
    name: str
    notes: str
    url: str

    @property
    def has_update(self) -> bool:
        return version_greater(self.latest_version, self.current_version)


def _version_parts(version: str) -> list[int]:
    parts = []
    for piece in version.strip().lstrip("vV").split("."):
        match = _VERSION_PART_RE.match(piece)
        parts.append(int(match.group()) if match else 0)
    return parts


def version_greater(a: str, b: str) -> bool:
    """Return whether version a is newer than b, comparing dotted numeric parts."""
    pa, pb = _version_parts(a), _version_parts(b)
    width = max(len(pa), len(pb))
    pa += [0] * (width - len(pa))
    pb += [0] * (width - len(pb))
    return pa > pb


def fetch_latest_release(repo: str) -> dict | None:
    """Return the latest release payload for an ``owner/name`` repo, if available."""
    request = Request(
        GITHUB_LATEST_RELEASE_URL.format(repo=repo),
        headers={"Accept": "application/vnd.github+json", "User-Agent": "procshell update-check"},
    )
    try:
        with urlopen(request, timeout=NETWORK_TIMEOUT_SECONDS) as response:
            payload = json.load(response)
    except (HTTPError, URLError, TimeoutError, OSError, json.JSONDecodeError) as e:
        log.debug("release lookup for %s failed: %s", repo, e)
        return None

    if not isinstance(payload, dict):
        return None
    tag = payload.get("tag_name")
    if not isinstance(tag, str) or not tag.strip():
        return None
    return payload


class UpdateCheckStamp(BaseModel):
    """When GitHub was last asked for a release, persisted between runs."""

    last_checked_epoch: float

    def due(self, now_epoch: float) -> bool:
        return now_epoch - self.last_checked_epoch >= UPDATE_CHECK_CACHE_TTL_SECONDS


def _load_stamp() -> UpdateCheckStamp | None:
    try:
        with open(UPDATE_CHECK_CACHE_FILE, encoding="utf-8") as f:
            return UpdateCheckStamp.model_validate_json(f.read())
    except (OSError, ValidationError):
        return None


def _save_stamp(now_epoch: float) -> None:
    stamp = UpdateCheckStamp(last_checked_epoch=now_epoch)
    try:
        write_json_atomic(UPDATE_CHECK_CACHE_FILE, stamp.model_dump())
    except OSError as e:
        log.debug("could not record update check time: %s", e)


def check_for_update(
    current_version: str,
    config: ProcshellConfig | None = None,
    *,
    force: bool = False,
) -> UpdateInfo | None:
    """Return release info when a newer version exists, else None.

    Checks at most once per cache TTL unless force is set.
    """
    resolved = config if config is not None else load_config()
    if not resolved.update_check_enabled and not force:
        return None

    now_epoch = time.time()
    stamp = _load_stamp()
    if not force and stamp is not None and not stamp.due(now_epoch):
        return None
    _save_stamp(now_epoch)

    payload = fetch_latest_release(resolved.update_repo)
    if payload is None:
        return None

    info = UpdateInfo(
        current_version=current_version,
        latest_version=payload["tag_name"].strip(),
        name=str(payload.get("name") or ""),
        notes=str(payload.get("body") or ""),
        url=str(payload.get("html_url") or ""),
    )
    if not info.has_update:
        return None
    return info
