# workflow_import.py
from __future__ import annotations

import logging
import re
import socket
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable, Mapping
from urllib.parse import urlsplit

log = logging.getLogger("costguard.import")

MAX_WORKFLOW_URL_CHARS = 2048
MAX_WORKFLOW_YAML_BYTES = 100_000
WORKFLOW_FETCH_TIMEOUT_S = 8.0
READ_CHUNK_BYTES = 16_384
USER_AGENT = "actions-cost-guard/0.1"

RAW_HOST = "raw.githubusercontent.com"
GITHUB_HOST = "github.com"

_YAML_PATH = re.compile(r"\.ya?ml$", re.IGNORECASE)


@dataclass
class WorkflowImportError(Exception):
    """Raised when a remote workflow cannot be resolved or fetched."""
    kind: str

    def __str__(self) -> str:
        return self.kind


def check_workflow_url(raw: Any) -> str:
    """Trim a workflow URL and enforce the non-empty and length limits."""
    url = raw.strip() if isinstance(raw, str) else ""
    if not url or len(url) > MAX_WORKFLOW_URL_CHARS:
        raise WorkflowImportError("invalid_workflow_url")
    return url


def sanitize_workflow_url(payload: Mapping[str, Any]) -> str:
    return check_workflow_url(payload.get("workflowUrl"))


def _assert_yaml_path(path: str) -> None:
    if not _YAML_PATH.search(path):
        raise WorkflowImportError("invalid_workflow_path")


def resolve_raw_workflow_url(workflow_url: str) -> str:
    """
    Turn a GitHub workflow link into a raw.githubusercontent.com URL.

    Accepts raw URLs as-is and github.com blob/raw links of the form
    https://github.com/<owner>/<repo>/<blob|raw>/<ref>/<path>.
    """
    try:
        parts = urlsplit(workflow_url)
        host = (parts.hostname or "").lower()
    except ValueError as e:
        raise WorkflowImportError("invalid_workflow_url") from e

    if parts.scheme != "https" or not host:
        raise WorkflowImportError("invalid_workflow_url")

    if host == RAW_HOST:
        _assert_yaml_path(parts.path)
        return workflow_url

    if host != GITHUB_HOST:
        raise WorkflowImportError("invalid_workflow_host")

    segments = [s for s in parts.path.split("/") if s]
    if len(segments) < 6:
        raise WorkflowImportError("invalid_workflow_path")

    owner, repo, mode, ref, *file_parts = segments
    if mode not in ("blob", "raw") or not file_parts:
        raise WorkflowImportError("invalid_workflow_path")

    file_path = "/".join(file_parts)
    _assert_yaml_path(file_path)

    return f"https://{RAW_HOST}/{owner}/{repo}/{ref}/{file_path}"


Opener = Callable[..., Any]


def _read_capped(response: Any, deadline: float) -> bytes:
    """
    Read the body in chunks, stopping one byte past the size limit.

    Raises workflow_fetch_timeout once the monotonic clock passes deadline,
    so a server dripping bytes cannot outlast the fetch timeout.
    """
    read = getattr(response, "read1", response.read)
    chunks: list[bytes] = []
    total = 0
    while total <= MAX_WORKFLOW_YAML_BYTES:
        chunk = read(min(READ_CHUNK_BYTES, MAX_WORKFLOW_YAML_BYTES + 1 - total))
        if time.monotonic() > deadline:
            raise WorkflowImportError("workflow_fetch_timeout")
        if not chunk:
            break
        chunks.append(chunk)
        total += len(chunk)
    return b"".join(chunks)


def fetch_workflow_yaml(
    raw_workflow_url: str,
    opener: Opener = urllib.request.urlopen,
    timeout: float = WORKFLOW_FETCH_TIMEOUT_S,
) -> str:
    """
    Download workflow text from a resolved raw URL.

    Args:
        raw_workflow_url: URL returned by resolve_raw_workflow_url()
        opener: urlopen-compatible callable (swapped out in tests)
        timeout: seconds allowed for the whole fetch, connect through last byte

    Raises:
        WorkflowImportError: workflow_fetch_failed, workflow_fetch_timeout,
            workflow_empty or workflow_too_large
    """
    req = urllib.request.Request(
        raw_workflow_url,
        headers={"User-Agent": USER_AGENT},
        method="GET",
    )
    deadline = time.monotonic() + timeout
    try:
        with opener(req, timeout=timeout) as response:
            status = getattr(response, "status", 200)
            if status < 200 or status >= 300:
                raise WorkflowImportError("workflow_fetch_failed")
            body = _read_capped(response, deadline)
    except WorkflowImportError as e:
        if e.kind == "workflow_fetch_timeout":
            log.warning("Workflow fetch exceeded %.1fs: %s", timeout, raw_workflow_url)
        raise
    except (socket.timeout, TimeoutError) as e:
        log.warning("Workflow fetch timed out: %s", raw_workflow_url)
        raise WorkflowImportError("workflow_fetch_timeout") from e
    except urllib.error.HTTPError as e:
        log.warning("Workflow fetch failed: %s %s %s", raw_workflow_url, e.code, e.reason)
        raise WorkflowImportError("workflow_fetch_failed") from e
    except urllib.error.URLError as e:
        if isinstance(e.reason, (socket.timeout, TimeoutError)):
            log.warning("Workflow fetch timed out: %s", raw_workflow_url)
            raise WorkflowImportError("workflow_fetch_timeout") from e
        log.warning("Workflow fetch failed: %s %s", raw_workflow_url, e.reason)
        raise WorkflowImportError("workflow_fetch_failed") from e
    except OSError as e:
        log.warning("Workflow fetch failed: %s %s", raw_workflow_url, e)
        raise WorkflowImportError("workflow_fetch_failed") from e

    if len(body) > MAX_WORKFLOW_YAML_BYTES:
        raise WorkflowImportError("workflow_too_large")

    text = body.decode("utf-8", errors="replace")
    if not text.strip():
        raise WorkflowImportError("workflow_empty")
    return text


def import_workflow(workflow_url: str, opener: Opener = urllib.request.urlopen) -> tuple[str, str]:
    """Check, resolve and fetch in one go. Returns (raw_url, workflow_text)."""
    raw_url = resolve_raw_workflow_url(check_workflow_url(workflow_url))
    return raw_url, fetch_workflow_yaml(raw_url, opener=opener)
