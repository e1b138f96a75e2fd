"""Thin httpx client for the design-file REST API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..errors import UpstreamUnavailableError

logger = logging.getLogger("dsassist.figma")

IMAGE_BATCH_SIZE = 10
IMAGE_SCALE = 0.5
IMAGE_FALLBACK_SCALE = 0.25
MAX_NODE_TEXTS = 60


class FigmaClient:
    """Read-only access to design files, node subtrees, and rendered previews."""

    def __init__(self, token: str, base_url: str = "https://api.figma.com/v1", timeout: float = 30.0) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Purpose: Issue one authenticated GET and decode the JSON body.
        Inputs/Outputs: Inputs are an API path and query params; output is a dict.
        Side Effects / State: Performs a network request.
        Dependencies: Uses httpx with the configured token and timeout.
        Failure Modes: Missing token, transport errors, non-2xx responses, and invalid
            JSON all raise UpstreamUnavailableError.
        If Removed: No catalog built from design files can refresh.
        Testing Notes: Use httpx.MockTransport-style fakes or a stub client in tests.
        """
        # Wrap every transport or status failure into the upstream error type.
        if not self._token:
            raise UpstreamUnavailableError("Missing FIGMA_TOKEN")
        url = f"{self._base_url}{path}"
        try:
            response = httpx.get(
                url,
                params=params,
                headers={"X-Figma-Token": self._token},
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamUnavailableError(
                f"Figma {path} failed: {exc.response.status_code} {exc.response.text[:200]}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailableError(f"Figma {path} failed: {exc}") from exc
        if not isinstance(data, dict):
            raise UpstreamUnavailableError(f"Figma {path} returned a non-object body")
        return data

    def fetch_file(self, file_key: str) -> Dict[str, Any]:
        return self._get(f"/files/{file_key}")

    def fetch_nodes(self, file_key: str, node_id: str) -> Dict[str, Any]:
        return self._get(f"/files/{file_key}/nodes", params={"ids": node_id})

    def fetch_node_document(self, file_key: str, node_id: str) -> Optional[Dict[str, Any]]:
        """Return the document subtree for one node, or None when the API omits it."""
        data = self.fetch_nodes(file_key, node_id)
        node = (data.get("nodes") or {}).get(node_id) or {}
        document = node.get("document")
        return document if isinstance(document, dict) else None

    def fetch_node_text(self, file_key: str, node_id: str) -> List[str]:
        """Collect text layers under one node, capped at MAX_NODE_TEXTS strings."""
        texts: List[str] = []
        collect_text(self.fetch_node_document(file_key, node_id), texts)
        return texts[:MAX_NODE_TEXTS]

    def fetch_images(self, file_key: str, node_ids: List[str]) -> Dict[str, str]:
        """Purpose: Render preview images for a list of nodes.
        Inputs/Outputs: Inputs are a file key and node ids; output maps id -> image URL.
        Side Effects / State: Performs one or two requests per batch.
        Dependencies: Uses _get against the images endpoint.
        Failure Modes: A failing batch is retried once with half the ids at a lower
            scale; a second failure skips the batch with a warning.
        If Removed: Listings cannot show previews.
        Testing Notes: Fail the first request of a batch and check the fallback ids.
        """
        # Batches keep render time under the API's timeout.
        images: Dict[str, str] = {}
        if not node_ids:
            logger.warning("file=%s status=no_node_ids", file_key)
            return images
        for offset in range(0, len(node_ids), IMAGE_BATCH_SIZE):
            batch = node_ids[offset : offset + IMAGE_BATCH_SIZE]
            try:
                images.update(self._request_images(file_key, batch, IMAGE_SCALE))
                continue
            except UpstreamUnavailableError:
                pass
            half = batch[: max(1, len(batch) // 2)]
            try:
                images.update(self._request_images(file_key, half, IMAGE_FALLBACK_SCALE))
            except UpstreamUnavailableError as exc:
                logger.warning("file=%s batch=%s status=skipped error=%s", file_key, len(batch), exc)
        return images

    def _request_images(self, file_key: str, ids: List[str], scale: float) -> Dict[str, str]:
        data = self._get(
            f"/images/{file_key}",
            params={"ids": ",".join(ids), "format": "png", "scale": str(scale)},
        )
        return {key: value for key, value in (data.get("images") or {}).items() if value}


def collect_text(node: Any, out: List[str]) -> None:
    """Depth-first collection of trimmed, non-empty TEXT layer characters."""
    if not isinstance(node, dict):
        return
    if node.get("type") == "TEXT" and isinstance(node.get("characters"), str):
        text = node["characters"].strip()
        if text:
            out.append(text)
    for child in node.get("children") or []:
        collect_text(child, out)


def collect_component_usage(node: Any, out: List[Dict[str, str]]) -> None:
    if not isinstance(node, dict):
        return
    if node.get("type") in ("INSTANCE", "COMPONENT", "COMPONENT_SET"):
        out.append({"type": node["type"], "name": node.get("name") or ""})
    for child in node.get("children") or []:
        collect_component_usage(child, out)
