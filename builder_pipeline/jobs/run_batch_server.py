"""HTTP entrypoint that queues builder imports and answers allow-list checks."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List

from flask import Flask, jsonify, request

from builder_pipeline.core.config import get_settings
from builder_pipeline.core.csp import CSPComplianceEngine, CSPPolicyError, FilePolicyStore
from builder_pipeline.jobs.run_batch import run_targets
from builder_pipeline.models import Target

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & executor ----------
app = Flask(__name__)
# One worker keeps batches sequential; the browser page is shared.
_executor = ThreadPoolExecutor(max_workers=1)

# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; reads settings only, never touches the database."""
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "worker_port_config": settings.worker_port,
                "page_loader": settings.page_loader,
                "overwrite_policy": settings.overwrite_policy,
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/import")
def enqueue_import() -> Any:
    """
    Queue a batch import.
    Required JSON field: targets, a list of {state, website_url, name?}.
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    rows = payload.get("targets")
    if not isinstance(rows, list) or not rows:
        return jsonify({"error": "targets must be a non-empty list"}), 400

    targets: List[Target] = []
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            return jsonify({"error": f"targets[{index}] must be an object"}), 400
        try:
            targets.append(
                Target(
                    state=str(row.get("state") or ""),
                    url=str(row.get("website_url") or ""),
                    known_name=row.get("name") or None,
                )
            )
        except ValueError as exc:
            return jsonify({"error": f"targets[{index}]: {exc}"}), 400

    logger.info("Queueing import of %d target(s)", len(targets))
    _executor.submit(_run_job_safe, targets)
    return jsonify({"data": {"status": "queued", "targets": len(targets)}}), 202


@app.post("/csp/validate")
def validate_origins() -> Any:
    """Report which photo/site origins the allow-list would block. Never edits the policy."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    photo_urls = payload.get("photo_urls") or []
    if not isinstance(photo_urls, list):
        return jsonify({"error": "photo_urls must be a list"}), 400

    settings = get_settings()
    engine = CSPComplianceEngine(FilePolicyStore(Path(settings.csp_policy_path)), auto_remediate=False)
    try:
        validation = engine.validate([str(url) for url in photo_urls], payload.get("site_url"))
    except CSPPolicyError as exc:
        logger.error("Allow-list unavailable: %s", exc)
        return jsonify({"error": "allow-list unavailable"}), 503

    return (
        jsonify(
            {
                "data": {
                    "compliant": validation.compliant,
                    "violations": [
                        {"url": v.url, "origin": v.origin, "source": v.source} for v in validation.violations
                    ],
                    "new_origins": validation.new_origins,
                }
            }
        ),
        200,
    )


# ---------- Internals ----------


def _run_job_safe(targets: List[Target]) -> None:
    try:
        run_targets(targets)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Import job failed: %s", exc)


def main() -> None:
    env_port = os.getenv("PORT")
    port = int(env_port or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
