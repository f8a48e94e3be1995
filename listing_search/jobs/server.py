"""HTTP entrypoint exposing listing create/get/search."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from listing_search.core.config import get_settings
from listing_search.core.db import close_pool
from listing_search.core.errors import BackendUnavailable, InvalidRequest, NotFound
from listing_search.sample_data import seed_sample_listings
from listing_search.service import ListingService, build_index, parse_search_request

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & service ----------
app = Flask(__name__)
_service: Optional[ListingService] = None
_service_lock = threading.Lock()


def get_service() -> ListingService:
    """Build the listing service on first use from the configured backend."""
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                settings = get_settings()
                index = build_index(settings)
                if settings.seed_sample_data:
                    seed_sample_listings(index)
                _service = ListingService(index)
    return _service


# ---------- Error handlers ----------


@app.errorhandler(InvalidRequest)
def handle_invalid_request(exc: InvalidRequest) -> Any:
    return jsonify({"error": str(exc)}), 400


@app.errorhandler(NotFound)
def handle_not_found(exc: NotFound) -> Any:
    return jsonify({"error": str(exc)}), 404


@app.errorhandler(BackendUnavailable)
def handle_backend_unavailable(exc: BackendUnavailable) -> Any:
    logger.error("Listing backend unavailable: %s", exc)
    return jsonify({"error": "listing store unavailable"}), 503


# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return jsonify({"status": "ok", "backend": settings.backend}), 200


@app.post("/api/businesses")
def create_business() -> Any:
    """Create a listing from a JSON body; ``name`` is required."""
    payload: Dict[str, Any] = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "request body must be a JSON object"}), 400

    record = get_service().create(payload)
    return jsonify({"data": record.to_dict()}), 201


@app.get("/api/businesses/search")
def search_businesses() -> Any:
    args = request.args
    search_request = parse_search_request(
        q=args.get("q"),
        lat=args.get("lat"),
        lon=args.get("lon"),
        radius_km=args.get("radius_km"),
        page=args.get("page"),
        size=args.get("size"),
        sort_by_distance=args.get("sortByDistance"),
        default_page_size=get_settings().default_page_size,
    )
    result = get_service().search(search_request)
    return jsonify({"data": result.to_dict()}), 200


@app.get("/api/businesses/<listing_id>")
def get_business(listing_id: str) -> Any:
    record = get_service().get(listing_id)
    return jsonify({"data": record.to_dict()}), 200


def main() -> None:
    port = get_settings().server_port
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    get_service()
    try:
        app.run(host="0.0.0.0", port=port)
    finally:
        close_pool()


if __name__ == "__main__":
    main()
